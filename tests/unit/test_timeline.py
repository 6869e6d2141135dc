"""Test DayTimeline queries and commit rules."""

import pytest

from backend.parkplan.models import ItemKind, PlacementPhase
from backend.parkplan.scheduling.errors import InvariantViolationError
from backend.parkplan.scheduling.timeline import Placement


def _block(ref_id: str, start: int, end: int, land: str = "Land A") -> Placement:
    return Placement(
        kind=ItemKind.ride,
        ref_id=ref_id,
        name=ref_id,
        start=start,
        end=end,
        phase=PlacementPhase.scored,
        park_id="park-a",
        land=land,
    )


def test_add_keeps_placements_sorted(make_timeline) -> None:
    timeline = make_timeline()
    timeline.add(_block("late", 700, 720))
    timeline.add(_block("early", 600, 630))

    assert [p.ref_id for p in timeline.placements] == ["early", "late"]
    assert timeline.last().ref_id == "late"


def test_add_refuses_overlap(make_timeline) -> None:
    """Test that committing an overlapping block raises."""
    timeline = make_timeline()
    timeline.add(_block("first", 600, 630))

    with pytest.raises(InvariantViolationError, match="overlaps"):
        timeline.add(_block("second", 620, 640))


def test_add_refuses_negative_duration(make_timeline) -> None:
    timeline = make_timeline()
    with pytest.raises(InvariantViolationError, match="negative duration"):
        timeline.add(_block("bad", 640, 600))


def test_touching_blocks_are_free(make_timeline) -> None:
    timeline = make_timeline()
    timeline.add(_block("first", 600, 630))

    assert timeline.is_free(630, 660)
    assert timeline.is_free(570, 600)
    assert not timeline.is_free(629, 660)


def test_gaps_between_blocks(make_timeline) -> None:
    timeline = make_timeline()
    timeline.add(_block("a", 600, 630))
    timeline.add(_block("b", 700, 720))

    assert timeline.gaps(540, 800) == [(540, 600), (630, 700), (720, 800)]


def test_can_place_requires_walk_in_time(make_timeline) -> None:
    """Test a distant land needs the walk from the previous block."""
    timeline = make_timeline()
    timeline.add(_block("a", 540, 600, land="Land A"))

    assert timeline.can_place(605, 620, "Land B", 540, 1240) is None
    assert timeline.can_place(612, 627, "Land B", 540, 1240) == 12
    # Same land walks for free in the flat reference
    assert timeline.can_place(600, 615, "Land A", 540, 1240) == 0


def test_can_place_requires_walk_out_time(make_timeline) -> None:
    """Test a block must leave time to reach the next one."""
    timeline = make_timeline()
    timeline.add(_block("next", 700, 720, land="Land A"))

    assert timeline.can_place(670, 695, "Land B", 540, 1240) is None
    assert timeline.can_place(670, 688, "Land B", 540, 1240) == 0


def test_can_place_respects_bounds(make_timeline) -> None:
    timeline = make_timeline()
    assert timeline.can_place(530, 560, "Land A", 540, 1240) is None
    assert timeline.can_place(1230, 1250, "Land A", 540, 1240) is None


def test_candidate_starts_on_grid(make_timeline) -> None:
    timeline = make_timeline()
    assert timeline.candidate_starts(540, 600, "Land A", 15) == [540, 555, 570, 585]


def test_candidate_starts_include_walk_adjusted_gap_start(make_timeline) -> None:
    timeline = make_timeline()
    timeline.add(_block("a", 540, 601, land="Land A"))

    starts = timeline.candidate_starts(540, 660, "Land B", 15)
    assert starts[0] == 613
    assert 615 in starts


def test_window_for_falls_back_to_day_hours(make_timeline) -> None:
    timeline = make_timeline(windows={"park-a": (600, 1200)})

    assert timeline.window_for("park-a") == (600, 1200)
    assert timeline.window_for(None) == (540, 1260)
