"""Test fixed-time anchor and meal placement."""

from datetime import time

import pytest

from backend.parkplan.models import Anchor, AnchorPriority, AnchorType, ItemKind, PlacementPhase
from backend.parkplan.scheduling.anchors import (
    DINNER,
    LUNCH,
    place_anchors,
    place_entertainment,
    place_meal,
)
from backend.parkplan.scheduling.errors import ScheduleConflictError
from backend.parkplan.scheduling.timeline import Placement


def _anchor(
    anchor_id: str,
    start: str,
    end: str,
    priority: AnchorPriority = AnchorPriority.must_see,
) -> Anchor:
    return Anchor(
        id=anchor_id,
        name=anchor_id.title(),
        type=AnchorType.show,
        start=time.fromisoformat(start),
        end=time.fromisoformat(end),
        priority=priority,
        park_id="park-a",
    )


def test_must_see_placed_at_fixed_time(make_timeline) -> None:
    timeline = make_timeline()
    placed = place_entertainment(timeline, [_anchor("parade", "15:00", "15:30")])

    assert placed == ["parade"]
    block = timeline.placements[0]
    assert (block.start, block.end) == (900, 930)
    assert block.kind == ItemKind.anchor
    assert block.anchor_priority == AnchorPriority.must_see
    assert block.reasoning.startswith("Must-see")


def test_must_see_placed_before_advisory(make_timeline) -> None:
    """Test a later must-see wins over an earlier-requested advisory anchor."""
    timeline = make_timeline()
    advisory = _anchor("character-meet", "15:10", "15:40", AnchorPriority.recommended)
    must_see = _anchor("parade", "15:00", "15:30")

    placed = place_entertainment(timeline, [advisory, must_see])

    assert placed == ["parade"]
    assert any("Skipped Character-Meet" in tip for tip in timeline.tips)


def test_overlapping_must_see_raises(make_timeline) -> None:
    timeline = make_timeline()
    with pytest.raises(ScheduleConflictError, match="overlaps"):
        place_entertainment(
            timeline,
            [_anchor("parade", "15:00", "15:30"), _anchor("castle", "15:20", "15:40")],
        )


def test_must_see_outside_hours_raises(make_timeline) -> None:
    timeline = make_timeline()
    with pytest.raises(ScheduleConflictError, match="outside park hours"):
        place_entertainment(timeline, [_anchor("fireworks", "21:10", "21:30")])


def test_advisory_outside_hours_skipped(make_timeline) -> None:
    timeline = make_timeline()
    placed = place_entertainment(
        timeline, [_anchor("fireworks", "21:10", "21:30", AnchorPriority.optional)]
    )

    assert placed == []
    assert "skipped" in timeline.tips[0]


def test_meal_lands_on_preferred_time(make_timeline) -> None:
    timeline = make_timeline()
    assert place_meal(timeline, LUNCH, 35)

    meal = timeline.placements[0]
    assert (meal.start, meal.end) == (LUNCH.preferred, LUNCH.preferred + 35)
    assert meal.anchor_type == AnchorType.meal


def test_meal_moves_around_blocks(make_timeline) -> None:
    """Test the nearest free start to the preferred time is chosen."""
    timeline = make_timeline()
    timeline.add(
        Placement(
            kind=ItemKind.anchor,
            ref_id="show",
            name="Show",
            start=12 * 60,
            end=12 * 60 + 45,
            phase=PlacementPhase.anchor,
        )
    )
    assert place_meal(timeline, LUNCH, 35)

    meal = next(p for p in timeline.placements if p.ref_id == LUNCH.anchor_id)
    # Nothing fits between 11:30 and the show
    assert meal.start == 12 * 60 + 45


def test_meal_skipped_when_window_closed(make_timeline) -> None:
    """Test a park closing before dinner gets no dinner and no tip."""
    timeline = make_timeline(close_time="16:00")

    assert place_meal(timeline, DINNER, 35) is False
    assert timeline.placements == []
    assert timeline.tips == []


def test_meal_tip_when_no_free_window(make_timeline) -> None:
    timeline = make_timeline()
    timeline.add(
        Placement(
            kind=ItemKind.anchor,
            ref_id="long-show",
            name="Long Show",
            start=11 * 60,
            end=14 * 60,
            phase=PlacementPhase.anchor,
        )
    )
    assert place_meal(timeline, LUNCH, 35) is False
    assert "lunch" in timeline.tips[0]


def test_place_anchors_with_meals(make_timeline, settings) -> None:
    timeline = make_timeline()
    placed = place_anchors(
        timeline,
        [_anchor("parade", "15:00", "15:30")],
        include_meals=True,
        settings=settings,
    )

    assert placed == ["parade", "meal-lunch", "meal-dinner"]
    assert [p.ref_id for p in timeline.placements] == ["meal-lunch", "parade", "meal-dinner"]
