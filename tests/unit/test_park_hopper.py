"""Test park-hop splitting and transition timing."""

from datetime import time

from backend.parkplan.models import AnchorType, ItemKind, PlacementPhase
from backend.parkplan.scheduling.park_hopper import HopPlan, first_segment, plan_hop, resolve_hop
from backend.parkplan.scheduling.timeline import Placement

PARKS = ("park-a", "park-b")


def _hop_timeline(make_ride, make_timeline, reference, b_rides: int = 1, windows=None):
    rides = [make_ride("a1", 20, duration=10, park_id="park-a")]
    rides += [make_ride(f"b{i}", 20, duration=10, park_id="park-b") for i in range(1, b_rides + 1)]
    timeline = make_timeline(rides, park_ids=PARKS, reference=reference, windows=windows)
    return timeline, [r.id for r in rides]


def _ride_block(ref_id: str, start: int, end: int, park_id: str = "park-a") -> Placement:
    return Placement(
        kind=ItemKind.ride,
        ref_id=ref_id,
        name=ref_id,
        start=start,
        end=end,
        phase=PlacementPhase.scored,
        park_id=park_id,
        land="Land A",
    )


def test_split_follows_ride_load(make_ride, make_timeline, flat_reference, settings) -> None:
    """Test equal loads split the usable day in half."""
    timeline, ride_ids = _hop_timeline(make_ride, make_timeline, flat_reference)

    hop = plan_hop(timeline, ride_ids, flat_reference, settings)

    assert (hop.from_park, hop.to_park) == PARKS
    assert hop.travel_minutes == 20
    assert hop.split == 540 + (1240 - 540) // 2
    segment = first_segment(timeline, hop, settings)
    assert (segment.park_id, segment.earliest, segment.latest) == ("park-a", 540, 890)


def test_split_waits_for_hop_eligibility(make_ride, make_timeline, flat_reference, settings) -> None:
    reference = flat_reference.model_copy(update={"hop_eligibility": {"park-b": time(14, 0)}})
    timeline, ride_ids = _hop_timeline(make_ride, make_timeline, reference, b_rides=3)

    hop = plan_hop(timeline, ride_ids, reference, settings)

    assert hop.eligible_from == 14 * 60
    assert hop.split == 14 * 60 - 20


def test_split_leaves_room_for_second_park_show(
    make_ride, make_timeline, flat_reference, settings
) -> None:
    timeline, ride_ids = _hop_timeline(make_ride, make_timeline, flat_reference)
    timeline.add(
        Placement(
            kind=ItemKind.anchor,
            ref_id="show",
            name="Show",
            start=700,
            end=730,
            phase=PlacementPhase.anchor,
            park_id="park-b",
            anchor_type=AnchorType.show,
        )
    )

    hop = plan_hop(timeline, ride_ids, flat_reference, settings)

    assert hop.split == 700 - 20 - settings.hop_entry_minutes


def test_resolve_hop_after_last_first_park_item(
    make_ride, make_timeline, flat_reference, settings
) -> None:
    timeline, ride_ids = _hop_timeline(make_ride, make_timeline, flat_reference)
    hop = plan_hop(timeline, ride_ids, flat_reference, settings)
    timeline.add(_ride_block("a1", 800, 850))

    segment = resolve_hop(timeline, hop, settings)

    transition = next(p for p in timeline.placements if p.kind == ItemKind.transition)
    assert (transition.start, transition.end) == (870, 880)
    assert transition.travel_minutes == 20
    assert transition.park_id == "park-b"
    assert (segment.park_id, segment.earliest, segment.latest) == ("park-b", 880, 1240)
    assert timeline.segments[-1] == segment


def test_resolve_hop_fails_after_second_park_close(make_ride, make_timeline, flat_reference, settings) -> None:
    """Test an unreachable second park yields no segment and a tip."""
    timeline, _ = _hop_timeline(
        make_ride,
        make_timeline,
        flat_reference,
        windows={"park-a": (540, 1260), "park-b": (540, 900)},
    )
    timeline.add(_ride_block("a1", 850, 880))
    hop = HopPlan(
        from_park="park-a", to_park="park-b", split=890, travel_minutes=20, eligible_from=540
    )

    assert resolve_hop(timeline, hop, settings) is None
    assert not any(p.kind == ItemKind.transition for p in timeline.placements)
    assert "Could not reach park-b" in timeline.tips[0]
