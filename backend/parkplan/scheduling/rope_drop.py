"""Rope-drop orderer - rides worth being first in line for at opening."""

import logging

from backend.parkplan.config import Settings
from backend.parkplan.models.common import ItemKind, PlacementPhase
from backend.parkplan.models.ride import RideSelection
from backend.parkplan.scheduling.curves import wait_at
from backend.parkplan.scheduling.timeline import DayTimeline, Placement, Segment
from backend.parkplan.utils.timeutils import to_minutes

logger = logging.getLogger(__name__)


def rope_drop_delta(ride: RideSelection, open_min: int, midday: int) -> int:
    """Minutes saved by riding at opening instead of midday."""
    return wait_at(ride.wait_curve, midday) - wait_at(ride.wait_curve, open_min)


def rope_drop_order(
    rides: list[RideSelection], open_min: int, midday: int
) -> list[tuple[RideSelection, int]]:
    """Rides paired with their delta, largest benefit first (ties by id)."""
    scored = [(ride, rope_drop_delta(ride, open_min, midday)) for ride in rides]
    return sorted(scored, key=lambda pair: (-pair[1], pair[0].id))


def place_rope_drop(timeline: DayTimeline, segment: Segment, settings: Settings) -> list[str]:
    """Place rope-drop targets back to back from the segment start.

    Returns:
        Ids placed, in order; the rest are left for the slot scorer
    """
    placed_ids = {p.ref_id for p in timeline.ride_placements()}
    targets = [
        timeline.rides[r]
        for r in timeline.rope_drop_ids
        if r in timeline.rides
        and timeline.rides[r].park_id == segment.park_id
        and r not in placed_ids
    ]
    if not targets:
        return []

    open_min = segment.earliest
    cutoff = open_min + settings.rope_drop_cutoff_minutes
    midday = to_minutes(settings.rope_drop_midday_reference)

    pointer = open_min
    placed: list[str] = []
    for ride, delta in rope_drop_order(targets, open_min, midday):
        if delta < settings.rope_drop_min_delta or pointer >= cutoff:
            break
        start = pointer + timeline.walk_in(pointer, ride.land)
        wait = wait_at(ride.wait_curve, start)
        end = start + wait + ride.duration_minutes
        walk = timeline.can_place(start, end, ride.land, segment.earliest, segment.latest)
        if walk is None:
            break

        timeline.add(
            Placement(
                kind=ItemKind.ride,
                ref_id=ride.id,
                name=ride.name,
                start=start,
                end=end,
                phase=PlacementPhase.rope_drop,
                park_id=ride.park_id,
                land=ride.land,
                expected_wait=wait,
                reasoning=f"Rope drop: saves ~{max(delta, 0)} min versus riding at midday",
                estimated=ride.estimated,
                score_components={"delta": delta, "wait": wait, "walk": walk},
            )
        )
        placed.append(ride.id)
        pointer = end

    logger.debug("Rope drop placed %d of %d targets", len(placed), len(targets))
    return placed
