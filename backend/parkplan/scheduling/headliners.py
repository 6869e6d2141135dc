"""Headliner placer - reserves each headliner at its lowest-wait feasible time.

Headliners with the widest wait swing are placed first since they have the
most to lose from a bad slot. No backtracking: once reserved, a window is
never revisited.
"""

import logging

from backend.parkplan.config import Settings
from backend.parkplan.models.common import ItemKind, PlacementPhase
from backend.parkplan.models.ride import RideSelection
from backend.parkplan.scheduling.curves import curve_spread, min_wait, wait_at
from backend.parkplan.scheduling.timeline import DayTimeline, Placement, Segment
from backend.parkplan.utils.timeutils import format_clock

logger = logging.getLogger(__name__)


def headliner_order(rides: list[RideSelection], open_min: int, close_min: int) -> list[RideSelection]:
    """Sort by wait spread descending, ties by ride id."""
    return sorted(rides, key=lambda r: (-curve_spread(r.wait_curve, open_min, close_min), r.id))


def _proximity(timeline: DayTimeline, land: str) -> int:
    """Total walk to headliners already on the timeline."""
    return sum(
        timeline.walk(p.land, land)
        for p in timeline.placements
        if p.phase == PlacementPhase.headliner
    )


def place_headliners(
    timeline: DayTimeline,
    segment: Segment,
    ride_ids: list[str],
    settings: Settings,
    *,
    rope_drop_active: bool = False,
) -> list[str]:
    """Place the segment's headliners.

    Args:
        timeline: Day being built
        segment: Park and time range to fill
        ride_ids: Rides assigned to this day
        settings: Slot width and rope-drop cutoff
        rope_drop_active: Keep the opening window free for rope-drop targets

    Returns:
        Ids of headliners placed, in placement order
    """
    open_min, close_min = timeline.window_for(segment.park_id)
    placed_ids = {p.ref_id for p in timeline.ride_placements()}
    candidates = [
        timeline.rides[r]
        for r in ride_ids
        if r in timeline.rides
        and timeline.rides[r].is_headliner
        and timeline.rides[r].park_id == segment.park_id
        and r not in timeline.rope_drop_ids
        and r not in placed_ids
    ]

    earliest = segment.earliest
    if rope_drop_active:
        earliest = max(earliest, segment.earliest + settings.rope_drop_cutoff_minutes)

    placed: list[str] = []
    for ride in headliner_order(candidates, open_min, close_min):
        best: tuple[int, int, int] | None = None
        best_walk = 0
        for start in timeline.candidate_starts(earliest, segment.latest, ride.land, settings.slot_minutes):
            wait = wait_at(ride.wait_curve, start)
            end = start + wait + ride.duration_minutes
            walk = timeline.can_place(start, end, ride.land, earliest, segment.latest)
            if walk is None:
                continue
            key = (wait, start, _proximity(timeline, ride.land))
            if best is None or key < best:
                best = key
                best_walk = walk

        if best is None:
            logger.debug("No feasible slot for headliner %s", ride.id)
            continue

        wait, start, _ = best
        lowest = min_wait(ride.wait_curve, open_min, close_min)
        if wait <= lowest:
            reasoning = f"Headliner at its lowest predicted wait (~{wait} min) at {format_clock(start)}"
        else:
            reasoning = (
                f"Headliner at the best open slot (~{wait} min, daily low {lowest} min) "
                f"at {format_clock(start)}"
            )
        timeline.add(
            Placement(
                kind=ItemKind.ride,
                ref_id=ride.id,
                name=ride.name,
                start=start,
                end=start + wait + ride.duration_minutes,
                phase=PlacementPhase.headliner,
                park_id=ride.park_id,
                land=ride.land,
                expected_wait=wait,
                reasoning=reasoning,
                estimated=ride.estimated,
                score_components={"wait": wait, "walk": best_walk},
            )
        )
        placed.append(ride.id)
    return placed
