"""Park-hopper resolver - splits a hop day and times the transition.

A hop day runs the per-park phases for the first park inside its planned
segment, then commits one transition block, then runs the phases for the
second park from the end of the transition.
"""

import logging
from dataclasses import dataclass

from backend.parkplan.config import Settings
from backend.parkplan.models.common import ItemKind, PlacementPhase
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.scheduling.curves import mean_wait
from backend.parkplan.scheduling.timeline import DayTimeline, Placement, Segment
from backend.parkplan.utils.timeutils import format_clock, to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HopPlan:
    """Planned order and split for one hop day."""

    from_park: str
    to_park: str
    split: int
    travel_minutes: int
    eligible_from: int


def _park_load(timeline: DayTimeline, park_id: str, ride_ids: list[str]) -> float:
    open_min, close_min = timeline.window_for(park_id)
    load = 0.0
    for ride_id in ride_ids:
        ride = timeline.rides.get(ride_id)
        if ride is None or ride.park_id != park_id:
            continue
        load += ride.duration_minutes + mean_wait(ride.wait_curve, open_min, close_min)
    return load


def plan_hop(
    timeline: DayTimeline,
    ride_ids: list[str],
    reference: ReferenceData,
    settings: Settings,
) -> HopPlan:
    """Choose the split minute between the first and second park.

    The split divides the day in proportion to each park's ride load and is
    then clamped so that anchors in each park stay on their side and the
    second park can be reached after its hop-eligibility time.
    """
    from_park, to_park = timeline.park_ids[0], timeline.park_ids[1]
    first_open, first_close = timeline.window_for(from_park)
    second_open, second_close = timeline.window_for(to_park)
    travel = reference.transition_minutes(from_park, to_park)

    eligibility = reference.hop_eligibility_time(to_park)
    eligible_from = max(second_open, to_minutes(eligibility) if eligibility else second_open)

    load_first = _park_load(timeline, from_park, ride_ids)
    load_second = _park_load(timeline, to_park, ride_ids)
    day_start = first_open
    day_end = second_close - settings.park_close_buffer_minutes
    if load_first + load_second > 0:
        share = load_first / (load_first + load_second)
    else:
        share = 0.5
    split = int(day_start + share * (day_end - day_start))

    # Keep the hop after eligibility, inside the first park's hours and
    # between the two parks' anchors
    split = max(split, eligible_from - travel)
    split = min(split, first_close)
    first_anchor_ends = [
        p.end for p in timeline.placements if p.kind == ItemKind.anchor and p.park_id == from_park
    ]
    second_anchor_starts = [
        p.start for p in timeline.placements if p.kind == ItemKind.anchor and p.park_id == to_park
    ]
    if second_anchor_starts:
        split = min(split, min(second_anchor_starts) - travel - settings.hop_entry_minutes)
    if first_anchor_ends:
        split = max(split, max(first_anchor_ends))
    split = max(split, day_start)

    logger.info(
        "Planned park hop",
        extra={
            "structured": {
                "date": timeline.date.isoformat(),
                "from_park": from_park,
                "to_park": to_park,
                "split": format_clock(split),
                "load_first": round(load_first, 1),
                "load_second": round(load_second, 1),
            }
        },
    )
    return HopPlan(
        from_park=from_park,
        to_park=to_park,
        split=split,
        travel_minutes=travel,
        eligible_from=eligible_from,
    )


def first_segment(timeline: DayTimeline, hop: HopPlan, settings: Settings) -> Segment:
    open_min, close_min = timeline.window_for(hop.from_park)
    latest = min(hop.split, close_min - settings.park_close_buffer_minutes)
    return Segment(park_id=hop.from_park, earliest=open_min, latest=max(latest, open_min))


def resolve_hop(timeline: DayTimeline, hop: HopPlan, settings: Settings) -> Segment | None:
    """Commit the transition block once the first park is filled.

    Returns:
        Segment for the second park, or None if the hop cannot happen before
        the second park's effective close
    """
    _, second_close = timeline.window_for(hop.to_park)
    effective_close = second_close - settings.park_close_buffer_minutes
    entry = settings.hop_entry_minutes

    before_split = [p for p in timeline.placements if p.start < hop.split]
    last_end = max((p.end for p in before_split), default=timeline.window_for(hop.from_park)[0])
    start = max(hop.eligible_from, last_end + hop.travel_minutes)

    # Slide past any block that would cut into the travel or entry time
    while True:
        blocker = next(
            (
                p
                for p in timeline.placements
                if p.start < start + entry and start - hop.travel_minutes < p.end
            ),
            None,
        )
        if blocker is None:
            break
        start = blocker.end + hop.travel_minutes

    if start + entry > effective_close:
        logger.warning(
            "Park hop not possible before close",
            extra={
                "structured": {
                    "date": timeline.date.isoformat(),
                    "to_park": hop.to_park,
                    "earliest_hop": format_clock(start),
                }
            },
        )
        timeline.tips.append(
            f"Could not reach {hop.to_park} before it closes; its rides were left out"
        )
        return None

    timeline.add(
        Placement(
            kind=ItemKind.transition,
            ref_id=f"hop-{hop.from_park}-{hop.to_park}",
            name=f"Park hop to {hop.to_park}",
            start=start,
            end=start + entry,
            phase=PlacementPhase.transition,
            park_id=hop.to_park,
            reasoning=(
                f"{hop.travel_minutes} min transfer from {hop.from_park}, "
                f"entering {hop.to_park} at {format_clock(start)}"
            ),
            travel_minutes=hop.travel_minutes,
        )
    )
    timeline.segments.append(Segment(park_id=hop.to_park, earliest=start + entry, latest=effective_close))
    return timeline.segments[-1]
