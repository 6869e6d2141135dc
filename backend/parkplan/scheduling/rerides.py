"""Re-ride inserter - repeat visits in each day's trailing slack."""

import logging

from backend.parkplan.config import Settings
from backend.parkplan.models.common import ItemKind, PlacementPhase
from backend.parkplan.scheduling.curves import wait_at
from backend.parkplan.scheduling.timeline import DayTimeline, Placement

logger = logging.getLogger(__name__)


def _current_park(timeline: DayTimeline) -> str | None:
    if timeline.segments:
        return timeline.segments[-1].park_id
    return timeline.park_ids[0] if timeline.park_ids else None


def insert_rerides(
    timeline: DayTimeline,
    first_visit_end: dict[str, tuple[int, int]],
    day_index: int,
    wishlist: list[str],
    settings: Settings,
) -> list[str]:
    """Fill the slack after the day's last item with repeat visits.

    Args:
        timeline: Day being extended
        first_visit_end: ride_id -> (day index, end minute) of its first visit
        day_index: Position of this day in the trip
        wishlist: Favourite ride ids
        settings: Re-ride cap and close buffer

    Returns:
        Ids re-ridden, in order
    """
    park_id = _current_park(timeline)
    if park_id is None:
        return []

    latest = timeline.effective_close
    segment = timeline.segment_for(park_id)
    if segment is not None:
        latest = min(latest, segment.latest)

    last = timeline.last()
    if last is not None:
        pointer = last.end
    elif segment is not None:
        # Nothing placed: the whole day is slack
        pointer = segment.earliest
    else:
        pointer = timeline.window_for(park_id)[0]

    favourites = set(wishlist)
    candidates = [
        ride
        for ride in timeline.rides.values()
        if ride.park_id == park_id and (ride.id in favourites or ride.is_headliner)
    ]

    added: list[str] = []
    while len(added) < settings.max_rerides_per_day and pointer < latest:
        options = []
        for ride in candidates:
            if ride.id in added:
                continue
            first = first_visit_end.get(ride.id)
            if first is None or first[0] > day_index:
                continue
            if first[0] == day_index and first[1] > pointer:
                continue
            start = pointer + timeline.walk_in(pointer, ride.land)
            wait = wait_at(ride.wait_curve, start)
            end = start + wait + ride.duration_minutes
            if timeline.can_place(start, end, ride.land, pointer, latest) is None:
                continue
            options.append((wait, ride.id, ride, start, end, first[0] < day_index))

        if not options:
            break
        wait, _, ride, start, end, earlier_day = min(options, key=lambda o: (o[0], o[1]))
        reason = "Repeat of an earlier day's favourite" if earlier_day else "Re-ride in leftover time"
        timeline.add(
            Placement(
                kind=ItemKind.ride,
                ref_id=ride.id,
                name=ride.name,
                start=start,
                end=end,
                phase=PlacementPhase.reride,
                park_id=ride.park_id,
                land=ride.land,
                expected_wait=wait,
                reasoning=f"{reason} (~{wait} min wait)",
                is_reride=True,
                estimated=ride.estimated,
            )
        )
        added.append(ride.id)
        pointer = end

    if added:
        logger.info(
            "Inserted re-rides",
            extra={"structured": {"date": timeline.date.isoformat(), "rides": added}},
        )
    return added
