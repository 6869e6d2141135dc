"""Input normalizer - validates and canonicalises a planning request.

Every rejected field is collected and raised together in one
ValidationError; nothing is dropped or coerced. Missing or partial wait
curves are replaced with a flat category-median curve and flagged as
estimated.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from backend.parkplan.config import Settings
from backend.parkplan.models.common import AnchorPriority, TripDuration
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.models.request import PlanInput
from backend.parkplan.models.ride import RideInfo, RideSelection, WaitPoint
from backend.parkplan.models.schedule import Anchor, ParkDaySchedule
from backend.parkplan.models.snapshot import PlanningSnapshot
from backend.parkplan.scheduling.curves import flat_curve, median_of_means
from backend.parkplan.scheduling.errors import FieldError, ValidationError
from backend.parkplan.utils.timeutils import format_clock, to_minutes

logger = logging.getLogger(__name__)

# A curve may stop this many minutes short of the window and still count as full
CURVE_COVERAGE_TOLERANCE = 60


@dataclass
class ParkWindow:
    """Usable hours of one park on one day."""

    park_id: str
    open: int
    close: int


@dataclass
class PlanDay:
    """Canonical view of one trip day."""

    date: date
    park_ids: list[str]
    windows: dict[str, ParkWindow]
    rides: dict[str, RideSelection] = field(default_factory=dict)
    anchors: list[Anchor] = field(default_factory=list)
    closed_parks: list[str] = field(default_factory=list)

    @property
    def hopping(self) -> bool:
        return len(self.park_ids) > 1

    @property
    def open(self) -> int:
        return min(w.open for w in self.windows.values())

    @property
    def close(self) -> int:
        return max(w.close for w in self.windows.values())


@dataclass
class NormalizedRequest:
    """Validated request with per-day ride selections and anchors."""

    plan_input: PlanInput
    days: list[PlanDay]
    wishlist: list[str]
    ride_info: dict[str, RideInfo]

    def mandatory_ids(self) -> list[str]:
        optional = set(self.plan_input.optional_ride_ids)
        return [r for r in self.wishlist if r not in optional]


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _validate_dates(plan_input: PlanInput, today: date, errors: list[FieldError]) -> list[date]:
    dates = sorted(set(plan_input.requested_dates()))
    if not dates:
        errors.append(FieldError("visit_dates", "at least one visit date is required"))
        return []

    past = [d for d in dates if d < today]
    if past:
        errors.append(
            FieldError("visit_dates", f"dates in the past: {', '.join(d.isoformat() for d in past)}")
        )

    if plan_input.duration in (TripDuration.half_day, TripDuration.full_day) and len(dates) != 1:
        errors.append(
            FieldError(
                "duration",
                f"{plan_input.duration.value} requires exactly one date, got {len(dates)}",
            )
        )
    if plan_input.duration == TripDuration.multi_day and len(dates) < 2:
        errors.append(FieldError("duration", "multi-day requires at least two distinct dates"))
    return dates


def _validate_parks(
    plan_input: PlanInput,
    reference: ReferenceData,
    num_dates: int,
    settings: Settings,
    errors: list[FieldError],
) -> list[str]:
    park_ids = _dedupe(plan_input.park_ids)
    if not park_ids:
        errors.append(FieldError("park_ids", "at least one park is required"))
        return []

    unknown = [p for p in park_ids if not reference.known_park(p)]
    if unknown:
        errors.append(FieldError("park_ids", f"unknown parks: {', '.join(unknown)}"))
        return park_ids

    if plan_input.park_hopping:
        if len(park_ids) < 2:
            errors.append(FieldError("park_hopping", "park hopping requires at least two parks"))
        elif not reference.same_resort(park_ids):
            errors.append(
                FieldError(
                    "park_hopping",
                    f"parks {', '.join(park_ids)} do not share a resort pairing",
                )
            )
        elif len(park_ids) > settings.max_hops_per_day + 1:
            errors.append(
                FieldError(
                    "park_ids",
                    f"at most {settings.max_hops_per_day + 1} parks can be visited in one day",
                )
            )
        if plan_input.duration == TripDuration.half_day:
            errors.append(FieldError("duration", "park hopping requires a full day"))
    else:
        if num_dates == 1 and len(park_ids) > 1:
            errors.append(
                FieldError("park_ids", "several parks on a single day require park_hopping")
            )
        elif num_dates > 1 and len(park_ids) > num_dates:
            errors.append(FieldError("park_ids", "more parks than visit dates"))
    return park_ids


def _validate_rides(
    plan_input: PlanInput,
    catalogue: dict[str, RideInfo],
    park_ids: list[str],
    errors: list[FieldError],
) -> list[str]:
    wishlist = _dedupe(plan_input.favorite_ride_ids)
    if not wishlist:
        errors.append(FieldError("favorite_ride_ids", "wishlist must not be empty"))
        return []

    unknown = [r for r in wishlist if r not in catalogue]
    if unknown:
        errors.append(FieldError("favorite_ride_ids", f"unknown rides: {', '.join(unknown)}"))

    foreign = [r for r in wishlist if r in catalogue and catalogue[r].park_id not in park_ids]
    if foreign and park_ids:
        errors.append(
            FieldError(
                "favorite_ride_ids",
                f"rides not in the requested parks: {', '.join(foreign)}",
            )
        )

    for field_name, ids in (
        ("rope_drop_ride_ids", plan_input.rope_drop_ride_ids),
        ("optional_ride_ids", plan_input.optional_ride_ids),
        ("priority_weights", list(plan_input.priority_weights)),
    ):
        stray = [r for r in ids if r not in wishlist]
        if stray:
            errors.append(FieldError(field_name, f"not in the wishlist: {', '.join(stray)}"))
    return wishlist


def _park_window(schedule: ParkDaySchedule, plan_input: PlanInput) -> ParkWindow:
    open_min = to_minutes(schedule.open_time)
    close_time = schedule.close_time
    if plan_input.use_extended_hours and schedule.extended_close_time is not None:
        close_time = schedule.extended_close_time
    close_min = to_minutes(close_time)
    if plan_input.duration == TripDuration.half_day:
        close_min = open_min + (close_min - open_min) // 2
    return ParkWindow(park_id=schedule.park_id, open=open_min, close=close_min)


def _covers(curve: list[WaitPoint], start: int, end: int) -> bool:
    first = to_minutes(curve[0].time_slot)
    last = to_minutes(curve[-1].time_slot)
    return first <= start + CURVE_COVERAGE_TOLERANCE and last >= end - CURVE_COVERAGE_TOLERANCE


def _clean_curve(points: list[WaitPoint]) -> list[WaitPoint]:
    """Sort by time; a repeated time slot keeps its last reading."""
    by_slot = {p.time_slot: p for p in points}
    return [by_slot[slot] for slot in sorted(by_slot)]


def _select_anchors(
    plan_input: PlanInput,
    snapshot: PlanningSnapshot,
    days: list[PlanDay],
    errors: list[FieldError],
) -> None:
    """Bind each requested show to its earliest occurrence on a visited park day."""
    requested = [r.anchor_id for r in plan_input.entertainment]
    duplicates = sorted({a for a in requested if requested.count(a) > 1})
    if duplicates:
        errors.append(
            FieldError("entertainment", f"requested more than once: {', '.join(duplicates)}")
        )

    seen: set[str] = set()
    for position, request in enumerate(plan_input.entertainment):
        if request.anchor_id in seen:
            continue
        seen.add(request.anchor_id)
        occurrences: list[tuple[date, int, int, Anchor]] = []
        for day_index, day in enumerate(days):
            if not day.windows:
                continue
            for anchor in snapshot.entertainment:
                if anchor.id != request.anchor_id:
                    continue
                if anchor.date is not None and anchor.date != day.date:
                    continue
                if anchor.park_id is not None and anchor.park_id not in day.windows:
                    continue
                occurrences.append((day.date, to_minutes(anchor.start), day_index, anchor))

        if not occurrences:
            errors.append(
                FieldError(
                    "entertainment",
                    f"{request.anchor_id} is not offered in any visited park on the trip dates",
                )
            )
            continue

        occurrences.sort(key=lambda o: (o[0], o[1]))
        _, _, day_index, anchor = occurrences[0]
        day = days[day_index]
        selected = anchor.model_copy(update={"priority": request.priority, "date": day.date})

        if selected.is_must_see:
            window = day.windows.get(selected.park_id) if selected.park_id else None
            lo = window.open if window else day.open
            hi = window.close if window else day.close
            if to_minutes(selected.start) < lo or to_minutes(selected.end) > hi:
                errors.append(
                    FieldError(
                        "entertainment",
                        f"{selected.name} at {format_clock(to_minutes(selected.start))} "
                        "falls outside park hours",
                    )
                )
                continue
        day.anchors.append(selected)
        logger.debug("Bound %s (request %d) to %s", selected.id, position, day.date)


def _check_must_see_overlaps(days: list[PlanDay], errors: list[FieldError]) -> None:
    for day in days:
        must_see = [a for a in day.anchors if a.priority == AnchorPriority.must_see]
        for i, first in enumerate(must_see):
            for second in must_see[i + 1 :]:
                if first.start < second.end and second.start < first.end:
                    errors.append(
                        FieldError(
                            "entertainment",
                            f"must-see {first.name} and {second.name} overlap on {day.date}",
                        )
                    )


def _check_hop_ordering(
    days: list[PlanDay],
    reference: ReferenceData,
    settings: Settings,
    errors: list[FieldError],
) -> None:
    """Shows in both parks must leave room for a single hop between them."""
    for day in days:
        if not day.hopping:
            continue
        first_park, second_park = day.park_ids[0], day.park_ids[1]
        first_ends = [to_minutes(a.end) for a in day.anchors if a.park_id == first_park]
        second_starts = [to_minutes(a.start) for a in day.anchors if a.park_id == second_park]
        if not first_ends or not second_starts:
            continue
        travel = reference.transition_minutes(first_park, second_park)
        if max(first_ends) + travel + settings.hop_entry_minutes > min(second_starts):
            errors.append(
                FieldError(
                    "entertainment",
                    f"shows in {first_park} and {second_park} on {day.date} "
                    "cannot be ordered around a single park hop",
                )
            )


def _bind_rides(
    day: PlanDay,
    wishlist: list[str],
    catalogue: dict[str, RideInfo],
    snapshot: PlanningSnapshot,
    plan_input: PlanInput,
    settings: Settings,
) -> None:
    curves: dict[str, list[WaitPoint]] = {
        c.ride_id: _clean_curve(c.points) for c in snapshot.wait_curves if c.date == day.date
    }
    optional = set(plan_input.optional_ride_ids)

    for ride_id in wishlist:
        info = catalogue.get(ride_id)
        if info is None or info.park_id not in day.windows:
            continue
        window = day.windows[info.park_id]
        curve = curves.get(ride_id)
        estimated = False

        if not curve or not _covers(curve, window.open, window.close):
            estimated = True
            park_curves = {
                rid: points
                for rid, points in curves.items()
                if rid in catalogue
                and catalogue[rid].park_id == info.park_id
                and _covers(points, window.open, window.close)
            }
            same_category = [
                points
                for rid, points in park_curves.items()
                if catalogue[rid].category == info.category
            ]
            median = median_of_means(same_category, window.open, window.close)
            if median is None:
                median = median_of_means(list(park_curves.values()), window.open, window.close)
            if median is None:
                median = settings.default_wait_minutes
            curve = flat_curve(median, window.open, window.close)
            logger.info(
                "Substituted category-median curve",
                extra={
                    "structured": {
                        "ride_id": ride_id,
                        "date": day.date.isoformat(),
                        "median_wait": median,
                    }
                },
            )

        day.rides[ride_id] = RideSelection(
            **info.model_dump(),
            priority_weight=plan_input.priority_weights.get(ride_id, 1.0),
            mandatory=ride_id not in optional,
            estimated=estimated,
            wait_curve=curve,
        )


def normalize_request(
    plan_input: PlanInput,
    snapshot: PlanningSnapshot,
    reference: ReferenceData,
    *,
    today: date,
    settings: Settings,
) -> NormalizedRequest:
    """Validate a request against snapshot and reference data.

    Args:
        plan_input: Visitor request
        snapshot: Pre-fetched predictions, hours and entertainment
        reference: Immutable resort and walking tables
        today: Reference date for the "not in the past" rule
        settings: Engine tunables

    Returns:
        NormalizedRequest with one PlanDay per visit date

    Raises:
        ValidationError: Naming every offending field
    """
    errors: list[FieldError] = []
    catalogue = {r.id: r for r in snapshot.rides}

    dates = _validate_dates(plan_input, today, errors)
    park_ids = _validate_parks(plan_input, reference, len(dates), settings, errors)
    wishlist = _validate_rides(plan_input, catalogue, park_ids, errors)

    if errors:
        raise ValidationError(errors)

    schedules = {(s.park_id, s.date): s for s in snapshot.park_days}
    hopping = plan_input.park_hopping

    days: list[PlanDay] = []
    for index, day_date in enumerate(dates):
        visiting = park_ids[:2] if hopping else [park_ids[index % len(park_ids)]]
        windows: dict[str, ParkWindow] = {}
        closed: list[str] = []
        for park_id in visiting:
            schedule = schedules.get((park_id, day_date))
            if schedule is None:
                closed.append(park_id)
                continue
            windows[park_id] = _park_window(schedule, plan_input)
        open_parks = [p for p in visiting if p in windows]
        days.append(PlanDay(date=day_date, park_ids=open_parks, windows=windows, closed_parks=closed))

    _select_anchors(plan_input, snapshot, days, errors)
    _check_must_see_overlaps(days, errors)
    _check_hop_ordering(days, reference, settings, errors)

    if errors:
        raise ValidationError(errors)

    for day in days:
        _bind_rides(day, wishlist, catalogue, snapshot, plan_input, settings)

    return NormalizedRequest(
        plan_input=plan_input,
        days=days,
        wishlist=wishlist,
        ride_info={r: catalogue[r] for r in wishlist},
    )
