"""Itinerary assembler - turns committed placements into the final plan."""

import logging
from datetime import date

from backend.parkplan.config import Settings
from backend.parkplan.models.common import AnchorType, ItemKind, PlacementPhase, UnscheduledReason
from backend.parkplan.models.itinerary import (
    Alternative,
    Itinerary,
    ItineraryItem,
    TripPlan,
    UnscheduledRide,
    WaitComparison,
)
from backend.parkplan.models.ride import RideInfo, RideSelection
from backend.parkplan.scheduling.curves import mean_wait, min_wait
from backend.parkplan.scheduling.errors import InvariantViolationError
from backend.parkplan.scheduling.timeline import DayTimeline, Placement
from backend.parkplan.utils.timeutils import from_minutes

logger = logging.getLogger(__name__)

UNSCHEDULED_DETAIL = {
    UnscheduledReason.insufficient_time: "No free window long enough before the park closes",
    UnscheduledReason.park_closed: "The ride's park is not open during the planned visit",
}


def _reject(message: str, placement: Placement, settings: Settings) -> None:
    if settings.strict_invariants:
        raise InvariantViolationError(message)
    logger.warning(
        "Dropped invalid placement",
        extra={"structured": {"ref_id": placement.ref_id, "reason": message}},
    )


def _valid_placements(timeline: DayTimeline, settings: Settings) -> list[Placement]:
    """Placements in start order, minus any that break ordering, overlap or hours."""
    kept: list[Placement] = []
    for placement in sorted(timeline.placements, key=lambda p: (p.start, p.end)):
        lo, hi = timeline.window_for(placement.park_id)
        if placement.end < placement.start:
            _reject(f"{placement.ref_id} ends before it starts", placement, settings)
            continue
        if placement.start < lo or placement.end > hi:
            _reject(f"{placement.ref_id} falls outside park hours", placement, settings)
            continue
        if kept and kept[-1].end > placement.start:
            _reject(f"{placement.ref_id} overlaps {kept[-1].ref_id}", placement, settings)
            continue
        kept.append(placement)
    return kept


def _walking(timeline: DayTimeline, previous: Placement | None, current: Placement) -> int:
    if previous is None:
        return 0
    if current.kind == ItemKind.transition:
        return current.travel_minutes
    return timeline.walk(previous.land, current.land)


def _to_item(placement: Placement, walking: int) -> ItineraryItem:
    return ItineraryItem(
        kind=placement.kind,
        ref_id=placement.ref_id,
        name=placement.name,
        park_id=placement.park_id,
        land=placement.land,
        start_time=from_minutes(placement.start),
        end_time=from_minutes(placement.end),
        expected_wait=placement.expected_wait,
        walking_time_from_previous=walking,
        reasoning=placement.reasoning,
        phase=placement.phase,
        is_reride=placement.is_reride,
        estimated=placement.estimated,
        anchor_type=placement.anchor_type,
        anchor_priority=placement.anchor_priority,
    )


def _first_rides(placements: list[Placement]) -> list[Placement]:
    return [p for p in placements if p.kind == ItemKind.ride and not p.is_reride]


def _headliner_stats(timeline: DayTimeline, placements: list[Placement]) -> tuple[int, int]:
    """(headliners placed, headliners placed at their lowest predicted wait)."""
    total = optimal = 0
    for placement in _first_rides(placements):
        ride = timeline.rides.get(placement.ref_id)
        if ride is None or not ride.is_headliner:
            continue
        total += 1
        open_min, close_min = timeline.window_for(ride.park_id)
        if placement.expected_wait <= min_wait(ride.wait_curve, open_min, close_min):
            optimal += 1
    return total, optimal


def compare_to_naive(naive_wait: float, planned_wait: int) -> WaitComparison:
    """Savings of the planned waits over riding everything at its average wait."""
    saved = round(naive_wait - planned_wait)
    percent = round(saved / naive_wait * 100) if naive_wait > 0 else 0
    return WaitComparison(
        naive_wait_time=round(naive_wait),
        planned_wait_time=planned_wait,
        wait_time_saved=max(0, saved),
        percent_improvement=min(100, max(0, percent)),
    )


def _day_comparison(timeline: DayTimeline, placements: list[Placement]) -> WaitComparison | None:
    rides = _first_rides(placements)
    if not rides:
        return None
    naive = 0.0
    for placement in rides:
        ride = timeline.rides.get(placement.ref_id)
        if ride is None:
            naive += placement.expected_wait
            continue
        open_min, close_min = timeline.window_for(ride.park_id)
        naive += mean_wait(ride.wait_curve, open_min, close_min)
    return compare_to_naive(naive, sum(p.expected_wait for p in rides))


def _tips(
    timeline: DayTimeline, placements: list[Placement], total_walking: int, optimal_headliners: int
) -> list[str]:
    tips = list(timeline.tips)

    rope = [p for p in placements if p.phase == PlacementPhase.rope_drop]
    if rope:
        saved = sum(max(int(p.score_components.get("delta", 0)), 0) for p in rope)
        tips.append(
            f"Arrive before opening: rope-dropping {len(rope)} ride(s) saves about {saved} min of waiting"
        )

    if optimal_headliners:
        tips.append(f"{optimal_headliners} headliner(s) are booked at their lowest predicted wait")

    estimated = sorted({p.name for p in placements if p.estimated})
    if estimated:
        tips.append(f"Wait times for {', '.join(estimated)} are estimates from similar rides")

    if total_walking:
        tips.append(f"Expect about {total_walking} min of walking")
    return tips


def _alternatives(timeline: DayTimeline, placements: list[Placement]) -> list[Alternative]:
    """Same-category, same-park substitutes with the lowest mean wait."""
    alternatives: list[Alternative] = []
    seen: set[str] = set()
    for placement in placements:
        if placement.kind != ItemKind.ride or placement.is_reride or placement.ref_id in seen:
            continue
        seen.add(placement.ref_id)
        ride = timeline.rides.get(placement.ref_id)
        if ride is None:
            continue
        open_min, close_min = timeline.window_for(ride.park_id)
        options: list[tuple[float, str, RideSelection]] = [
            (mean_wait(other.wait_curve, open_min, close_min), other.id, other)
            for other in timeline.rides.values()
            if other.id != ride.id and other.park_id == ride.park_id and other.category == ride.category
        ]
        if not options:
            continue
        average, _, substitute = min(options, key=lambda o: (o[0], o[1]))
        alternatives.append(
            Alternative(
                ride_id=ride.id,
                ride_name=ride.name,
                substitute_id=substitute.id,
                substitute_name=substitute.name,
                reason=(
                    f"If {ride.name} is closed, try {substitute.name} "
                    f"({ride.category.value}, ~{round(average)} min average wait)"
                ),
            )
        )
    return alternatives


def assemble_itinerary(timeline: DayTimeline, settings: Settings) -> Itinerary:
    """Build one day's Itinerary from its timeline.

    Raises:
        InvariantViolationError: With strict_invariants, on any invalid placement
    """
    placements = _valid_placements(timeline, settings)

    items: list[ItineraryItem] = []
    previous: Placement | None = None
    for placement in placements:
        items.append(_to_item(placement, _walking(timeline, previous, placement)))
        previous = placement

    total_wait = sum(i.expected_wait for i in items if i.kind == ItemKind.ride)
    total_walking = sum(i.walking_time_from_previous for i in items)
    headliners_total, headliners_at_optimal = _headliner_stats(timeline, placements)
    return Itinerary(
        date=timeline.date,
        park_ids=list(timeline.park_ids),
        items=items,
        total_wait_time=total_wait,
        total_walking_time=total_walking,
        meal_breaks=[i for i in items if i.anchor_type == AnchorType.meal],
        tips=_tips(timeline, placements, total_walking, headliners_at_optimal),
        alternatives=_alternatives(timeline, placements),
        headliners_total=headliners_total,
        headliners_at_optimal=headliners_at_optimal,
        comparison=_day_comparison(timeline, placements),
    )


def closed_day(day_date: date, park_ids: list[str]) -> Itinerary:
    """Itinerary for a day on which none of the planned parks opens."""
    names = ", ".join(park_ids) or "the planned park"
    return Itinerary(
        date=day_date,
        park_ids=list(park_ids),
        items=[],
        tips=[f"{names} is closed on {day_date.isoformat()}"],
    )


def assemble_trip_plan(
    days: list[Itinerary],
    wishlist: list[str],
    ride_info: dict[str, RideInfo],
    unscheduled: dict[str, UnscheduledReason],
) -> TripPlan:
    """Combine day itineraries with trip-level statistics.

    Args:
        days: Itineraries in date order
        wishlist: Requested ride ids in request order
        ride_info: Catalogue entries for wishlist rides
        unscheduled: ride_id -> reason for rides placed nowhere
    """
    day_assignment: dict[str, date] = {}
    rerides = 0
    for day in days:
        for item in day.items:
            if item.kind != ItemKind.ride:
                continue
            if item.is_reride:
                rerides += 1
            else:
                day_assignment.setdefault(item.ref_id, day.date)

    missing = [
        UnscheduledRide(
            ride_id=ride_id,
            name=ride_info[ride_id].name if ride_id in ride_info else ride_id,
            reason=unscheduled[ride_id],
            detail=UNSCHEDULED_DETAIL[unscheduled[ride_id]],
        )
        for ride_id in wishlist
        if ride_id in unscheduled
    ]

    insights = [f"{len(day_assignment)} of {len(wishlist)} wishlist rides scheduled"]
    if len(days) > 1:
        insights.append(f"Rides spread across {len(days)} days")
    if rerides:
        insights.append(f"{rerides} re-ride(s) added in leftover time")

    headliners_total = sum(d.headliners_total for d in days)
    headliners_at_optimal = sum(d.headliners_at_optimal for d in days)
    if headliners_total:
        share = headliners_at_optimal / headliners_total
        if share >= 0.8:
            insights.append("Excellent headliner timing: most are at their lowest predicted wait")
        elif share >= 0.5:
            insights.append("Good headliner timing: over half are at their lowest predicted wait")

    compared = [d.comparison for d in days if d.comparison is not None]
    comparison = None
    if compared:
        comparison = compare_to_naive(
            sum(c.naive_wait_time for c in compared), sum(c.planned_wait_time for c in compared)
        )
        if comparison.wait_time_saved:
            insights.append(
                f"Saves about {comparison.wait_time_saved} min of waiting "
                f"({comparison.percent_improvement}%) versus riding at average times"
            )

    return TripPlan(
        days=days,
        wishlist=list(wishlist),
        day_assignment=day_assignment,
        unscheduled=missing,
        total_wait_time=sum(d.total_wait_time for d in days),
        total_walking_time=sum(d.total_walking_time for d in days),
        rides_scheduled=len(day_assignment),
        rerides_added=rerides,
        headliners_total=headliners_total,
        headliners_at_optimal=headliners_at_optimal,
        comparison=comparison,
        insights=insights,
    )
