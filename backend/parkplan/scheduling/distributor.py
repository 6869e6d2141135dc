"""Multi-day distributor - partitions the wishlist across trip days.

Rides are assigned with a cost estimate (duration + mean wait + a same-land
walk) against each day's capacity (window minus close buffer minus anchor
time). Headliners are spread so that no day takes more than
`headliner_cap_per_day` until a second pass relaxes the cap.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date

from backend.parkplan.config import Settings
from backend.parkplan.models.common import UnscheduledReason
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.models.ride import RideSelection
from backend.parkplan.scheduling.curves import curve_spread, mean_wait
from backend.parkplan.scheduling.normalizer import NormalizedRequest, PlanDay
from backend.parkplan.utils.timeutils import to_minutes

logger = logging.getLogger(__name__)


@dataclass
class DayBudget:
    """Remaining capacity of one trip day during assignment."""

    index: int
    day: PlanDay
    capacity: float
    load: float = 0.0
    headliners: int = 0
    categories: Counter = field(default_factory=Counter)
    ride_ids: list[str] = field(default_factory=list)

    @property
    def remaining(self) -> float:
        return self.capacity - self.load


@dataclass
class Distribution:
    """Ride ids per day plus rides that fit nowhere."""

    by_date: dict[date, list[str]]
    unscheduled: list[tuple[str, UnscheduledReason]] = field(default_factory=list)
    distributed: bool = False


def ride_cost(ride: RideSelection, day: PlanDay, reference: ReferenceData) -> float:
    """Estimated minutes a ride consumes on a given day."""
    window = day.windows[ride.park_id]
    return (
        ride.duration_minutes
        + mean_wait(ride.wait_curve, window.open, window.close)
        + reference.walking.same_land_minutes
    )


def day_capacity(day: PlanDay, settings: Settings, include_meals: bool) -> float:
    """Schedulable minutes for rides on one day."""
    if not day.windows:
        return 0.0
    window = day.close - day.open
    anchors = sum(to_minutes(a.end) - to_minutes(a.start) for a in day.anchors)
    if include_meals:
        anchors += 2 * settings.meal_duration_minutes
    if day.hopping:
        window -= settings.hop_entry_minutes
    return max(0.0, float(window - settings.park_close_buffer_minutes - anchors))


def _distribution_order(request: NormalizedRequest) -> list[tuple[str, RideSelection]]:
    """Headliners first (widest spread first), then weight desc, then id."""
    entries: list[tuple[tuple, str, RideSelection]] = []
    for ride_id in request.wishlist:
        ride = next((d.rides[ride_id] for d in request.days if ride_id in d.rides), None)
        if ride is None:
            continue
        day = next(d for d in request.days if ride_id in d.rides)
        window = day.windows[ride.park_id]
        spread = curve_spread(ride.wait_curve, window.open, window.close)
        if ride.is_headliner:
            key = (0, -spread, 0.0, ride_id)
        else:
            key = (1, 0, -ride.priority_weight, ride_id)
        entries.append((key, ride_id, ride))
    entries.sort(key=lambda e: e[0])
    return [(ride_id, ride) for _, ride_id, ride in entries]


def _fits_first_day(request: NormalizedRequest, reference: ReferenceData, settings: Settings) -> bool:
    first = request.days[0]
    include_meals = request.plan_input.include_meal_breaks
    total = 0.0
    for ride_id in request.wishlist:
        ride = first.rides.get(ride_id)
        if ride is None:
            if any(ride_id in d.rides for d in request.days[1:]):
                return False
            continue
        total += ride_cost(ride, first, reference)
    return total <= day_capacity(first, settings, include_meals)


def distribute_rides(
    request: NormalizedRequest,
    reference: ReferenceData,
    settings: Settings,
) -> Distribution:
    """Assign each wishlist ride to one trip day.

    Args:
        request: Normalized request with per-day ride selections
        reference: Walking table for the cost estimate
        settings: Headliner cap, close buffer, meal duration

    Returns:
        Distribution mapping dates to ride ids in wishlist order
    """
    by_date: dict[date, list[str]] = {d.date: [] for d in request.days}
    unscheduled: list[tuple[str, UnscheduledReason]] = []

    # Rides no trip day can open
    schedulable = []
    for ride_id in request.wishlist:
        if any(ride_id in d.rides for d in request.days):
            schedulable.append(ride_id)
        else:
            unscheduled.append((ride_id, UnscheduledReason.park_closed))

    if len(request.days) == 1 or _fits_first_day(request, reference, settings):
        first = request.days[0]
        for ride_id in schedulable:
            if ride_id in first.rides:
                by_date[first.date].append(ride_id)
            else:
                unscheduled.append((ride_id, UnscheduledReason.park_closed))
        return Distribution(by_date=by_date, unscheduled=unscheduled)

    include_meals = request.plan_input.include_meal_breaks
    budgets = [
        DayBudget(index=i, day=d, capacity=day_capacity(d, settings, include_meals))
        for i, d in enumerate(request.days)
    ]
    num_days = len(budgets)

    def try_assign(position: int, ride_id: str, ride: RideSelection, cap_headliners: bool) -> bool:
        eligible = []
        for budget in budgets:
            if ride_id not in budget.day.rides:
                continue
            cost = ride_cost(budget.day.rides[ride_id], budget.day, reference)
            if budget.remaining < cost:
                continue
            if cap_headliners and ride.is_headliner and budget.headliners >= settings.headliner_cap_per_day:
                continue
            rotation = (budget.index - position) % num_days
            key = (budget.categories[ride.category], budget.load, rotation)
            eligible.append((key, budget, cost))
        if not eligible:
            return False
        _, budget, cost = min(eligible, key=lambda e: e[0])
        budget.load += cost
        budget.categories[ride.category] += 1
        if ride.is_headliner:
            budget.headliners += 1
        budget.ride_ids.append(ride_id)
        return True

    leftovers: list[tuple[int, str, RideSelection]] = []
    for position, (ride_id, ride) in enumerate(_distribution_order(request)):
        if not try_assign(position, ride_id, ride, cap_headliners=True):
            leftovers.append((position, ride_id, ride))

    for position, ride_id, ride in leftovers:
        if not try_assign(position, ride_id, ride, cap_headliners=False):
            unscheduled.append((ride_id, UnscheduledReason.insufficient_time))

    order = {ride_id: i for i, ride_id in enumerate(request.wishlist)}
    for budget in budgets:
        by_date[budget.day.date] = sorted(budget.ride_ids, key=order.__getitem__)
        logger.info(
            "Distributed rides to day",
            extra={
                "structured": {
                    "date": budget.day.date.isoformat(),
                    "rides": len(budget.ride_ids),
                    "load": round(budget.load, 1),
                    "capacity": round(budget.capacity, 1),
                    "headliners": budget.headliners,
                }
            },
        )
    return Distribution(by_date=by_date, unscheduled=unscheduled, distributed=True)
