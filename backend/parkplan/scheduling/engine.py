"""Trip planning engine - runs every scheduling phase for one request.

Pure and synchronous: all collaborator data arrives in the snapshot and
reference tables, nothing is cached, and intermediate state never leaves
the call.
"""

import time
from datetime import date

from backend.parkplan.config import Settings
from backend.parkplan.models.common import UnscheduledReason
from backend.parkplan.models.itinerary import Itinerary, TripPlan
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.models.request import PlanInput
from backend.parkplan.models.snapshot import PlanningSnapshot
from backend.parkplan.models.violations import Violation
from backend.parkplan.scheduling.anchors import place_anchors
from backend.parkplan.scheduling.assembler import (
    assemble_itinerary,
    assemble_trip_plan,
    closed_day,
)
from backend.parkplan.scheduling.distributor import distribute_rides
from backend.parkplan.scheduling.errors import InvariantViolationError, PlanningError
from backend.parkplan.scheduling.headliners import place_headliners
from backend.parkplan.scheduling.normalizer import NormalizedRequest, PlanDay, normalize_request
from backend.parkplan.scheduling.park_hopper import first_segment, plan_hop, resolve_hop
from backend.parkplan.scheduling.rerides import insert_rerides
from backend.parkplan.scheduling.rope_drop import place_rope_drop
from backend.parkplan.scheduling.slot_scorer import PlacementStrategy, get_strategy
from backend.parkplan.scheduling.timeline import DayTimeline, Segment
from backend.parkplan.verification.invariants import verify_trip_plan


# Metrics interface (implemented by utils.metrics.PrometheusPlanMetrics)
class PlanMetrics:
    """Interface for planning metrics."""

    def record_latency(self, outcome: str, latency_ms: float) -> None:
        """Record end-to-end planning latency."""
        pass

    def inc_unscheduled(self, reason: str, count: int = 1) -> None:
        """Count wishlist rides left out of a plan."""
        pass

    def inc_estimated_curves(self, count: int = 1) -> None:
        """Count substituted wait curves."""
        pass

    def inc_invariant_violation(self, kind: str) -> None:
        """Count internal invariant violations."""
        pass


# Logging interface (implemented by utils.logging.StructuredPlanLogger)
class PlanLogger:
    """Interface for structured planning logs."""

    def log_phase(self, day: date, phase: str, placed: list[str]) -> None:
        """Log the outcome of one placement phase."""
        pass

    def log_plan(self, outcome: str, latency_ms: float, days: int = 0, unscheduled: int = 0) -> None:
        """Log the outcome of a planning request."""
        pass

    def log_violation(self, violation: Violation) -> None:
        """Log an invariant violation found in a finished plan."""
        pass


class _DayBuilder:
    """Runs the per-day phases against one DayTimeline."""

    def __init__(
        self,
        request: NormalizedRequest,
        reference: ReferenceData,
        settings: Settings,
        strategy: PlacementStrategy,
        plan_logger: PlanLogger,
    ) -> None:
        self._request = request
        self._reference = reference
        self._settings = settings
        self._strategy = strategy
        self._log = plan_logger
        # Rides stranded by a failed hop
        self.hop_blocked: set[str] = set()

    def build(self, day: PlanDay, assigned: list[str]) -> DayTimeline:
        settings = self._settings
        plan_input = self._request.plan_input
        timeline = DayTimeline(
            date=day.date,
            park_ids=list(day.park_ids),
            open=day.open,
            close=day.close,
            effective_close=day.close - settings.park_close_buffer_minutes,
            reference=self._reference,
            rides=dict(day.rides),
            windows={p: (w.open, w.close) for p, w in day.windows.items()},
            rope_drop_ids=[r for r in plan_input.rope_drop_ride_ids if r in assigned],
        )
        for park_id in day.closed_parks:
            timeline.tips.append(f"{park_id} is closed on {day.date.isoformat()}")

        placed = place_anchors(
            timeline,
            day.anchors,
            include_meals=plan_input.include_meal_breaks,
            settings=settings,
        )
        self._log.log_phase(day.date, "anchor", placed)

        if day.hopping:
            hop = plan_hop(timeline, assigned, self._reference, settings)
            segment = first_segment(timeline, hop, settings)
            timeline.segments.append(segment)
            self._fill(timeline, segment, assigned)
            second = resolve_hop(timeline, hop, settings)
            self._log.log_phase(day.date, "transition", [hop.to_park] if second else [])
            if second is None:
                self.hop_blocked.update(
                    r for r in assigned if timeline.rides[r].park_id == hop.to_park
                )
            else:
                self._fill(timeline, second, assigned)
        else:
            park_id = day.park_ids[0]
            window = day.windows[park_id]
            segment = Segment(
                park_id=park_id,
                earliest=window.open,
                latest=window.close - settings.park_close_buffer_minutes,
            )
            timeline.segments.append(segment)
            self._fill(timeline, segment, assigned)
        return timeline

    def _fill(self, timeline: DayTimeline, segment: Segment, assigned: list[str]) -> None:
        settings = self._settings
        at_opening = segment.earliest == timeline.window_for(segment.park_id)[0]
        rope_targets = [
            r for r in timeline.rope_drop_ids if timeline.rides[r].park_id == segment.park_id
        ]
        rope_drop_active = at_opening and bool(rope_targets)

        placed = place_headliners(
            timeline, segment, assigned, settings, rope_drop_active=rope_drop_active
        )
        self._log.log_phase(timeline.date, "headliner", placed)

        if rope_drop_active:
            placed = place_rope_drop(timeline, segment, settings)
            self._log.log_phase(timeline.date, "rope_drop", placed)

        placed = self._strategy.place(
            timeline,
            segment,
            assigned,
            priorities=list(self._request.plan_input.priorities),
            settings=settings,
        )
        self._log.log_phase(timeline.date, "scored", placed)


def _first_visits(timelines: list[DayTimeline | None]) -> dict[str, tuple[int, int]]:
    visits: dict[str, tuple[int, int]] = {}
    for index, timeline in enumerate(timelines):
        if timeline is None:
            continue
        for placement in timeline.ride_placements():
            if placement.ref_id not in visits:
                visits[placement.ref_id] = (index, placement.end)
    return visits


def _plan(
    plan_input: PlanInput,
    snapshot: PlanningSnapshot,
    reference: ReferenceData,
    settings: Settings,
    today: date,
    metrics: PlanMetrics,
    plan_logger: PlanLogger,
) -> TripPlan:
    request = normalize_request(plan_input, snapshot, reference, today=today, settings=settings)
    estimated = {r.id for d in request.days for r in d.rides.values() if r.estimated}
    if estimated:
        metrics.inc_estimated_curves(len(estimated))

    distribution = distribute_rides(request, reference, settings)
    builder = _DayBuilder(
        request, reference, settings, get_strategy(settings.placement_strategy), plan_logger
    )

    timelines: list[DayTimeline | None] = []
    for day in request.days:
        if not day.windows:
            timelines.append(None)
            continue
        timelines.append(builder.build(day, distribution.by_date[day.date]))

    first_visits = _first_visits(timelines)
    mandatory = request.mandatory_ids()
    if plan_input.allow_rerides and all(r in first_visits for r in mandatory):
        for index, timeline in enumerate(timelines):
            if timeline is None:
                continue
            added = insert_rerides(timeline, first_visits, index, request.wishlist, settings)
            plan_logger.log_phase(timeline.date, "reride", added)

    unscheduled: dict[str, UnscheduledReason] = dict(distribution.unscheduled)
    for ride_id in request.wishlist:
        if ride_id in first_visits or ride_id in unscheduled:
            continue
        if ride_id in builder.hop_blocked or not any(ride_id in d.rides for d in request.days):
            unscheduled[ride_id] = UnscheduledReason.park_closed
        else:
            unscheduled[ride_id] = UnscheduledReason.insufficient_time

    itineraries: list[Itinerary] = []
    for day, timeline in zip(request.days, timelines):
        if timeline is None:
            itineraries.append(closed_day(day.date, day.closed_parks))
        else:
            itineraries.append(assemble_itinerary(timeline, settings))

    plan = assemble_trip_plan(itineraries, request.wishlist, request.ride_info, unscheduled)

    must_see = [a for d in request.days for a in d.anchors if a.is_must_see]
    windows = {
        d.date: {p: (w.open, w.close) for p, w in d.windows.items()} for d in request.days
    }
    violations = verify_trip_plan(plan, must_see=must_see, windows=windows, reference=reference)
    for violation in violations:
        metrics.inc_invariant_violation(violation.kind.value)
        plan_logger.log_violation(violation)
    if violations and settings.strict_invariants:
        raise InvariantViolationError(
            "; ".join(f"{v.code}: {v.message}" for v in violations)
        )

    for reason in unscheduled.values():
        metrics.inc_unscheduled(reason.value)
    return plan


def build_trip_plan(
    plan_input: PlanInput,
    snapshot: PlanningSnapshot,
    reference: ReferenceData,
    *,
    settings: Settings,
    today: date,
    metrics: PlanMetrics | None = None,
    plan_logger: PlanLogger | None = None,
) -> TripPlan:
    """Build a TripPlan for one request.

    Args:
        plan_input: Visitor request
        snapshot: Pre-fetched waits, hours and entertainment
        reference: Process-wide resort and walking tables
        settings: Engine tunables
        today: Reference date for rejecting past visit dates
        metrics: Metrics recorder (optional, defaults to no-op)
        plan_logger: Structured logger (optional, defaults to no-op)

    Returns:
        The finished, immutable TripPlan

    Raises:
        ValidationError: Request rejected; names every offending field
        ScheduleConflictError: Must-see anchors collide at placement time
        InvariantViolationError: Only with strict_invariants
    """
    metrics = metrics or PlanMetrics()
    plan_logger = plan_logger or PlanLogger()
    start_time = time.monotonic()

    try:
        plan = _plan(plan_input, snapshot, reference, settings, today, metrics, plan_logger)
    except PlanningError as exc:
        elapsed_ms = (time.monotonic() - start_time) * 1000
        outcome = type(exc).__name__
        metrics.record_latency(outcome, elapsed_ms)
        plan_logger.log_plan(outcome, elapsed_ms)
        raise

    elapsed_ms = (time.monotonic() - start_time) * 1000
    metrics.record_latency("success", elapsed_ms)
    plan_logger.log_plan("success", elapsed_ms, days=len(plan.days), unscheduled=len(plan.unscheduled))
    return plan
