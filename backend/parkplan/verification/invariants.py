"""Verification functions for trip plan invariants."""

from collections import defaultdict
from datetime import date, time

from backend.parkplan.models.common import ItemKind
from backend.parkplan.models.itinerary import Itinerary, TripPlan
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.models.schedule import Anchor
from backend.parkplan.models.violations import Violation, ViolationKind, ViolationSeverity
from backend.parkplan.utils.timeutils import to_minutes


def verify_no_overlap(itinerary: Itinerary) -> list[Violation]:
    """No two items of a day may share time."""
    violations: list[Violation] = []
    items = sorted(itinerary.items, key=lambda i: (i.start_time, i.end_time))
    for current, nxt in zip(items, items[1:]):
        if current.end_time > nxt.start_time:
            violations.append(
                Violation(
                    kind=ViolationKind.OVERLAP,
                    code="ITEM_OVERLAP",
                    message=f"{current.name} runs into {nxt.name}.",
                    severity=ViolationSeverity.BLOCKING,
                    affected_ids=[current.ref_id, nxt.ref_id],
                    details={
                        "date": itinerary.date.isoformat(),
                        "end": current.end_time.isoformat(),
                        "next_start": nxt.start_time.isoformat(),
                    },
                )
            )
    return violations


def verify_ordering(itinerary: Itinerary) -> list[Violation]:
    """Items must be listed by non-decreasing start time."""
    violations: list[Violation] = []
    for current, nxt in zip(itinerary.items, itinerary.items[1:]):
        if nxt.start_time < current.start_time:
            violations.append(
                Violation(
                    kind=ViolationKind.ORDERING,
                    code="ITEMS_OUT_OF_ORDER",
                    message=f"{nxt.name} is listed after {current.name} but starts earlier.",
                    severity=ViolationSeverity.BLOCKING,
                    affected_ids=[current.ref_id, nxt.ref_id],
                    details={"date": itinerary.date.isoformat()},
                )
            )
    return violations


def verify_must_see_anchors(plan: TripPlan, anchors: list[Anchor]) -> list[Violation]:
    """Every must-see anchor appears exactly once, at its fixed start.

    Args:
        plan: Produced trip plan
        anchors: Must-see anchors bound to trip dates

    Returns:
        One violation per missing, duplicated or moved anchor
    """
    violations: list[Violation] = []
    for anchor in anchors:
        occurrences = [
            (day.date, item)
            for day in plan.days
            for item in day.items
            if item.kind == ItemKind.anchor and item.ref_id == anchor.id
        ]
        if len(occurrences) != 1:
            violations.append(
                Violation(
                    kind=ViolationKind.ANCHOR,
                    code="MUST_SEE_MISSING" if not occurrences else "MUST_SEE_DUPLICATED",
                    message=f"Must-see {anchor.name} appears {len(occurrences)} times.",
                    severity=ViolationSeverity.BLOCKING,
                    affected_ids=[anchor.id],
                    details={"count": len(occurrences)},
                )
            )
            continue

        day_date, item = occurrences[0]
        if item.start_time != anchor.start or (anchor.date is not None and day_date != anchor.date):
            violations.append(
                Violation(
                    kind=ViolationKind.ANCHOR,
                    code="MUST_SEE_MOVED",
                    message=f"Must-see {anchor.name} is not at its fixed time.",
                    severity=ViolationSeverity.BLOCKING,
                    affected_ids=[anchor.id],
                    details={
                        "expected": anchor.start.isoformat(),
                        "actual": item.start_time.isoformat(),
                    },
                )
            )
    return violations


def verify_reride_order(plan: TripPlan) -> list[Violation]:
    """A first visit precedes every re-ride of the same ride."""
    violations: list[Violation] = []
    first_visit: dict[str, tuple[date, time]] = {}
    for day in plan.days:
        for item in day.items:
            if item.kind != ItemKind.ride:
                continue
            if not item.is_reride:
                first_visit.setdefault(item.ref_id, (day.date, item.end_time))
                continue
            first = first_visit.get(item.ref_id)
            if first is None or first > (day.date, item.start_time):
                violations.append(
                    Violation(
                        kind=ViolationKind.RERIDE,
                        code="RERIDE_BEFORE_FIRST_VISIT",
                        message=f"Re-ride of {item.name} comes before its first visit.",
                        severity=ViolationSeverity.BLOCKING,
                        affected_ids=[item.ref_id],
                        details={"date": day.date.isoformat()},
                    )
                )
    return violations


def verify_hours(itinerary: Itinerary, windows: dict[str, tuple[int, int]]) -> list[Violation]:
    """Every item lies within its park's [open, close] window.

    Args:
        itinerary: One day
        windows: park_id -> (open, close) minutes, close already extended if requested
    """
    if not windows:
        return []
    day_open = min(w[0] for w in windows.values())
    day_close = max(w[1] for w in windows.values())

    violations: list[Violation] = []
    for item in itinerary.items:
        lo, hi = windows.get(item.park_id or "", (day_open, day_close))
        start, end = to_minutes(item.start_time), to_minutes(item.end_time)
        if start < lo or end > hi:
            violations.append(
                Violation(
                    kind=ViolationKind.HOURS,
                    code="OUTSIDE_PARK_HOURS",
                    message=f"{item.name} falls outside park hours.",
                    severity=ViolationSeverity.BLOCKING,
                    affected_ids=[item.ref_id],
                    details={"date": itinerary.date.isoformat(), "park_id": item.park_id},
                )
            )
    return violations


def verify_transitions(itinerary: Itinerary, reference: ReferenceData) -> list[Violation]:
    """A park hop starts no earlier than the previous item's end plus transfer time."""
    violations: list[Violation] = []
    for index, item in enumerate(itinerary.items):
        if item.kind != ItemKind.transition or index == 0:
            continue
        previous = itinerary.items[index - 1]
        from_park = next(
            (
                p.park_id
                for p in reversed(itinerary.items[:index])
                if p.park_id is not None and p.park_id != item.park_id
            ),
            None,
        )
        if from_park is None or item.park_id is None:
            continue
        travel = reference.transition_minutes(from_park, item.park_id)
        gap = to_minutes(item.start_time) - to_minutes(previous.end_time)
        if gap < travel:
            violations.append(
                Violation(
                    kind=ViolationKind.TRANSITION,
                    code="HOP_TOO_EARLY",
                    message=f"Hop to {item.park_id} leaves only {gap} of {travel} transfer minutes.",
                    severity=ViolationSeverity.BLOCKING,
                    affected_ids=[previous.ref_id, item.ref_id],
                    details={"gap": gap, "required": travel},
                )
            )
    return violations


def verify_trip_plan(
    plan: TripPlan,
    *,
    must_see: list[Anchor],
    windows: dict[date, dict[str, tuple[int, int]]],
    reference: ReferenceData,
) -> list[Violation]:
    """Run every plan-level check and collect the violations."""
    violations: list[Violation] = []
    for day in plan.days:
        violations.extend(verify_no_overlap(day))
        violations.extend(verify_ordering(day))
        violations.extend(verify_hours(day, windows.get(day.date, {})))
        violations.extend(verify_transitions(day, reference))
    violations.extend(verify_must_see_anchors(plan, must_see))
    violations.extend(verify_reride_order(plan))
    return violations


def group_by_kind(violations: list[Violation]) -> dict[ViolationKind, list[Violation]]:
    grouped: dict[ViolationKind, list[Violation]] = defaultdict(list)
    for violation in violations:
        grouped[violation.kind].append(violation)
    return dict(grouped)
