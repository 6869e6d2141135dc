"""Anchor placer - reserves fixed-time shows, parades and meal breaks.

Must-see anchors are hard constraints: a second must-see overlapping the
first raises ScheduleConflictError. Advisory anchors never displace an
anchor that is already on the timeline; the later one is skipped and the
skip is reported as a tip.
"""

import logging
from dataclasses import dataclass

from backend.parkplan.config import Settings
from backend.parkplan.models.common import AnchorPriority, AnchorType, ItemKind, PlacementPhase
from backend.parkplan.models.schedule import Anchor
from backend.parkplan.scheduling.errors import ScheduleConflictError
from backend.parkplan.scheduling.timeline import DayTimeline, Placement
from backend.parkplan.utils.timeutils import format_clock, from_minutes, to_minutes

logger = logging.getLogger(__name__)

MEAL_SEARCH_STEP = 5


@dataclass(frozen=True)
class MealWindow:
    """Acceptable window for a meal break (minutes since midnight)."""

    anchor_id: str
    name: str
    earliest: int
    latest: int
    preferred: int


LUNCH = MealWindow("meal-lunch", "Lunch", 11 * 60 + 30, 13 * 60 + 30, 12 * 60 + 30)
DINNER = MealWindow("meal-dinner", "Dinner", 17 * 60, 19 * 60, 18 * 60)


def _overlapping(timeline: DayTimeline, start: int, end: int) -> Placement | None:
    for p in timeline.placements:
        if p.start < end and start < p.end:
            return p
    return None


def _anchor_placement(anchor: Anchor, start: int, end: int, reasoning: str) -> Placement:
    return Placement(
        kind=ItemKind.anchor,
        ref_id=anchor.id,
        name=anchor.name,
        start=start,
        end=end,
        phase=PlacementPhase.anchor,
        park_id=anchor.park_id,
        land=anchor.land,
        reasoning=reasoning,
        anchor_type=anchor.type,
        anchor_priority=anchor.priority,
    )


def _reasoning(anchor: Anchor) -> str:
    label = anchor.type.value
    if anchor.priority == AnchorPriority.must_see:
        return f"Must-see {label} at its fixed time"
    return f"Recommended {label} at its scheduled time"


def place_entertainment(timeline: DayTimeline, anchors: list[Anchor]) -> list[str]:
    """Place requested entertainment; must-see first, then advisory in request order.

    Returns:
        Ids of anchors that were placed

    Raises:
        ScheduleConflictError: Two must-see anchors claim the same time
    """
    placed: list[str] = []
    must_see = [a for a in anchors if a.priority == AnchorPriority.must_see]
    advisory = [a for a in anchors if a.priority != AnchorPriority.must_see]

    for anchor in must_see + advisory:
        start, end = to_minutes(anchor.start), to_minutes(anchor.end)
        lo, hi = timeline.window_for(anchor.park_id)
        if start < lo or end > hi:
            if anchor.is_must_see:
                raise ScheduleConflictError(
                    f"must-see {anchor.name} at {format_clock(start)} is outside park hours"
                )
            timeline.tips.append(
                f"{anchor.name} at {format_clock(start)} falls outside park hours and was skipped"
            )
            continue

        clash = _overlapping(timeline, start, end)
        if clash is not None:
            if anchor.is_must_see:
                raise ScheduleConflictError(
                    f"must-see {anchor.name} overlaps {clash.name} at {format_clock(start)}"
                )
            timeline.tips.append(
                f"Skipped {anchor.name} at {format_clock(start)} because it overlaps {clash.name}"
            )
            logger.info(
                "Advisory anchor skipped",
                extra={
                    "structured": {
                        "anchor_id": anchor.id,
                        "conflicts_with": clash.ref_id,
                        "date": timeline.date.isoformat(),
                    }
                },
            )
            continue

        timeline.add(_anchor_placement(anchor, start, end, _reasoning(anchor)))
        placed.append(anchor.id)
    return placed


def place_meal(timeline: DayTimeline, meal: MealWindow, duration: int) -> bool:
    """Place a meal at the free start nearest its preferred time.

    Returns:
        True if the meal was placed
    """
    lo = max(meal.earliest, timeline.open)
    hi = min(meal.latest, timeline.close)
    if hi - lo < duration:
        return False

    best: int | None = None
    for start in range(lo, hi - duration + 1, MEAL_SEARCH_STEP):
        if not timeline.is_free(start, start + duration):
            continue
        if best is None or abs(start - meal.preferred) < abs(best - meal.preferred):
            best = start

    if best is None:
        timeline.tips.append(f"No free window for {meal.name.lower()}; plan a quick snack instead")
        return False

    anchor = Anchor(
        id=meal.anchor_id,
        name=meal.name,
        type=AnchorType.meal,
        start=from_minutes(best),
        end=from_minutes(best + duration),
        priority=AnchorPriority.recommended,
    )
    timeline.add(_anchor_placement(anchor, best, best + duration, f"{meal.name} break"))
    return True


def place_anchors(
    timeline: DayTimeline,
    anchors: list[Anchor],
    *,
    include_meals: bool,
    settings: Settings,
) -> list[str]:
    """Reserve every fixed-time block for one day.

    Args:
        timeline: Day being built
        anchors: Entertainment selected for this day
        include_meals: Also reserve lunch and dinner
        settings: Provides meal duration

    Returns:
        Ids of all anchors placed, meals included
    """
    placed = place_entertainment(timeline, anchors)
    if include_meals:
        for meal in (LUNCH, DINNER):
            if place_meal(timeline, meal, settings.meal_duration_minutes):
                placed.append(meal.anchor_id)
    return placed
