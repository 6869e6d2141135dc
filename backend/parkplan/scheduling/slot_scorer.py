"""Slot scorer - multi-factor scoring and gap filling for remaining rides.

score = w_wait * wait + w_walk * walk - w_priority * priority_match
        + w_time_of_day * penalty

Lower is better. The greedy strategy repeatedly commits the globally
minimal (score, start, ride_id) candidate; local search follows greedy
with bounded adjacent-swap improvements.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from backend.parkplan.config import Settings
from backend.parkplan.models.common import ItemKind, PlacementPhase, RideCategory
from backend.parkplan.models.ride import RideSelection
from backend.parkplan.scheduling.curves import max_wait, min_wait, wait_at
from backend.parkplan.scheduling.timeline import DayTimeline, Placement, Segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotScore:
    """Score of one (ride, start) candidate with its components."""

    total: float
    wait: int
    walk: int
    priority_match: float
    time_penalty: float

    def dominant_factor(self, settings: Settings) -> str:
        weighted = {
            "wait": settings.w_wait * self.wait,
            "walk": settings.w_walk * self.walk,
            "priority": settings.w_priority * self.priority_match,
            "time_of_day": settings.w_time_of_day * self.time_penalty,
        }
        return max(weighted, key=lambda k: (weighted[k], k))

    def as_dict(self) -> dict[str, float]:
        return {
            "total": round(self.total, 3),
            "wait": self.wait,
            "walk": self.walk,
            "priority_match": round(self.priority_match, 3),
            "time_penalty": round(self.time_penalty, 3),
        }


def priority_match(ride: RideSelection, priorities: list[RideCategory]) -> float:
    """User weight, doubled when the ride's category is a stated priority."""
    multiplier = 2 if ride.category in priorities else 1
    return ride.priority_weight * 10 * multiplier


def time_of_day_penalty(ride: RideSelection, wait: int, open_min: int, close_min: int) -> float:
    """0 at the ride's best time, 10 at its worst; 0 for flat curves."""
    low = min_wait(ride.wait_curve, open_min, close_min)
    high = max_wait(ride.wait_curve, open_min, close_min)
    if high == low:
        return 0.0
    return 10 * (wait - low) / (high - low)


def score_slot(
    ride: RideSelection,
    start: int,
    walk: int,
    priorities: list[RideCategory],
    settings: Settings,
    window: tuple[int, int],
) -> SlotScore:
    """Score placing `ride` at `start` after walking `walk` minutes."""
    wait = wait_at(ride.wait_curve, start)
    match = priority_match(ride, priorities)
    penalty = time_of_day_penalty(ride, wait, window[0], window[1])
    total = (
        settings.w_wait * wait
        + settings.w_walk * walk
        - settings.w_priority * match
        + settings.w_time_of_day * penalty
    )
    return SlotScore(total=total, wait=wait, walk=walk, priority_match=match, time_penalty=penalty)


_REASONS = {
    "wait": "Short predicted wait",
    "walk": "Placed to keep walking short",
    "priority": "Matches your priorities",
    "time_of_day": "Best remaining time of day",
}


def _reasoning(score: SlotScore, settings: Settings) -> str:
    factor = score.dominant_factor(settings)
    detail = f"~{score.wait} min wait, {score.walk} min walk"
    return f"{_REASONS[factor]} ({detail})"


def _scored_placement(ride: RideSelection, start: int, score: SlotScore, settings: Settings) -> Placement:
    return Placement(
        kind=ItemKind.ride,
        ref_id=ride.id,
        name=ride.name,
        start=start,
        end=start + score.wait + ride.duration_minutes,
        phase=PlacementPhase.scored,
        park_id=ride.park_id,
        land=ride.land,
        expected_wait=score.wait,
        reasoning=_reasoning(score, settings),
        estimated=ride.estimated,
        score_components=score.as_dict(),
    )


class PlacementStrategy(Protocol):
    """Fills a segment's free time with the given rides."""

    name: str

    def place(
        self,
        timeline: DayTimeline,
        segment: Segment,
        ride_ids: list[str],
        *,
        priorities: list[RideCategory],
        settings: Settings,
    ) -> list[str]:
        ...


class GreedyPlacement:
    """Commit the globally best (score, start, ride_id) candidate until nothing fits."""

    name = "greedy"

    def best_candidate(
        self,
        timeline: DayTimeline,
        segment: Segment,
        rides: list[RideSelection],
        priorities: list[RideCategory],
        settings: Settings,
    ) -> tuple[SlotScore, int, RideSelection] | None:
        window = timeline.window_for(segment.park_id)
        best: tuple[float, int, str] | None = None
        chosen: tuple[SlotScore, int, RideSelection] | None = None
        for ride in rides:
            starts = timeline.candidate_starts(
                segment.earliest, segment.latest, ride.land, settings.slot_minutes
            )
            for start in starts:
                wait = wait_at(ride.wait_curve, start)
                end = start + wait + ride.duration_minutes
                walk = timeline.can_place(start, end, ride.land, segment.earliest, segment.latest)
                if walk is None:
                    continue
                score = score_slot(ride, start, walk, priorities, settings, window)
                key = (score.total, start, ride.id)
                if best is None or key < best:
                    best = key
                    chosen = (score, start, ride)
        return chosen

    def place(
        self,
        timeline: DayTimeline,
        segment: Segment,
        ride_ids: list[str],
        *,
        priorities: list[RideCategory],
        settings: Settings,
    ) -> list[str]:
        placed_ids = {p.ref_id for p in timeline.ride_placements()}
        remaining = [
            timeline.rides[r]
            for r in ride_ids
            if r in timeline.rides
            and timeline.rides[r].park_id == segment.park_id
            and r not in placed_ids
        ]

        placed: list[str] = []
        while remaining:
            candidate = self.best_candidate(timeline, segment, remaining, priorities, settings)
            if candidate is None:
                break
            score, start, ride = candidate
            timeline.add(_scored_placement(ride, start, score, settings))
            placed.append(ride.id)
            remaining = [r for r in remaining if r.id != ride.id]
        return placed


class LocalSearchPlacement(GreedyPlacement):
    """Greedy followed by bounded adjacent-swap improvement passes."""

    name = "local-search"

    def place(
        self,
        timeline: DayTimeline,
        segment: Segment,
        ride_ids: list[str],
        *,
        priorities: list[RideCategory],
        settings: Settings,
    ) -> list[str]:
        placed = super().place(
            timeline, segment, ride_ids, priorities=priorities, settings=settings
        )
        for pass_number in range(settings.local_search_max_passes):
            swaps = self._improve_once(timeline, segment, settings)
            logger.debug("Local search pass %d made %d swaps", pass_number + 1, swaps)
            if swaps == 0:
                break
        return placed

    def _pair_cost(self, timeline: DayTimeline, first: Placement, second: Placement) -> int:
        """Wait plus walking for two back-to-back placements, including the walk out."""
        cost = first.expected_wait + second.expected_wait
        cost += timeline.walk_in(first.start, first.land)
        cost += timeline.walk(first.land, second.land)
        nxt = timeline.following(second.end)
        if nxt is not None:
            cost += timeline.walk(second.land, nxt.land)
        return cost

    def _improve_once(self, timeline: DayTimeline, segment: Segment, settings: Settings) -> int:
        swaps = 0
        index = 0
        while index < len(timeline.placements) - 1:
            first = timeline.placements[index]
            second = timeline.placements[index + 1]
            if (
                first.phase != PlacementPhase.scored
                or second.phase != PlacementPhase.scored
                or first.park_id != segment.park_id
                or second.park_id != segment.park_id
            ):
                index += 1
                continue

            old_cost = self._pair_cost(timeline, first, second)
            swapped = self._try_swap(timeline, segment, first, second, settings)
            if swapped is None:
                index += 1
                continue

            new_first, new_second = swapped
            if self._pair_cost(timeline, new_first, new_second) < old_cost:
                swaps += 1
            else:
                timeline.remove(new_first)
                timeline.remove(new_second)
                timeline.add(first)
                timeline.add(second)
            index += 1
        return swaps

    def _try_swap(
        self,
        timeline: DayTimeline,
        segment: Segment,
        first: Placement,
        second: Placement,
        settings: Settings,
    ) -> tuple[Placement, Placement] | None:
        ride_a = timeline.rides[first.ref_id]
        ride_b = timeline.rides[second.ref_id]
        timeline.remove(first)
        timeline.remove(second)

        start_b = first.start
        wait_b = wait_at(ride_b.wait_curve, start_b)
        end_b = start_b + wait_b + ride_b.duration_minutes
        walk_b = timeline.can_place(start_b, end_b, ride_b.land, segment.earliest, segment.latest)

        moved: tuple[Placement, Placement] | None = None
        if walk_b is not None:
            start_a = end_b + timeline.walk(ride_b.land, ride_a.land)
            wait_a = wait_at(ride_a.wait_curve, start_a)
            end_a = start_a + wait_a + ride_a.duration_minutes
            if timeline.is_free(start_b, end_b):
                new_b = _swapped_copy(second, start_b, end_b, wait_b)
                timeline.add(new_b)
                walk_a = timeline.can_place(start_a, end_a, ride_a.land, segment.earliest, segment.latest)
                if walk_a is not None:
                    new_a = _swapped_copy(first, start_a, end_a, wait_a)
                    timeline.add(new_a)
                    moved = (new_b, new_a)
                else:
                    timeline.remove(new_b)

        if moved is None:
            timeline.add(first)
            timeline.add(second)
        return moved


def _swapped_copy(original: Placement, start: int, end: int, wait: int) -> Placement:
    components = dict(original.score_components)
    components["wait"] = wait
    components["swapped"] = True
    return Placement(
        kind=original.kind,
        ref_id=original.ref_id,
        name=original.name,
        start=start,
        end=end,
        phase=original.phase,
        park_id=original.park_id,
        land=original.land,
        expected_wait=wait,
        reasoning=f"{original.reasoning}; reordered to cut wait and walking",
        estimated=original.estimated,
        score_components=components,
    )


STRATEGIES: dict[str, type[GreedyPlacement]] = {
    GreedyPlacement.name: GreedyPlacement,
    LocalSearchPlacement.name: LocalSearchPlacement,
}


def get_strategy(name: str) -> PlacementStrategy:
    """Look up a placement strategy by name."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"unknown placement strategy: {name}") from None
