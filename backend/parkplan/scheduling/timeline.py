"""Per-day timeline state shared by the placement phases."""

import bisect
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from backend.parkplan.models.common import AnchorPriority, AnchorType, ItemKind, PlacementPhase
from backend.parkplan.models.reference import ReferenceData
from backend.parkplan.models.ride import RideSelection
from backend.parkplan.scheduling.errors import InvariantViolationError


@dataclass
class Placement:
    """A committed block on the timeline (minutes since midnight)."""

    kind: ItemKind
    ref_id: str
    name: str
    start: int
    end: int
    phase: PlacementPhase
    park_id: str | None = None
    land: str = ""
    expected_wait: int = 0
    reasoning: str = ""
    is_reride: bool = False
    estimated: bool = False
    anchor_type: AnchorType | None = None
    anchor_priority: AnchorPriority | None = None
    # Travel minutes for transitions
    travel_minutes: int = 0
    score_components: dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Segment:
    """Window of the day spent in one park."""

    park_id: str
    earliest: int
    latest: int


@dataclass
class DayTimeline:
    """Mutable scheduling state for one park day.

    Placements are kept sorted by start. Every phase checks `can_place`
    before `add`; `add` refuses overlapping blocks.
    """

    date: date
    park_ids: list[str]
    open: int
    close: int
    effective_close: int
    reference: ReferenceData
    rides: dict[str, RideSelection] = field(default_factory=dict)
    segments: list[Segment] = field(default_factory=list)
    placements: list[Placement] = field(default_factory=list)
    tips: list[str] = field(default_factory=list)
    rope_drop_ids: list[str] = field(default_factory=list)
    # Operating window per park: (open, close)
    windows: dict[str, tuple[int, int]] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_free(self, start: int, end: int) -> bool:
        """True if [start, end) touches no existing block."""
        for p in self.placements:
            if p.start < end and start < p.end:
                return False
        return True

    def previous(self, minute: int) -> Placement | None:
        """Latest block ending at or before minute."""
        best: Placement | None = None
        for p in self.placements:
            if p.end <= minute and (best is None or p.end > best.end):
                best = p
        return best

    def following(self, minute: int) -> Placement | None:
        """Earliest block starting at or after minute."""
        for p in self.placements:
            if p.start >= minute:
                return p
        return None

    def last(self) -> Placement | None:
        return max(self.placements, key=lambda p: (p.end, p.start), default=None)

    def ride_placements(self) -> list[Placement]:
        return [p for p in self.placements if p.kind == ItemKind.ride]

    def segment_for(self, park_id: str) -> Segment | None:
        for seg in self.segments:
            if seg.park_id == park_id:
                return seg
        return None

    def window_for(self, park_id: str | None) -> tuple[int, int]:
        if park_id is not None and park_id in self.windows:
            return self.windows[park_id]
        return self.open, self.close

    def walk(self, from_land: str | None, to_land: str | None) -> int:
        return self.reference.walking_minutes(from_land, to_land)

    def walk_in(self, start: int, land: str) -> int:
        """Walking minutes from whatever precedes `start` to `land`."""
        prev = self.previous(start)
        if prev is None:
            return 0
        return self.walk(prev.land, land)

    def can_place(self, start: int, end: int, land: str, earliest: int, latest: int) -> int | None:
        """Walking minutes needed to place [start, end) at `land`, or None if infeasible.

        Feasible means inside [earliest, latest], overlapping nothing, and
        leaving enough time to walk in from the previous block and out to
        the next one.
        """
        if start < earliest or end > latest or end < start:
            return None
        if not self.is_free(start, end):
            return None

        prev = self.previous(start)
        walk_in = 0
        if prev is not None:
            walk_in = self.walk(prev.land, land)
            if prev.end + walk_in > start:
                return None

        nxt = self.following(end)
        if nxt is not None and nxt.kind != ItemKind.transition:
            if end + self.walk(land, nxt.land) > nxt.start:
                return None
        return walk_in

    def gaps(self, earliest: int, latest: int) -> list[tuple[int, int]]:
        """Free intervals inside [earliest, latest]."""
        result: list[tuple[int, int]] = []
        cursor = earliest
        for p in self.placements:
            if p.end <= cursor:
                continue
            if p.start >= latest:
                break
            if p.start > cursor:
                result.append((cursor, min(p.start, latest)))
            cursor = max(cursor, p.end)
        if cursor < latest:
            result.append((cursor, latest))
        return result

    def candidate_starts(self, earliest: int, latest: int, land: str, step: int) -> list[int]:
        """Grid starts plus walk-adjusted gap starts, sorted and unique."""
        starts: set[int] = set()
        for gap_start, gap_end in self.gaps(earliest, latest):
            starts.add(gap_start + self.walk_in(gap_start, land))
            first_grid = -(-gap_start // step) * step
            for minute in range(first_grid, gap_end, step):
                starts.add(minute)
        return sorted(s for s in starts if earliest <= s < latest)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, placement: Placement) -> None:
        """Commit a block; refuses overlap and negative durations."""
        if placement.end < placement.start:
            raise InvariantViolationError(
                f"negative duration for {placement.ref_id}: {placement.start} > {placement.end}"
            )
        if not self.is_free(placement.start, placement.end):
            raise InvariantViolationError(
                f"{placement.ref_id} overlaps an existing block at {placement.start}-{placement.end}"
            )
        keys = [(p.start, p.end) for p in self.placements]
        index = bisect.bisect_right(keys, (placement.start, placement.end))
        self.placements.insert(index, placement)

    def remove(self, placement: Placement) -> None:
        self.placements.remove(placement)
