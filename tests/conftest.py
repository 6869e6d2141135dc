"""Shared pytest fixtures for all test suites."""

from datetime import date, time

import pytest

from backend.parkplan.adapters.fixtures import load_reference_data
from backend.parkplan.config import Settings
from backend.parkplan.models import (
    Anchor,
    AnchorPriority,
    AnchorType,
    ParkDaySchedule,
    PlanningSnapshot,
    ReferenceData,
    ResortPairing,
    RideCategory,
    RideInfo,
    RideSelection,
    WaitCurveSnapshot,
    WaitPoint,
    WalkingTable,
)
from backend.parkplan.scheduling.curves import flat_curve
from backend.parkplan.scheduling.timeline import DayTimeline
from backend.parkplan.utils.timeutils import from_minutes, to_minutes

DAY = date(2030, 6, 3)


class SnapshotBuilder:
    """Fluent builder for PlanningSnapshot test data.

    Usage:
        snapshot = (
            snapshot_builder.park_day("magic-kingdom", date(2030, 6, 3))
            .ride("space", "magic-kingdom", waits=[20, 60, 80])
            .build()
        )
    """

    def __init__(self) -> None:
        self._park_days: list[ParkDaySchedule] = []
        self._rides: list[RideInfo] = []
        self._curves: list[WaitCurveSnapshot] = []
        self._shows: list[Anchor] = []

    def park_day(
        self,
        park_id: str,
        day: date,
        open_time: str = "09:00",
        close_time: str = "21:00",
        extended_close: str | None = None,
    ) -> "SnapshotBuilder":
        self._park_days.append(
            ParkDaySchedule(
                park_id=park_id,
                date=day,
                open_time=time.fromisoformat(open_time),
                close_time=time.fromisoformat(close_time),
                extended_close_time=time.fromisoformat(extended_close) if extended_close else None,
            )
        )
        return self

    def ride(
        self,
        ride_id: str,
        park_id: str,
        *,
        waits: list[int] | int | None = 20,
        land: str = "Tomorrowland",
        category: RideCategory = RideCategory.family,
        headliner: bool = False,
        duration: int = 5,
        step: int = 60,
    ) -> "SnapshotBuilder":
        """Add a ride; waits are readings every `step` minutes from opening.

        An int is a flat curve over the whole day; None adds no curve at all.
        """
        self._rides.append(
            RideInfo(
                id=ride_id,
                name=ride_id.replace("-", " ").title(),
                park_id=park_id,
                land=land,
                category=category,
                is_headliner=headliner,
                duration_minutes=duration,
            )
        )
        if waits is None:
            return self
        for schedule in self._park_days:
            if schedule.park_id != park_id:
                continue
            open_min = to_minutes(schedule.open_time)
            close_min = to_minutes(schedule.extended_close_time or schedule.close_time)
            if isinstance(waits, int):
                readings = [waits] * ((close_min - open_min) // step + 1)
            else:
                readings = waits
            points = [
                WaitPoint(time_slot=from_minutes(open_min + i * step), wait_minutes=w)
                for i, w in enumerate(readings)
                if open_min + i * step < 24 * 60
            ]
            self._curves.append(WaitCurveSnapshot(ride_id=ride_id, date=schedule.date, points=points))
        return self

    def show(
        self,
        anchor_id: str,
        park_id: str | None,
        start: str,
        end: str,
        *,
        day: date | None = None,
        anchor_type: AnchorType = AnchorType.show,
    ) -> "SnapshotBuilder":
        self._shows.append(
            Anchor(
                id=anchor_id,
                name=anchor_id.replace("-", " ").title(),
                type=anchor_type,
                start=time.fromisoformat(start),
                end=time.fromisoformat(end),
                priority=AnchorPriority.recommended,
                park_id=park_id,
                date=day,
            )
        )
        return self

    def build(self) -> PlanningSnapshot:
        return PlanningSnapshot(
            rides=list(self._rides),
            park_days=list(self._park_days),
            wait_curves=list(self._curves),
            entertainment=list(self._shows),
        )


@pytest.fixture
def snapshot_builder() -> SnapshotBuilder:
    """Fresh snapshot builder per test."""
    return SnapshotBuilder()


@pytest.fixture
def settings() -> Settings:
    """Default tunables with strict invariant checking."""
    return Settings(_env_file=None, strict_invariants=True)


@pytest.fixture
def reference() -> ReferenceData:
    """Packaged resort, hop and walking tables."""
    return load_reference_data()


def _flat_reference() -> ReferenceData:
    return ReferenceData(
        resorts=(
            ResortPairing(
                resort_id="test-resort",
                name="Test Resort",
                park_ids=("park-a", "park-b"),
                transition_minutes=20,
            ),
            ResortPairing(
                resort_id="solo-resort",
                name="Solo Resort",
                park_ids=("park-c",),
                transition_minutes=0,
            ),
        ),
        hop_eligibility={"park-a": time(0, 0), "park-b": time(0, 0)},
        walking=WalkingTable(
            same_land_minutes=0,
            adjacent_minutes=5,
            distant_minutes=12,
            unknown_minutes=8,
        ),
    )


@pytest.fixture
def flat_reference() -> ReferenceData:
    """Reference data with free same-land walking for capacity arithmetic."""
    return _flat_reference()


def make_ride_selection(
    ride_id: str,
    waits: dict[str, int] | int = 20,
    *,
    park_id: str = "park-a",
    land: str = "Land A",
    category: RideCategory = RideCategory.family,
    headliner: bool = False,
    duration: int = 5,
    weight: float = 1.0,
    estimated: bool = False,
) -> RideSelection:
    """RideSelection with a flat curve over 09:00-21:00 or explicit "HH:MM" readings."""
    if isinstance(waits, int):
        curve = flat_curve(waits, 9 * 60, 21 * 60)
    else:
        curve = [
            WaitPoint(time_slot=time.fromisoformat(slot), wait_minutes=wait)
            for slot, wait in sorted(waits.items())
        ]
    return RideSelection(
        id=ride_id,
        name=ride_id.replace("-", " ").title(),
        park_id=park_id,
        land=land,
        category=category,
        is_headliner=headliner,
        duration_minutes=duration,
        priority_weight=weight,
        estimated=estimated,
        wait_curve=curve,
    )


def make_day_timeline(
    rides: list[RideSelection] | None = None,
    *,
    park_ids: tuple[str, ...] = ("park-a",),
    open_time: str = "09:00",
    close_time: str = "21:00",
    reference: ReferenceData | None = None,
    windows: dict[str, tuple[int, int]] | None = None,
    close_buffer: int = 20,
) -> DayTimeline:
    open_min = to_minutes(time.fromisoformat(open_time))
    close_min = to_minutes(time.fromisoformat(close_time))
    return DayTimeline(
        date=DAY,
        park_ids=list(park_ids),
        open=open_min,
        close=close_min,
        effective_close=close_min - close_buffer,
        reference=reference or _flat_reference(),
        rides={r.id: r for r in rides or []},
        windows=windows or {p: (open_min, close_min) for p in park_ids},
    )


@pytest.fixture
def make_ride():
    """Factory for wishlist rides bound to a wait curve."""
    return make_ride_selection


@pytest.fixture
def make_timeline():
    """Factory for an empty single-day timeline."""
    return make_day_timeline
