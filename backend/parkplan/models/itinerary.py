"""Itinerary models - final output for the visitor."""

from datetime import date, time
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backend.parkplan.models.common import (
    AnchorPriority,
    AnchorType,
    ItemKind,
    PlacementPhase,
    UnscheduledReason,
)


class ItineraryItem(BaseModel):
    """A placed ride, anchor or park transition."""

    model_config = ConfigDict(frozen=True)

    kind: ItemKind
    ref_id: str
    name: str
    park_id: str | None = None
    land: str = ""
    start_time: time
    end_time: time
    expected_wait: Annotated[int, Field(ge=0)] = 0
    walking_time_from_previous: Annotated[int, Field(ge=0)] = 0
    reasoning: str
    phase: PlacementPhase
    is_reride: bool = False
    estimated: bool = False
    anchor_type: AnchorType | None = None
    anchor_priority: AnchorPriority | None = None


class Alternative(BaseModel):
    """Substitute to use if a planned ride is closed."""

    model_config = ConfigDict(frozen=True)

    ride_id: str
    ride_name: str
    substitute_id: str
    substitute_name: str
    reason: str


class WaitComparison(BaseModel):
    """Planned waits against riding each ride at its average wait."""

    model_config = ConfigDict(frozen=True)

    naive_wait_time: Annotated[int, Field(ge=0)]
    planned_wait_time: Annotated[int, Field(ge=0)]
    wait_time_saved: Annotated[int, Field(ge=0)]
    percent_improvement: Annotated[int, Field(ge=0, le=100)]


class Itinerary(BaseModel):
    """One park day's ordered plan."""

    model_config = ConfigDict(frozen=True)

    date: date
    park_ids: list[str]
    items: list[ItineraryItem]
    total_wait_time: int = 0
    total_walking_time: int = 0
    meal_breaks: list[ItineraryItem] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    alternatives: list[Alternative] = Field(default_factory=list)
    headliners_total: int = 0
    # Headliners placed at their lowest predicted wait of the day
    headliners_at_optimal: int = 0
    comparison: WaitComparison | None = None

    @model_validator(mode="after")
    def validate_ordered_non_overlapping(self) -> "Itinerary":
        """Ensure items are sorted by start time and do not overlap."""
        for current, nxt in zip(self.items, self.items[1:]):
            if nxt.start_time < current.start_time:
                raise ValueError(
                    f"Items out of order: {nxt.start_time} < {current.start_time} on {self.date}"
                )
            if current.end_time > nxt.start_time:
                raise ValueError(
                    f"Overlapping items: {current.end_time} > {nxt.start_time} on {self.date}"
                )
        return self


class UnscheduledRide(BaseModel):
    """A wishlist ride that could not be placed anywhere in the trip."""

    model_config = ConfigDict(frozen=True)

    ride_id: str
    name: str
    reason: UnscheduledReason
    detail: str = ""


class TripPlan(BaseModel):
    """Complete plan for one request (one or more park days)."""

    model_config = ConfigDict(frozen=True)

    days: Annotated[list[Itinerary], Field(min_length=1)]
    wishlist: list[str]
    day_assignment: dict[str, date] = Field(default_factory=dict)
    unscheduled: list[UnscheduledRide] = Field(default_factory=list)
    total_wait_time: int = 0
    total_walking_time: int = 0
    rides_scheduled: int = 0
    rerides_added: int = 0
    headliners_total: int = 0
    headliners_at_optimal: int = 0
    comparison: WaitComparison | None = None
    insights: list[str] = Field(default_factory=list)
