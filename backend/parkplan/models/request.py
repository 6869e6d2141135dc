"""Planning request models - user input and preferences."""

from datetime import date
from typing import Annotated

from pydantic import BaseModel, Field

from backend.parkplan.models.common import AnchorPriority, RideCategory, TripDuration


class EntertainmentRequest(BaseModel):
    """A show, parade or spectacular the visitor wants to attend."""

    anchor_id: str
    priority: AnchorPriority = AnchorPriority.must_see


class PlanInput(BaseModel):
    """Visitor request for a day plan or multi-day trip plan."""

    park_ids: list[str] = Field(default_factory=list)
    favorite_ride_ids: list[str] = Field(default_factory=list)
    visit_date: date | None = None
    visit_dates: list[date] = Field(default_factory=list)
    duration: TripDuration = TripDuration.full_day
    priorities: list[RideCategory] = Field(default_factory=list)

    rope_drop_ride_ids: list[str] = Field(default_factory=list)
    entertainment: list[EntertainmentRequest] = Field(default_factory=list)
    # Per-ride user weight; rides not listed default to 1.0
    priority_weights: dict[str, Annotated[float, Field(ge=0)]] = Field(default_factory=dict)
    # Wishlist rides that are nice-to-have rather than mandatory
    optional_ride_ids: list[str] = Field(default_factory=list)

    park_hopping: bool = False
    include_meal_breaks: bool = False
    allow_rerides: bool = True
    use_extended_hours: bool = False

    def requested_dates(self) -> list[date]:
        """All dates named by the request, in the order given."""
        dates = list(self.visit_dates)
        if self.visit_date is not None and self.visit_date not in dates:
            dates.insert(0, self.visit_date)
        return dates
