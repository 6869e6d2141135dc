"""Park operating hours and fixed-time anchors."""

import datetime as dt

from pydantic import BaseModel, model_validator

from backend.parkplan.models.common import AnchorPriority, AnchorType


class ParkDaySchedule(BaseModel):
    """Operating hours for one park on one date (park local time)."""

    park_id: str
    date: dt.date
    open_time: dt.time
    close_time: dt.time
    extended_close_time: dt.time | None = None

    @model_validator(mode="after")
    def validate_hours(self) -> "ParkDaySchedule":
        """Ensure close is after open and extended close is after close."""
        if self.close_time <= self.open_time:
            raise ValueError(f"close_time must be after open_time for {self.park_id} on {self.date}")
        if self.extended_close_time is not None and self.extended_close_time < self.close_time:
            raise ValueError("extended_close_time must be >= close_time")
        return self


class Anchor(BaseModel):
    """A fixed-time, non-movable block (show, parade, meal, transition)."""

    id: str
    name: str
    type: AnchorType
    start: dt.time
    end: dt.time
    priority: AnchorPriority = AnchorPriority.recommended
    park_id: str | None = None
    land: str = ""
    date: dt.date | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "Anchor":
        """Ensure end is after start."""
        if self.end <= self.start:
            raise ValueError(f"anchor {self.id} must end after it starts")
        return self

    @property
    def is_must_see(self) -> bool:
        return self.priority == AnchorPriority.must_see
