"""Collaborator snapshot models - predictions, hours and entertainment."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from backend.parkplan.models.ride import RideInfo, WaitPoint
from backend.parkplan.models.schedule import Anchor, ParkDaySchedule


class WaitCurveSnapshot(BaseModel):
    """Predicted wait curve for one ride on one date."""

    model_config = ConfigDict(frozen=True)

    ride_id: str
    date: date
    points: list[WaitPoint]


class PlanningSnapshot(BaseModel):
    """Immutable data fetched before scheduling begins."""

    model_config = ConfigDict(frozen=True)

    rides: list[RideInfo] = Field(default_factory=list)
    park_days: list[ParkDaySchedule] = Field(default_factory=list)
    wait_curves: list[WaitCurveSnapshot] = Field(default_factory=list)
    entertainment: list[Anchor] = Field(default_factory=list)
    fetched_at: datetime | None = None
    # Parks/dates whose curves could not be fetched in time
    partial: bool = False
