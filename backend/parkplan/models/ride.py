"""Ride models - wishlist entries with predicted wait curves."""

from datetime import time
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from backend.parkplan.models.common import RideCategory


class WaitPoint(BaseModel):
    """Predicted wait at one point of the day."""

    time_slot: time
    wait_minutes: Annotated[int, Field(ge=0)]


class RideInfo(BaseModel):
    """Static catalogue entry for an attraction."""

    id: str
    name: str
    park_id: str
    land: str = ""
    category: RideCategory = RideCategory.other
    is_headliner: bool = False
    duration_minutes: Annotated[int, Field(gt=0)] = 5


class RideSelection(RideInfo):
    """A wishlist ride bound to one park day's wait curve."""

    priority_weight: Annotated[float, Field(ge=0)] = 1.0
    mandatory: bool = True
    estimated: bool = False
    wait_curve: Annotated[list[WaitPoint], Field(min_length=1)]

    @field_validator("wait_curve")
    @classmethod
    def validate_curve_ordered(cls, v: list[WaitPoint]) -> list[WaitPoint]:
        """Ensure wait points are strictly increasing in time."""
        for prev, nxt in zip(v, v[1:]):
            if nxt.time_slot <= prev.time_slot:
                raise ValueError(
                    f"wait_curve must be strictly increasing: {prev.time_slot} >= {nxt.time_slot}"
                )
        return v
