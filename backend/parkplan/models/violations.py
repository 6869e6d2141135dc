"""Violation models - invariant breaches found during verification."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# JSON-serializable value types for violation details
JsonValue = str | int | float | bool | None | dict[str, Any] | list[Any]


class ViolationSeverity(str, Enum):
    """Severity levels for invariant violations."""

    ADVISORY = "advisory"
    BLOCKING = "blocking"


class ViolationKind(str, Enum):
    """Categories of plan invariants."""

    OVERLAP = "overlap"
    ORDERING = "ordering"
    ANCHOR = "anchor"
    RERIDE = "reride"
    HOURS = "hours"
    TRANSITION = "transition"


class Violation(BaseModel):
    """An invariant violation detected in a produced plan.

    Blocking violations mean the plan breaks a hard constraint; advisory
    ones flag something the visitor should know about.
    """

    kind: ViolationKind
    code: str  # Machine-usable short code, e.g., "ITEM_OVERLAP"
    message: str  # Human-readable description (1-2 sentences)
    severity: ViolationSeverity
    affected_ids: list[str]  # ItineraryItem.ref_id values
    details: dict[str, JsonValue] = Field(default_factory=dict)
