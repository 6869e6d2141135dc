"""Common types and enums shared across all models."""

from enum import Enum


class RideCategory(str, Enum):
    """Attraction category."""

    thrill = "thrill"
    family = "family"
    kids = "kids"
    show = "show"
    other = "other"


class AnchorType(str, Enum):
    """Kind of fixed-time block."""

    show = "show"
    parade = "parade"
    fireworks = "fireworks"
    meal = "meal"
    transition = "transition"


class AnchorPriority(str, Enum):
    """How binding an anchor is."""

    must_see = "must-see"
    recommended = "recommended"
    optional = "optional"


class TripDuration(str, Enum):
    """Requested trip length."""

    half_day = "half-day"
    full_day = "full-day"
    multi_day = "multi-day"


class ItemKind(str, Enum):
    """Type of itinerary item."""

    ride = "ride"
    anchor = "anchor"
    transition = "transition"


class PlacementPhase(str, Enum):
    """Scheduling phase that committed an item."""

    anchor = "anchor"
    headliner = "headliner"
    rope_drop = "rope_drop"
    scored = "scored"
    transition = "transition"
    reride = "reride"


class UnscheduledReason(str, Enum):
    """Why a wishlist ride could not be placed."""

    insufficient_time = "insufficient time"
    park_closed = "park closed during window"
