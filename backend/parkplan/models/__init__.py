"""Models package - re-exports for convenience."""

from backend.parkplan.models.common import (
    AnchorPriority,
    AnchorType,
    ItemKind,
    PlacementPhase,
    RideCategory,
    TripDuration,
    UnscheduledReason,
)
from backend.parkplan.models.itinerary import (
    Alternative,
    Itinerary,
    ItineraryItem,
    TripPlan,
    UnscheduledRide,
    WaitComparison,
)
from backend.parkplan.models.reference import ReferenceData, ResortPairing, WalkingTable
from backend.parkplan.models.request import EntertainmentRequest, PlanInput
from backend.parkplan.models.ride import RideInfo, RideSelection, WaitPoint
from backend.parkplan.models.schedule import Anchor, ParkDaySchedule
from backend.parkplan.models.snapshot import PlanningSnapshot, WaitCurveSnapshot
from backend.parkplan.models.violations import Violation, ViolationKind, ViolationSeverity

__all__ = [
    # Common
    "RideCategory",
    "AnchorType",
    "AnchorPriority",
    "TripDuration",
    "ItemKind",
    "PlacementPhase",
    "UnscheduledReason",
    # Request
    "PlanInput",
    "EntertainmentRequest",
    # Rides and schedules
    "RideInfo",
    "RideSelection",
    "WaitPoint",
    "Anchor",
    "ParkDaySchedule",
    # Snapshots and reference data
    "PlanningSnapshot",
    "WaitCurveSnapshot",
    "ReferenceData",
    "ResortPairing",
    "WalkingTable",
    # Itinerary
    "ItineraryItem",
    "Itinerary",
    "Alternative",
    "UnscheduledRide",
    "TripPlan",
    "WaitComparison",
    # Violations
    "Violation",
    "ViolationKind",
    "ViolationSeverity",
]
