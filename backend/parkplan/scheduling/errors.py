"""Planning exception types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One rejected input field with a human-readable reason."""

    field: str
    reason: str


class PlanningError(Exception):
    """Base class for engine errors."""

    pass


class ValidationError(PlanningError):
    """Planning request rejected; names every offending field."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.reason}" for e in self.errors)
        super().__init__(f"invalid plan input - {summary}")

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class ScheduleConflictError(PlanningError):
    """Two hard constraints claim the same time."""

    pass


class InvariantViolationError(PlanningError):
    """An internal placement broke a plan invariant."""

    pass


class SnapshotUnavailableError(PlanningError):
    """Required collaborator data could not be fetched."""

    def __init__(self, message: str, retry_after_seconds: int = 30) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
