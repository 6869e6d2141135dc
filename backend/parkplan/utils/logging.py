"""Structured logging for planning requests."""

import logging
from datetime import date
from typing import Any

from backend.parkplan.models.violations import Violation, ViolationSeverity

logger = logging.getLogger(__name__)


class StructuredPlanLogger:
    """Structured logger for planning phases and outcomes."""

    def __init__(self, request_id: str | None = None) -> None:
        self._request_id = request_id

    def _base(self) -> dict[str, Any]:
        return {"request_id": self._request_id} if self._request_id else {}

    def log_phase(self, day: date, phase: str, placed: list[str]) -> None:
        """Log one placement phase for one day."""
        log_data = self._base()
        log_data.update({"date": day.isoformat(), "phase": phase, "placed": list(placed)})
        logger.debug(f"Phase {phase}: {len(placed)} placed", extra={"structured": log_data})

    def log_plan(self, outcome: str, latency_ms: float, days: int = 0, unscheduled: int = 0) -> None:
        """Log the outcome of a planning request."""
        log_data = self._base()
        log_data.update(
            {
                "outcome": outcome,
                "latency_ms": round(latency_ms, 2),
                "days": days,
                "unscheduled": unscheduled,
            }
        )

        log_msg = f"Trip plan: {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_violation(self, violation: Violation) -> None:
        """Log an invariant violation at WARNING with its payload."""
        log_data = self._base()
        log_data.update(
            {
                "kind": violation.kind.value,
                "code": violation.code,
                "affected_ids": violation.affected_ids,
                "details": violation.details,
            }
        )
        level = logging.WARNING if violation.severity == ViolationSeverity.BLOCKING else logging.INFO
        logger.log(level, f"Invariant violation: {violation.code}", extra={"structured": log_data})


class StructuredSnapshotLogger:
    """Structured logger for collaborator snapshot fetches."""

    def log_attempt(
        self,
        resource: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
        target: str | None = None,
    ) -> None:
        """Log one fetch attempt; `target` names the park day."""
        log_data: dict[str, Any] = {
            "resource": resource,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if target:
            log_data["target"] = target
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Snapshot fetch: {resource} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
