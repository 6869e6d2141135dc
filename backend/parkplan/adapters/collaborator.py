"""Collaborator snapshot client - fetches waits, hours and entertainment.

Every request has a hard timeout and bounded, jittered retries. Park hours
cannot be estimated, so failing to fetch them raises
SnapshotUnavailableError. Wait curves and entertainment that time out or
arrive malformed only mark the snapshot `partial`; missing curves are later
replaced by category medians and flagged as estimated.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from backend.parkplan.config import Settings
from backend.parkplan.models.ride import RideInfo, WaitPoint
from backend.parkplan.models.schedule import Anchor, ParkDaySchedule
from backend.parkplan.models.snapshot import PlanningSnapshot, WaitCurveSnapshot
from backend.parkplan.scheduling.errors import SnapshotUnavailableError

T = TypeVar("T")


# Metrics interface (implemented by utils.metrics.PrometheusSnapshotMetrics)
class SnapshotMetrics:
    """Interface for snapshot fetch metrics."""

    def record_latency(self, resource: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, resource: str, reason: str) -> None:
        pass


# Logging interface (implemented by utils.logging.StructuredSnapshotLogger)
class SnapshotLogger:
    """Interface for structured fetch logging."""

    def log_attempt(
        self,
        resource: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
        target: str | None = None,
    ) -> None:
        pass


class ParkDayPayload:
    """Parsed responses for one park day."""

    def __init__(
        self,
        schedule: ParkDaySchedule,
        rides: list[RideInfo],
        curves: list[WaitCurveSnapshot] | None = None,
        entertainment: list[Anchor] | None = None,
        partial: bool = False,
    ) -> None:
        self.schedule = schedule
        self.rides = rides
        self.curves = curves or []
        self.entertainment = entertainment or []
        self.partial = partial


def parse_park_day(park_id: str, day: date, data: dict[str, Any]) -> ParkDayPayload:
    """Parse the hours-and-rides body for one park day.

    Raises:
        SnapshotUnavailableError: If the schedule is missing or malformed
    """
    try:
        schedule = ParkDaySchedule.model_validate(
            {"park_id": park_id, "date": day.isoformat(), **data["schedule"]}
        )
    except (KeyError, TypeError, PydanticValidationError) as exc:
        raise SnapshotUnavailableError(f"no operating hours for {park_id} on {day}") from exc

    partial = False
    rides: list[RideInfo] = []
    for raw in data.get("rides") or []:
        try:
            rides.append(RideInfo.model_validate({"park_id": park_id, **raw}))
        except PydanticValidationError:
            partial = True

    return ParkDayPayload(schedule, rides, partial=partial)


def parse_wait_curves(day: date, data: Any) -> tuple[list[WaitCurveSnapshot], bool]:
    """Parse a {ride_id: [points]} body; returns (curves, partial).

    Raises:
        ValueError: If the body is not a mapping
    """
    if not isinstance(data, dict):
        raise ValueError("wait curves must be an object keyed by ride id")

    partial = False
    curves: list[WaitCurveSnapshot] = []
    for ride_id, points in data.items():
        try:
            curves.append(
                WaitCurveSnapshot(
                    ride_id=ride_id,
                    date=day,
                    points=[WaitPoint.model_validate(p) for p in points],
                )
            )
        except (TypeError, PydanticValidationError):
            partial = True
    return curves, partial


def parse_entertainment(park_id: str, day: date, data: Any) -> tuple[list[Anchor], bool]:
    """Parse a list of shows; returns (anchors, partial).

    Raises:
        ValueError: If the body is not a list
    """
    if not isinstance(data, list):
        raise ValueError("entertainment must be a list")

    partial = False
    anchors: list[Anchor] = []
    for raw in data:
        try:
            anchors.append(
                Anchor.model_validate({"park_id": park_id, "date": day.isoformat(), **raw})
            )
        except (TypeError, PydanticValidationError):
            partial = True
    return anchors, partial


class SnapshotClient:
    """Async client for the collaborator planning-data service.

    Each park day needs three requests: hours with the ride catalogue,
    wait curves, and entertainment. Only the first is required.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        metrics: SnapshotMetrics | None = None,
        logger: SnapshotLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize client.

        Args:
            settings: Base URL, timeout and retry policy
            client: Optional httpx client (for testing with mocks)
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self._settings = settings
        self._client = client
        self._metrics = metrics or SnapshotMetrics()
        self._logger = logger or SnapshotLogger()
        self._sleep = sleep_fn or asyncio.sleep

    def _url(self, park_id: str, day: date, suffix: str = "") -> str:
        base = self._settings.collaborator_base_url.rstrip("/")
        return f"{base}/parks/{park_id}/days/{day.isoformat()}{suffix}"

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        resource: str,
        target: str,
        url: str,
        parse: Callable[[Any], T],
        is_partial: Callable[[T], bool],
    ) -> tuple[T | None, str]:
        """GET and parse one resource with timeout and jittered retries.

        Returns:
            (parsed result, "") on success, or (None, last error reason)
        """
        settings = self._settings
        timeout_sec = settings.snapshot_timeout_ms / 1000

        last_reason = "unknown"
        for attempt in range(settings.snapshot_retry_count + 1):
            attempt_start = time.monotonic()
            try:
                response = await asyncio.wait_for(client.get(url), timeout=timeout_sec)
                response.raise_for_status()
                result = parse(response.json())
            except asyncio.TimeoutError:
                last_reason = "timeout"
            except httpx.HTTPStatusError as exc:
                last_reason = f"http_{exc.response.status_code}"
            except httpx.HTTPError as exc:
                last_reason = type(exc).__name__
            except (ValueError, SnapshotUnavailableError) as exc:
                last_reason = f"bad_payload: {exc}"
            else:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                outcome = "partial" if is_partial(result) else "success"
                self._metrics.record_latency(resource, outcome, elapsed_ms)
                self._logger.log_attempt(resource, attempt + 1, outcome, elapsed_ms, target=target)
                return result, ""

            elapsed_ms = (time.monotonic() - attempt_start) * 1000
            self._metrics.record_latency(resource, "error", elapsed_ms)
            self._metrics.inc_error(resource, last_reason.split(":")[0])
            self._logger.log_attempt(
                resource, attempt + 1, "error", elapsed_ms, last_reason, target=target
            )

            if attempt < settings.snapshot_retry_count:
                jitter_ms = random.randint(settings.retry_jitter_min_ms, settings.retry_jitter_max_ms)
                await self._sleep(jitter_ms / 1000)

        return None, last_reason

    async def _fetch_park_day(
        self, client: httpx.AsyncClient, park_id: str, day: date
    ) -> ParkDayPayload:
        target = f"{park_id}/{day.isoformat()}"
        (payload, hours_error), (curves, _), (shows, _) = await asyncio.gather(
            self._fetch(
                client,
                "hours",
                target,
                self._url(park_id, day),
                lambda data: parse_park_day(park_id, day, data),
                lambda parsed: parsed.partial,
            ),
            self._fetch(
                client,
                "wait_curves",
                target,
                self._url(park_id, day, "/wait-curves"),
                lambda data: parse_wait_curves(day, data),
                lambda parsed: parsed[1],
            ),
            self._fetch(
                client,
                "entertainment",
                target,
                self._url(park_id, day, "/entertainment"),
                lambda data: parse_entertainment(park_id, day, data),
                lambda parsed: parsed[1],
            ),
        )

        if payload is None:
            raise SnapshotUnavailableError(
                f"could not fetch hours for {target}: {hours_error}",
                retry_after_seconds=self._settings.snapshot_retry_after_seconds,
            )

        # Missing curves fall back to category medians downstream
        if curves is None:
            payload.partial = True
        else:
            payload.curves, curves_partial = curves
            payload.partial = payload.partial or curves_partial
        if shows is None:
            payload.partial = True
        else:
            payload.entertainment, shows_partial = shows
            payload.partial = payload.partial or shows_partial
        return payload

    async def fetch_snapshot(self, park_ids: list[str], dates: list[date]) -> PlanningSnapshot:
        """Fetch every (park, date) pair concurrently and merge the results.

        Raises:
            SnapshotUnavailableError: If any park day's hours cannot be fetched
        """
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._settings.snapshot_timeout_ms / 1000)
            close_client = True

        try:
            pairs = [(p, d) for d in sorted(set(dates)) for p in dict.fromkeys(park_ids)]
            payloads = await asyncio.gather(
                *(self._fetch_park_day(client, p, d) for p, d in pairs)
            )
        finally:
            if close_client:
                await client.aclose()

        rides: dict[str, RideInfo] = {}
        curves: list[WaitCurveSnapshot] = []
        entertainment: list[Anchor] = []
        park_days: list[ParkDaySchedule] = []
        partial = False
        for payload in payloads:
            park_days.append(payload.schedule)
            for ride in payload.rides:
                rides.setdefault(ride.id, ride)
            curves.extend(payload.curves)
            entertainment.extend(payload.entertainment)
            partial = partial or payload.partial

        return PlanningSnapshot(
            rides=list(rides.values()),
            park_days=park_days,
            wait_curves=curves,
            entertainment=entertainment,
            fetched_at=datetime.now(),
            partial=partial,
        )
