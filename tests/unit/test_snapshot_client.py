"""Tests for the collaborator snapshot client."""

import asyncio
from datetime import date

import httpx
import pytest

from backend.parkplan.adapters.collaborator import (
    SnapshotClient,
    SnapshotMetrics,
    parse_park_day,
    parse_wait_curves,
)
from backend.parkplan.config import Settings
from backend.parkplan.models import PlanInput
from backend.parkplan.scheduling.engine import build_trip_plan
from backend.parkplan.scheduling.errors import SnapshotUnavailableError

DAY = date(2030, 6, 3)
DAY_PATH = "/parks/magic-kingdom/days/2030-06-03"

HOURS_BODY = {
    "schedule": {"open_time": "09:00", "close_time": "21:00", "extended_close_time": "23:00"},
    "rides": [
        {"id": "space-mountain", "name": "Space Mountain", "land": "Tomorrowland", "is_headliner": True},
        {"id": "dumbo", "name": "Dumbo", "land": "Fantasyland", "category": "kids"},
    ],
}
CURVES_BODY = {
    "space-mountain": [
        {"time_slot": "09:00", "wait_minutes": 20},
        {"time_slot": "12:00", "wait_minutes": 80},
    ],
    "dumbo": [{"time_slot": "09:00", "wait_minutes": 5}],
}
SHOWS_BODY = [{"id": "parade", "name": "Parade", "type": "parade", "start": "15:00", "end": "15:30"}]


def _route(request: httpx.Request, hours=HOURS_BODY, curves=CURVES_BODY, shows=SHOWS_BODY) -> httpx.Response:
    path = request.url.path
    if path.endswith("/wait-curves"):
        return httpx.Response(200, json=curves)
    if path.endswith("/entertainment"):
        return httpx.Response(200, json=shows)
    return httpx.Response(200, json=hours)


class RecordingMetrics(SnapshotMetrics):
    def __init__(self) -> None:
        self.outcomes: list[tuple[str, str]] = []
        self.errors: list[tuple[str, str]] = []

    def record_latency(self, resource: str, outcome: str, latency_ms: float) -> None:
        self.outcomes.append((resource, outcome))

    def inc_error(self, resource: str, reason: str) -> None:
        self.errors.append((resource, reason))


@pytest.fixture
def client_settings() -> Settings:
    return Settings(
        _env_file=None,
        collaborator_base_url="http://collaborator.test/",
        snapshot_timeout_ms=200,
        snapshot_retry_count=1,
        snapshot_retry_after_seconds=45,
    )


def _client(handler, settings: Settings, **kwargs) -> tuple[SnapshotClient, httpx.AsyncClient, list[float]]:
    sleeps: list[float] = []

    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SnapshotClient(settings, client=http, sleep_fn=record_sleep, **kwargs), http, sleeps


@pytest.mark.asyncio
async def test_fetch_snapshot_merges_park_days(client_settings) -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return _route(request)

    client, http, sleeps = _client(handler, client_settings)
    snapshot = await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()

    assert sorted(requested) == [DAY_PATH, f"{DAY_PATH}/entertainment", f"{DAY_PATH}/wait-curves"]
    assert sleeps == []
    assert snapshot.partial is False
    assert snapshot.fetched_at is not None
    assert [r.id for r in snapshot.rides] == ["space-mountain", "dumbo"]
    assert all(r.park_id == "magic-kingdom" for r in snapshot.rides)
    schedule = snapshot.park_days[0]
    assert (schedule.park_id, schedule.date) == ("magic-kingdom", DAY)
    assert schedule.extended_close_time is not None
    assert {c.ride_id for c in snapshot.wait_curves} == {"space-mountain", "dumbo"}
    parade = snapshot.entertainment[0]
    assert (parade.park_id, parade.date) == ("magic-kingdom", DAY)


@pytest.mark.asyncio
async def test_malformed_curves_mark_snapshot_partial(client_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _route(request, curves={"dumbo": [{"time_slot": "09:00", "wait_minutes": -5}]})

    metrics = RecordingMetrics()
    client, http, _ = _client(handler, client_settings, metrics=metrics)
    snapshot = await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()

    assert snapshot.partial is True
    assert snapshot.wait_curves == []
    assert sorted(metrics.outcomes) == [
        ("entertainment", "success"),
        ("hours", "success"),
        ("wait_curves", "partial"),
    ]


@pytest.mark.asyncio
async def test_retries_after_server_error(client_settings) -> None:
    calls = {"hours": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == DAY_PATH:
            calls["hours"] += 1
            if calls["hours"] == 1:
                return httpx.Response(502)
        return _route(request)

    metrics = RecordingMetrics()
    client, http, sleeps = _client(handler, client_settings, metrics=metrics)
    snapshot = await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()

    assert calls["hours"] == 2
    assert len(sleeps) == 1
    assert 0.2 <= sleeps[0] <= 0.5
    assert metrics.errors == [("hours", "http_502")]
    assert [o for o in metrics.outcomes if o[0] == "hours"] == [("hours", "error"), ("hours", "success")]
    assert len(snapshot.park_days) == 1
    assert snapshot.partial is False


@pytest.mark.asyncio
async def test_missing_hours_raise_unavailable(client_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == DAY_PATH:
            return httpx.Response(503)
        return _route(request)

    client, http, sleeps = _client(handler, client_settings)
    with pytest.raises(SnapshotUnavailableError) as exc_info:
        await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()

    assert exc_info.value.retry_after_seconds == 45
    assert "http_503" in str(exc_info.value)
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_slow_curves_degrade_to_estimated_plan(reference, settings) -> None:
    """A curves timeout still yields a plan, built on estimated waits."""
    fetch_settings = Settings(_env_file=None, snapshot_timeout_ms=20, snapshot_retry_count=0)

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/wait-curves"):
            await asyncio.sleep(1)
        return _route(request)

    metrics = RecordingMetrics()
    client, http, _ = _client(handler, fetch_settings, metrics=metrics)
    snapshot = await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()

    assert snapshot.partial is True
    assert snapshot.wait_curves == []
    assert len(snapshot.park_days) == 1
    assert [a.id for a in snapshot.entertainment] == ["parade"]
    assert metrics.errors == [("wait_curves", "timeout")]

    plan = build_trip_plan(
        PlanInput(
            park_ids=["magic-kingdom"],
            favorite_ride_ids=["space-mountain", "dumbo"],
            visit_date=DAY,
            allow_rerides=False,
        ),
        snapshot,
        reference,
        settings=settings,
        today=DAY,
    )

    assert plan.unscheduled == []
    rides = [i for i in plan.days[0].items if i.kind.value == "ride"]
    assert {i.ref_id for i in rides} == {"space-mountain", "dumbo"}
    assert all(i.estimated for i in rides)


@pytest.mark.asyncio
async def test_slow_hours_raise_unavailable() -> None:
    settings = Settings(_env_file=None, snapshot_timeout_ms=20, snapshot_retry_count=0)

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == DAY_PATH:
            await asyncio.sleep(1)
        return _route(request)

    client, http, _ = _client(handler, settings)
    with pytest.raises(SnapshotUnavailableError, match="timeout"):
        await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()


@pytest.mark.asyncio
async def test_entertainment_outage_keeps_curves(client_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/entertainment"):
            return httpx.Response(500)
        return _route(request)

    metrics = RecordingMetrics()
    client, http, sleeps = _client(handler, client_settings, metrics=metrics)
    snapshot = await client.fetch_snapshot(["magic-kingdom"], [DAY])
    await http.aclose()

    assert snapshot.partial is True
    assert snapshot.entertainment == []
    assert len(snapshot.wait_curves) == 2
    assert metrics.errors == [("entertainment", "http_500"), ("entertainment", "http_500")]
    assert len(sleeps) == 1


def test_missing_schedule_is_unavailable() -> None:
    with pytest.raises(SnapshotUnavailableError, match="no operating hours"):
        parse_park_day("magic-kingdom", DAY, {"rides": []})


def test_bad_ride_entry_is_skipped() -> None:
    body = {**HOURS_BODY, "rides": [{"id": "no-name"}, *HOURS_BODY["rides"]]}

    payload = parse_park_day("magic-kingdom", DAY, body)

    assert payload.partial is True
    assert [r.id for r in payload.rides] == ["space-mountain", "dumbo"]


def test_curves_body_must_be_keyed_by_ride() -> None:
    with pytest.raises(ValueError):
        parse_wait_curves(DAY, [{"time_slot": "09:00", "wait_minutes": 5}])
