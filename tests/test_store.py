from __future__ import annotations

import asyncio
import dataclasses
import json
from collections.abc import Mapping
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pytest

from fleetcheck._cache import DatasetCache
from fleetcheck.config import FleetCheckConfig
from fleetcheck.exceptions import FleetCheckConfigError, PersistenceError, TransportError
from fleetcheck.models import InventoryCheck, LogEntry
from fleetcheck.store import RemoteStore

OPERATIONAL_URL = "https://example.invalid/ops"
AUDIT_URL = "https://example.invalid/audit"
FETCHED_AT = datetime(2026, 1, 2, 12, 0, tzinfo=UTC)

PAYLOAD = {
    "units": [{"id": "u1", "name": "1st Unit"}],
    "subunits": [{"id": "s1", "unitId": "u1", "name": "Sub A"}],
    "stations": [{"id": "p1", "subunitId": "s1", "name": "Central"}],
    "vehicles": [{"id": "v1", "prefix": "ABT-01", "stationId": "p1", "items": "[]"}],
    "checks": [],
    "users": [{"id": "usr1", "username": "jdoe", "password": "secret"}],
}


@dataclasses.dataclass
class _FakeTransport:
    get_responses: list[Any] = dataclasses.field(default_factory=list)
    gets: list[tuple[str, dict[str, str]]] = dataclasses.field(default_factory=list)
    posts: list[tuple[str, dict[str, Any]]] = dataclasses.field(default_factory=list)
    fail_posts: bool = False
    gate: asyncio.Event | None = None

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        self.gets.append((url, dict(params or {})))
        if self.gate is not None:
            await self.gate.wait()
        response = self.get_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:
        if self.fail_posts:
            raise TransportError("HTTP 500", status_code=500, url=url)
        self.posts.append((url, dict(payload)))
        return None


def _store(transport: _FakeTransport, cache: DatasetCache | None = None) -> RemoteStore:
    config = FleetCheckConfig(operational_url=OPERATIONAL_URL, audit_url=AUDIT_URL)
    return RemoteStore(config, transport, cache=cache or DatasetCache(), clock=lambda: FETCHED_AT)


def _check() -> InventoryCheck:
    return InventoryCheck(
        id="c1",
        vehicle_id="v1",
        date=date(2026, 1, 2),
        shift_color="Yellow",
        responsible_names=("A",),
        commander_name="B",
        timestamp=FETCHED_AT,
    )


def test_store_requires_operational_url() -> None:
    with pytest.raises(FleetCheckConfigError):
        RemoteStore(FleetCheckConfig(), _FakeTransport())


@pytest.mark.asyncio
async def test_fetch_all_parses_payload_and_caches_it() -> None:
    transport = _FakeTransport(get_responses=[PAYLOAD])
    cache = DatasetCache()
    store = _store(transport, cache)

    dataset = await store.fetch_all()

    assert not dataset.from_cache
    assert dataset.fetched_at == FETCHED_AT
    assert [vehicle.id for vehicle in dataset.vehicles] == ["v1"]
    assert transport.gets[0][0] == OPERATIONAL_URL
    assert "t" in transport.gets[0][1]
    cached = cache.load()
    assert cached is not None and cached[0] == PAYLOAD


@pytest.mark.asyncio
async def test_fetch_all_falls_back_to_cache(caplog: pytest.LogCaptureFixture) -> None:
    transport = _FakeTransport(get_responses=[PAYLOAD, TransportError("offline", url=OPERATIONAL_URL)])
    store = _store(transport)
    await store.fetch_all()

    with caplog.at_level("WARNING", logger="fleetcheck.store"):
        dataset = await store.fetch_all(force_refresh=True)

    assert dataset.from_cache
    assert [vehicle.id for vehicle in dataset.vehicles] == ["v1"]
    assert "using cached data" in caplog.text


@pytest.mark.asyncio
async def test_fetch_all_without_cache_raises() -> None:
    store = _store(_FakeTransport(get_responses=[TransportError("offline", url=OPERATIONAL_URL)]))
    with pytest.raises(PersistenceError) as excinfo:
        await store.fetch_all()
    assert excinfo.value.operation == "fetch_all"


@pytest.mark.asyncio
async def test_non_object_payload_counts_as_failure() -> None:
    store = _store(_FakeTransport(get_responses=[["not", "an", "object"]]))
    with pytest.raises(PersistenceError):
        await store.fetch_all()


@pytest.mark.asyncio
async def test_concurrent_fetches_share_one_request() -> None:
    gate = asyncio.Event()
    transport = _FakeTransport(get_responses=[PAYLOAD], gate=gate)
    store = _store(transport)

    first = asyncio.ensure_future(store.fetch_all())
    second = asyncio.ensure_future(store.fetch_all())
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(first, second)

    assert len(transport.gets) == 1
    assert results[0] is results[1]


@pytest.mark.asyncio
async def test_cancelled_caller_leaves_shared_fetch_running() -> None:
    gate = asyncio.Event()
    transport = _FakeTransport(get_responses=[PAYLOAD], gate=gate)
    store = _store(transport)

    first = asyncio.ensure_future(store.fetch_all())
    second = asyncio.ensure_future(store.fetch_all())
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)
    gate.set()
    dataset = await second

    assert first.cancelled()
    assert [vehicle.id for vehicle in dataset.vehicles] == ["v1"]
    assert len(transport.gets) == 1


@pytest.mark.asyncio
async def test_closing_store_cancels_in_flight_fetch() -> None:
    gate = asyncio.Event()
    transport = _FakeTransport(get_responses=[PAYLOAD], gate=gate)

    async with _store(transport) as store:
        caller = asyncio.ensure_future(store.fetch_all())
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    with pytest.raises(asyncio.CancelledError):
        await caller
    assert transport.get_responses == [PAYLOAD]


@pytest.mark.asyncio
async def test_cache_file_survives_a_new_store(tmp_path: Path) -> None:
    path = tmp_path / "cache" / "dataset.json"
    await _store(_FakeTransport(get_responses=[PAYLOAD]), DatasetCache(path)).fetch_all()
    assert json.loads(path.read_text(encoding="utf-8"))["payload"] == PAYLOAD

    offline = _store(_FakeTransport(get_responses=[TransportError("offline")]), DatasetCache(path))
    dataset = await offline.fetch_all()
    assert dataset.from_cache
    assert dataset.fetched_at == FETCHED_AT


@pytest.mark.asyncio
async def test_save_check_posts_row_form() -> None:
    transport = _FakeTransport()
    await _store(transport).save_check(_check())

    url, body = transport.posts[0]
    assert url == OPERATIONAL_URL
    assert body["type"] == "CHECK"
    assert body["action"] == "SAVE"
    assert body["vehicleId"] == "v1"
    assert json.loads(body["responsibleNames"]) == ["A"]


@pytest.mark.asyncio
async def test_save_log_goes_to_audit_endpoint() -> None:
    transport = _FakeTransport()
    await _store(transport).save_log(LogEntry(id="l1", user_id="usr1", action="LOGIN", details="Signed in"))

    url, body = transport.posts[0]
    assert url == AUDIT_URL
    assert body["type"] == "LOG"
    assert body["action"] == "SAVE"
    assert body["logAction"] == "LOGIN"
    assert body["userId"] == "usr1"


@pytest.mark.asyncio
async def test_write_failure_carries_operation() -> None:
    store = _store(_FakeTransport(fail_posts=True))
    with pytest.raises(PersistenceError) as excinfo:
        await store.save_check(_check())
    assert excinfo.value.operation == "CHECK:SAVE"


@pytest.mark.asyncio
async def test_fetch_logs_reads_legacy_columns() -> None:
    rows = {
        "data": [
            {"id": "l1", "userId": "usr1", "operador": "J. Doe", "acao": "LOGIN", "timestamp": "2026-01-02T10:00:00Z"},
            {"timestamp": "2026-01-02T11:00:00Z", "action": "LOGOUT", "details": "Session closed."},
            "garbage",
        ]
    }
    transport = _FakeTransport(get_responses=[rows])
    logs = await _store(transport).fetch_logs()

    assert transport.gets[0][0] == AUDIT_URL
    assert transport.gets[0][1]["type"] == "LOGS"
    assert [log.action for log in logs] == ["LOGIN", "LOGOUT"]
    assert logs[0].user_name == "J. Doe"
    assert logs[1].id == "2026-01-02T11:00:00Z"


@pytest.mark.asyncio
async def test_fetch_logs_failure_raises() -> None:
    store = _store(_FakeTransport(get_responses=[TransportError("offline")]))
    with pytest.raises(PersistenceError):
        await store.fetch_logs()


def test_cache_load_returns_independent_copies() -> None:
    cache = DatasetCache()
    cache.store({"vehicles": [{"id": "v1"}]})
    loaded, stored_at = cache.load()
    loaded["vehicles"].clear()
    assert cache.load()[0] == {"vehicles": [{"id": "v1"}]}
    assert stored_at is not None
    cache.clear()
    assert cache.load() is None


def test_corrupt_cache_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "dataset.json"
    path.write_text("{not json", encoding="utf-8")
    assert DatasetCache(path).load() is None
