from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import pytest

from fleetcheck.calendar import ReadinessCalendar
from fleetcheck.capabilities import Permission
from fleetcheck.config import FleetCheckConfig
from fleetcheck.context import AppContext
from fleetcheck.exceptions import CapabilityError, ChecklistStateError, NotSignedInError
from fleetcheck.models import CheckStatus, ScopeLevel, User
from fleetcheck.store import RemoteStore

NOW = datetime(2026, 1, 2, 9, 0)

PAYLOAD = {
    "units": [{"id": "u1", "name": "1st Unit"}, {"id": "u2", "name": "2nd Unit"}],
    "subunits": [{"id": "s1", "unitId": "u1", "name": "Sub A"}, {"id": "s2", "unitId": "u2", "name": "Sub B"}],
    "stations": [
        {"id": "p1", "subunitId": "s1", "name": "Central", "municipality": "Springfield", "classification": "Platoon"},
        {"id": "p2", "subunitId": "s2", "name": "Harbor"},
    ],
    "vehicles": [
        {
            "id": "v1",
            "prefix": "ABT-01",
            "stationId": "p1",
            "items": json.dumps([{"id": "i1", "name": "Hose"}, {"id": "i2", "name": "Axe"}]),
        },
        {"id": "v2", "prefix": "ABT-02", "stationId": "p2", "items": "[]"},
        {"id": "v3", "prefix": "UR-03", "items": "[]"},
    ],
    "checks": [],
    "users": [],
    "settings": {"headerConfig": {"secretariat": "Public Safety"}},
}


@dataclasses.dataclass
class _FakeTransport:
    payload: dict[str, Any]
    posts: list[dict[str, Any]] = dataclasses.field(default_factory=list)

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        return self.payload

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:
        self.posts.append(dict(payload))
        return None


def _context(payload: dict[str, Any] = PAYLOAD) -> tuple[AppContext, _FakeTransport]:
    transport = _FakeTransport(payload=payload)
    config = FleetCheckConfig(operational_url="https://example.invalid/ops")
    store = RemoteStore(config, transport)
    return AppContext(config, store, ReadinessCalendar(clock=lambda: NOW)), transport


@pytest.mark.asyncio
async def test_scoped_user_sees_only_own_unit() -> None:
    context, _ = _context()
    await context.refresh()
    await context.login(User(id="a", scope_level=ScopeLevel.UNIT, scope_id="u1"))

    assert [vehicle.id for vehicle in context.visible_vehicles()] == ["v1"]
    assert [station.id for station in context.visible_stations()] == ["p1"]


@pytest.mark.asyncio
async def test_login_and_logout_are_audited_and_logout_tears_down() -> None:
    context, transport = _context()
    await context.refresh()
    await context.login(User(id="a", username="jdoe", name="J. Doe"))
    session = context.open_checklist()
    session.start(context.dataset.vehicles[0])

    await context.logout()

    assert [post["logAction"] for post in transport.posts] == ["LOGIN", "LOGOUT"]
    assert context.user is None
    assert context.checklist is None
    assert session.vehicle is None
    with pytest.raises(NotSignedInError):
        context.visible_vehicles()


@pytest.mark.asyncio
async def test_completed_check_is_added_to_dataset() -> None:
    context, transport = _context()
    await context.refresh()
    await context.login(User(id="a", name="J. Doe"))

    session = context.open_checklist()
    session.start(context.dataset.vehicle("v1"))
    session.set_entry("i1", CheckStatus.OK)
    session.set_entry("i2", CheckStatus.NOTED, "Handle loose")
    session.set_signatories(["Sgt. Silva"], "Lt. Costa")
    record = await session.submit()

    assert context.dataset.checks == (record,)
    assert record.header_details is not None
    assert record.header_details.secretariat == "Public Safety"
    assert record.header_details.station == "PLATOON CENTRAL"
    assert [post["type"] for post in transport.posts] == ["LOG", "CHECK", "LOG"]

    # A second checklist for the same vehicle now needs a justification.
    second = context.open_checklist()
    second.start(context.dataset.vehicle("v1"))
    assert second.justification_required


@pytest.mark.asyncio
async def test_open_checklist_requires_capability() -> None:
    payload = PAYLOAD | {"settings": {"rolePermissions": {"BASIC": ["view_dashboard"]}}}
    context, _ = _context(payload)
    await context.refresh()
    await context.login(User(id="a", role="BASIC"))

    assert not context.can(Permission.PERFORM_CHECKLIST)
    with pytest.raises(CapabilityError):
        context.open_checklist()


@pytest.mark.asyncio
async def test_only_one_checklist_in_progress() -> None:
    context, _ = _context()
    await context.refresh()
    await context.login(User(id="a"))
    session = context.open_checklist()
    session.start(context.dataset.vehicles[0])

    with pytest.raises(ChecklistStateError):
        context.open_checklist()

    session.cancel()
    assert context.open_checklist() is not session


def test_signed_out_context_has_no_capabilities() -> None:
    context, _ = _context()
    assert not context.can(Permission.VIEW_DASHBOARD)
    with pytest.raises(NotSignedInError):
        context.open_checklist()
