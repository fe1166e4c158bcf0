from __future__ import annotations

from datetime import UTC, date, datetime

from fleetcheck.models import CheckEntry, CheckStatus, InventoryCheck, Vehicle, VehicleStatus
from fleetcheck.reports import (
    checked_vehicle_ids,
    checks_on,
    entries_with_findings,
    monthly_fulfillment,
    pending_vehicles,
    shift_distribution,
)

VEHICLES = (
    Vehicle(id="v1", prefix="ABT-01"),
    Vehicle(id="v2", prefix="ABT-02"),
    Vehicle(id="v3", prefix="ABT-03"),
    Vehicle(id="v4", prefix="ABT-04", status=VehicleStatus.DECOMMISSIONED),
)


def _check(check_id: str, vehicle_id: str, day: date, color: str = "Green", entries=()) -> InventoryCheck:
    return InventoryCheck(
        id=check_id,
        vehicle_id=vehicle_id,
        date=day,
        shift_color=color,
        responsible_names=("A",),
        commander_name="B",
        entries=entries,
        timestamp=datetime.combine(day, datetime.min.time(), tzinfo=UTC),
    )


CHECKS = (
    _check("c1", "v1", date(2026, 1, 10), "Yellow"),
    _check("c2", "v2", date(2026, 1, 4), "Green"),
    _check("c3", "v1", date(2026, 1, 4), "Green"),
    _check("c4", "v1", date(2026, 2, 1), "Blue"),
)


def test_checks_on_day() -> None:
    assert [check.id for check in checks_on(CHECKS, date(2026, 1, 4))] == ["c2", "c3"]
    assert checked_vehicle_ids(CHECKS, date(2026, 1, 4)) == {"v1", "v2"}


def test_pending_vehicles_sorted_by_neglect() -> None:
    pending = pending_vehicles(VEHICLES, CHECKS, date(2026, 1, 10))

    assert [p.vehicle.id for p in pending] == ["v3", "v2"]
    assert pending[0].last_checked is None
    assert pending[0].days_since_last_check is None
    assert pending[1].last_checked == date(2026, 1, 4)
    assert pending[1].days_since_last_check == 6


def test_shift_distribution_for_month() -> None:
    assert shift_distribution(CHECKS, 2026, 1) == {"Yellow": 1, "Green": 2}
    assert shift_distribution(CHECKS, 2026, 3) == {}


def test_monthly_fulfillment() -> None:
    fulfillment = monthly_fulfillment(VEHICLES[:3], CHECKS, 2026, 1)
    assert fulfillment == {"v1": (4, 10), "v2": (4,), "v3": ()}


def test_entries_with_findings() -> None:
    check = _check(
        "c9",
        "v1",
        date(2026, 1, 10),
        entries=(
            CheckEntry(item_id="i1", status=CheckStatus.OK),
            CheckEntry(item_id="i2", status=CheckStatus.NOTED, observation="Bent"),
            CheckEntry(item_id="i3", status=CheckStatus.PRIOR_NOTED, observation="Still bent"),
        ),
    )
    assert [entry.item_id for entry in entries_with_findings(check)] == ["i2", "i3"]
