from __future__ import annotations

import json
from datetime import UTC, date, datetime

import pytest

from fleetcheck.exceptions import MissingObservationError
from fleetcheck.models import (
    CheckEntry,
    CheckStatus,
    Dataset,
    InventoryCheck,
    LogEntry,
    ScopeLevel,
    Station,
    User,
    Vehicle,
    VehicleStatus,
)


def _check_payload() -> dict:
    return {
        "id": "c1",
        "vehicleId": "v1",
        "date": "2026-01-02T03:00:00.000Z",
        "shiftColor": "Yellow",
        "responsibleNames": '["Sgt. Silva"]',
        "commanderName": "Lt. Costa",
        "entries": json.dumps(
            [
                {"itemId": "i1", "status": "OK"},
                {"itemId": "i2", "status": "NOTED", "observation": "Cracked"},
            ]
        ),
        "timestamp": "2026-01-02T12:00:00Z",
        "justification": "",
        "headerDetails": '{"unit": "1ST UNIT", "station": "PLATOON CENTRAL"}',
        "snapshot": '[{"id": "i1", "name": "Hose", "quantity": "2"}, {"id": "i2", "name": "Axe"}]',
        "vehicleStatusAtTime": "operating",
    }


def test_check_row_decodes_json_text_fields() -> None:
    check = InventoryCheck.from_row(_check_payload())

    assert check.date == date(2026, 1, 2)
    assert check.responsible_names == ("Sgt. Silva",)
    assert check.entries[1].status is CheckStatus.NOTED
    assert check.entries[1].observation == "Cracked"
    assert check.justification is None
    assert check.header_details is not None and check.header_details.unit == "1ST UNIT"
    assert check.snapshot[0].quantity == 2
    assert check.vehicle_status_at_time is VehicleStatus.OPERATING
    assert check.timestamp == datetime(2026, 1, 2, 12, 0, tzinfo=UTC)
    assert [entry.item_id for entry in check.findings] == ["i2"]


def test_check_survives_row_and_wire_forms() -> None:
    check = InventoryCheck.from_row(_check_payload())

    row = check.to_row()
    assert isinstance(row["entries"], str)
    assert isinstance(row["snapshot"], str)
    assert row["date"] == "2026-01-02"
    assert InventoryCheck.from_row(row) == check

    assert InventoryCheck.from_wire(check.to_wire()) == check


def test_unreadable_nested_json_falls_back_to_empty() -> None:
    payload = _check_payload() | {"entries": "not json", "snapshot": "undefined", "headerDetails": "{"}
    check = InventoryCheck.from_row(payload)
    assert check.entries == ()
    assert check.snapshot == ()
    assert check.header_details is None


def test_naive_timestamp_is_read_as_utc() -> None:
    check = InventoryCheck.from_row(_check_payload() | {"timestamp": "2026-01-02T12:00:00"})
    assert check.timestamp.tzinfo is UTC


def test_vehicle_items_from_json_text() -> None:
    vehicle = Vehicle.model_validate(
        {
            "id": "v1",
            "prefix": "ABT-01",
            "status": " Reserve ",
            "items": '[{"id": "i1", "name": "Hose", "compartment": "Rear"}, {"id": "i2", "name": "Axe"}]',
            "stationId": "",
        }
    )
    assert vehicle.status is VehicleStatus.RESERVE
    assert not vehicle.is_operating
    assert not vehicle.is_linked
    assert [item.id for item in vehicle.items] == ["i1", "i2"]
    assert list(vehicle.compartments()) == ["Rear", "GENERAL"]
    assert vehicle.item("i2") is not None and vehicle.item("i2").quantity == 1


def test_user_credentials_are_dropped_and_global_scope_cleared() -> None:
    user = User.model_validate(
        {"id": "u1", "username": "jdoe", "password": "hunter2", "scopeLevel": "global", "scopeId": "p1"}
    )
    assert user.scope_level is ScopeLevel.GLOBAL
    assert user.scope_id is None
    assert "password" not in user.to_wire()


def test_station_display_name() -> None:
    assert Station(id="p1", name="Central", classification="Platoon").display_name == "Platoon Central"
    assert Station(id="p2", name="East").display_name == "East"


def test_log_entry_defaults() -> None:
    entry = LogEntry(id="l1")
    assert entry.user_name == "System"
    assert entry.action == "INFO"
    assert entry.timestamp.tzinfo is not None


def test_dataset_skips_unreadable_rows() -> None:
    dataset = Dataset.from_payload(
        {
            "vehicles": [{"id": "v1"}, {"prefix": "no id"}],
            "checks": [_check_payload(), {"id": "broken"}],
            "stations": [{"id": "p1", "subunitId": "s1"}],
            "settings": '{"headerConfig": {"secretariat": "Public Safety"}}',
        }
    )
    assert [vehicle.id for vehicle in dataset.vehicles] == ["v1"]
    assert [check.id for check in dataset.checks] == ["c1"]
    assert dataset.settings.header_config is not None
    assert dataset.settings.header_config.secretariat == "Public Safety"
    assert dataset.checks_for("v1")[0].id == "c1"
    assert dataset.vehicle("v9") is None


def test_dataset_with_check_does_not_mutate_original() -> None:
    dataset = Dataset.from_payload({"vehicles": [{"id": "v1"}]})
    check = InventoryCheck.from_row(_check_payload())
    updated = dataset.with_check(check)
    assert dataset.checks == ()
    assert updated.checks == (check,)


@pytest.mark.parametrize("observation", [None, "", "   "])
def test_finding_without_observation_is_rejected(observation: str | None) -> None:
    with pytest.raises(MissingObservationError) as excinfo:
        CheckEntry(item_id="i1", status=CheckStatus.NOTED, observation=observation)
    assert excinfo.value.item_id == "i1"


def test_ok_entry_needs_no_observation() -> None:
    entry = CheckEntry(item_id="i1", status=CheckStatus.OK)
    assert not entry.requires_observation
    assert entry.observation is None


def test_dataset_skips_check_with_blank_finding(caplog: pytest.LogCaptureFixture) -> None:
    blank = _check_payload() | {
        "id": "c2",
        "entries": json.dumps([{"itemId": "i2", "status": "PRIOR_NOTED", "observation": " "}]),
    }
    with caplog.at_level("WARNING", logger="fleetcheck.models.dataset"):
        dataset = Dataset.from_payload({"checks": [_check_payload(), blank]})
    assert [check.id for check in dataset.checks] == ["c1"]
    assert "observation required for item 'i2'" in caplog.text
