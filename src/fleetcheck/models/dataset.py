"""The bulk-read snapshot of every table the core works with."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar

from pydantic import Field, ValidationError

from fleetcheck.exceptions import ChecklistValidationError
from fleetcheck.models._base import FleetBaseModel, decode_json_object
from fleetcheck.models.check import InventoryCheck
from fleetcheck.models.hierarchy import Station, Subunit, Unit
from fleetcheck.models.settings import SystemSettings
from fleetcheck.models.user import User
from fleetcheck.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=FleetBaseModel)


def _parse_rows(model: type[M], rows: Any, table: str) -> tuple[M, ...]:
    """Validate each row, skipping (and logging) rows that cannot be read."""
    if not isinstance(rows, list):
        return ()
    parsed: list[M] = []
    for position, row in enumerate(rows):
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            _logger.warning("Skipping unreadable %s row %d: %s", table, position, exc.errors()[:1])
        except ChecklistValidationError as exc:
            _logger.warning("Skipping unreadable %s row %d: %s", table, position, exc)
    return tuple(parsed)


class Dataset(FleetBaseModel):
    """Everything fetched from the remote store in one read.

    A dataset is replaced wholesale on every refresh; it is never
    patched in place.
    """

    units: tuple[Unit, ...] = Field(default_factory=tuple)
    subunits: tuple[Subunit, ...] = Field(default_factory=tuple)
    stations: tuple[Station, ...] = Field(default_factory=tuple)
    vehicles: tuple[Vehicle, ...] = Field(default_factory=tuple)
    checks: tuple[InventoryCheck, ...] = Field(default_factory=tuple)
    users: tuple[User, ...] = Field(default_factory=tuple)
    settings: SystemSettings = Field(default_factory=SystemSettings)
    fetched_at: datetime | None = None
    from_cache: bool = False
    """``True`` when the remote read failed and the last good copy was used."""

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        *,
        fetched_at: datetime | None = None,
        from_cache: bool = False,
    ) -> Dataset:
        """Build a dataset from the remote store's bulk-read JSON."""
        data = payload if isinstance(payload, dict) else {}
        settings_raw = decode_json_object(data.get("settings"))
        return cls(
            units=_parse_rows(Unit, data.get("units"), "units"),
            subunits=_parse_rows(Subunit, data.get("subunits"), "subunits"),
            stations=_parse_rows(Station, data.get("stations"), "stations"),
            vehicles=_parse_rows(Vehicle, data.get("vehicles"), "vehicles"),
            checks=_parse_rows(InventoryCheck, data.get("checks"), "checks"),
            users=_parse_rows(User, data.get("users"), "users"),
            settings=SystemSettings.model_validate(settings_raw or {}),
            fetched_at=fetched_at,
            from_cache=from_cache,
        )

    def vehicle(self, vehicle_id: str) -> Vehicle | None:
        for vehicle in self.vehicles:
            if vehicle.id == vehicle_id:
                return vehicle
        return None

    def checks_for(self, vehicle_id: str) -> tuple[InventoryCheck, ...]:
        return tuple(check for check in self.checks if check.vehicle_id == vehicle_id)

    def with_check(self, check: InventoryCheck) -> Dataset:
        """Copy of this dataset with *check* appended."""
        return self.model_copy(update={"checks": (*self.checks, check)})
