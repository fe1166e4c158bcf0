"""Inventory check records.

An :class:`InventoryCheck` is immutable once created.  It carries its own
copy of the vehicle's material list (``snapshot``) and resolved header,
so later edits to the vehicle or the hierarchy never alter history.
"""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from fleetcheck.exceptions import MissingObservationError
from fleetcheck.models._base import FleetBaseModel, FleetEnum, decode_json_list, decode_json_object
from fleetcheck.models.vehicle import MaterialItem, VehicleStatus

# Nested fields the spreadsheet backend stores as JSON text.
_ROW_JSON_FIELDS = ("entries", "responsibleNames", "headerDetails", "snapshot")

# Alias so the `date` field below does not shadow its own type.
CalendarDate = date


class CheckStatus(FleetEnum):
    """Outcome recorded for one material item."""

    OK = "OK"
    NOTED = "NOTED"
    """A new finding, described in the observation."""
    PRIOR_NOTED = "PRIOR_NOTED"
    """A finding already reported on an earlier check."""


class CheckEntry(FleetBaseModel):
    """Answer for one material item."""

    item_id: str
    status: CheckStatus
    observation: str | None = None

    @model_validator(mode="after")
    def _require_observation(self) -> CheckEntry:
        if self.requires_observation and not self.has_observation:
            raise MissingObservationError(self.item_id)
        return self

    @property
    def requires_observation(self) -> bool:
        return self.status is not CheckStatus.OK

    @property
    def has_observation(self) -> bool:
        return bool(self.observation and self.observation.strip())


class HeaderDetails(FleetBaseModel):
    """Organizational names resolved when the check was made."""

    secretariat: str = ""
    department: str = ""
    fire_corps: str = ""
    unit: str = ""
    subunit: str = ""
    station: str = ""
    city: str = ""


class InventoryCheck(FleetBaseModel):
    """Immutable audit record of one checklist submission."""

    id: str
    vehicle_id: str
    date: CalendarDate
    """Operational day the check was made for."""
    shift_color: str
    responsible_names: tuple[str, ...] = Field(default_factory=tuple)
    commander_name: str = ""
    entries: tuple[CheckEntry, ...] = Field(default_factory=tuple)
    timestamp: datetime
    justification: str | None = None
    header_details: HeaderDetails | None = None
    snapshot: tuple[MaterialItem, ...] = Field(default_factory=tuple)
    vehicle_status_at_time: VehicleStatus | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _date_part(cls, value: Any) -> Any:
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("entries", "snapshot", mode="before")
    @classmethod
    def _decode_list(cls, value: Any) -> tuple[Any, ...]:
        return tuple(decode_json_list(value))

    @field_validator("responsible_names", mode="before")
    @classmethod
    def _decode_names(cls, value: Any) -> tuple[str, ...]:
        return tuple(str(name) for name in decode_json_list(value))

    @field_validator("header_details", mode="before")
    @classmethod
    def _decode_header(cls, value: Any) -> Any:
        return decode_json_object(value)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entry_for(self, item_id: str) -> CheckEntry | None:
        for entry in self.entries:
            if entry.item_id == item_id:
                return entry
        return None

    @property
    def findings(self) -> tuple[CheckEntry, ...]:
        """Entries whose status is not OK."""
        return tuple(entry for entry in self.entries if entry.status is not CheckStatus.OK)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> InventoryCheck:
        return cls.model_validate(payload)

    def to_row(self) -> dict[str, Any]:
        """Wire form with nested fields JSON-encoded, as stored in a spreadsheet row."""
        row = self.to_wire()
        for key in _ROW_JSON_FIELDS:
            if key in row:
                row[key] = json.dumps(row[key], ensure_ascii=False)
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> InventoryCheck:
        return cls.model_validate(row)
