"""Vehicle and material list models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from fleetcheck._constants import GENERAL_COMPARTMENT
from fleetcheck.models._base import FleetBaseModel, FleetEnum, decode_json_list


class VehicleStatus(FleetEnum):
    """Operational status of a vehicle."""

    OPERATING = "OPERATING"
    RESERVE = "RESERVE"
    DECOMMISSIONED = "DECOMMISSIONED"


class MaterialItem(FleetBaseModel):
    """One line of a vehicle's equipment list."""

    id: str
    name: str = ""
    specification: str = ""
    quantity: int = 1
    compartment: str = ""

    @property
    def compartment_label(self) -> str:
        """Compartment name used for grouping; blank groups under ``GENERAL``."""
        return self.compartment.strip() or GENERAL_COMPARTMENT

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> int:
        if isinstance(value, str):
            value = value.strip()
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return 1


class Vehicle(FleetBaseModel):
    """An emergency vehicle and its current material list.

    ``items`` accepts the JSON text form stored by the remote store.
    A vehicle without ``station_id`` is *unlinked*: only GLOBAL scopes
    can see it.
    """

    id: str
    prefix: str = ""
    name: str = ""
    status: VehicleStatus = VehicleStatus.OPERATING
    items: tuple[MaterialItem, ...] = Field(default_factory=tuple)
    station_id: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _decode_items(cls, value: Any) -> Any:
        return tuple(decode_json_list(value))

    @property
    def is_linked(self) -> bool:
        return bool(self.station_id)

    @property
    def is_operating(self) -> bool:
        return self.status is VehicleStatus.OPERATING

    def item(self, item_id: str) -> MaterialItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def compartments(self) -> dict[str, list[MaterialItem]]:
        """Items grouped by compartment label, in first-seen order."""
        grouped: dict[str, list[MaterialItem]] = {}
        for item in self.items:
            grouped.setdefault(item.compartment_label, []).append(item)
        return grouped

