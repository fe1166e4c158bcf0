"""Data models for fleetcheck records."""

from fleetcheck.models._base import FleetBaseModel, FleetEnum, decode_json_list, decode_json_object
from fleetcheck.models.audit import AuditAction, LogEntry
from fleetcheck.models.check import CheckEntry, CheckStatus, HeaderDetails, InventoryCheck
from fleetcheck.models.dataset import Dataset
from fleetcheck.models.hierarchy import Station, Subunit, Unit
from fleetcheck.models.settings import AgencyHeader, SystemSettings
from fleetcheck.models.user import Role, ScopeLevel, User
from fleetcheck.models.vehicle import MaterialItem, Vehicle, VehicleStatus

__all__ = [
    "AgencyHeader",
    "AuditAction",
    "CheckEntry",
    "CheckStatus",
    "Dataset",
    "FleetBaseModel",
    "FleetEnum",
    "HeaderDetails",
    "InventoryCheck",
    "LogEntry",
    "MaterialItem",
    "Role",
    "ScopeLevel",
    "Station",
    "Subunit",
    "SystemSettings",
    "Unit",
    "User",
    "Vehicle",
    "VehicleStatus",
    "decode_json_list",
    "decode_json_object",
]
