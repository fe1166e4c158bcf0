"""fleetcheck - Daily vehicle inventory checks for fire-service fleets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetcheck")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetcheck.authorization import OrganizationIndex, visible_stations, visible_vehicles
from fleetcheck.calendar import ReadinessCalendar, ReadinessState, readiness_state, shift_reference_date
from fleetcheck.capabilities import Permission, has_capability, require_capability
from fleetcheck.checklist import CheckRepository, ChecklistPhase, ChecklistSession
from fleetcheck.config import FleetCheckConfig, HeaderConfig
from fleetcheck.context import AppContext
from fleetcheck.exceptions import (
    CapabilityError,
    ChecklistError,
    ChecklistStateError,
    ChecklistValidationError,
    FleetCheckConfigError,
    FleetCheckError,
    HierarchyIntegrityError,
    IncompleteChecklistError,
    MissingJustificationError,
    MissingObservationError,
    MissingSignatoriesError,
    NotSignedInError,
    PersistenceError,
    TransportError,
    UnknownItemError,
)
from fleetcheck.models import (
    CheckEntry,
    CheckStatus,
    Dataset,
    InventoryCheck,
    LogEntry,
    MaterialItem,
    Role,
    ScopeLevel,
    Station,
    Subunit,
    Unit,
    User,
    Vehicle,
    VehicleStatus,
)
from fleetcheck.store import RemoteStore

__all__ = [
    "__version__",
    "AppContext",
    "CapabilityError",
    "CheckEntry",
    "CheckRepository",
    "CheckStatus",
    "ChecklistError",
    "ChecklistPhase",
    "ChecklistSession",
    "ChecklistStateError",
    "ChecklistValidationError",
    "Dataset",
    "FleetCheckConfig",
    "FleetCheckConfigError",
    "FleetCheckError",
    "HeaderConfig",
    "HierarchyIntegrityError",
    "IncompleteChecklistError",
    "InventoryCheck",
    "LogEntry",
    "MaterialItem",
    "MissingJustificationError",
    "MissingObservationError",
    "MissingSignatoriesError",
    "NotSignedInError",
    "OrganizationIndex",
    "Permission",
    "PersistenceError",
    "ReadinessCalendar",
    "ReadinessState",
    "RemoteStore",
    "Role",
    "ScopeLevel",
    "Station",
    "Subunit",
    "TransportError",
    "Unit",
    "UnknownItemError",
    "User",
    "Vehicle",
    "VehicleStatus",
    "has_capability",
    "readiness_state",
    "require_capability",
    "shift_reference_date",
    "visible_stations",
    "visible_vehicles",
]
