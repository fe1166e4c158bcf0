"""Explicit application state: the signed-in user and the current dataset.

One :class:`AppContext` per client session replaces process-wide
"current user" globals.  Credentials are checked before :meth:`login`;
the context only records who is signed in.
"""

from __future__ import annotations

import logging
import secrets

from fleetcheck.authorization import OrganizationIndex
from fleetcheck.calendar import ReadinessCalendar
from fleetcheck.capabilities import Permission, effective_permissions, has_capability, require_capability
from fleetcheck.checklist import ChecklistPhase, ChecklistSession
from fleetcheck.config import FleetCheckConfig
from fleetcheck.exceptions import ChecklistStateError, NotSignedInError, PersistenceError
from fleetcheck.models.audit import AuditAction, LogEntry
from fleetcheck.models.check import InventoryCheck
from fleetcheck.models.dataset import Dataset
from fleetcheck.models.hierarchy import Station
from fleetcheck.models.user import User
from fleetcheck.models.vehicle import Vehicle
from fleetcheck.store import RemoteStore

_logger = logging.getLogger(__name__)


class AppContext:
    """Application context for a single client session."""

    def __init__(
        self,
        config: FleetCheckConfig,
        store: RemoteStore,
        calendar: ReadinessCalendar | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._calendar = calendar or config.calendar()
        self._dataset = Dataset()
        self._index = OrganizationIndex.from_dataset(self._dataset)
        self._user: User | None = None
        self._session: ChecklistSession | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> FleetCheckConfig:
        return self._config

    @property
    def calendar(self) -> ReadinessCalendar:
        return self._calendar

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def index(self) -> OrganizationIndex:
        return self._index

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def checklist(self) -> ChecklistSession | None:
        return self._session

    def _require_user(self) -> User:
        if self._user is None:
            raise NotSignedInError("no user is signed in")
        return self._user

    async def refresh(self, *, force: bool = False) -> Dataset:
        """Replace the dataset with a fresh bulk read."""
        dataset = await self._store.fetch_all(force_refresh=force)
        self._set_dataset(dataset)
        return dataset

    def _set_dataset(self, dataset: Dataset) -> None:
        self._dataset = dataset
        self._index = OrganizationIndex.from_dataset(dataset)

    # ------------------------------------------------------------------
    # Sign-in lifecycle
    # ------------------------------------------------------------------

    async def login(self, user: User) -> None:
        if self._user is not None:
            await self.logout()
        self._user = user
        _logger.info("User %s signed in", user.id)
        await self._audit(user, AuditAction.LOGIN, f"Signed in: {user.username or user.id}")

    async def logout(self) -> None:
        user = self._user
        if user is None:
            return
        if self._session is not None:
            self._session.cancel()
        self._session = None
        self._user = None
        _logger.info("User %s signed out", user.id)
        await self._audit(user, AuditAction.LOGOUT, "Session closed.")

    async def _audit(self, user: User, action: AuditAction, details: str) -> None:
        entry = LogEntry(
            id=secrets.token_hex(6),
            user_id=user.id,
            user_name=user.name or user.username or "System",
            action=action.value,
            details=details,
        )
        try:
            await self._store.save_log(entry)
        except PersistenceError:
            _logger.warning("Audit entry %s for user %s was not written", action.value, user.id, exc_info=True)

    # ------------------------------------------------------------------
    # Queries for the signed-in user
    # ------------------------------------------------------------------

    def visible_stations(self) -> tuple[Station, ...]:
        return self._index.visible_stations(self._require_user())

    def visible_vehicles(self) -> tuple[Vehicle, ...]:
        return self._index.visible_vehicles(self._require_user(), self._dataset.vehicles)

    def permissions(self) -> frozenset[Permission]:
        return effective_permissions(self._require_user(), self._dataset.settings)

    def can(self, permission: Permission) -> bool:
        if self._user is None:
            return False
        return has_capability(self._user, permission, self._dataset.settings)

    # ------------------------------------------------------------------
    # Checklist
    # ------------------------------------------------------------------

    def open_checklist(self) -> ChecklistSession:
        """Start a checklist session for the signed-in user.

        Raises
        ------
        CapabilityError
            The user's role does not allow performing checklists.
        ChecklistStateError
            A session is already being filled in.
        """
        user = self._require_user()
        require_capability(user, Permission.PERFORM_CHECKLIST, self._dataset.settings)
        if self._session is not None and self._session.phase is ChecklistPhase.FILLING:
            raise ChecklistStateError("a checklist is already in progress; cancel it first")
        self._session = ChecklistSession(
            self._calendar,
            self._store,
            checks=self._dataset.checks,
            index=self._index,
            header=self._config.header,
            agency=self._dataset.settings.header_config,
            vehicle_lookup=self._dataset_vehicle,
            actor=user,
            on_complete=self._record_check,
        )
        return self._session

    def _dataset_vehicle(self, vehicle_id: str) -> Vehicle | None:
        return self._dataset.vehicle(vehicle_id)

    def _record_check(self, check: InventoryCheck) -> None:
        self._dataset = self._dataset.with_check(check)
