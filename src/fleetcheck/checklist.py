"""Checklist workflow: from vehicle selection to an immutable check record.

A :class:`ChecklistSession` moves through three phases::

    SELECTING --start()--> FILLING --submit()--> FINISHED
        ^                     |                     |
        +------cancel()-------+-------reset()-------+

The vehicle's material list is copied when the session starts.  Edits
made to the vehicle elsewhere while the checklist is being filled do not
change what is being checked, and the copy travels inside the resulting
:class:`~fleetcheck.models.check.InventoryCheck`.

Nothing reaches the repository until every rule passes.  A failed write
leaves the session in FILLING so the same submission can be retried.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime
from enum import StrEnum
from typing import Protocol

from fleetcheck.authorization import OrganizationIndex
from fleetcheck.calendar import ReadinessCalendar, ReadinessState
from fleetcheck.config import HeaderConfig
from fleetcheck.exceptions import (
    ChecklistStateError,
    IncompleteChecklistError,
    MissingJustificationError,
    MissingSignatoriesError,
    PersistenceError,
    UnknownItemError,
)
from fleetcheck.models.audit import AuditAction, LogEntry
from fleetcheck.models.check import CheckEntry, CheckStatus, HeaderDetails, InventoryCheck
from fleetcheck.models.settings import AgencyHeader
from fleetcheck.models.user import User
from fleetcheck.models.vehicle import MaterialItem, Vehicle

_logger = logging.getLogger(__name__)


class ChecklistPhase(StrEnum):
    SELECTING = "selecting"
    FILLING = "filling"
    FINISHED = "finished"


class CheckRepository(Protocol):
    """Persistence collaborator the workflow writes to.

    :class:`fleetcheck.store.RemoteStore` is the production implementation;
    tests pass in-memory doubles.
    """

    async def save_check(self, check: InventoryCheck) -> None:
        ...

    async def save_log(self, entry: LogEntry) -> None:
        ...


def _new_id() -> str:
    return secrets.token_hex(6)


def _pick(*candidates: str | None) -> str:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def resolve_header(
    vehicle: Vehicle,
    index: OrganizationIndex | None,
    header: HeaderConfig,
    agency: AgencyHeader | None = None,
) -> HeaderDetails:
    """Resolve the organizational names printed on a check.

    Agency lines come from the remote settings when set, else from
    *header*.  Unit, subunit, station and city follow the vehicle's
    station; each missing link falls back to its placeholder.
    """
    lineage = index.lineage(vehicle.station_id) if index is not None else None
    station = lineage.station if lineage is not None else None
    subunit = lineage.subunit if lineage is not None else None
    unit = lineage.unit if lineage is not None else None

    classification = _pick(station.classification if station else None, header.station_classification_placeholder)
    station_label = f"{classification} {station.name if station else ''}".strip()

    return HeaderDetails(
        secretariat=_pick(agency.secretariat if agency else None, header.secretariat),
        department=_pick(agency.department if agency else None, header.department),
        fire_corps=_pick(agency.fire_corps if agency else None, header.fire_corps),
        unit=_pick(unit.name if unit else None, header.unit_placeholder).upper(),
        subunit=_pick(subunit.name if subunit else None, header.subunit_placeholder).upper(),
        station=station_label.upper(),
        city=_pick(station.municipality if station else None, header.city_placeholder).upper(),
    )


class ChecklistSession:
    """One user's checklist, owned by a single client session.

    Parameters
    ----------
    calendar : ReadinessCalendar
        Supplies the current operational day and the shift color.
    repository : CheckRepository
        Receives the finished record and the audit entry.
    checks : iterable of InventoryCheck
        Checks already on record; used by the justification rule.
    index : OrganizationIndex or None
        Resolves the header names.  Without it every header link falls
        back to its placeholder.
    header : HeaderConfig
        Agency lines and placeholders.
    agency : AgencyHeader or None
        Remote override of the agency lines.
    vehicle_lookup : callable or None
        Returns the live vehicle by id at submission time, for the
        status and header stamped on the record.  Defaults to the
        vehicle the session started with.
    actor : User or None
        Author named in the audit entry.
    on_complete : callable or None
        Called with each record after it was persisted and audited.
        Errors it raises are logged, not propagated.
    """

    def __init__(
        self,
        calendar: ReadinessCalendar,
        repository: CheckRepository,
        *,
        checks: Iterable[InventoryCheck] = (),
        index: OrganizationIndex | None = None,
        header: HeaderConfig | None = None,
        agency: AgencyHeader | None = None,
        vehicle_lookup: Callable[[str], Vehicle | None] | None = None,
        actor: User | None = None,
        on_complete: Callable[[InventoryCheck], None] | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._calendar = calendar
        self._repository = repository
        self._known_checks: list[InventoryCheck] = list(checks)
        self._index = index
        self._header = header or HeaderConfig()
        self._agency = agency
        self._vehicle_lookup = vehicle_lookup
        self._actor = actor
        self._on_complete = on_complete
        self._clock = clock or calendar.now
        self._id_factory = id_factory

        self._phase = ChecklistPhase.SELECTING
        self._vehicle: Vehicle | None = None
        self._snapshot: tuple[MaterialItem, ...] = ()
        self._entries: dict[str, CheckEntry] = {}
        self._check_date: date | None = None
        self._justification = ""
        self._responsible: tuple[str, ...] = ()
        self._commander = ""
        self._last_check: InventoryCheck | None = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def phase(self) -> ChecklistPhase:
        return self._phase

    @property
    def vehicle(self) -> Vehicle | None:
        return self._vehicle

    @property
    def snapshot(self) -> tuple[MaterialItem, ...]:
        return self._snapshot

    @property
    def check_date(self) -> date | None:
        return self._check_date

    @property
    def last_check(self) -> InventoryCheck | None:
        return self._last_check

    @property
    def entries(self) -> tuple[CheckEntry, ...]:
        """Answered entries, in snapshot order."""
        return tuple(self._entries[item.id] for item in self._snapshot if item.id in self._entries)

    @property
    def missing_items(self) -> tuple[MaterialItem, ...]:
        return tuple(item for item in self._snapshot if item.id not in self._entries)

    @property
    def progress(self) -> int:
        """Answered share of the snapshot, as a whole percentage."""
        if not self._snapshot:
            return 0
        return round(len(self._entries) / len(self._snapshot) * 100)

    @property
    def pending_compartments(self) -> tuple[str, ...]:
        """Compartments with at least one unanswered item, in snapshot order."""
        pending: dict[str, None] = {}
        for item in self.missing_items:
            pending.setdefault(item.compartment_label, None)
        return tuple(pending)

    @property
    def shift_state(self) -> ReadinessState | None:
        if self._check_date is None:
            return None
        return self._calendar.readiness_state(self._check_date)

    @property
    def justification_required(self) -> bool:
        """Whether a justification must accompany this check.

        Required when the selected day is not the current operational
        day, or when the vehicle already has a check for that day.
        Repeated checks are still accepted; the rule only asks why.
        """
        if self._vehicle is None or self._check_date is None:
            return False
        day = self._check_date
        if not self._calendar.is_current_operational_day(day, self._clock()):
            return True
        return any(self._same_day_check(check, day) for check in self._known_checks)

    def _same_day_check(self, check: InventoryCheck, day: date) -> bool:
        if self._vehicle is None or check.vehicle_id != self._vehicle.id:
            return False
        return check.date == day or self._calendar.shift_reference_date(check.timestamp) == day

    # ------------------------------------------------------------------
    # Transitions and edits
    # ------------------------------------------------------------------

    def _require(self, phase: ChecklistPhase, action: str) -> None:
        if self._phase is not phase:
            raise ChecklistStateError(f"cannot {action} while {self._phase.value}")

    def start(self, vehicle: Vehicle) -> None:
        """Select *vehicle* and begin filling its checklist."""
        self._require(ChecklistPhase.SELECTING, "start a checklist")
        self._vehicle = vehicle
        self._snapshot = tuple(vehicle.items)
        self._entries = {}
        self._justification = ""
        self._check_date = self._calendar.shift_reference_date(self._clock())
        self._phase = ChecklistPhase.FILLING
        _logger.debug("Checklist started for vehicle %s (%d items)", vehicle.id, len(self._snapshot))

    def set_entry(self, item_id: str, status: CheckStatus | str, observation: str | None = None) -> CheckEntry:
        """Record the answer for one snapshot item.

        Raises
        ------
        UnknownItemError
            *item_id* is not part of the snapshot.
        MissingObservationError
            *status* is not OK and *observation* is blank.
        """
        self._require(ChecklistPhase.FILLING, "record an entry")
        if not any(item.id == item_id for item in self._snapshot):
            raise UnknownItemError(item_id)
        entry = CheckEntry(
            item_id=item_id,
            status=CheckStatus(status),
            observation=(observation or "").strip() or None,
        )
        self._entries[item_id] = entry
        return entry

    def clear_entry(self, item_id: str) -> None:
        self._require(ChecklistPhase.FILLING, "clear an entry")
        self._entries.pop(item_id, None)

    def set_date(self, day: date | str) -> None:
        self._require(ChecklistPhase.FILLING, "change the date")
        if isinstance(day, datetime):
            day = day.date()
        self._check_date = day if isinstance(day, date) else date.fromisoformat(day.split("T", 1)[0])

    def set_signatories(self, responsible_names: Sequence[str], commander: str) -> None:
        self._require(ChecklistPhase.FILLING, "set signatories")
        self._responsible = tuple(name.strip() for name in responsible_names if name and name.strip())
        self._commander = commander.strip()

    def set_justification(self, text: str) -> None:
        self._require(ChecklistPhase.FILLING, "set a justification")
        self._justification = text.strip()

    def cancel(self) -> None:
        """Abandon the checklist; nothing is persisted."""
        if self._phase is ChecklistPhase.FILLING and self._vehicle is not None:
            _logger.debug("Checklist for vehicle %s discarded", self._vehicle.id)
        self._clear()

    def reset(self) -> None:
        """Return to vehicle selection after a finished check."""
        self._clear()

    def _clear(self) -> None:
        self._phase = ChecklistPhase.SELECTING
        self._vehicle = None
        self._snapshot = ()
        self._entries = {}
        self._check_date = None
        self._justification = ""
        self._responsible = ()
        self._commander = ""

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_common(self) -> None:
        if self.justification_required and not self._justification:
            raise MissingJustificationError()
        if not self._commander or not self._responsible:
            raise MissingSignatoriesError("a commander and at least one responsible name are required")

    def validate(self) -> None:
        """Raise the first rule the current checklist breaks, if any."""
        self._require(ChecklistPhase.FILLING, "validate")
        missing = self.missing_items
        if missing:
            raise IncompleteChecklistError([item.id for item in missing])
        self._validate_common()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self) -> InventoryCheck:
        """Validate, persist and return the check record."""
        self.validate()
        return await self._persist(self._build_record(self.entries))

    async def submit_status_only(self) -> InventoryCheck:
        """Record a vehicle that is out of service without checking each item.

        Every snapshot item is stored as PRIOR_NOTED with the vehicle's
        status as observation.  Justification and signatory rules still
        apply.
        """
        self._require(ChecklistPhase.FILLING, "submit")
        current = self._current_vehicle()
        if current.is_operating:
            raise ChecklistStateError("status-only checks are for vehicles that are not operating")
        self._validate_common()
        entries = tuple(
            CheckEntry(item_id=item.id, status=CheckStatus.PRIOR_NOTED, observation=current.status.value)
            for item in self._snapshot
        )
        return await self._persist(self._build_record(entries))

    def _current_vehicle(self) -> Vehicle:
        assert self._vehicle is not None  # noqa: S101
        if self._vehicle_lookup is not None:
            live = self._vehicle_lookup(self._vehicle.id)
            if live is not None:
                return live
        return self._vehicle

    def _timestamp(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo is not None else now.astimezone()

    def _build_record(self, entries: Sequence[CheckEntry]) -> InventoryCheck:
        assert self._vehicle is not None and self._check_date is not None  # noqa: S101
        current = self._current_vehicle()
        return InventoryCheck(
            id=self._id_factory(),
            vehicle_id=self._vehicle.id,
            date=self._check_date,
            shift_color=self._calendar.readiness_state(self._check_date).label,
            responsible_names=self._responsible,
            commander_name=self._commander,
            entries=tuple(entries),
            timestamp=self._timestamp(),
            justification=self._justification if self.justification_required else None,
            header_details=resolve_header(current, self._index, self._header, self._agency),
            snapshot=self._snapshot,
            vehicle_status_at_time=current.status,
        )

    async def _persist(self, record: InventoryCheck) -> InventoryCheck:
        try:
            await self._repository.save_check(record)
        except PersistenceError:
            _logger.warning("Saving check for vehicle %s failed; checklist kept open", record.vehicle_id)
            raise

        self._known_checks.append(record)
        self._last_check = record
        self._phase = ChecklistPhase.FINISHED
        _logger.info(
            "Check %s recorded for vehicle %s on %s (%s)",
            record.id,
            record.vehicle_id,
            record.date.isoformat(),
            record.shift_color,
        )
        await self._write_audit(record)
        if self._on_complete is not None:
            try:
                self._on_complete(record)
            except Exception:
                _logger.warning("on_complete callback failed for check %s", record.id, exc_info=True)
        return record

    async def _write_audit(self, record: InventoryCheck) -> None:
        vehicle = self._vehicle
        label = vehicle.prefix if vehicle is not None and vehicle.prefix else record.vehicle_id
        entry = LogEntry(
            id=self._id_factory(),
            user_id=self._actor.id if self._actor is not None else "",
            user_name=self._actor.name if self._actor is not None and self._actor.name else "System",
            action=AuditAction.CHECKLIST.value,
            details=f"Vehicle checked: {label}",
            timestamp=record.timestamp,
        )
        try:
            await self._repository.save_log(entry)
        except PersistenceError:
            # The check is already persisted at this point.
            _logger.warning("Audit entry for check %s was not written", record.id, exc_info=True)
