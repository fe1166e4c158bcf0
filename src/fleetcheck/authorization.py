"""Scope visibility over the organizational tree.

A user bound to a node of the tree sees the stations below that node and
the vehicles stationed there.  This is *visibility* only; what a user may
*do* is decided by :mod:`fleetcheck.capabilities`.

:class:`OrganizationIndex` is built once per data refresh and resolves
every station's ancestor chain up front, so filtering is a set lookup
rather than a walk up the tree per vehicle.  A scope that names a missing
node sees nothing; it never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from fleetcheck.exceptions import HierarchyIntegrityError
from fleetcheck.models.dataset import Dataset
from fleetcheck.models.hierarchy import Station, Subunit, Unit
from fleetcheck.models.user import ScopeLevel, User
from fleetcheck.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StationLineage:
    """A station and its resolved ancestors (``None`` where the link is broken)."""

    station: Station
    subunit: Subunit | None
    unit: Unit | None


class OrganizationIndex:
    """Pre-resolved view of the Unit ⊃ Subunit ⊃ Station tree.

    Parameters
    ----------
    units : iterable of Unit or None
        ``None`` when the unit table is not available; UNIT scopes are
        then resolved through the subunits' parent ids alone.
    subunits : iterable of Subunit
    stations : iterable of Station
    """

    def __init__(
        self,
        units: Iterable[Unit] | None,
        subunits: Iterable[Subunit],
        stations: Iterable[Station],
    ) -> None:
        self._units_known = units is not None
        self._units: dict[str, Unit] = {unit.id: unit for unit in units or ()}
        self._subunits: dict[str, Subunit] = {sub.id: sub for sub in subunits}
        self._stations: tuple[Station, ...] = tuple(stations)
        self._station_by_id: dict[str, Station] = {station.id: station for station in self._stations}

        self._lineage: dict[str, StationLineage] = {}
        self._unit_id_of_station: dict[str, str] = {}
        for station in self._stations:
            subunit = self._subunits.get(station.subunit_id)
            unit = self._units.get(subunit.unit_id) if subunit is not None else None
            self._lineage[station.id] = StationLineage(station=station, subunit=subunit, unit=unit)
            if subunit is not None and subunit.unit_id:
                self._unit_id_of_station[station.id] = subunit.unit_id

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> OrganizationIndex:
        return cls(dataset.units, dataset.subunits, dataset.stations)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def stations(self) -> tuple[Station, ...]:
        return self._stations

    def unit(self, unit_id: str) -> Unit | None:
        return self._units.get(unit_id)

    def subunit(self, subunit_id: str) -> Subunit | None:
        return self._subunits.get(subunit_id)

    def station(self, station_id: str) -> Station | None:
        return self._station_by_id.get(station_id)

    def lineage(self, station_id: str | None) -> StationLineage | None:
        if not station_id:
            return None
        return self._lineage.get(station_id)

    def scope_is_resolvable(self, level: ScopeLevel, scope_id: str | None) -> bool:
        """Whether *scope_id* names an existing node of tier *level*."""
        if level is ScopeLevel.GLOBAL:
            return True
        if not scope_id:
            return False
        if level is ScopeLevel.UNIT:
            if self._units_known:
                return scope_id in self._units
            return any(sub.unit_id == scope_id for sub in self._subunits.values())
        if level is ScopeLevel.SUBUNIT:
            return scope_id in self._subunits
        return scope_id in self._station_by_id

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def _visible_ids(self, user: User) -> frozenset[str] | None:
        """Visible station ids, or ``None`` for an unrestricted (GLOBAL) scope."""
        level = user.scope_level
        if level is ScopeLevel.GLOBAL:
            return None
        scope_id = user.scope_id
        if not self.scope_is_resolvable(level, scope_id):
            _logger.warning(
                "Scope %s=%r of user %r does not resolve to a node; nothing is visible",
                level.value,
                scope_id,
                user.id,
            )
            return frozenset()
        if level is ScopeLevel.UNIT:
            return frozenset(sid for sid, uid in self._unit_id_of_station.items() if uid == scope_id)
        if level is ScopeLevel.SUBUNIT:
            return frozenset(station.id for station in self._stations if station.subunit_id == scope_id)
        return frozenset({scope_id}) if scope_id else frozenset()

    def visible_station_ids(self, user: User) -> frozenset[str]:
        ids = self._visible_ids(user)
        if ids is None:
            return frozenset(station.id for station in self._stations)
        return ids

    def visible_stations(self, user: User) -> tuple[Station, ...]:
        ids = self._visible_ids(user)
        if ids is None:
            return self._stations
        return tuple(station for station in self._stations if station.id in ids)

    def visible_vehicles(self, user: User, vehicles: Sequence[Vehicle]) -> tuple[Vehicle, ...]:
        """Vehicles visible to *user*; unlinked vehicles only for GLOBAL scopes."""
        ids = self._visible_ids(user)
        if ids is None:
            return tuple(vehicles)
        return tuple(vehicle for vehicle in vehicles if vehicle.station_id and vehicle.station_id in ids)

    # ------------------------------------------------------------------
    # Deletion policy
    # ------------------------------------------------------------------

    def dependents_of(
        self,
        level: ScopeLevel,
        node_id: str,
        vehicles: Iterable[Vehicle] = (),
    ) -> tuple[str, ...]:
        """Ids of the direct children that still reference *node_id*."""
        if level is ScopeLevel.UNIT:
            return tuple(sub.id for sub in self._subunits.values() if sub.unit_id == node_id)
        if level is ScopeLevel.SUBUNIT:
            return tuple(station.id for station in self._stations if station.subunit_id == node_id)
        if level is ScopeLevel.STATION:
            return tuple(vehicle.id for vehicle in vehicles if vehicle.station_id == node_id)
        raise ValueError("GLOBAL is not a node of the tree")

    def ensure_deletable(
        self,
        level: ScopeLevel,
        node_id: str,
        vehicles: Iterable[Vehicle] = (),
    ) -> None:
        """Raise :class:`HierarchyIntegrityError` if *node_id* still has children.

        Deleting a node never cascades and never orphans: children must be
        moved or removed first.
        """
        dependents = self.dependents_of(level, node_id, vehicles)
        if dependents:
            raise HierarchyIntegrityError(
                f"{level.value.lower()} {node_id!r} still has {len(dependents)} dependent(s)",
                dependents=dependents,
            )


def visible_stations(
    user: User,
    subunits: Iterable[Subunit],
    stations: Iterable[Station],
) -> tuple[Station, ...]:
    """Stations *user* may see, resolving UNIT scopes through *subunits*."""
    return OrganizationIndex(None, subunits, stations).visible_stations(user)


def visible_vehicles(
    user: User,
    vehicles: Sequence[Vehicle],
    stations: Iterable[Station],
    subunits: Iterable[Subunit] = (),
) -> tuple[Vehicle, ...]:
    """Vehicles *user* may see.

    *subunits* is only consulted for UNIT scopes; without it a UNIT-scoped
    user sees nothing.
    """
    return OrganizationIndex(None, subunits, stations).visible_vehicles(user, vehicles)
