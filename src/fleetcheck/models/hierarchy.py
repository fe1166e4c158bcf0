"""Organizational tree: Unit ⊃ Subunit ⊃ Station.

Each child stores exactly one parent id, so the tree is acyclic by
construction.  Orphans (a parent id with no matching record) are
tolerated here and resolved to placeholders by consumers.
"""

from __future__ import annotations

from fleetcheck.models._base import FleetBaseModel


class Unit(FleetBaseModel):
    """Top tier of the hierarchy."""

    id: str
    name: str = ""


class Subunit(FleetBaseModel):
    """Middle tier; belongs to one :class:`Unit`."""

    id: str
    unit_id: str = ""
    name: str = ""


class Station(FleetBaseModel):
    """Leaf tier; vehicles are stationed here."""

    id: str
    subunit_id: str = ""
    name: str = ""
    municipality: str = ""
    classification: str | None = None
    """Free-text kind of station (e.g. ``"Platoon"``)."""

    @property
    def display_name(self) -> str:
        if self.classification:
            return f"{self.classification} {self.name}".strip()
        return self.name
