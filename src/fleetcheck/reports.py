"""Dashboard and fulfillment summaries derived from recorded checks.

All functions are pure and take the check's *declared* operational day
(``InventoryCheck.date``), not its submission timestamp.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from fleetcheck.models.check import CheckEntry, InventoryCheck
from fleetcheck.models.vehicle import Vehicle


@dataclass(frozen=True, slots=True)
class PendingVehicle:
    """An operating vehicle with no check on the day in question."""

    vehicle: Vehicle
    last_checked: date | None
    days_since_last_check: int | None


def checks_on(checks: Iterable[InventoryCheck], day: date) -> tuple[InventoryCheck, ...]:
    return tuple(check for check in checks if check.date == day)


def checked_vehicle_ids(checks: Iterable[InventoryCheck], day: date) -> frozenset[str]:
    return frozenset(check.vehicle_id for check in checks if check.date == day)


def pending_vehicles(
    vehicles: Iterable[Vehicle],
    checks: Sequence[InventoryCheck],
    today: date,
) -> tuple[PendingVehicle, ...]:
    """OPERATING vehicles not checked on *today*, longest-unchecked first.

    Vehicles that were never checked sort before all others.
    """
    done = checked_vehicle_ids(checks, today)
    latest: dict[str, date] = {}
    for check in checks:
        if check.date <= today and (check.vehicle_id not in latest or check.date > latest[check.vehicle_id]):
            latest[check.vehicle_id] = check.date

    pending: list[PendingVehicle] = []
    for vehicle in vehicles:
        if not vehicle.is_operating or vehicle.id in done:
            continue
        last = latest.get(vehicle.id)
        pending.append(
            PendingVehicle(
                vehicle=vehicle,
                last_checked=last,
                days_since_last_check=(today - last).days if last is not None else None,
            )
        )
    pending.sort(key=lambda p: (p.days_since_last_check is not None, -(p.days_since_last_check or 0)))
    return tuple(pending)


def _in_month(day: date, year: int, month: int) -> bool:
    return day.year == year and day.month == month


def shift_distribution(checks: Iterable[InventoryCheck], year: int, month: int) -> dict[str, int]:
    """Number of checks per readiness label within one month."""
    counts = Counter(check.shift_color for check in checks if _in_month(check.date, year, month))
    return dict(counts)


def monthly_fulfillment(
    vehicles: Iterable[Vehicle],
    checks: Iterable[InventoryCheck],
    year: int,
    month: int,
) -> dict[str, tuple[int, ...]]:
    """Map each vehicle id to the sorted days of *month* it was checked on.

    Vehicles without checks in the month map to an empty tuple.
    """
    days: dict[str, set[int]] = {vehicle.id: set() for vehicle in vehicles}
    for check in checks:
        if check.vehicle_id in days and _in_month(check.date, year, month):
            days[check.vehicle_id].add(check.date.day)
    return {vehicle_id: tuple(sorted(checked)) for vehicle_id, checked in days.items()}


def entries_with_findings(check: InventoryCheck) -> tuple[CheckEntry, ...]:
    """Entries whose status is not OK, in recorded order."""
    return check.findings
