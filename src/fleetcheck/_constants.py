"""Internal constants shared across the library."""

from __future__ import annotations

from datetime import date, time

USER_AGENT = "fleetcheck/1"
JSON_CONTENT_TYPE = "text/plain;charset=utf-8"

# ------------------------------------------------------------------
# Readiness calendar
# ------------------------------------------------------------------

#: Day-index 0 of the readiness cycle (the first operational day).
EPOCH_DAY = date(2026, 1, 1)
#: Wall-clock start of an operational day.
SHIFT_CUTOFF = time(7, 30)

DEFAULT_READINESS_LABELS: tuple[str, str, str] = ("Green", "Yellow", "Blue")
DEFAULT_READINESS_HEX: tuple[str, str, str] = ("#22c55e", "#eab308", "#3b82f6")

# ------------------------------------------------------------------
# Checklist header placeholders
# ------------------------------------------------------------------

UNKNOWN_UNIT = "UNIT"
UNKNOWN_SUBUNIT = "SUBUNIT"
UNKNOWN_STATION_CLASSIFICATION = "STATION"
UNKNOWN_CITY = "UNKNOWN"
GENERAL_COMPARTMENT = "GENERAL"
