#!/usr/bin/env python3
"""Print the readiness state of a range of operational days.

Usage
-----
    python scripts/readiness_calendar.py
    python scripts/readiness_calendar.py --start 2026-03-01 --days 14
    python scripts/readiness_calendar.py --at 2026-03-08T07:29

The calendar follows ``FLEETCHECK_*`` configuration (epoch day, cutoff,
labels, time zone).
"""

from __future__ import annotations

import argparse
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetcheck import FleetCheckConfig  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Show readiness states per operational day.")
    parser.add_argument("--start", type=date.fromisoformat, help="First day (default: current operational day)")
    parser.add_argument("--days", type=int, default=7, help="Number of days to print")
    parser.add_argument("--at", type=datetime.fromisoformat, help="Resolve a single instant instead")
    args = parser.parse_args()

    config = FleetCheckConfig.from_env()
    calendar = config.calendar()

    if args.at is not None:
        day = calendar.shift_reference_date(args.at)
        state = calendar.readiness_state(args.at)
        print(f"{args.at.isoformat()} -> operational day {day.isoformat()} ({state.label}, {state.hex})")
        return

    start = args.start or calendar.current_operational_day()
    print(f"Cutoff {calendar.cutoff.strftime('%H:%M')} ({config.time_zone}), epoch {config.epoch_day.isoformat()}")
    print()
    for offset in range(args.days):
        day = start + timedelta(days=offset)
        state = calendar.readiness_state(day)
        print(f"{day.isoformat()}  {day.strftime('%a')}  {state.label:<10} {state.hex}")


if __name__ == "__main__":
    main()
