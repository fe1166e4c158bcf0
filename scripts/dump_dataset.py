#!/usr/bin/env python3
"""Fetch the remote dataset and print a summary.

Usage
-----
Set environment variables and run::

    export FLEETCHECK_OPERATIONAL_URL="https://script.google.com/macros/s/.../exec"
    python scripts/dump_dataset.py

Options::

    --json               Output the parsed dataset as JSON
    --output FILE        Write JSON to FILE instead of stdout
    --logs               Also fetch the audit log
    --ping               Only measure the endpoint latency
    --verbose            Enable debug logging (payloads are redacted)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetcheck import FleetCheckConfig, FleetCheckError, RemoteStore  # noqa: E402
from fleetcheck.reports import pending_vehicles  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


async def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch and summarize the fleetcheck dataset.")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write JSON to FILE instead of stdout")
    parser.add_argument("--logs", action="store_true", help="Also fetch the audit log")
    parser.add_argument("--ping", action="store_true", help="Only measure endpoint latency")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = FleetCheckConfig.from_env()
    calendar = config.calendar()

    try:
        async with RemoteStore(config) as store:
            if args.ping:
                latency = await store.test_connection()
                print(f"OK in {latency * 1000:.0f} ms")
                return 0
            dataset = await store.fetch_all()
            logs = await store.fetch_logs() if args.logs else ()
    except FleetCheckError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.json_mode or args.output:
        result = dataset.model_dump(mode="json", by_alias=True)
        if args.logs:
            result["logs"] = [entry.to_wire() for entry in logs]
        payload = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
        return 0

    today = calendar.current_operational_day()
    state = calendar.readiness_state(today)
    out: list[str] = [_section("fleetcheck dataset")]
    out.append(f"  fetched   : {dataset.fetched_at}{' (cached)' if dataset.from_cache else ''}")
    out.append(f"  today     : {today.isoformat()} ({state.label})")
    out.append(f"  hierarchy : {len(dataset.units)} units, {len(dataset.subunits)} subunits, {len(dataset.stations)} stations")
    out.append(f"  vehicles  : {len(dataset.vehicles)}")
    out.append(f"  checks    : {len(dataset.checks)}")
    out.append(f"  users     : {len(dataset.users)}")

    out.append(_section("PENDING TODAY"))
    for pending in pending_vehicles(dataset.vehicles, dataset.checks, today):
        since = "never checked" if pending.days_since_last_check is None else f"{pending.days_since_last_check} day(s)"
        out.append(f"  {pending.vehicle.prefix or pending.vehicle.id:<12} {since}")

    if args.logs:
        out.append(_section("AUDIT LOG (last 20)"))
        for entry in logs[-20:]:
            out.append(f"  {entry.timestamp.isoformat()}  {entry.user_name:<20} {entry.action:<10} {entry.details}")

    print("\n".join(out))
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
