#!/usr/bin/env python3
"""Run one reconciliation cycle per bike and print what pystromer sees.

This script logs in, lists the account's bikes, runs a single polling
cycle for each one and prints the capability snapshot, any events the
cycle fired and the raw payloads, so you can spot vendor fields that
aren't mapped yet.

Usage
-----
Set environment variables and run::

    export STROMER_USERNAME="you@example.com"
    export STROMER_PASSWORD="your-password"
    export STROMER_CLIENT_ID="client-id-from-the-app"
    python scripts/poll_bike.py

Options::

    --bike 4711          Only poll this bike id (default: all bikes)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --raw                Also print the raw status and position payloads
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pystromer import StateReconciler, StromerClient, StromerConfig  # noqa: E402
from pystromer.models.bike import BikeIdentity  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    bar = "─" * 60
    return f"\n{bar}\n  {title}\n{bar}"


def _format_value(value: Any) -> str:
    if value is None:
        return "—"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


async def poll_bike(client: StromerClient, bike: BikeIdentity, *, raw: bool, json_mode: bool) -> dict[str, Any]:
    """Run one cycle for *bike* and return its report."""
    reconciler = StateReconciler(client, bike)
    try:
        events = await reconciler.refresh()
        snapshot = reconciler.snapshot
        report: dict[str, Any] = {
            "bike": bike.model_dump(exclude={"raw"}),
            "state": reconciler.state.value,
            "is_active": reconciler.poll_state.is_active,
            "snapshot": {capability.value: value for capability, value in sorted(snapshot.as_dict().items())},
            "events": [event.model_dump(mode="json") for event in events],
            "summary": snapshot.summary(bike.display_name),
        }

        if raw:
            status = await client.get_bike_state(bike.id)
            position = await client.get_bike_position(bike.id)
            report["raw"] = {"status": status.raw, "position": position.raw}

        if not json_mode:
            out = [_section(f"BIKE {bike.id} ({bike.display_name})")]
            out.append(f"  state     : {report['state']}")
            out.append(f"  active    : {report['is_active']}")
            out.append(f"  summary   : {report['summary']}")
            for key, value in report["snapshot"].items():
                out.append(f"  {key:<28}: {_format_value(value)}")
            for event in events:
                out.append(f"  event     : {event.type.value} {event.tokens}")
            if raw:
                out.append(json.dumps(report["raw"], indent=2, default=str, ensure_ascii=False))
            print("\n".join(out))
        return report
    finally:
        await reconciler.stop()


async def main() -> None:
    parser = argparse.ArgumentParser(description="Poll Stromer bikes once and print their state.")
    parser.add_argument("--bike", help="Only poll this bike id (default: all bikes)")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--raw", action="store_true", help="Also print raw status and position payloads")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = StromerConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "bikes": [],
    }

    async with StromerClient(config) as client:
        credentials = await client.login()
        result["api_generation"] = credentials.api_generation.value
        if not args.json_mode:
            print(_section("pystromer poll_bike"))
            print(f"  time      : {result['timestamp']}")
            print(f"  api       : {credentials.api_generation.value} ({config.base_url})")

        bikes = await client.get_bikes()
        if args.bike:
            bikes = [bike for bike in bikes if bike.id == args.bike]
            if not bikes:
                print(f"No bike with id {args.bike} on this account", file=sys.stderr)
                sys.exit(1)

        for bike in bikes:
            result["bikes"].append(await poll_bike(client, bike, raw=args.raw, json_mode=args.json_mode))

    if args.json_mode or args.output:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)


if __name__ == "__main__":
    asyncio.run(main())
