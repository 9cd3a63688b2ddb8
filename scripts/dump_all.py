#!/usr/bin/env python3
"""Dump all data the pysemob library can fetch.

This script queries the live bus positions, the stops (optionally limited
to a bounding box), the line dataset and the fleet registry, printing both
the parsed model fields **and** the raw feature properties so you can spot
attributes that aren't parsed yet.

Usage
-----
Optionally point it at another endpoint and run::

    export SEMOB_BASE_URL="https://geoserver.semob.df.gov.br/geoserver/semob/ows"
    python scripts/dump_all.py

Options::

    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --only-active        Only buses currently operating a line
    --bbox W,S,E,N       Only stops inside this bounding box (degrees)
    --limit N            Print at most N items per dataset (default: 5)
    --skip-buses         Skip live positions
    --skip-stops         Skip stops
    --skip-lines         Skip lines
    --skip-fleet         Skip the fleet registry
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
import traceback
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysemob import MapBounds, SemobClient, SemobConfig  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _parse_bbox(value: str) -> MapBounds:
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("expected W,S,E,N")
    try:
        west, south, east, north = (float(p) for p in parts)
        return MapBounds(north=north, south=south, east=east, west=west)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid bbox {value!r}: {exc}") from exc


def _print_items(name: str, items: Sequence[Any], out: list[str], *, limit: int) -> list[dict[str, Any]]:
    """Pretty-print up to *limit* models and return all of them as dicts."""
    out.append(_section(f"{name}  ({len(items)} items)"))
    dumped: list[dict[str, Any]] = []
    for index, item in enumerate(items):
        parsed = item.model_dump(mode="json")
        dumped.append({"parsed": parsed, "raw": item.raw})
        if index >= limit:
            continue
        out.append(f"\n  ── {name} #{index} ──")
        for key, value in parsed.items():
            if key == "coordinates":
                out.append(f"  {key}: <{len(value)} vertices>")
            else:
                out.append(f"  {key}: {value}")
        out.append("  raw: " + json.dumps(item.raw, default=str, ensure_ascii=False))
    if len(items) > limit:
        out.append(f"\n  ... {len(items) - limit} more")
    return dumped


# ── main ─────────────────────────────────────────────────────


async def dump_dataset(
    name: str,
    loader: Any,
    *,
    limit: int,
    json_mode: bool,
) -> dict[str, Any]:
    """Run *loader* and dump the resulting models."""
    out: list[str] = []
    try:
        items = await loader()
        data: dict[str, Any] = {"count": len(items), "items": _print_items(name, items, out, limit=limit)}
    except Exception as exc:
        out.append(_section(name))
        out.append(f"  !! {name.lower()} failed: {exc}")
        data = {"error": str(exc), "traceback": traceback.format_exc()}

    if not json_mode:
        print("\n".join(out))
    return data


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump all data pysemob can fetch for debugging / development.",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--only-active", action="store_true", help="Only buses currently operating a line")
    parser.add_argument("--bbox", type=_parse_bbox, help="Only stops inside W,S,E,N (degrees)")
    parser.add_argument("--limit", type=int, default=5, help="Items printed per dataset")
    parser.add_argument("--skip-buses", action="store_true", help="Skip live positions")
    parser.add_argument("--skip-stops", action="store_true", help="Skip stops")
    parser.add_argument("--skip-lines", action="store_true", help="Skip lines")
    parser.add_argument("--skip-fleet", action="store_true", help="Skip the fleet registry")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = SemobConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "bbox": args.bbox.model_dump() if args.bbox else None,
    }

    if not args.json_mode:
        out = [_section("pysemob dump_all")]
        out.append(f"  time      : {result['timestamp']}")
        out.append(f"  endpoint  : {config.base_url}")
        print("\n".join(out))

    async with SemobClient(config) as client:
        if not args.skip_buses:
            result["buses"] = await dump_dataset(
                "BUSES",
                lambda: client.get_buses(only_active=args.only_active),
                limit=args.limit,
                json_mode=args.json_mode,
            )
        if not args.skip_stops:
            result["stops"] = await dump_dataset(
                "STOPS",
                lambda: client.get_stops(args.bbox),
                limit=args.limit,
                json_mode=args.json_mode,
            )
        if not args.skip_lines:
            result["lines"] = await dump_dataset(
                "LINES",
                client.get_lines,
                limit=args.limit,
                json_mode=args.json_mode,
            )
        if not args.skip_fleet:
            result["fleet"] = await dump_dataset(
                "FLEET",
                client.get_fleet,
                limit=args.limit,
                json_mode=args.json_mode,
            )
        result["cache"] = dataclasses.asdict(client.cache.stats())

    # ── Output ──
    payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    if args.json_mode:
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
    elif args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"JSON written to {args.output}")


if __name__ == "__main__":
    asyncio.run(main())
