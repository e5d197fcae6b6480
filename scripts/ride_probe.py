#!/usr/bin/env python3
"""Probe a ride-planning backend end to end.

Connects to the dispatch service, requests nearby drivers for a pickup
location, resolves their profiles and, when a destination is given,
prints the route, fares and travel times.

Usage
-----
Set environment variables and run::

    export RIDEPLAN_SERVER_URI="https://api.example.com"
    export RIDEPLAN_DISPATCH_URL="wss://dispatch.example.com"
    python scripts/ride_probe.py 23.8103 90.4125 --to 23.8000 90.4000

Options::

    --to LAT LNG         Destination; enables route and fare estimation
    --vehicle-type TYPE  Only show drivers with this vehicle type
    --wait SECONDS       How long to wait for a nearbyDrivers broadcast
    --json               Output machine-readable JSON
    --decode POLYLINE    Decode an encoded polyline and exit
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyrideplan import DriverProfile, GeoPoint, RidePlanClient, RidePlanConfig, RouteEstimate  # noqa: E402
from pyrideplan import polyline  # noqa: E402
from pyrideplan.exceptions import DecodeError  # noqa: E402
from pyrideplan.geo import distance_km  # noqa: E402


def _section(title: str) -> str:
    return f"\n{'═' * 60}\n  {title}\n{'═' * 60}"


def _driver_line(driver: DriverProfile, origin: GeoPoint) -> str:
    away = f"{distance_km(origin, driver.current_location):.2f} km" if driver.current_location else "location unknown"
    return f"  {driver.id:<26} {driver.name or '-':<18} {driver.vehicle_type or '-':<12} rate={driver.rate:<6g} {away}"


def _estimate_lines(estimate: RouteEstimate) -> list[str]:
    out = [_section("ROUTE")]
    out.append(f"  distance  : {estimate.distance_km:.2f} km (straight line)")
    out.append(f"  route pts : {len(estimate.geometry) if estimate.has_route else 'unavailable'}")
    for mode in ("driving", "walking", "bicycling", "transit"):
        out.append(f"  {mode:<10}: {estimate.travel_times.for_mode(mode) or '-'}")
    out.append(f"  eta       : {estimate.eta or '-'}")
    out.append(_section("FARES"))
    for fare in estimate.fares:
        out.append(f"  {fare.driver_id:<26} {fare.fare:>10.2f}")
    return out


async def run(args: argparse.Namespace) -> int:
    origin = GeoPoint.of(args.lat, args.lng)
    destination = GeoPoint.of(*args.to) if args.to else None
    config = RidePlanConfig.from_env()

    result: dict[str, Any] = {"origin": origin.to_wire(), "server_uri": config.server_uri}
    out: list[str] = [_section("pyrideplan ride_probe")]
    out.append(f"  server    : {config.server_uri}")
    out.append(f"  dispatch  : {config.dispatch_url}")

    async with RidePlanClient(config) as client:
        received = asyncio.Event()
        client.candidates.subscribe(lambda _profiles: received.set())
        client.notices.subscribe(lambda notice: out.append(f"  notice    : {notice}"))

        client.update_location(origin)
        try:
            await asyncio.wait_for(received.wait(), timeout=args.wait)
        except asyncio.TimeoutError:
            out.append(f"  no nearbyDrivers broadcast within {args.wait:.0f}s (state={client.connection.state})")

        drivers = client.ranked_candidates(args.vehicle_type)
        result["drivers"] = [d.to_wire() for d in drivers]
        out.append(_section(f"DRIVERS ({len(drivers)})"))
        out.extend(_driver_line(d, origin) for d in drivers)

        if destination is not None:
            estimate = await client.select_destination(destination)
            if estimate is not None:
                result["estimate"] = estimate.model_dump(mode="json")
                out.extend(_estimate_lines(estimate))

    if args.json_mode:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print("\n".join(out))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Request nearby drivers and price a trip against a live backend.")
    parser.add_argument("lat", type=float, nargs="?", help="Pickup latitude")
    parser.add_argument("lng", type=float, nargs="?", help="Pickup longitude")
    parser.add_argument("--to", type=float, nargs=2, metavar=("LAT", "LNG"), help="Destination")
    parser.add_argument("--vehicle-type", help="Only list drivers with this vehicle type")
    parser.add_argument("--wait", type=float, default=10.0, help="Seconds to wait for nearby drivers")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--decode", metavar="POLYLINE", help="Decode an encoded polyline and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    if args.decode:
        try:
            points = polyline.decode(args.decode)
        except DecodeError as exc:
            print(f"Invalid polyline: {exc}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps([p.to_wire() for p in points], indent=2))
        return

    if args.lat is None or args.lng is None:
        parser.error("pickup latitude and longitude are required")

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
