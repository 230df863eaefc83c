"""Route playback server: live HUD plus distance-to-station along a recorded route.

Usage:
  uv run python scripts/serve.py
  uv run python scripts/serve.py --route processed_routes/route_2024-05-01.json

Without ``--route`` the newest processed route is loaded; another one can be
picked from the map page (http://localhost:3000/map).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from train_hud.config import HudSettings
from train_hud.hud.session import HudSession
from train_hud.route.storage import RouteFileError, list_route_files
from train_hud.telemetry.parser import TelemetryParser
from train_hud.web.app import create_app


def main() -> None:
    settings = HudSettings.from_env()

    ap = argparse.ArgumentParser(description="Serve the HUD with a recorded route loaded")
    ap.add_argument("--route", type=Path, default=None, help="Route file to load at startup")
    ap.add_argument("--port", type=int, default=settings.port, help="HTTP port")
    ap.add_argument("--miles", action="store_true", default=settings.use_miles,
                    help="Show mph and feet instead of km/h and metres")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings.port = args.port
    settings.use_miles = args.miles
    session = HudSession(TelemetryParser(use_miles=settings.use_miles))

    processed = list_route_files(settings.processed_dir)
    route = args.route or (processed[-1] if processed else None)
    if route is None:
        print(f"No processed route in {settings.processed_dir}; pick one from the map page.")
    else:
        try:
            loaded = session.load_route(route)
        except RouteFileError as exc:
            print(f"  [!] {exc}", file=sys.stderr)
            sys.exit(1)
        print(f"Route     : {loaded.name} ({route})")
        print(f"Points    : {len(loaded.points)}  Markers: {len(loaded.markers)}")
        print(f"Timetable : {len(loaded.timetable)} stops")

    print(f"HUD       : http://localhost:{settings.port}")
    print(f"Map       : http://localhost:{settings.port}/map")
    print()

    uvicorn.run(create_app(settings, session), host="127.0.0.1", port=settings.port)


if __name__ == "__main__":
    main()
