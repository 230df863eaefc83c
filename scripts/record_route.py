"""Route recording server: live HUD plus a write-through route recording.

Usage:
  uv run python scripts/record_route.py
  uv run python scripts/record_route.py --routes-dir unprocessed_routes --miles

Records into the newest route skeleton in the routes folder (created by the
timetable extractor), or a fresh ``route_recording_<timestamp>.json`` when
there is none.  Open http://localhost:3000 for the HUD; Ctrl+C stops
recording, the file on disk is always current.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import uvicorn

from train_hud.config import HudSettings
from train_hud.hud.session import HudSession
from train_hud.route.recorder import RouteRecorder
from train_hud.telemetry.parser import TelemetryParser
from train_hud.web.app import create_app


def main() -> None:
    settings = HudSettings.from_env()

    ap = argparse.ArgumentParser(description="Record a Train Sim World route while showing the HUD")
    ap.add_argument("--routes-dir", type=Path, default=settings.routes_dir,
                    help="Folder holding skeletons and new recordings")
    ap.add_argument("--port", type=int, default=settings.port, help="HTTP port")
    ap.add_argument("--miles", action="store_true", default=settings.use_miles,
                    help="Show mph and feet instead of km/h and metres")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings.routes_dir = args.routes_dir
    settings.processed_dir = args.routes_dir.parent / "processed_routes"
    settings.port = args.port
    settings.use_miles = args.miles

    recorder = RouteRecorder.from_skeleton(settings.routes_dir)
    session = HudSession(TelemetryParser(use_miles=settings.use_miles), recorder=recorder)

    print(f"Recording to : {recorder.path}")
    print(f"Timetable    : {len(recorder.recording.timetable)} stops")
    print(f"API key file : {settings.api_key_path}")
    print(f"HUD          : http://localhost:{settings.port}")
    print()

    uvicorn.run(create_app(settings, session), host="127.0.0.1", port=settings.port)

    rec = recorder.recording
    print()
    print(f"Saved {len(rec.points)} coordinates and {len(rec.markers)} markers to {recorder.path}")
    if recorder.persist_failures:
        print(f"  [!] {recorder.persist_failures} save(s) failed during recording")


if __name__ == "__main__":
    main()
