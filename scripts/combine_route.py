"""Attach a timetable CSV to a route file.

Usage:
  uv run python scripts/combine_route.py ROUTE.json TIMETABLE.csv [OUTPUT.json]

The CSV has a header row followed by ``destination,arrival,departure,platform,apiName``
rows, as written by the timetable extractor.  Any timetable already in the
route is replaced.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from train_hud.route.storage import RouteFileError, combine_timetable
from train_hud.timetable.loader import load_timetable_csv


def main() -> None:
    ap = argparse.ArgumentParser(description="Combine a route file with a timetable CSV")
    ap.add_argument("route", type=Path, help="Route JSON file")
    ap.add_argument("timetable", type=Path, help="Timetable CSV file")
    ap.add_argument("output", type=Path, nargs="?", default=Path("test.json"), help="Output JSON file")
    args = ap.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if not args.timetable.is_file():
        print(f"  [!] Timetable CSV file not found: {args.timetable}", file=sys.stderr)
        sys.exit(1)

    print("Loading timetable data...")
    stops = load_timetable_csv(args.timetable)
    print(f"Parsed {len(stops)} timetable stops")

    print(f"Writing combined data to {args.output}...")
    try:
        combined = combine_timetable(args.route, stops, args.output)
    except RouteFileError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        sys.exit(1)
    except OSError as exc:
        print(f"  [!] Cannot write {args.output}: {exc}", file=sys.stderr)
        sys.exit(1)

    print("Combined route file created.")
    print(f"  Route           : {combined.get('routeName', 'unknown')}")
    print(f"  Coordinates     : {len(combined.get('coordinates') or []):,}")
    print(f"  Markers         : {len(combined.get('markers') or [])}")
    print(f"  Timetable stops : {len(stops)}")
    print(f"  Output          : {args.output}")


if __name__ == "__main__":
    main()
