"""Post-trip processing: resolve marker positions of recorded routes.

Usage:
  uv run python scripts/process_trip.py unprocessed_routes/route_x.json
  uv run python scripts/process_trip.py unprocessed_routes/route_x.json processed_routes/route_x.json
  uv run python scripts/process_trip.py --all
  uv run python scripts/process_trip.py --all --force

Single-file mode exits with status 1 when the input cannot be processed;
``--all`` processes every ``route_*.json`` in the routes folder, prints a
summary and exits with status 1 if any file failed.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from train_hud.config import HudSettings
from train_hud.route.processing import ProcessOutcome, process_all, process_route_file
from train_hud.route.resolver import ResolutionMethod
from train_hud.route.storage import RouteFileError


def _process_one(args: argparse.Namespace, settings: HudSettings) -> int:
    output = args.output or settings.processed_dir / args.input.name
    try:
        result = process_route_file(
            args.input, output, force=args.force, timetable_dir=settings.timetable_dir
        )
    except RouteFileError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1

    if result.outcome is ProcessOutcome.SKIPPED:
        print(f"Skipped {args.input.name}: {result.reason}")
        return 0

    report = result.report
    print(f"Processed {args.input.name} -> {output}")
    print(f"  on-spot    : {report.count(ResolutionMethod.ONSPOT)}")
    print(f"  detection  : {report.count(ResolutionMethod.DETECTION)}")
    print(f"  unchanged  : {report.count(ResolutionMethod.UNCHANGED)}")
    print(f"  errors     : {report.errors}")
    return 0


def main() -> None:
    settings = HudSettings.from_env()

    ap = argparse.ArgumentParser(description="Resolve marker positions of recorded routes")
    ap.add_argument("input", type=Path, nargs="?", help="Route file to process")
    ap.add_argument("output", type=Path, nargs="?", help="Output file (default: processed folder)")
    ap.add_argument("--all", action="store_true", help="Process every route in the routes folder")
    ap.add_argument("--force", action="store_true", help="Reprocess files that already have output")
    ap.add_argument("--routes-dir", type=Path, default=settings.routes_dir,
                    help="Folder of recorded routes (for --all)")
    ap.add_argument("--processed-dir", type=Path, default=settings.processed_dir,
                    help="Folder for processed routes")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log every marker")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    settings.routes_dir = args.routes_dir
    settings.processed_dir = args.processed_dir

    if not args.all:
        if args.input is None:
            ap.error("an input file is required unless --all is given")
        sys.exit(_process_one(args, settings))

    print(f"Routes    : {settings.routes_dir}")
    print(f"Output    : {settings.processed_dir}")
    print()
    summary = process_all(
        settings.routes_dir,
        settings.processed_dir,
        force=args.force,
        timetable_dir=settings.timetable_dir,
    )
    print()
    print("Summary:")
    print(f"  Processed: {summary.processed}")
    print(f"  Skipped  : {summary.skipped}")
    print(f"  Errors   : {summary.errors}")
    sys.exit(0 if summary.ok else 1)


if __name__ == "__main__":
    main()
