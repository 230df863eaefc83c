"""Post-trip processing of recorded route files.

Takes route files from the recording folder, resolves their markers and
writes the result to the processed folder, one file at a time or in bulk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from train_hud.route.resolver import MarkerResolver, ResolutionMethod, ResolutionReport
from train_hud.route.storage import (
    RouteFileError,
    attach_timetable,
    list_route_files,
    load_recording,
    save_recording,
)
from train_hud.timetable.loader import find_timetable_csv, load_timetable_csv

_logger = logging.getLogger(__name__)


class ProcessOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"


@dataclass
class FileResult:
    outcome: ProcessOutcome
    report: ResolutionReport | None = None
    reason: str = ""


@dataclass
class BatchSummary:
    processed: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def ok(self) -> bool:
        return self.errors == 0


def process_route_file(
    input_path: str | Path,
    output_path: str | Path,
    force: bool = False,
    timetable_dir: str | Path | None = None,
    resolver: MarkerResolver | None = None,
) -> FileResult:
    """Resolve the markers of one route file and write the result.

    The embedded timetable is kept; without one, the first CSV in
    *timetable_dir* is attached.  Nothing is written when *output_path*
    already exists (unless *force*), or when no marker was resolved and there
    is no timetable to add.

    Raises:
        RouteFileError: If the input is missing, malformed or has no coordinates.
    """
    output = Path(output_path)
    if output.exists() and not force:
        _logger.info("%s already processed; use force to reprocess", output.name)
        return FileResult(ProcessOutcome.SKIPPED, reason="already processed")

    recording = load_recording(input_path)
    _logger.info(
        "Processing %s: route %r, %d coordinates, %d markers",
        Path(input_path).name,
        recording.name,
        len(recording.points),
        len(recording.markers),
    )

    if not recording.timetable and timetable_dir is not None:
        csv_path = find_timetable_csv(timetable_dir)
        if csv_path is not None:
            try:
                recording = attach_timetable(recording, load_timetable_csv(csv_path))
            except OSError as exc:
                _logger.warning("Failed to load timetable %s: %s", csv_path.name, exc)
        else:
            _logger.warning("No timetable file found in %s", timetable_dir)

    resolved, report = (resolver or MarkerResolver()).resolve(recording)

    unchanged = report.count(ResolutionMethod.UNCHANGED)
    if report.resolved == 0 and unchanged == 0 and not resolved.timetable:
        _logger.warning("%s: no markers resolved and no timetable, not writing", output.name)
        return FileResult(ProcessOutcome.SKIPPED, report, reason="nothing resolved")

    try:
        save_recording(resolved, output)
    except OSError as exc:
        raise RouteFileError(f"Cannot write {output}: {exc}") from exc
    _logger.info("Wrote %s", output)
    return FileResult(ProcessOutcome.PROCESSED, report)


def process_all(
    input_dir: str | Path,
    output_dir: str | Path,
    force: bool = False,
    timetable_dir: str | Path | None = None,
) -> BatchSummary:
    """Process every ``route_*.json`` in *input_dir* into *output_dir*.

    A failing file is logged and counted; the others still run.
    """
    summary = BatchSummary()
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    resolver = MarkerResolver()

    for path in list_route_files(input_dir):
        try:
            result = process_route_file(
                path, out / path.name, force=force,
                timetable_dir=timetable_dir, resolver=resolver,
            )
        except RouteFileError as exc:
            _logger.error("Error processing %s: %s", path.name, exc)
            summary.errors += 1
            continue
        if result.outcome is ProcessOutcome.PROCESSED:
            summary.processed += 1
        else:
            summary.skipped += 1

    return summary
