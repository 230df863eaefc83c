"""Load timetables exported by the timetable extractor.

The CSV layout is one header row followed by
``destination,arrival,departure,platform,apiName`` rows.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from train_hud.timetable.models import Stop

_logger = logging.getLogger(__name__)


def load_timetable_csv(path: str | Path) -> list[Stop]:
    """Parse a timetable CSV into stops.

    Rows with fewer than five columns are skipped.

    Raises:
        OSError: If the file cannot be read.
    """
    stops: list[Stop] = []
    with open(path, encoding="utf-8", newline="") as fh:
        reader = csv.reader(fh)
        next(reader, None)  # header
        for row in reader:
            if len(row) < 5:
                continue
            stops.append(Stop(
                index=len(stops),
                destination=row[0].strip(),
                arrival=row[1].strip(),
                departure=row[2].strip(),
                platform=row[3].strip(),
                api_name=row[4].strip(),
            ))
    _logger.info(
        "Loaded %d timetable stops from %s: %s",
        len(stops),
        Path(path).name,
        ", ".join(s.api_name for s in stops if s.api_name),
    )
    return stops


def find_timetable_csv(directory: str | Path) -> Path | None:
    """Return the first ``*.csv`` in *directory* (sorted by name), or ``None``."""
    folder = Path(directory)
    if not folder.is_dir():
        return None
    candidates = sorted(folder.glob("*.csv"))
    return candidates[0] if candidates else None
