"""Route file persistence.

Route recordings are single JSON documents.  Writes go to a temporary file
in the same directory followed by :func:`os.replace`, so a crash mid-write
leaves the previous version intact rather than a truncated file.
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path

from train_hud.route.models import RouteRecording
from train_hud.timetable.models import Stop

ROUTE_PREFIX = "route_"
ROUTE_SUFFIX = ".json"


class RouteFileError(Exception):
    """Raised when a route file is missing or not a valid recording."""


def read_route_dict(path: str | Path) -> dict:
    """Read the raw JSON document at *path*.

    Raises:
        RouteFileError: If the file is missing or not a JSON object.
    """
    p = Path(path)
    if not p.is_file():
        raise RouteFileError(f"File not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RouteFileError(f"Cannot read {p.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise RouteFileError(f"{p.name} is not a route document")
    return data


def load_recording(path: str | Path) -> RouteRecording:
    """Load a :class:`RouteRecording` from *path*.

    Raises:
        RouteFileError: If the file is missing or malformed.
    """
    return recording_from_dict(read_route_dict(path), source=Path(path).name)


def recording_from_dict(data: dict, source: str = "route data") -> RouteRecording:
    """Build a recording from a decoded document, wrapping schema errors."""
    try:
        return RouteRecording.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise RouteFileError(f"Invalid route data in {source}: {exc}") from exc


def dumps_recording(recording: RouteRecording) -> str:
    """Serialize *recording* exactly as it is written to disk."""
    return _dumps(recording.to_dict())


def save_recording(recording: RouteRecording, path: str | Path) -> None:
    """Atomically write *recording* to *path*.

    Raises:
        OSError: If the file cannot be written.
    """
    write_route_dict(recording.to_dict(), path)


def write_route_dict(data: dict, path: str | Path) -> None:
    """Atomically write the raw route document *data* to *path*.

    Raises:
        OSError: If the file cannot be written.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = _dumps(data)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def list_route_files(directory: str | Path) -> list[Path]:
    """Return ``route_*.json`` files in *directory*, sorted by name."""
    folder = Path(directory)
    if not folder.is_dir():
        return []
    return sorted(
        p for p in folder.iterdir()
        if p.is_file() and p.name.startswith(ROUTE_PREFIX) and p.name.endswith(ROUTE_SUFFIX)
    )


def find_skeleton(directory: str | Path) -> Path | None:
    """Most recent route skeleton in *directory* (last by name), or ``None``.

    Skeletons are written by the timetable extractor with timestamped names,
    so the lexically last one is the newest.
    """
    files = list_route_files(directory)
    return files[-1] if files else None


def new_recording_path(directory: str | Path) -> Path:
    """Timestamped path for a recording started without a skeleton."""
    stamp = time.strftime("%Y-%m-%d_%H-%M-%S", time.gmtime())
    return Path(directory) / f"{ROUTE_PREFIX}recording_{stamp}{ROUTE_SUFFIX}"


def attach_timetable(recording: RouteRecording, stops: list[Stop]) -> RouteRecording:
    """Return a copy of *recording* carrying *stops* as its timetable."""
    return RouteRecording(
        name=recording.name,
        points=list(recording.points),
        markers=list(recording.markers),
        timetable=list(stops),
        duration_ms=recording.duration_ms,
        request_count=recording.request_count,
    )


def combine_timetable(route_path: str | Path, stops: list[Stop], output: str | Path) -> dict:
    """Copy the route document at *route_path* to *output* with *stops* as its timetable.

    Works on the raw document, so keys the route model does not know about
    are carried over unchanged.  Returns the written document.

    Raises:
        RouteFileError: If *route_path* is missing or not a route document.
        OSError: If *output* cannot be written.
    """
    data = read_route_dict(route_path)
    data["timetable"] = [s.to_dict() for s in stops]
    write_route_dict(data, output)
    return data


def _dumps(data: dict) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)
