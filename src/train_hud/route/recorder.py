"""RouteRecorder — builds a route recording from live telemetry.

The recorder keeps the polyline free of consecutive duplicates, remembers the
first sighting of every marker and refreshes the close-range ("on-spot")
sighting of timetabled markers.  Each mutation is written through to disk
immediately so an interrupted session loses at most the sample in flight.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from train_hud.route.models import (
    STATION,
    Coordinate,
    MarkerDetection,
    RouteRecording,
    TracePoint,
)
from train_hud.route.storage import (
    RouteFileError,
    find_skeleton,
    load_recording,
    new_recording_path,
    save_recording,
)

if TYPE_CHECKING:
    from train_hud.telemetry.models import TelemetryFrame

_logger = logging.getLogger(__name__)

ONSPOT_RANGE_M = 10.0
_PROGRESS_EVERY = 100


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RouteRecorder:
    """Records a polyline and marker detections into a :class:`RouteRecording`.

    Parameters
    ----------
    path:
        File the recording is persisted to after every mutation.
    recording:
        Initial state, typically a skeleton carrying only a timetable.
    clock:
        Monotonic clock in seconds, used for the ``duration`` field.
        Injected for testability.
    """

    def __init__(
        self,
        path: str | Path,
        recording: RouteRecording | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.recording = recording if recording is not None else RouteRecording()
        self._clock = clock
        self._started: float | None = None
        self._seen: set[str] = {m.name for m in self.recording.markers}
        self._last_point: TracePoint | None = (
            self.recording.points[-1] if self.recording.points else None
        )
        self._height: float | None = None
        self._gradient: float | None = None
        self._timetable_names = self.recording.api_names
        self.persist_failures = 0

    @classmethod
    def from_skeleton(cls, directory: str | Path, **kwargs) -> RouteRecorder:
        """Start recording into the newest skeleton in *directory*.

        Skeletons are route files created by the timetable extractor with an
        embedded timetable and empty trace.  Without one, recording starts in a
        fresh timestamped file and no on-spot sightings are taken.
        """
        folder = Path(directory)
        folder.mkdir(parents=True, exist_ok=True)
        skeleton = find_skeleton(folder)
        if skeleton is None:
            _logger.warning(
                "No route skeleton in %s; recording without a timetable", folder
            )
            return cls(new_recording_path(folder), **kwargs)

        try:
            loaded = load_recording(skeleton)
        except RouteFileError as exc:
            _logger.warning("Could not load skeleton %s: %s", skeleton.name, exc)
            loaded = RouteRecording()
        if loaded.points or loaded.markers:
            _logger.info(
                "Discarding %d coordinates and %d markers of the previous trip in %s",
                len(loaded.points),
                len(loaded.markers),
                skeleton.name,
            )
        # A new trip keeps only the route name and timetable.
        recording = RouteRecording(name=loaded.name, timetable=loaded.timetable)
        _logger.info(
            "Recording into skeleton %s (%d timetable stops)",
            skeleton.name,
            len(recording.timetable),
        )
        return cls(skeleton, recording, **kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current_position(self) -> Coordinate | None:
        return self._last_point.coordinate if self._last_point else None

    def observe_position(
        self,
        coord: Coordinate,
        height: float | None = None,
        gradient: float | None = None,
    ) -> bool:
        """Append *coord* to the polyline unless it repeats the last vertex.

        *height* and *gradient* update the latest known values, which are
        attached to every appended point.  Returns True if a point was added.
        """
        self._mark_started()
        if height is not None:
            self._height = height
        if gradient is not None:
            self._gradient = gradient

        if self._last_point is not None and self._last_point.same_position(coord):
            return False

        point = TracePoint(
            latitude=coord.latitude,
            longitude=coord.longitude,
            height=self._height,
            gradient=self._gradient,
        )
        self.recording.points.append(point)
        self.recording.request_count += 1
        self._last_point = point
        self.persist()

        count = len(self.recording.points)
        if count % _PROGRESS_EVERY == 0:
            _logger.info(
                "Route collection: %d coordinates, %d markers",
                count,
                len(self.recording.markers),
            )
        return True

    def observe_marker_candidate(
        self,
        name: str,
        kind: str,
        distance_ahead_m: float,
        current_position: Coordinate,
        platform_length: float | None = None,
    ) -> bool:
        """Record the first sighting of *name*, or refresh its on-spot sighting.

        An unseen marker is anchored at *current_position* with the given
        distance ahead.  A marker already seen gets its on-spot fields
        overwritten when it is within :data:`ONSPOT_RANGE_M` and belongs to the
        timetable.  Returns True if the recording changed.
        """
        self._mark_started()
        if not name:
            return False

        if name not in self._seen:
            marker = MarkerDetection(
                name=name,
                kind=kind or STATION,
                detected_at=current_position,
                distance_ahead_m=distance_ahead_m,
                timestamp=_utc_now_iso(),
                platform_length=platform_length,
            )
            self.recording.markers.append(marker)
            self._seen.add(name)
            self.persist()
            _logger.info("Found marker: %s (%.0fm ahead)", name, distance_ahead_m)
            return True

        if distance_ahead_m < ONSPOT_RANGE_M and name in self._timetable_names:
            marker = self.recording.marker(name)
            if not isinstance(marker, MarkerDetection):
                return False
            marker.onspot_position = current_position
            marker.onspot_distance_m = distance_ahead_m
            marker.onspot_timestamp = _utc_now_iso()
            self.persist()
            _logger.info(
                "Recording position for %s at %.2fm (%.6f, %.6f)",
                name,
                distance_ahead_m,
                current_position.latitude,
                current_position.longitude,
            )
            return True

        return False

    def observe_frame(self, frame: TelemetryFrame) -> None:
        """Feed one parsed telemetry frame into the recording.

        Markers are anchored at the frame's position, or the last recorded
        position when the frame carries none; with neither they are ignored.
        """
        if frame.position is not None:
            self.observe_position(frame.position, frame.height, frame.gradient)
        else:
            if frame.height is not None:
                self._height = frame.height
            if frame.gradient is not None:
                self._gradient = frame.gradient

        anchor = frame.position or self.current_position
        if anchor is None:
            return
        for m in frame.track_markers:
            self.observe_marker_candidate(
                m.name, m.kind, m.distance_m, anchor, m.platform_length
            )

    def persist(self) -> bool:
        """Write the whole recording to :attr:`path`.

        Failures are logged and swallowed; the in-memory recording stays
        authoritative and the next mutation retries implicitly.
        """
        if self._started is not None:
            self.recording.duration_ms = int((self._clock() - self._started) * 1000)
        try:
            save_recording(self.recording, self.path)
        except OSError as exc:
            self.persist_failures += 1
            _logger.error("Failed to save route to %s: %s", self.path, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _mark_started(self) -> None:
        if self._started is None:
            self._started = self._clock()
