"""HudSession — turns raw simulator snapshots into the HUD's per-tick payload.

One session is shared by everything a server process does: the live stream,
the background recorder loop and the route-management endpoints.  It owns the
loaded route and its projector, the timetable, the in-progress recording (in
recording mode) and the last known target/distance.
"""

from __future__ import annotations

import logging
from pathlib import Path

from train_hud.route.models import Coordinate, RouteRecording
from train_hud.route.projector import RouteProjector
from train_hud.route.recorder import RouteRecorder
from train_hud.route.storage import load_recording, recording_from_dict
from train_hud.telemetry.models import TelemetryFrame
from train_hud.telemetry.parser import TelemetryParser
from train_hud.timetable.models import Stop, TimetableDisplay
from train_hud.timetable.tracker import DistanceReadout, TimetableTracker

_logger = logging.getLogger(__name__)


class HudSession:
    """Shared state of one HUD server.

    Parameters
    ----------
    parser:
        Snapshot parser; defaults to metric units.
    recorder:
        When given, every parsed frame is also fed to the recorder and the
        recording's timetable drives the timetable box.
    """

    def __init__(
        self,
        parser: TelemetryParser | None = None,
        recorder: RouteRecorder | None = None,
    ) -> None:
        self.parser = parser or TelemetryParser()
        self.recorder = recorder
        self.route: RouteRecording | None = None
        self.route_source: str | None = None
        self.position: Coordinate | None = None
        self.readout = DistanceReadout()
        self._projector: RouteProjector | None = None
        self._tracker = TimetableTracker(recorder.recording.timetable if recorder else [])

    # ------------------------------------------------------------------
    # Route management
    # ------------------------------------------------------------------

    def load_route(self, path: str | Path) -> RouteRecording:
        """Load a route file for playback.

        Raises:
            RouteFileError: If the file is missing or invalid.
        """
        recording = load_recording(path)
        self._set_route(recording, Path(path).name)
        return recording

    def load_route_data(self, data: dict, source: str) -> RouteRecording:
        """Load an already-decoded route document (e.g. uploaded by the browser).

        Raises:
            RouteFileError: If *data* is not a valid route document.
        """
        recording = recording_from_dict(data, source=source)
        self._set_route(recording, source)
        return recording

    def set_timetable(self, stops: list[Stop]) -> None:
        self._tracker = TimetableTracker(stops)
        self.readout = DistanceReadout()

    @property
    def timetable(self) -> list[Stop]:
        return self._tracker.stops

    def route_data(self) -> dict | None:
        """The loaded route as served to the map page, or None."""
        if self.route is None:
            return None
        data = self.route.to_dict()
        data["timetableStations"] = [s.destination for s in self._tracker.stops]
        data["currentRouteFile"] = self.route_source or "unknown"
        return data

    # ------------------------------------------------------------------
    # Per-tick processing
    # ------------------------------------------------------------------

    def observe(self, raw: dict) -> TelemetryFrame:
        """Parse *raw* and feed the recorder, if any."""
        frame = self.parser.parse(raw)
        if frame.position is not None:
            self.position = frame.position
        if self.recorder is not None:
            self.recorder.observe_frame(frame)
        return frame

    def process(self, raw: dict) -> dict:
        """Build the HUD payload for one snapshot."""
        frame = self.observe(raw)
        display = self._tracker.display_for(frame.local_time) if frame.local_time else None
        distance = self._distance_to_station(frame, display)
        return _payload(frame, display, distance)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_route(self, recording: RouteRecording, source: str) -> None:
        self.route = recording
        self.route_source = source
        self._projector = RouteProjector(recording)
        self.set_timetable(recording.timetable)
        _logger.info(
            "Loaded route %s: %d coordinates, %d markers, %d stops",
            source,
            len(recording.points),
            len(recording.markers),
            len(recording.timetable),
        )

    def _distance_to_station(
        self, frame: TelemetryFrame, display: TimetableDisplay | None
    ) -> int | None:
        if display is None:
            return None
        self.readout.retarget(display.target_api_name)
        target = display.target_api_name
        if target:
            if self._projector is not None:
                if self.position is not None:
                    self.readout.record(self._projector.distance_to_marker(self.position, target))
            else:
                self.readout.record(frame.marker_distance(target))
        return self.readout.shown(display.show_distance)


def _payload(
    frame: TelemetryFrame, display: TimetableDisplay | None, distance: int | None
) -> dict:
    position = frame.position
    return {
        "speed": frame.speed,
        "direction": frame.direction,
        "limit": frame.limit,
        "incline": frame.incline,
        "nextSpeedLimit": frame.next_speed_limit,
        "distanceToNextSpeedLimit": frame.distance_to_next_speed_limit,
        "powerHandle": frame.power_handle,
        "isSlipping": frame.is_slipping,
        "brakeGauge1": frame.brake_gauge_1,
        "brakeGauge2": frame.brake_gauge_2,
        "acceleration": frame.acceleration,
        "speedControlTarget": frame.speed_control_target,
        "maxPermittedSpeed": frame.max_permitted_speed,
        "tractiveEffort": frame.tractive_effort,
        "trainBrake": frame.train_brake,
        "trainBrakeActive": frame.train_brake_active,
        "locomotiveBrakeHandle": frame.locomotive_brake_handle,
        "locomotiveBrakeActive": frame.locomotive_brake_active,
        "electricDynamicBrake": frame.electric_dynamic_brake,
        "electricBrakeActive": frame.electric_brake_active,
        "isTractionLocked": frame.is_traction_locked,
        "localTime": frame.local_time,
        "timetableTime": display.time if display else None,
        "timetableLabel": display.label if display else None,
        "distanceToStation": distance,
        "playerPosition": (
            {"latitude": position.latitude, "longitude": position.longitude}
            if position is not None
            else None
        ),
    }
