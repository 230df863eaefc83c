"""TelemetryParser — converts a raw subscription snapshot to a TelemetryFrame."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from typing import Any

from train_hud.route.models import MARKER, STATION, Coordinate
from train_hud.telemetry.models import TelemetryFrame, TrackMarker

_logger = logging.getLogger(__name__)

PLAYER_INFO = "DriverAid.PlayerInfo"
DRIVER_AID = "DriverAid.Data"
TRACK_DATA = "DriverAid.TrackData"
TIME_OF_DAY = "TimeOfDay.Data"
_HUD = "CurrentDrivableActor.Function.HUD_"

MS_TO_KMH = 3.6
MS_TO_MPH = 2.23694
CM_PER_M = 100.0
CM_PER_FT = 30.48

# HUD function path -> (value name, frame field, conversion)
#   "speed": m/s scaled to km/h or mph and rounded
#   "bool":  coerced to bool
#   "raw":   kept as reported
_HUD_FIELD_MAP: tuple[tuple[str, str, str, str], ...] = (
    # path suffix              value name            frame field             conversion
    ("GetSpeed",               "Speed (ms)",         "speed",                "speed"),
    ("GetDirection",           "Direction",          "direction",            "raw"),
    ("GetIsSlipping",          "IsSlipping",         "is_slipping",          "bool"),
    ("GetBrakeGauge_1",        "BrakeGauge",         "brake_gauge_1",        "raw"),
    ("GetBrakeGauge_2",        "BrakeGauge",         "brake_gauge_2",        "raw"),
    ("GetAcceleration",        "Acceleration",       "acceleration",         "raw"),
    ("GetSpeedControlTarget",  "SpeedControlTarget", "speed_control_target", "speed"),
    ("GetMaxPermittedSpeed",   "MaxPermittedSpeed",  "max_permitted_speed",  "speed"),
    ("GetTractiveEffort",      "TractiveEffort",     "tractive_effort",      "raw"),
    ("GetIsTractionLocked",    "IsTractionLocked",   "is_traction_locked",   "bool"),
)

# Brake handles report a 0-1 position plus an "active" flag.
_BRAKE_HANDLES: dict[str, tuple[str, str, bool]] = {
    # path suffix                  position field             active field             as percent
    "GetTrainBrakeHandle":        ("train_brake",             "train_brake_active",      True),
    "GetLocomotiveBrakeHandle":   ("locomotive_brake_handle", "locomotive_brake_active", False),
    "GetElectricBrakeHandle":     ("electric_dynamic_brake",  "electric_brake_active",   True),
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) \
        and math.isfinite(value)


class TelemetryParser:
    """Parses a subscription snapshot (``{"Entries": [...]}``) into a :class:`TelemetryFrame`.

    Entries flagged ``NodeValid: false`` and unknown paths are ignored.  A
    malformed entry is skipped on its own; the rest of the snapshot still
    parses.

    Args:
        use_miles: Report speeds in mph and distances in feet instead of
            km/h and metres.
    """

    def __init__(self, use_miles: bool = False) -> None:
        self.use_miles = use_miles
        self._speed_factor = MS_TO_MPH if use_miles else MS_TO_KMH
        self._distance_factor = CM_PER_FT if use_miles else CM_PER_M
        self._handlers: dict[str, Callable[[TelemetryFrame, dict], None]] = {
            PLAYER_INFO: self._player_info,
            DRIVER_AID: self._driver_aid,
            TRACK_DATA: self._track_data,
            TIME_OF_DAY: self._time_of_day,
            _HUD + "GetPowerHandle": self._power_handle,
        }
        for suffix, value_name, field_name, conversion in _HUD_FIELD_MAP:
            self._handlers[_HUD + suffix] = self._scalar_handler(value_name, field_name, conversion)
        for suffix, (position, active, percent) in _BRAKE_HANDLES.items():
            self._handlers[_HUD + suffix] = self._brake_handler(position, active, percent)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, raw: dict) -> TelemetryFrame:
        """Convert *raw* snapshot to a :class:`TelemetryFrame`."""
        frame = TelemetryFrame()
        entries = raw.get("Entries") if isinstance(raw, dict) else None
        if not isinstance(entries, list):
            return frame

        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("NodeValid"):
                continue
            values = entry.get("Values")
            handler = self._handlers.get(entry.get("Path", ""))
            if handler is None or not isinstance(values, dict):
                continue
            try:
                handler(frame, values)
            except (KeyError, TypeError, ValueError) as exc:
                _logger.debug("Skipping malformed %s entry: %s", entry.get("Path"), exc)

        return frame

    def to_speed(self, metres_per_second: float) -> int:
        return round(metres_per_second * self._speed_factor)

    def to_distance(self, centimetres: float) -> int:
        return round(centimetres / self._distance_factor)

    # ------------------------------------------------------------------
    # Entry handlers
    # ------------------------------------------------------------------

    def _scalar_handler(
        self, value_name: str, field_name: str, conversion: str
    ) -> Callable[[TelemetryFrame, dict], None]:
        def handle(frame: TelemetryFrame, values: dict) -> None:
            value = values.get(value_name)
            if value is None:
                return
            if conversion == "speed":
                if not _is_number(value):
                    raise ValueError(f"{value_name} is not numeric: {value!r}")
                value = self.to_speed(value)
            elif conversion == "bool":
                value = bool(value)
            setattr(frame, field_name, value)

        return handle

    def _brake_handler(
        self, position_field: str, active_field: str, percent: bool
    ) -> Callable[[TelemetryFrame, dict], None]:
        def handle(frame: TelemetryFrame, values: dict) -> None:
            position = values.get("HandlePosition")
            if position is None:
                return
            if not _is_number(position):
                raise ValueError(f"HandlePosition is not numeric: {position!r}")
            setattr(frame, position_field, round(position * 100) if percent else position)
            setattr(frame, active_field, bool(values.get("IsActive") or False))

        return handle

    def _power_handle(self, frame: TelemetryFrame, values: dict) -> None:
        power = values.get("Power")
        if power is None:
            return
        if not _is_number(power):
            raise ValueError(f"Power is not numeric: {power!r}")
        rounded = math.ceil(power) if power >= 0 else math.floor(power)
        frame.power_handle = -abs(rounded) if values.get("IsNegative") is True else rounded

    def _driver_aid(self, frame: TelemetryFrame, values: dict) -> None:
        limit = values.get("speedLimit")
        if isinstance(limit, dict) and _is_number(limit.get("value")) and limit["value"]:
            frame.limit = self.to_speed(limit["value"])

        gradient = values.get("gradient")
        if _is_number(gradient):
            frame.gradient = gradient
            frame.incline = round(gradient, 1)

        next_limit = values.get("nextSpeedLimit")
        if isinstance(next_limit, dict) and _is_number(next_limit.get("value")) \
                and next_limit["value"]:
            frame.next_speed_limit = self.to_speed(next_limit["value"])

        distance = values.get("distanceToNextSpeedLimit")
        if _is_number(distance):
            frame.distance_to_next_speed_limit = self.to_distance(distance)

    def _player_info(self, frame: TelemetryFrame, values: dict) -> None:
        geo = values.get("geoLocation")
        if not isinstance(geo, dict):
            return
        lat, lon = geo.get("latitude"), geo.get("longitude")
        if _is_number(lat) and _is_number(lon):
            frame.position = Coordinate(latitude=float(lat), longitude=float(lon))

    def _track_data(self, frame: TelemetryFrame, values: dict) -> None:
        last = values.get("lastPlayerPosition")
        if isinstance(last, dict) and _is_number(last.get("height")):
            frame.height = last["height"]

        for list_name, default_kind in (("stations", STATION), ("markers", MARKER)):
            items = values.get(list_name)
            if not isinstance(items, list):
                continue
            for item in items:
                marker = _track_marker(item, default_kind)
                if marker is not None:
                    frame.track_markers.append(marker)

    def _time_of_day(self, frame: TelemetryFrame, values: dict) -> None:
        local = values.get("LocalTimeISO8601")
        if isinstance(local, str) and local:
            frame.local_time = local


def _track_marker(item: Any, default_kind: str) -> TrackMarker | None:
    """Build a :class:`TrackMarker` from a stations/markers list item, or None if unusable."""
    if not isinstance(item, dict):
        return None
    name = item.get("stationName") or item.get("markerName")
    distance_cm = item.get("distanceToStationCM")
    if not name or not _is_number(distance_cm):
        return None
    platform = item.get("platformLength")
    return TrackMarker(
        name=str(name),
        kind=str(item.get("markerType") or default_kind),
        distance_m=distance_cm / CM_PER_M,
        platform_length=platform if _is_number(platform) else None,
    )
