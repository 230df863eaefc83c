"""Telemetry data models."""

from __future__ import annotations

from dataclasses import dataclass, field

from train_hud.route.models import Coordinate


@dataclass(frozen=True)
class TrackMarker:
    """A station or track marker reported ahead of the train in ``DriverAid.TrackData``."""

    name: str
    kind: str
    """``'Station'`` for entries from the stations list, otherwise the marker type."""

    distance_m: float
    """Distance ahead of the train in metres (the feed reports centimetres)."""

    platform_length: float | None = None


@dataclass
class TelemetryFrame:
    """One parsed snapshot of the simulator subscription feed.

    Instrument values are already converted to display units (km/h or mph,
    metres or feet) and rounded the way the HUD shows them.  Fields stay at
    their defaults when the corresponding entry is absent or malformed.
    """

    speed: int = 0
    direction: int = 0
    limit: int = 0
    incline: float = 0.0
    next_speed_limit: int = 0
    distance_to_next_speed_limit: int = 0
    power_handle: int = 0
    is_slipping: bool = False
    brake_gauge_1: float = 0.0
    brake_gauge_2: float = 0.0
    acceleration: float = 0.0
    speed_control_target: int = 0
    max_permitted_speed: int = 0
    tractive_effort: float = 0.0
    train_brake: int = 0
    train_brake_active: bool = False
    locomotive_brake_handle: float = 0.0
    locomotive_brake_active: bool = False
    electric_dynamic_brake: int = 0
    electric_brake_active: bool = False
    is_traction_locked: bool = False

    local_time: str | None = None
    """Simulated local time, ISO-8601, as reported by ``TimeOfDay.Data``."""

    position: Coordinate | None = None
    gradient: float | None = None
    """Raw (unrounded) gradient, recorded with trace points."""

    height: float | None = None
    """Elevation of the player in metres, recorded with trace points."""

    track_markers: list[TrackMarker] = field(default_factory=list)

    def marker_distance(self, name: str) -> float | None:
        """Live distance in metres to the marker called *name*, if reported."""
        for m in self.track_markers:
            if m.name == name:
                return m.distance_m
        return None
