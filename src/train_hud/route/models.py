"""Route recording data structures and their JSON representation.

The on-disk schema uses the simulator's camelCase names (``stationName``,
``markerType``...) so files written here stay interchangeable with route files
produced by earlier recordings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from train_hud.timetable.models import Stop

# Marker fields that only exist before resolution.
RAW_MARKER_KEYS = frozenset({
    "detectedAt",
    "distanceAheadMeters",
    "onspot_latitude",
    "onspot_longitude",
    "spoton_distance",
})

STATION = "Station"
MARKER = "Marker"


@dataclass(frozen=True)
class Coordinate:
    """A WGS-84 position in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class TracePoint:
    """One vertex of the recorded polyline."""

    latitude: float
    longitude: float
    height: float | None = None
    """Elevation in metres, when the simulator reported one."""

    gradient: float | None = None
    """Track gradient at the time of the sample."""

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    def same_position(self, coord: Coordinate) -> bool:
        """Exact lat/lon equality, no tolerance."""
        return self.latitude == coord.latitude and self.longitude == coord.longitude

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"longitude": self.longitude, "latitude": self.latitude}
        if self.height is not None:
            d["height"] = self.height
        if self.gradient is not None:
            d["gradient"] = self.gradient
        return d

    @classmethod
    def from_dict(cls, d: dict) -> TracePoint:
        return cls(
            latitude=float(d["latitude"]),
            longitude=float(d["longitude"]),
            height=d.get("height"),
            gradient=d.get("gradient"),
        )


@dataclass
class MarkerDetection:
    """A marker as observed during recording, before its position is resolved.

    The base record is written once, the first time the marker shows up in the
    track data.  The ``onspot_*`` fields are refreshed every time the train
    passes within close range of a timetabled marker (last write wins).
    """

    name: str
    kind: str
    detected_at: Coordinate | None
    distance_ahead_m: float | None
    timestamp: str | None = None
    platform_length: float | None = None
    onspot_position: Coordinate | None = None
    onspot_distance_m: float | None = None
    onspot_timestamp: str | None = None

    @property
    def has_onspot(self) -> bool:
        return self.onspot_position is not None and self.onspot_distance_m is not None

    @property
    def has_detection(self) -> bool:
        return self.detected_at is not None and self.distance_ahead_m is not None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"stationName": self.name, "markerType": self.kind}
        if self.detected_at is not None:
            d["detectedAt"] = {
                "longitude": self.detected_at.longitude,
                "latitude": self.detected_at.latitude,
            }
        if self.distance_ahead_m is not None:
            d["distanceAheadMeters"] = self.distance_ahead_m
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        if self.platform_length is not None:
            d["platformLength"] = self.platform_length
        if self.onspot_position is not None:
            d["onspot_latitude"] = self.onspot_position.latitude
            d["onspot_longitude"] = self.onspot_position.longitude
        if self.onspot_timestamp is not None:
            d["onspot_timestamp"] = self.onspot_timestamp
        if self.onspot_distance_m is not None:
            d["spoton_distance"] = self.onspot_distance_m
        return d

    @classmethod
    def from_dict(cls, d: dict, index: int = 0) -> MarkerDetection:
        detected = d.get("detectedAt")
        detected_at = None
        if isinstance(detected, dict) and detected.get("latitude") is not None \
                and detected.get("longitude") is not None:
            detected_at = Coordinate(float(detected["latitude"]), float(detected["longitude"]))

        onspot = None
        if d.get("onspot_latitude") is not None and d.get("onspot_longitude") is not None:
            onspot = Coordinate(float(d["onspot_latitude"]), float(d["onspot_longitude"]))

        return cls(
            name=_marker_name(d, index),
            kind=d.get("markerType") or STATION,
            detected_at=detected_at,
            distance_ahead_m=_opt_float(d.get("distanceAheadMeters")),
            timestamp=d.get("timestamp"),
            platform_length=_opt_float(d.get("platformLength")),
            onspot_position=onspot,
            onspot_distance_m=_opt_float(d.get("spoton_distance")),
            onspot_timestamp=d.get("onspot_timestamp"),
        )


@dataclass(frozen=True)
class ResolvedMarker:
    """A marker with its final position on the recorded route.

    ``latitude``/``longitude`` are ``None`` when resolution failed; name and
    kind are kept for diagnostics.
    """

    name: str
    kind: str
    latitude: float | None = None
    longitude: float | None = None
    platform_length: float | None = None

    @property
    def position(self) -> Coordinate | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"stationName": self.name, "markerType": self.kind}
        if self.latitude is not None and self.longitude is not None:
            d["latitude"] = self.latitude
            d["longitude"] = self.longitude
        if self.platform_length is not None:
            d["platformLength"] = self.platform_length
        return d

    @classmethod
    def from_dict(cls, d: dict, index: int = 0) -> ResolvedMarker:
        return cls(
            name=_marker_name(d, index),
            kind=d.get("markerType") or STATION,
            latitude=_opt_float(d.get("latitude")),
            longitude=_opt_float(d.get("longitude")),
            platform_length=_opt_float(d.get("platformLength")),
        )


Marker = Union[MarkerDetection, ResolvedMarker]


@dataclass
class RouteRecording:
    """A recorded route: polyline, markers and (optionally) the timetable driven."""

    name: str = "Route Recording"
    points: list[TracePoint] = field(default_factory=list)
    markers: list[Marker] = field(default_factory=list)
    timetable: list[Stop] = field(default_factory=list)
    duration_ms: int = 0
    request_count: int = 0

    @property
    def api_names(self) -> set[str]:
        """Stop identifiers used to join the timetable with markers."""
        return {s.api_name for s in self.timetable if s.api_name}

    @property
    def is_resolved(self) -> bool:
        return all(isinstance(m, ResolvedMarker) for m in self.markers)

    def marker(self, name: str) -> Marker | None:
        for m in self.markers:
            if m.name == name:
                return m
        return None

    def to_dict(self) -> dict:
        """Return the JSON-serializable file representation."""
        d: dict[str, Any] = {
            "routeName": self.name,
            "totalPoints": len(self.points),
            "totalMarkers": len(self.markers),
            "duration": self.duration_ms,
            "requestCount": self.request_count,
            "coordinates": [p.to_dict() for p in self.points],
            "markers": [m.to_dict() for m in self.markers],
        }
        if self.timetable:
            d["timetable"] = [s.to_dict() for s in self.timetable]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> RouteRecording:
        """Build a recording from its file representation.

        Raises:
            KeyError, TypeError, ValueError: on structurally invalid input.
        """
        markers: list[Marker] = []
        for i, raw in enumerate(d.get("markers") or []):
            if RAW_MARKER_KEYS.intersection(raw):
                markers.append(MarkerDetection.from_dict(raw, i))
            else:
                markers.append(ResolvedMarker.from_dict(raw, i))

        return cls(
            name=d.get("routeName") or "Route Recording",
            points=[TracePoint.from_dict(c) for c in d.get("coordinates") or []],
            markers=markers,
            timetable=[Stop.from_dict(s, i) for i, s in enumerate(d.get("timetable") or [])],
            duration_ms=int(d.get("duration") or 0),
            request_count=int(d.get("requestCount") or 0),
        )


def _marker_name(d: dict, index: int) -> str:
    # Nameless markers are keyed by their 1-based position in the file.
    return str(d.get("stationName") or d.get("markerName") or f"Marker {index + 1}")


def _opt_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)
