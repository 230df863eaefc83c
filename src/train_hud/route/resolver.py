"""Marker position resolution: fix each detected marker onto the recorded route.

During recording a marker is only known as "N metres ahead of where the train
was".  After the trip the recorded polyline is the ground truth for where
"ahead" goes, so each marker is placed by snapping its anchor to the nearest
vertex and walking the reported distance forward along the polyline.

Anchors, in priority order:

1. the on-spot sighting (taken within a few metres of the marker), which is
   the most precise;
2. the first long-range detection;
3. neither: the marker keeps its name and kind but gets no position.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from train_hud.route.geodesy import follow_path, nearest_index
from train_hud.route.models import (
    Coordinate,
    MarkerDetection,
    ResolvedMarker,
    RouteRecording,
    TracePoint,
)
from train_hud.route.storage import RouteFileError

_logger = logging.getLogger(__name__)


class ResolutionMethod(str, Enum):
    ONSPOT = "onspot"
    DETECTION = "detectedAt"
    ERROR = "error"
    UNCHANGED = "unchanged"
    """Marker was already resolved; passed through as-is."""


@dataclass(frozen=True)
class MarkerOutcome:
    name: str
    method: ResolutionMethod
    distance_m: float | None = None


@dataclass
class ResolutionReport:
    """Per-marker outcomes of one resolver run."""

    outcomes: list[MarkerOutcome] = field(default_factory=list)

    def count(self, method: ResolutionMethod) -> int:
        return sum(1 for o in self.outcomes if o.method is method)

    @property
    def resolved(self) -> int:
        """Markers positioned by this run."""
        return self.count(ResolutionMethod.ONSPOT) + self.count(ResolutionMethod.DETECTION)

    @property
    def errors(self) -> int:
        return self.count(ResolutionMethod.ERROR)


def _walk(points: list[TracePoint], anchor: Coordinate, distance_m: float) -> Coordinate:
    start = nearest_index(points, anchor)
    return follow_path(points, start, distance_m)


class MarkerResolver:
    """Resolve every :class:`MarkerDetection` of a finished recording.

    The input recording is not modified; :meth:`resolve` returns a new
    recording whose markers are all :class:`ResolvedMarker` and which carries
    no detection-time bookkeeping.
    """

    def resolve(self, recording: RouteRecording) -> tuple[RouteRecording, ResolutionReport]:
        """Resolve *recording*'s markers against its polyline.

        Raises:
            RouteFileError: If the recording has no coordinates.
        """
        if not recording.points:
            raise RouteFileError("Invalid route data: missing or empty coordinates array")

        report = ResolutionReport()
        resolved: list[ResolvedMarker] = []
        for marker in recording.markers:
            result, outcome = self.resolve_marker(recording.points, marker)
            resolved.append(result)
            report.outcomes.append(outcome)

        _logger.info(
            "Resolved %d markers: %d on-spot, %d detection, %d errors, %d unchanged",
            len(recording.markers),
            report.count(ResolutionMethod.ONSPOT),
            report.count(ResolutionMethod.DETECTION),
            report.errors,
            report.count(ResolutionMethod.UNCHANGED),
        )

        return RouteRecording(
            name=recording.name,
            points=list(recording.points),
            markers=list(resolved),
            timetable=list(recording.timetable),
            duration_ms=recording.duration_ms,
            request_count=recording.request_count,
        ), report

    def resolve_marker(
        self,
        points: list[TracePoint],
        marker: MarkerDetection | ResolvedMarker,
    ) -> tuple[ResolvedMarker, MarkerOutcome]:
        """Resolve one marker; see the module docstring for the priority order."""
        if isinstance(marker, ResolvedMarker):
            return marker, MarkerOutcome(marker.name, ResolutionMethod.UNCHANGED)

        if marker.has_onspot:
            method = ResolutionMethod.ONSPOT
            anchor, distance = marker.onspot_position, marker.onspot_distance_m
        elif marker.has_detection:
            method = ResolutionMethod.DETECTION
            anchor, distance = marker.detected_at, marker.distance_ahead_m
        else:
            _logger.warning("%s: missing required position data, skipping", marker.name)
            return (
                ResolvedMarker(marker.name, marker.kind, platform_length=marker.platform_length),
                MarkerOutcome(marker.name, ResolutionMethod.ERROR),
            )

        position = _walk(points, anchor, distance)
        _logger.debug("%s: %s position (%.2fm ahead)", marker.name, method.value, distance)
        return (
            ResolvedMarker(
                name=marker.name,
                kind=marker.kind,
                latitude=position.latitude,
                longitude=position.longitude,
                platform_length=marker.platform_length,
            ),
            MarkerOutcome(marker.name, method, distance),
        )
