"""Route recording, marker resolution and playback projection.

Public API
----------
RouteRecording      - polyline, markers and timetable of one recorded trip
RouteRecorder       - builds a recording from live telemetry, write-through
MarkerResolver      - fixes marker detections onto the recorded polyline
RouteProjector      - live distance along a recording to a marker
NearestVertexIndex  - grid index for nearest-vertex queries
process_route_file  - post-trip processing of one file
process_all         - post-trip processing of a folder
RouteFileError      - raised on missing or invalid route files
"""

from train_hud.route.index import NearestVertexIndex
from train_hud.route.models import (
    Coordinate,
    MarkerDetection,
    ResolvedMarker,
    RouteRecording,
    TracePoint,
)
from train_hud.route.processing import BatchSummary, ProcessOutcome, process_all, process_route_file
from train_hud.route.projector import RouteProjector
from train_hud.route.recorder import RouteRecorder
from train_hud.route.resolver import MarkerResolver, ResolutionMethod, ResolutionReport
from train_hud.route.storage import RouteFileError, load_recording, save_recording

__all__ = [
    "BatchSummary",
    "Coordinate",
    "MarkerDetection",
    "MarkerResolver",
    "NearestVertexIndex",
    "ProcessOutcome",
    "ResolutionMethod",
    "ResolutionReport",
    "ResolvedMarker",
    "RouteFileError",
    "RouteProjector",
    "RouteRecorder",
    "RouteRecording",
    "TracePoint",
    "load_recording",
    "process_all",
    "process_route_file",
    "save_recording",
]
