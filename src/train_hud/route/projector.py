"""RouteProjector — distance along a recorded route from the live position to a marker."""

from __future__ import annotations

from train_hud.route.geodesy import path_length
from train_hud.route.index import NearestVertexIndex
from train_hud.route.models import Coordinate, ResolvedMarker, RouteRecording


class RouteProjector:
    """Projects live positions onto a loaded recording.

    The spatial index and each marker's nearest vertex are computed once when
    the projector is built; per-tick work is one index query plus an arc-length
    sum.

    Parameters
    ----------
    recording:
        A processed recording.  Markers without a resolved position are
        treated as unknown.
    cell_deg:
        Grid cell size handed to :class:`NearestVertexIndex`.
    """

    def __init__(self, recording: RouteRecording, cell_deg: float = 0.01) -> None:
        self.recording = recording
        self._points = recording.points
        self._index = NearestVertexIndex(self._points, cell_deg=cell_deg)
        self._marker_vertex: dict[str, int] = {}
        if self._points:
            for m in recording.markers:
                if isinstance(m, ResolvedMarker) and m.position is not None:
                    self._marker_vertex.setdefault(m.name, self._index.nearest(m.position))

    @property
    def has_route(self) -> bool:
        return bool(self._points)

    def vertex_for(self, live: Coordinate) -> int:
        """Index of the polyline vertex nearest *live*, ``-1`` without a route."""
        return self._index.nearest(live)

    def distance_to_marker(self, live: Coordinate, name: str) -> float | None:
        """Metres along the route from *live* to the marker called *name*.

        Returns 0.0 when the marker's vertex is at or behind the live vertex,
        and ``None`` when there is no route or the marker is unknown or
        unresolved.
        """
        if not self._points:
            return None
        target = self._marker_vertex.get(name)
        if target is None:
            return None
        current = self._index.nearest(live)
        if target <= current:
            return 0.0
        return path_length(self._points, current, target)
