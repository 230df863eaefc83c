"""Grid spatial index for nearest-vertex queries on a recorded polyline.

The projector asks "which vertex is closest to the train?" on every telemetry
tick.  A linear scan over a long recording is wasteful, so the vertices are
bucketed in a regular lat/lon grid once per load and queries search outward
ring by ring.

Search stops as soon as the best distance found is strictly below a haversine
lower bound for every cell not yet visited, which keeps results identical to
:func:`~train_hud.route.geodesy.nearest_index`, including the lowest-index tie
break.  Near the poles or the antimeridian the bound is not usable and the
index answers with an exact linear scan instead.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterator, Sequence

from train_hud.route.geodesy import EARTH_RADIUS_M, haversine_m, nearest_index
from train_hud.route.models import Coordinate, TracePoint

_MAX_ABS_LAT = 80.0
_MAX_ABS_LON = 179.0
_SLACK_M = 1e-6  # float noise between the bound and haversine_m


class NearestVertexIndex:
    """Nearest-vertex lookup over an immutable polyline.

    Args:
        points: The polyline vertices, in recording order.
        cell_deg: Grid cell edge in degrees.  Roughly the expected spacing
            between the train and the route; smaller cells mean fewer distance
            evaluations per ring but more rings when far from the route.
    """

    def __init__(self, points: Sequence[TracePoint], cell_deg: float = 0.01) -> None:
        if cell_deg <= 0:
            raise ValueError("cell_deg must be > 0")
        self._points = list(points)
        self._cell = cell_deg
        self._cells: dict[tuple[int, int], list[int]] = defaultdict(list)

        for i, pt in enumerate(self._points):
            self._cells[self._key(pt.latitude, pt.longitude)].append(i)

        if self._points:
            rows = [k[0] for k in self._cells]
            cols = [k[1] for k in self._cells]
            self._row_range = (min(rows), max(rows))
            self._col_range = (min(cols), max(cols))
            self._max_abs_lat = max(abs(p.latitude) for p in self._points)
            self._gridded = (
                self._max_abs_lat < _MAX_ABS_LAT
                and all(abs(p.longitude) <= _MAX_ABS_LON for p in self._points)
            )
        else:
            self._gridded = False

    def __len__(self) -> int:
        return len(self._points)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def nearest(self, target: Coordinate) -> int:
        """Index of the vertex closest to *target*; ``-1`` if the polyline is empty."""
        if not self._points:
            return -1
        if (
            not self._gridded
            or abs(target.latitude) >= _MAX_ABS_LAT
            or abs(target.longitude) > _MAX_ABS_LON
        ):
            return nearest_index(self._points, target)

        q_row, q_col = self._key(target.latitude, target.longitude)
        max_ring = max(
            abs(q_row - self._row_range[0]),
            abs(q_row - self._row_range[1]),
            abs(q_col - self._col_range[0]),
            abs(q_col - self._col_range[1]),
        )
        if (max_ring + 1) * self._cell > 180.0:
            return nearest_index(self._points, target)
        phi_max = min(max(self._max_abs_lat, abs(target.latitude)) + self._cell, 90.0)
        cos_min = math.cos(math.radians(phi_max))

        best_index = -1
        best_distance = math.inf
        for ring in range(max_ring + 1):
            if ring > 0 and 8 * ring > len(self._cells):
                return nearest_index(self._points, target)

            for key in _ring(q_row, q_col, ring):
                for i in self._cells.get(key, ()):
                    d = haversine_m(target, self._points[i])
                    if d < best_distance or (d == best_distance and i < best_index):
                        best_distance = d
                        best_index = i

            if best_index >= 0 and best_distance + _SLACK_M < self._lower_bound(ring, cos_min):
                return best_index

        return best_index

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _key(self, lat: float, lon: float) -> tuple[int, int]:
        return math.floor(lat / self._cell), math.floor(lon / self._cell)

    def _lower_bound(self, ring: int, cos_min: float) -> float:
        """Minimum distance from the query to any cell outside *ring*.

        Such a cell is offset by at least ``ring`` cells along one axis.  The
        longitude bound (shrunk by ``cos_min``) is never larger than the
        latitude one, so it bounds both.
        """
        theta = math.radians(ring * self._cell)
        return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, cos_min * math.sin(theta / 2)))


def _ring(row: int, col: int, k: int) -> Iterator[tuple[int, int]]:
    """Cells at Chebyshev distance exactly *k* from (*row*, *col*)."""
    if k == 0:
        yield row, col
        return
    for dc in range(-k, k + 1):
        yield row - k, col + dc
        yield row + k, col + dc
    for dr in range(-k + 1, k):
        yield row + dr, col - k
        yield row + dr, col + k
