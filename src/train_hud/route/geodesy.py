"""Great-circle distance and the polyline walks built on it.

Every distance in the route pipeline goes through :func:`haversine_m`, so
nearest-vertex search and arc-length summation agree on the same metric.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from train_hud.route.models import Coordinate, TracePoint

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(a: Coordinate | TracePoint, b: Coordinate | TracePoint) -> float:
    """Great-circle surface distance in metres between *a* and *b*."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def nearest_index(points: Sequence[TracePoint], target: Coordinate) -> int:
    """Index of the vertex closest to *target* (linear scan).

    Ties resolve to the lowest index.  Returns ``-1`` for an empty polyline.
    """
    best_index = -1
    best_distance = math.inf
    for i, pt in enumerate(points):
        d = haversine_m(target, pt)
        if d < best_distance:
            best_distance = d
            best_index = i
    return best_index


def path_length(points: Sequence[TracePoint], start: int, end: int) -> float:
    """Sum of segment lengths from vertex *start* to vertex *end* (``start <= end``)."""
    total = 0.0
    for i in range(start, end):
        total += haversine_m(points[i], points[i + 1])
    return total


def follow_path(
    points: Sequence[TracePoint], start: int, distance_m: float
) -> Coordinate:
    """Walk *distance_m* metres forward along the polyline from vertex *start*.

    The result is interpolated linearly in lat/lon inside the segment where the
    accumulated length reaches *distance_m*.  Walking past the last vertex
    clamps to it; a non-positive distance returns the start vertex.

    Raises:
        ValueError: If *points* is empty.
    """
    if not points:
        raise ValueError("Cannot follow an empty polyline")

    last = points[-1]
    if start >= len(points) - 1:
        return last.coordinate
    if distance_m <= 0:
        return points[start].coordinate

    remaining = distance_m
    i = start
    while i < len(points) - 1:
        current = points[i]
        nxt = points[i + 1]
        segment = haversine_m(current, nxt)
        if segment >= remaining:
            ratio = remaining / segment
            return Coordinate(
                latitude=current.latitude + (nxt.latitude - current.latitude) * ratio,
                longitude=current.longitude + (nxt.longitude - current.longitude) * ratio,
            )
        remaining -= segment
        i += 1

    return last.coordinate
