"""Shared builders for route tests."""

from __future__ import annotations

import math

import pytest

from train_hud.route.geodesy import EARTH_RADIUS_M
from train_hud.route.models import (
    Coordinate,
    MarkerDetection,
    ResolvedMarker,
    RouteRecording,
    TracePoint,
)
from train_hud.timetable.models import Stop

DEG_PER_M = 180.0 / (math.pi * EARTH_RADIUS_M)  # along a meridian


def northward_line(n: int, spacing_m: float = 100.0, lat0: float = 51.5, lon0: float = -0.1) -> list[TracePoint]:
    """*n* points heading due north, *spacing_m* apart."""
    return [TracePoint(lat0 + i * spacing_m * DEG_PER_M, lon0) for i in range(n)]


def make_stop(index: int = 0, api_name: str = "Euston", **overrides) -> Stop:
    defaults = dict(
        index=index,
        destination=api_name,
        arrival="",
        departure="",
        platform="1",
        api_name=api_name,
    )
    defaults.update(overrides)
    return Stop(**defaults)


def make_detection(name: str = "Euston", **overrides) -> MarkerDetection:
    defaults = dict(
        name=name,
        kind="Station",
        detected_at=Coordinate(51.5, -0.1),
        distance_ahead_m=150.0,
        timestamp="2026-01-04T03:01:07.000Z",
    )
    defaults.update(overrides)
    return MarkerDetection(**defaults)


@pytest.fixture
def equator_points() -> list[TracePoint]:
    """Three points on the equator, about 111 m apart."""
    return [TracePoint(0.0, 0.0), TracePoint(0.0, 0.001), TracePoint(0.0, 0.002)]


@pytest.fixture
def resolved_route() -> RouteRecording:
    """Ten points 100 m apart with two resolved stations at vertices 3 and 7."""
    points = northward_line(10)
    return RouteRecording(
        name="Test Line",
        points=points,
        markers=[
            ResolvedMarker("Bletchley", "Station", points[3].latitude, points[3].longitude, 250.0),
            ResolvedMarker("Euston", "Station", points[7].latitude, points[7].longitude),
            ResolvedMarker("Nowhere", "Station"),
        ],
        timetable=[make_stop(0, "Bletchley"), make_stop(1, "Euston")],
    )
