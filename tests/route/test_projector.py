"""Tests for RouteProjector distance-along-route."""

from __future__ import annotations

import pytest

from tests.route.conftest import northward_line
from train_hud.route.models import Coordinate, RouteRecording
from train_hud.route.projector import RouteProjector


@pytest.fixture
def projector(resolved_route) -> RouteProjector:
    return RouteProjector(resolved_route)


def test_distance_sums_arc_length(projector, resolved_route):
    live = resolved_route.points[1].coordinate
    assert projector.distance_to_marker(live, "Euston") == pytest.approx(600.0, rel=1e-6)


def test_live_position_snaps_to_nearest_vertex(projector, resolved_route):
    p = resolved_route.points[1]
    live = Coordinate(p.latitude + 0.0001, p.longitude + 0.0002)
    assert projector.distance_to_marker(live, "Bletchley") == pytest.approx(200.0, rel=1e-6)


def test_marker_behind_is_zero(projector, resolved_route):
    live = resolved_route.points[8].coordinate
    assert projector.distance_to_marker(live, "Bletchley") == 0.0


def test_marker_at_live_vertex_is_zero(projector, resolved_route):
    assert projector.distance_to_marker(resolved_route.points[3].coordinate, "Bletchley") == 0.0


def test_distance_decreases_monotonically_approaching_marker(projector, resolved_route):
    distances = [
        projector.distance_to_marker(p.coordinate, "Euston") for p in resolved_route.points
    ]
    for prev, cur in zip(distances, distances[1:]):
        assert cur <= prev
    assert all(d >= 0 for d in distances)


def test_unknown_marker_is_none(projector, resolved_route):
    assert projector.distance_to_marker(resolved_route.points[0].coordinate, "Crewe") is None


def test_unresolved_marker_is_none(projector, resolved_route):
    assert projector.distance_to_marker(resolved_route.points[0].coordinate, "Nowhere") is None


def test_route_without_polyline_is_none():
    projector = RouteProjector(RouteRecording())
    assert not projector.has_route
    assert projector.distance_to_marker(Coordinate(51.5, -0.1), "Euston") is None


def test_vertex_for(resolved_route):
    projector = RouteProjector(resolved_route)
    assert projector.vertex_for(resolved_route.points[5].coordinate) == 5
    assert RouteProjector(RouteRecording(points=northward_line(0))).vertex_for(Coordinate(0, 0)) == -1
