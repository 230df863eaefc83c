"""Tests for MarkerResolver: anchor priority, interpolation, idempotence."""

from __future__ import annotations

import copy

import pytest

from tests.route.conftest import make_detection, northward_line
from train_hud.route.geodesy import haversine_m
from train_hud.route.models import Coordinate, ResolvedMarker, RouteRecording
from train_hud.route.resolver import MarkerResolver, ResolutionMethod
from train_hud.route.storage import RouteFileError, dumps_recording, recording_from_dict


@pytest.fixture
def resolver() -> MarkerResolver:
    return MarkerResolver()


def test_detection_walks_forward_from_anchor(resolver, equator_points):
    rec = RouteRecording(
        points=equator_points,
        markers=[make_detection("X", detected_at=Coordinate(0.0, 0.0), distance_ahead_m=150.0)],
    )
    resolved, report = resolver.resolve(rec)

    marker = resolved.markers[0]
    assert isinstance(marker, ResolvedMarker)
    segment = haversine_m(equator_points[0], equator_points[1])
    fraction = (marker.longitude - 0.001) / 0.001
    assert 0.001 < marker.longitude < 0.002
    assert marker.latitude == 0.0
    assert fraction == pytest.approx((150.0 - segment) / segment)
    assert fraction == pytest.approx(0.35, abs=0.01)
    assert report.count(ResolutionMethod.DETECTION) == 1


def test_onspot_takes_priority_over_detection(resolver):
    points = northward_line(10)
    rec = RouteRecording(
        points=points,
        markers=[make_detection(
            detected_at=points[0].coordinate,
            distance_ahead_m=150.0,
            onspot_position=points[6].coordinate,
            onspot_distance_m=0.0,
        )],
    )
    resolved, report = resolver.resolve(rec)
    assert resolved.markers[0].position == points[6].coordinate
    assert report.outcomes[0].method is ResolutionMethod.ONSPOT


def test_partial_onspot_falls_back_to_detection(resolver):
    points = northward_line(10)
    rec = RouteRecording(
        points=points,
        markers=[make_detection(
            detected_at=points[2].coordinate,
            distance_ahead_m=200.0,
            onspot_position=points[6].coordinate,
            onspot_distance_m=None,
        )],
    )
    resolved, report = resolver.resolve(rec)
    assert resolved.markers[0].latitude == pytest.approx(points[4].latitude)
    assert report.outcomes[0].method is ResolutionMethod.DETECTION


def test_marker_without_position_data_is_an_error(resolver, caplog):
    rec = RouteRecording(
        points=northward_line(3),
        markers=[make_detection("Ghost", detected_at=None, distance_ahead_m=None, platform_length=120.0)],
    )
    resolved, report = resolver.resolve(rec)
    marker = resolved.markers[0]
    assert marker == ResolvedMarker("Ghost", "Station", platform_length=120.0)
    assert marker.position is None
    assert report.errors == 1
    assert "Ghost" in caplog.text


def test_zero_degree_coordinates_are_valid_anchors(resolver, equator_points):
    rec = RouteRecording(
        points=equator_points,
        markers=[make_detection(detected_at=Coordinate(0.0, 0.0), distance_ahead_m=0.0)],
    )
    resolved, report = resolver.resolve(rec)
    assert resolved.markers[0].position == Coordinate(0.0, 0.0)
    assert report.errors == 0


def test_distance_past_end_clamps_to_last_point(resolver):
    points = northward_line(3)
    rec = RouteRecording(points=points, markers=[make_detection(detected_at=points[0].coordinate, distance_ahead_m=5000.0)])
    resolved, _ = resolver.resolve(rec)
    assert resolved.markers[0].position == points[-1].coordinate


def test_output_strips_recording_bookkeeping(resolver):
    points = northward_line(5)
    rec = RouteRecording(
        points=points,
        markers=[make_detection(detected_at=points[0].coordinate, onspot_position=points[1].coordinate, onspot_distance_m=1.0, onspot_timestamp="t")],
    )
    resolved, _ = resolver.resolve(rec)
    data = resolved.to_dict()["markers"][0]
    assert set(data) == {"stationName", "markerType", "latitude", "longitude"}


def test_input_recording_is_not_mutated(resolver):
    points = northward_line(5)
    rec = RouteRecording(points=points, markers=[make_detection(detected_at=points[0].coordinate)])
    before = copy.deepcopy(rec)
    resolver.resolve(rec)
    assert rec == before


def test_empty_polyline_raises(resolver):
    with pytest.raises(RouteFileError):
        resolver.resolve(RouteRecording(markers=[make_detection()]))


def test_resolving_twice_is_byte_identical(resolver):
    points = northward_line(10)
    rec = RouteRecording(
        points=points,
        markers=[
            make_detection("A", detected_at=points[1].coordinate, distance_ahead_m=250.0),
            make_detection("B", detected_at=points[0].coordinate, onspot_position=points[7].coordinate, onspot_distance_m=3.0),
            make_detection("C", detected_at=None, distance_ahead_m=None),
        ],
    )
    first, _ = resolver.resolve(rec)
    second, _ = resolver.resolve(rec)
    assert dumps_recording(first) == dumps_recording(second)


def test_resolving_resolved_output_is_byte_identical(resolver):
    points = northward_line(10)
    rec = RouteRecording(
        points=points,
        markers=[make_detection("A", detected_at=points[1].coordinate, distance_ahead_m=250.0)],
    )
    once, _ = resolver.resolve(rec)
    reloaded = recording_from_dict(once.to_dict())
    twice, report = resolver.resolve(reloaded)
    assert dumps_recording(twice) == dumps_recording(once)
    assert report.count(ResolutionMethod.UNCHANGED) == 1
