"""Shared fixtures for web tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from train_hud.config import HudSettings
from train_hud.hud.session import HudSession
from train_hud.web.app import create_app


@pytest.fixture
def settings(tmp_path) -> HudSettings:
    """Settings with both route folders below *tmp_path*."""
    routes = tmp_path / "unprocessed_routes"
    processed = tmp_path / "processed_routes"
    routes.mkdir()
    processed.mkdir()
    return HudSettings(routes_dir=routes, processed_dir=processed, poll_interval_s=0.0)


@pytest.fixture
def session() -> HudSession:
    return HudSession()


@pytest.fixture
def tsw():
    """Stand-in simulator client; the app uses it as is."""
    fake = MagicMock()
    fake.fetch = AsyncMock(return_value={"Entries": []})
    return fake


@pytest.fixture
def client(settings, session, tsw):
    """FastAPI test client."""
    with TestClient(create_app(settings, session, client=tsw)) as c:
        yield c


def make_route_dict(name: str = "Test Line", points: int = 3) -> dict:
    """Build a minimal processed route document."""
    return {
        "routeName": name,
        "totalPoints": points,
        "totalMarkers": 1,
        "coordinates": [
            {"latitude": 51.5 + i * 0.001, "longitude": -0.1} for i in range(points)
        ],
        "markers": [
            {"stationName": "Euston", "markerType": "Station",
             "latitude": 51.5, "longitude": -0.1},
        ],
        "timetable": [
            {"index": 0, "destination": "London Euston", "arrival": "09:00:00",
             "departure": "", "platform": "12", "apiName": "Euston"},
        ],
    }
