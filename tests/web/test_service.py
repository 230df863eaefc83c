"""Tests for the live event stream, the background recording loop and RouteCatalog."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from train_hud.hud.session import HudSession
from train_hud.route.models import RouteRecording
from train_hud.route.recorder import RouteRecorder
from train_hud.telemetry.client import TelemetryUnavailableError
from train_hud.web.service import RouteCatalog, event_stream, record_loop, sse_event

SPEED = "CurrentDrivableActor.Function.HUD_GetSpeed"


def speed_snapshot(ms: float) -> dict:
    return {"Entries": [{"Path": SPEED, "NodeValid": True, "Values": {"Speed (ms)": ms}}]}


def position_snapshot(lat: float, lon: float) -> dict:
    return {"Entries": [{
        "Path": "DriverAid.PlayerInfo",
        "NodeValid": True,
        "Values": {"geoLocation": {"latitude": lat, "longitude": lon}},
    }]}


def disconnect_after(ticks: int) -> AsyncMock:
    """is_disconnected stand-in that lets *ticks* events through."""
    return AsyncMock(side_effect=[False] * ticks + [True])


def collect(agen) -> list[str]:
    async def go():
        return [event async for event in agen]

    return asyncio.run(go())


def decode(event: str) -> dict:
    assert event.startswith("data: ") and event.endswith("\n\n")
    return json.loads(event[len("data: "):])


# ---------------------------------------------------------------------------
# sse_event / event_stream
# ---------------------------------------------------------------------------


def test_sse_event_format():
    assert sse_event({"speed": 12}) == 'data: {"speed": 12}\n\n'


def test_stream_yields_one_payload_per_tick():
    fake = MagicMock()
    fake.fetch = AsyncMock(side_effect=[speed_snapshot(10.0), speed_snapshot(20.0)])

    events = collect(event_stream(HudSession(), fake, 0.0, disconnect_after(2)))

    assert [decode(e)["speed"] for e in events] == [36, 72]


def test_stream_reports_fetch_errors_and_carries_on():
    fake = MagicMock()
    fake.fetch = AsyncMock(side_effect=[
        TelemetryUnavailableError("connection refused"),
        speed_snapshot(10.0),
    ])

    first, second = (decode(e) for e in collect(event_stream(HudSession(), fake, 0.0, disconnect_after(2))))

    assert first == {"error": "Failed to fetch TSW data: connection refused"}
    assert second["speed"] == 36


def test_stream_reports_processing_errors_and_carries_on(caplog):
    fake = MagicMock()
    fake.fetch = AsyncMock(side_effect=[speed_snapshot(10.0), speed_snapshot(20.0)])
    session = MagicMock()
    session.process.side_effect = [RuntimeError("corrupt snapshot"), {"speed": 72}]

    with caplog.at_level("ERROR", logger="train_hud.web.service"):
        events = collect(event_stream(session, fake, 0.0, disconnect_after(2)))

    first, second = (decode(e) for e in events)
    assert first == {"error": "Failed to process TSW data: corrupt snapshot"}
    assert second == {"speed": 72}
    assert "Failed to process TSW data" in caplog.text


def test_stream_stops_when_viewer_disconnects():
    fake = MagicMock()
    fake.fetch = AsyncMock()
    assert collect(event_stream(HudSession(), fake, 0.0, disconnect_after(0))) == []
    fake.fetch.assert_not_called()


# ---------------------------------------------------------------------------
# record_loop
# ---------------------------------------------------------------------------


def test_record_loop_feeds_recorder_until_cancelled(tmp_path, caplog):
    recorder = RouteRecorder(tmp_path / "route_rec.json", RouteRecording())
    session = HudSession(recorder=recorder)
    fake = MagicMock()
    fake.fetch = AsyncMock(side_effect=[
        position_snapshot(51.5, -0.1),
        TelemetryUnavailableError("down"),
        TelemetryUnavailableError("still down"),
        position_snapshot(51.501, -0.1),
    ])

    async def go():
        task = asyncio.create_task(record_loop(session, fake, 0.0))
        while fake.fetch.await_count < 4:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(go())

    assert len(recorder.recording.points) == 2
    assert caplog.text.count("simulator unavailable") == 1


# ---------------------------------------------------------------------------
# RouteCatalog
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog(tmp_path) -> RouteCatalog:
    (tmp_path / "processed_routes").mkdir()
    (tmp_path / "unprocessed_routes").mkdir()
    return RouteCatalog(tmp_path, tmp_path / "processed_routes", tmp_path / "unprocessed_routes")


def test_route_path_by_type(catalog, tmp_path):
    assert catalog.route_path("route_a.json") == tmp_path / "processed_routes" / "route_a.json"
    assert catalog.route_path("route_a.json", "unprocessed") == tmp_path / "unprocessed_routes" / "route_a.json"


def test_route_path_prefers_browse_path(catalog, tmp_path):
    found = catalog.route_path("ignored.json", path="processed_routes/route_a.json")
    assert found == (tmp_path / "processed_routes" / "route_a.json").resolve()


def test_route_path_requires_a_name(catalog):
    with pytest.raises(ValueError):
        catalog.route_path(None)


@pytest.mark.parametrize("filename", ["../route_a.json", "sub/route_a.json"])
def test_route_path_rejects_directories(catalog, filename):
    with pytest.raises(PermissionError):
        catalog.route_path(filename)


def test_resolve_stays_inside_root(catalog, tmp_path):
    assert catalog.resolve(".") == tmp_path.resolve()
    with pytest.raises(PermissionError):
        catalog.resolve("../elsewhere")
