"""Tests for post-trip processing of route files."""

from __future__ import annotations

import json

import pytest

from tests.route.conftest import make_detection, make_stop, northward_line
from train_hud.route.models import RouteRecording
from train_hud.route.processing import ProcessOutcome, process_all, process_route_file
from train_hud.route.storage import RouteFileError, load_recording, save_recording


def write_raw_route(path, timetable=True) -> RouteRecording:
    points = northward_line(10)
    rec = RouteRecording(
        name="Northampton - London Euston",
        points=points,
        markers=[
            make_detection("Bletchley", detected_at=points[0].coordinate, distance_ahead_m=300.0),
            make_detection("Euston", detected_at=points[2].coordinate, distance_ahead_m=500.0),
        ],
        timetable=[make_stop(0, "Bletchley"), make_stop(1, "Euston")] if timetable else [],
        duration_ms=60_000,
        request_count=10,
    )
    save_recording(rec, path)
    return rec


@pytest.fixture
def dirs(tmp_path):
    raw, out, tt = tmp_path / "unprocessed_routes", tmp_path / "processed_routes", tmp_path / "timetable"
    raw.mkdir()
    tt.mkdir()
    return raw, out, tt


def test_process_writes_resolved_file(dirs):
    raw, out, _ = dirs
    write_raw_route(raw / "route_a.json")

    result = process_route_file(raw / "route_a.json", out / "route_a.json")

    assert result.outcome is ProcessOutcome.PROCESSED
    assert result.report.resolved == 2
    processed = load_recording(out / "route_a.json")
    assert processed.is_resolved
    assert processed.name == "Northampton - London Euston"
    assert processed.duration_ms == 60_000
    assert [s.api_name for s in processed.timetable] == ["Bletchley", "Euston"]


def test_existing_output_is_skipped_without_force(dirs):
    raw, out, _ = dirs
    write_raw_route(raw / "route_a.json")
    out.mkdir()
    (out / "route_a.json").write_text("{}", encoding="utf-8")

    result = process_route_file(raw / "route_a.json", out / "route_a.json")
    assert result.outcome is ProcessOutcome.SKIPPED
    assert (out / "route_a.json").read_text(encoding="utf-8") == "{}"

    forced = process_route_file(raw / "route_a.json", out / "route_a.json", force=True)
    assert forced.outcome is ProcessOutcome.PROCESSED
    assert json.loads((out / "route_a.json").read_text(encoding="utf-8"))["totalMarkers"] == 2


def test_missing_timetable_falls_back_to_csv(dirs):
    raw, out, tt = dirs
    write_raw_route(raw / "route_a.json", timetable=False)
    (tt / "1Y08.csv").write_text(
        "destination,arrival,departure,platform,apiName\n"
        "Bletchley,,07:05:00,3,Bletchley\n"
        "London Euston,08:10:00,,12,Euston\n",
        encoding="utf-8",
    )

    process_route_file(raw / "route_a.json", out / "route_a.json", timetable_dir=tt)
    stops = load_recording(out / "route_a.json").timetable
    assert [s.destination for s in stops] == ["Bletchley", "London Euston"]
    assert stops[1].arrival == "08:10:00"


def test_nothing_resolved_and_no_timetable_is_skipped(dirs):
    raw, out, _ = dirs
    save_recording(
        RouteRecording(points=northward_line(3), markers=[make_detection(detected_at=None, distance_ahead_m=None)]),
        raw / "route_a.json",
    )
    result = process_route_file(raw / "route_a.json", out / "route_a.json")
    assert result.outcome is ProcessOutcome.SKIPPED
    assert not (out / "route_a.json").exists()


def test_missing_input_raises(dirs):
    raw, out, _ = dirs
    with pytest.raises(RouteFileError):
        process_route_file(raw / "route_missing.json", out / "route_missing.json")


def test_empty_coordinates_raise(dirs):
    raw, out, _ = dirs
    save_recording(RouteRecording(markers=[make_detection()]), raw / "route_empty.json")
    with pytest.raises(RouteFileError):
        process_route_file(raw / "route_empty.json", out / "route_empty.json")


def test_reprocessing_is_byte_identical(dirs):
    raw, out, _ = dirs
    write_raw_route(raw / "route_a.json")
    process_route_file(raw / "route_a.json", out / "route_a.json")
    first = (out / "route_a.json").read_bytes()

    process_route_file(raw / "route_a.json", out / "route_a.json", force=True)
    assert (out / "route_a.json").read_bytes() == first

    process_route_file(out / "route_a.json", out / "route_again.json")
    assert (out / "route_again.json").read_bytes() == first


def test_process_all_counts_each_outcome(dirs):
    raw, out, _ = dirs
    write_raw_route(raw / "route_a.json")
    write_raw_route(raw / "route_b.json")
    (raw / "route_broken.json").write_text("{not json", encoding="utf-8")
    (raw / "notes.json").write_text("{}", encoding="utf-8")
    out.mkdir()
    (out / "route_b.json").write_text("{}", encoding="utf-8")

    summary = process_all(raw, out)

    assert (summary.processed, summary.skipped, summary.errors) == (1, 1, 1)
    assert not summary.ok
    assert (out / "route_a.json").exists()


def test_process_all_force_reprocesses(dirs):
    raw, out, _ = dirs
    write_raw_route(raw / "route_a.json")
    process_all(raw, out)
    summary = process_all(raw, out, force=True)
    assert (summary.processed, summary.skipped, summary.errors) == (1, 0, 0)
    assert summary.ok
