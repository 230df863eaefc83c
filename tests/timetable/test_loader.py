"""Tests for timetable CSV loading."""

from __future__ import annotations

import pytest

from train_hud.timetable.loader import find_timetable_csv, load_timetable_csv

CSV = (
    "destination,arrival,departure,platform,apiName\n"
    "Northampton,,07:05:00,1,Northampton\n"
    "Milton Keynes Central,07:22:00,07:24:00,4,MiltonKeynes\n"
    "short,row\n"
    "London Euston,08:10:00,,12,Euston\n"
)


def test_load_parses_rows_in_order(tmp_path):
    path = tmp_path / "1Y08.csv"
    path.write_text(CSV, encoding="utf-8")

    stops = load_timetable_csv(path)

    assert [s.index for s in stops] == [0, 1, 2]
    assert [s.api_name for s in stops] == ["Northampton", "MiltonKeynes", "Euston"]
    assert stops[0].arrival == ""
    assert stops[1].departure == "07:24:00"
    assert stops[2].platform == "12"


def test_header_only_file_is_empty(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("destination,arrival,departure,platform,apiName\n", encoding="utf-8")
    assert load_timetable_csv(path) == []


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_timetable_csv(tmp_path / "missing.csv")


def test_find_timetable_csv_returns_first_by_name(tmp_path):
    (tmp_path / "b.csv").write_text(CSV, encoding="utf-8")
    (tmp_path / "a.csv").write_text(CSV, encoding="utf-8")
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
    assert find_timetable_csv(tmp_path).name == "a.csv"


def test_find_timetable_csv_without_csv(tmp_path):
    assert find_timetable_csv(tmp_path) is None
    assert find_timetable_csv(tmp_path / "missing") is None
