"""Timetable models, loading and progress tracking."""

from train_hud.timetable.loader import find_timetable_csv, load_timetable_csv
from train_hud.timetable.models import Stop, TimetableDisplay, TimetablePhase
from train_hud.timetable.tracker import DistanceReadout, TimetableTracker

__all__ = [
    "DistanceReadout",
    "Stop",
    "TimetableDisplay",
    "TimetablePhase",
    "TimetableTracker",
    "find_timetable_csv",
    "load_timetable_csv",
]
