"""Timetable progress: which stop is next and whether to show a distance.

The display is a pure function of the timetable and the simulated time of
day.  The only state carried between ticks is :class:`DistanceReadout`, which
keeps the last known distance for the current target so a momentarily missing
telemetry value does not blank the HUD.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from train_hud.timetable.models import (
    DEPARTURE_LABEL,
    EXHAUSTED_DISPLAY,
    Stop,
    TimetableDisplay,
    TimetablePhase,
)

_logger = logging.getLogger(__name__)


def time_to_seconds(value: str | None) -> int | None:
    """Convert ``HH:MM:SS`` to seconds since midnight; ``None`` when unset or invalid."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        h, m, s = (int(float(p)) for p in parts)
    except ValueError:
        return None
    return h * 3600 + m * 60 + s


def clock_seconds(clock: str | None) -> int | None:
    """Seconds since midnight from ``HH:MM:SS`` or an ISO-8601 timestamp.

    The simulator reports ``LocalTimeISO8601`` such as
    ``2024-05-01T08:30:12.345Z``; only the time-of-day part is used.
    """
    if not clock:
        return None
    time_part = clock.split("T", 1)[1] if "T" in clock else clock
    for sep in (".", "Z", "+"):
        time_part = time_part.split(sep, 1)[0]
    return time_to_seconds(time_part)


class TimetableTracker:
    """Evaluate a timetable against the current simulated time.

    Args:
        stops: Stops in running order.
    """

    def __init__(self, stops: Sequence[Stop]) -> None:
        self._stops = list(stops)
        if self.crosses_midnight():
            _logger.warning(
                "Timetable times decrease along the route; it probably crosses "
                "midnight, which is not supported (display may fall through)"
            )

    @property
    def stops(self) -> list[Stop]:
        return list(self._stops)

    @property
    def api_names(self) -> set[str]:
        return {s.api_name for s in self._stops if s.api_name}

    def crosses_midnight(self) -> bool:
        """True if any scheduled time is earlier than one before it."""
        previous = -1
        for stop in self._stops:
            for value in (stop.arrival, stop.departure):
                secs = time_to_seconds(value)
                if secs is None:
                    continue
                if secs < previous:
                    return True
                previous = secs
        return False

    def display_for(self, clock: str | None) -> TimetableDisplay:
        """Return the timetable box contents at *clock*.

        Stops are walked in order; the first rule that matches wins:

        * first stop, before its departure -> ``BEFORE_FIRST``
        * reached the last stop -> ``EN_ROUTE`` to it (arrival time, distance shown)
        * departure not yet passed -> ``AT_STOP_DEPARTURE``
        * between this departure and the next arrival -> ``EN_ROUTE``
        * arrived at the next stop, before its departure -> ``AT_STOP_ARRIVAL``

        A missing departure counts as already passed; a missing arrival never
        opens the en-route window.
        """
        now = clock_seconds(clock)
        if not self._stops or now is None:
            return EXHAUSTED_DISPLAY

        last = len(self._stops) - 1
        for i, stop in enumerate(self._stops):
            departure = time_to_seconds(stop.departure)

            if i == 0 and departure is not None and now < departure:
                return TimetableDisplay(
                    phase=TimetablePhase.BEFORE_FIRST,
                    time=stop.departure,
                    label=DEPARTURE_LABEL,
                )

            if i == last:
                return TimetableDisplay(
                    phase=TimetablePhase.EN_ROUTE,
                    time=stop.arrival,
                    label=stop.destination,
                    target_api_name=stop.api_name or None,
                    show_distance=True,
                )

            if departure and now < departure:
                return TimetableDisplay(
                    phase=TimetablePhase.AT_STOP_DEPARTURE,
                    time=stop.departure,
                    label=DEPARTURE_LABEL,
                )

            nxt = self._stops[i + 1]
            next_arrival = time_to_seconds(nxt.arrival)
            passed = departure is None or now >= departure

            if passed and next_arrival is not None and now < next_arrival:
                return TimetableDisplay(
                    phase=TimetablePhase.EN_ROUTE,
                    time=nxt.arrival,
                    label=nxt.destination,
                    target_api_name=nxt.api_name or None,
                    show_distance=True,
                )

            if next_arrival is None or now >= next_arrival:
                next_departure = time_to_seconds(nxt.departure)
                if next_departure and now < next_departure:
                    return TimetableDisplay(
                        phase=TimetablePhase.AT_STOP_ARRIVAL,
                        time=nxt.departure,
                        label=DEPARTURE_LABEL,
                    )

        return EXHAUSTED_DISPLAY


@dataclass
class DistanceReadout:
    """Last known distance to the current target stop."""

    target: str | None = None
    distance_m: float | None = None

    def retarget(self, target: str | None) -> bool:
        """Switch to *target*; a change clears the cached distance.

        Returns True if the target changed.
        """
        if target == self.target:
            return False
        self.target = target
        self.distance_m = None
        return True

    def record(self, distance_m: float | None) -> None:
        """Remember *distance_m*; ``None`` keeps the previous value."""
        if distance_m is not None:
            self.distance_m = distance_m

    def shown(self, show_distance: bool) -> int | None:
        """Distance to display, rounded to whole metres, or ``None``."""
        if not show_distance or self.distance_m is None:
            return None
        return round(self.distance_m)
