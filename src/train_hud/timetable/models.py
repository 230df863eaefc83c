"""Timetable data structures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Stop:
    """One row of a service timetable.

    Times are wall-clock-of-day strings (``HH:MM:SS``) with no date and no
    timezone; an empty string means "not scheduled" (e.g. no arrival at the
    origin).
    """

    index: int
    destination: str
    arrival: str
    departure: str
    platform: str
    api_name: str
    """Simulator identifier of the stop; the only key joining stops to markers."""

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "destination": self.destination,
            "arrival": self.arrival,
            "departure": self.departure,
            "platform": self.platform,
            "apiName": self.api_name,
        }

    @classmethod
    def from_dict(cls, d: dict, default_index: int = 0) -> Stop:
        index = d.get("index")
        return cls(
            index=int(index) if index is not None else default_index,
            destination=str(d.get("destination") or ""),
            arrival=str(d.get("arrival") or ""),
            departure=str(d.get("departure") or ""),
            platform=str(d.get("platform") or ""),
            api_name=str(d.get("apiName") or ""),
        )


class TimetablePhase(str, Enum):
    """Where the train is relative to its schedule."""

    BEFORE_FIRST = "before_first"
    AT_STOP_DEPARTURE = "at_stop_departure"
    EN_ROUTE = "en_route"
    AT_STOP_ARRIVAL = "at_stop_arrival"
    EXHAUSTED = "exhausted"


DEPARTURE_LABEL = "DEPARTURE"


@dataclass(frozen=True)
class TimetableDisplay:
    """What the HUD's timetable box shows for one tick."""

    phase: TimetablePhase
    time: str | None = None
    label: str | None = None
    target_api_name: str | None = None
    show_distance: bool = False


EXHAUSTED_DISPLAY = TimetableDisplay(phase=TimetablePhase.EXHAUSTED)
