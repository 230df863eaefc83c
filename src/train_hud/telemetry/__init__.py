"""Telemetry acquisition from the Train Sim World external interface API.

Public API
----------
TelemetryFrame      - one parsed subscription snapshot
TelemetryParser     - raw snapshot dict -> TelemetryFrame
TSWClient           - async HTTP client (subscriptions, snapshot fetch)
wait_for_api_key    - polls the game's CommAPIKey.txt until it exists
TelemetryUnavailableError - raised when the simulator cannot be read
"""

from train_hud.telemetry.client import (
    DEFAULT_ENDPOINTS,
    TelemetryUnavailableError,
    TSWClient,
    default_api_key_path,
    wait_for_api_key,
)
from train_hud.telemetry.models import TelemetryFrame, TrackMarker
from train_hud.telemetry.parser import TelemetryParser

__all__ = [
    "DEFAULT_ENDPOINTS",
    "TSWClient",
    "TelemetryFrame",
    "TelemetryParser",
    "TelemetryUnavailableError",
    "TrackMarker",
    "default_api_key_path",
    "wait_for_api_key",
]
