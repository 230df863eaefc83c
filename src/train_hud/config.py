"""Runtime settings read from the environment.

Values come from environment variables, with a ``.env`` file in the working
directory loaded first (``python-dotenv``).  Command-line flags in the
scripts override individual fields.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from train_hud.telemetry.client import DEFAULT_BASE_URL, default_api_key_path

_logger = logging.getLogger(__name__)

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        _logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


@dataclass
class HudSettings:
    """Everything the HUD server and tools need to know about their environment."""

    api_url: str = DEFAULT_BASE_URL
    api_key_path: Path = field(default_factory=default_api_key_path)
    use_miles: bool = False
    routes_dir: Path = Path("unprocessed_routes")
    """Where recordings and skeletons live; processed files go to its sibling."""

    processed_dir: Path = Path("processed_routes")
    timetable_dir: Path = Path("save") / "current_timetable"
    poll_interval_s: float = 0.5
    record_interval_s: float = 0.125
    port: int = 3000

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> HudSettings:
        """Build settings from ``TSW_*`` / ``TRAIN_HUD_*`` environment variables."""
        if load_env_file:
            load_dotenv()
        routes = Path(os.environ.get("TRAIN_HUD_ROUTES_DIR") or "unprocessed_routes")
        key_path = os.environ.get("TSW_API_KEY_PATH")
        return cls(
            api_url=os.environ.get("TSW_API_URL") or DEFAULT_BASE_URL,
            api_key_path=Path(key_path) if key_path else default_api_key_path(),
            use_miles=_env_bool("TRAIN_HUD_USE_MILES", False),
            routes_dir=routes,
            processed_dir=routes.parent / "processed_routes",
            poll_interval_s=_env_float("TRAIN_HUD_POLL_INTERVAL", 0.5),
            record_interval_s=_env_float("TRAIN_HUD_RECORD_INTERVAL", 0.125),
            port=_env_int("TRAIN_HUD_PORT", 3000),
        )
