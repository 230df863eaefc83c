"""TSWClient — async HTTP client for the Train Sim World external interface API.

The simulator exposes its state over a local REST API.  Every request carries
the ``DTGCommKey`` header, whose value the game writes to a text file in the
user's documents folder on first launch.  Values are read through a numbered
subscription: a set of paths registered once, then fetched together.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import httpx

_logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:31270"
API_KEY_HEADER = "DTGCommKey"
SUBSCRIPTION_ID = 1

_HUD = "CurrentDrivableActor.Function.HUD_"

DEFAULT_ENDPOINTS: tuple[str, ...] = (
    "TimeOfDay.Data",
    "DriverAid.Data",
    "DriverAid.PlayerInfo",
    "DriverAid.TrackData",
    _HUD + "GetSpeed",
    _HUD + "GetDirection",
    _HUD + "GetPowerHandle",
    _HUD + "GetIsSlipping",
    _HUD + "GetBrakeGauge_1",
    _HUD + "GetBrakeGauge_2",
    _HUD + "GetAcceleration",
    _HUD + "GetSpeedControlTarget",
    _HUD + "GetMaxPermittedSpeed",
    _HUD + "GetTractiveEffort",
    _HUD + "GetElectricBrakeHandle",
    _HUD + "GetLocomotiveBrakeHandle",
    _HUD + "GetTrainBrakeHandle",
    _HUD + "GetIsTractionLocked",
)

CREATE_DELAY_S = 0.25
DELETE_SETTLE_S = 0.5
KEY_POLL_INTERVAL_S = 3.0


class TelemetryUnavailableError(Exception):
    """Raised when the simulator API cannot be reached or answers with an error."""


def default_api_key_path() -> Path:
    """Where the game writes ``CommAPIKey.txt`` for the current Windows user."""
    profile = os.environ.get("USERPROFILE") or str(Path.home())
    return (
        Path(profile) / "Documents" / "My Games" / "TrainSimWorld6"
        / "Saved" / "Config" / "CommAPIKey.txt"
    )


def read_api_key(path: str | Path) -> str | None:
    """Return the key stored at *path*, or None if the file is missing or empty."""
    try:
        key = Path(path).read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    return key or None


async def wait_for_api_key(
    path: str | Path,
    interval: float = KEY_POLL_INTERVAL_S,
    max_attempts: int | None = None,
    sleep=asyncio.sleep,
) -> str:
    """Poll *path* until it holds an API key.

    The game creates the file on its first start, so the HUD can be launched
    before the game.  Polls indefinitely unless *max_attempts* is given.

    Raises:
        TelemetryUnavailableError: If *max_attempts* polls found no key.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            key = read_api_key(path)
        except OSError as exc:
            _logger.warning("Cannot read API key file %s: %s", path, exc)
            key = None
        if key is not None:
            _logger.info("API key loaded from %s", path)
            return key
        if max_attempts is not None and attempt >= max_attempts:
            raise TelemetryUnavailableError(f"No API key at {path} after {attempt} attempts")
        _logger.info("Waiting for API key file %s (attempt %d)", path, attempt)
        await sleep(interval)


class TSWClient:
    """Subscription-based client for the simulator API.

    Parameters
    ----------
    base_url:
        API root, ``http://localhost:31270`` for a local game.
    api_key:
        Value of the ``DTGCommKey`` header.
    subscription_id:
        Subscription slot to (re)create and read.
    transport:
        Optional httpx transport.  Injected for testability
        (``httpx.MockTransport``).
    sleep:
        Coroutine used for the pauses between subscription calls.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        subscription_id: int = SUBSCRIPTION_ID,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 5.0,
        sleep=asyncio.sleep,
    ) -> None:
        self.subscription_id = subscription_id
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={API_KEY_HEADER: api_key},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> TSWClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def delete_subscription(self) -> None:
        """Remove the subscription; a missing subscription is not an error."""
        try:
            resp = await self._http.delete(
                "/subscription", params={"Subscription": self.subscription_id}
            )
        except httpx.HTTPError as exc:
            _logger.warning("Failed to delete subscription %d: %s", self.subscription_id, exc)
            return
        if resp.is_error:
            _logger.debug(
                "Delete subscription %d returned %d", self.subscription_id, resp.status_code
            )

    async def create_subscriptions(self, endpoints: tuple[str, ...] | list[str] = DEFAULT_ENDPOINTS) -> int:
        """Register every path in *endpoints*; returns how many succeeded.

        A failing path is logged and the remaining ones are still registered.
        """
        created = 0
        for i, path in enumerate(endpoints):
            if i:
                await self._sleep(CREATE_DELAY_S)
            try:
                resp = await self._http.post(
                    f"/subscription/{path}", params={"Subscription": self.subscription_id}
                )
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                _logger.error("Error creating subscription for %s: %s", path, exc)
                continue
            created += 1
        _logger.info("Created %d/%d subscriptions", created, len(endpoints))
        return created

    async def start(self, endpoints: tuple[str, ...] | list[str] = DEFAULT_ENDPOINTS) -> int:
        """Recreate the subscription from scratch with *endpoints*."""
        await self.delete_subscription()
        await self._sleep(DELETE_SETTLE_S)
        return await self.create_subscriptions(endpoints)

    async def fetch(self) -> dict:
        """Read the current subscription snapshot.

        Raises:
            TelemetryUnavailableError: On connection failure, HTTP error status
                or a body that is not a JSON object.
        """
        try:
            resp = await self._http.get(
                "/subscription/", params={"Subscription": self.subscription_id}
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise TelemetryUnavailableError(f"Failed to fetch data: {exc}") from exc
        except ValueError as exc:
            raise TelemetryUnavailableError(f"Invalid JSON from simulator: {exc}") from exc
        if not isinstance(data, dict):
            raise TelemetryUnavailableError("Unexpected response shape from simulator")
        return data

    async def aclose(self) -> None:
        await self._http.aclose()
