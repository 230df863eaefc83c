"""Web-facing services: the telemetry stream, the recording loop and the route catalog."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

from train_hud.hud.session import HudSession
from train_hud.route.storage import ROUTE_PREFIX, ROUTE_SUFFIX, list_route_files
from train_hud.telemetry.client import TelemetryUnavailableError, TSWClient
from train_hud.web.schemas import BrowseItem, BrowseResponse, RouteEntry, RoutesResponse

_logger = logging.getLogger(__name__)


def sse_event(payload: dict) -> str:
    """Format *payload* as one server-sent event."""
    return f"data: {json.dumps(payload)}\n\n"


async def event_stream(
    session: HudSession,
    client: TSWClient,
    interval: float,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """Yield one HUD event per *interval* until the viewer disconnects.

    A failed fetch, or a snapshot the session cannot process, yields
    ``{"error": ...}`` for that tick and the stream carries on.
    """
    _logger.info("Starting live stream")
    while not await is_disconnected():
        try:
            raw = await client.fetch()
        except TelemetryUnavailableError as exc:
            yield sse_event({"error": f"Failed to fetch TSW data: {exc}"})
        else:
            try:
                payload = session.process(raw)
            except Exception as exc:
                _logger.exception("Failed to process TSW data")
                payload = {"error": f"Failed to process TSW data: {exc}"}
            yield sse_event(payload)
        await asyncio.sleep(interval)
    _logger.info("Live stream closed")


async def record_loop(session: HudSession, client: TSWClient, interval: float) -> None:
    """Keep feeding the session's recorder with no viewer attached.

    Runs until cancelled.  Fetch failures are logged and the loop keeps
    polling.
    """
    _logger.info("Background recording every %.3fs", interval)
    failures = 0
    while True:
        try:
            session.observe(await client.fetch())
            failures = 0
        except TelemetryUnavailableError as exc:
            failures += 1
            if failures == 1:
                _logger.warning("Recording paused, simulator unavailable: %s", exc)
        await asyncio.sleep(interval)


class RouteCatalog:
    """Lists and locates route files below a root folder.

    Parameters
    ----------
    root:
        Folder the browser may see.  Paths from clients are relative to it and
        may not escape it.
    processed_dir, unprocessed_dir:
        Folders listed by :meth:`list_routes`.
    """

    def __init__(self, root: str | Path, processed_dir: str | Path, unprocessed_dir: str | Path) -> None:
        self.root = Path(root).resolve()
        self.processed_dir = Path(processed_dir)
        self.unprocessed_dir = Path(unprocessed_dir)

    def list_routes(self) -> RoutesResponse:
        return RoutesResponse(
            processed=_entries(self.processed_dir, "processed"),
            unprocessed=_entries(self.unprocessed_dir, "unprocessed"),
        )

    def resolve(self, relative: str) -> Path:
        """Absolute path of *relative* inside the root.

        Raises:
            PermissionError: If the path escapes the root.
        """
        candidate = (self.root / relative).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise PermissionError("Access denied")
        return candidate

    def browse(self, relative: str = "") -> BrowseResponse:
        """List a folder, directories first.

        Raises:
            PermissionError: If the path escapes the root.
            FileNotFoundError: If it does not exist.
            NotADirectoryError: If it is a file.
        """
        folder = self.resolve(relative) if relative else self.root
        if not folder.exists():
            raise FileNotFoundError("Path not found")
        if not folder.is_dir():
            raise NotADirectoryError("Path is not a directory")

        items = [
            BrowseItem(
                name=child.name,
                path=child.relative_to(self.root).as_posix(),
                is_directory=child.is_dir(),
                is_route=child.is_file() and _is_route_name(child.name),
            )
            for child in folder.iterdir()
        ]
        items.sort(key=lambda item: (not item.is_directory, item.name))

        current = relative.replace("\\", "/").strip("/")
        parent = Path(current).parent.as_posix() if current else None
        return BrowseResponse(
            current_path=current or ".",
            parent_path=None if parent in (None, ".") else parent,
            items=items,
        )

    def route_path(self, filename: str | None, type_: str = "processed", path: str | None = None) -> Path:
        """Locate a route file by browser path, or by name in a listed folder.

        Raises:
            ValueError: If neither *filename* nor *path* is given.
            PermissionError: If the path escapes its folder.
        """
        if path:
            return self.resolve(path)
        if not filename:
            raise ValueError("Missing filename or path parameter")
        folder = self.processed_dir if type_ == "processed" else self.unprocessed_dir
        candidate = folder / filename
        if Path(filename).name != filename:
            raise PermissionError("Access denied")
        return candidate


def _is_route_name(name: str) -> bool:
    return name.startswith(ROUTE_PREFIX) and name.endswith(ROUTE_SUFFIX)


def _entries(folder: Path, type_: str) -> list[RouteEntry]:
    return [
        RouteEntry(
            filename=p.name,
            name=p.name[len(ROUTE_PREFIX):-len(ROUTE_SUFFIX)],
            type=type_,
        )
        for p in list_route_files(folder)
    ]
