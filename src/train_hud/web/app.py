"""FastAPI application: HUD and map pages, live stream, route management."""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from train_hud import __version__
from train_hud.config import HudSettings
from train_hud.hud.session import HudSession
from train_hud.route.storage import RouteFileError
from train_hud.telemetry.client import TSWClient, wait_for_api_key
from train_hud.telemetry.parser import TelemetryParser
from train_hud.web.schemas import (
    BrowseResponse,
    HealthResponse,
    LoadRouteResponse,
    RoutesResponse,
    UploadRouteRequest,
)
from train_hud.web.service import RouteCatalog, event_stream, record_loop

load_dotenv()  # loads .env from the working directory; must run before settings are read

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

_HERE = Path(__file__).parent

templates = Jinja2Templates(directory=str(_HERE / "templates"))

_NO_ROUTE = "No route loaded. Please select a route file."


def create_app(
    settings: HudSettings | None = None,
    session: HudSession | None = None,
    client: TSWClient | None = None,
) -> FastAPI:
    """Build the HUD application.

    Parameters
    ----------
    settings:
        Defaults to :meth:`HudSettings.from_env`.
    session:
        Shared HUD state.  A session with a recorder puts the app in
        recording mode: a background task keeps polling the simulator.
    client:
        Simulator client.  When omitted, startup waits for the API key file
        and (re)creates the subscription; an injected client is used as is.
    """
    settings = settings or HudSettings.from_env(load_env_file=False)
    session = session or HudSession(TelemetryParser(use_miles=settings.use_miles))
    catalog = RouteCatalog(
        root=settings.routes_dir.resolve().parent,
        processed_dir=settings.processed_dir,
        unprocessed_dir=settings.routes_dir,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.client is None
        if owned:
            api_key = await wait_for_api_key(settings.api_key_path)
            app.state.client = TSWClient(settings.api_url, api_key)
            await app.state.client.start()

        recorder_task = None
        if session.recorder is not None:
            recorder_task = asyncio.create_task(
                record_loop(session, app.state.client, settings.record_interval_s)
            )
        try:
            yield
        finally:
            if recorder_task is not None:
                recorder_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await recorder_task
                session.recorder.persist()
            if owned:
                await app.state.client.aclose()

    app = FastAPI(title="Train HUD", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.session = session
    app.state.client = client
    app.state.catalog = catalog
    app.mount("/static", StaticFiles(directory=str(_HERE / "static")), name="static")

    # -----------------------------------------------------------------------
    # Pages
    # -----------------------------------------------------------------------

    @app.get("/", response_class=HTMLResponse)
    def hud_page(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(
            request, "hud.html", {"use_miles": settings.use_miles}
        )

    @app.get("/map", response_class=HTMLResponse)
    def map_page(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(
            request, "map.html", {"recording": session.recorder is not None}
        )

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            version=__version__,
            recording=session.recorder is not None,
            route_loaded=session.route is not None,
        )

    # -----------------------------------------------------------------------
    # Live data
    # -----------------------------------------------------------------------

    @app.get("/stream")
    async def stream(request: Request) -> StreamingResponse:
        return StreamingResponse(
            event_stream(
                session,
                app.state.client,
                settings.poll_interval_s,
                request.is_disconnected,
            ),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/route-data")
    def route_data() -> JSONResponse:
        data = session.route_data()
        return JSONResponse(data if data is not None else {"error": _NO_ROUTE})

    # -----------------------------------------------------------------------
    # Route management
    # -----------------------------------------------------------------------

    @app.get("/api/routes", response_model=RoutesResponse)
    def list_routes() -> RoutesResponse:
        return catalog.list_routes()

    @app.get("/api/browse", response_model=BrowseResponse)
    def browse(path: str = "") -> BrowseResponse:
        try:
            return catalog.browse(path)
        except PermissionError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except NotADirectoryError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    # Route swaps must run on the event loop thread, like the stream and recorder.
    @app.get("/api/load-route", response_model=LoadRouteResponse)
    async def load_route(
        file: str | None = None,
        type_: str = Query("processed", alias="type"),
        path: str | None = None,
    ) -> LoadRouteResponse:
        try:
            route_path = catalog.route_path(file, type_, path)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except PermissionError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        if not route_path.is_file():
            raise HTTPException(status_code=404, detail="Route file not found")

        try:
            recording = session.load_route(route_path)
        except RouteFileError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _loaded(recording, route_path.name)

    @app.post("/api/upload-route", response_model=LoadRouteResponse)
    async def upload_route(req: UploadRouteRequest) -> LoadRouteResponse:
        data = req.route_data
        if not data.get("coordinates") or not data.get("routeName"):
            raise HTTPException(status_code=400, detail="Invalid route data")
        try:
            recording = session.load_route_data(data, req.filename)
        except RouteFileError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _loaded(recording, req.filename)

    return app


def _loaded(recording, name: str) -> LoadRouteResponse:
    return LoadRouteResponse(
        success=True,
        message=f"Loaded {name}",
        route_name=recording.name,
        total_points=len(recording.points),
        total_markers=len(recording.markers),
    )


app = create_app()
