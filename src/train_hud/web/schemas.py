"""Pydantic request/response schemas for the HUD web API.

Field names are snake_case in Python and camelCase on the wire, matching the
route file format the browser already understands.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str
    version: str
    recording: bool
    route_loaded: bool


class RouteEntry(BaseModel):
    filename: str
    name: str
    type: str


class RoutesResponse(BaseModel):
    processed: list[RouteEntry]
    unprocessed: list[RouteEntry]


class BrowseItem(_CamelModel):
    name: str
    path: str
    is_directory: bool
    is_route: bool


class BrowseResponse(_CamelModel):
    current_path: str
    parent_path: str | None
    items: list[BrowseItem]


class LoadRouteResponse(_CamelModel):
    success: bool
    message: str
    route_name: str
    total_points: int
    total_markers: int


class UploadRouteRequest(_CamelModel):
    filename: str = "uploaded_route.json"
    route_data: dict[str, Any]
