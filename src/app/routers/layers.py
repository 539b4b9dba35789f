"""Layer sync API — sidebar toggles, readiness, map style, hover inspector.

The browser mirrors the headless map surface: it renders ``/api/map/style``,
shows the loading screen until ``/api/map/status`` reports ready, drives the
sidebar from ``/api/layers`` and forwards pointer events to
``/api/map/hover`` and ``/api/map/leave``.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from geolayers.engine import LayerSyncEngine
from geolayers.errors import UnknownLayer

router = APIRouter(prefix="/api", tags=["layers"])


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class HoverRequest(BaseModel):
    """The pointer is over a feature of a layer."""
    layer_id: str
    feature_id: int | str


class LeaveRequest(BaseModel):
    """The pointer left a layer."""
    layer_id: str


class ToggleResponse(BaseModel):
    layer_id: str
    visible: bool


def _get_engine(request: Request) -> LayerSyncEngine:
    """Get the layer sync engine from app state."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Layer engine not running")
    return engine


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

@router.get("/layers")
async def list_layers(request: Request):
    """Sidebar rows: one per derived layer, in registration order."""
    engine = _get_engine(request)
    return [asdict(row) for row in engine.sidebar()]


@router.post("/layers/{layer_id}/toggle", response_model=ToggleResponse)
async def toggle_layer(layer_id: str, request: Request):
    """Flip a layer's visibility."""
    engine = _get_engine(request)
    visible = engine.toggle(layer_id)
    if visible is None:
        raise HTTPException(status_code=404, detail=str(UnknownLayer(layer_id)))
    return ToggleResponse(layer_id=layer_id, visible=visible)


# ---------------------------------------------------------------------------
# Map
# ---------------------------------------------------------------------------

@router.get("/map/status")
async def map_status(request: Request):
    """Loading / ready state for the loading screen."""
    return _get_engine(request).status()


@router.get("/map/style")
async def map_style(request: Request):
    """The current map style: sources, layers, center and zoom."""
    engine = _get_engine(request)
    return engine.surface.style_snapshot()


@router.post("/map/recenter")
async def recenter(request: Request):
    """Reset the viewport to the configured home view."""
    engine = _get_engine(request)
    engine.recenter()
    return {"center": list(engine.surface.center), "zoom": engine.surface.zoom}


@router.post("/map/hover")
async def hover(body: HoverRequest, request: Request):
    """Pointer moved over a feature."""
    engine = _get_engine(request)
    if engine.surface.get_layer(body.layer_id) is None:
        raise HTTPException(status_code=404, detail=f"Layer not found: {body.layer_id}")
    hit = engine.surface.pointer_move(body.layer_id, body.feature_id)
    return {"hit": hit, "cursor": engine.surface.cursor}


@router.post("/map/leave")
async def leave(body: LeaveRequest, request: Request):
    """Pointer left a layer."""
    engine = _get_engine(request)
    if not engine.surface.pointer_leave(body.layer_id):
        raise HTTPException(status_code=404, detail=f"Layer not found: {body.layer_id}")
    return {"cursor": engine.surface.cursor}


@router.get("/inspector")
async def inspector(request: Request):
    """Properties of the hovered feature, or null."""
    view = _get_engine(request).hover.inspector
    return asdict(view) if view is not None else None
