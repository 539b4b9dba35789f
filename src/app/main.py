"""GEOLAYERS - GeoJSON layer viewer.

Main FastAPI application.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.routers.layers import router as layers_router
from geolayers.config import settings
from geolayers.engine import LayerSyncEngine
from geolayers.surface import HeadlessMapSurface


# ---------------------------------------------------------------------------
# Subsystem startup helpers
# ---------------------------------------------------------------------------

def _create_engine() -> LayerSyncEngine:
    """Create the headless map surface and the engine bound to it."""
    surface = HeadlessMapSurface(
        center=settings.map_center,
        zoom=settings.map_zoom,
        style=settings.map_style,
    )
    engine = LayerSyncEngine.from_settings(surface, settings)
    logger.info(
        f"Layer engine created: {len(settings.data_sources)} data sources, "
        f"center={settings.map_center}, zoom={settings.map_zoom}"
    )
    return engine


async def _run_engine(engine: LayerSyncEngine) -> None:
    """Background task: load all sources, log the outcome."""
    try:
        ready = await engine.run()
    except Exception as e:
        logger.opt(exception=e).error(f"Layer loading failed: {e}")
        return
    status = engine.status()
    if ready:
        logger.info(f"Layers ready: {status['expected_layers']}")
    else:
        logger.warning(f"Layers not ready after loading: {status}")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("=" * 60)
    logger.info(f"  {settings.app_name} v0.1.0 - INITIALIZING")
    logger.info("=" * 60)

    if not settings.mapbox_access_token:
        logger.warning("MAPBOX_ACCESS_TOKEN not set; the browser map will not load tiles")

    engine = _create_engine()
    app.state.engine = engine
    engine.surface.load()
    loader = asyncio.create_task(_run_engine(engine), name="layer-loader")
    app.state.loader = loader

    yield

    if not loader.done():
        loader.cancel()
        try:
            await loader
        except asyncio.CancelledError:
            pass
    engine.close()
    logger.info(f"{settings.app_name} shutting down...")


# Create FastAPI app
app = FastAPI(
    title="GEOLAYERS",
    description="GeoJSON layer viewer",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(layers_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": "0.1.0",
        "system": settings.app_name,
    }


@app.get("/api/config")
async def client_config():
    """Map widget settings for the browser."""
    return {
        "access_token": settings.mapbox_access_token,
        "style": settings.map_style,
        "center": list(settings.map_center),
        "zoom": settings.map_zoom,
    }
