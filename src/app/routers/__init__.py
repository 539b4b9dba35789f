"""API routers for GEOLAYERS."""

from app.routers.layers import router as layers_router

__all__ = ["layers_router"]
