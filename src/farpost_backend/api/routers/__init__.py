"""Route definitions for public HTTP endpoints."""

from farpost_backend.api.routers.game import router as game_router
from farpost_backend.api.routers.health import router as health_router

__all__ = ["game_router", "health_router"]
