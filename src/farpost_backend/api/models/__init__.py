"""Models used for API request and response payloads."""

from farpost_backend.api.models.game import (
    ExtractionsResponse,
    GameActionErrorResponse,
    GameActionSuccessResponse,
    GameStateResponse,
    HealthResponse,
)

__all__ = [
    "ExtractionsResponse",
    "GameActionErrorResponse",
    "GameActionSuccessResponse",
    "GameStateResponse",
    "HealthResponse",
]
