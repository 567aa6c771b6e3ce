"""Service layer for API-specific business logic."""

from farpost_backend.api.services.game_session import (
    GameSessionService,
    TimerBackendFactory,
    timer_backend_factory,
)

__all__ = ["GameSessionService", "TimerBackendFactory", "timer_backend_factory"]
