"""Dependency providers for FastAPI routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Header

from farpost_backend.api.services import GameSessionService
from farpost_backend.settings import get_settings

_game_service = GameSessionService.create_default(get_settings())


def get_game_service() -> GameSessionService:
    """Return the shared :class:`GameSessionService` instance."""

    return _game_service


def get_player_id(
    x_player_id: Annotated[str, Header(min_length=1, max_length=128)],
) -> str:
    """Return the player identifier sent in the ``X-Player-Id`` header."""

    return x_player_id


__all__ = ["get_game_service", "get_player_id"]
