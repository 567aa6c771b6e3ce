"""Pydantic models for the HTTP game contract."""

# ruff: noqa: TC001

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from farpost_backend.game_logic import ActionFailure, ExtractionProgress, LoadSource


class GameActionSuccessResponse(BaseModel):
    """Reply for an accepted action, carrying the updated persisted state."""

    success: Literal[True] = True
    action: str
    result: dict[str, Any]
    state: dict[str, Any]


class GameActionErrorResponse(BaseModel):
    """Reply for a rejected action; the state is left unchanged."""

    success: Literal[False] = False
    action: str | None
    error: ActionFailure


class GameStateResponse(BaseModel):
    """Persisted state of the calling player."""

    state: dict[str, Any]
    source: LoadSource | None = None


class ExtractionsResponse(BaseModel):
    """Progress of every running extraction."""

    extractions: list[ExtractionProgress] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
