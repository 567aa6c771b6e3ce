"""HTTP endpoints driving a player's extraction economy."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from farpost_backend.api.dependencies import get_game_service, get_player_id
from farpost_backend.api.models import (
    ExtractionsResponse,
    GameActionErrorResponse,
    GameActionSuccessResponse,
    GameStateResponse,
)
from farpost_backend.api.services import GameSessionService  # noqa: TC001
from farpost_backend.game_logic import (
    GAME_ACTION_ADAPTER,
    ErrorKind,
    SessionNotInitializedError,
)
from farpost_backend.game_logic.errors import InvalidConfigKeyError

router = APIRouter(prefix="/game", tags=["game"])

CONFIG_KEY_ERROR_KINDS = frozenset(
    {
        ErrorKind.INVALID_CONFIG_KEY,
        ErrorKind.UNKNOWN_RESOURCE,
        ErrorKind.UNKNOWN_BOOSTER,
    }
)


@router.post(
    "/actions",
    response_model=GameActionSuccessResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": GameActionErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": GameActionErrorResponse},
    },
)
async def dispatch_action(
    envelope: dict[str, Any] = Body(...),
    player_id: str = Depends(get_player_id),
    service: GameSessionService = Depends(get_game_service),
) -> JSONResponse:
    """Validate the ``{action, payload}`` envelope and apply it."""

    try:
        request = GAME_ACTION_ADAPTER.validate_python(envelope)
    except ValidationError as exc:
        raise RequestValidationError(
            exc.errors(include_url=False, include_context=False)
        ) from exc

    response = service.dispatch(player_id, request)
    if response.success:
        status_code = status.HTTP_200_OK
    elif response.error is not None and response.error.kind in CONFIG_KEY_ERROR_KINDS:
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=status_code, content=response.to_payload())


@router.get("/state", response_model=GameStateResponse)
async def get_state(
    player_id: str = Depends(get_player_id),
    service: GameSessionService = Depends(get_game_service),
) -> GameStateResponse:
    """Return the caller's persisted state, creating a fresh one on first use."""

    return GameStateResponse(state=service.get_state(player_id))


@router.put("/state", response_model=GameStateResponse)
async def replace_state(
    data: Any = Body(...),
    player_id: str = Depends(get_player_id),
    service: GameSessionService = Depends(get_game_service),
) -> GameStateResponse:
    """Load a saved state; invalid payloads fall back to the latest valid backup."""

    state, source = service.replace_state(player_id, data)
    return GameStateResponse(state=state, source=source)


@router.post("/reset", response_model=GameStateResponse)
async def reset_state(
    player_id: str = Depends(get_player_id),
    service: GameSessionService = Depends(get_game_service),
) -> GameStateResponse:
    return GameStateResponse(state=service.reset(player_id))


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    player_id: str = Depends(get_player_id),
    service: GameSessionService = Depends(get_game_service),
) -> None:
    """Cancel the caller's timers; the saved state stays in the store."""

    try:
        service.end_session(player_id)
    except SessionNotInitializedError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Session not found"
        ) from exc


@router.get("/extractions", response_model=ExtractionsResponse)
async def list_extractions(
    player_id: str = Depends(get_player_id),
    service: GameSessionService = Depends(get_game_service),
) -> ExtractionsResponse:
    return ExtractionsResponse(extractions=service.extractions(player_id))


@router.get("/config")
async def get_configuration(
    service: GameSessionService = Depends(get_game_service),
) -> dict[str, Any]:
    """Return the resource and booster tables with the progression curve."""

    return service.configuration.model_dump(mode="json")


@router.get("/config/resources/{resource_type}")
async def get_resource(
    resource_type: str,
    service: GameSessionService = Depends(get_game_service),
) -> dict[str, Any]:
    try:
        resource = service.configuration.resource(resource_type)
    except InvalidConfigKeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=exc.to_payload()
        ) from exc
    return resource.model_dump(mode="json")


@router.get("/config/boosters/{booster_type}")
async def get_booster(
    booster_type: str,
    service: GameSessionService = Depends(get_game_service),
) -> dict[str, Any]:
    try:
        booster = service.configuration.booster(booster_type)
    except InvalidConfigKeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=exc.to_payload()
        ) from exc
    return booster.model_dump(mode="json")
