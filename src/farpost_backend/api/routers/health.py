"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from farpost_backend.api.models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()
