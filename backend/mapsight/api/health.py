"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from mapsight import __version__
from mapsight.engine.registry import get_registry
from mapsight.models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        stages_registered=get_registry().count,
    )
