"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mapsight import __version__
from mapsight.config import settings
from mapsight.engine.registry import register_stages
from mapsight.errors import (
    HierarchyValidationFailed,
    MindmapError,
    NoDebugData,
    NoScreenContent,
    NoUniqueNodes,
    RootNotFound,
    SceneParseError,
)
from mapsight.models.responses import ErrorResponse

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.mapsight_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[MindmapError], int] = {
    SceneParseError: 422,
    NoScreenContent: 422,
    NoUniqueNodes: 422,
    NoDebugData: 409,
    RootNotFound: 404,
    HierarchyValidationFailed: 500,
}


def status_for(exc: MindmapError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


async def mindmap_error_handler(request: Request, exc: MindmapError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status, exc)
    body = ErrorResponse(detail=str(exc), error=type(exc).__name__)
    return JSONResponse(status_code=status, content=body.model_dump())


def create_app() -> FastAPI:
    app = FastAPI(
        title="MapSight",
        description="Mindmap structure recovery from rendered SVG scenes",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Import all stage modules to trigger registration
    register_stages()

    from mapsight.api.router import api_router

    app.include_router(api_router)
    app.add_exception_handler(MindmapError, mindmap_error_handler)

    return app


app = create_app()
