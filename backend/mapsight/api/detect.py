"""Mindmap detection endpoints: detect, debug snapshot and root reselection."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends

from mapsight.dependencies import SessionStore, get_pipeline_config, get_session_store
from mapsight.engine.config import PipelineConfig
from mapsight.engine.extractor import DetectionResult, MindmapExtractor
from mapsight.errors import NoDebugData
from mapsight.models.requests import DebugRequest, DetectRequest, ExtractWithRootRequest
from mapsight.models.responses import DebugResponse, DetectResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def _response(result: DetectionResult, session_id: str, start: float) -> DetectResponse:
    data = result.to_dict()
    return DetectResponse(
        tree=data["tree"],
        meta=data["meta"],
        session_id=session_id,
        processing_time_ms=round((time.perf_counter() - start) * 1000, 1),
    )


@router.post("/detect", response_model=DetectResponse)
async def detect(
    req: DetectRequest,
    store: SessionStore = Depends(get_session_store),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> DetectResponse:
    start = time.perf_counter()
    session_id, session = store.create()
    result = MindmapExtractor(config=config, session=session).detect(req.document)
    return _response(result, session_id, start)


@router.post("/debug", response_model=DebugResponse)
async def debug(
    req: DebugRequest,
    store: SessionStore = Depends(get_session_store),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> DebugResponse:
    session_id, session = store.create()
    snapshot = MindmapExtractor(config=config, session=session).debug_extract(req.document)
    return DebugResponse(session_id=session_id, snapshot=snapshot.to_dict())


@router.post("/extract-with-root", response_model=DetectResponse)
async def extract_with_root(
    req: ExtractWithRootRequest,
    store: SessionStore = Depends(get_session_store),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> DetectResponse:
    start = time.perf_counter()
    session = store.get(req.session_id)
    if session is None:
        raise NoDebugData(f"Unknown session {req.session_id!r}. Run debug extraction first.")
    result = MindmapExtractor(config=config, session=session).extract_with_root(req.root_id)
    logger.info("Re-rooted session %s at %s", req.session_id, req.root_id)
    return _response(result, req.session_id, start)
