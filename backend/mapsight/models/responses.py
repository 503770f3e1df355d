"""API response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    stages_registered: int = 0


class TreeNodeModel(BaseModel):
    id: str
    title: str
    level: int = 0
    children: list[TreeNodeModel] = Field(default_factory=list)


class DetectionMetaModel(BaseModel):
    node_count: int = 0
    root_count: int = 0


class DetectResponse(BaseModel):
    tree: list[TreeNodeModel] = Field(default_factory=list)
    meta: DetectionMetaModel = Field(default_factory=DetectionMetaModel)
    session_id: str
    processing_time_ms: float = 0.0


class DebugResponse(BaseModel):
    session_id: str
    snapshot: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    detail: str
    error: str
