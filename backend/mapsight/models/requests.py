"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DetectRequest(BaseModel):
    document: str = Field(..., description="Well-formed SVG or XHTML markup containing the rendered mindmap")


class DebugRequest(BaseModel):
    document: str = Field(..., description="Well-formed SVG or XHTML markup containing the rendered mindmap")


class ExtractWithRootRequest(BaseModel):
    session_id: str = Field(..., description="Session returned by /api/detect or /api/debug")
    root_id: str = Field(..., description="Node id to use as the root, e.g. node_3")
