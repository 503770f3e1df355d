"""MapSight mindmap reconstruction engine."""

from mapsight.engine.context import PipelineContext, Node
from mapsight.engine.extractor import DetectionResult, DetectionSession, MindmapExtractor
from mapsight.engine.pipeline import Pipeline, create_pipeline
from mapsight.engine.registry import Layer, get_registry, stage

__all__ = [
    "stage",
    "Layer",
    "get_registry",
    "PipelineContext",
    "Node",
    "Pipeline",
    "create_pipeline",
    "MindmapExtractor",
    "DetectionResult",
    "DetectionSession",
]
