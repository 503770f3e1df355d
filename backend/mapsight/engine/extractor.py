"""Detection entry points: detect, debug extraction and root reselection.

``MindmapExtractor`` owns a ``DetectionSession`` holding the last debug
snapshot. Every detect/debug call replaces the snapshot wholesale;
``extract_with_root`` only reads it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Callable

from mapsight.engine.config import PipelineConfig
from mapsight.engine.context import Connection, LevelMap, Node, ParentChildMap, PipelineContext, TreeNode
from mapsight.engine.expansion import Expander, ensure_fully_expanded
from mapsight.engine.pipeline import DEBUG_TARGETS, Pipeline, create_pipeline
from mapsight.errors import NoDebugData, RootNotFound
from mapsight.svg.scene import SceneRoot, load_scene

logger = logging.getLogger(__name__)

Document = str | bytes | Iterable[SceneRoot]


@dataclass
class DetectionMeta:
    node_count: int
    root_count: int


@dataclass
class DetectionResult:
    tree: list[TreeNode]
    meta: DetectionMeta

    def to_dict(self) -> dict[str, Any]:
        return {
            "tree": [t.to_dict() for t in self.tree],
            "meta": {"node_count": self.meta.node_count, "root_count": self.meta.root_count},
        }


@dataclass
class DebugSnapshot:
    """Every intermediate structure of one detection pass, for inspection and root override."""

    nodes: list[Node] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    level_map: LevelMap | None = None
    detected_root: Node | None = None
    parent_child_map: ParentChildMap = field(default_factory=ParentChildMap)
    errors: dict[str, str] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_context(cls, ctx: PipelineContext) -> DebugSnapshot:
        return cls(
            nodes=list(ctx.nodes),
            connections=list(ctx.connections),
            level_map=ctx.level_map,
            detected_root=ctx.root,
            parent_child_map=ctx.parent_child_map,
            errors=dict(ctx.errors),
            skipped=dict(ctx.skipped),
        )

    def to_dict(self) -> dict[str, Any]:
        root_id = self.detected_root.id if self.detected_root else None
        return {
            "nodes": [{**n.to_dict(), "is_detected_root": n.id == root_id} for n in self.nodes],
            "connections": [c.to_dict() for c in self.connections],
            "level_map": self.level_map.to_dict() if self.level_map else {},
            "detected_root": root_id,
            "parent_child_map": {k: list(v) for k, v in self.parent_child_map.children.items()},
            "counts": {
                "nodes": len(self.nodes),
                "connections": len(self.connections),
                "levels": len(self.level_map) if self.level_map else 0,
                "parent_relations": len(self.parent_child_map),
            },
            "errors": dict(self.errors),
            "skipped": dict(self.skipped),
        }


@dataclass
class DetectionSession:
    """Per-caller state for the root reselection flow."""

    snapshot: DebugSnapshot | None = None
    updated_at: float = 0.0

    def replace(self, snapshot: DebugSnapshot) -> None:
        self.snapshot = snapshot
        self.updated_at = time.time()


def _result(ctx: PipelineContext) -> DetectionResult:
    return DetectionResult(
        tree=ctx.tree,
        meta=DetectionMeta(node_count=len(ctx.hierarchy), root_count=len(ctx.tree)),
    )


class MindmapExtractor:
    """Runs the detection pipeline against documents and keeps the session snapshot."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        session: DetectionSession | None = None,
        pipeline: Pipeline | None = None,
        expander: Expander | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or PipelineConfig()
        self.session = session or DetectionSession()
        self.pipeline = pipeline or create_pipeline()
        self.expander = expander
        self._sleep = sleep

    def _context(self, document: Document) -> PipelineContext:
        if isinstance(document, (str, bytes)):
            scene_roots = load_scene(document)
        else:
            scene_roots = list(document)
        return PipelineContext(config=self.config, scene_roots=scene_roots)

    def _expand(self) -> None:
        if self.expander is None:
            return
        try:
            ensure_fully_expanded(
                self.expander,
                max_passes=self.config.max_expand_passes,
                pass_delay_s=self.config.expand_pass_delay_s,
                sleep=self._sleep,
            )
        except Exception as e:
            logger.warning("Auto-expand routine failed: %s", e)

    def detect(self, document: Document) -> DetectionResult:
        """Full detection. Raises NoScreenContent, NoUniqueNodes or HierarchyValidationFailed."""
        self._expand()
        ctx = self.pipeline.run(self._context(document))
        self.session.replace(DebugSnapshot.from_context(ctx))
        result = _result(ctx)
        logger.info("Detected mindmap: %d nodes, %d roots", result.meta.node_count, result.meta.root_count)
        return result

    def debug_extract(self, document: Document) -> DebugSnapshot:
        """Run up to root selection, tolerating failures after extraction."""
        ctx = self.pipeline.run(self._context(document), targets={"T0.01"})
        self.pipeline.run(ctx, targets=DEBUG_TARGETS, strict=False)
        snapshot = DebugSnapshot.from_context(ctx)
        self.session.replace(snapshot)
        logger.info(
            "Debug extraction: %d nodes, %d connections, %d levels, root %r",
            len(snapshot.nodes),
            len(snapshot.connections),
            len(snapshot.level_map) if snapshot.level_map else 0,
            snapshot.detected_root.text if snapshot.detected_root else None,
        )
        return snapshot

    def extract_with_root(self, root_id: str) -> DetectionResult:
        """Rebuild the tree from the cached snapshot around a caller-chosen root."""
        snapshot = self.session.snapshot
        if snapshot is None or not snapshot.nodes:
            raise NoDebugData()
        if not any(n.id == root_id for n in snapshot.nodes):
            raise RootNotFound(root_id)

        ctx = PipelineContext(
            config=self.config,
            nodes=list(snapshot.nodes),
            connections=list(snapshot.connections),
            requested_root_id=root_id,
            completed_stages={"T0.01", "T1.01"},
        )
        self.pipeline.run(ctx)
        return _result(ctx)
