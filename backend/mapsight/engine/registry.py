"""Stage registry — every detection stage is a standalone function registered via decorator.

Usage:
    @stage(id="T0.02", layer=Layer.EXTRACTION, dependencies=["T0.01"])
    def level_grouping(ctx: PipelineContext) -> None:
        ctx.level_map = group_by_level(ctx.nodes, ...)

Adding a stage = creating one file with the decorator and listing its module
in ``STAGE_MODULES``.
"""

from __future__ import annotations

import enum
import importlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from mapsight.engine.context import PipelineContext

logger = logging.getLogger(__name__)


class Layer(enum.IntEnum):
    EXTRACTION = 0
    CONNECTIVITY = 1
    ASSEMBLY = 2


@dataclass
class StageSpec:
    id: str
    layer: Layer
    fn: Callable[["PipelineContext"], None]
    dependencies: list[str] = field(default_factory=list)
    description: str = ""


class StageRegistry:
    def __init__(self) -> None:
        self._stages: dict[str, StageSpec] = {}

    def register(self, spec: StageSpec) -> None:
        if spec.id in self._stages:
            raise ValueError(f"Duplicate stage ID: {spec.id}")
        self._stages[spec.id] = spec
        logger.debug("Registered stage %s (%s)", spec.id, spec.layer.name)

    def get(self, stage_id: str) -> StageSpec:
        return self._stages[stage_id]

    def get_layer(self, layer: Layer) -> list[StageSpec]:
        return sorted((s for s in self._stages.values() if s.layer == layer), key=lambda s: s.id)

    def all(self) -> list[StageSpec]:
        return sorted(self._stages.values(), key=lambda s: (s.layer, s.id))

    def upstream_of(self, target_ids: set[str]) -> set[str]:
        """The given stages plus everything they transitively depend on."""
        expanded: set[str] = set()
        stack = list(target_ids)
        while stack:
            sid = stack.pop()
            if sid in expanded:
                continue
            expanded.add(sid)
            spec = self._stages.get(sid)
            if spec is None:
                raise KeyError(f"Unknown stage: {sid}")
            stack.extend(spec.dependencies)
        return expanded

    def resolve_order(self, requested_ids: set[str] | None = None) -> list[StageSpec]:
        """Topological order of the requested stages (all when None), ties broken by id."""
        pool = self._stages
        if requested_ids is not None:
            wanted = self.upstream_of(requested_ids)
            pool = {k: v for k, v in pool.items() if k in wanted}

        remaining = {sid: {d for d in spec.dependencies if d in pool} for sid, spec in pool.items()}
        ordered: list[StageSpec] = []
        while remaining:
            ready = sorted(sid for sid, deps in remaining.items() if not deps)
            if not ready:
                raise ValueError(f"Circular dependency detected among: {set(remaining)}")
            sid = ready[0]
            ordered.append(pool[sid])
            del remaining[sid]
            for deps in remaining.values():
                deps.discard(sid)
        return ordered

    @property
    def count(self) -> int:
        return len(self._stages)


# Module-level singleton
_registry = StageRegistry()

STAGE_MODULES = [
    "mapsight.engine.layer0.t0_01_node_extraction",
    "mapsight.engine.layer0.t0_02_level_grouping",
    "mapsight.engine.layer1.t1_01_connection_analysis",
    "mapsight.engine.layer1.t1_02_parent_resolution",
    "mapsight.engine.layer2.t2_01_root_selection",
    "mapsight.engine.layer2.t2_02_hierarchy_build",
    "mapsight.engine.layer2.t2_03_validation",
    "mapsight.engine.layer2.t2_04_tree_transform",
]


def get_registry() -> StageRegistry:
    return _registry


def register_stages() -> StageRegistry:
    """Import all stage modules so @stage decorators fire. Safe to call repeatedly."""
    for module_name in STAGE_MODULES:
        importlib.import_module(module_name)
    return _registry


def stage(
    *,
    id: str,
    layer: Layer,
    dependencies: list[str] | None = None,
    description: str = "",
):
    """Decorator to register a stage function."""

    def decorator(fn: Callable[["PipelineContext"], None]):
        _registry.register(
            StageSpec(
                id=id,
                layer=layer,
                fn=fn,
                dependencies=dependencies or [],
                description=description,
            )
        )
        return fn

    return decorator
