"""T2.01 — Root Selection.

The root lives on the shallowest level. With several candidates there, pick
the one closest to their mean secondary-axis coordinate (first wins on ties).
A root requested by the caller overrides detection.
"""

from __future__ import annotations

import logging

from mapsight.engine.context import LevelMap, Node, PipelineContext
from mapsight.engine.registry import Layer, stage
from mapsight.errors import NoUniqueNodes, RootNotFound
from mapsight.utils.geometry import mean

logger = logging.getLogger(__name__)


def select_root(level_map: LevelMap, secondary_axis: str = "y") -> Node:
    candidates = level_map.nodes_at(0)
    if not candidates:
        raise NoUniqueNodes("No nodes available to choose a root from")
    if len(candidates) == 1:
        return candidates[0]

    center = mean([n.position.coord(secondary_axis) for n in candidates])
    return min(candidates, key=lambda n: abs(n.position.coord(secondary_axis) - center))


@stage(
    id="T2.01",
    layer=Layer.ASSEMBLY,
    dependencies=["T0.02"],
    description="Choose the root node",
)
def root_selection(ctx: PipelineContext) -> None:
    if ctx.requested_root_id is not None:
        root = ctx.get_node(ctx.requested_root_id)
        if root is None:
            raise RootNotFound(ctx.requested_root_id)
        ctx.root = root
        logger.info("Using selected root %s: %r", root.id, root.text)
        return

    ctx.root = select_root(ctx.level_map, ctx.config.secondary_axis)
    logger.info(
        "Root identified: %r (%d candidates on level 0)",
        ctx.root.text,
        len(ctx.level_map.nodes_at(0)),
    )
