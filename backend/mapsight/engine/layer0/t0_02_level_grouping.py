"""T0.02 — Level Grouping.

Quantize each node's primary-axis coordinate and bucket nodes by it. The rank
of a bucket among the sorted keys is the node's depth level: the renderer lays
each depth out in its own coordinate band.
"""

from __future__ import annotations

import logging

from mapsight.engine.context import LevelMap, Node, PipelineContext
from mapsight.engine.registry import Layer, stage

logger = logging.getLogger(__name__)


def group_by_level(nodes: list[Node], axis: str = "x", tolerance: float = 5.0) -> LevelMap:
    level_map = LevelMap(axis=axis, tolerance=tolerance)
    for node in nodes:
        level_map.add(node)

    for index, key in enumerate(level_map.keys):
        bucket = level_map.buckets[key]
        logger.debug(
            "  Level %d: %s=%g, %d nodes (%s)",
            index,
            axis,
            key,
            len(bucket),
            ", ".join(repr(n.text[:30]) for n in bucket),
        )
    return level_map


@stage(
    id="T0.02",
    layer=Layer.EXTRACTION,
    dependencies=["T0.01"],
    description="Group nodes into depth levels by primary-axis coordinate",
)
def level_grouping(ctx: PipelineContext) -> None:
    ctx.level_map = group_by_level(ctx.nodes, ctx.config.depth_axis, ctx.config.level_tolerance)
    logger.info("Grouped %d nodes into %d levels", ctx.num_nodes, len(ctx.level_map))
