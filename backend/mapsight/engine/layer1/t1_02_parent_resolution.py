"""T1.02 — Parent Resolution. ★★★ CRITICAL

Consolidate connections into one accepted parent per child:
1. Only edges spanning exactly one depth level are accepted.
2. A competing parent replaces the current one when it is clearly closer on
   the primary axis, or (primary distances similar) clearly closer on the
   secondary axis. Near-ties keep the parent found first.
"""

from __future__ import annotations

import logging

from mapsight.engine.config import PipelineConfig
from mapsight.engine.context import Connection, LevelMap, Node, ParentChildMap, PipelineContext
from mapsight.engine.registry import Layer, stage
from mapsight.errors import LevelMismatch

logger = logging.getLogger(__name__)


def should_replace_parent(existing: Node, candidate: Node, child: Node, config: PipelineConfig) -> bool:
    primary, secondary = config.depth_axis, config.secondary_axis

    existing_primary = abs(child.position.coord(primary) - existing.position.coord(primary))
    candidate_primary = abs(child.position.coord(primary) - candidate.position.coord(primary))
    if abs(existing_primary - candidate_primary) > config.primary_replace_margin:
        return candidate_primary < existing_primary

    existing_secondary = abs(child.position.coord(secondary) - existing.position.coord(secondary))
    candidate_secondary = abs(child.position.coord(secondary) - candidate.position.coord(secondary))
    if abs(existing_secondary - candidate_secondary) > config.secondary_replace_margin:
        return candidate_secondary < existing_secondary

    return False


def check_level_step(parent: Node, child: Node, level_map: LevelMap) -> None:
    """Raise LevelMismatch unless ``child`` sits exactly one level below ``parent``."""
    parent_level = level_map.level_of(parent)
    child_level = level_map.level_of(child)
    if parent_level < 0 or child_level != parent_level + 1:
        raise LevelMismatch(parent_level, child_level)


def resolve_parents(
    connections: list[Connection],
    level_map: LevelMap,
    nodes_by_id: dict[str, Node],
    config: PipelineConfig,
) -> tuple[ParentChildMap, int]:
    """Build the parent→children map; also return how many edges were rejected."""
    mapping = ParentChildMap()
    rejected = 0

    for conn in connections:
        if conn.direction != "parent-to-child":
            continue
        parent, child = conn.parent, conn.child
        try:
            check_level_step(parent, child, level_map)
        except LevelMismatch as e:
            rejected += 1
            logger.warning("Rejected %r -> %r: %s", parent.text[:20], child.text[:20], e)
            continue

        existing_id = mapping.parent_of.get(child.id)
        if existing_id is None:
            mapping.assign(parent.id, child.id)
            logger.debug("Accepted %r -> %r", parent.text[:20], child.text[:20])
            continue
        if existing_id == parent.id:
            continue

        existing = nodes_by_id[existing_id]
        if should_replace_parent(existing, parent, child, config):
            logger.debug(
                "Replacing parent of %r: %r -> %r", child.text[:20], existing.text[:20], parent.text[:20]
            )
            mapping.assign(parent.id, child.id)
        else:
            logger.debug("Keeping parent of %r: %r", child.text[:20], existing.text[:20])

    return mapping, rejected


@stage(
    id="T1.02",
    layer=Layer.CONNECTIVITY,
    dependencies=["T0.02", "T1.01"],
    description="Resolve conflicting parent claims into one parent per child",
)
def parent_resolution(ctx: PipelineContext) -> None:
    ctx.parent_child_map, rejected = resolve_parents(
        ctx.connections, ctx.level_map, ctx.node_index(), ctx.config
    )
    ctx.note_skip("T1.02", rejected)
    logger.info(
        "Parent-child relationships: %d parents, %d children (%d edges rejected)",
        len(ctx.parent_child_map),
        len(ctx.parent_child_map.parent_of),
        rejected,
    )
