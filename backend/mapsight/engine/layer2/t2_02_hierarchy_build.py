"""T2.02 — Hierarchy Build. ★★★ CRITICAL

Construction:
1. Breadth-first walk from the root over the parent→children map. A child is
   placed once, and only if it sits exactly one depth level below its parent.
2. Orphan pass: every node the walk did not reach is attached to the placed
   node on the preceding depth level with the closest secondary coordinate,
   or to the root when there is none. Every extracted node ends up placed.

``build_level_hierarchy`` is the connector-free variant used for manual root
reselection: each level is attached to its nearest neighbours one level up.
"""

from __future__ import annotations

import logging
from collections import deque

from mapsight.engine.context import HierarchyNode, LevelMap, Node, ParentChildMap, PipelineContext
from mapsight.engine.layer1.t1_02_parent_resolution import check_level_step
from mapsight.engine.registry import Layer, stage
from mapsight.errors import LevelMismatch

logger = logging.getLogger(__name__)


class _Placement:
    """Ordered hierarchy list with an id index, so a node is never placed twice."""

    def __init__(self) -> None:
        self.nodes: list[HierarchyNode] = []
        self.by_id: dict[str, HierarchyNode] = {}

    def place(self, node: Node, parent: HierarchyNode | None) -> HierarchyNode:
        entry = HierarchyNode(
            id=node.id,
            text=node.text,
            parent_id=parent.id if parent else None,
            level=parent.level + 1 if parent else 0,
            original_index=node.original_index,
        )
        self.nodes.append(entry)
        self.by_id[node.id] = entry
        return entry

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.by_id


def _closest(node: Node, candidates: list[Node], axis: str) -> Node:
    target = node.position.coord(axis)
    return min(candidates, key=lambda c: abs(c.position.coord(axis) - target))


def find_orphan_parent(
    orphan: Node,
    placement: _Placement,
    nodes_by_id: dict[str, Node],
    level_map: LevelMap,
    secondary_axis: str,
) -> HierarchyNode:
    root = placement.nodes[0]
    orphan_level = level_map.level_of(orphan)
    if orphan_level <= 0:
        return root

    potential = [
        nodes_by_id[h.id]
        for h in placement.nodes
        if level_map.level_of(nodes_by_id[h.id]) == orphan_level - 1
    ]
    if not potential:
        return root
    return placement.by_id[_closest(orphan, potential, secondary_axis).id]


def _attach_orphans(
    nodes: list[Node],
    placement: _Placement,
    nodes_by_id: dict[str, Node],
    level_map: LevelMap,
    secondary_axis: str,
) -> int:
    attached = 0
    for node in nodes:
        if node.id in placement:
            continue
        parent = find_orphan_parent(node, placement, nodes_by_id, level_map, secondary_axis)
        placement.place(node, parent)
        attached += 1
        logger.debug("Attached orphan %r to %r", node.text[:20], parent.text[:20])
    return attached


def build_hierarchy(
    nodes: list[Node],
    root: Node,
    mapping: ParentChildMap,
    level_map: LevelMap,
    secondary_axis: str = "y",
) -> list[HierarchyNode]:
    nodes_by_id = {n.id: n for n in nodes}
    placement = _Placement()
    placement.place(root, None)
    queue: deque[str] = deque([root.id])

    while queue:
        parent_id = queue.popleft()
        parent = nodes_by_id[parent_id]
        parent_entry = placement.by_id[parent_id]
        for child_id in mapping.children_of(parent_id):
            if child_id in placement:
                logger.debug("Skipped already placed child %s", child_id)
                continue
            child = nodes_by_id.get(child_id)
            if child is None:
                continue
            try:
                check_level_step(parent, child, level_map)
            except LevelMismatch as e:
                logger.warning("Skipped child %r of %r: %s", child.text[:20], parent.text[:20], e)
                continue
            placement.place(child, parent_entry)
            queue.append(child_id)

    reached = len(placement.nodes)
    orphans = _attach_orphans(nodes, placement, nodes_by_id, level_map, secondary_axis)
    logger.info("Hierarchy: %d nodes reached from root, %d orphans attached", reached, orphans)
    return placement.nodes


def build_level_hierarchy(
    nodes: list[Node],
    root: Node,
    level_map: LevelMap,
    secondary_axis: str = "y",
) -> list[HierarchyNode]:
    """Attach every node to its secondary-nearest neighbour one level up, ignoring connectors."""
    nodes_by_id = {n.id: n for n in nodes}
    placement = _Placement()
    placement.place(root, None)

    for level in range(1, len(level_map)):
        previous = level_map.nodes_at(level - 1)
        for node in level_map.nodes_at(level):
            if node.id in placement:
                continue
            closest = _closest(node, previous, secondary_axis)
            parent_entry = placement.by_id.get(closest.id)
            if parent_entry is not None:
                placement.place(node, parent_entry)

    orphans = _attach_orphans(nodes, placement, nodes_by_id, level_map, secondary_axis)
    logger.info("Level hierarchy: %d nodes (%d attached as orphans)", len(placement.nodes), orphans)
    return placement.nodes


@stage(
    id="T2.02",
    layer=Layer.ASSEMBLY,
    dependencies=["T1.02", "T2.01"],
    description="Place nodes breadth-first from the root, then attach orphans",
)
def hierarchy_build(ctx: PipelineContext) -> None:
    # Manual root reselection without usable connectors falls back to geometry alone
    if ctx.requested_root_id is not None and not ctx.connections:
        ctx.hierarchy = build_level_hierarchy(ctx.nodes, ctx.root, ctx.level_map, ctx.config.secondary_axis)
        return
    ctx.hierarchy = build_hierarchy(
        ctx.nodes, ctx.root, ctx.parent_child_map, ctx.level_map, ctx.config.secondary_axis
    )
