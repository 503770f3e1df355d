"""T1.01 — Connection Analysis. ★★★ CRITICAL

Connectors are drawn from the parent's right edge to the child's left edge
(bottom to top when depth runs along y). For each line/path/polyline:
1. Take its first and last on-curve points.
2. Match the start to the first node whose parent-side anchor is within
   tolerance, the end to the first node whose child-side anchor is.
3. Keep the pair only if both matched, they differ, and the child lies
   further along the primary axis than the parent.
"""

from __future__ import annotations

import logging

from mapsight.engine.config import PipelineConfig
from mapsight.engine.context import Connection, Node, PipelineContext, Point
from mapsight.engine.registry import Layer, stage
from mapsight.errors import InvalidConnection
from mapsight.svg.scene import ConnectorShape, SceneRoot
from mapsight.utils.geometry import distance

logger = logging.getLogger(__name__)


def find_node_by_anchor(
    point: tuple[float, float],
    nodes: list[Node],
    side: str,
    tolerance: float = 25.0,
) -> Node | None:
    """First node whose ``side`` anchor lies within ``tolerance`` of ``point``.

    Nodes of every scene root are searched, whichever root the connector came from.
    """
    for node in nodes:
        anchor = node.anchor(side)
        if anchor is not None and distance(point, (anchor.x, anchor.y)) <= tolerance:
            return node
    return None


def analyze_connector(
    connector: ConnectorShape,
    nodes: list[Node],
    config: PipelineConfig,
) -> Connection:
    """Map a connector to a (parent, child) pair or raise InvalidConnection."""
    start, end = connector.endpoints()

    parent = find_node_by_anchor(start, nodes, config.parent_anchor, config.anchor_tolerance)
    child = find_node_by_anchor(end, nodes, config.child_anchor, config.anchor_tolerance)
    if parent is None or child is None:
        raise InvalidConnection(f"<{connector.source_kind}> endpoints do not touch node anchors")
    if parent.id == child.id:
        raise InvalidConnection(f"<{connector.source_kind}> loops back onto {parent.id}")

    axis = config.depth_axis
    parent_coord = parent.position.coord(axis)
    child_coord = child.position.coord(axis)
    if child_coord <= parent_coord:
        raise InvalidConnection(
            f"Reversed connection: child {axis}({child_coord:g}) not > parent {axis}({parent_coord:g})"
        )

    return Connection(
        parent=parent,
        child=child,
        start=Point(*start),
        end=Point(*end),
        source_kind=connector.source_kind,
    )


def extract_connections(
    scene_roots: list[SceneRoot],
    nodes: list[Node],
    config: PipelineConfig,
) -> tuple[list[Connection], int]:
    """Connections in scene/document order, plus the number of connectors rejected."""
    connections: list[Connection] = []
    rejected = 0

    for scene in scene_roots:
        candidates = scene.connector_candidates()
        logger.debug("Scene %d: %d potential connectors", scene.index, len(candidates))
        for element in candidates:
            connector = element.as_connector()
            if connector is None:
                continue
            try:
                conn = analyze_connector(connector, nodes, config)
            except InvalidConnection as e:
                rejected += 1
                logger.debug("Skipped connector: %s", e)
                continue
            connections.append(conn)
            logger.debug("Connection: %r -> %r", conn.parent.text[:20], conn.child.text[:20])

    return connections, rejected


@stage(
    id="T1.01",
    layer=Layer.CONNECTIVITY,
    dependencies=["T0.01"],
    description="Infer directed parent→child connections from connector endpoints",
)
def connection_analysis(ctx: PipelineContext) -> None:
    ctx.connections, rejected = extract_connections(ctx.scene_roots, ctx.nodes, ctx.config)
    ctx.note_skip("T1.01", rejected)
    logger.info("Found %d connections (%d connectors rejected)", len(ctx.connections), rejected)
