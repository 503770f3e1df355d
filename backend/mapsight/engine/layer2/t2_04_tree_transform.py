"""T2.04 — Tree Transform.

Nest the flat hierarchy list: children are appended in input order; entries
whose parent is missing become roots.
"""

from __future__ import annotations

from mapsight.engine.context import HierarchyNode, PipelineContext, TreeNode
from mapsight.engine.registry import Layer, stage


def to_tree(hierarchy: list[HierarchyNode]) -> list[TreeNode]:
    by_id = {h.id: TreeNode(id=h.id, title=h.text, level=h.level) for h in hierarchy}

    roots: list[TreeNode] = []
    for h in hierarchy:
        current = by_id[h.id]
        if h.parent_id is not None and h.parent_id in by_id:
            by_id[h.parent_id].children.append(current)
        else:
            roots.append(current)
    return roots


@stage(
    id="T2.04",
    layer=Layer.ASSEMBLY,
    dependencies=["T2.03"],
    description="Convert the flat hierarchy into nested tree nodes",
)
def tree_transform(ctx: PipelineContext) -> None:
    ctx.tree = to_tree(ctx.hierarchy)
