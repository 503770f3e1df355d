"""PipelineContext — the single mutable state object flowing through all stages.

Per-node geometry → Node
Cross-node results → PipelineContext.* (level_map, connections, parent_child_map, ...)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mapsight.engine.config import PipelineConfig
from mapsight.utils.geometry import quantize

if TYPE_CHECKING:
    from mapsight.svg.scene import SceneRoot


def normalize_text(text: str) -> str:
    """Deduplication key for node labels."""
    return text.strip().lower()


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def coord(self, axis: str) -> float:
        return self.x if axis == "x" else self.y


@dataclass(frozen=True)
class Bounds:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2

    @classmethod
    def from_box(cls, x: float, y: float, width: float, height: float) -> Bounds:
        return cls(left=x, top=y, right=x + width, bottom=y + height)

    def to_dict(self) -> dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
            "width": self.width,
            "height": self.height,
            "center_x": self.center_x,
            "center_y": self.center_y,
        }


@dataclass(frozen=True)
class Anchor:
    x: float
    y: float
    side: str


def anchors_for(bounds: Bounds) -> tuple[Anchor, ...]:
    """The five fixed connection points of a bounding box, in left/right/top/bottom/center order."""
    return (
        Anchor(bounds.left, bounds.center_y, "left"),
        Anchor(bounds.right, bounds.center_y, "right"),
        Anchor(bounds.center_x, bounds.top, "top"),
        Anchor(bounds.center_x, bounds.bottom, "bottom"),
        Anchor(bounds.center_x, bounds.center_y, "center"),
    )


@dataclass
class Node:
    """A unique labeled node recovered from the scene."""

    id: str
    text: str
    position: Point
    bounds: Bounds
    anchors: tuple[Anchor, ...] = ()
    # Index of the candidate within its scene root's candidate set
    original_index: int = 0
    scene_index: int = 0

    def __post_init__(self) -> None:
        if not self.anchors:
            self.anchors = anchors_for(self.bounds)

    @property
    def key(self) -> str:
        return normalize_text(self.text)

    def anchor(self, side: str) -> Anchor | None:
        for anchor in self.anchors:
            if anchor.side == side:
                return anchor
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "position": {"x": self.position.x, "y": self.position.y},
            "bounds": self.bounds.to_dict(),
            "anchors": [{"x": a.x, "y": a.y, "side": a.side} for a in self.anchors],
            "original_index": self.original_index,
        }


@dataclass
class Connection:
    parent: Node
    child: Node
    start: Point
    end: Point
    source_kind: str
    direction: str = "parent-to-child"

    def to_dict(self) -> dict[str, Any]:
        return {
            "parent_id": self.parent.id,
            "child_id": self.child.id,
            "start": {"x": self.start.x, "y": self.start.y},
            "end": {"x": self.end.x, "y": self.end.y},
            "source_kind": self.source_kind,
            "direction": self.direction,
        }


class LevelMap:
    """Nodes bucketed by their quantized primary-axis coordinate."""

    def __init__(self, axis: str = "x", tolerance: float = 5.0) -> None:
        self.axis = axis
        self.tolerance = tolerance
        self.buckets: dict[float, list[Node]] = {}
        self._keys: list[float] | None = None

    def key_for(self, node: Node) -> float:
        return quantize(node.position.coord(self.axis), self.tolerance)

    def add(self, node: Node) -> None:
        self.buckets.setdefault(self.key_for(node), []).append(node)
        self._keys = None

    @property
    def keys(self) -> list[float]:
        """Sorted unique level keys, shallowest first."""
        if self._keys is None:
            self._keys = sorted(self.buckets)
        return self._keys

    def level_of(self, node: Node) -> int:
        """Depth level index of a node, or -1 if its key is unknown."""
        try:
            return self.keys.index(self.key_for(node))
        except ValueError:
            return -1

    def nodes_at(self, level: int) -> list[Node]:
        if level < 0 or level >= len(self.keys):
            return []
        return self.buckets[self.keys[level]]

    def __len__(self) -> int:
        return len(self.buckets)

    def to_dict(self) -> dict[str, list[str]]:
        return {f"{key:g}": [n.id for n in self.buckets[key]] for key in self.keys}


@dataclass
class ParentChildMap:
    """Accepted parent → children edges with the inverse pointer kept in sync."""

    children: dict[str, list[str]] = field(default_factory=dict)
    parent_of: dict[str, str] = field(default_factory=dict)

    def assign(self, parent_id: str, child_id: str) -> None:
        """Attach ``child_id`` under ``parent_id``, detaching it from any previous parent."""
        previous = self.parent_of.get(child_id)
        if previous == parent_id:
            return
        if previous is not None:
            self.children[previous] = [c for c in self.children.get(previous, []) if c != child_id]
        self.children.setdefault(parent_id, []).append(child_id)
        self.parent_of[child_id] = parent_id

    def children_of(self, parent_id: str) -> list[str]:
        return self.children.get(parent_id, [])

    def __len__(self) -> int:
        return len(self.children)


@dataclass
class HierarchyNode:
    id: str
    text: str
    parent_id: str | None
    level: int
    original_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "parent_id": self.parent_id,
            "level": self.level,
            "original_index": self.original_index,
        }


@dataclass
class TreeNode:
    id: str
    title: str
    level: int
    children: list[TreeNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "level": self.level,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class PipelineContext:
    """Shared state flowing through the entire pipeline."""

    config: PipelineConfig = field(default_factory=PipelineConfig)
    # Scene roots from the scene provider
    scene_roots: list[SceneRoot] = field(default_factory=list)
    # Candidate shapes seen across all scene roots
    candidate_count: int = 0

    # --- Layer 0 ---
    nodes: list[Node] = field(default_factory=list)
    level_map: LevelMap | None = None

    # --- Layer 1 ---
    connections: list[Connection] = field(default_factory=list)
    parent_child_map: ParentChildMap = field(default_factory=ParentChildMap)

    # --- Layer 2 ---
    # Forced root (manual reselection); otherwise detected from the level map
    requested_root_id: str | None = None
    root: Node | None = None
    hierarchy: list[HierarchyNode] = field(default_factory=list)
    tree: list[TreeNode] = field(default_factory=list)

    # --- Pipeline metadata ---
    completed_stages: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)
    # Elements skipped by non-fatal conditions, keyed by stage id
    skipped: dict[str, int] = field(default_factory=dict)

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_index(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def note_skip(self, stage_id: str, count: int = 1) -> None:
        if count:
            self.skipped[stage_id] = self.skipped.get(stage_id, 0) + count
