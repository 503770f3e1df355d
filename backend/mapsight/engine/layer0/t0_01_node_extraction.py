"""T0.01 — Node Extraction. ★★★ CRITICAL

For every scene root:
1. Collect node candidates (overlapping shape criteria, merged per root).
2. Resolve each candidate's label and reject UI noise.
3. Resolve position: translate() → explicit x/y → offset inside the scene root.
4. Resolve bounds: <rect> descendant → measured geometry → fixed fallback box.
5. Keep the first occurrence of each label; drop anything within the
   position tolerance of an accepted node.
"""

from __future__ import annotations

import logging
import re

from mapsight.engine.config import PipelineConfig
from mapsight.engine.context import Bounds, Node, PipelineContext, Point, normalize_text
from mapsight.engine.registry import Layer, stage
from mapsight.errors import NoScreenContent, NoUniqueNodes
from mapsight.svg.scene import LabeledShape, RawElement, SceneRoot
from mapsight.utils.geometry import distance, parse_number, round_half_up

logger = logging.getLogger(__name__)

# Labels that belong to the host UI rather than to the mindmap
NOISE_PATTERNS = [
    re.compile(r"^(lock|settings|sources|chat|studio|arrow_back)$", re.IGNORECASE),
    re.compile(r"^(collapse|expand|add|remove|thumb_up|thumb_down)$", re.IGNORECASE),
    re.compile(r"^(copy|good response|bad response|light mode|dark mode)$", re.IGNORECASE),
    re.compile(r"^(google apps|google account|gmail)$", re.IGNORECASE),
    re.compile(r"^\d+$"),
    re.compile(r"^[^\w\s]*$"),
    re.compile(r"@\w+\.com$", re.IGNORECASE),
    re.compile(r"^https?://", re.IGNORECASE),
    re.compile(r"^\s*$"),
]


def is_valid_label(text: str | None, min_length: int = 2) -> bool:
    if not text or len(text) < min_length:
        return False
    stripped = text.strip()
    return not any(p.search(stripped) for p in NOISE_PATTERNS)


def resolve_position(element: RawElement) -> Point:
    shift = element.translate()
    if shift is not None:
        return Point(*shift)
    x, y = element.explicit_xy()
    if x == 0 and y == 0:
        x, y = element.scene_offset()
    return Point(x, y)


def resolve_bounds(element: RawElement, position: Point, config: PipelineConfig) -> Bounds:
    rect = element.rect_descendant()
    if rect is not None:
        x, y = rect.explicit_xy()
        width, height = parse_number(rect.get("width")), parse_number(rect.get("height"))
        return Bounds.from_box(x + position.x, y + position.y, width, height)

    box = element.native_bbox()
    if box is not None:
        xmin, ymin, xmax, ymax = box
        return Bounds(
            left=xmin + position.x,
            top=ymin + position.y,
            right=xmax + position.x,
            bottom=ymax + position.y,
        )

    half_w, half_h = config.fallback_width / 2, config.fallback_height / 2
    return Bounds(
        left=position.x - half_w,
        top=position.y - half_h,
        right=position.x + half_w,
        bottom=position.y + half_h,
    )


class UniquenessFilter:
    """First-occurrence-wins filter on normalized text and rounded position."""

    def __init__(self, tolerance: float = 10.0) -> None:
        self.tolerance = tolerance
        self.seen_texts: set[str] = set()
        self.seen_positions: list[tuple[int, int]] = []

    @staticmethod
    def _rounded(position: Point) -> tuple[int, int]:
        return (round_half_up(position.x), round_half_up(position.y))

    def accepts(self, text: str, position: Point) -> bool:
        if normalize_text(text) in self.seen_texts:
            return False
        current = self._rounded(position)
        for existing in self.seen_positions:
            dist = distance(current, existing)
            if dist <= self.tolerance:
                logger.debug("Position duplicate: distance %.1f <= %.1f", dist, self.tolerance)
                return False
        return True

    def add(self, text: str, position: Point) -> None:
        self.seen_texts.add(normalize_text(text))
        self.seen_positions.append(self._rounded(position))


def build_node(
    labeled: LabeledShape,
    node_id: str,
    original_index: int,
    scene_index: int,
    config: PipelineConfig,
) -> Node | None:
    """Turn a labeled candidate into a Node, or None if its label is noise."""
    text = labeled.label.strip()
    if not is_valid_label(text, config.min_label_length):
        return None
    position = resolve_position(labeled.element)
    bounds = resolve_bounds(labeled.element, position, config)
    return Node(
        id=node_id,
        text=text,
        position=position,
        bounds=bounds,
        original_index=original_index,
        scene_index=scene_index,
    )


def extract_unique_nodes(
    scene_roots: list[SceneRoot],
    config: PipelineConfig,
) -> tuple[list[Node], int]:
    """Unique nodes in discovery order, plus the number of candidates scanned."""
    nodes: list[Node] = []
    uniqueness = UniquenessFilter(config.position_tolerance)
    candidate_count = 0

    for scene in scene_roots:
        candidates = scene.node_candidates()
        candidate_count += len(candidates)
        logger.debug("Scene %d: %d node candidates", scene.index, len(candidates))

        for index, element in enumerate(candidates):
            try:
                labeled = element.as_labeled()
                if labeled is None:
                    continue
                node = build_node(labeled, f"node_{len(nodes)}", index, scene.index, config)
            except Exception as e:
                logger.warning("Error processing candidate %d in scene %d: %s", index, scene.index, e)
                continue
            if node is None or not uniqueness.accepts(node.text, node.position):
                continue
            nodes.append(node)
            uniqueness.add(node.text, node.position)
            logger.debug("Added unique node %s: %r", node.id, node.text[:30])

    return nodes, candidate_count


@stage(
    id="T0.01",
    layer=Layer.EXTRACTION,
    description="Extract unique labeled nodes from the scene",
)
def node_extraction(ctx: PipelineContext) -> None:
    if not ctx.scene_roots:
        raise NoScreenContent()

    ctx.nodes, ctx.candidate_count = extract_unique_nodes(ctx.scene_roots, ctx.config)
    if ctx.candidate_count == 0:
        raise NoScreenContent("No mindmap shapes found in the scene. Make sure the mindmap is fully loaded and visible.")
    if not ctx.nodes:
        raise NoUniqueNodes()

    logger.info("Extracted %d unique nodes from %d candidates", len(ctx.nodes), ctx.candidate_count)
