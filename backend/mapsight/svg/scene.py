"""Scene provider — read-only view over the shapes of one or more <svg> roots.

A well-formed XML document (standalone SVG or XHTML page) is parsed with
ElementTree and split into one ``SceneRoot`` per <svg> element. Plain HTML
that is not well-formed XML (void tags, named entities) is rejected. Shapes
are exposed as ``RawElement`` values tagged with a ``ShapeKind``; the pipeline
never inspects tags directly and instead asks for a capability:

- ``as_labeled()``   → ``LabeledShape`` for node candidates (text + geometry)
- ``as_connector()`` → ``ConnectorShape`` for lines, paths and polylines
"""

from __future__ import annotations

import enum
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from svgpathtools import parse_path

from mapsight.errors import InvalidConnection, SceneParseError
from mapsight.utils.geometry import parse_number, parse_number_list, union_bbox

logger = logging.getLogger(__name__)

_TRANSLATE_RE = re.compile(r"translate\(\s*([-+\d.eE]+)(?:\s*,\s*|\s+)([-+\d.eE]+)\s*\)")
_CLOSE_RE = re.compile(r"[Zz]")

Box = tuple[float, float, float, float]  # (xmin, ymin, xmax, ymax)


class ShapeKind(enum.Enum):
    GROUP = "group"
    TEXT = "text"
    LINE = "line"
    CURVE = "curve"
    POLYLINE = "polyline"
    RECT = "rect"
    OTHER = "other"


_KIND_BY_TAG = {
    "g": ShapeKind.GROUP,
    "text": ShapeKind.TEXT,
    "line": ShapeKind.LINE,
    "path": ShapeKind.CURVE,
    "polyline": ShapeKind.POLYLINE,
    "rect": ShapeKind.RECT,
}

_CONNECTOR_KINDS = {ShapeKind.LINE, ShapeKind.CURVE, ShapeKind.POLYLINE}


def _strip_ns(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


class RawElement:
    """One shape of a scene root. Equality is element identity."""

    __slots__ = ("_el", "_scene")

    def __init__(self, el: ET.Element, scene: SceneRoot) -> None:
        self._el = el
        self._scene = scene

    def __eq__(self, other: object) -> bool:
        return isinstance(other, RawElement) and other._el is self._el

    def __hash__(self) -> int:
        return id(self._el)

    def __repr__(self) -> str:
        return f"RawElement(<{self.tag}> {self.kind.value})"

    # ── Structure ──

    @property
    def tag(self) -> str:
        return _strip_ns(self._el.tag)

    @property
    def kind(self) -> ShapeKind:
        return _KIND_BY_TAG.get(self.tag, ShapeKind.OTHER)

    @property
    def classes(self) -> list[str]:
        return self.get("class").split()

    def get(self, name: str, default: str = "") -> str:
        return self._el.get(name, default)

    def has_attr(self, name: str) -> bool:
        return name in self._el.attrib

    def parent(self) -> RawElement | None:
        parent = self._scene.parent_of(self._el)
        return RawElement(parent, self._scene) if parent is not None else None

    def ancestors(self) -> Iterator[RawElement]:
        current = self.parent()
        while current is not None:
            yield current
            current = current.parent()

    def closest(self, predicate: Callable[[RawElement], bool]) -> RawElement | None:
        """First of self and its ancestors matching ``predicate``."""
        if predicate(self):
            return self
        for ancestor in self.ancestors():
            if predicate(ancestor):
                return ancestor
        return None

    def descendants(self, tag: str | None = None) -> Iterator[RawElement]:
        for el in self._el.iter():
            if el is self._el:
                continue
            if tag is None or _strip_ns(el.tag) == tag:
                yield RawElement(el, self._scene)

    def first_descendant(self, predicate: Callable[[RawElement], bool]) -> RawElement | None:
        for desc in self.descendants():
            if predicate(desc):
                return desc
        return None

    def text_content(self) -> str:
        return "".join(self._el.itertext()).strip()

    # ── Geometry ──

    def translate(self) -> tuple[float, float] | None:
        """The (x, y) of a ``translate(x, y)`` transform, if present."""
        return _parse_translate(self.get("transform"))

    def explicit_xy(self) -> tuple[float, float]:
        return (parse_number(self.get("x")), parse_number(self.get("y")))

    def rect_descendant(self) -> RawElement | None:
        return next(self.descendants("rect"), None)

    def native_bbox(self) -> Box | None:
        """Bounding box of the drawable geometry under this element.

        Coordinates are in this element's user space: nested ``translate``
        transforms of descendants are applied, its own transform is not.
        """
        boxes: list[Box] = []
        _collect_boxes(self._el, 0.0, 0.0, boxes, is_top=True)
        return union_bbox(boxes)

    def scene_offset(self) -> tuple[float, float]:
        """Top-left of this element's box relative to its scene root."""
        dx = dy = 0.0
        for ancestor in self.ancestors():
            shift = ancestor.translate()
            if shift is not None:
                dx += shift[0]
                dy += shift[1]
        box = self.native_bbox()
        if box is not None:
            dx += box[0]
            dy += box[1]
        return (dx, dy)

    # ── Capabilities ──

    def as_labeled(self) -> LabeledShape | None:
        if self.kind == ShapeKind.TEXT:
            # A bare label directly under the <svg> carries its own geometry
            parent = self.parent()
            if parent is not None and parent._el is self._scene.element:
                parent = None
            parent_group = self.closest(_is_node_group) or parent
            return LabeledShape(
                label=self.text_content(),
                element=parent_group or self,
                parent_group=parent_group,
            )
        if self.kind == ShapeKind.GROUP:
            text_el = self.first_descendant(
                lambda e: e.tag == "text" and "node-name" in e.classes
            ) or next(self.descendants("text"), None)
            if text_el is None:
                return None
            return LabeledShape(label=text_el.text_content(), element=self, parent_group=self)
        return None

    def as_connector(self) -> ConnectorShape | None:
        if self.kind in _CONNECTOR_KINDS:
            return ConnectorShape(kind=self.kind, element=self)
        return None


def _is_node_group(el: RawElement) -> bool:
    return el.tag == "g" and "node" in el.classes


def _parse_translate(transform: str) -> tuple[float, float] | None:
    match = _TRANSLATE_RE.search(transform)
    if not match:
        return None
    try:
        return (float(match.group(1)), float(match.group(2)))
    except ValueError:
        return None


def _collect_boxes(el: ET.Element, dx: float, dy: float, out: list[Box], is_top: bool = False) -> None:
    if not is_top:
        shift = _parse_translate(el.get("transform", ""))
        if shift is not None:
            dx += shift[0]
            dy += shift[1]
    box = _element_box(el)
    if box is not None:
        out.append((box[0] + dx, box[1] + dy, box[2] + dx, box[3] + dy))
    for child in el:
        _collect_boxes(child, dx, dy, out)


def _element_box(el: ET.Element) -> Box | None:
    """Box of a single primitive, ignoring its transform and children."""
    tag = _strip_ns(el.tag)
    try:
        if tag == "rect":
            x, y = parse_number(el.get("x")), parse_number(el.get("y"))
            w, h = parse_number(el.get("width")), parse_number(el.get("height"))
            return (x, y, x + w, y + h)
        if tag == "circle":
            cx, cy, r = parse_number(el.get("cx")), parse_number(el.get("cy")), parse_number(el.get("r"))
            return (cx - r, cy - r, cx + r, cy + r)
        if tag == "ellipse":
            cx, cy = parse_number(el.get("cx")), parse_number(el.get("cy"))
            rx, ry = parse_number(el.get("rx")), parse_number(el.get("ry"))
            return (cx - rx, cy - ry, cx + rx, cy + ry)
        if tag == "line":
            xs = (parse_number(el.get("x1")), parse_number(el.get("x2")))
            ys = (parse_number(el.get("y1")), parse_number(el.get("y2")))
            return (min(xs), min(ys), max(xs), max(ys))
        if tag in ("polyline", "polygon"):
            coords = parse_number_list(el.get("points"))
            xs, ys = coords[0:-1:2], coords[1::2]
            if not xs or not ys:
                return None
            return (min(xs), min(ys), max(xs), max(ys))
        if tag == "path":
            d = el.get("d")
            if not d:
                return None
            path = parse_path(d)
            if len(path) == 0:
                return None
            xmin, xmax, ymin, ymax = path.bbox()
            return (float(xmin), float(ymin), float(xmax), float(ymax))
    except Exception as e:
        logger.debug("Could not measure <%s>: %s", tag, e)
    return None


@dataclass(frozen=True)
class LabeledShape:
    """A node candidate: its label and the element carrying its geometry."""

    label: str
    element: RawElement
    parent_group: RawElement | None = None


@dataclass(frozen=True)
class ConnectorShape:
    """A line, path or polyline that may link two nodes."""

    kind: ShapeKind
    element: RawElement

    @property
    def source_kind(self) -> str:
        return self.element.tag

    def points(self) -> list[tuple[float, float]]:
        """On-curve point sequence. Curve control points are never included."""
        if self.kind == ShapeKind.LINE:
            el = self.element
            return [
                (parse_number(el.get("x1")), parse_number(el.get("y1"))),
                (parse_number(el.get("x2")), parse_number(el.get("y2"))),
            ]
        if self.kind == ShapeKind.POLYLINE:
            coords = parse_number_list(self.element.get("points"))
            return [(coords[i], coords[i + 1]) for i in range(0, len(coords) - 1, 2)]
        if self.kind == ShapeKind.CURVE:
            d = self.element.get("d")
            if not d:
                return []
            try:
                # Close commands are not drawn ends: the last explicit point stays the end
                path = parse_path(_CLOSE_RE.sub(" ", d))
            except Exception as e:
                raise InvalidConnection(f"Unparseable path data {d[:40]!r}: {e}") from e
            if len(path) == 0:
                return []
            points = [(path[0].start.real, path[0].start.imag)]
            points.extend((seg.end.real, seg.end.imag) for seg in path)
            return points
        return []

    def endpoints(self) -> tuple[tuple[float, float], tuple[float, float]]:
        points = self.points()
        if len(points) < 2:
            raise InvalidConnection(f"<{self.element.tag}> has fewer than two points")
        return points[0], points[-1]


# Node-candidate criteria, applied in order; overlapping matches are merged.
def _g_node(el: RawElement) -> bool:
    return _is_node_group(el)


def _g_class_contains_node(el: RawElement) -> bool:
    return el.tag == "g" and "node" in el.get("class")


def _text_in_transformed_group(el: RawElement) -> bool:
    return el.tag == "text" and any(a.tag == "g" and a.has_attr("transform") for a in el.ancestors())


def _text_node_name(el: RawElement) -> bool:
    return el.tag == "text" and "node-name" in el.classes


NODE_CRITERIA: list[tuple[str, Callable[[RawElement], bool]]] = [
    ("g.node", _g_node),
    ("g[class*='node']", _g_class_contains_node),
    ("g[transform] text", _text_in_transformed_group),
    ("text.node-name", _text_node_name),
]

CONNECTOR_CRITERIA: list[tuple[str, Callable[[RawElement], bool]]] = [
    ("path.link", lambda el: el.tag == "path" and "link" in el.classes),
    ("path", lambda el: el.tag == "path"),
    ("line", lambda el: el.tag == "line"),
    ("polyline", lambda el: el.tag == "polyline"),
]


class SceneRoot:
    """One <svg> element and its own coordinate space."""

    def __init__(self, element: ET.Element, index: int = 0) -> None:
        self.element = element
        self.index = index
        self._parents: dict[ET.Element, ET.Element] = {
            child: parent for parent in element.iter() for child in parent
        }

    def parent_of(self, el: ET.Element) -> ET.Element | None:
        return self._parents.get(el)

    def shapes(self) -> Iterator[RawElement]:
        """Every descendant shape in document order."""
        return RawElement(self.element, self).descendants()

    def _match(self, criteria: list[tuple[str, Callable[[RawElement], bool]]]) -> list[RawElement]:
        found: dict[RawElement, None] = {}
        for name, predicate in criteria:
            before = len(found)
            for shape in self.shapes():
                if predicate(shape):
                    found.setdefault(shape, None)
            logger.debug("Scene %d: %s matched %d new shapes", self.index, name, len(found) - before)
        return list(found)

    def node_candidates(self) -> list[RawElement]:
        return self._match(NODE_CRITERIA)

    def connector_candidates(self) -> list[RawElement]:
        return self._match(CONNECTOR_CRITERIA)


def load_scene(document: str | bytes) -> list[SceneRoot]:
    """Parse a well-formed SVG or XHTML document into one SceneRoot per <svg> element."""
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise SceneParseError(f"Document is not well-formed XML: {e}") from e

    roots = [
        SceneRoot(el, index=i)
        for i, el in enumerate(el for el in root.iter() if _strip_ns(el.tag) == "svg")
    ]
    logger.info("Loaded scene: %d svg roots", len(roots))
    return roots
