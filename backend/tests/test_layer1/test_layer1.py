"""Tests for Layer 1 stages: connection analysis and parent resolution."""

import pytest

from mapsight.engine.config import PipelineConfig
from mapsight.engine.context import Connection, LevelMap, ParentChildMap, Point
from mapsight.engine.layer0.t0_01_node_extraction import extract_unique_nodes
from mapsight.engine.layer0.t0_02_level_grouping import group_by_level
from mapsight.engine.layer1.t1_01_connection_analysis import (
    analyze_connector,
    extract_connections,
    find_node_by_anchor,
)
from mapsight.engine.layer1.t1_02_parent_resolution import (
    check_level_step,
    resolve_parents,
    should_replace_parent,
)
from mapsight.errors import InvalidConnection, LevelMismatch
from mapsight.svg.scene import load_scene
from tests.conftest import ORPHAN_MAP_SVG, SIMPLE_MAP_SVG, make_node


def _connector(markup: str):
    scene = load_scene(f'<svg xmlns="http://www.w3.org/2000/svg">{markup}</svg>')[0]
    return scene.connector_candidates()[0].as_connector()


def _edge(parent, child) -> Connection:
    return Connection(
        parent=parent,
        child=child,
        start=Point(parent.bounds.right, parent.position.y),
        end=Point(child.bounds.left, child.position.y),
        source_kind="line",
    )


@pytest.fixture
def root_and_child():
    return make_node("node_0", "Root", 0.0, 100.0), make_node("node_1", "Child", 200.0, 50.0)


def test_find_node_by_anchor_tolerance(root_and_child):
    nodes = list(root_and_child)
    assert find_node_by_anchor((120.0, 100.0), nodes, "right").id == "node_0"
    assert find_node_by_anchor((126.0, 100.0), nodes, "right") is None
    assert find_node_by_anchor((200.0, 60.0), nodes, "left").id == "node_1"


def test_analyze_line(root_and_child, config):
    conn = analyze_connector(_connector('<line x1="100" y1="100" x2="200" y2="50"/>'), list(root_and_child), config)
    assert conn.parent.id == "node_0"
    assert conn.child.id == "node_1"
    assert conn.start == Point(100.0, 100.0)
    assert conn.source_kind == "line"
    assert conn.direction == "parent-to-child"


def test_reversed_connection_rejected(root_and_child, config):
    # From the child's right edge back to the root's left edge
    with pytest.raises(InvalidConnection, match="Reversed"):
        analyze_connector(_connector('<line x1="300" y1="50" x2="0" y2="100"/>'), list(root_and_child), config)


def test_self_loop_rejected(root_and_child, config):
    with pytest.raises(InvalidConnection):
        analyze_connector(_connector('<line x1="100" y1="100" x2="0" y2="100"/>'), list(root_and_child), config)


def test_unmatched_endpoint_rejected(root_and_child, config):
    with pytest.raises(InvalidConnection):
        analyze_connector(_connector('<line x1="100" y1="100" x2="500" y2="500"/>'), list(root_and_child), config)


def test_extract_connections_from_scene(config):
    roots = load_scene(ORPHAN_MAP_SVG)
    nodes, _ = extract_unique_nodes(roots, config)
    connections, rejected = extract_connections(roots, nodes, config)
    assert [(c.parent.text, c.child.text, c.source_kind) for c in connections] == [
        ("Central Topic", "Alpha", "path"),
        ("Central Topic", "Beta", "line"),
    ]
    assert rejected == 0


def test_vertical_anchors():
    config = PipelineConfig(depth_axis="y")
    top = make_node("node_0", "Top", 100.0, 0.0)
    leaf = make_node("node_1", "Leaf", 0.0, 100.0)
    conn = analyze_connector(_connector('<line x1="150" y1="15" x2="50" y2="85"/>'), [top, leaf], config)
    assert (conn.parent.id, conn.child.id) == ("node_0", "node_1")


def test_check_level_step():
    root, child, grandchild = (
        make_node("node_0", "Root", 0.0, 0.0),
        make_node("node_1", "Child", 200.0, 0.0),
        make_node("node_2", "Grandchild", 400.0, 0.0),
    )
    level_map = group_by_level([root, child, grandchild])
    check_level_step(root, child, level_map)
    with pytest.raises(LevelMismatch) as exc:
        check_level_step(root, grandchild, level_map)
    assert (exc.value.parent_level, exc.value.child_level) == (0, 2)


def test_should_replace_on_primary_distance(config):
    child = make_node("node_2", "Child", 450.0, 0.0)
    far = make_node("node_0", "Far parent", 370.0, 0.0)
    near = make_node("node_1", "Near parent", 440.0, 0.0)
    assert should_replace_parent(far, near, child, config)
    assert not should_replace_parent(near, far, child, config)


def test_should_replace_on_secondary_distance(config):
    child = make_node("node_2", "Child", 200.0, 100.0)
    above = make_node("node_0", "Above", 0.0, 0.0)
    level = make_node("node_1", "Level", 0.0, 95.0)
    assert should_replace_parent(above, level, child, config)
    assert not should_replace_parent(level, above, child, config)


def test_near_tie_keeps_existing(config):
    child = make_node("node_2", "Child", 200.0, 100.0)
    first = make_node("node_0", "First", 0.0, 80.0)
    second = make_node("node_1", "Second", 0.0, 110.0)
    assert not should_replace_parent(first, second, child, config)
    assert not should_replace_parent(second, first, child, config)


@pytest.mark.parametrize("far_first", [True, False])
def test_competing_parents_keep_closer(config, far_first):
    # Both parents share the 400 level key; the child sits on the 500 key
    far = make_node("node_0", "Far parent", 370.0, 0.0)
    near = make_node("node_1", "Near parent", 440.0, 0.0)
    child = make_node("node_2", "Child", 450.0, 0.0)
    level_map = LevelMap(axis="x", tolerance=100.0)
    for node in (far, near, child):
        level_map.add(node)
    assert level_map.level_of(far) == level_map.level_of(near) == 0

    edges = [_edge(far, child), _edge(near, child)]
    if not far_first:
        edges.reverse()
    mapping, rejected = resolve_parents(edges, level_map, {n.id: n for n in (far, near, child)}, config)

    assert rejected == 0
    assert mapping.parent_of["node_2"] == "node_1"
    assert mapping.children_of("node_1") == ["node_2"]
    assert mapping.children_of("node_0") == []


def test_resolve_parents_rejects_level_skips(config):
    root = make_node("node_0", "Root", 0.0, 0.0)
    child = make_node("node_1", "Child", 200.0, 0.0)
    grandchild = make_node("node_2", "Grandchild", 400.0, 0.0)
    nodes = [root, child, grandchild]
    level_map = group_by_level(nodes)
    mapping, rejected = resolve_parents(
        [_edge(root, child), _edge(root, grandchild), _edge(child, grandchild)],
        level_map,
        {n.id: n for n in nodes},
        config,
    )
    assert rejected == 1
    assert mapping.children == {"node_0": ["node_1"], "node_1": ["node_2"]}


def test_parent_child_map_reassign():
    mapping = ParentChildMap()
    mapping.assign("a", "c1")
    mapping.assign("a", "c2")
    mapping.assign("b", "c1")
    assert mapping.children_of("a") == ["c2"]
    assert mapping.children_of("b") == ["c1"]
    assert mapping.parent_of == {"c1": "b", "c2": "a"}


def test_simple_map_connections(config):
    roots = load_scene(SIMPLE_MAP_SVG)
    nodes, _ = extract_unique_nodes(roots, config)
    connections, _ = extract_connections(roots, nodes, config)
    mapping, _ = resolve_parents(connections, group_by_level(nodes), {n.id: n for n in nodes}, config)
    assert mapping.children_of("node_0") == ["node_1", "node_2"]


def test_connector_matches_nodes_of_another_scene_root(config):
    nodes_svg = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<g class="node" transform="translate(0, 100)"><rect x="0" y="-15" width="100" height="30"/><text>Root</text></g>'
        '<g class="node" transform="translate(200, 50)"><rect x="0" y="-15" width="100" height="30"/><text>Child</text></g>'
        "</svg>"
    )
    links_svg = '<svg xmlns="http://www.w3.org/2000/svg"><line x1="100" y1="100" x2="200" y2="50"/></svg>'
    roots = load_scene(f"<div>{nodes_svg}{links_svg}</div>")
    nodes, _ = extract_unique_nodes(roots, config)
    connections, rejected = extract_connections(roots, nodes, config)
    assert [n.scene_index for n in nodes] == [0, 0]
    assert [(c.parent.text, c.child.text) for c in connections] == [("Root", "Child")]
    assert rejected == 0
