"""Shared test fixtures."""

from __future__ import annotations

import pytest

from mapsight.engine.config import PipelineConfig
from mapsight.engine.context import Bounds, Node, Point


# Root on the left, two children one depth level to the right, joined by lines
# from the root's right anchor (100, 100) to each child's left anchor.
SIMPLE_MAP_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="400" height="200">
  <g class="node" transform="translate(0, 100)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Central Topic</text>
  </g>
  <g class="node" transform="translate(200, 50)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Alpha</text>
  </g>
  <g class="node" transform="translate(200, 150)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Beta</text>
  </g>
  <line x1="100" y1="100" x2="200" y2="50"/>
  <line x1="100" y1="100" x2="200" y2="150"/>
</svg>'''

DUPLICATE_TEXT_SVG = '''<svg xmlns="http://www.w3.org/2000/svg">
  <g class="node" transform="translate(0, 0)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Alpha</text>
  </g>
  <g class="node" transform="translate(300, 200)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name"> alpha </text>
  </g>
</svg>'''

# Same map as SIMPLE_MAP_SVG plus a curved link and a third-level node
# ("Delta") that no connector reaches.
ORPHAN_MAP_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="600" height="300">
  <g class="node" transform="translate(0, 100)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Central Topic</text>
  </g>
  <g class="node" transform="translate(200, 50)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Alpha</text>
  </g>
  <g class="node" transform="translate(200, 150)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Beta</text>
  </g>
  <g class="node" transform="translate(400, 160)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Delta</text>
  </g>
  <path class="link" d="M100,100 C150,100 150,50 200,50"/>
  <line x1="100" y1="100" x2="200" y2="150"/>
</svg>'''

# Host UI chrome next to a real node
NOISY_SVG = '''<svg xmlns="http://www.w3.org/2000/svg">
  <g class="node" transform="translate(0, 100)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Project Plan</text>
  </g>
  <g class="node" transform="translate(500, 0)"><text>settings</text></g>
  <g class="node" transform="translate(500, 60)"><text>42</text></g>
  <g class="node" transform="translate(500, 120)"><text>...</text></g>
  <g class="node" transform="translate(500, 180)"><text>me@example.com</text></g>
  <g class="node" transform="translate(500, 240)"><text>https://example.com</text></g>
  <g class="node" transform="translate(500, 300)"><text>x</text></g>
</svg>'''

# Depth grows downwards: parents connect from their bottom anchor
VERTICAL_MAP_SVG = '''<svg xmlns="http://www.w3.org/2000/svg">
  <g class="node" transform="translate(100, 0)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Top</text>
  </g>
  <g class="node" transform="translate(0, 100)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Left Leaf</text>
  </g>
  <g class="node" transform="translate(200, 100)">
    <rect x="0" y="-15" width="100" height="30"/>
    <text class="node-name">Right Leaf</text>
  </g>
  <line x1="150" y1="15" x2="50" y2="85"/>
  <line x1="150" y1="15" x2="250" y2="85"/>
</svg>'''

XHTML_PAGE = '''<html xmlns="http://www.w3.org/1999/xhtml">
  <body>
    <svg xmlns="http://www.w3.org/2000/svg">
      <g class="node" transform="translate(0, 0)"><text>First Scene</text></g>
    </svg>
    <div>
      <svg xmlns="http://www.w3.org/2000/svg">
        <g class="node" transform="translate(300, 300)"><text>Second Scene</text></g>
      </svg>
    </div>
  </body>
</html>'''

EMPTY_SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"></svg>'

MALFORMED_SVG = '<svg xmlns="http://www.w3.org/2000/svg"><g class="node">'


def make_node(node_id: str, text: str, x: float, y: float, index: int = 0) -> Node:
    """A node with the 100x30 box the fixtures above draw, vertically centred on (x, y)."""
    return Node(
        id=node_id,
        text=text,
        position=Point(x, y),
        bounds=Bounds.from_box(x, y - 15, 100, 30),
        original_index=index,
    )


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def simple_map_svg() -> str:
    return SIMPLE_MAP_SVG


@pytest.fixture
def orphan_map_svg() -> str:
    return ORPHAN_MAP_SVG
