"""MapSight — mindmap structure recovery from rendered SVG scenes."""

__version__ = "0.1.0"
