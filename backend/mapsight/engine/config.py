"""Pipeline configuration — every geometric tolerance used by detection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mapsight.config import Settings

_AXES = ("x", "y")


@dataclass
class PipelineConfig:
    """Tolerances tuned for renderers that lay depth levels out left to right."""

    # Depth inference: primary axis carries depth, the other one breaks ties
    depth_axis: str = "x"
    level_tolerance: float = 5.0

    # Node deduplication radius (rounded positions)
    position_tolerance: float = 10.0

    # Connector endpoint → node anchor matching radius
    anchor_tolerance: float = 25.0

    # Parent replacement margins
    primary_replace_margin: float = 50.0
    secondary_replace_margin: float = 30.0

    # Bounds when a node has neither a rect nor measurable geometry
    fallback_width: float = 36.0
    fallback_height: float = 30.0

    # Labels shorter than this are treated as UI noise
    min_label_length: int = 2

    # Auto-expansion of collapsed branches
    max_expand_passes: int = 6
    expand_pass_delay_s: float = 0.35

    def __post_init__(self) -> None:
        if self.depth_axis not in _AXES:
            raise ValueError(f"depth_axis must be one of {_AXES}, got {self.depth_axis!r}")
        if self.level_tolerance <= 0:
            raise ValueError("level_tolerance must be positive")

    @property
    def secondary_axis(self) -> str:
        return "y" if self.depth_axis == "x" else "x"

    @property
    def parent_anchor(self) -> str:
        """Anchor side where connectors leave a parent."""
        return "right" if self.depth_axis == "x" else "bottom"

    @property
    def child_anchor(self) -> str:
        return "left" if self.depth_axis == "x" else "top"

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            depth_axis=settings.mapsight_depth_axis,
            level_tolerance=settings.mapsight_level_tolerance,
        )
