"""Detection error taxonomy.

Fatal errors propagate to the caller; ``InvalidConnection`` and
``LevelMismatch`` are raised inside helpers and caught at stage boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass


class MindmapError(Exception):
    """Base class for every error the detection pipeline reports."""


class SceneParseError(MindmapError):
    pass


class NoScreenContent(MindmapError):
    def __init__(self, message: str = "No SVG elements found. Make sure the mindmap is fully loaded and visible.") -> None:
        super().__init__(message)


class NoUniqueNodes(MindmapError):
    def __init__(self, message: str = "No unique nodes found in the scene") -> None:
        super().__init__(message)


class InvalidConnection(MindmapError):
    pass


class LevelMismatch(MindmapError):
    def __init__(self, parent_level: int, child_level: int) -> None:
        super().__init__(f"Invalid level connection: level {parent_level} -> level {child_level}")
        self.parent_level = parent_level
        self.child_level = child_level


@dataclass(frozen=True)
class Duplicate:
    kind: str  # "id" or "text"
    value: str
    index: int


class HierarchyValidationFailed(MindmapError):
    def __init__(self, duplicates: list[Duplicate]) -> None:
        super().__init__(f"Hierarchy validation failed: {len(duplicates)} duplicates found")
        self.duplicates = duplicates


class NoDebugData(MindmapError):
    def __init__(self, message: str = "Debug data not available. Run debug extraction first.") -> None:
        super().__init__(message)


class RootNotFound(MindmapError):
    def __init__(self, root_id: str) -> None:
        super().__init__(f"Selected root node not found: {root_id}")
        self.root_id = root_id
