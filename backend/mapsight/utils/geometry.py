"""Leaf-node geometry helpers. No engine imports."""

from __future__ import annotations

import math
import re

import numpy as np

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def round_half_up(value: float) -> int:
    """Round .5 away from negative infinity, like a browser's Math.round."""
    return int(math.floor(value + 0.5))


def quantize(value: float, step: float) -> float:
    """Snap a coordinate to the nearest multiple of ``step``."""
    if step <= 0:
        return float(value)
    return float(round_half_up(value / step) * step)


def distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Euclidean distance between two (x, y) points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def union_bbox(
    boxes: list[tuple[float, float, float, float]],
) -> tuple[float, float, float, float] | None:
    """Smallest box covering every (xmin, ymin, xmax, ymax) in ``boxes``."""
    if not boxes:
        return None
    arr = np.array(boxes, dtype=np.float64)
    return (
        float(np.min(arr[:, 0])),
        float(np.min(arr[:, 1])),
        float(np.max(arr[:, 2])),
        float(np.max(arr[:, 3])),
    )


def mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return float(np.mean(np.array(values, dtype=np.float64)))


def parse_number(text: str | None, default: float = 0.0) -> float:
    """Leading number of an attribute value, ignoring any unit suffix ("100px" -> 100)."""
    if not text:
        return default
    match = _NUMBER_RE.match(text.strip())
    return float(match.group()) if match else default


def parse_number_list(text: str | None) -> list[float]:
    """Split an SVG number list on whitespace/commas, reading each token like ``parse_number``."""
    if not text:
        return []
    values: list[float] = []
    for token in text.replace(",", " ").split():
        match = _NUMBER_RE.match(token)
        if match:
            values.append(float(match.group()))
    return values
