"""T2.03 — Hierarchy Validation.

A placed hierarchy must never repeat an id or a normalized label. A violation
means an upstream bug, so the whole detection is aborted.
"""

from __future__ import annotations

import logging
from collections import Counter

from mapsight.engine.context import HierarchyNode, PipelineContext, normalize_text
from mapsight.engine.registry import Layer, stage
from mapsight.errors import Duplicate, HierarchyValidationFailed

logger = logging.getLogger(__name__)


def validate_hierarchy(hierarchy: list[HierarchyNode]) -> None:
    seen_ids: set[str] = set()
    seen_texts: set[str] = set()
    duplicates: list[Duplicate] = []

    for index, node in enumerate(hierarchy):
        if node.id in seen_ids:
            duplicates.append(Duplicate(kind="id", value=node.id, index=index))
        else:
            seen_ids.add(node.id)

        text = normalize_text(node.text)
        if text in seen_texts:
            duplicates.append(Duplicate(kind="text", value=text, index=index))
        else:
            seen_texts.add(text)

    if duplicates:
        logger.error("Duplicates found in hierarchy: %s", duplicates)
        raise HierarchyValidationFailed(duplicates)

    levels = Counter(node.level for node in hierarchy)
    logger.info("Hierarchy validation passed; level distribution: %s", dict(sorted(levels.items())))


@stage(
    id="T2.03",
    layer=Layer.ASSEMBLY,
    dependencies=["T2.02"],
    description="Reject hierarchies with repeated ids or labels",
)
def hierarchy_validation(ctx: PipelineContext) -> None:
    validate_hierarchy(ctx.hierarchy)
