"""Pipeline orchestrator — runs stages in dependency order."""

from __future__ import annotations

import logging
import time

from mapsight.engine.context import PipelineContext
from mapsight.engine.registry import StageRegistry, get_registry, register_stages

logger = logging.getLogger(__name__)

# Everything up to a chosen root: what the debug snapshot needs
DEBUG_TARGETS = {"T1.02", "T2.01"}


class Pipeline:
    """Orchestrates the stage pipeline."""

    def __init__(self, registry: StageRegistry | None = None) -> None:
        self.registry = registry or get_registry()

    def run(
        self,
        ctx: PipelineContext,
        targets: set[str] | None = None,
        strict: bool = True,
    ) -> PipelineContext:
        """Run the requested stages (all when ``targets`` is None) on ``ctx``.

        Stages already in ``ctx.completed_stages`` are not rerun, so a context
        seeded with cached results resumes from there. Strict runs re-raise
        the first stage failure. Lenient runs record it in ``ctx.errors`` and
        skip every stage that depends on a failed one.
        """
        start = time.perf_counter()
        ordered = self.registry.resolve_order(targets)
        logger.info("Pipeline: %d stages queued", len(ordered))

        for spec in ordered:
            if spec.id in ctx.completed_stages:
                continue
            blocked = [d for d in spec.dependencies if d not in ctx.completed_stages]
            if blocked:
                logger.debug("  %s skipped: upstream %s did not complete", spec.id, ", ".join(blocked))
                continue
            t0 = time.perf_counter()
            try:
                spec.fn(ctx)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)
                if strict:
                    raise
                continue
            ctx.completed_stages.add(spec.id)
            logger.debug("  %s completed in %.1fms", spec.id, (time.perf_counter() - t0) * 1000)

        logger.info(
            "Pipeline complete: %d/%d stages in %.0fms",
            len(ctx.completed_stages),
            len(ordered),
            (time.perf_counter() - start) * 1000,
        )
        return ctx


def create_pipeline() -> Pipeline:
    """Factory function for creating a pipeline with every stage registered."""
    return Pipeline(registry=register_stages())
