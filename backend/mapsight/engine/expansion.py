"""Auto-expansion of collapsed mindmap branches before detection.

The live page is owned by an external collaborator implementing ``Expander``;
this module only drives it with a bounded number of passes.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Expander(Protocol):
    def find_collapsed(self) -> list[Any]:
        """Visible toggles whose branch is still collapsed."""
        ...

    def trigger(self, toggle: Any) -> bool:
        """Expand one toggle; True if an action was dispatched."""
        ...


def _trigger(expander: Expander, toggle: Any) -> bool:
    try:
        return bool(expander.trigger(toggle))
    except Exception as e:
        logger.warning("Error triggering toggle %r: %s", toggle, e)
        return False


def ensure_fully_expanded(
    expander: Expander,
    max_passes: int = 6,
    pass_delay_s: float = 0.35,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Expand until nothing is collapsed, a pass triggers nothing, or passes run out.

    Returns the total number of toggles triggered.
    """
    total = 0
    for pass_no in range(max_passes):
        toggles = expander.find_collapsed()
        if not toggles:
            if pass_no == 0:
                logger.info("No collapsed toggles detected before extraction")
            else:
                logger.info("All toggles expanded after %d pass(es)", pass_no)
            break

        triggered = sum(1 for toggle in toggles if _trigger(expander, toggle))
        total += triggered
        logger.info("Auto-expand pass %d: attempted %d, triggered %d", pass_no + 1, len(toggles), triggered)

        if triggered == 0:
            logger.warning("Auto-expand pass produced no clicks; stopping early")
            break

        sleep(pass_delay_s)

    return total
