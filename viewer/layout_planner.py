from __future__ import annotations
import logging
from typing import Callable, Optional

from viewer.debouncer import Debouncer
from utils.CONSTANT import RELAYOUT_DELAY_MS

logger = logging.getLogger(__name__)


def plan_axis(explicit: Optional[int], viewport: int, zoom: int) -> Optional[int]:
    """Engine page size along one axis.

    An explicit size is in final on-screen units and is scaled by 100/zoom
    into the engine's zoom-independent units; without one the live viewport
    size is used as is. None when neither is usable.
    """
    if explicit is not None and zoom > 0:
        return int(explicit * 100 / zoom)
    if viewport > 0:
        return int(viewport)
    return None


def plan_dimensions(explicit_width: Optional[int], explicit_height: Optional[int],
                    viewport_width: int, viewport_height: int,
                    zoom: int) -> tuple[Optional[int], Optional[int]]:
    return (
        plan_axis(explicit_width, viewport_width, zoom),
        plan_axis(explicit_height, viewport_height, zoom),
    )


class LayoutPlanner:
    """Computes page dimensions and owns the single pending relayout.

    request_relayout() cancels any pending relayout and starts a new delay;
    when it expires, the relayout callback (recompute, push options, reload,
    render) runs once.
    """

    def __init__(self, relayout: Callable[[], None], delay_ms: int = RELAYOUT_DELAY_MS, parent=None):
        self._relayout = relayout
        self.debouncer = Debouncer(self._run, delay_ms, parent)
        self.relayout_count = 0

    def plan(self, state) -> tuple[Optional[int], Optional[int]]:
        return plan_dimensions(state.explicit_width, state.explicit_height,
                               state.viewport_width, state.viewport_height, state.zoom)

    def request_relayout(self) -> None:
        self.debouncer.trigger()

    def cancel(self) -> bool:
        return self.debouncer.cancel()

    def is_pending(self) -> bool:
        return self.debouncer.is_pending()

    def _run(self) -> None:
        self.relayout_count += 1
        logger.debug("Update page dimensions")
        self._relayout()
