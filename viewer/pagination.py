from __future__ import annotations
import logging
from typing import Callable, Literal

from file_model.view_state import ViewState

logger = logging.getLogger(__name__)

Direction = Literal['next', 'previous']


class PaginationController:
    """Bounds-checked page navigation over ViewState.

    Pages are clamped to [1, max(total_pages, 1)]; stepping past either end
    stays on the boundary page. The target page goes to the render callback,
    which commits it to the state only once the page has been drawn.
    """

    def __init__(self, state: ViewState, render: Callable[[int], object]) -> None:
        self._state = state
        self._render = render

    def goto(self, page: int) -> int:
        self._render(self._state.clamp_page(page))
        return self._state.current_page

    def step(self, direction: Direction) -> int:
        if direction == 'next':
            delta = 1
        elif direction == 'previous':
            delta = -1
        else:
            raise ValueError(f"Unknown page direction: {direction!r}")
        target = self._state.clamp_page(self._state.current_page + delta)
        if target == self._state.current_page:
            logger.debug("Page %d is already the %s boundary", target, 'last' if delta > 0 else 'first')
            return target
        self._render(target)
        return self._state.current_page

    def next_page(self) -> int:
        return self.step('next')

    def previous_page(self) -> int:
        return self.step('previous')
