from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from engine.engine import ElementsAtTime
from engine.rendered_page import RenderedPage
from file_model.view_state import ViewState
from utils.CONSTANT import HIGHLIGHT_CLASS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighlightDelta:
    page: int
    page_changed: bool
    added: frozenset[str]
    removed: frozenset[str]
    active: frozenset[str]


class PlaybackHighlightSynchronizer:
    """Follows a playback position: turns pages and marks sounding elements.

    Each tick replaces the highlight set. A page change re-renders the page,
    which drops every highlight class with the old markup.
    """

    def __init__(self, state: ViewState,
                 query: Callable[[float], ElementsAtTime],
                 show_page: Callable[[int], object],
                 current_view: Callable[[], Optional[RenderedPage]],
                 highlight_class: str = HIGHLIGHT_CLASS) -> None:
        self._state = state
        self._query = query
        self._show_page = show_page
        self._current_view = current_view
        self.highlight_class = highlight_class
        self.highlight_set: frozenset[str] = frozenset()

    def reset(self) -> None:
        self.highlight_set = frozenset()

    def tick(self, time_ms: float) -> Optional[HighlightDelta]:
        answer = self._query(time_ms)
        if not answer or answer.page <= 0:
            return None

        # Compare against the live page, which other events may have changed since the last tick
        page_changed = answer.page != self._state.current_page
        if page_changed:
            self._show_page(answer.page)
            if self._state.current_page != answer.page:
                # The page was not drawn; the old page and its highlights stay
                logger.warning("Could not turn to page %d for playback", answer.page)
                return None

        view = self._current_view()
        previous = self.highlight_set
        if view is not None:
            for eid in previous:
                el = view.get_element_by_id(eid)
                if el is not None:
                    view.remove_class(el, self.highlight_class)
            for eid in answer.elements:
                el = view.get_element_by_id(eid)
                if el is not None:
                    view.add_class(el, self.highlight_class)
        new = frozenset(answer.elements)
        self.highlight_set = new
        return HighlightDelta(
            page=answer.page,
            page_changed=page_changed,
            added=new - previous,
            removed=previous - new,
            active=new,
        )
