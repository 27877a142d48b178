from __future__ import annotations
import base64
import logging

import verovio

from engine.engine import ElementsAtTime, RenderEngine

logger = logging.getLogger(__name__)


class VerovioEngine(RenderEngine):
    """RenderEngine backed by the verovio toolkit."""

    def __init__(self, resource_path: str | None = None) -> None:
        if resource_path:
            verovio.setDefaultResourcePath(resource_path)
        self._tk = verovio.toolkit()
        logger.info("Verovio version %s has been loaded", self._tk.getVersion())

    def load_data(self, document_text: str) -> None:
        if not self._tk.loadData(document_text):
            raise ValueError("Verovio could not load the document")

    def set_options(self, options: dict[str, object]) -> None:
        self._tk.setOptions(dict(options))

    def get_options(self) -> dict[str, object]:
        return dict(self._tk.getOptions())

    def render_page(self, page: int) -> str:
        return self._tk.renderToSVG(int(page))

    def get_page_count(self) -> int:
        return int(self._tk.getPageCount())

    def get_page_with_element(self, element_id: str) -> int:
        return int(self._tk.getPageWithElement(element_id) or 0)

    def get_elements_at_time(self, time_ms: float) -> ElementsAtTime:
        answer = self._tk.getElementsAtTime(int(time_ms)) or {}
        ids: set[str] = set()
        for key in ('notes', 'chords', 'rests'):
            ids.update(answer.get(key, []) or [])
        return ElementsAtTime(page=int(answer.get('page', 0) or 0), elements=frozenset(ids))

    def render_to_audio(self) -> bytes:
        # The toolkit hands MIDI back as base64 text
        return base64.b64decode(self._tk.renderToMIDI())
