from __future__ import annotations
import logging
from typing import Literal, Optional
from urllib.parse import quote

from PySide6 import QtCore

from engine.engine import ElementsAtTime, EngineHandle
from engine.errors import EngineNotReadyError
from engine.fetcher import DocumentFetcher, http_get_text
from engine.rendered_page import RenderedPage
from file_model.address_index import AddressResolver
from file_model.document import DocumentParseError, ScoreDocument
from file_model.view_state import ViewState
from settings_manager import SettingsManager, create_settings_manager
from utils.CONSTANT import MOVEMENT_QUERY_PARAM, ZOOM_MIN, ZOOM_MAX, ZOOM_STEP
from utils.tiny_tool import clamp, parse_int
from viewer.annotation_overlay import AnnotationOverlayAssigner
from viewer.layout_planner import LayoutPlanner
from viewer.pagination import PaginationController
from viewer.playback import HighlightDelta, PlaybackHighlightSynchronizer
from viewer.properties import PropertySynchronizer

logger = logging.getLogger(__name__)

ZoomDirection = Literal['zoomUp', 'zoomDown']


class ScoreViewer(QtCore.QObject):
    """One score view kept in sync with property writes, resizes and playback.

    Every external event (property write, relayout expiry, playback tick,
    fetch answer) runs to completion on the GUI thread, so ViewState is
    consistent between events. Failures are logged and leave the last good
    page on screen.
    """

    # property-update: written name and raw value, sent before the effect runs
    property_updated = QtCore.Signal(str, object)
    # page-info-update: (current page, total pages) after every completed render
    page_info_updated = QtCore.Signal(int, int)
    page_rendered = QtCore.Signal(object)
    highlight_changed = QtCore.Signal(object)
    document_loaded = QtCore.Signal(str)
    load_failed = QtCore.Signal(str, str)

    def __init__(self, engine: EngineHandle,
                 fetcher: Optional[DocumentFetcher] = None,
                 settings: Optional[SettingsManager] = None,
                 parent=None):
        super().__init__(parent)
        settings = settings or create_settings_manager()
        self.settings = settings

        self.state = ViewState(options=dict(settings.get('engine_options') or {}))
        self.state.set_zoom(int(settings.get('zoom')))
        self.state.page_width = int(self.state.options.get('pageWidth', self.state.page_width))
        self.state.page_height = int(self.state.options.get('pageHeight', self.state.page_height))

        self.document: Optional[ScoreDocument] = None
        self.view: Optional[RenderedPage] = None
        self.render_count: int = 0
        self._fetch_pending: bool = False
        # Source of a document that arrived before the engine was ready
        self._staged_url: Optional[str] = None

        self.resolver = AddressResolver()
        self.overlay = AnnotationOverlayAssigner(
            palette=list(settings.get('annotation_palette') or []),
            fallback_color=str(settings.get('annotation_fallback_color')),
        )
        self.planner = LayoutPlanner(self._relayout, int(settings.get('relayout_delay_ms')), parent=self)
        self.pagination = PaginationController(self.state, self.render)
        self.playback = PlaybackHighlightSynchronizer(
            self.state,
            query=self._elements_at_time,
            show_page=self.render,
            current_view=lambda: self.view,
            highlight_class=str(settings.get('highlight_class')),
        )
        self.properties = PropertySynchronizer(self, self.property_updated.emit)

        self._engine = engine
        self._engine.ready.connect(self._on_engine_ready)
        self._engine.failed.connect(self._on_engine_failed)

        if fetcher is None:
            timeout = float(settings.get('request_timeout_s'))
            fetcher = DocumentFetcher(get_text=lambda url: http_get_text(url, timeout), parent=self)
        self._fetcher = fetcher
        self._fetcher.fetched.connect(self._on_fetched)
        self._fetcher.failed.connect(self._on_fetch_failed)

        if self._engine.is_ready:
            self._on_engine_ready()

    # ---- external surface ----
    def start(self) -> None:
        """Begin the asynchronous engine startup."""
        self._engine.initialize(deferred=True)

    def set_property(self, name: str, value: object) -> bool:
        return self.properties.apply(name, value)

    def viewport_resized(self, width: int, height: int) -> None:
        self.state.viewport_width = max(0, int(width))
        self.state.viewport_height = max(0, int(height))
        if self.state.explicit_width is not None and self.state.explicit_height is not None:
            # Both axes pinned; the viewport does not matter
            return
        self.planner.request_relayout()

    def playback_tick(self, time_ms: float) -> Optional[HighlightDelta]:
        if not self._engine.is_ready or self.document is None:
            return None
        delta = self.playback.tick(time_ms)
        if delta is not None:
            self.highlight_changed.emit(delta)
        return delta

    def render_audio(self) -> bytes:
        if self.document is None:
            raise EngineNotReadyError("No document loaded")
        return self._engine.engine.render_to_audio()

    def shutdown(self) -> None:
        self.planner.cancel()

    # ---- property effects ----
    def apply_zoom(self, zoom: int) -> None:
        self.state.set_zoom(zoom)
        if self._push_options():
            self.render()

    def calculate_zoom(self, direction: ZoomDirection) -> int:
        if direction == 'zoomUp':
            delta = ZOOM_STEP
        elif direction == 'zoomDown':
            delta = -ZOOM_STEP
        else:
            raise ValueError(f"Unknown zoom direction: {direction!r}")
        self.state.set_zoom(clamp(self.state.zoom + delta, ZOOM_MIN, ZOOM_MAX))
        logger.debug("zoom is %d", self.state.zoom)
        if self._push_options():
            self.render()
        return self.state.zoom

    def set_explicit_size(self, width: Optional[int] = None, height: Optional[int] = None) -> None:
        if width is not None:
            self.state.explicit_width = int(width)
        if height is not None:
            self.state.explicit_height = int(height)
        self.planner.request_relayout()

    def set_page_size_option(self, width: Optional[int] = None, height: Optional[int] = None) -> None:
        self.state.set_page_size(width, height)
        if self._push_options(reload=True):
            self.render()

    def merge_engine_options(self, options: dict[str, object]) -> None:
        self.state.options.update(options)
        # Keep the typed fields in step with options the caller overrode
        scale = parse_int(options.get('scale'))
        if scale is not None and scale > 0:
            self.state.set_zoom(scale)
        self.state.set_page_size(parse_int(options.get('pageWidth')), parse_int(options.get('pageHeight')))
        if self._push_options(reload=True):
            self.render()

    def load_source(self, url: str) -> None:
        self.state.source_url = url
        self._fetch()

    def set_movement(self, movement_id: Optional[str]) -> None:
        self.state.movement_id = movement_id
        if self.state.source_url:
            self._fetch()

    def set_scope(self, scope: Optional[str]) -> None:
        # Staged only; the next measure lookup uses it
        self.state.scope = scope

    def goto_element(self, element_id: str) -> bool:
        page = self._page_with_element(element_id)
        if not page:
            logger.warning("Page not found for element ID: %s", element_id)
            return False
        self.pagination.goto(page)
        logger.info("Navigated to element with ID %s on page %d", element_id, page)
        return True

    def goto_measure(self, number: object) -> bool:
        measure_id = self.resolver.resolve_measure(self.state.scope, number)
        if measure_id is None:
            return False
        page = self._page_with_element(measure_id)
        if not page:
            logger.warning("Page not found for measure ID: %s", measure_id)
            return False
        self.pagination.goto(page)
        logger.info("Navigated to measure %s on page %d", number, page)
        return True

    def goto_movement(self, label: str) -> bool:
        movement_id = self.resolver.resolve_movement(label)
        if movement_id is None:
            return False
        page = self._page_with_element(movement_id)
        if not page:
            logger.warning("Page not found for movement ID: %s", movement_id)
            return False
        self.pagination.goto(page)
        logger.info("Navigated to movement %s on page %d", label, page)
        return True

    # ---- render path ----
    def render(self, page: Optional[int] = None) -> bool:
        """Render a page (default: the current one) and commit it on success.

        current_page and total_pages only change once the engine has drawn
        the page; on failure the previous page and state stay as they were.
        """
        target = self.state.current_page if page is None else int(page)
        if not self._engine.is_ready or self.document is None:
            # Staged for the first render
            self.state.current_page = self.state.clamp_page(target)
            return False
        eng = self._engine.engine
        try:
            total = max(0, int(eng.get_page_count()))
            target = max(1, min(target, max(total, 1)))
            rendered = RenderedPage(eng.render_page(target), target)
            self.overlay.place_markers(rendered, self.document)
        except Exception as exc:
            logger.error("Rendering page %d failed: %s", target, exc)
            return False
        self.state.total_pages = total
        self.state.current_page = target
        self.view = rendered
        self.render_count += 1
        self.page_rendered.emit(rendered)
        self.page_info_updated.emit(self.state.current_page, self.state.total_pages)
        return True

    def _relayout(self) -> None:
        width, height = self.planner.plan(self.state)
        self.state.set_page_size(width, height)
        if self._push_options(reload=True):
            self.render()

    def _push_options(self, reload: bool = False) -> bool:
        """Hand options (and, on reload, the document) to the engine.

        False when the engine is not ready or refused; state stays staged.
        """
        if not self._engine.is_ready:
            return False
        eng = self._engine.engine
        try:
            eng.set_options(dict(self.state.options))
            if reload and self.document is not None:
                eng.load_data(self.document.text)
        except Exception as exc:
            logger.error("Engine rejected options: %s", exc)
            return False
        return True

    def _page_with_element(self, element_id: str) -> int:
        if not self._engine.is_ready:
            logger.warning("Engine not ready; cannot locate %s", element_id)
            return 0
        try:
            return int(self._engine.engine.get_page_with_element(element_id) or 0)
        except Exception as exc:
            logger.error("Page lookup for %s failed: %s", element_id, exc)
            return 0

    def _elements_at_time(self, time_ms: float) -> ElementsAtTime:
        try:
            return self._engine.engine.get_elements_at_time(time_ms)
        except Exception as exc:
            logger.error("Time lookup at %.0f ms failed: %s", time_ms, exc)
            return ElementsAtTime()

    # ---- document loading ----
    def fetch_url(self) -> str:
        url = self.state.source_url
        if self.state.movement_id:
            sep = '&' if '?' in url else '?'
            url = f"{url}{sep}{MOVEMENT_QUERY_PARAM}={quote(self.state.movement_id)}"
        return url

    def _fetch(self) -> None:
        self._fetch_pending = True
        self._fetcher.fetch(self.fetch_url())

    @QtCore.Slot(int, str, str)
    def _on_fetched(self, _request_id: int, url: str, text: str) -> None:
        self._fetch_pending = False
        try:
            document = ScoreDocument.from_text(text, url)
        except DocumentParseError as exc:
            logger.error("%s", exc)
            self.load_failed.emit(url, str(exc))
            return
        if not self._engine.is_ready:
            # Nothing is on screen yet; the engine takes it over once ready
            self._install_document(document)
            self.state.current_page = 1
            self._staged_url = url
            return
        previous = self.document
        try:
            self._engine.engine.load_data(text)
        except Exception as exc:
            logger.error("Engine could not load %s: %s", url, exc)
            self._restore_document(previous)
            self.load_failed.emit(url, str(exc))
            return
        self._install_document(document)
        if not self.render(1):
            self._restore_document(previous)
            self.load_failed.emit(url, "The document could not be rendered")
            return
        self.playback.reset()
        self.document_loaded.emit(url)

    @QtCore.Slot(int, str, str)
    def _on_fetch_failed(self, _request_id: int, url: str, message: str) -> None:
        self._fetch_pending = False
        self.load_failed.emit(url, message)

    def _install_document(self, document: Optional[ScoreDocument]) -> None:
        self.document = document
        self.resolver.reset(document)
        self.overlay.load(document)

    def _restore_document(self, previous: Optional[ScoreDocument]) -> None:
        """Put the last good document back into the viewer and the engine."""
        self._install_document(previous)
        if previous is None:
            return
        try:
            self._engine.engine.load_data(previous.text)
        except Exception as exc:
            logger.error("Engine could not reload %s: %s", previous.source_url, exc)

    # ---- engine lifecycle ----
    @QtCore.Slot()
    def _on_engine_ready(self) -> None:
        if self.document is not None:
            staged_url, self._staged_url = self._staged_url, None
            if self._push_options(reload=True) and self.render():
                self.playback.reset()
                if staged_url is not None:
                    self.document_loaded.emit(staged_url)
            elif staged_url is not None:
                self.load_failed.emit(staged_url, "The document could not be rendered")
            return
        self._push_options()
        if self.state.source_url and not self._fetch_pending:
            self._fetch()

    @QtCore.Slot(str)
    def _on_engine_failed(self, message: str) -> None:
        logger.error("Viewer stays empty: %s", message)
        if self._staged_url is not None:
            self.load_failed.emit(self._staged_url, message)
            self._staged_url = None
