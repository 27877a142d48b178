from __future__ import annotations
import copy
import logging

from lxml import etree
from PySide6 import QtCore, QtGui, QtWidgets, QtSvg

from engine.rendered_page import RenderedPage
from viewer.score_viewer import ScoreViewer

logger = logging.getLogger(__name__)

HIGHLIGHT_COLOR_HEX: str = '#e6194b'


def styled_svg_bytes(page: RenderedPage, highlight_class: str, color: str = HIGHLIGHT_COLOR_HEX) -> bytes:
    """SVG bytes with highlighted elements colored inline.

    QtSvg ignores CSS class rules, so the highlight is written as fill and
    stroke attributes on a copy of the tree.
    """
    root = copy.deepcopy(page.root)
    for el in root.iter():
        if isinstance(el.tag, str) and highlight_class in (el.get('class') or '').split():
            el.set('fill', color)
            el.set('stroke', color)
            el.set('color', color)
    return etree.tostring(root, encoding='utf-8')


class ScoreViewWidget(QtWidgets.QWidget):
    """Paints the viewer's current page and feeds resizes and keys back to it."""

    def __init__(self, viewer: ScoreViewer, parent=None):
        super().__init__(parent)
        self.setMinimumSize(120, 120)
        self.setFocusPolicy(QtCore.Qt.FocusPolicy.StrongFocus)
        pal = self.palette()
        pal.setColor(QtGui.QPalette.Window, QtGui.QColor(255, 255, 255))
        self.setPalette(pal)
        self.setAutoFillBackground(True)
        self._viewer = viewer
        self._renderer = QtSvg.QSvgRenderer(self)
        self._has_page: bool = False
        viewer.page_rendered.connect(self._on_page_rendered)
        viewer.highlight_changed.connect(self._on_highlight_changed)

    def _on_page_rendered(self, page: RenderedPage) -> None:
        self._load(page)

    def _on_highlight_changed(self, _delta) -> None:
        # Highlight classes were toggled in place on the current page tree
        if self._viewer.view is not None:
            self._load(self._viewer.view)

    def _load(self, page: RenderedPage) -> None:
        data = styled_svg_bytes(page, self._viewer.playback.highlight_class)
        self._has_page = bool(self._renderer.load(QtCore.QByteArray(data)))
        if not self._has_page:
            logger.warning("Could not display page %d", page.page)
        self.update()

    def paintEvent(self, ev: QtGui.QPaintEvent) -> None:
        if not self._has_page:
            return
        painter = QtGui.QPainter(self)
        try:
            painter.setRenderHint(QtGui.QPainter.RenderHint.Antialiasing, True)
            # Fit the page into the widget, keeping its aspect ratio
            size = self._renderer.defaultSize()
            if size.width() <= 0 or size.height() <= 0:
                self._renderer.render(painter)
                return
            scale = min(self.width() / size.width(), self.height() / size.height())
            w = size.width() * scale
            h = size.height() * scale
            target = QtCore.QRectF((self.width() - w) / 2.0, 0.0, w, h)
            self._renderer.render(painter, target)
        finally:
            painter.end()

    def resizeEvent(self, ev: QtGui.QResizeEvent) -> None:
        # Relayout is debounced inside the viewer
        self._viewer.viewport_resized(ev.size().width(), ev.size().height())
        super().resizeEvent(ev)

    def keyPressEvent(self, ev: QtGui.QKeyEvent) -> None:
        key = ev.key()
        ctrl = bool(ev.modifiers() & QtCore.Qt.KeyboardModifier.ControlModifier)
        if key in (QtCore.Qt.Key_Right, QtCore.Qt.Key_PageDown):
            self._viewer.pagination.next_page()
            ev.accept()
            return
        if key in (QtCore.Qt.Key_Left, QtCore.Qt.Key_PageUp):
            self._viewer.pagination.previous_page()
            ev.accept()
            return
        if ctrl and key in (QtCore.Qt.Key_Plus, QtCore.Qt.Key_Equal):
            self._viewer.calculate_zoom('zoomUp')
            ev.accept()
            return
        if ctrl and key == QtCore.Qt.Key_Minus:
            self._viewer.calculate_zoom('zoomDown')
            ev.accept()
            return
        super().keyPressEvent(ev)

    def wheelEvent(self, ev: QtGui.QWheelEvent) -> None:
        # Ctrl+Wheel zooms; plain wheel turns pages
        angle = ev.angleDelta().y()
        steps = int(round(angle / 120.0))
        if steps == 0:
            ev.accept()
            return
        ctrl = bool(ev.modifiers() & QtCore.Qt.KeyboardModifier.ControlModifier)
        for _ in range(abs(steps)):
            if ctrl:
                self._viewer.calculate_zoom('zoomUp' if steps > 0 else 'zoomDown')
            elif steps > 0:
                self._viewer.pagination.previous_page()
            else:
                self._viewer.pagination.next_page()
        ev.accept()
