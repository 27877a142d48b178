from PySide6 import QtGui, QtWidgets
from typing import Optional

from ui.widgets.score_view import ScoreViewWidget
from viewer.score_viewer import ScoreViewer


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, viewer: ScoreViewer) -> None:
        super().__init__()
        self.setWindowTitle("scoreview")
        self.resize(1000, 1200)
        self.viewer = viewer

        self.score_view = ScoreViewWidget(viewer, self)
        self.setCentralWidget(self.score_view)

        self._page_label = QtWidgets.QLabel("No document")
        self.statusBar().addPermanentWidget(self._page_label)

        self._create_menus()

        viewer.page_info_updated.connect(self._on_page_info)
        viewer.document_loaded.connect(self._on_document_loaded)
        viewer.load_failed.connect(self._on_load_failed)

    def _create_menus(self) -> None:
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        open_act = QtGui.QAction("Open File...", self)
        open_act.setShortcut(QtGui.QKeySequence.StandardKey.Open)
        open_act.triggered.connect(self._open_file)
        file_menu.addAction(open_act)
        open_url_act = QtGui.QAction("Open URL...", self)
        open_url_act.triggered.connect(self._open_url)
        file_menu.addAction(open_url_act)
        file_menu.addSeparator()
        quit_act = QtGui.QAction("Quit", self)
        quit_act.setShortcut(QtGui.QKeySequence.StandardKey.Quit)
        quit_act.triggered.connect(self.close)
        file_menu.addAction(quit_act)

        nav_menu = menubar.addMenu("&Navigate")
        prev_act = QtGui.QAction("Previous Page", self)
        prev_act.triggered.connect(self.viewer.pagination.previous_page)
        nav_menu.addAction(prev_act)
        next_act = QtGui.QAction("Next Page", self)
        next_act.triggered.connect(self.viewer.pagination.next_page)
        nav_menu.addAction(next_act)
        nav_menu.addSeparator()
        movement_act = QtGui.QAction("Movement Scope...", self)
        movement_act.triggered.connect(self._set_scope)
        nav_menu.addAction(movement_act)
        measure_act = QtGui.QAction("Go to Measure...", self)
        measure_act.setShortcut(QtGui.QKeySequence("Ctrl+G"))
        measure_act.triggered.connect(self._goto_measure)
        nav_menu.addAction(measure_act)

        view_menu = menubar.addMenu("&View")
        zoom_in = QtGui.QAction("Zoom In", self)
        zoom_in.setShortcut(QtGui.QKeySequence.StandardKey.ZoomIn)
        zoom_in.triggered.connect(lambda: self.viewer.calculate_zoom('zoomUp'))
        view_menu.addAction(zoom_in)
        zoom_out = QtGui.QAction("Zoom Out", self)
        zoom_out.setShortcut(QtGui.QKeySequence.StandardKey.ZoomOut)
        zoom_out.triggered.connect(lambda: self.viewer.calculate_zoom('zoomDown'))
        view_menu.addAction(zoom_out)

    def _ask(self, title: str, label: str, text: str = "") -> Optional[str]:
        value, ok = QtWidgets.QInputDialog.getText(self, title, label, text=text)
        if not ok:
            return None
        return value

    def _open_file(self) -> None:
        path, _ = QtWidgets.QFileDialog.getOpenFileName(self, "Open MEI file", "", "MEI files (*.mei *.xml);;All files (*)")
        if path:
            self.viewer.set_property('meiurl', path)

    def _open_url(self) -> None:
        url = self._ask("Open URL", "Document URL:", self.viewer.state.source_url)
        if url:
            self.viewer.set_property('meiurl', url)

    def _set_scope(self) -> None:
        label = self._ask("Movement Scope", "Movement label (empty for whole document):", self.viewer.state.scope or "")
        if label is not None:
            self.viewer.set_property('mdivname', label)

    def _goto_measure(self) -> None:
        number = self._ask("Go to Measure", "Measure number:")
        if number:
            self.viewer.set_property('measurenumber', number)

    def _status(self, message: str, timeout_ms: int = 3000) -> None:
        self.statusBar().showMessage(message, timeout_ms)

    def _on_page_info(self, page: int, total: int) -> None:
        self._page_label.setText(f"Page {page} / {total}")

    def _on_document_loaded(self, url: str) -> None:
        self.setWindowTitle(f"scoreview - {url}")
        self._status(f"Loaded {url}")

    def _on_load_failed(self, url: str, message: str) -> None:
        self._status(f"Could not load {url}: {message}", 8000)

    def closeEvent(self, ev: QtGui.QCloseEvent) -> None:
        self.viewer.shutdown()
        super().closeEvent(ev)
