from __future__ import annotations
import argparse
import sys

from PySide6 import QtWidgets

from engine.engine import EngineHandle
from settings_manager import get_settings_manager
from utils.logger_config import setup_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog='scoreview', description='Paginated MEI score viewer')
    parser.add_argument('source', nargs='?', default='', help='MEI file path or URL')
    parser.add_argument('--measure', help='measure number to open at')
    parser.add_argument('--movement', help='movement label narrowing --measure')
    parser.add_argument('--resource-path', help='verovio resource directory')
    args = parser.parse_args(argv)

    settings = get_settings_manager()
    setup_logging(str(settings.get('log_level', 'INFO')))

    app = QtWidgets.QApplication(sys.argv[:1])

    # Deferred imports keep --help fast and free of the engine
    from engine.verovio_engine import VerovioEngine
    from ui.main_window import MainWindow
    from viewer.score_viewer import ScoreViewer

    handle = EngineHandle(lambda: VerovioEngine(args.resource_path))
    viewer = ScoreViewer(handle, settings=settings)
    window = MainWindow(viewer)
    window.show()

    if args.movement:
        viewer.set_property('mdivname', args.movement)
    if args.source:
        viewer.set_property('meiurl', args.source)
    if args.measure:
        def _jump(_url: str) -> None:
            viewer.document_loaded.disconnect(_jump)
            viewer.set_property('measurenumber', args.measure)
        viewer.document_loaded.connect(_jump)

    viewer.start()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
