# Socratic_canvas.py

import logging
import sys

from PySide6.QtGui import QPainter
from PySide6.QtWidgets import QApplication, QGraphicsView

import socratic_config as config
from socratic_config import apply_theme, configure_logging
from socratic_core import SessionDatabase, SessionStore
from socratic_scene import CanvasScene
from socratic_session import SessionController

logger = logging.getLogger(__name__)


def main():
    """
    Initializes and runs the Socratic canvas.
    """
    configure_logging()

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(True)
    apply_theme(app, 'dark')

    database = SessionDatabase(config.get_db_path())
    store = SessionStore(database)
    controller = SessionController(store)
    if store.hydrate():
        logger.info("Restored session %s", store.get().project_id)

    scene = CanvasScene(controller)
    view = QGraphicsView(scene)
    view.setRenderHint(QPainter.RenderHint.Antialiasing)
    view.setDragMode(QGraphicsView.DragMode.ScrollHandDrag)
    view.setWindowTitle("Socratic Canvas")
    view.resize(1280, 800)

    viewport = store.get().viewport
    view.scale(viewport.zoom, viewport.zoom)
    view.centerOn(viewport.center_x, viewport.center_y)
    view.show()

    exit_code = app.exec()
    scene.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
