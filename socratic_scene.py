import logging

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QPen
from PySide6.QtWidgets import QGraphicsScene

from socratic_commands import resolve_history_shortcut
from socratic_config import GRID_SIZE, get_current_palette
from socratic_connections import ConnectionOverlay, note_center
from socratic_placement import note_rect
from socratic_types import ConnectionType

logger = logging.getLogger(__name__)

SCENE_EXTENT = 20000


class CanvasScene(QGraphicsScene):
    """
    The Qt side of the canvas.

    The scene never owns session data. It listens to the store, redraws the
    connection overlay from each snapshot, and turns user input (history
    shortcuts, link gestures, delete clicks) into controller calls.
    """
    scene_changed = Signal()

    def __init__(self, controller, parent=None):
        """
        Initializes the CanvasScene.

        Args:
            controller (SessionController): The controller all edits go through.
            parent (QObject, optional): Qt parent.
        """
        super().__init__(parent)
        self.controller = controller
        self.setSceneRect(QRectF(-SCENE_EXTENT, -SCENE_EXTENT, SCENE_EXTENT * 2, SCENE_EXTENT * 2))

        self.overlay = ConnectionOverlay(self, parent=self)
        self.overlay.delete_requested.connect(self._on_delete_requested)

        # Link mode state: source note and connection type while dragging a link.
        self.link_source_id = None
        self.link_type = ConnectionType.RELATES

        self._unsubscribe = controller.store.subscribe(self._on_session_changed)
        self.overlay.sync(controller.state)

    @property
    def is_linking(self):
        return self.link_source_id is not None

    def _on_session_changed(self, session):
        self.overlay.sync(session)
        if self.is_linking and session.find_note(self.link_source_id) is None:
            self.cancel_link()
        self.scene_changed.emit()

    def _on_delete_requested(self, connection_id):
        self.controller.delete_connection(connection_id)

    # --- NOTES ---

    def add_note_at(self, x, y, text=""):
        """Creates a note centered as close to (x, y) as free space allows."""
        return self.controller.create_note(text, x, y)

    def note_at(self, x, y):
        """Returns the id of the topmost note whose rectangle contains (x, y)."""
        for note in reversed(self.controller.state.notes):
            if note_rect(note).contains(x, y):
                return note.id
        return None

    # --- LINK MODE ---

    def begin_link(self, note_id, connection_type=ConnectionType.RELATES):
        """
        Starts dragging a new connection out of a note.

        Returns:
            bool: False if the note does not exist.
        """
        note = self.controller.state.find_note(note_id)
        if note is None:
            logger.debug("Cannot start a link from missing note %s", note_id)
            return False
        self.link_source_id = note_id
        self.link_type = ConnectionType(connection_type)
        center = note_center(note)
        self.overlay.show_preview(note_id, center.x, center.y, self.link_type)
        return True

    def update_link(self, x, y):
        if self.is_linking:
            self.overlay.show_preview(self.link_source_id, x, y, self.link_type)

    def finish_link(self, target_id):
        """
        Completes link mode onto ``target_id``.

        Returns:
            Connection | None: The created connection, or None if link mode was
                not active or the controller refused the link.
        """
        if not self.is_linking:
            return None
        source_id, connection_type = self.link_source_id, self.link_type
        self.cancel_link()
        return self.controller.add_connection(source_id, target_id, connection_type)

    def cancel_link(self):
        self.link_source_id = None
        self.link_type = ConnectionType.RELATES
        self.overlay.clear_preview()

    # --- EVENTS ---

    def keyPressEvent(self, event):
        """Handles undo/redo shortcuts and Escape for link mode."""
        if event.key() == Qt.Key.Key_Escape and self.is_linking:
            self.cancel_link()
            event.accept()
            return

        action = resolve_history_shortcut(event.key(), event.modifiers(), event.isAutoRepeat())
        if action == "undo":
            self.controller.undo()
            event.accept()
            return
        if action == "redo":
            self.controller.redo()
            event.accept()
            return
        super().keyPressEvent(event)

    def mouseMoveEvent(self, event):
        if self.is_linking:
            pos = event.scenePos()
            self.update_link(pos.x(), pos.y())
        super().mouseMoveEvent(event)

    def mousePressEvent(self, event):
        if self.is_linking and event.button() == Qt.MouseButton.LeftButton:
            pos = event.scenePos()
            target_id = self.note_at(pos.x(), pos.y())
            if target_id is None or target_id == self.link_source_id:
                self.cancel_link()
            else:
                self.finish_link(target_id)
            event.accept()
            return
        super().mousePressEvent(event)

    def drawBackground(self, painter, rect):
        """
        Fills the background and draws a dot grid.

        Args:
            painter (QPainter): The painter to use for drawing.
            rect (QRectF): The portion of the scene to be drawn.
        """
        palette = get_current_palette()
        painter.fillRect(rect, palette.BACKGROUND)

        views = self.views()
        zoom = views[0].transform().m11() if views else 1.0
        if zoom < 0.5:
            return

        dot_color = QColor(palette.BADGE_TEXT)
        dot_color.setAlphaF(0.25)
        painter.setPen(QPen(dot_color, 1.5 / zoom))

        left = int(rect.left()) - (int(rect.left()) % GRID_SIZE)
        top = int(rect.top()) - (int(rect.top()) % GRID_SIZE)
        points = [
            QPointF(x, y)
            for x in range(left, int(rect.right()) + 1, GRID_SIZE)
            for y in range(top, int(rect.bottom()) + 1, GRID_SIZE)
        ]
        painter.drawPoints(points)

    def close(self):
        """Stops listening to the store and removes every drawn connection."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel_link()
        self.overlay.clear()
