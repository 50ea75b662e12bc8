import html
import logging

import markdown
import qtawesome as qta
from PySide6.QtCore import QObject, QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPainterPathStroker, QPen
from PySide6.QtWidgets import QGraphicsItem

from socratic_config import NOTE_HEIGHT, NOTE_WIDTH, get_current_palette
from socratic_geometry import (
    DELETE_RADIUS, HIT_STROKE_WIDTH, Point, arrow_head, curve_path,
    delete_anchor, hits_curve, label_badge_rect, label_position,
)
from socratic_types import ConnectionType, connection_style

logger = logging.getLogger(__name__)

LINE_WIDTH = 3
LINE_OPACITY = 0.8
PREVIEW_OPACITY = 0.6
PREVIEW_DASH = (8, 4)


def note_center(note):
    """World-space center of a note, where its connections attach."""
    return Point(*note.center(NOTE_WIDTH, NOTE_HEIGHT))


def build_curve_path(curve):
    """Turns a CurvePath into a QPainterPath with a single quadratic segment."""
    path = QPainterPath()
    path.moveTo(QPointF(curve.start.x, curve.start.y))
    path.quadTo(QPointF(curve.control.x, curve.control.y), QPointF(curve.end.x, curve.end.y))
    return path


def build_arrow_path(arrow):
    path = QPainterPath()
    path.moveTo(QPointF(arrow.left.x, arrow.left.y))
    path.lineTo(QPointF(arrow.tip.x, arrow.tip.y))
    path.lineTo(QPointF(arrow.right.x, arrow.right.y))
    return path


_DELETE_ICONS = {}


def _delete_icon(color):
    # qtawesome icons are built lazily; they need a running QApplication.
    if color not in _DELETE_ICONS:
        _DELETE_ICONS[color] = qta.icon("fa5s.times", color=color)
    return _DELETE_ICONS[color]


def _round_pen(color, width):
    return QPen(QBrush(color), width, Qt.PenStyle.SolidLine, Qt.PenCapStyle.RoundCap, Qt.PenJoinStyle.RoundJoin)


class ConnectionItem(QGraphicsItem):
    """
    Draws one persisted connection: the curve, its arrowhead and, on hover,
    the type badge and the delete affordance.

    The item's shape is a much wider invisible stroke of the curve, so a click
    anywhere near the line counts as a click on the connection.
    """
    def __init__(self, overlay, connection, start, end, from_text="", to_text=""):
        """
        Initializes the ConnectionItem.

        Args:
            overlay (ConnectionOverlay): The overlay that owns this item.
            connection (Connection): The connection record being drawn.
            start (Point): Center of the "from" note.
            end (Point): Center of the "to" note.
            from_text (str): Body of the "from" note, for the tooltip.
            to_text (str): Body of the "to" note, for the tooltip.
        """
        super().__init__()
        self.overlay = overlay
        self.connection = connection
        self.setZValue(-1)  # Draw behind notes
        self.setAcceptHoverEvents(True)
        self.hover = False
        self.click_tolerance = HIT_STROKE_WIDTH
        self.path = QPainterPath()
        self.arrow_path = QPainterPath()
        self.hover_path = None
        self.set_connection(connection, start, end, from_text, to_text)

    def set_connection(self, connection, start, end, from_text="", to_text=""):
        """Recomputes every derived shape for new endpoints or a new record."""
        self.prepareGeometryChange()
        self.connection = connection
        self.start = start
        self.end = end
        self.curve = curve_path(start.x, start.y, end.x, end.y)
        self.arrow = arrow_head(start.x, start.y, end.x, end.y)
        self.label_anchor = label_position(start.x, start.y, end.x, end.y)
        self.path = build_curve_path(self.curve)
        self.arrow_path = build_arrow_path(self.arrow)
        self.hover_path = None
        self.setToolTip(self._tooltip_html(from_text, to_text))
        self.update()

    def _tooltip_html(self, from_text, to_text):
        style = connection_style(self.connection.type)
        # Note bodies are user text; keep raw HTML out of the rich-text tooltip.
        from_text = html.escape(from_text)
        to_text = html.escape(to_text)
        text = f"**{from_text}**\n\n{style.emoji} {style.label}\n\n**{to_text}**"
        return markdown.markdown(text)

    def badge_rect(self):
        rect = label_badge_rect(self.label_anchor)
        return QRectF(rect.x, rect.y, rect.width, rect.height)

    def delete_rect(self):
        anchor = delete_anchor(self.label_anchor)
        return QRectF(anchor.x - DELETE_RADIUS, anchor.y - DELETE_RADIUS, DELETE_RADIUS * 2, DELETE_RADIUS * 2)

    def boundingRect(self):
        padding = self.click_tolerance
        rect = self.path.boundingRect().united(self.arrow_path.boundingRect())
        rect = rect.united(self.badge_rect()).united(self.delete_rect())
        return rect.adjusted(-padding, -padding, padding, padding)

    def create_hover_path(self):
        """
        Creates the wide invisible stroke used as the hit target.

        Returns:
            QPainterPath: The stroked path for hover and click detection.
        """
        stroke = QPainterPathStroker()
        stroke.setWidth(self.click_tolerance)
        stroke.setCapStyle(Qt.PenCapStyle.RoundCap)
        stroke.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return stroke.createStroke(self.path)

    def shape(self):
        if self.hover_path is None:
            hover_path = self.create_hover_path()
            hover_path.addRect(self.badge_rect())
            hover_path.addEllipse(self.delete_rect())
            self.hover_path = hover_path.simplified()
        return self.hover_path

    def contains_point(self, point):
        return self.shape().contains(point)

    def is_delete_hit(self, point):
        anchor = delete_anchor(self.label_anchor)
        return (point.x() - anchor.x) ** 2 + (point.y() - anchor.y) ** 2 <= DELETE_RADIUS ** 2

    def paint(self, painter, option, widget=None):
        """
        Paints the connection in its type color.

        Args:
            painter (QPainter): The painter object.
            option (QStyleOptionGraphicsItem): Style options.
            widget (QWidget, optional): The widget being painted on. Defaults to None.
        """
        style = connection_style(self.connection.type)
        color = QColor(style.color)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        painter.save()
        painter.setOpacity(1.0 if self.hover else LINE_OPACITY)
        painter.setPen(_round_pen(color, LINE_WIDTH + 1 if self.hover else LINE_WIDTH))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(self.path)
        painter.restore()

        painter.setPen(_round_pen(color, LINE_WIDTH))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(self.arrow_path)

        if self.hover:
            self._paint_badge(painter, style, color)
            self._paint_delete(painter)

    def _paint_badge(self, painter, style, color):
        palette = get_current_palette()
        rect = self.badge_rect()
        painter.setPen(QPen(color, 2))
        painter.setBrush(QBrush(palette.BADGE_FILL))
        painter.drawRoundedRect(rect, rect.height() / 2, rect.height() / 2)

        font = QFont()
        font.setPointSize(8)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(palette.BADGE_TEXT)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, f"{style.emoji} {style.label}")

    def _paint_delete(self, painter):
        palette = get_current_palette()
        rect = self.delete_rect()
        painter.setPen(QPen(palette.DELETE_ACCENT, 2))
        painter.setBrush(QBrush(palette.BADGE_FILL))
        painter.drawEllipse(rect)

        icon = _delete_icon(palette.DELETE_ACCENT.name())
        icon.paint(painter, rect.adjusted(6, 6, -6, -6).toRect())

    def hoverEnterEvent(self, event):
        if not self.hover:
            self.hover = True
            self.update()
        super().hoverEnterEvent(event)

    def hoverLeaveEvent(self, event):
        self.hover = False
        self.update()
        super().hoverLeaveEvent(event)

    def mousePressEvent(self, event):
        """Routes a click to either deletion or selection of the connection."""
        if event.button() != Qt.MouseButton.LeftButton:
            event.ignore()
            return
        if self.is_delete_hit(event.pos()):
            self.overlay.delete_requested.emit(self.connection.id)
        elif self.contains_point(event.pos()):
            self.overlay.connection_clicked.emit(self.connection.id)
        else:
            event.ignore()
            return
        event.accept()


class ConnectionPreviewItem(QGraphicsItem):
    """
    The dashed, translucent link shown while the user drags a new connection
    from a note toward the pointer. It never takes mouse input.
    """
    def __init__(self, start, end, connection_type=ConnectionType.RELATES):
        super().__init__()
        self.setZValue(-1)
        self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self.path = QPainterPath()
        self.arrow_path = QPainterPath()
        self.set_endpoints(start, end, connection_type)

    def set_endpoints(self, start, end, connection_type=None):
        self.prepareGeometryChange()
        if connection_type is not None:
            self.connection_type = ConnectionType(connection_type)
        self.start = start
        self.end = end
        self.curve = curve_path(start.x, start.y, end.x, end.y)
        self.arrow = arrow_head(start.x, start.y, end.x, end.y)
        self.path = build_curve_path(self.curve)
        self.arrow_path = build_arrow_path(self.arrow)
        self.update()

    def boundingRect(self):
        rect = self.path.boundingRect().united(self.arrow_path.boundingRect())
        return rect.adjusted(-LINE_WIDTH, -LINE_WIDTH, LINE_WIDTH, LINE_WIDTH)

    def paint(self, painter, option, widget=None):
        color = QColor(connection_style(self.connection_type).color)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setOpacity(PREVIEW_OPACITY)
        painter.setBrush(Qt.BrushStyle.NoBrush)

        pen = _round_pen(color, LINE_WIDTH)
        # Qt dash lengths are in units of the pen width.
        pen.setDashPattern([length / LINE_WIDTH for length in PREVIEW_DASH])
        painter.setPen(pen)
        painter.drawPath(self.path)

        painter.setPen(_round_pen(color, LINE_WIDTH))
        painter.drawPath(self.arrow_path)


class ConnectionOverlay(QObject):
    """
    Keeps one ConnectionItem per drawable connection in a scene.

    ``sync`` is called with every new session snapshot. Connections whose
    notes cannot be found are skipped rather than failing the whole pass.
    """
    connection_clicked = Signal(str)
    delete_requested = Signal(str)

    def __init__(self, scene, parent=None):
        super().__init__(parent)
        self.scene = scene
        self.items = {}
        self.preview = None
        self._session = None

    def sync(self, session):
        """
        Brings the drawn connections in line with a session snapshot.

        Existing items are updated in place; items for connections that are
        gone (or no longer drawable) are removed from the scene.

        Args:
            session (Session): The snapshot to draw.
        """
        self._session = session
        notes = {note.id: note for note in session.notes}
        drawn = set()

        for connection in session.connections:
            from_note = notes.get(connection.from_note_id)
            to_note = notes.get(connection.to_note_id)
            if from_note is None or to_note is None:
                logger.debug("Skipping connection %s: endpoint note missing", connection.id)
                continue

            start = note_center(from_note)
            end = note_center(to_note)
            item = self.items.get(connection.id)
            if item is None:
                item = ConnectionItem(self, connection, start, end, from_note.text, to_note.text)
                self.scene.addItem(item)
                self.items[connection.id] = item
            else:
                item.set_connection(connection, start, end, from_note.text, to_note.text)
            drawn.add(connection.id)

        for connection_id in list(self.items):
            if connection_id not in drawn:
                item = self.items.pop(connection_id)
                if item.scene() is not None:
                    item.scene().removeItem(item)

    def item_for(self, connection_id):
        return self.items.get(connection_id)

    def connection_at(self, x, y):
        """Returns the id of the topmost connection whose hit stroke covers (x, y)."""
        for connection_id, item in reversed(list(self.items.items())):
            if hits_curve(item.curve, x, y, item.click_tolerance):
                return connection_id
        return None

    def show_preview(self, from_note_id, x, y, connection_type=ConnectionType.RELATES):
        """
        Shows (or moves) the link preview from a note's center to (x, y).

        Returns:
            bool: False when the source note is unknown; no preview is shown.
        """
        note = self._session.find_note(from_note_id) if self._session else None
        if note is None:
            self.clear_preview()
            return False

        start = note_center(note)
        end = Point(x, y)
        if self.preview is None:
            self.preview = ConnectionPreviewItem(start, end, connection_type)
            self.scene.addItem(self.preview)
        else:
            self.preview.set_endpoints(start, end, connection_type)
        return True

    def clear_preview(self):
        if self.preview is not None:
            if self.preview.scene() is not None:
                self.preview.scene().removeItem(self.preview)
            self.preview = None

    def clear(self):
        self.clear_preview()
        for item in self.items.values():
            if item.scene() is not None:
                item.scene().removeItem(item)
        self.items.clear()
