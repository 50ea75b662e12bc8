import pytest
from PySide6.QtCore import QEvent, QPointF, Qt
from PySide6.QtWidgets import QGraphicsScene, QGraphicsSceneMouseEvent

from conftest import make_note
from socratic_connections import ConnectionItem, ConnectionOverlay, note_center
from socratic_geometry import Point
from socratic_types import Connection, ConnectionType, Session


def _session():
    notes = (make_note("a", 0, 0, text="Exams overlap"), make_note("b", 600, 0, text="Stress spikes"))
    connections = (
        Connection("conn-1", "a", "b", ConnectionType.CAUSES),
        Connection("conn-2", "a", "missing", ConnectionType.RELATES),
    )
    return Session(notes=notes, connections=connections)


def _left_press(pos):
    event = QGraphicsSceneMouseEvent(QEvent.Type.GraphicsSceneMousePress)
    event.setPos(pos)
    event.setButton(Qt.MouseButton.LeftButton)
    return event


@pytest.fixture
def overlay(qapp):
    scene = QGraphicsScene()
    overlay = ConnectionOverlay(scene)
    yield overlay
    overlay.clear()


def test_note_center() -> None:
    assert note_center(make_note("a", 10, 20)) == Point(138, 120)


def test_sync_skips_connections_with_missing_notes(overlay) -> None:
    overlay.sync(_session())

    assert list(overlay.items) == ["conn-1"]
    item = overlay.item_for("conn-1")
    assert isinstance(item, ConnectionItem)
    assert item.scene() is overlay.scene
    assert "Exams overlap" in item.toolTip()


def test_sync_updates_and_removes_items(overlay) -> None:
    session = _session()
    overlay.sync(session)
    item = overlay.item_for("conn-1")

    moved = session.with_changes(notes=(session.notes[0], make_note("b", 600, 300)))
    overlay.sync(moved)
    assert overlay.item_for("conn-1") is item
    assert item.end == Point(728, 400)

    overlay.sync(session.with_changes(connections=()))
    assert overlay.items == {}
    assert item.scene() is None


def test_connection_hit_testing(overlay) -> None:
    overlay.sync(_session())

    # Centers (128, 100) and (728, 100); the curve peaks 40 below at the middle.
    assert overlay.connection_at(428, 140) == "conn-1"
    assert overlay.connection_at(428, 400) is None
    assert overlay.item_for("conn-1").contains_point(QPointF(428, 140))


def test_delete_affordance_emits_delete_request(overlay) -> None:
    overlay.sync(_session())
    item = overlay.item_for("conn-1")
    requested = []
    overlay.delete_requested.connect(requested.append)

    anchor = item.delete_rect().center()
    assert item.is_delete_hit(anchor)
    item.mousePressEvent(_left_press(anchor))

    assert requested == ["conn-1"]


def test_preview_follows_the_pointer(overlay) -> None:
    overlay.sync(_session())

    assert overlay.show_preview("a", 300, 300, ConnectionType.SUPPORTS)
    preview = overlay.preview
    assert preview.start == Point(128, 100)
    assert preview.connection_type is ConnectionType.SUPPORTS

    overlay.show_preview("a", 400, 500)
    assert overlay.preview is preview
    assert preview.end == Point(400, 500)

    overlay.clear_preview()
    assert overlay.preview is None
    assert preview.scene() is None


def test_preview_from_unknown_note_is_refused(overlay) -> None:
    overlay.sync(_session())

    assert overlay.show_preview("ghost", 0, 0) is False
    assert overlay.preview is None


def test_clicking_the_line_selects_the_connection(overlay) -> None:
    overlay.sync(_session())
    item = overlay.item_for("conn-1")
    clicked = []
    overlay.connection_clicked.connect(clicked.append)

    item.mousePressEvent(_left_press(QPointF(200, 118)))

    assert clicked == ["conn-1"]


def test_tooltip_escapes_html_in_note_text(overlay) -> None:
    session = _session()
    risky = make_note("a", 0, 0, text='<img src="x" onerror="alert(1)">')
    overlay.sync(session.with_changes(notes=(risky, session.notes[1])))

    tooltip = overlay.item_for("conn-1").toolTip()

    assert "<img" not in tooltip
    assert "&lt;img" in tooltip
    assert "Stress spikes" in tooltip
