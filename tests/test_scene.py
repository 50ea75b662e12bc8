import pytest
from PySide6.QtCore import QEvent, Qt
from PySide6.QtGui import QKeyEvent

from socratic_scene import CanvasScene
from socratic_types import ConnectionType


def _key(key, modifiers=Qt.KeyboardModifier.NoModifier):
    return QKeyEvent(QEvent.Type.KeyPress, key, modifiers)


@pytest.fixture
def scene(qapp, controller):
    canvas = CanvasScene(controller)
    yield canvas
    canvas.close()


def test_store_changes_resync_the_overlay(scene, controller) -> None:
    changes = []
    scene.scene_changed.connect(lambda: changes.append(True))
    a = scene.add_note_at(0, 0, "a")
    b = scene.add_note_at(0, 0, "b")

    link = controller.add_connection(a.id, b.id)

    assert scene.overlay.item_for(link.id) is not None
    assert len(changes) == 3


def test_link_mode_creates_a_typed_connection(scene, controller) -> None:
    a = scene.add_note_at(0, 0, "a")
    b = scene.add_note_at(0, 0, "b")

    assert scene.begin_link(a.id, ConnectionType.CONTRADICTS)
    scene.update_link(500, 500)
    assert scene.overlay.preview is not None

    link = scene.finish_link(b.id)

    assert link.type is ConnectionType.CONTRADICTS
    assert not scene.is_linking
    assert scene.overlay.preview is None


def test_escape_cancels_link_mode(scene) -> None:
    a = scene.add_note_at(0, 0, "a")
    scene.begin_link(a.id)

    scene.keyPressEvent(_key(Qt.Key.Key_Escape))

    assert not scene.is_linking
    assert scene.finish_link(a.id) is None


def test_begin_link_from_missing_note(scene) -> None:
    assert scene.begin_link("ghost") is False
    assert not scene.is_linking


def test_history_keys_undo_and_redo(scene, controller) -> None:
    scene.add_note_at(0, 0, "a")

    scene.keyPressEvent(_key(Qt.Key.Key_Z, Qt.KeyboardModifier.ControlModifier))
    assert controller.state.notes == ()

    scene.keyPressEvent(_key(Qt.Key.Key_Y, Qt.KeyboardModifier.ControlModifier))
    assert len(controller.state.notes) == 1


def test_delete_request_removes_the_connection(scene, controller) -> None:
    a = scene.add_note_at(0, 0, "a")
    b = scene.add_note_at(0, 0, "b")
    link = controller.add_connection(a.id, b.id)

    scene.overlay.delete_requested.emit(link.id)

    assert controller.state.connections == ()
    assert scene.overlay.items == {}


def test_note_at_finds_the_topmost_note(scene) -> None:
    a = scene.add_note_at(128, 100, "a")

    assert scene.note_at(10, 10) == a.id
    assert scene.note_at(-10, 10) is None


def test_close_stops_listening(scene, controller) -> None:
    changes = []
    scene.scene_changed.connect(lambda: changes.append(True))
    scene.close()

    controller.create_note("after close", 0, 0)

    assert changes == []
