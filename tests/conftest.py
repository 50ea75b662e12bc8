import os

import pytest

from socratic_core import SessionDatabase, SessionStore
from socratic_session import SessionController
from socratic_types import Note


@pytest.fixture(scope="session")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def database(tmp_path):
    return SessionDatabase(tmp_path / "sessions.db", scope="test")


@pytest.fixture
def store():
    memory_store = SessionStore()
    memory_store.hydrate()
    return memory_store


@pytest.fixture
def controller(store):
    return SessionController(store)


def make_note(note_id, x, y, text="note", color="#fef3c7"):
    return Note(id=note_id, text=text, x=x, y=y, color=color)
