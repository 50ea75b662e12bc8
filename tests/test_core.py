import json
import sqlite3

import pytest

from conftest import make_note
from socratic_config import STORAGE_KEY
from socratic_core import SessionDatabase, SessionStore, deserialize_session, serialize_session
from socratic_examples import build_example_session
from socratic_types import (
    Connection, ConnectionType, ImageAttachment, Note, Phase, Session, SessionFormatError,
    Viewport,
)


def _rich_session():
    example = build_example_session()
    image = ImageAttachment("data:image/jpeg;base64,AAAA", "sketch.jpg", "image/jpeg", 3, "A sketch")
    photo = Note(
        id="img", text="", x=-50.5, y=1e6, color="#fecaca", image=image, platform=("mobile",),
    )
    notes = example.notes + (photo,)
    return example.with_changes(
        project_id="proj-1",
        notes=notes,
        connections=(Connection("conn-1", "note-1", "note-2", ConnectionType.SUPPORTS, 5, "why"),),
        selected_concept_ids=("note-2",),
        token_allocation={"note-2": 3},
        viewport=Viewport(10, -20, 0.5),
    )


def test_session_round_trips_through_json() -> None:
    session = _rich_session()

    assert deserialize_session(serialize_session(session)) == session


def test_persisted_positions_are_nested() -> None:
    data = json.loads(serialize_session(Session(notes=(make_note("a", 1, 2),))))

    assert data["notes"][0]["position"] == {"x": 1, "y": 2}
    assert data["phase"] == "challenge"


def test_legacy_phase_name_loads() -> None:
    data = Session().to_dict()
    data["phase"] = "hmw"

    assert Session.from_dict(data).phase is Phase.CHALLENGE


UNREADABLE_BLOBS = [
    "{not json",
    "[]",
    '{"notes": [{"id": "a"}]}',
    '{"phase": "later"}',
    '{"created_at": 1e999}',
    '{"notes": [{"id": "a", "text": "", "position": {"x": 0, "y": 0}, "color": "#fef3c7", '
    '"created_at": Infinity}]}',
    "[" * 200000,
]


@pytest.mark.parametrize("blob", UNREADABLE_BLOBS)
def test_malformed_blobs_raise_format_error(blob) -> None:
    with pytest.raises(SessionFormatError):
        deserialize_session(blob)


def test_database_read_write_remove(database) -> None:
    assert database.read("k") is None
    database.write("k", "one")
    database.write("k", "two")
    assert database.read("k") == "two"
    database.remove("k")
    database.remove("k")
    assert database.read("k") is None


def test_database_scopes_are_isolated(tmp_path) -> None:
    first = SessionDatabase(tmp_path / "shared.db", scope="tab-1")
    second = SessionDatabase(tmp_path / "shared.db", scope="tab-2")
    first.write("k", "one")

    assert second.read("k") is None


def test_store_persists_every_change_after_hydration(database) -> None:
    store = SessionStore(database)
    store.set(lambda s: s.with_changes(challenge="before hydrate"))
    assert database.read(STORAGE_KEY) is None

    store.hydrate()
    store.set(lambda s: s.with_changes(challenge="How might we?"))

    reloaded = SessionStore(database)
    assert reloaded.hydrate() is True
    assert reloaded.get().challenge == "How might we?"


@pytest.mark.parametrize("blob", UNREADABLE_BLOBS)
def test_corrupt_blob_falls_back_to_default(database, blob) -> None:
    database.write(STORAGE_KEY, blob)
    store = SessionStore(database)
    default = store.get()

    assert store.hydrate() is False
    assert store.get() is default
    assert deserialize_session(database.read(STORAGE_KEY)) == default


def test_hydrate_runs_once(database) -> None:
    database.write(STORAGE_KEY, serialize_session(Session(challenge="saved")))
    store = SessionStore(database)
    published = []
    store.subscribe(published.append)

    assert store.hydrate() is True
    assert store.hydrate() is False
    assert [s.challenge for s in published] == ["saved"]


def test_subscribers_receive_changes_and_can_unsubscribe(store) -> None:
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.set(lambda s: s.with_changes(challenge="one"))
    store.set(lambda s: s)
    unsubscribe()
    store.set(lambda s: s.with_changes(challenge="two"))

    assert [s.challenge for s in seen] == ["one"]


def test_storage_errors_are_logged_not_raised(database, caplog) -> None:
    store = SessionStore(database)
    store.hydrate()

    def broken_write(key, value):
        raise sqlite3.OperationalError("disk I/O error")
    database.write = broken_write

    store.set(lambda s: s.with_changes(challenge="kept in memory"))

    assert store.get().challenge == "kept in memory"
    assert "Could not persist session" in caplog.text


def test_reset_clears_persisted_state(database) -> None:
    store = SessionStore(database)
    store.hydrate()
    store.set(lambda s: s.with_changes(challenge="old"))

    fresh = Session.create()
    store.reset(fresh)

    assert store.get() is fresh
    assert deserialize_session(database.read(STORAGE_KEY)) == fresh
