import contextlib
import json
import logging
import sqlite3
from pathlib import Path

import socratic_config as config
from socratic_types import Session, SessionFormatError

logger = logging.getLogger(__name__)


def serialize_session(session: Session) -> str:
    """
    Converts a session snapshot into the JSON text that is persisted.

    Args:
        session (Session): The snapshot to serialize.

    Returns:
        str: The JSON representation.
    """
    return json.dumps(session.to_dict(), ensure_ascii=False)


def deserialize_session(text: str) -> Session:
    """
    Rebuilds a session snapshot from persisted JSON text.

    Raises:
        SessionFormatError: If the text is not valid JSON or does not describe
            a session.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError) as exc:
        raise SessionFormatError(f"session blob is not valid JSON: {exc}") from exc
    return Session.from_dict(data)


class SessionDatabase:
    """
    Key/value storage for session snapshots backed by SQLite.

    Rows are grouped by ``scope`` so several canvases (the equivalent of
    separate browser tabs) can share one database file without seeing each
    other's state.
    """
    def __init__(self, db_path=None, scope="default"):
        """
        Initializes the database connection and ensures the schema exists.

        Args:
            db_path (str | Path, optional): The sqlite file. Defaults to the
                configured location.
            scope (str): Storage scope the keys live in.
        """
        self.db_path = Path(db_path) if db_path else config.get_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.scope = scope
        self.init_database()

    @contextlib.contextmanager
    def _connect(self):
        # One short-lived connection per operation; commits on success.
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_database(self):
        """Creates the storage table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS session_storage (
                    scope TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (scope, key)
                )
            """)

    def read(self, key):
        """
        Returns the stored value for a key, or None when nothing is stored.

        Args:
            key (str): The storage key.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM session_storage WHERE scope = ? AND key = ?",
                (self.scope, key),
            ).fetchone()
        return row[0] if row else None

    def write(self, key, value):
        """Stores a value under a key, replacing any previous value."""
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO session_storage (scope, key, value, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(scope, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
            """, (self.scope, key, value))

    def remove(self, key):
        """Deletes a key; removing a missing key is a no-op."""
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM session_storage WHERE scope = ? AND key = ?",
                (self.scope, key),
            )


class SessionStore:
    """
    The single source of truth for the session.

    Readers call ``get()`` for the current immutable snapshot; writers hand
    ``set()`` a pure ``prev -> next`` function. Every accepted change is written
    to storage (once hydration has happened) and then published to subscribers.
    The store does not check that connections point at existing notes.
    """
    def __init__(self, database=None, storage_key=config.STORAGE_KEY, initial=None):
        """
        Initializes the store.

        Args:
            database (SessionDatabase, optional): Durable storage. Without one
                the store lives purely in memory.
            storage_key (str): Key the snapshot is persisted under.
            initial (Session, optional): Starting snapshot. Defaults to a fresh
                empty session.
        """
        self.database = database
        self.storage_key = storage_key
        self._state = initial if initial is not None else Session.create()
        self._listeners = []
        self._hydrated = False

    @property
    def is_hydrated(self):
        return self._hydrated

    def get(self) -> Session:
        return self._state

    def set(self, updater) -> Session:
        """
        Applies ``updater`` to the current snapshot.

        When the updater returns the very same object nothing is written or
        published.

        Args:
            updater (Callable[[Session], Session]): Pure function producing the
                next snapshot.

        Returns:
            Session: The current snapshot after the update.
        """
        previous = self._state
        new_state = updater(previous)
        if new_state is previous:
            return previous
        self._state = new_state
        self.persist()
        self._publish()
        return new_state

    def subscribe(self, listener):
        """
        Registers a callback invoked with each new snapshot.

        Returns:
            Callable[[], None]: Removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def hydrate(self) -> bool:
        """
        Loads the previously persisted snapshot, once.

        A blob that cannot be parsed is discarded and the current (default)
        session is kept. Subsequent calls do nothing.

        Returns:
            bool: True if a persisted snapshot was restored.
        """
        if self._hydrated:
            return False

        restored = False
        if self.database is not None:
            blob = self._read_blob()
            if blob:
                try:
                    self._state = deserialize_session(blob)
                    restored = True
                except SessionFormatError as e:
                    logger.warning("Discarding unreadable session under %r: %s", self.storage_key, e)

        self._hydrated = True
        self.persist()
        if restored:
            logger.debug("Hydrated session %s", self._state.project_id)
            self._publish()
        return restored

    def persist(self):
        """Writes the current snapshot, once hydration has completed."""
        if not self._hydrated or self.database is None:
            return
        try:
            self.database.write(self.storage_key, serialize_session(self._state))
        except sqlite3.Error as e:
            logger.error("Could not persist session: %s", e)

    def reset(self, session: Session) -> Session:
        """Drops the persisted snapshot and replaces the state with ``session``."""
        if self.database is not None:
            try:
                self.database.remove(self.storage_key)
            except sqlite3.Error as e:
                logger.error("Could not clear persisted session: %s", e)
        return self.set(lambda _prev: session)

    def _read_blob(self):
        try:
            return self.database.read(self.storage_key)
        except sqlite3.Error as e:
            logger.warning("Could not read persisted session: %s", e)
            return None

    def _publish(self):
        for listener in list(self._listeners):
            listener(self._state)
