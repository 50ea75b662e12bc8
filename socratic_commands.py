"""
Reversible edits and the undo/redo log that applies them.

A command captures fully-resolved snapshots when it is built, never closures
over live state, so undoing it later is correct no matter what else changed
in between. Three shapes cover every undoable edit: create, delete and
replace-by-id. Each acts on one entity collection of the session.
"""
import logging
from dataclasses import dataclass, fields

from PySide6.QtCore import Qt

logger = logging.getLogger(__name__)

COLLECTION_NOUNS = {
    "notes": "note",
    "connections": "connection",
    "concepts": "concept",
}

POSITION_FIELDS = ("x", "y")


# --- COLLECTION HELPERS ---
# Each helper returns the session unchanged (the same object) when there is
# nothing to do, which the store treats as "no change".

def _items(session, collection):
    if collection not in COLLECTION_NOUNS:
        raise ValueError(f"unknown collection: {collection!r}")
    return getattr(session, collection)


def _has(items, entity_id):
    return any(item.id == entity_id for item in items)


def append_entity(session, collection, entity):
    items = _items(session, collection)
    if _has(items, entity.id):
        return session
    return session.with_changes(**{collection: items + (entity,)})


def insert_entity(session, collection, entity, index):
    items = _items(session, collection)
    if _has(items, entity.id):
        return session
    index = max(0, min(index, len(items)))
    return session.with_changes(**{collection: items[:index] + (entity,) + items[index:]})


def remove_entity(session, collection, entity_id):
    items = _items(session, collection)
    if not _has(items, entity_id):
        return session
    return session.with_changes(**{collection: tuple(i for i in items if i.id != entity_id)})


def replace_entity(session, collection, entity):
    items = _items(session, collection)
    if not _has(items, entity.id):
        return session
    return session.with_changes(
        **{collection: tuple(entity if i.id == entity.id else i for i in items)}
    )


def changed_fields(before, after):
    """Names of the dataclass fields whose values differ between two snapshots."""
    return [f.name for f in fields(before) if getattr(before, f.name) != getattr(after, f.name)]


def describe_change(before, after, noun="note"):
    """
    Picks a friendly label for a replace command from what actually changed.

    Args:
        before: The entity snapshot prior to the edit.
        after: The entity snapshot after the edit.
        noun (str): What the entity is called in messages.

    Returns:
        str: "Move ...", "Edit ...", "Change ... color" or "Update ...".
    """
    changed = changed_fields(before, after)
    if len(changed) == 1 and changed[0] in POSITION_FIELDS:
        return f"Move {noun}"
    if "text" in changed:
        return f"Edit {noun}"
    if "color" in changed:
        return f"Change {noun} color"
    return f"Update {noun}"


# --- COMMANDS ---

class Command:
    """Interface every undoable edit implements."""
    label = "Update"

    def execute(self, store):
        raise NotImplementedError

    def undo(self, store):
        raise NotImplementedError


@dataclass(frozen=True)
class CreateEntityCommand(Command):
    collection: str
    entity: object

    @property
    def label(self):
        return f"Add {COLLECTION_NOUNS[self.collection]}"

    def execute(self, store):
        store.set(lambda s: append_entity(s, self.collection, self.entity))

    def undo(self, store):
        store.set(lambda s: remove_entity(s, self.collection, self.entity.id))


@dataclass(frozen=True)
class DeleteEntityCommand(Command):
    """Removes an entity; undo puts it back at the position it was taken from."""
    collection: str
    entity: object
    index: int

    @classmethod
    def capture(cls, session, collection, entity_id):
        """
        Builds the command from a snapshot, or returns None when the id is not
        in the collection.
        """
        for index, item in enumerate(_items(session, collection)):
            if item.id == entity_id:
                return cls(collection, item, index)
        return None

    @property
    def label(self):
        return f"Delete {COLLECTION_NOUNS[self.collection]}"

    def execute(self, store):
        store.set(lambda s: remove_entity(s, self.collection, self.entity.id))

    def undo(self, store):
        store.set(lambda s: insert_entity(s, self.collection, self.entity, self.index))


@dataclass(frozen=True)
class ReplaceEntityCommand(Command):
    """Swaps an entity for a new snapshot with the same id."""
    collection: str
    before: object
    after: object

    def __post_init__(self):
        if self.before.id != self.after.id:
            raise ValueError(
                f"replace must keep the id ({self.before.id!r} != {self.after.id!r})"
            )

    @property
    def label(self):
        return describe_change(self.before, self.after, COLLECTION_NOUNS[self.collection])

    def execute(self, store):
        store.set(lambda s: replace_entity(s, self.collection, self.after))

    def undo(self, store):
        store.set(lambda s: replace_entity(s, self.collection, self.before))


# --- COMMAND LOG ---

class CommandLog:
    """
    Undo and redo stacks over a session store.

    Pushing a new command discards the redo stack; history does not branch.
    """
    def __init__(self, store, history_limit=None):
        """
        Args:
            store (SessionStore): The store commands are applied to.
            history_limit (int, optional): Maximum undo depth; the oldest
                commands are dropped beyond it.
        """
        self.store = store
        self.history_limit = history_limit
        self._undo_stack = []
        self._redo_stack = []

    @property
    def undo_stack(self):
        return tuple(self._undo_stack)

    @property
    def redo_stack(self):
        return tuple(self._redo_stack)

    @property
    def can_undo(self):
        return bool(self._undo_stack)

    @property
    def can_redo(self):
        return bool(self._redo_stack)

    def push(self, command):
        """Executes a command and records it for undo."""
        command.execute(self.store)
        self._undo_stack.append(command)
        if self.history_limit is not None and len(self._undo_stack) > self.history_limit:
            del self._undo_stack[0]
        self._redo_stack.clear()
        logger.debug("Executed %s", command.label)
        return command

    def undo(self):
        """Reverts the most recent command. Returns it, or None if there was none."""
        if not self._undo_stack:
            return None
        command = self._undo_stack.pop()
        command.undo(self.store)
        self._redo_stack.append(command)
        return command

    def redo(self):
        """Re-applies the most recently undone command, or returns None."""
        if not self._redo_stack:
            return None
        command = self._redo_stack.pop()
        command.execute(self.store)
        self._undo_stack.append(command)
        return command

    def clear(self):
        self._undo_stack.clear()
        self._redo_stack.clear()


# --- KEY BINDINGS ---

def resolve_history_shortcut(key, modifiers, is_auto_repeat=False):
    """
    Maps a key press to a history action.

    Ctrl/Cmd+Z undoes, Ctrl/Cmd+Shift+Z and Ctrl/Cmd+Y redo. Auto-repeat
    events never resolve, so holding the keys down acts only once.

    Args:
        key (Qt.Key | int): The pressed key.
        modifiers (Qt.KeyboardModifier): Active modifiers.
        is_auto_repeat (bool): Whether the event is a key-repeat.

    Returns:
        str | None: "undo", "redo" or None.
    """
    if is_auto_repeat:
        return None
    command_held = bool(modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.MetaModifier))
    if not command_held:
        return None
    shift_held = bool(modifiers & Qt.KeyboardModifier.ShiftModifier)
    if key == Qt.Key.Key_Z:
        return "redo" if shift_held else "undo"
    if key == Qt.Key.Key_Y and not shift_held:
        return "redo"
    return None
