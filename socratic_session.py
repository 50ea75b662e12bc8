"""
The surface feature code uses to read and change a session.

Edits users expect to undo (notes and connections) go through the command
log; bookkeeping such as questions, concepts and phase changes writes to the
store directly.
"""
import logging
from dataclasses import replace

from socratic_commands import (
    CommandLog, CreateEntityCommand, DeleteEntityCommand, ReplaceEntityCommand,
)
from socratic_config import NOTE_HEIGHT, NOTE_WIDTH
from socratic_examples import build_example_session
from socratic_placement import clamp_zoom, find_free_position, fit_viewport, snap_to_grid
from socratic_styles import STICKY_COLORS
from socratic_types import (
    Connection, ConnectionType, Note, Phase, Session, Viewport, new_id, now_ms,
)

logger = logging.getLogger(__name__)


class SessionController:
    """
    Owns the command log for a store and exposes every session mutation.

    Undo/redo feedback ("Undid: Move note") is logged and handed to any
    callbacks registered with ``on_feedback``.
    """
    def __init__(self, store, history_limit=None):
        self.store = store
        self.history = CommandLog(store, history_limit=history_limit)
        self._feedback_listeners = []

    @property
    def state(self) -> Session:
        return self.store.get()

    # --- FEEDBACK ---

    def on_feedback(self, callback):
        """Registers a callback receiving short user-facing messages."""
        self._feedback_listeners.append(callback)

        def unsubscribe():
            if callback in self._feedback_listeners:
                self._feedback_listeners.remove(callback)
        return unsubscribe

    def _notify(self, message):
        logger.info(message)
        for callback in list(self._feedback_listeners):
            callback(message)

    # --- HISTORY ---

    @property
    def can_undo(self):
        return self.history.can_undo

    @property
    def can_redo(self):
        return self.history.can_redo

    def undo(self):
        command = self.history.undo()
        if command is not None:
            self._notify(f"Undid: {command.label}" if command.label else "Undid action")
        return command

    def redo(self):
        command = self.history.redo()
        if command is not None:
            self._notify(f"Redid: {command.label}" if command.label else "Redid action")
        return command

    # --- NOTES (undoable) ---

    def add_note(self, note: Note):
        return self.history.push(CreateEntityCommand("notes", note))

    def create_note(self, text, preferred_x, preferred_y, color=None, is_concept=False, **extra):
        """
        Creates a note as close to the preferred point as the placement engine
        allows and pushes it as an undoable edit.

        Args:
            text (str): The note body.
            preferred_x (float): Desired center X in world space.
            preferred_y (float): Desired center Y in world space.
            color (str, optional): Color token; defaults to the first sticky color.
            is_concept (bool): Whether the note starts out as a concept.
            **extra: Any other Note field (details, image, question_id, ...).

        Returns:
            Note: The note that was added.
        """
        position = find_free_position(
            self.state.notes, preferred_x, preferred_y, NOTE_WIDTH, NOTE_HEIGHT
        )
        note = Note(
            id=new_id("note"),
            text=text,
            x=position.x,
            y=position.y,
            color=color or STICKY_COLORS[0],
            is_concept=is_concept,
            created_at=now_ms(),
            **extra,
        )
        self.add_note(note)
        return note

    def update_note(self, note_id, **changes):
        """
        Replaces a note with a copy carrying ``changes``.

        Returns:
            ReplaceEntityCommand | None: None when the note does not exist or
                nothing actually changed.
        """
        if "id" in changes:
            raise ValueError("a note's id cannot be changed")
        before = self.state.find_note(note_id)
        if before is None:
            return None
        after = replace(before, **changes)
        if after == before:
            return None
        return self.history.push(ReplaceEntityCommand("notes", before, after))

    def move_note(self, note_id, dx, dy, snap=False):
        """Applies the final offset of a drag to a note."""
        note = self.state.find_note(note_id)
        if note is None:
            return None
        x = snap_to_grid(note.x + dx, enabled=snap)
        y = snap_to_grid(note.y + dy, enabled=snap)
        return self.update_note(note_id, x=x, y=y)

    def toggle_concept(self, note_id):
        note = self.state.find_note(note_id)
        if note is None:
            return None
        return self.update_note(note_id, is_concept=not note.is_concept)

    def delete_note(self, note_id):
        command = DeleteEntityCommand.capture(self.state, "notes", note_id)
        if command is None:
            return None
        return self.history.push(command)

    # --- CONNECTIONS (undoable) ---

    def add_connection(self, from_note_id, to_note_id, connection_type=ConnectionType.RELATES, label=None):
        """
        Links two existing notes.

        Returns:
            Connection | None: The new connection, or None when an endpoint is
                missing or both ends are the same note.
        """
        connection_type = ConnectionType(connection_type)
        session = self.state
        if from_note_id == to_note_id:
            logger.warning("Refusing to link note %s to itself", from_note_id)
            return None
        if session.find_note(from_note_id) is None or session.find_note(to_note_id) is None:
            logger.warning("Refusing connection %s -> %s: missing note", from_note_id, to_note_id)
            return None

        connection = Connection(
            id=new_id("conn"),
            from_note_id=from_note_id,
            to_note_id=to_note_id,
            type=connection_type,
            created_at=now_ms(),
            label=label,
        )
        self.history.push(CreateEntityCommand("connections", connection))
        return connection

    def change_connection_type(self, connection_id, connection_type):
        before = self.state.find_connection(connection_id)
        if before is None:
            return None
        after = replace(before, type=ConnectionType(connection_type))
        if after == before:
            return None
        return self.history.push(ReplaceEntityCommand("connections", before, after))

    def delete_connection(self, connection_id):
        command = DeleteEntityCommand.capture(self.state, "connections", connection_id)
        if command is None:
            return None
        return self.history.push(command)

    # --- SESSION FIELDS (direct) ---

    def update_challenge(self, text):
        self.store.set(lambda s: s.with_changes(
            challenge=text,
            project_id=s.project_id or f"proj-{now_ms()}",
        ))

    def add_question(self, question):
        self.store.set(lambda s: s.with_changes(
            questions=s.questions + (replace(question, pinned=False),)
        ))

    def _update_question(self, question_id, change):
        def updater(s):
            if not any(q.id == question_id for q in s.questions):
                return s
            return s.with_changes(questions=tuple(
                change(q) if q.id == question_id else q for q in s.questions
            ))
        self.store.set(updater)

    def mark_question_answered(self, question_id):
        self._update_question(question_id, lambda q: replace(q, answered=True))

    def toggle_question_answered(self, question_id):
        self._update_question(question_id, lambda q: replace(q, answered=not q.answered))

    def toggle_question_pinned(self, question_id):
        self._update_question(question_id, lambda q: replace(q, pinned=not q.pinned))

    def add_concept(self, concept):
        self.store.set(lambda s: s.with_changes(concepts=s.concepts + (concept,)))

    def update_concept(self, concept_id, **changes):
        def updater(s):
            if not any(c.id == concept_id for c in s.concepts):
                return s
            return s.with_changes(concepts=tuple(
                replace(c, **changes) if c.id == concept_id else c for c in s.concepts
            ))
        self.store.set(updater)

    def add_evaluation(self, evaluation):
        self.store.set(lambda s: s.with_changes(evaluations=s.evaluations + (evaluation,)))

    def set_phase(self, phase):
        phase = Phase(phase)
        self.store.set(lambda s: s if s.phase is phase else s.with_changes(phase=phase))

    def advance_phase(self):
        self.set_phase(self.state.phase.next())

    def set_selected_concepts(self, concept_ids, token_allocation):
        self.store.set(lambda s: s.with_changes(
            selected_concept_ids=tuple(concept_ids),
            token_allocation=dict(token_allocation),
        ))

    # --- VIEWPORT ---

    def set_viewport(self, center_x, center_y, zoom):
        viewport = Viewport(center_x, center_y, clamp_zoom(zoom))
        self.store.set(lambda s: s if s.viewport == viewport else s.with_changes(viewport=viewport))

    def fit_to_content(self, canvas_width, canvas_height):
        """Centers and zooms the viewport so every note is visible."""
        viewport = fit_viewport(self.state.notes, canvas_width, canvas_height)
        self.set_viewport(viewport.center_x, viewport.center_y, viewport.zoom)
        return self.state.viewport

    # --- LIFECYCLE ---

    def reset_session(self):
        """Starts over with an empty session and no history."""
        self.store.reset(Session.create())
        self.history.clear()

    def load_example_session(self, example=None):
        """Replaces the canvas with the example session; history is cleared."""
        example = example if example is not None else build_example_session()
        created = now_ms()
        self.store.set(lambda s: replace(
            example,
            project_id=f"proj-{created}",
            created_at=created,
            is_example_session=True,
        ))
        self.history.clear()

    def clear_example_session_flag(self):
        self.store.set(lambda s: s.with_changes(is_example_session=False) if s.is_example_session else s)
