import pytest

from socratic_core import SessionStore
from socratic_session import SessionController
from socratic_types import (
    Concept, ConnectionType, Evaluation, Phase, Question, Viewport,
)


def test_create_note_uses_the_placement_engine(controller) -> None:
    first = controller.create_note("Exams overlap", 100, 100)
    second = controller.create_note("No quiet rooms", 100, 100)

    assert (first.x, first.y) == (-28, 0)
    assert (second.x, second.y) == (252, 0)
    assert [n.id for n in controller.state.notes] == [first.id, second.id]


def test_undo_feedback_names_the_edit(controller) -> None:
    messages = []
    controller.on_feedback(messages.append)
    note = controller.create_note("idea", 0, 0)

    controller.move_note(note.id, 30, 0)
    controller.undo()
    controller.redo()

    assert messages == ["Undid: Move note", "Redid: Move note"]


def test_move_note_can_snap_to_grid(controller) -> None:
    note = controller.create_note("idea", 128, 100)

    controller.move_note(note.id, 33, 9, snap=True)

    moved = controller.state.find_note(note.id)
    assert (moved.x, moved.y) == (40, 0)


def test_update_note_ignores_missing_and_unchanged(controller) -> None:
    note = controller.create_note("idea", 0, 0)
    depth = len(controller.history.undo_stack)

    assert controller.update_note("ghost", text="x") is None
    assert controller.update_note(note.id, text="idea") is None
    assert len(controller.history.undo_stack) == depth
    with pytest.raises(ValueError):
        controller.update_note(note.id, id="other")


def test_toggle_concept_is_undoable(controller) -> None:
    note = controller.create_note("idea", 0, 0)

    controller.toggle_concept(note.id)
    assert controller.state.concept_notes()[0].id == note.id

    controller.undo()
    assert controller.state.concept_notes() == ()


def test_connections_require_two_existing_notes(controller) -> None:
    a = controller.create_note("a", 0, 0)
    b = controller.create_note("b", 0, 0)

    assert controller.add_connection(a.id, a.id) is None
    assert controller.add_connection(a.id, "ghost") is None

    link = controller.add_connection(a.id, b.id, "supports")
    assert link.type is ConnectionType.SUPPORTS
    assert controller.state.connections == (link,)


def test_change_connection_type_and_delete(controller) -> None:
    a = controller.create_note("a", 0, 0)
    b = controller.create_note("b", 0, 0)
    link = controller.add_connection(a.id, b.id)

    command = controller.change_connection_type(link.id, ConnectionType.CONTRADICTS)
    assert command.label == "Update connection"
    assert controller.change_connection_type(link.id, ConnectionType.CONTRADICTS) is None

    controller.delete_connection(link.id)
    assert controller.state.connections == ()
    controller.undo()
    assert controller.state.find_connection(link.id).type is ConnectionType.CONTRADICTS


def test_deleting_a_note_leaves_its_links_for_undo(controller) -> None:
    a = controller.create_note("a", 0, 0)
    b = controller.create_note("b", 0, 0)
    c = controller.create_note("c", 0, 0)
    controller.add_connection(a.id, b.id)
    before = controller.state

    controller.delete_note(b.id)
    assert [n.id for n in controller.state.notes] == [a.id, c.id]
    assert len(controller.state.connections) == 1

    controller.undo()
    assert controller.state == before
    assert controller.delete_note("ghost") is None


def test_question_bookkeeping(controller) -> None:
    controller.add_question(Question("q-1", "Who is most affected?", pinned=True))

    assert controller.state.questions[0].pinned is False
    controller.toggle_question_pinned("q-1")
    controller.mark_question_answered("q-1")
    controller.toggle_question_answered("missing")

    question = controller.state.questions[0]
    assert question.pinned and question.answered
    assert not controller.can_undo


def test_concepts_evaluations_and_selection(controller) -> None:
    controller.add_concept(Concept("c-1", "Study buddy", ("note-1",)))
    controller.update_concept("c-1", description="Pairs students up")
    controller.add_evaluation(Evaluation("c-1", 72, ("Clear user",)))
    controller.set_selected_concepts(["c-1"], {"c-1": 5})

    state = controller.state
    assert state.concepts[0].description == "Pairs students up"
    assert state.evaluations[0].ai_score == 72
    assert state.evaluations[0].growth_tier.label == "Tree"
    assert state.selected_concept_ids == ("c-1",)
    assert state.token_allocation == {"c-1": 5}


def test_phases_advance_and_stop_at_final(controller) -> None:
    controller.update_challenge("How might we reduce exam stress?")
    controller.advance_phase()
    assert controller.state.phase is Phase.CANVAS

    controller.set_phase("final")
    controller.advance_phase()
    assert controller.state.phase is Phase.FINAL
    assert controller.state.challenge == "How might we reduce exam stress?"


def test_viewport_is_clamped_and_fit_to_content(controller) -> None:
    controller.set_viewport(5, 6, 10)
    assert controller.state.viewport == Viewport(5, 6, 2.0)

    controller.create_note("a", 128, 100)
    viewport = controller.fit_to_content(2000, 2000)
    assert (viewport.center_x, viewport.center_y) == (128, 100)


def test_example_session_and_reset_clear_history(controller) -> None:
    controller.create_note("scratch", 0, 0)

    controller.load_example_session()
    state = controller.state
    assert state.is_example_session
    assert state.project_id.startswith("proj-")
    assert len(state.notes) == 9
    assert not controller.can_undo

    controller.clear_example_session_flag()
    assert not controller.state.is_example_session

    controller.create_note("again", 0, 0)
    controller.reset_session()
    assert controller.state.notes == ()
    assert not controller.can_undo


def test_feedback_unsubscribe() -> None:
    controller = SessionController(SessionStore())
    messages = []
    unsubscribe = controller.on_feedback(messages.append)
    unsubscribe()
    controller.create_note("idea", 0, 0)
    controller.undo()

    assert messages == []
    assert controller.undo() is None
