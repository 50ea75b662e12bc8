# Sample session for the "try with an example" entry point.
from socratic_types import Note, Phase, Question, Session, now_ms


def build_example_session() -> Session:
    """
    Returns a populated canvas about exam stress, timestamped relative to now
    so the notes read as freshly written.
    """
    now = now_ms()

    def note(note_id, text, x, y, color, age, is_concept=False, details=None):
        return Note(
            id=note_id, text=text, x=x, y=y, color=color,
            is_concept=is_concept, created_at=now - age, details=details,
        )

    notes = (
        note("note-1", "Students often feel overwhelmed with multiple exams happening at once",
             120, 100, "#fef3c7", 10000),
        note("note-2", "Study Planner with Pomodoro Timer", 450, 120, "#bfdbfe", 9000,
             is_concept=True,
             details="Problem: Students struggle to break down large amounts of study material "
                     "into manageable sessions, leading to cramming and burnout.\n\n"
                     "Solution: An app that uses 25-minute focused sessions with short breaks "
                     "and schedules study sessions around exam dates."),
        note("note-3", "Peer support groups struggle to coordinate meeting times",
             150, 320, "#fecaca", 8000),
        note("note-4", "Virtual Study Rooms with Accountability Partners", 780, 140, "#bbf7d0", 7000,
             is_concept=True,
             details="Problem: Students studying alone lose motivation and feel isolated.\n\n"
                     "Solution: Match students studying similar subjects into virtual study "
                     "rooms with shared schedules and mutual check-ins."),
        note("note-5", "Students don't know effective study techniques for different subjects",
             140, 520, "#fef3c7", 6000),
        note("note-6", "Mindfulness breaks are often forgotten during intense study sessions",
             480, 360, "#dcfce7", 5000),
        note("note-7", "Mindful Study Break App", 800, 380, "#dbeafe", 4000,
             is_concept=True,
             details="Problem: Students forget to take breaks, building up fatigue and stress.\n\n"
                     "Solution: Prompt short guided mindfulness breaks from the study timer."),
        note("note-8", "Library spaces are often too crowded during exam season",
             160, 720, "#bfdbfe", 3000),
        note("note-9", "Students lose track of their materials across different courses",
             520, 560, "#bbf7d0", 2000),
    )

    questions = (
        Question("q-1", "What are the main challenges college students face during exam periods?",
                 from_ai=True, answered=True, timestamp=now - 11000),
        Question("q-2", "What tools or apps do students currently use to manage exam stress?",
                 from_ai=True, answered=True, timestamp=now - 10500),
        Question("q-3", "What would make students feel more in control during exam season?",
                 from_ai=True, answered=True, timestamp=now - 9500),
        Question("q-4", "How do students currently connect with peers for study support?",
                 from_ai=True, answered=False, timestamp=now - 8500),
    )

    return Session(
        challenge="How might we help college students manage stress during exam periods?",
        phase=Phase.CANVAS,
        notes=notes,
        questions=questions,
    )
