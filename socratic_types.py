"""
Core records of a design session: notes, connections, questions, concepts,
evaluations and the session aggregate that holds them.

Every record is a frozen dataclass. Mutation always produces a new record via
``dataclasses.replace``, so a snapshot captured by a command or a subscriber
can never change underneath it. ``to_dict``/``from_dict`` define the persisted
shape (snake_case keys, positions nested the same way as other canvas items).
"""
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple


class SessionFormatError(ValueError):
    """Raised when a persisted session cannot be turned back into records."""


def new_id(prefix: str) -> str:
    """Returns a fresh opaque identifier such as ``note-3f2a9c1b7d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def _optional(data, key, convert=None):
    value = data.get(key)
    if value is None or convert is None:
        return value
    return convert(value)


# --- CONNECTION TYPES ---

class ConnectionType(Enum):
    RELATES = "relates"
    CAUSES = "causes"
    SUPPORTS = "supports"
    CONTRADICTS = "contradicts"


@dataclass(frozen=True)
class ConnectionStyle:
    label: str
    emoji: str
    color: str


CONNECTION_STYLES = {
    ConnectionType.RELATES: ConnectionStyle("Relates to", "\U0001F517", "#60a5fa"),
    ConnectionType.CAUSES: ConnectionStyle("Leads to", "➡️", "#34d399"),
    ConnectionType.SUPPORTS: ConnectionStyle("Supports", "\U0001F4AA", "#a78bfa"),
    ConnectionType.CONTRADICTS: ConnectionStyle("Contradicts", "⚡", "#f87171"),
}


def connection_style(connection_type: ConnectionType) -> ConnectionStyle:
    """Returns the label, emoji and color a connection type is drawn with."""
    return CONNECTION_STYLES[connection_type]


# --- SESSION PHASES ---

class Phase(Enum):
    CHALLENGE = "challenge"
    CANVAS = "canvas"
    SELECT = "select"
    REFINE = "refine"
    FINAL = "final"

    @classmethod
    def _missing_(cls, value):
        # Sessions saved before the rename stored the first phase as "hmw".
        if value == "hmw":
            return cls.CHALLENGE
        return None

    def next(self) -> "Phase":
        members = list(Phase)
        index = members.index(self)
        return members[min(index + 1, len(members) - 1)]


class NoteContentType(Enum):
    TEXT = "text"
    DRAWING = "drawing"
    BOTH = "both"


# --- ATTACHMENTS ---

@dataclass(frozen=True)
class ImageAttachment:
    data_url: str
    name: str
    mime_type: str
    size: int
    caption: Optional[str] = None

    def to_dict(self):
        return {
            "data_url": self.data_url,
            "name": self.name,
            "mime_type": self.mime_type,
            "size": self.size,
            "caption": self.caption,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            data_url=str(data["data_url"]),
            name=str(data["name"]),
            mime_type=str(data["mime_type"]),
            size=int(data["size"]),
            caption=data.get("caption"),
        )


@dataclass(frozen=True)
class StrokePath:
    draw_mode: bool
    stroke_color: str
    stroke_width: float
    points: Tuple[Tuple[float, float], ...] = ()

    def to_dict(self):
        return {
            "draw_mode": self.draw_mode,
            "stroke_color": self.stroke_color,
            "stroke_width": self.stroke_width,
            "points": [{"x": x, "y": y} for x, y in self.points],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            draw_mode=bool(data["draw_mode"]),
            stroke_color=str(data["stroke_color"]),
            stroke_width=float(data["stroke_width"]),
            points=tuple((float(p["x"]), float(p["y"])) for p in data.get("points", [])),
        )


@dataclass(frozen=True)
class DrawingData:
    paths: Tuple[StrokePath, ...]
    width: object
    height: object
    data_url: Optional[str] = None

    def to_dict(self):
        return {
            "paths": [path.to_dict() for path in self.paths],
            "width": self.width,
            "height": self.height,
            "data_url": self.data_url,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            paths=tuple(StrokePath.from_dict(p) for p in data.get("paths", [])),
            width=data["width"],
            height=data["height"],
            data_url=data.get("data_url"),
        )


# --- CANVAS ENTITIES ---

@dataclass(frozen=True)
class Note:
    """
    A card on the canvas. ``x``/``y`` are the world-space top-left corner and
    are deliberately unbounded.
    """
    id: str
    text: str
    x: float
    y: float
    color: str
    is_concept: bool = False
    created_at: int = 0
    image: Optional[ImageAttachment] = None
    drawing: Optional[DrawingData] = None
    content_type: Optional[NoteContentType] = None
    details: Optional[str] = None
    question_id: Optional[str] = None
    source_question: Optional[str] = None
    is_new_note: bool = False
    target_audience: Optional[str] = None
    platform: Tuple[str, ...] = ()
    physical_format: Tuple[str, ...] = ()
    key_benefits: Optional[str] = None
    main_features: Optional[str] = None

    def center(self, width, height):
        return self.x + width / 2, self.y + height / 2

    def to_dict(self):
        return {
            "id": self.id,
            "text": self.text,
            "position": {"x": self.x, "y": self.y},
            "color": self.color,
            "is_concept": self.is_concept,
            "created_at": self.created_at,
            "image": self.image.to_dict() if self.image else None,
            "drawing": self.drawing.to_dict() if self.drawing else None,
            "content_type": self.content_type.value if self.content_type else None,
            "details": self.details,
            "question_id": self.question_id,
            "source_question": self.source_question,
            "is_new_note": self.is_new_note,
            "target_audience": self.target_audience,
            "platform": list(self.platform),
            "physical_format": list(self.physical_format),
            "key_benefits": self.key_benefits,
            "main_features": self.main_features,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            text=str(data["text"]),
            x=float(data["position"]["x"]),
            y=float(data["position"]["y"]),
            color=str(data["color"]),
            is_concept=bool(data.get("is_concept", False)),
            created_at=int(data.get("created_at", 0)),
            image=_optional(data, "image", ImageAttachment.from_dict),
            drawing=_optional(data, "drawing", DrawingData.from_dict),
            content_type=_optional(data, "content_type", NoteContentType),
            details=data.get("details"),
            question_id=data.get("question_id"),
            source_question=data.get("source_question"),
            is_new_note=bool(data.get("is_new_note", False)),
            target_audience=data.get("target_audience"),
            platform=tuple(data.get("platform") or ()),
            physical_format=tuple(data.get("physical_format") or ()),
            key_benefits=data.get("key_benefits"),
            main_features=data.get("main_features"),
        )


@dataclass(frozen=True)
class Connection:
    """A directed, typed link drawn from ``from_note_id`` to ``to_note_id``."""
    id: str
    from_note_id: str
    to_note_id: str
    type: ConnectionType = ConnectionType.RELATES
    created_at: int = 0
    label: Optional[str] = None

    def to_dict(self):
        return {
            "id": self.id,
            "from_note_id": self.from_note_id,
            "to_note_id": self.to_note_id,
            "type": self.type.value,
            "created_at": self.created_at,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            from_note_id=str(data["from_note_id"]),
            to_note_id=str(data["to_note_id"]),
            type=ConnectionType(data["type"]),
            created_at=int(data.get("created_at", 0)),
            label=data.get("label"),
        )


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    from_ai: bool = True
    answered: bool = False
    timestamp: int = 0
    pinned: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "text": self.text,
            "from_ai": self.from_ai,
            "answered": self.answered,
            "timestamp": self.timestamp,
            "pinned": self.pinned,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            text=str(data["text"]),
            from_ai=bool(data.get("from_ai", True)),
            answered=bool(data.get("answered", False)),
            timestamp=int(data.get("timestamp", 0)),
            pinned=bool(data.get("pinned", False)),
        )


@dataclass(frozen=True)
class Concept:
    id: str
    title: str
    note_ids: Tuple[str, ...] = ()
    description: str = ""
    created_at: int = 0

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "note_ids": list(self.note_ids),
            "description": self.description,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            note_ids=tuple(str(i) for i in data.get("note_ids", [])),
            description=str(data.get("description", "")),
            created_at=int(data.get("created_at", 0)),
        )


@dataclass(frozen=True)
class Evaluation:
    """
    Feedback on one concept. ``ai_score`` is on a 0-100 scale, the student's
    own ``student_score`` on the 1-5 self-evaluation scale.
    """
    concept_id: str
    ai_score: float
    ai_reasons: Tuple[str, ...] = ()
    student_score: Optional[float] = None
    student_notes: Optional[str] = None

    @property
    def growth_tier(self) -> "GrowthTierInfo":
        return score_to_growth_tier(self.ai_score)

    @property
    def student_growth_tier(self) -> Optional["GrowthTierInfo"]:
        if self.student_score is None:
            return None
        return criteria_score_to_growth_tier(self.student_score)

    def to_dict(self):
        return {
            "concept_id": self.concept_id,
            "ai_score": self.ai_score,
            "ai_reasons": list(self.ai_reasons),
            "student_score": self.student_score,
            "student_notes": self.student_notes,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            concept_id=str(data["concept_id"]),
            ai_score=float(data["ai_score"]),
            ai_reasons=tuple(str(r) for r in data.get("ai_reasons", [])),
            student_score=_optional(data, "student_score", float),
            student_notes=data.get("student_notes"),
        )


@dataclass(frozen=True)
class Viewport:
    """World-space center of the visible area and its zoom factor."""
    center_x: float = 0.0
    center_y: float = 0.0
    zoom: float = 1.0

    def to_dict(self):
        return {"center_x": self.center_x, "center_y": self.center_y, "zoom": self.zoom}

    @classmethod
    def from_dict(cls, data):
        return cls(
            center_x=float(data["center_x"]),
            center_y=float(data["center_y"]),
            zoom=float(data["zoom"]),
        )


# --- SESSION AGGREGATE ---

@dataclass(frozen=True)
class Session:
    """
    The full serializable state of one design exercise.

    Collections are tuples; ``token_allocation`` is a plain dict that is only
    ever replaced, never mutated in place.
    """
    project_id: str = ""
    challenge: str = ""
    notes: Tuple[Note, ...] = ()
    connections: Tuple[Connection, ...] = ()
    questions: Tuple[Question, ...] = ()
    concepts: Tuple[Concept, ...] = ()
    evaluations: Tuple[Evaluation, ...] = ()
    phase: Phase = Phase.CHALLENGE
    selected_concept_ids: Tuple[str, ...] = ()
    token_allocation: dict = field(default_factory=dict)
    viewport: Viewport = field(default_factory=Viewport)
    created_at: int = 0
    is_example_session: bool = False

    @classmethod
    def create(cls):
        """Builds the default empty session with a fresh project id."""
        created = now_ms()
        return cls(project_id=f"proj-{created}", created_at=created)

    def find_note(self, note_id) -> Optional[Note]:
        return next((n for n in self.notes if n.id == note_id), None)

    def find_connection(self, connection_id) -> Optional[Connection]:
        return next((c for c in self.connections if c.id == connection_id), None)

    def concept_notes(self):
        return tuple(n for n in self.notes if n.is_concept)

    def with_changes(self, **changes):
        return replace(self, **changes)

    def to_dict(self):
        return {
            "project_id": self.project_id,
            "challenge": self.challenge,
            "notes": [n.to_dict() for n in self.notes],
            "connections": [c.to_dict() for c in self.connections],
            "questions": [q.to_dict() for q in self.questions],
            "concepts": [c.to_dict() for c in self.concepts],
            "evaluations": [e.to_dict() for e in self.evaluations],
            "phase": self.phase.value,
            "selected_concept_ids": list(self.selected_concept_ids),
            "token_allocation": dict(self.token_allocation),
            "viewport": self.viewport.to_dict(),
            "created_at": self.created_at,
            "is_example_session": self.is_example_session,
        }

    @classmethod
    def from_dict(cls, data):
        """
        Rebuilds a session from its persisted dictionary.

        Raises:
            SessionFormatError: If a required key is missing or a value has the
                wrong shape.
        """
        if not isinstance(data, dict):
            raise SessionFormatError(f"expected an object, got {type(data).__name__}")
        try:
            viewport = data.get("viewport")
            return cls(
                project_id=str(data.get("project_id", "")),
                challenge=str(data.get("challenge", "")),
                notes=tuple(Note.from_dict(n) for n in data.get("notes", [])),
                connections=tuple(Connection.from_dict(c) for c in data.get("connections", [])),
                questions=tuple(Question.from_dict(q) for q in data.get("questions", [])),
                concepts=tuple(Concept.from_dict(c) for c in data.get("concepts", [])),
                evaluations=tuple(Evaluation.from_dict(e) for e in data.get("evaluations", [])),
                phase=Phase(data.get("phase", Phase.CHALLENGE.value)),
                selected_concept_ids=tuple(str(i) for i in data.get("selected_concept_ids", [])),
                token_allocation={str(k): v for k, v in dict(data.get("token_allocation") or {}).items()},
                viewport=Viewport.from_dict(viewport) if viewport else Viewport(),
                created_at=int(data.get("created_at", 0)),
                is_example_session=bool(data.get("is_example_session", False)),
            )
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as exc:
            raise SessionFormatError(f"malformed session data: {exc!r}") from exc


# --- EVALUATION FEEDBACK ---

class GrowthTier(Enum):
    SEED = "seed"
    SPROUT = "sprout"
    TREE = "tree"
    FOREST = "forest"


@dataclass(frozen=True)
class GrowthTierInfo:
    tier: GrowthTier
    emoji: str
    label: str
    description: str
    color: str
    encouragement: str


GROWTH_TIERS = {
    GrowthTier.SEED: GrowthTierInfo(
        GrowthTier.SEED, "\U0001F331", "Seed", "Needs more detail", "#a3e635",
        "Your idea needs more detail to fully evaluate. Try adding specifics "
        "about how it works or who it helps!",
    ),
    GrowthTier.SPROUT: GrowthTierInfo(
        GrowthTier.SPROUT, "\U0001F33F", "Sprout", "On the right track", "#4ade80",
        "You're on the right track! A bit more thought will strengthen your concept.",
    ),
    GrowthTier.TREE: GrowthTierInfo(
        GrowthTier.TREE, "\U0001F333", "Tree", "Well-developed", "#2dd4bf",
        "Solid work! Your concept shows clear thinking and could move forward confidently.",
    ),
    GrowthTier.FOREST: GrowthTierInfo(
        GrowthTier.FOREST, "\U0001F332", "Forest", "Ready to present", "#61ABC4",
        "Excellent! Your concept is well-developed and ready to present!",
    ),
}


def score_to_growth_tier(score: float) -> GrowthTierInfo:
    """Maps a 0-100 evaluation score to the tier shown to the student."""
    if score >= 81:
        return GROWTH_TIERS[GrowthTier.FOREST]
    if score >= 61:
        return GROWTH_TIERS[GrowthTier.TREE]
    if score >= 41:
        return GROWTH_TIERS[GrowthTier.SPROUT]
    return GROWTH_TIERS[GrowthTier.SEED]


def criteria_score_to_growth_tier(score: float) -> GrowthTierInfo:
    """Maps a 1-5 self-evaluation criterion score to a tier."""
    if score >= 5:
        return GROWTH_TIERS[GrowthTier.FOREST]
    if score >= 4:
        return GROWTH_TIERS[GrowthTier.TREE]
    if score >= 3:
        return GROWTH_TIERS[GrowthTier.SPROUT]
    return GROWTH_TIERS[GrowthTier.SEED]

