"""
Collision-free placement of new notes, plus the small layout helpers the
canvas uses around it (grid snapping, alignment guides, fit-to-content).

``find_free_position`` is deterministic: the same notes and the same preferred
point always produce the same position.
"""
import math
from typing import NamedTuple, Optional, Sequence

from socratic_config import (
    ALIGNMENT_THRESHOLD, CLUSTER_DISTANCE, FIT_MARGIN, GRID_SIZE,
    MAX_PLACEMENT_ATTEMPTS, MAX_ZOOM, MIN_ZOOM, NOTE_HEIGHT, NOTE_PADDING,
    NOTE_WIDTH,
)
from socratic_geometry import Point, Rect
from socratic_types import Viewport

EPSILON = 1e-6


class Bounds(NamedTuple):
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self):
        return self.max_x - self.min_x

    @property
    def height(self):
        return self.max_y - self.min_y

    @property
    def center(self):
        return Point((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)


class AlignmentGuides(NamedTuple):
    vertical: tuple
    horizontal: tuple
    snap_x: Optional[float]
    snap_y: Optional[float]


def rects_overlap(ax, ay, bx, by, width, height, padding) -> bool:
    """
    Checks whether a candidate rectangle at (ax, ay), grown by ``padding`` on
    every side, overlaps an existing rectangle of the same size at (bx, by).

    Rectangles that merely touch do not overlap.
    """
    separated = (
        ax + width + padding <= bx + EPSILON
        or ax - padding >= bx + width - EPSILON
        or ay + height + padding <= by + EPSILON
        or ay - padding >= by + height - EPSILON
    )
    return not separated


def collides(x, y, notes, width=NOTE_WIDTH, height=NOTE_HEIGHT, padding=NOTE_PADDING) -> bool:
    """Checks if a note placed at (x, y) would overlap any existing note."""
    for note in notes:
        if rects_overlap(x, y, note.x, note.y, width, height, padding):
            return True
    return False


def content_bounds(notes, width=NOTE_WIDTH, height=NOTE_HEIGHT) -> Optional[Bounds]:
    """Returns the bounding box of every note, or None for an empty canvas."""
    if not notes:
        return None
    return Bounds(
        min(n.x for n in notes),
        min(n.y for n in notes),
        max(n.x for n in notes) + width,
        max(n.y for n in notes) + height,
    )


def _axis_order(reach):
    # Nearest-to-axis first: 0, -1, +1, -2, +2 ...
    yield 0
    for step in range(1, reach + 1):
        yield -step
        yield step


def ring_cells(radius):
    """
    Yields the (column, row) grid cells on the perimeter of a square ring in
    search order: the right edge, the left edge, then the top and bottom rows
    without the corners the edges already covered.
    """
    for row in _axis_order(radius):
        yield radius, row
    for row in _axis_order(radius):
        yield -radius, row
    for column in _axis_order(radius - 1):
        yield column, -radius
        yield column, radius


def find_free_position(existing_notes: Sequence, preferred_x, preferred_y,
                       note_width=NOTE_WIDTH, note_height=NOTE_HEIGHT,
                       max_attempts=MAX_PLACEMENT_ATTEMPTS, padding=NOTE_PADDING) -> Point:
    """
    Finds an unoccupied position for a new note.

    The preferred point is where the new note's center should go. When it is
    more than ``CLUSTER_DISTANCE`` from the centroid of the existing notes the
    search starts at the centroid instead, keeping new notes near the cluster.
    Grid cells (note size plus padding) are then tried ring by ring around the
    origin. ``max_attempts`` bounds the number of collision tests, the origin
    included; once it is spent the note goes right of the rightmost note,
    level with the topmost one, which can never overlap anything.

    Args:
        existing_notes (Sequence[Note]): Notes already on the canvas.
        preferred_x (float): Desired center X in world space.
        preferred_y (float): Desired center Y in world space.
        note_width (float): Width of every note.
        note_height (float): Height of every note.
        max_attempts (int): Upper bound on collision tests.
        padding (float): Minimum gap kept around the new note.

    Returns:
        Point: The top-left corner for the new note.
    """
    half_w = note_width / 2
    half_h = note_height / 2
    if not existing_notes:
        return Point(preferred_x - half_w, preferred_y - half_h)

    count = len(existing_notes)
    centroid_x = sum(n.x + half_w for n in existing_notes) / count
    centroid_y = sum(n.y + half_h for n in existing_notes) / count

    origin_cx, origin_cy = preferred_x, preferred_y
    if math.hypot(preferred_x - centroid_x, preferred_y - centroid_y) > CLUSTER_DISTANCE:
        origin_cx, origin_cy = centroid_x, centroid_y
    origin_x = origin_cx - half_w
    origin_y = origin_cy - half_h

    def is_free(x, y):
        return not collides(x, y, existing_notes, note_width, note_height, padding)

    remaining = max_attempts
    if remaining > 0:
        remaining -= 1
        if is_free(origin_x, origin_y):
            return Point(origin_x, origin_y)

    cell_w = note_width + padding
    cell_h = note_height + padding
    radius = 1
    while remaining > 0:
        for column, row in ring_cells(radius):
            if remaining <= 0:
                break
            remaining -= 1
            x = origin_x + column * cell_w
            y = origin_y + row * cell_h
            if is_free(x, y):
                return Point(x, y)
        radius += 1

    bounds = content_bounds(existing_notes, note_width, note_height)
    return Point(bounds.max_x + padding, bounds.min_y)


# --- LAYOUT HELPERS ---

def snap_to_grid(value, grid_size=GRID_SIZE, enabled=True):
    """Rounds a coordinate to the nearest grid line when snapping is on."""
    if not enabled:
        return value
    return round(value / grid_size) * grid_size


def note_rect(note, width=NOTE_WIDTH, height=NOTE_HEIGHT) -> Rect:
    return Rect(note.x, note.y, width, height)


def alignment_guides(moving: Rect, others: Sequence[Rect], threshold=ALIGNMENT_THRESHOLD) -> AlignmentGuides:
    """
    Collects the guide lines a dragged note lines up with.

    Left edges, right edges and centers are compared on each axis; the first
    match on an axis decides where the dragged note snaps to.

    Args:
        moving (Rect): The rectangle being dragged.
        others (Sequence[Rect]): Every other note rectangle.
        threshold (float): Maximum distance counted as aligned.

    Returns:
        AlignmentGuides: Unique guide coordinates and the snap position per axis.
    """
    vertical = []
    horizontal = []
    snap_x = None
    snap_y = None

    moving_right = moving.x + moving.width
    moving_bottom = moving.y + moving.height
    moving_cx = moving.x + moving.width / 2
    moving_cy = moving.y + moving.height / 2

    for other in others:
        right = other.x + other.width
        bottom = other.y + other.height
        cx = other.x + other.width / 2
        cy = other.y + other.height / 2

        if abs(moving.x - other.x) < threshold:
            vertical.append(other.x)
            if snap_x is None:
                snap_x = other.x
        if abs(moving_right - right) < threshold:
            vertical.append(right)
            if snap_x is None:
                snap_x = right - moving.width
        if abs(moving_cx - cx) < threshold:
            vertical.append(cx)
            if snap_x is None:
                snap_x = cx - moving.width / 2

        if abs(moving.y - other.y) < threshold:
            horizontal.append(other.y)
            if snap_y is None:
                snap_y = other.y
        if abs(moving_bottom - bottom) < threshold:
            horizontal.append(bottom)
            if snap_y is None:
                snap_y = bottom - moving.height
        if abs(moving_cy - cy) < threshold:
            horizontal.append(cy)
            if snap_y is None:
                snap_y = cy - moving.height / 2

    return AlignmentGuides(
        tuple(dict.fromkeys(vertical)),
        tuple(dict.fromkeys(horizontal)),
        snap_x,
        snap_y,
    )


def clamp_zoom(zoom, min_zoom=MIN_ZOOM, max_zoom=MAX_ZOOM):
    return max(min_zoom, min(max_zoom, zoom))


def fit_viewport(notes, canvas_width, canvas_height, margin=FIT_MARGIN,
                 min_zoom=MIN_ZOOM, max_zoom=MAX_ZOOM) -> Viewport:
    """
    Computes the viewport that shows every note, used by "fit to content".

    Returns the default viewport when the canvas is empty.
    """
    bounds = content_bounds(notes)
    if bounds is None or canvas_width <= 0 or canvas_height <= 0:
        return Viewport()

    content_w = bounds.width + margin * 2
    content_h = bounds.height + margin * 2
    zoom = min(canvas_width / content_w, canvas_height / content_h)
    center = bounds.center
    return Viewport(center.x, center.y, clamp_zoom(zoom, min_zoom, max_zoom))
