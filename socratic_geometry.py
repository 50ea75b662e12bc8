"""
Curve geometry for connections between notes.

Every connection is a quadratic Bezier whose control point is pushed off the
straight line between its endpoints, so links running between the same area
of the canvas stay distinguishable. The functions here are pure: the renderer,
the link preview and hit-testing all derive their shapes from them.
"""
import math
from typing import NamedTuple

CURVE_FACTOR = 0.2
MAX_CURVE_OFFSET = 80
ARROW_SIZE = 12
ARROW_ANGLE = 0.5  # radians, roughly 30 degrees
ARROW_PULLBACK = 5
HIT_STROKE_WIDTH = 20

LABEL_BADGE_WIDTH = 80
LABEL_BADGE_HEIGHT = 28
DELETE_OFFSET = 45
DELETE_RADIUS = 12


class Point(NamedTuple):
    x: float
    y: float


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float

    def contains(self, px, py) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


class CurvePath(NamedTuple):
    """A quadratic Bezier from ``start`` to ``end`` bent through ``control``."""
    start: Point
    control: Point
    end: Point

    def point_at(self, t: float) -> Point:
        u = 1 - t
        return Point(
            u * u * self.start.x + 2 * u * t * self.control.x + t * t * self.end.x,
            u * u * self.start.y + 2 * u * t * self.control.y + t * t * self.end.y,
        )

    def tangent_at(self, t: float) -> Point:
        # Derivative of the quadratic Bezier.
        return Point(
            2 * (1 - t) * (self.control.x - self.start.x) + 2 * t * (self.end.x - self.control.x),
            2 * (1 - t) * (self.control.y - self.start.y) + 2 * t * (self.end.y - self.control.y),
        )

    def to_svg(self) -> str:
        return (
            f"M {self.start.x} {self.start.y} "
            f"Q {self.control.x} {self.control.y} {self.end.x} {self.end.y}"
        )


class ArrowHead(NamedTuple):
    """A three point chevron; ``tip`` sits just short of the curve's end."""
    left: Point
    tip: Point
    right: Point

    def to_svg(self) -> str:
        return (
            f"M {self.left.x} {self.left.y} "
            f"L {self.tip.x} {self.tip.y} "
            f"L {self.right.x} {self.right.y}"
        )


def curve_offset(distance: float) -> float:
    """How far the control point is pushed off the straight line."""
    return min(distance * CURVE_FACTOR, MAX_CURVE_OFFSET)


def curve_control_point(from_x, from_y, to_x, to_y) -> Point:
    """
    Computes the control point of the connection curve.

    The midpoint of the two endpoints is offset along ``(-dy, dx) / distance``,
    always the same rotational sense, so a given pair of endpoints always
    bends the same way. Coincident endpoints yield the midpoint itself.

    Args:
        from_x (float): X coordinate of the start point.
        from_y (float): Y coordinate of the start point.
        to_x (float): X coordinate of the end point.
        to_y (float): Y coordinate of the end point.

    Returns:
        Point: The control point.
    """
    dx = to_x - from_x
    dy = to_y - from_y
    distance = math.hypot(dx, dy)
    mid_x = (from_x + to_x) / 2
    mid_y = (from_y + to_y) / 2
    if distance == 0:
        return Point(mid_x, mid_y)

    offset = curve_offset(distance)
    perp_x = (-dy / distance) * offset
    perp_y = (dx / distance) * offset
    return Point(mid_x + perp_x, mid_y + perp_y)


def curve_path(from_x, from_y, to_x, to_y) -> CurvePath:
    """Returns the full curve description between two points."""
    return CurvePath(
        Point(from_x, from_y),
        curve_control_point(from_x, from_y, to_x, to_y),
        Point(to_x, to_y),
    )


def arrow_head(from_x, from_y, to_x, to_y) -> ArrowHead:
    """
    Builds the arrowhead at the "to" end of a connection.

    The direction comes from the curve's tangent at t=1, ``2 * (end - control)``.
    The tip is pulled back along that tangent so it does not overlap the end
    point, and each wing is ``ARROW_SIZE`` long at ``ARROW_ANGLE`` either side.

    Returns:
        ArrowHead: The left wing, tip and right wing points.
    """
    control = curve_control_point(from_x, from_y, to_x, to_y)
    tangent_x = 2 * (to_x - control.x)
    tangent_y = 2 * (to_y - control.y)
    tangent_len = math.hypot(tangent_x, tangent_y)
    if tangent_len == 0:
        nx, ny = 1.0, 0.0
    else:
        nx = tangent_x / tangent_len
        ny = tangent_y / tangent_len

    tip_x = to_x - nx * ARROW_PULLBACK
    tip_y = to_y - ny * ARROW_PULLBACK

    cos_a = math.cos(ARROW_ANGLE)
    sin_a = math.sin(ARROW_ANGLE)
    left = Point(
        tip_x - ARROW_SIZE * (nx * cos_a - ny * sin_a),
        tip_y - ARROW_SIZE * (ny * cos_a + nx * sin_a),
    )
    right = Point(
        tip_x - ARROW_SIZE * (nx * cos_a + ny * sin_a),
        tip_y - ARROW_SIZE * (ny * cos_a - nx * sin_a),
    )
    return ArrowHead(left, Point(tip_x, tip_y), right)


def label_position(from_x, from_y, to_x, to_y) -> Point:
    """The point halfway along the curve, where the type badge is anchored."""
    return curve_path(from_x, from_y, to_x, to_y).point_at(0.5)


def label_badge_rect(label: Point) -> Rect:
    return Rect(
        label.x - LABEL_BADGE_WIDTH / 2,
        label.y - LABEL_BADGE_HEIGHT / 2,
        LABEL_BADGE_WIDTH,
        LABEL_BADGE_HEIGHT,
    )


def delete_anchor(label: Point) -> Point:
    """Center of the delete affordance, just right of the label badge."""
    return Point(label.x + DELETE_OFFSET, label.y)


def distance_to_curve(curve: CurvePath, px, py, samples=32) -> float:
    """
    Approximates the shortest distance from a point to the curve by sampling
    it as a polyline.
    """
    best = math.inf
    previous = curve.point_at(0.0)
    for step in range(1, samples + 1):
        current = curve.point_at(step / samples)
        best = min(best, _distance_to_segment(px, py, previous, current))
        previous = current
    return best


def hits_curve(curve: CurvePath, px, py, stroke_width=HIT_STROKE_WIDTH) -> bool:
    """True when the point falls on the wide invisible hit stroke of the curve."""
    return distance_to_curve(curve, px, py) <= stroke_width / 2


def _distance_to_segment(px, py, p1, p2):
    # Standard point-to-line-segment distance.
    l2 = (p2.x - p1.x) ** 2 + (p2.y - p1.y) ** 2
    if l2 == 0:
        return math.hypot(px - p1.x, py - p1.y)
    t = ((px - p1.x) * (p2.x - p1.x) + (py - p1.y) * (p2.y - p1.y)) / l2
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (p1.x + t * (p2.x - p1.x)), py - (p1.y + t * (p2.y - p1.y)))
