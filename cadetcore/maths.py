"""Vector, rectangle and ray geometry used by the table physics."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Tuple

NO_HIT = 1000000000.0
"""Distance reported when a ray misses its target."""


@dataclass
class Vector2:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, value: float) -> "Vector2":
        return Vector2(self.x * value, self.y * value)


@dataclass
class Vector3(Vector2):
    z: float = 0.0


@dataclass
class Vector2i:
    x: int = 0
    y: int = 0


@dataclass
class Rectangle:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0


@dataclass
class Circle:
    center: Vector2 = field(default_factory=Vector2)
    radius_sq: float = 0.0


@dataclass
class Ray:
    origin: Vector2 = field(default_factory=Vector2)
    direction: Vector2 = field(default_factory=Vector2)
    max_distance: float = 0.0
    min_distance: float = 0.0
    time_now: float = 0.0
    time_delta: float = 0.0
    collision_mask: int = 0


@dataclass
class Line:
    perpendicular_c: Vector2 = field(default_factory=Vector2)
    direction: Vector2 = field(default_factory=Vector2)
    origin: Vector2 = field(default_factory=Vector2)
    end: Vector2 = field(default_factory=Vector2)
    min_coord: float = 0.0
    max_coord: float = 0.0
    ray_intersect: Vector2 = field(default_factory=Vector2)


@dataclass
class WallPoint:
    pt0: Vector2 = field(default_factory=Vector2)
    pt1: Vector2 = field(default_factory=Vector2)


@dataclass
class RampPlane:
    ball_collision_offset: Vector3 = field(default_factory=Vector3)
    v1: Vector2 = field(default_factory=Vector2)
    v2: Vector2 = field(default_factory=Vector2)
    v3: Vector2 = field(default_factory=Vector2)
    gravity_angle1: float = 0.0
    gravity_angle2: float = 0.0
    field_force: Vector2 = field(default_factory=Vector2)


class FlipperIntersect(enum.Enum):
    NONE = -1
    LINE_A = 0
    LINE_B = 1
    CIRCLE_BASE = 2
    CIRCLE_T1 = 3


class _Ball(Protocol):
    position: Vector2
    direction: Vector2
    speed: float


class _FlipperEdge(Protocol):
    line_a: Line
    line_b: Line
    circlebase: Circle
    circle_t1: Circle


def enclosing_box(rect1: Rectangle, rect2: Rectangle) -> Rectangle:
    """Return the smallest rectangle containing both rectangles."""
    x_pos, width = rect1.x, rect1.width
    if rect2.x < rect1.x:
        x_pos = rect2.x
        width += rect1.x - rect2.x

    y_pos, height = rect1.y, rect1.height
    if rect2.y < rect1.y:
        y_pos = rect2.y
        height += rect1.y - rect2.y

    x_end2 = rect2.x + rect2.width
    if x_end2 > x_pos + width:
        width = x_end2 - x_pos

    y_end2 = rect2.y + rect2.height
    if y_end2 > y_pos + height:
        height = y_end2 - y_pos

    return Rectangle(x_pos, y_pos, width, height)


def rectangle_clip(rect1: Rectangle, rect2: Rectangle) -> Optional[Rectangle]:
    """Return the intersection of two rectangles, or None when they do not overlap."""
    x_end2 = rect2.x + rect2.width
    if rect2.x >= rect1.x + rect1.width or rect1.x >= x_end2:
        return None

    y_end2 = rect2.y + rect2.height
    if rect2.y >= rect1.y + rect1.height or rect1.y >= y_end2:
        return None

    x_pos, width = rect1.x, rect1.width
    if rect1.x < rect2.x:
        x_pos = rect2.x
        width += rect1.x - rect2.x

    y_pos, height = rect1.y, rect1.height
    if rect1.y < rect2.y:
        y_pos = rect2.y
        height += rect1.y - rect2.y

    if x_pos + width > x_end2:
        width = x_end2 - x_pos
    if y_pos + height > y_end2:
        height = y_end2 - y_pos

    if width == 0 or height == 0:
        return None
    return Rectangle(x_pos, y_pos, width, height)


def ray_intersect_circle(ray: Ray, circle: Circle) -> float:
    """Distance from the ray origin to the first intersection with the circle."""
    to_center = vector_sub(circle.center, ray.origin)
    tca = dot_product(to_center, ray.direction)
    if tca < 0.0:
        return NO_HIT

    l_mag_sq = dot_product(to_center, to_center)
    thc_sq = circle.radius_sq - l_mag_sq + tca * tca

    # An origin inside the circle yields a negative distance.
    if l_mag_sq < circle.radius_sq:
        return tca - math.sqrt(thc_sq)

    if thc_sq < 0.0:
        return NO_HIT

    t0 = tca - math.sqrt(thc_sq)
    if t0 < 0.0 or t0 > ray.max_distance:
        return NO_HIT
    return t0


def normalize_2d(vec: Vector2) -> float:
    """Scale ``vec`` to unit length in place and return its former length."""
    mag = math.sqrt(vec.x * vec.x + vec.y * vec.y)
    if mag != 0.0:
        vec.x /= mag
        vec.y /= mag
    return mag


def line_init(x0: float, y0: float, x1: float, y1: float) -> Line:
    """Build a line segment from (x0, y0) to (x1, y1)."""
    direction = Vector2(x1 - x0, y1 - y0)
    normalize_2d(direction)
    # Clockwise perpendicular to the direction.
    perpendicular = Vector2(direction.y, -direction.x)

    line_start, line_end = x0, x1
    if abs(direction.x) < 0.000000001:
        direction.x = 0.0
        line_start, line_end = y0, y1

    return Line(
        perpendicular_c=perpendicular,
        direction=direction,
        origin=Vector2(x0, y0),
        end=Vector2(x1, y1),
        min_coord=min(line_start, line_end),
        max_coord=max(line_start, line_end),
    )


def ray_intersect_line(ray: Ray, line: Line) -> float:
    """Distance from the ray origin to the segment; stores the hit in ``line.ray_intersect``."""
    v1 = vector_sub(ray.origin, line.origin)
    v2 = line.direction
    v3 = Vector2(-ray.direction.y, ray.direction.x)

    v2_dot_v3 = dot_product(v2, v3)
    if v2_dot_v3 < 0.0:
        dist = cross(v2, v1) / v2_dot_v3
        if -ray.min_distance <= dist <= ray.max_distance:
            line.ray_intersect = Vector2(
                dist * ray.direction.x + ray.origin.x,
                dist * ray.direction.y + ray.origin.y,
            )
            test_point = line.ray_intersect.x if line.direction.x != 0.0 else line.ray_intersect.y
            if line.min_coord <= test_point <= line.max_coord:
                return dist
    return NO_HIT


def cross_3d(vec1: Vector3, vec2: Vector3) -> Vector3:
    """Cross product of two 3D vectors."""
    return Vector3(
        vec2.z * vec1.y - vec2.y * vec1.z,
        vec2.x * vec1.z - vec1.x * vec2.z,
        vec1.x * vec2.y - vec2.x * vec1.y,
    )


def cross(vec1: Vector2, vec2: Vector2) -> float:
    """Z component of the cross product of two 2D vectors."""
    return vec1.x * vec2.y - vec1.y * vec2.x


def magnitude(vec: Vector3) -> float:
    mag_sq = vec.x * vec.x + vec.y * vec.y + vec.z * vec.z
    return 0.0 if mag_sq == 0.0 else math.sqrt(mag_sq)


def vector_add(vec1: Vector2, vec2: Vector2) -> Vector2:
    return Vector2(vec1.x + vec2.x, vec1.y + vec2.y)


def vector_sub(vec1: Vector2, vec2: Vector2) -> Vector2:
    """Difference of two vectors; 3D when both operands are 3D."""
    if isinstance(vec1, Vector3) and isinstance(vec2, Vector3):
        return Vector3(vec1.x - vec2.x, vec1.y - vec2.y, vec1.z - vec2.z)
    return Vector2(vec1.x - vec2.x, vec1.y - vec2.y)


def vector_mul(vec: Vector2, val: float) -> Vector2:
    return Vector2(vec.x * val, vec.y * val)


def basic_collision(
    ball: _Ball,
    next_position: Vector2,
    direction: Vector2,
    elasticity: float,
    smoothness: float,
    threshold: float,
    boost: float,
) -> float:
    """Bounce ``ball`` off a surface with normal ``direction``; return the rebound speed."""
    ball.position = Vector2(next_position.x, next_position.y)

    rebound_proj = -dot_product(direction, ball.direction)
    if rebound_proj < 0:
        rebound_proj = -rebound_proj
    else:
        dx1 = rebound_proj * direction.x
        dy1 = rebound_proj * direction.y
        ball.direction = Vector2(
            (dx1 + ball.direction.x) * smoothness + dx1 * elasticity,
            (dy1 + ball.direction.y) * smoothness + dy1 * elasticity,
        )
        normalize_2d(ball.direction)

    rebound_speed = rebound_proj * ball.speed
    ball.speed -= (1.0 - elasticity) * rebound_speed

    if rebound_speed >= threshold:
        ball.direction = Vector2(
            ball.speed * ball.direction.x + direction.x * boost,
            ball.speed * ball.direction.y + direction.y * boost,
        )
        ball.speed = normalize_2d(ball.direction)
    return rebound_speed


def distance_squared(vec1: Vector2, vec2: Vector2) -> float:
    dx = vec1.x - vec2.x
    dy = vec1.y - vec2.y
    return dy * dy + dx * dx


def dot_product(vec1: Vector2, vec2: Vector2) -> float:
    return vec1.x * vec2.x + vec1.y * vec2.y


def distance(vec1: Vector2, vec2: Vector2) -> float:
    return math.sqrt(distance_squared(vec1, vec2))


def sin_cos(angle: float) -> Tuple[float, float]:
    return math.sin(angle), math.cos(angle)


def rotate_pt(point: Vector2, sin: float, cos: float, origin: Vector2) -> Vector2:
    """Rotate ``point`` around ``origin`` by the angle given as its sine and cosine."""
    x_offset = point.x - origin.x
    y_offset = point.y - origin.y
    return Vector2(
        x_offset * cos - y_offset * sin + origin.x,
        x_offset * sin + y_offset * cos + origin.y,
    )


def distance_to_flipper(flipper: _FlipperEdge, ray1: Ray) -> Tuple[float, Optional[Ray]]:
    """Distance to the nearest flipper feature and the collision ray there, if any."""
    dist = NO_HIT
    kind = FlipperIntersect.NONE
    candidates = (
        (FlipperIntersect.LINE_A, lambda: ray_intersect_line(ray1, flipper.line_a)),
        (FlipperIntersect.CIRCLE_BASE, lambda: ray_intersect_circle(ray1, flipper.circlebase)),
        (FlipperIntersect.CIRCLE_T1, lambda: ray_intersect_circle(ray1, flipper.circle_t1)),
        (FlipperIntersect.LINE_B, lambda: ray_intersect_line(ray1, flipper.line_b)),
    )
    for candidate_kind, measure in candidates:
        new_distance = measure()
        if new_distance < dist:
            dist = new_distance
            kind = candidate_kind

    if kind is FlipperIntersect.NONE:
        return dist, None
    if kind in (FlipperIntersect.LINE_A, FlipperIntersect.LINE_B):
        line = flipper.line_a if kind is FlipperIntersect.LINE_A else flipper.line_b
        return dist, Ray(
            origin=Vector2(line.ray_intersect.x, line.ray_intersect.y),
            direction=Vector2(line.perpendicular_c.x, line.perpendicular_c.y),
        )

    origin = Vector2(
        dist * ray1.direction.x + ray1.origin.x,
        dist * ray1.direction.y + ray1.origin.y,
    )
    circle = flipper.circlebase if kind is FlipperIntersect.CIRCLE_BASE else flipper.circle_t1
    direction = vector_sub(origin, circle.center)
    normalize_2d(direction)
    return dist, Ray(origin=origin, direction=direction)


def rotate_vector(vec: Vector2, angle: float) -> Vector2:
    """Rotate a vector, reproducing the table's quirk of using the new x for y.

    Only an angle of zero behaves as a true rotation.
    """
    s, c = math.sin(angle), math.cos(angle)
    new_x = c * vec.x - s * vec.y
    new_y = s * new_x + c * vec.y
    return Vector2(new_x, new_y)


def find_closest_edge(
    planes: Sequence[RampPlane], wall: WallPoint
) -> Optional[Tuple[Vector2, Vector2]]:
    """Return (line_end, line_start) of the plane edge closest to ``wall``, or None."""
    best = NO_HIT
    result: Optional[Tuple[Vector2, Vector2]] = None
    for plane in planes:
        corners = (plane.v1, plane.v2, plane.v3, plane.v1)
        for point1, point2 in zip(corners, corners[1:]):
            new_distance = distance(wall.pt0, point1) + distance(wall.pt1, point2)
            if new_distance < best:
                best = new_distance
                result = (Vector2(point1.x, point1.y), Vector2(point2.x, point2.y))
    return result