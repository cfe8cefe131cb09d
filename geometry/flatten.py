"""
Entity flattening and cut-length measurement.

entity_to_polyline_points() approximates any normalized entity by a list of
(x, y) points, which is what the layout renderer draws. Arcs, circles and
ellipses are sampled so that the chord deviation (sagitta) stays below
`max_sagitta` drawing units.

calculate_cut_length() measures the laser path of the closed contours in a
drawing, in meters. It follows the quoting rules used for pricing:
  - polylines: segment lengths, plus the closing segment when flagged closed
  - circles: 2*pi*r
  - ellipses: Ramanujan's perimeter approximation, scaled by the swept
    angle when the ellipse is partial
  - splines: control polygon length
"""

import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .contours import is_contour_closed
from .entities import ARC, CIRCLE, ELLIPSE, LINE, SPLINE, Entity, Point

TWO_PI = 2 * math.pi


def _segment_count(radius: float, sweep: float, max_sagitta: float, minimum: int) -> int:
    """Number of chords needed so no chord deviates more than max_sagitta from the arc"""
    if radius <= max_sagitta or max_sagitta <= 0:
        return minimum
    # half-chord for a given sagitta: sqrt(2*r*s - s^2)
    chord = 2 * math.sqrt(2 * radius * max_sagitta - max_sagitta * max_sagitta)
    return max(minimum, int(math.ceil(abs(sweep) * radius / chord)))


def _sample_ellipse(center: Point, a: float, b: float, start: float, end: float,
                    count: int) -> List[Tuple[float, float]]:
    params = np.linspace(start, end, count + 1)
    xs = center.x + a * np.cos(params)
    ys = center.y + b * np.sin(params)
    return [(float(x), float(y)) for x, y in zip(xs, ys)]


def entity_to_polyline_points(entity: Entity, max_sagitta: float = 0.1) -> List[Tuple[float, float]]:
    """
    Convert an entity into a list of (x, y) points approximating its geometry.

    Closed shapes repeat their first point at the end. Entities without usable
    data produce an empty list.
    """
    if entity.type == LINE:
        return [(v.x, v.y) for v in (entity.vertices or [])[:2]]

    if entity.is_polyline:
        points = [(v.x, v.y) for v in (entity.vertices or [])]
        if points and (entity.shape or entity.closed) and points[0] != points[-1]:
            points.append(points[0])
        return points

    if entity.type == CIRCLE:
        if entity.center is None or not entity.radius:
            return []
        count = _segment_count(entity.radius, TWO_PI, max_sagitta, 16)
        return _sample_ellipse(entity.center, entity.radius, entity.radius, 0.0, TWO_PI, count)

    if entity.type == ARC:
        if entity.center is None or not entity.radius:
            return []
        start = entity.start_angle or 0.0
        end = entity.end_angle if entity.end_angle is not None else TWO_PI
        if end <= start:
            end += TWO_PI
        count = _segment_count(entity.radius, end - start, max_sagitta, 8)
        return _sample_ellipse(entity.center, entity.radius, entity.radius, start, end, count)

    if entity.type == ELLIPSE:
        axes = entity.semi_axes()
        if entity.center is None or axes is None:
            return []
        a, b = axes
        start, end = _ellipse_params(entity)
        count = _segment_count(max(a, b), end - start, max_sagitta, 16)
        # the ellipse is sampled in its own frame, then turned onto its major axis
        rotation = math.atan2(entity.major_axis_end_point.y, entity.major_axis_end_point.x)
        local = _sample_ellipse(Point(0.0, 0.0), a, b, start, end, count)
        cos_r, sin_r = math.cos(rotation), math.sin(rotation)
        return [(entity.center.x + x * cos_r - y * sin_r,
                 entity.center.y + x * sin_r + y * cos_r) for x, y in local]

    if entity.type == SPLINE:
        points = [(p.x, p.y) for p in (entity.control_points or [])]
        if points and entity.closed and points[0] != points[-1]:
            points.append(points[0])
        return points

    return []


def _ellipse_params(entity: Entity) -> Tuple[float, float]:
    if entity.start_angle is None or entity.end_angle is None:
        return 0.0, TWO_PI
    start, end = entity.start_angle, entity.end_angle
    if end <= start:
        end += TWO_PI
    return start, end


def _path_length(points: Sequence[Point]) -> float:
    return sum(points[i].distance_to(points[i + 1]) for i in range(len(points) - 1))


def ramanujan_perimeter(a: float, b: float) -> float:
    """Ramanujan's second approximation of an ellipse perimeter"""
    if a + b == 0:
        return 0.0
    h = (a - b) ** 2 / (a + b) ** 2
    return math.pi * (a + b) * (1 + (3 * h) / (10 + math.sqrt(4 - 3 * h)))


def entity_cut_length(entity: Entity) -> float:
    """Cut path length of a single entity in drawing units"""
    if entity.type == LINE:
        vertices = entity.vertices or []
        return vertices[0].distance_to(vertices[1]) if len(vertices) >= 2 else 0.0

    if entity.is_polyline:
        vertices = entity.vertices or []
        length = _path_length(vertices)
        if (entity.shape or entity.closed) and vertices:
            length += vertices[-1].distance_to(vertices[0])
        return length

    if entity.type == CIRCLE:
        return TWO_PI * (entity.radius or 0.0)

    if entity.type == ARC:
        if entity.radius is None or entity.start_angle is None or entity.end_angle is None:
            return 0.0
        sweep = entity.end_angle - entity.start_angle
        if sweep < 0:
            sweep += TWO_PI
        return abs(sweep * entity.radius)

    if entity.type == ELLIPSE:
        axes = entity.semi_axes()
        if axes is None:
            return 0.0
        perimeter = ramanujan_perimeter(*axes)
        if entity.start_angle is not None and entity.end_angle is not None:
            sweep = entity.end_angle - entity.start_angle
            if sweep < 0:
                sweep += TWO_PI
            return perimeter * (sweep / TWO_PI)
        return perimeter

    if entity.type == SPLINE:
        return _path_length(entity.control_points or [])

    return 0.0


def calculate_cut_length(entities: Iterable[Entity]) -> float:
    """Total cut length of the closed contours, converted from mm to meters"""
    total = 0.0
    for entity in entities:
        if not is_contour_closed(entity):
            continue
        total += entity_cut_length(entity)
    return total / 1000.0
