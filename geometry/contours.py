"""
Contour geometry helpers used by extraction, grouping and nesting.

All functions are pure. Curved and free-form entities are handled with cheap
approximations that are good enough for nesting:
  - ellipse bounds, containment and area ignore the major-axis rotation
  - spline bounds use the control polygon, not the true curve
  - non-polygon areas fall back to the bounding-box area
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from .entities import (
    ARC, CIRCLE, ELLIPSE, LINE, SPLINE, POLYLINE_TYPES,
    BoundingBox, Entity, Point,
)


def is_contour_closed(entity: Entity, tolerance: float = 1.0) -> bool:
    """
    Check whether an entity forms a closed contour.

    Circles and ellipses are always closed, arcs and single lines never are.
    Polylines and splines are closed when flagged so, or when their first and
    last points lie within `tolerance` of each other (at least 3 points).
    """
    try:
        if entity.type in (CIRCLE, ELLIPSE):
            return True

        if entity.type in (ARC, LINE):
            return False

        if entity.type in POLYLINE_TYPES:
            if entity.shape or entity.closed:
                return True
            return _endpoints_meet(entity.vertices, tolerance)

        if entity.type == SPLINE:
            if entity.closed:
                return True
            return _endpoints_meet(entity.control_points, tolerance)

        return False
    except (AttributeError, TypeError, ValueError):
        return False


def _endpoints_meet(points: Optional[Sequence[Point]], tolerance: float) -> bool:
    if not points or len(points) < 3:
        return False
    return points[0].distance_to(points[-1]) <= tolerance


def get_entity_bounding_box(entity: Entity) -> Optional[BoundingBox]:
    """
    Axis-aligned bounds of an entity.

    Returns None for unrecognized types, missing data, non-finite extents and
    zero-size (single point) boxes.
    """
    try:
        bbox = _raw_bounds(entity)
    except (AttributeError, TypeError, ValueError):
        return None

    if bbox is None:
        return None

    extents = (bbox.min_x, bbox.min_y, bbox.max_x, bbox.max_y)
    if not all(math.isfinite(v) for v in extents):
        return None
    if bbox.width == 0 and bbox.height == 0:
        return None
    return bbox


def _raw_bounds(entity: Entity) -> Optional[BoundingBox]:
    if entity.type == LINE:
        if entity.vertices and len(entity.vertices) >= 2:
            return BoundingBox.from_points(entity.vertices[:2])
        return None

    if entity.type in POLYLINE_TYPES:
        return BoundingBox.from_points(entity.vertices or [])

    if entity.type in (CIRCLE, ARC):
        if entity.center is None or entity.radius is None:
            return None
        c, r = entity.center, entity.radius
        return BoundingBox(c.x - r, c.y - r, c.x + r, c.y + r)

    if entity.type == ELLIPSE:
        axes = entity.semi_axes()
        if entity.center is None or axes is None:
            return None
        a, b = axes
        c = entity.center
        return BoundingBox(c.x - a, c.y - b, c.x + a, c.y + b)

    if entity.type == SPLINE:
        return BoundingBox.from_points(entity.control_points or [])

    return None


def get_contour_center(entity: Entity) -> Optional[Point]:
    """Bounding-box center of an entity (not the area centroid)"""
    bbox = get_entity_bounding_box(entity)
    if bbox is None:
        return None
    return bbox.center


def is_point_inside_polygon(point: Point, vertices: Sequence[Point]) -> bool:
    """Even-odd ray casting test"""
    if not vertices or len(vertices) < 3:
        return False

    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].x, vertices[i].y
        xj, yj = vertices[j].x, vertices[j].y
        if (yi > point.y) != (yj > point.y):
            x_cross = (xj - xi) * (point.y - yi) / (yj - yi) + xi
            if point.x < x_cross:
                inside = not inside
        j = i
    return inside


def is_point_inside_contour(point: Point, entity: Entity) -> bool:
    """Containment test dispatched on the entity type"""
    if entity.type == CIRCLE:
        if entity.center is None or entity.radius is None:
            return False
        return point.distance_to(entity.center) <= entity.radius

    if entity.type in POLYLINE_TYPES:
        if not entity.vertices:
            return False
        return is_point_inside_polygon(point, entity.vertices)

    if entity.type == ELLIPSE:
        axes = entity.semi_axes()
        if entity.center is None or axes is None:
            return False
        a, b = axes
        if a == 0 or b == 0:
            return False
        dx = point.x - entity.center.x
        dy = point.y - entity.center.y
        return (dx * dx) / (a * a) + (dy * dy) / (b * b) <= 1

    # splines and everything else: bounding box approximation
    bbox = get_entity_bounding_box(entity)
    if bbox is None:
        return False
    return bbox.contains(point)


def calculate_contour_area(entity: Entity) -> float:
    """Contour area in drawing units squared"""
    if entity.type == CIRCLE and entity.radius is not None:
        return math.pi * entity.radius * entity.radius

    if entity.type == ELLIPSE:
        axes = entity.semi_axes()
        if axes is not None:
            a, b = axes
            return math.pi * a * b

    if entity.is_polyline and entity.vertices and len(entity.vertices) >= 3:
        return _shoelace_area(entity.vertices)

    bbox = get_entity_bounding_box(entity)
    return bbox.area if bbox else 0.0


def _shoelace_area(vertices: Sequence[Point]) -> float:
    xs = np.array([v.x for v in vertices], dtype=float)
    ys = np.array([v.y for v in vertices], dtype=float)
    area = np.dot(xs, np.roll(ys, -1)) - np.dot(np.roll(xs, -1), ys)
    return float(abs(area) / 2.0)


def rotate_bounding_box(bbox: BoundingBox, rotation: float, exact: bool = False) -> BoundingBox:
    """
    Bounding box of a part after rotation by `rotation` degrees.

    By default only quarter turns change the footprint: 90/270 swap width and
    height (box moved to the origin), every other angle returns the box
    unchanged. With exact=True the axis-aligned box of the rotated rectangle
    is computed for any angle and anchored at the origin.
    """
    angle = rotation % 360

    if exact:
        return BoundingBox.from_size(*_rotated_extent(bbox.width, bbox.height, angle))

    if angle in (90, 270):
        return BoundingBox.from_size(bbox.height, bbox.width)

    return bbox


def _rotated_extent(width: float, height: float, angle: float) -> Tuple[float, float]:
    theta = np.radians(angle)
    corners = np.array([[0.0, 0.0], [width, 0.0], [width, height], [0.0, height]])
    rot = np.array([[np.cos(theta), -np.sin(theta)], [np.sin(theta), np.cos(theta)]])
    rotated = corners @ rot.T
    span = rotated.max(axis=0) - rotated.min(axis=0)
    # snap floating noise so quarter turns reproduce the exact swap
    return float(np.round(span[0], 9)), float(np.round(span[1], 9))


def check_bounding_box_collision(bbox1: BoundingBox, pos1: Point,
                                 bbox2: BoundingBox, pos2: Point,
                                 spacing: float) -> bool:
    """True when the two boxes, placed at pos1/pos2 and kept `spacing` apart, overlap"""
    return not (
        pos1.x + bbox1.width + spacing <= pos2.x or
        pos2.x + bbox2.width + spacing <= pos1.x or
        pos1.y + bbox1.height + spacing <= pos2.y or
        pos2.y + bbox2.height + spacing <= pos1.y
    )
