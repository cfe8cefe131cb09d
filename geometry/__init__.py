"""
Geometry processing for DXF contours.

- entities: Point, BoundingBox and the normalized Entity record
- contours: closure, bounds, containment, area and collision helpers
- flatten: point approximation of entities and cut-length measurement
"""

from .entities import BoundingBox, Entity, Point
from .contours import (
    calculate_contour_area,
    check_bounding_box_collision,
    get_contour_center,
    get_entity_bounding_box,
    is_contour_closed,
    is_point_inside_contour,
    is_point_inside_polygon,
    rotate_bounding_box,
)
from .flatten import calculate_cut_length, entity_cut_length, entity_to_polyline_points

__all__ = [
    "BoundingBox",
    "Entity",
    "Point",
    "calculate_contour_area",
    "calculate_cut_length",
    "check_bounding_box_collision",
    "entity_cut_length",
    "entity_to_polyline_points",
    "get_contour_center",
    "get_entity_bounding_box",
    "is_contour_closed",
    "is_point_inside_contour",
    "is_point_inside_polygon",
    "rotate_bounding_box",
]
