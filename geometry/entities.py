"""
Geometric primitives shared by the extraction, grouping and nesting stages.

Coordinates are drawing units (millimeters). An Entity is a tagged record: the
`type` field names the DXF entity kind and only the fields relevant to that
kind are populated.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

LINE = "LINE"
LWPOLYLINE = "LWPOLYLINE"
POLYLINE = "POLYLINE"
CIRCLE = "CIRCLE"
ARC = "ARC"
ELLIPSE = "ELLIPSE"
SPLINE = "SPLINE"

POLYLINE_TYPES = frozenset({LWPOLYLINE, POLYLINE})
KNOWN_TYPES = frozenset({LINE, LWPOLYLINE, POLYLINE, CIRCLE, ARC, ELLIPSE, SPLINE})


@dataclass(frozen=True)
class Point:
    """2D point in drawing units"""
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_dict(self):
        return {'x': self.x, 'y': self.y}


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box; width and height are derived from the extents."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return Point((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def contains(self, point: Point) -> bool:
        return (self.min_x <= point.x <= self.max_x and
                self.min_y <= point.y <= self.max_y)

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> Optional["BoundingBox"]:
        xs = []
        ys = []
        for p in points:
            xs.append(p.x)
            ys.append(p.y)
        if not xs:
            return None
        return cls(min(xs), min(ys), max(xs), max(ys))

    @classmethod
    def from_size(cls, width: float, height: float) -> "BoundingBox":
        """Box of the given size anchored at the origin"""
        return cls(0.0, 0.0, width, height)

    def to_dict(self):
        return {
            'min_x': self.min_x,
            'min_y': self.min_y,
            'max_x': self.max_x,
            'max_y': self.max_y,
            'width': self.width,
            'height': self.height,
        }


@dataclass
class Entity:
    """
    Normalized drawing entity.

    Variants by `type`:
        LINE        vertices (2 points)
        LWPOLYLINE  vertices, shape (explicitly closed)
        POLYLINE    vertices, shape
        CIRCLE      center, radius
        ARC         center, radius, start_angle, end_angle (radians)
        ELLIPSE     center, major_axis_end_point (relative to center), axis_ratio,
                    optional start_angle/end_angle (radians)
        SPLINE      control_points, closed

    `raw` keeps the source record for diagnostics only.
    """
    type: str
    vertices: Optional[List[Point]] = None
    center: Optional[Point] = None
    radius: Optional[float] = None
    control_points: Optional[List[Point]] = None
    start_angle: Optional[float] = None
    end_angle: Optional[float] = None
    shape: Optional[bool] = None
    closed: Optional[bool] = None
    major_axis_end_point: Optional[Point] = None
    axis_ratio: Optional[float] = None
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def is_polyline(self) -> bool:
        return self.type in POLYLINE_TYPES

    def semi_axes(self) -> Optional[Tuple[float, float]]:
        """(a, b) semi-axes of an ellipse; axis_ratio defaults to 1"""
        if self.major_axis_end_point is None:
            return None
        a = math.hypot(self.major_axis_end_point.x, self.major_axis_end_point.y)
        b = a * (self.axis_ratio or 1)
        return a, b

    def to_dict(self):
        data = {'type': self.type}
        if self.vertices is not None:
            data['vertices'] = [v.to_dict() for v in self.vertices]
        if self.center is not None:
            data['center'] = self.center.to_dict()
        if self.radius is not None:
            data['radius'] = self.radius
        if self.control_points is not None:
            data['control_points'] = [p.to_dict() for p in self.control_points]
        for name in ('start_angle', 'end_angle', 'shape', 'closed', 'axis_ratio'):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.major_axis_end_point is not None:
            data['major_axis_end_point'] = self.major_axis_end_point.to_dict()
        return data
