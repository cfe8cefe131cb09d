"""Tests for the contour geometry helpers."""

import math

import pytest

from conftest import circle_entity, rect_entity
from geometry import (
    BoundingBox, Entity, Point,
    calculate_contour_area, check_bounding_box_collision, get_contour_center,
    get_entity_bounding_box, is_contour_closed, is_point_inside_contour,
    is_point_inside_polygon, rotate_bounding_box,
)


class TestIsContourClosed:

    def test_circle_and_ellipse_always_closed(self):
        assert is_contour_closed(circle_entity(0, 0, 5))
        assert is_contour_closed(Entity(type='ELLIPSE'))

    def test_arc_and_line_never_closed(self):
        arc = Entity(type='ARC', center=Point(0, 0), radius=5, start_angle=0, end_angle=2 * math.pi)
        line = Entity(type='LINE', vertices=[Point(0, 0), Point(0, 0)])
        assert not is_contour_closed(arc)
        assert not is_contour_closed(line)

    def test_polyline_flagged_closed(self):
        open_three = Entity(type='POLYLINE', vertices=[Point(0, 0), Point(10, 0), Point(10, 10)], closed=True)
        assert is_contour_closed(open_three)
        assert is_contour_closed(rect_entity(0, 0, 10, 10))

    def test_polyline_closed_by_endpoints_within_tolerance(self):
        vertices = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0.5, 0.5)]
        entity = Entity(type='LWPOLYLINE', vertices=vertices)
        assert is_contour_closed(entity)
        assert not is_contour_closed(entity, tolerance=0.1)

    def test_two_point_polyline_is_open(self):
        entity = Entity(type='LWPOLYLINE', vertices=[Point(0, 0), Point(0, 0)])
        assert not is_contour_closed(entity)

    def test_spline_closure(self):
        points = [Point(0, 0), Point(10, 5), Point(0, 10), Point(0, 0.2)]
        assert is_contour_closed(Entity(type='SPLINE', control_points=points))
        assert is_contour_closed(Entity(type='SPLINE', control_points=points[:2], closed=True))
        assert not is_contour_closed(Entity(type='SPLINE', control_points=points[:3]))

    def test_malformed_and_unknown_return_false(self):
        assert not is_contour_closed(Entity(type='LWPOLYLINE'))
        assert not is_contour_closed(Entity(type='SPLINE'))
        assert not is_contour_closed(Entity(type='TEXT'))
        # vertices that are not points
        assert not is_contour_closed(Entity(type='POLYLINE', vertices=[1, 2, 3]))

    def test_closure_is_idempotent(self):
        entity = Entity(type='LWPOLYLINE', vertices=[Point(0, 0), Point(10, 0), Point(0.5, 0)])
        assert is_contour_closed(entity) == is_contour_closed(entity)


class TestBoundingBox:

    def test_polyline_bounds(self):
        bbox = get_entity_bounding_box(rect_entity(5, 10, 20, 30))
        assert bbox == BoundingBox(5, 10, 25, 40)
        assert bbox.width == 20
        assert bbox.height == 30

    def test_circle_and_arc_bounds(self):
        assert get_entity_bounding_box(circle_entity(10, 10, 5)) == BoundingBox(5, 5, 15, 15)
        arc = Entity(type='ARC', center=Point(0, 0), radius=2, start_angle=0, end_angle=1)
        assert get_entity_bounding_box(arc) == BoundingBox(-2, -2, 2, 2)

    def test_ellipse_bounds_ignore_rotation(self):
        ellipse = Entity(type='ELLIPSE', center=Point(0, 0),
                         major_axis_end_point=Point(0, 40), axis_ratio=0.5)
        assert get_entity_bounding_box(ellipse) == BoundingBox(-40, -20, 40, 20)

    def test_spline_bounds_use_control_points(self):
        spline = Entity(type='SPLINE', control_points=[Point(0, 0), Point(5, 20), Point(10, 0)])
        assert get_entity_bounding_box(spline) == BoundingBox(0, 0, 10, 20)

    def test_unusable_bounds_return_none(self):
        assert get_entity_bounding_box(Entity(type='TEXT')) is None
        assert get_entity_bounding_box(Entity(type='CIRCLE', center=Point(0, 0))) is None
        assert get_entity_bounding_box(Entity(type='LWPOLYLINE', vertices=[])) is None
        assert get_entity_bounding_box(circle_entity(0, 0, float('inf'))) is None

    def test_single_point_box_is_none(self):
        point_poly = Entity(type='LWPOLYLINE', vertices=[Point(1, 1), Point(1, 1), Point(1, 1)], shape=True)
        assert get_entity_bounding_box(point_poly) is None

    def test_contour_center_is_bbox_center(self):
        triangle = Entity(type='LWPOLYLINE', vertices=[Point(0, 0), Point(30, 0), Point(0, 10)], shape=True)
        assert get_contour_center(triangle) == Point(15, 5)
        assert get_contour_center(Entity(type='TEXT')) is None


class TestContainment:

    def test_point_in_polygon(self):
        square = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]
        assert is_point_inside_polygon(Point(5, 5), square)
        assert not is_point_inside_polygon(Point(15, 5), square)
        assert not is_point_inside_polygon(Point(5, 5), square[:2])

    def test_point_in_concave_polygon(self):
        l_shape = [Point(0, 0), Point(20, 0), Point(20, 10), Point(10, 10), Point(10, 20), Point(0, 20)]
        assert is_point_inside_polygon(Point(5, 15), l_shape)
        assert not is_point_inside_polygon(Point(15, 15), l_shape)

    def test_point_in_circle(self):
        circle = circle_entity(0, 0, 10)
        assert is_point_inside_contour(Point(3, 4), circle)
        assert is_point_inside_contour(Point(10, 0), circle)
        assert not is_point_inside_contour(Point(8, 8), circle)

    def test_point_in_ellipse(self):
        ellipse = Entity(type='ELLIPSE', center=Point(0, 0),
                         major_axis_end_point=Point(20, 0), axis_ratio=0.5)
        assert is_point_inside_contour(Point(15, 0), ellipse)
        assert not is_point_inside_contour(Point(0, 15), ellipse)

    def test_degenerate_ellipse_contains_nothing(self):
        ellipse = Entity(type='ELLIPSE', center=Point(0, 0),
                         major_axis_end_point=Point(0, 0), axis_ratio=0.5)
        assert not is_point_inside_contour(Point(0, 0), ellipse)

    def test_spline_falls_back_to_bbox(self):
        spline = Entity(type='SPLINE', control_points=[Point(0, 0), Point(10, 10), Point(20, 0)])
        assert is_point_inside_contour(Point(18, 9), spline)
        assert not is_point_inside_contour(Point(25, 5), spline)


class TestArea:

    def test_circle_area(self):
        assert calculate_contour_area(circle_entity(0, 0, 50)) == pytest.approx(math.pi * 2500)

    def test_ellipse_area(self):
        ellipse = Entity(type='ELLIPSE', center=Point(0, 0),
                         major_axis_end_point=Point(20, 0), axis_ratio=0.5)
        assert calculate_contour_area(ellipse) == pytest.approx(math.pi * 20 * 10)

    def test_polygon_area_is_absolute(self):
        clockwise = Entity(type='LWPOLYLINE',
                           vertices=[Point(0, 0), Point(0, 10), Point(20, 10), Point(20, 0)], shape=True)
        assert calculate_contour_area(clockwise) == pytest.approx(200)

    def test_other_types_use_bbox_area(self):
        spline = Entity(type='SPLINE', control_points=[Point(0, 0), Point(10, 20), Point(30, 0)])
        assert calculate_contour_area(spline) == pytest.approx(600)


class TestRotateBoundingBox:

    def test_quarter_turns_swap_dimensions_at_origin(self):
        bbox = BoundingBox(5, 5, 105, 55)
        assert rotate_bounding_box(bbox, 90) == BoundingBox(0, 0, 50, 100)
        assert rotate_bounding_box(bbox, 270) == BoundingBox(0, 0, 50, 100)
        assert rotate_bounding_box(bbox, -90) == BoundingBox(0, 0, 50, 100)

    def test_other_angles_leave_box_unchanged(self):
        bbox = BoundingBox(5, 5, 105, 55)
        for angle in (0, 45, 135, 180, 360):
            assert rotate_bounding_box(bbox, angle) == bbox

    def test_exact_mode_encloses_rotated_rectangle(self):
        rotated = rotate_bounding_box(BoundingBox(0, 0, 100, 100), 45, exact=True)
        assert rotated.width == pytest.approx(100 * math.sqrt(2))
        assert rotated.height == pytest.approx(100 * math.sqrt(2))
        assert (rotated.min_x, rotated.min_y) == (0, 0)

    def test_exact_mode_quarter_turn_matches_swap(self):
        rotated = rotate_bounding_box(BoundingBox(0, 0, 100, 50), 90, exact=True)
        assert rotated == BoundingBox(0, 0, 50, 100)


class TestCollision:

    def test_overlapping_boxes_collide(self):
        box = BoundingBox.from_size(10, 10)
        assert check_bounding_box_collision(box, Point(0, 0), box, Point(5, 5), 0)

    def test_boxes_exactly_spacing_apart_do_not_collide(self):
        box = BoundingBox.from_size(10, 10)
        assert not check_bounding_box_collision(box, Point(0, 0), box, Point(20, 0), 10)
        assert check_bounding_box_collision(box, Point(0, 0), box, Point(19.9, 0), 10)

    def test_collision_is_symmetric(self):
        a = BoundingBox.from_size(30, 10)
        b = BoundingBox.from_size(10, 30)
        for pos in (Point(35, 0), Point(0, 15), Point(25, 5)):
            assert (check_bounding_box_collision(a, Point(0, 0), b, pos, 5) ==
                    check_bounding_box_collision(b, pos, a, Point(0, 0), 5))
