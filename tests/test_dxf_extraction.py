"""Tests for raw record normalization and closed-contour filtering."""

import math

import pytest

from conftest import circle_record, rect_record
from dxf_extraction import (
    MalformedRecordError, extract_closed_contours, extract_contours, normalize_entity,
)
from geometry import Point


def test_normalize_copies_recognized_fields_only():
    entity = normalize_entity({
        'type': 'circle',
        'center': {'x': 1, 'y': 2},
        'radius': '5',
        'layer': 'CUT',
    })
    assert entity.type == 'CIRCLE'
    assert entity.center == Point(1.0, 2.0)
    assert entity.radius == 5.0
    assert entity.vertices is None


def test_normalize_accepts_camel_case_and_tuple_points():
    entity = normalize_entity({
        'type': 'ELLIPSE',
        'center': (0, 0),
        'majorAxisEndPoint': [30, 0],
        'axisRatio': 0.5,
        'startAngle': 0,
        'endAngle': math.pi,
    })
    assert entity.major_axis_end_point == Point(30, 0)
    assert entity.axis_ratio == 0.5
    assert entity.start_angle == 0
    assert entity.end_angle == pytest.approx(math.pi)


@pytest.mark.parametrize('raw', [
    {'radius': 5},
    {'type': 'CIRCLE', 'center': {'x': 'a', 'y': 0}, 'radius': 1},
    {'type': 'CIRCLE', 'center': {'x': 0}, 'radius': 1},
    {'type': 'CIRCLE', 'center': {'x': 0, 'y': 0}, 'radius': float('nan')},
    {'type': 'LWPOLYLINE', 'vertices': [[0]]},
    {'type': 'LWPOLYLINE', 'vertices': [[0, 0], [1, 0]], 'shape': 'maybe'},
    {'type': 'SPLINE', 'control_points': [[0, 0], [1, 0]], 'closed': [True]},
    'LINE',
])
def test_malformed_records_raise(raw):
    with pytest.raises(MalformedRecordError):
        normalize_entity(raw)


def test_extract_keeps_closed_contours_in_input_order():
    records = [
        circle_record(0, 0, 5),
        {'type': 'LINE', 'vertices': [{'x': 0, 'y': 0}, {'x': 10, 'y': 0}]},
        rect_record(0, 0, 10, 10),
        {'type': 'ARC', 'center': {'x': 0, 'y': 0}, 'radius': 3, 'start_angle': 0, 'end_angle': 1},
        circle_record(20, 20, 1),
    ]
    contours = extract_closed_contours(records)
    assert [c.type for c in contours] == ['CIRCLE', 'LWPOLYLINE', 'CIRCLE']
    assert contours[2].center == Point(20, 20)


def test_extract_counts_skipped_entities():
    records = [
        rect_record(0, 0, 10, 10),
        {'type': 'LINE', 'vertices': [{'x': 0, 'y': 0}, {'x': 10, 'y': 0}]},
        {'type': 'TEXT', 'text': 'PART-1'},
        {'type': 'CIRCLE', 'center': {'x': 0, 'y': 0}},
        {'type': 'CIRCLE', 'center': {'x': 0, 'y': 0}, 'radius': 'big'},
        None,
    ]
    result = extract_contours(records)
    stats = result.stats
    assert len(result.contours) == 1
    assert stats.total == 6
    assert stats.closed == 1
    assert stats.skipped_open == 2
    assert stats.skipped_no_bounds == 1
    assert stats.malformed == 2
    assert stats.skipped == 5
    assert stats.to_dict()['skipped'] == 5


def test_extract_skips_zero_size_contours():
    records = [circle_record(0, 0, 0)]
    result = extract_contours(records)
    assert result.contours == []
    assert result.stats.skipped_no_bounds == 1


def test_extract_handles_missing_input():
    assert extract_closed_contours(None) == []
    assert extract_closed_contours([]) == []


def test_raw_record_is_kept_for_diagnostics():
    raw = circle_record(0, 0, 5)
    entity = extract_closed_contours([raw])[0]
    assert entity.raw is raw


@pytest.mark.parametrize('flag, closed', [
    ('false', False), ('False', False), ('0', False), ('no', False), (0, False),
    ('true', True), ('1', True), (1, True), (True, True),
])
def test_string_flags_from_json(flag, closed):
    open_square = dict(rect_record(0, 0, 10, 10), shape=flag)
    assert normalize_entity(open_square).shape is closed
    assert len(extract_closed_contours([open_square])) == (1 if closed else 0)
