"""
Shared fixtures for the nesting quote tests.

DXF drawings are built in memory with ezdxf.new(); raw records mirror what
dxf_reader produces.
"""

import io
import os
import sys

# Add the parent directory to the path so the top-level modules import
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import ezdxf
import pytest

from geometry import Entity, Point


def rect_record(x, y, width, height):
    return {
        'type': 'LWPOLYLINE',
        'vertices': [
            {'x': x, 'y': y},
            {'x': x + width, 'y': y},
            {'x': x + width, 'y': y + height},
            {'x': x, 'y': y + height},
        ],
        'shape': True,
    }


def circle_record(x, y, radius):
    return {'type': 'CIRCLE', 'center': {'x': x, 'y': y}, 'radius': radius}


def rect_entity(x, y, width, height):
    return Entity(
        type='LWPOLYLINE',
        vertices=[Point(x, y), Point(x + width, y), Point(x + width, y + height), Point(x, y + height)],
        shape=True,
    )


def circle_entity(x, y, radius):
    return Entity(type='CIRCLE', center=Point(x, y), radius=radius)


@pytest.fixture
def square_with_hole_records():
    """100mm square plate with a 10mm radius hole in the middle"""
    return [rect_record(0, 0, 100, 100), circle_record(50, 50, 10)]


@pytest.fixture
def dxf_document():
    """ezdxf document holding the square plate with its hole"""
    doc = ezdxf.new()
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (100, 0), (100, 100), (0, 100)], close=True)
    msp.add_circle((50, 50), radius=10)
    return doc


@pytest.fixture
def dxf_text(dxf_document):
    stream = io.StringIO()
    dxf_document.write(stream)
    return stream.getvalue()


@pytest.fixture
def dxf_3d_text():
    doc = ezdxf.new()
    msp = doc.modelspace()
    msp.add_lwpolyline([(0, 0), (100, 0), (100, 100), (0, 100)], close=True)
    msp.add_line((0, 0, 0), (50, 50, 25))
    stream = io.StringIO()
    doc.write(stream)
    return stream.getvalue()


@pytest.fixture
def app():
    from app import create_app
    from deployment_config import UnitTestConfig

    return create_app(UnitTestConfig)


@pytest.fixture
def client(app):
    return app.test_client()
