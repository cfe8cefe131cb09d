#!/usr/bin/env python3
"""
DXF reader - ezdxf adapter producing raw drawing records.

Reads a DXF document (file path, DXF text or uploaded bytes) and converts the
modelspace entities into plain mappings that dxf_extraction understands:

    {'type': 'LWPOLYLINE', 'vertices': [{'x': .., 'y': ..}, ...], 'shape': True}
    {'type': 'CIRCLE', 'center': {'x': .., 'y': ..}, 'radius': ..}
    {'type': 'ARC', 'center': .., 'radius': .., 'start_angle': rad, 'end_angle': rad}
    {'type': 'ELLIPSE', 'center': .., 'major_axis_end_point': .., 'axis_ratio': ..,
     'start_angle': rad, 'end_angle': rad}
    {'type': 'SPLINE', 'control_points': [...], 'closed': bool}

Polylines with bulges are flattened with ezdxf.path so their arc segments are
represented by vertices. Block references are expanded into their virtual
entities. All coordinates are reported in WCS, so entities with a mirrored
extrusion (0, 0, -1) land where a CAD viewer shows them. Drawings with 3D
content are rejected.
"""

import io
import logging
import math
import os
from typing import Dict, Iterator, List, Optional, Union

import ezdxf
from ezdxf import path as ezdxf_path
from ezdxf import recover
from ezdxf.document import Drawing

from error_handler import DxfReadError, UnsupportedDrawingError

logger = logging.getLogger(__name__)

DxfSource = Union[str, bytes, os.PathLike]

SOLID_TYPES = {'3DFACE', 'SOLID', '3DSOLID', 'MESH', 'BODY'}
Z_TOLERANCE = 0.001


def _xy(v) -> Dict[str, float]:
    return {'x': float(v[0]), 'y': float(v[1])}


def _is_path(source) -> bool:
    # DXF text always spans several lines
    return isinstance(source, os.PathLike) or (isinstance(source, str) and '\n' not in source)


def read_dxf_document(source: DxfSource) -> Drawing:
    """Load a DXF document from a path, DXF text or raw bytes"""
    try:
        if isinstance(source, bytes):
            doc, auditor = recover.read(io.BytesIO(source))
            if auditor.has_errors:
                logger.warning(f"DXF recovered with {len(auditor.errors)} errors")
            return doc
        if _is_path(source):
            path = os.fspath(source)
            if not os.path.isfile(path):
                raise DxfReadError(f"DXF file not found: {path}")
            return ezdxf.readfile(path)
        if isinstance(source, str):
            return ezdxf.read(io.StringIO(source))
    except ezdxf.DXFError as e:
        raise DxfReadError(f"Invalid DXF file: {e}") from e
    except (OSError, ValueError) as e:
        raise DxfReadError(f"Could not read DXF file: {e}") from e

    raise DxfReadError(f"Unsupported DXF source type: {type(source).__name__}")


def iter_entities(layout) -> Iterator:
    """Modelspace entities with block references expanded"""
    for entity in layout:
        if entity.dxftype() == 'INSERT':
            try:
                yield from iter_entities(entity.virtual_entities())
            except ezdxf.DXFError as e:
                logger.warning(f"Could not expand block {entity.dxf.name}: {e}")
            continue
        yield entity


def _extrusion(entity):
    if entity.dxf.hasattr('extrusion'):
        return entity.dxf.extrusion
    return (0.0, 0.0, 1.0)


def _is_mirrored(entity) -> bool:
    """Extrusion along -Z: OCS x runs opposite to WCS x and arcs turn clockwise"""
    return _extrusion(entity)[2] < 0


def has_3d_entities(entities) -> bool:
    """True when the drawing contains solids, meshes, 3D polylines, lifted lines or tilted planes"""
    for entity in entities:
        dxftype = entity.dxftype()
        if dxftype in SOLID_TYPES:
            return True
        if dxftype == 'POLYLINE' and not entity.is_2d_polyline:
            return True
        if dxftype == 'LINE':
            if abs(entity.dxf.start.z) > Z_TOLERANCE or abs(entity.dxf.end.z) > Z_TOLERANCE:
                return True
        elif entity.dxf.hasattr('extrusion'):
            x, y, _ = _extrusion(entity)
            if abs(x) > Z_TOLERANCE or abs(y) > Z_TOLERANCE:
                return True
    return False


def _flattened_vertices(entity, max_sagitta: float) -> List[Dict[str, float]]:
    # ezdxf.path works in WCS
    path = ezdxf_path.make_path(entity)
    return [_xy(v) for v in path.flattening(max_sagitta)]


def _wcs_vertices(entity, points, elevation: float = 0.0) -> List[Dict[str, float]]:
    ocs = entity.ocs()
    return [_xy(ocs.to_wcs((p[0], p[1], elevation))) for p in points]


def _lwpolyline_record(entity, flatten_bulges: bool, max_sagitta: float) -> Dict:
    points = list(entity.get_points('xyb'))
    has_bulge = any(abs(b) > 1e-9 for _, _, b in points)
    if flatten_bulges and has_bulge:
        vertices = _flattened_vertices(entity, max_sagitta)
    else:
        vertices = _wcs_vertices(entity, points, entity.dxf.elevation)
    return {'type': 'LWPOLYLINE', 'vertices': vertices, 'shape': bool(entity.closed)}


def _polyline_record(entity, flatten_bulges: bool, max_sagitta: float) -> Dict:
    has_bulge = any(abs(v.dxf.bulge) > 1e-9 for v in entity.vertices)
    if flatten_bulges and has_bulge:
        vertices = _flattened_vertices(entity, max_sagitta)
    elif entity.is_2d_polyline:
        vertices = _wcs_vertices(entity, [v.dxf.location for v in entity.vertices])
    else:
        vertices = [_xy(v.dxf.location) for v in entity.vertices]
    return {'type': 'POLYLINE', 'vertices': vertices, 'shape': bool(entity.is_closed)}


def _arc_record(entity) -> Dict:
    center = entity.ocs().to_wcs(entity.dxf.center)
    if _is_mirrored(entity):
        # counterclockwise in WCS runs from the OCS end point back to the start point
        start, end = entity.end_point - center, entity.start_point - center
        start_angle, end_angle = math.atan2(start.y, start.x), math.atan2(end.y, end.x)
    else:
        start_angle = math.radians(entity.dxf.start_angle)
        end_angle = math.radians(entity.dxf.end_angle)
    return {
        'type': 'ARC',
        'center': _xy(center),
        'radius': float(entity.dxf.radius),
        'start_angle': start_angle,
        'end_angle': end_angle,
    }


def _ellipse_record(entity) -> Dict:
    start, end = float(entity.dxf.start_param), float(entity.dxf.end_param)
    if _is_mirrored(entity) and not math.isclose(abs(end - start), math.tau):
        # the minor axis flips with the extrusion, so the parameters change sign
        start, end = (-end) % math.tau, (-start) % math.tau
    return {
        'type': 'ELLIPSE',
        'center': _xy(entity.dxf.center),
        'major_axis_end_point': _xy(entity.dxf.major_axis),
        'axis_ratio': float(entity.dxf.ratio),
        'start_angle': start,
        'end_angle': end,
    }


def _spline_record(entity) -> Dict:
    points = list(entity.control_points) or list(entity.fit_points)
    return {
        'type': 'SPLINE',
        'control_points': [_xy(p) for p in points],
        'closed': bool(entity.closed),
    }


def entity_to_record(entity, flatten_bulges: bool = True, max_sagitta: float = 0.1) -> Dict:
    """Convert one ezdxf entity into a raw record; unknown types keep only their type"""
    dxftype = entity.dxftype()

    if dxftype == 'LINE':
        return {'type': 'LINE', 'vertices': [_xy(entity.dxf.start), _xy(entity.dxf.end)]}

    if dxftype == 'LWPOLYLINE':
        return _lwpolyline_record(entity, flatten_bulges, max_sagitta)

    if dxftype == 'POLYLINE':
        return _polyline_record(entity, flatten_bulges, max_sagitta)

    if dxftype == 'CIRCLE':
        center = entity.ocs().to_wcs(entity.dxf.center)
        return {'type': 'CIRCLE', 'center': _xy(center), 'radius': float(entity.dxf.radius)}

    if dxftype == 'ARC':
        return _arc_record(entity)

    if dxftype == 'ELLIPSE':
        return _ellipse_record(entity)

    if dxftype == 'SPLINE':
        return _spline_record(entity)

    return {'type': dxftype}


def read_dxf_records(source: DxfSource, reject_3d: bool = True,
                     flatten_bulges: bool = True, max_sagitta: float = 0.1) -> List[Dict]:
    """
    Read a DXF source into raw records.

    Raises DxfReadError for unreadable input and UnsupportedDrawingError for
    drawings with 3D content when reject_3d is set. Entities that fail to
    convert are logged and passed on as type-only records.
    """
    doc = read_dxf_document(source)
    entities = list(iter_entities(doc.modelspace()))

    if reject_3d and has_3d_entities(entities):
        raise UnsupportedDrawingError("3D drawings are not supported, upload a flat 2D DXF")

    records = []
    counts: Dict[str, int] = {}
    for entity in entities:
        dxftype = entity.dxftype()
        counts[dxftype] = counts.get(dxftype, 0) + 1
        try:
            records.append(entity_to_record(entity, flatten_bulges, max_sagitta))
        except (AttributeError, TypeError, ValueError, ezdxf.DXFError) as e:
            logger.warning(f"Could not convert {dxftype}: {e}")
            records.append({'type': dxftype})

    logger.info(f"Read {len(records)} DXF entities: "
                + ", ".join(f"{t}={n}" for t, n in sorted(counts.items())))
    return records


def read_uploaded_dxf(file_storage, **kwargs) -> List[Dict]:
    """Raw records from a werkzeug FileStorage upload"""
    data: Optional[bytes] = file_storage.read()
    if not data:
        raise DxfReadError("Uploaded file is empty")
    return read_dxf_records(data, **kwargs)
