#!/usr/bin/env python3
"""
Entity extraction and closed-contour filtering.

Raw drawing records (mappings produced by dxf_reader, or JSON sent by a browser
side DXF parser) are normalized into geometry.Entity objects. Only closed
contours with usable bounds are kept; everything else is skipped and counted,
never raised.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from geometry import Entity, Point, get_entity_bounding_box, is_contour_closed

logger = logging.getLogger(__name__)

# accepted spellings for each normalized field (snake_case first)
FIELD_ALIASES = {
    'vertices': ('vertices',),
    'center': ('center',),
    'radius': ('radius',),
    'control_points': ('control_points', 'controlPoints'),
    'start_angle': ('start_angle', 'startAngle'),
    'end_angle': ('end_angle', 'endAngle'),
    'shape': ('shape',),
    'closed': ('closed',),
    'major_axis_end_point': ('major_axis_end_point', 'majorAxisEndPoint'),
    'axis_ratio': ('axis_ratio', 'axisRatio'),
}

POINT_FIELDS = ('center', 'major_axis_end_point')
POINT_LIST_FIELDS = ('vertices', 'control_points')
FLOAT_FIELDS = ('radius', 'start_angle', 'end_angle', 'axis_ratio')
BOOL_FIELDS = ('shape', 'closed')
TRUE_STRINGS = {'true', '1', 'yes', 'on'}
FALSE_STRINGS = {'false', '0', 'no', 'off', ''}


class MalformedRecordError(ValueError):
    """A raw record field could not be coerced; the record is skipped"""


@dataclass
class ExtractionStats:
    """Diagnostic counts for one extraction pass"""
    total: int = 0
    closed: int = 0
    skipped_open: int = 0
    skipped_no_bounds: int = 0
    malformed: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_open + self.skipped_no_bounds + self.malformed

    def to_dict(self):
        data = asdict(self)
        data['skipped'] = self.skipped
        return data


@dataclass
class ExtractionResult:
    contours: List[Entity] = field(default_factory=list)
    stats: ExtractionStats = field(default_factory=ExtractionStats)


def _lookup(raw: Mapping, name: str) -> Any:
    for key in FIELD_ALIASES[name]:
        if key in raw:
            return raw[key]
    return None


def _finite(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise MalformedRecordError(f"non-finite value {value!r}")
    return number


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise MalformedRecordError(f"not a flag: {value!r}")
    if isinstance(value, (bool, int)):
        return bool(value)
    raise MalformedRecordError(f"not a flag: {value!r}")


def _to_point(value: Any) -> Point:
    if isinstance(value, Point):
        return value
    if isinstance(value, Mapping):
        return Point(_finite(value['x']), _finite(value['y']))
    x, y = value[0], value[1]
    return Point(_finite(x), _finite(y))


def normalize_entity(raw: Mapping) -> Entity:
    """
    Copy the recognized fields of a raw record into an Entity.

    Raises MalformedRecordError when the record has no type or a recognized
    field holds data that cannot be read as numbers/points.
    """
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(f"record is not a mapping: {type(raw).__name__}")

    entity_type = raw.get('type')
    if not entity_type:
        raise MalformedRecordError("record has no type")

    values = {}
    try:
        for name in POINT_LIST_FIELDS:
            value = _lookup(raw, name)
            if value is not None:
                values[name] = [_to_point(p) for p in value]
        for name in POINT_FIELDS:
            value = _lookup(raw, name)
            if value is not None:
                values[name] = _to_point(value)
        for name in FLOAT_FIELDS:
            value = _lookup(raw, name)
            if value is not None:
                values[name] = _finite(value)
        for name in BOOL_FIELDS:
            value = _lookup(raw, name)
            if value is not None:
                values[name] = _to_bool(value)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise MalformedRecordError(f"{entity_type}: {e}") from e

    return Entity(type=str(entity_type).upper(), raw=raw, **values)


def extract_contours(raw_records: Optional[Iterable[Mapping]]) -> ExtractionResult:
    """Normalize raw records and keep the closed contours, in input order"""
    result = ExtractionResult()
    stats = result.stats

    for raw in raw_records or []:
        stats.total += 1
        try:
            entity = normalize_entity(raw)
        except MalformedRecordError as e:
            stats.malformed += 1
            logger.debug(f"Skipping malformed record: {e}")
            continue

        if not is_contour_closed(entity):
            stats.skipped_open += 1
            logger.debug(f"Skipping unclosed entity: {entity.type}")
            continue

        if get_entity_bounding_box(entity) is None:
            stats.skipped_no_bounds += 1
            logger.debug(f"Skipping entity without bounding box: {entity.type}")
            continue

        stats.closed += 1
        result.contours.append(entity)

    logger.info(f"Closed contours found: {stats.closed} of {stats.total} "
                f"(open: {stats.skipped_open}, no bounds: {stats.skipped_no_bounds}, "
                f"malformed: {stats.malformed})")
    return result


def extract_closed_contours(raw_records: Optional[Iterable[Mapping]]) -> List[Entity]:
    """Closed contours of a drawing, in input order"""
    return extract_contours(raw_records).contours
