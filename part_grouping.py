#!/usr/bin/env python3
"""
Part grouping: associate closed contours into parts.

A part is one outer contour plus the inner contours (holes) whose centers fall
inside it. Contours are processed largest area first, so a container is always
considered before anything that could be one of its holes.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from geometry import (
    BoundingBox, Entity,
    calculate_contour_area, get_contour_center, get_entity_bounding_box,
    is_point_inside_contour,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Part:
    """A nestable part; shared read-only between results"""
    id: str
    outer_contour: Entity
    inner_contours: Tuple[Entity, ...]
    bounding_box: BoundingBox
    area: float  # outer contour area, mm²

    @property
    def pierce_points(self) -> int:
        """One entry cut for the outer contour plus one per hole"""
        return 1 + len(self.inner_contours)

    def to_dict(self):
        return {
            'id': self.id,
            'outer_type': self.outer_contour.type,
            'inner_count': len(self.inner_contours),
            'bounding_box': self.bounding_box.to_dict(),
            'area_sq_mm': self.area,
        }


@dataclass
class _Candidate:
    entity: Entity
    bbox: BoundingBox
    area: float
    index: int


def group_contours_into_parts(contours: Sequence[Entity]) -> List[Part]:
    """
    Group closed contours into parts.

    Every contour with usable bounds ends up in exactly one part, either as
    its outer contour or as one hole. A hole is captured by the first (largest)
    remaining contour that contains its center.
    """
    if not contours:
        return []

    candidates = []
    for index, entity in enumerate(contours):
        bbox = get_entity_bounding_box(entity)
        if bbox is None:
            continue
        candidates.append(_Candidate(entity, bbox, calculate_contour_area(entity), index))

    # stable: equal areas keep input order
    candidates.sort(key=lambda c: -c.area)

    used = [False] * len(contours)
    parts = []

    for outer in candidates:
        if used[outer.index]:
            continue

        inner = []
        for other in candidates:
            if other.index == outer.index or used[other.index]:
                continue
            center = get_contour_center(other.entity)
            if center is None:
                continue
            if is_point_inside_contour(center, outer.entity):
                inner.append(other.entity)
                used[other.index] = True

        used[outer.index] = True
        parts.append(Part(
            id=f"part-{len(parts)}",
            outer_contour=outer.entity,
            inner_contours=tuple(inner),
            bounding_box=outer.bbox,
            area=outer.area,
        ))

    logger.info(f"Grouped {len(candidates)} contours into {len(parts)} parts")
    for part in parts:
        logger.debug(f"{part.id}: outer={part.outer_contour.type}, inner={len(part.inner_contours)}")

    return parts
