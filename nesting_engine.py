#!/usr/bin/env python3
"""
Contour Nesting Engine
Places DXF parts on a rectangular sheet using a greedy bottom-left heuristic,
repeated under several part-ordering strategies, and ranks the layouts.

Parts are packed by their (rotated) bounding boxes:
  - candidate positions are the sheet origin plus positions derived from every
    part already placed (right of it, below it, diagonal, and two backfill
    positions to its left/above)
  - a candidate is valid when it stays inside the edge margin and keeps
    min_spacing to every placed box
  - the valid (rotation, position) pair with the lowest 2*y + x wins
A part with no valid position is recorded as unplaced; it is never retried.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from error_handler import NestingConfigError, NestingInputError
from geometry import BoundingBox, Point, check_bounding_box_collision, rotate_bounding_box
from part_grouping import Part

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_ANGLES = (0, 45, 90, 135, 180, 225, 270, 315)
DEFAULT_TOP_VARIANTS = 3
MM2_PER_M2 = 1_000_000


@dataclass(frozen=True)
class NestingConfig:
    """Immutable settings for one nesting run; lengths in mm"""
    min_spacing: float = 10.0
    edge_margin: float = 10.0
    max_sheet_width: float = 1250.0
    max_sheet_height: float = 2500.0
    rotation_angles: Tuple[float, ...] = DEFAULT_ROTATION_ANGLES
    metal_cost_per_m2: float = 100.0
    exact_rotation_bounds: bool = False

    def __post_init__(self):
        # accept any sequence, store a tuple
        object.__setattr__(self, 'rotation_angles', tuple(self.rotation_angles))

        if self.min_spacing < 0:
            raise NestingConfigError(f"min_spacing must be >= 0, got {self.min_spacing}")
        if self.edge_margin < 0:
            raise NestingConfigError(f"edge_margin must be >= 0, got {self.edge_margin}")
        if self.max_sheet_width <= 0 or self.max_sheet_height <= 0:
            raise NestingConfigError(
                f"sheet size must be positive, got {self.max_sheet_width}x{self.max_sheet_height}")
        if not self.rotation_angles:
            raise NestingConfigError("at least one rotation angle is required")
        if self.metal_cost_per_m2 < 0:
            raise NestingConfigError(f"metal_cost_per_m2 must be >= 0, got {self.metal_cost_per_m2}")

    def to_dict(self):
        return {
            'min_spacing': self.min_spacing,
            'edge_margin': self.edge_margin,
            'max_sheet_width': self.max_sheet_width,
            'max_sheet_height': self.max_sheet_height,
            'rotation_angles': list(self.rotation_angles),
            'metal_cost_per_m2': self.metal_cost_per_m2,
            'exact_rotation_bounds': self.exact_rotation_bounds,
        }


@dataclass(frozen=True)
class PlacedPart:
    """A part placed on the sheet; (x, y) is the top-left of its rotated box"""
    part: Part
    x: float
    y: float
    rotation: float
    bounding_box: BoundingBox

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self):
        return {
            'part_id': self.part.id,
            'x': self.x,
            'y': self.y,
            'rotation': self.rotation,
            'width': self.bounding_box.width,
            'height': self.bounding_box.height,
            'inner_contours': len(self.part.inner_contours),
        }


@dataclass(frozen=True)
class NestingResult:
    """One candidate sheet layout; areas in m²"""
    sheet_width: float
    sheet_height: float
    placed_parts: Tuple[PlacedPart, ...]
    unplaced_parts: Tuple[Part, ...]
    efficiency: float
    sheet_area: float
    used_area: float
    metal_cost: float
    pierce_points: int
    strategy: str = ""

    @property
    def placed_count(self) -> int:
        return len(self.placed_parts)

    @property
    def all_parts_placed(self) -> bool:
        return not self.unplaced_parts

    def to_dict(self):
        return {
            'strategy': self.strategy,
            'sheet_width': self.sheet_width,
            'sheet_height': self.sheet_height,
            'efficiency': self.efficiency,
            'sheet_area': self.sheet_area,
            'used_area': self.used_area,
            'metal_cost': self.metal_cost,
            'pierce_points': self.pierce_points,
            'placed_count': self.placed_count,
            'unplaced_count': len(self.unplaced_parts),
            'all_parts_placed': self.all_parts_placed,
            'placed_parts': [p.to_dict() for p in self.placed_parts],
            'unplaced_parts': [p.id for p in self.unplaced_parts],
        }


class SortStrategy(Enum):
    """Part orderings tried by the engine, all descending"""
    AREA_DESC = "area-desc"
    WIDTH_DESC = "width-desc"
    HEIGHT_DESC = "height-desc"
    PERIMETER_DESC = "perimeter-desc"


SORT_KEYS: Dict[SortStrategy, Callable[[Part], float]] = {
    SortStrategy.AREA_DESC: lambda p: p.area,
    SortStrategy.WIDTH_DESC: lambda p: p.bounding_box.width,
    SortStrategy.HEIGHT_DESC: lambda p: p.bounding_box.height,
    SortStrategy.PERIMETER_DESC: lambda p: 2 * (p.bounding_box.width + p.bounding_box.height),
}


def _candidate_positions(placed_parts: Sequence[PlacedPart], rotated: BoundingBox,
                         config: NestingConfig) -> List[Point]:
    margin = config.edge_margin
    gap = config.min_spacing
    positions = [Point(margin, margin)]

    for placed in placed_parts:
        right = placed.x + placed.bounding_box.width + gap
        below = placed.y + placed.bounding_box.height + gap
        positions.append(Point(right, placed.y))
        positions.append(Point(placed.x, below))
        positions.append(Point(right, below))
        # backfill gaps left of / above earlier placements
        positions.append(Point(max(margin, placed.x - rotated.width - gap), placed.y))
        positions.append(Point(placed.x, max(margin, placed.y - rotated.height - gap)))

    return positions


def _inside_sheet(pos: Point, box: BoundingBox, config: NestingConfig) -> bool:
    margin = config.edge_margin
    return (pos.x >= margin and
            pos.y >= margin and
            pos.x + box.width + margin <= config.max_sheet_width and
            pos.y + box.height + margin <= config.max_sheet_height)


def find_best_position(part: Part, placed_parts: Sequence[PlacedPart],
                       config: NestingConfig) -> Optional[PlacedPart]:
    """Lowest-scoring valid placement of `part` over all rotations, or None"""
    best = None
    best_score = float('inf')

    for rotation in config.rotation_angles:
        rotated = rotate_bounding_box(part.bounding_box, rotation, exact=config.exact_rotation_bounds)

        if (rotated.width + 2 * config.edge_margin > config.max_sheet_width or
                rotated.height + 2 * config.edge_margin > config.max_sheet_height):
            continue

        for pos in _candidate_positions(placed_parts, rotated, config):
            if not _inside_sheet(pos, rotated, config):
                continue

            collides = any(
                check_bounding_box_collision(placed.bounding_box, placed.position,
                                             rotated, pos, config.min_spacing)
                for placed in placed_parts
            )
            if collides:
                continue

            # prefer filling rows top to bottom, then left to right
            score = 2 * pos.y + pos.x
            if score < best_score:
                best_score = score
                best = PlacedPart(part=part, x=pos.x, y=pos.y, rotation=rotation,
                                  bounding_box=rotated)

    return best


def pack_parts(parts: Sequence[Part], config: NestingConfig,
               strategy: SortStrategy = SortStrategy.AREA_DESC) -> NestingResult:
    """Pack parts onto one sheet in the order given by `strategy`"""
    sort_key = SORT_KEYS[strategy]
    ordered = sorted(parts, key=lambda p: -sort_key(p))

    placed_parts: List[PlacedPart] = []
    unplaced_parts: List[Part] = []

    for part in ordered:
        placement = find_best_position(part, placed_parts, config)
        if placement is None:
            unplaced_parts.append(part)
            logger.warning(f"[{strategy.value}] Could not place part: {part.id}")
        else:
            placed_parts.append(placement)

    return _summarize(placed_parts, unplaced_parts, config, strategy.value)


def _summarize(placed_parts: List[PlacedPart], unplaced_parts: List[Part],
               config: NestingConfig, strategy_name: str) -> NestingResult:
    max_x = config.edge_margin
    max_y = config.edge_margin
    for placed in placed_parts:
        max_x = max(max_x, placed.x + placed.bounding_box.width)
        max_y = max(max_y, placed.y + placed.bounding_box.height)

    sheet_width = min(max_x + config.edge_margin, config.max_sheet_width)
    sheet_height = min(max_y + config.edge_margin, config.max_sheet_height)

    sheet_area = sheet_width * sheet_height / MM2_PER_M2
    used_area = sum(placed.part.area for placed in placed_parts) / MM2_PER_M2
    efficiency = used_area / sheet_area * 100 if sheet_area > 0 else 0.0

    return NestingResult(
        sheet_width=sheet_width,
        sheet_height=sheet_height,
        placed_parts=tuple(placed_parts),
        unplaced_parts=tuple(unplaced_parts),
        efficiency=efficiency,
        sheet_area=sheet_area,
        used_area=used_area,
        metal_cost=sheet_area * config.metal_cost_per_m2,
        pierce_points=sum(placed.part.pierce_points for placed in placed_parts),
        strategy=strategy_name,
    )


def rank_results(results: Sequence[NestingResult]) -> List[NestingResult]:
    """Most placed parts first, then highest efficiency"""
    return sorted(results, key=lambda r: (-r.placed_count, -r.efficiency))


class ContourNestingEngine:
    """Runs the packing under every ordering strategy and keeps the best layouts"""

    def __init__(self, config: NestingConfig,
                 strategies: Optional[Sequence[SortStrategy]] = None,
                 top_n: int = DEFAULT_TOP_VARIANTS):
        self.config = config
        self.strategies = list(strategies) if strategies else list(SortStrategy)
        self.top_n = top_n

    def optimize_nesting(self, parts: Sequence[Part]) -> List[NestingResult]:
        if parts is None:
            raise NestingInputError("parts list is required")

        if len(parts) == 0:
            logger.warning("No parts to nest")
            return []

        start_time = time.time()
        logger.info(f"Starting nesting with {len(parts)} parts on "
                    f"{self.config.max_sheet_width:.0f}x{self.config.max_sheet_height:.0f}mm")

        results = []
        for strategy in self.strategies:
            logger.debug(f"Trying strategy: {strategy.value}")
            results.append(pack_parts(parts, self.config, strategy))

        ranked = rank_results(results)
        for i, result in enumerate(ranked):
            logger.info(f"Variant {i} ({result.strategy}): {result.placed_count} parts, "
                        f"efficiency: {result.efficiency:.1f}%")
        logger.info(f"Nesting finished in {time.time() - start_time:.2f}s")

        return ranked[:self.top_n]


def calculate_nesting(parts: Sequence[Part], config: NestingConfig) -> List[NestingResult]:
    """Top three layouts for `parts` across all ordering strategies"""
    return ContourNestingEngine(config).optimize_nesting(parts)
