#!/usr/bin/env python3
"""
DXF nesting quote pipeline.

raw DXF -> closed contours -> parts (outer + holes) -> ranked sheet layouts -> price

Usage:
    python dxf_nesting.py drawing.dxf [thickness_mm] [material]
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from dxf_extraction import ExtractionStats, extract_contours
from dxf_reader import DxfSource, read_dxf_records
from error_handler import handle_errors, log_performance
from geometry import calculate_cut_length
from nesting_config import get_default_nesting_config
from nesting_engine import NestingConfig, NestingResult, calculate_nesting
from part_grouping import Part, group_contours_into_parts
from pricing import price_breakdown

logger = logging.getLogger(__name__)

RecordSource = Union[DxfSource, Sequence[Mapping]]


@dataclass
class DrawingParts:
    parts: List[Part]
    stats: ExtractionStats
    cut_length_m: float


@dataclass
class DxfQuote:
    """Priced nesting outcome for one drawing"""
    results: List[NestingResult]
    selected_variant: int
    cut_length_m: float
    pierce_points: int
    sheet_area_m2: float
    efficiency: float
    price: float
    breakdown: Dict[str, float] = field(default_factory=dict)
    extraction_stats: Optional[ExtractionStats] = None

    @property
    def selected(self) -> Optional[NestingResult]:
        if not self.results:
            return None
        return self.results[self.selected_variant]

    @property
    def unplaced_count(self) -> int:
        selected = self.selected
        return len(selected.unplaced_parts) if selected else 0

    def to_dict(self):
        return {
            'selected_variant': self.selected_variant,
            'variant_count': len(self.results),
            'cut_length_m': self.cut_length_m,
            'pierce_points': self.pierce_points,
            'sheet_area_m2': self.sheet_area_m2,
            'efficiency': self.efficiency,
            'unplaced_count': self.unplaced_count,
            'price': self.price,
            'breakdown': dict(self.breakdown),
            'extraction': self.extraction_stats.to_dict() if self.extraction_stats else {},
        }


def _records_from(source: RecordSource) -> Sequence[Mapping]:
    if isinstance(source, (str, bytes)) or hasattr(source, '__fspath__'):
        return read_dxf_records(source)
    return source


def load_drawing(source: RecordSource) -> DrawingParts:
    """Parts, extraction counts and cut length of a drawing or of raw records"""
    extraction = extract_contours(_records_from(source))
    parts = group_contours_into_parts(extraction.contours)
    return DrawingParts(parts, extraction.stats, calculate_cut_length(extraction.contours))


def load_dxf_parts(source: RecordSource) -> Tuple[List[Part], ExtractionStats]:
    drawing = load_drawing(source)
    return drawing.parts, drawing.stats


def process_nesting(source: RecordSource, thickness: float,
                    config: Optional[NestingConfig] = None) -> List[NestingResult]:
    """Ranked layouts for a drawing at the given material thickness"""
    parts, _ = load_dxf_parts(source)
    return calculate_nesting(parts, config or get_default_nesting_config(thickness))


@handle_errors('processing_error')
@log_performance
def quote_dxf(source: RecordSource, thickness: float, material: str, variant: int = 0,
              config: Optional[NestingConfig] = None) -> DxfQuote:
    """
    Nest a drawing and price the chosen layout.

    `variant` indexes the ranked layouts and is clamped to the available range.
    A drawing without closed contours yields a quote without layouts and a
    zero price.
    """
    return quote_drawing(load_drawing(source), thickness, material, variant, config)


def quote_drawing(drawing: DrawingParts, thickness: float, material: str, variant: int = 0,
                  config: Optional[NestingConfig] = None) -> DxfQuote:
    """Quote for a drawing that has already been split into parts"""
    results = calculate_nesting(drawing.parts, config or get_default_nesting_config(thickness))

    if not results:
        logger.warning("Nothing to nest: no closed contours in drawing")
        return DxfQuote(results=[], selected_variant=0, cut_length_m=drawing.cut_length_m,
                        pierce_points=0, sheet_area_m2=0.0, efficiency=0.0, price=0.0,
                        breakdown=price_breakdown(0.0, thickness, material),
                        extraction_stats=drawing.stats)

    selected_index = min(max(variant, 0), len(results) - 1)
    selected = results[selected_index]
    if selected.unplaced_parts:
        logger.warning(f"{len(selected.unplaced_parts)} parts do not fit on a "
                       f"{selected.sheet_width:.0f}x{selected.sheet_height:.0f}mm sheet")

    breakdown = price_breakdown(drawing.cut_length_m, thickness, material,
                                selected.pierce_points, selected.sheet_area)
    return DxfQuote(
        results=results,
        selected_variant=selected_index,
        cut_length_m=drawing.cut_length_m,
        pierce_points=selected.pierce_points,
        sheet_area_m2=selected.sheet_area,
        efficiency=selected.efficiency,
        price=breakdown['total'],
        breakdown=breakdown,
        extraction_stats=drawing.stats,
    )


def main():
    if len(sys.argv) < 2:
        print("Usage: python dxf_nesting.py drawing.dxf [thickness_mm] [material]")
        return 1

    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_path = sys.argv[1]
    thickness = float(sys.argv[2]) if len(sys.argv) > 2 else 1.0
    material = sys.argv[3] if len(sys.argv) > 3 else 'steel'

    quote = quote_dxf(file_path, thickness, material)
    print(f"Cut length: {quote.cut_length_m:.2f} m")
    for i, result in enumerate(quote.results):
        print(f"Variant {i} ({result.strategy}): {result.placed_count} placed, "
              f"{len(result.unplaced_parts)} unplaced, "
              f"{result.sheet_width:.0f}x{result.sheet_height:.0f}mm, "
              f"efficiency {result.efficiency:.1f}%, pierce points {result.pierce_points}")
    print(f"Price: {quote.price:.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
