"""
Laser cutting price list.

price = cut_length_m * cutting + pierce_points * pierce + sheet_area_m2 * metal

Rates are per material and thickness: cutting per meter of cut, pierce per
entry point, metal per square meter of sheet.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from error_handler import PricingNotFoundError


@dataclass(frozen=True)
class PricingInfo:
    material: str
    thickness: float
    cutting: float  # per 1 m of cut
    pierce: float   # per pierce point
    metal: float    # per 1 m² of sheet
    sheet_format: str


MATERIALS: Dict[str, Dict] = {
    'steel': {
        'name': 'Mild steel (S235)',
        'thicknesses': [0.5, 0.8, 1.0, 1.2, 1.5, 2.0, 3.0, 4.0, 5.0, 6.0, 8.0, 10.0, 12.0, 20.0, 25.0],
    },
    'stainless': {
        'name': 'Stainless steel',
        'thicknesses': [0.5, 0.8, 1.0, 1.2, 1.5, 2.0, 3.0, 4.0, 5.0],
    },
    'aluminum': {
        'name': 'Aluminum',
        'thicknesses': [0.5, 1.0, 1.5, 2.0, 3.0, 4.0, 5.0, 6.0],
    },
    'copper': {
        'name': 'Copper / Brass',
        'thicknesses': [0.5, 1.0, 1.5, 2.0, 3.0],
    },
}

PRICING_DATA: List[PricingInfo] = [
    PricingInfo('steel', 1.0, 40, 1.5, 672, '1.25x2.5'),
    PricingInfo('steel', 1.5, 47, 2, 998, '1.25x2.5'),
    PricingInfo('steel', 2.0, 57, 3, 1347, '1.25x2.5'),
    PricingInfo('steel', 3.0, 65, 4, 1945, '1.25x2.5'),
    PricingInfo('steel', 4.0, 70, 5, 1970, '1.5x3'),
    PricingInfo('steel', 5.0, 85, 6, 2447, '1.5x3'),
    PricingInfo('steel', 6.0, 95, 8, 2958, '1.5x3'),
    PricingInfo('steel', 8.0, 150, 10, 3740, '1.5x3'),
    PricingInfo('steel', 10.0, 205, 12, 4843, '1.5x3'),
    PricingInfo('steel', 12.0, 260, 14, 5969, '1.5x3'),
    PricingInfo('steel', 14.0, 340, 16, 7070, '1.5x3'),
    PricingInfo('steel', 16.0, 450, 20, 7898, '1.5x3'),
]


def get_pricing_by_thickness(thickness: float, material: str) -> Optional[PricingInfo]:
    for row in PRICING_DATA:
        if row.material == material and row.thickness == thickness:
            return row
    return None


def require_pricing(thickness: float, material: str) -> PricingInfo:
    pricing = get_pricing_by_thickness(thickness, material)
    if pricing is None:
        raise PricingNotFoundError(f"No price for {material} {thickness}mm")
    return pricing


def get_available_thicknesses(material: str) -> List[float]:
    return sorted(row.thickness for row in PRICING_DATA if row.material == material)


def is_material_available(material: str) -> bool:
    return any(row.material == material for row in PRICING_DATA)


def price_breakdown(cut_length_m: float, thickness: float, material: str,
                    pierce_points: int = 0, sheet_area: float = 0.0) -> Dict[str, float]:
    """Cost components of a quote; all zero when the combination is not priced"""
    pricing = get_pricing_by_thickness(thickness, material)
    if pricing is None:
        return {'cutting_cost': 0.0, 'pierce_cost': 0.0, 'metal_cost': 0.0, 'total': 0.0}

    cutting_cost = cut_length_m * pricing.cutting
    pierce_cost = pierce_points * pricing.pierce
    metal_cost = sheet_area * pricing.metal
    return {
        'cutting_cost': cutting_cost,
        'pierce_cost': pierce_cost,
        'metal_cost': metal_cost,
        'total': cutting_cost + pierce_cost + metal_cost,
    }


def calculate_dxf_price(cut_length_m: float, thickness: float, material: str,
                        pierce_points: int = 0, sheet_area: float = 0.0) -> float:
    return price_breakdown(cut_length_m, thickness, material, pierce_points, sheet_area)['total']
