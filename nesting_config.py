"""
Configuration management for nesting runs.

Sheet formats depend on material thickness: stock thicker than
THICK_SHEET_THRESHOLD_MM comes in the larger format. Spacing, margin, rotation
and metal cost defaults live in NestingSettings and can be overridden from the
environment (optionally loaded from nesting.env).
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

from dotenv import load_dotenv

from nesting_engine import DEFAULT_ROTATION_ANGLES, NestingConfig

logger = logging.getLogger(__name__)

load_dotenv('nesting.env')

THICK_SHEET_THRESHOLD_MM = 3.1


@dataclass(frozen=True)
class SheetFormat:
    max_sheet_width: float
    max_sheet_height: float


STANDARD_SHEET = SheetFormat(1250.0, 2500.0)
LARGE_SHEET = SheetFormat(1500.0, 3000.0)


def sheet_format_for_thickness(thickness: float) -> SheetFormat:
    """Largest stock sheet offered for a material thickness in mm"""
    if thickness > THICK_SHEET_THRESHOLD_MM:
        return LARGE_SHEET
    return STANDARD_SHEET


def _parse_angles(value: str):
    return tuple(float(a) for a in value.replace(';', ',').split(',') if a.strip())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


ENV_OVERRIDES = {
    'NESTING_MIN_SPACING_MM': ('min_spacing', float),
    'NESTING_EDGE_MARGIN_MM': ('edge_margin', float),
    'NESTING_METAL_COST_PER_M2': ('metal_cost_per_m2', float),
    'NESTING_ROTATION_ANGLES': ('rotation_angles', _parse_angles),
    'NESTING_EXACT_ROTATION_BOUNDS': ('exact_rotation_bounds', _parse_bool),
}


class NestingSettings:
    """Tunable nesting defaults shared by every run"""

    def __init__(self, environ=None):
        self.config = {
            'min_spacing': 10.0,            # mm between parts
            'edge_margin': 10.0,            # mm from the sheet edge
            'rotation_angles': DEFAULT_ROTATION_ANGLES,
            'metal_cost_per_m2': 100.0,
            'exact_rotation_bounds': False,
        }
        self.load_environment(os.environ if environ is None else environ)

    def load_environment(self, environ):
        """Apply NESTING_* overrides; unparsable values are logged and ignored"""
        for variable, (key, parse) in ENV_OVERRIDES.items():
            raw = environ.get(variable)
            if raw is None or raw == '':
                continue
            try:
                self.config[key] = parse(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid {variable}={raw!r}")

    def update_config(self, **kwargs):
        """Update configuration with provided values"""
        self.config.update(kwargs)

    def get_config(self):
        """Get current configuration"""
        return self.config.copy()


# Global settings instance
nesting_settings = NestingSettings()


def get_default_nesting_config(thickness: float,
                               sheet_policy: Callable[[float], SheetFormat] = sheet_format_for_thickness,
                               settings: Optional[NestingSettings] = None,
                               **overrides) -> NestingConfig:
    """
    Build the NestingConfig for a material thickness.

    The sheet size comes from `sheet_policy`; every field can be overridden
    through keyword arguments.
    """
    values = (settings or nesting_settings).get_config()
    sheet = sheet_policy(thickness)
    values['max_sheet_width'] = sheet.max_sheet_width
    values['max_sheet_height'] = sheet.max_sheet_height
    values.update(overrides)
    return NestingConfig(**values)
