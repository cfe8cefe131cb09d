"""Tests for sheet-format policy and nesting settings."""

import pytest

from nesting_config import (
    LARGE_SHEET, STANDARD_SHEET, NestingSettings, SheetFormat,
    get_default_nesting_config, sheet_format_for_thickness,
)


@pytest.mark.parametrize('thickness, expected', [
    (1.0, STANDARD_SHEET),
    (3.0, STANDARD_SHEET),
    (3.1, STANDARD_SHEET),
    (4.0, LARGE_SHEET),
    (16.0, LARGE_SHEET),
])
def test_sheet_format_for_thickness(thickness, expected):
    assert sheet_format_for_thickness(thickness) == expected


def test_settings_defaults_without_environment():
    config = NestingSettings(environ={}).get_config()
    assert config['min_spacing'] == 10.0
    assert config['edge_margin'] == 10.0
    assert config['exact_rotation_bounds'] is False


def test_settings_read_environment_overrides():
    settings = NestingSettings(environ={
        'NESTING_MIN_SPACING_MM': '5',
        'NESTING_EDGE_MARGIN_MM': '2.5',
        'NESTING_ROTATION_ANGLES': '0, 90;180',
        'NESTING_EXACT_ROTATION_BOUNDS': 'true',
        'NESTING_METAL_COST_PER_M2': '',
    })
    config = settings.get_config()
    assert config['min_spacing'] == 5.0
    assert config['edge_margin'] == 2.5
    assert config['rotation_angles'] == (0.0, 90.0, 180.0)
    assert config['exact_rotation_bounds'] is True
    assert config['metal_cost_per_m2'] == 100.0


def test_invalid_environment_values_are_ignored():
    settings = NestingSettings(environ={'NESTING_MIN_SPACING_MM': 'wide'})
    assert settings.get_config()['min_spacing'] == 10.0


def test_get_config_returns_a_copy():
    settings = NestingSettings(environ={})
    settings.get_config()['min_spacing'] = 99
    assert settings.get_config()['min_spacing'] == 10.0
    settings.update_config(min_spacing=4)
    assert settings.get_config()['min_spacing'] == 4


def test_default_config_uses_sheet_policy():
    settings = NestingSettings(environ={})
    thin = get_default_nesting_config(2.0, settings=settings)
    thick = get_default_nesting_config(6.0, settings=settings)
    assert (thin.max_sheet_width, thin.max_sheet_height) == (1250.0, 2500.0)
    assert (thick.max_sheet_width, thick.max_sheet_height) == (1500.0, 3000.0)


def test_default_config_accepts_custom_policy_and_overrides():
    settings = NestingSettings(environ={})
    config = get_default_nesting_config(
        2.0,
        sheet_policy=lambda thickness: SheetFormat(1000.0, 2000.0),
        settings=settings,
        min_spacing=3,
    )
    assert config.max_sheet_width == 1000.0
    assert config.min_spacing == 3
