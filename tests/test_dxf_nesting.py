"""Tests for the DXF to quote pipeline."""

import math

import pytest

from conftest import rect_record
from dxf_nesting import load_dxf_parts, main, process_nesting, quote_dxf
from nesting_engine import NestingConfig


def test_load_parts_from_dxf_text(dxf_text):
    parts, stats = load_dxf_parts(dxf_text)
    assert len(parts) == 1
    assert len(parts[0].inner_contours) == 1
    assert stats.closed == 2


def test_load_parts_from_records(square_with_hole_records):
    parts, stats = load_dxf_parts(square_with_hole_records + [{'type': 'TEXT'}])
    assert len(parts) == 1
    assert stats.skipped_open == 1


def test_process_nesting_returns_ranked_variants(square_with_hole_records):
    results = process_nesting(square_with_hole_records, thickness=2.0)
    assert len(results) == 3
    assert all(r.placed_count == 1 for r in results)
    assert results[0].sheet_width <= 1250


def test_quote_prices_selected_variant(square_with_hole_records):
    quote = quote_dxf(square_with_hole_records, thickness=2.0, material='steel')

    expected_cut = (400 + 2 * math.pi * 10) / 1000
    selected = quote.results[0]
    assert quote.selected_variant == 0
    assert quote.cut_length_m == pytest.approx(expected_cut)
    assert quote.pierce_points == 2
    assert quote.sheet_area_m2 == pytest.approx(selected.sheet_area)
    assert quote.price == pytest.approx(expected_cut * 57 + 2 * 3 + selected.sheet_area * 1347)
    assert quote.price == pytest.approx(quote.breakdown['total'])
    assert quote.unplaced_count == 0


def test_quote_clamps_variant_index(square_with_hole_records):
    assert quote_dxf(square_with_hole_records, 2.0, 'steel', variant=99).selected_variant == 2
    assert quote_dxf(square_with_hole_records, 2.0, 'steel', variant=-1).selected_variant == 0


def test_quote_for_empty_drawing_is_free():
    quote = quote_dxf([{'type': 'LINE', 'vertices': [{'x': 0, 'y': 0}, {'x': 5, 'y': 0}]}], 2.0, 'steel')
    assert quote.results == []
    assert quote.selected is None
    assert quote.price == 0.0
    assert quote.to_dict()['variant_count'] == 0


def test_quote_reports_unplaced_parts():
    config = NestingConfig(max_sheet_width=300, max_sheet_height=300)
    records = [rect_record(0, 0, 200, 200), rect_record(1000, 0, 200, 200)]
    quote = quote_dxf(records, 2.0, 'steel', config=config)
    assert quote.unplaced_count == 1
    assert quote.to_dict()['unplaced_count'] == 1


def test_quote_for_unpriced_material(square_with_hole_records):
    quote = quote_dxf(square_with_hole_records, 2.0, 'aluminum')
    assert len(quote.results) == 3
    assert quote.price == 0.0


def test_cli_prints_quote(dxf_document, tmp_path, monkeypatch, capsys):
    path = tmp_path / 'plate.dxf'
    dxf_document.saveas(path)
    monkeypatch.setattr('sys.argv', ['dxf_nesting.py', str(path), '2', 'steel'])

    assert main() == 0
    output = capsys.readouterr().out
    assert 'Variant 0' in output
    assert 'Price:' in output


def test_cli_usage(monkeypatch, capsys):
    monkeypatch.setattr('sys.argv', ['dxf_nesting.py'])
    assert main() == 1
    assert 'Usage' in capsys.readouterr().out


def test_unreadable_drawing_is_counted_and_raised():
    from error_handler import DxfReadError, error_handler

    error_handler.reset_error_counts()
    with pytest.raises(DxfReadError):
        quote_dxf("not a\ndxf drawing", 2.0, 'steel')
    assert error_handler.get_error_stats()['error_counts'] == {'dxf_error_DxfReadError': 1}
