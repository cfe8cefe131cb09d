#!/usr/bin/env python3
"""
Nesting API - upload a DXF, nest its parts on a sheet and get a priced quote
"""

import traceback
from typing import Any, Dict, List, Mapping, Optional

from flask import Blueprint, current_app, jsonify, request

from concurrency_manager import NestingWorker, RequestLimiter, limit_concurrent_requests
from dxf_nesting import DxfQuote, load_drawing, quote_drawing
from dxf_reader import read_dxf_records, read_uploaded_dxf
from error_handler import NestingInputError, QuoteError, error_handler, error_response_for
from nesting_config import get_default_nesting_config, sheet_format_for_thickness
from nesting_visualizer import NestingVisualizer, render_part_thumbnail
from pricing import MATERIALS, calculate_dxf_price, get_available_thicknesses, is_material_available

nesting_bp = Blueprint('nesting', __name__, url_prefix='/api/nesting')

EXTENSION_KEY = 'nesting'


def _extension() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


def _limiter() -> RequestLimiter:
    return _extension()['limiter']


def _allowed_file(filename: str) -> bool:
    extensions = current_app.config['ALLOWED_EXTENSIONS']
    return bool(filename) and '.' in filename and filename.rsplit('.', 1)[1].lower() in extensions


def _parse_thickness(value: Any) -> float:
    if value is None or value == '':
        raise NestingInputError("thickness is required")
    try:
        thickness = float(value)
    except (TypeError, ValueError):
        raise NestingInputError(f"thickness must be a number, got {value!r}") from None
    if thickness <= 0:
        raise NestingInputError(f"thickness must be positive, got {thickness}")
    return thickness


def _parse_variant(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        raise NestingInputError(f"variant must be an integer, got {value!r}") from None


def _parse_flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def _read_request() -> Dict[str, Any]:
    """Raw records and options from a multipart upload or a JSON body"""
    if 'file' in request.files:
        upload = request.files['file']
        if not _allowed_file(upload.filename):
            raise NestingInputError("Only .dxf files are accepted")
        options: Mapping = request.form
        records = read_uploaded_dxf(upload)
    else:
        options = request.get_json(silent=True) or {}
        if options.get('records') is not None:
            records = options['records']
            if not isinstance(records, list):
                raise NestingInputError("records must be a list of entity records")
        elif options.get('dxf_content'):
            records = read_dxf_records(str(options['dxf_content']).encode('utf-8'))
        else:
            raise NestingInputError("Provide a DXF file, dxf_content or records")

    return {
        'records': records,
        'thickness': _parse_thickness(options.get('thickness')),
        'material': str(options.get('material') or 'steel'),
        'variant': _parse_variant(options.get('variant')),
        'include_svg': _parse_flag(options.get('include_svg'), True),
        'include_thumbnails': _parse_flag(options.get('include_thumbnails'), False),
    }


def _variants_payload(quote: DxfQuote, thickness: float, material: str,
                      include_svg: bool) -> List[Dict[str, Any]]:
    visualizer = NestingVisualizer()
    variants = []
    for result in quote.results:
        variant = result.to_dict()
        variant['price'] = calculate_dxf_price(quote.cut_length_m, thickness, material,
                                               result.pierce_points, result.sheet_area)
        if include_svg:
            variant['svg_layout'] = visualizer.create_visualization(result).layout_svg
        variants.append(variant)
    return variants


@nesting_bp.route('/status', methods=['GET'])
def nesting_status():
    """Service status and available endpoints"""
    return jsonify({
        'success': True,
        'service': 'DXF nesting quote',
        'limiter': _limiter().get_status(),
        'endpoints': {
            'status': 'GET /api/nesting/status',
            'config': 'GET /api/nesting/config?thickness=<mm>',
            'materials': 'GET /api/nesting/materials',
            'calculate': 'POST /api/nesting/calculate',
        },
    })


@nesting_bp.route('/config', methods=['GET'])
def nesting_config():
    try:
        thickness = _parse_thickness(request.args.get('thickness'))
    except QuoteError as e:
        response, code = error_response_for(e)
        return jsonify(response), code

    config = get_default_nesting_config(thickness)
    sheet = sheet_format_for_thickness(thickness)
    return jsonify({
        'success': True,
        'thickness': thickness,
        'sheet_format': f"{sheet.max_sheet_width:.0f}x{sheet.max_sheet_height:.0f}",
        'config': config.to_dict(),
    })


@nesting_bp.route('/materials', methods=['GET'])
def nesting_materials():
    materials = []
    for key, material in MATERIALS.items():
        materials.append({
            'id': key,
            'name': material['name'],
            'thicknesses': material['thicknesses'],
            'priced': is_material_available(key),
            'priced_thicknesses': get_available_thicknesses(key),
        })
    return jsonify({'success': True, 'materials': materials})


@nesting_bp.route('/calculate', methods=['POST'])
@limit_concurrent_requests(_limiter)
def calculate_nesting_quote():
    """
    Nest the parts of a DXF drawing and price every layout variant.

    Accepts a multipart `file` upload or a JSON body with `dxf_content` (DXF
    text) or `records` (raw entity records), plus `thickness` (mm), `material`,
    `variant`, `include_svg` and `include_thumbnails`.
    """
    try:
        params = _read_request()
        current_app.logger.info(f"Nesting request: {len(params['records'])} records, "
                                f"{params['material']} {params['thickness']}mm")

        drawing = load_drawing(params['records'])
        max_parts = current_app.config['MAX_PARTS_PER_FILE']
        if len(drawing.parts) > max_parts:
            raise NestingInputError(f"Drawing has {len(drawing.parts)} parts, the limit is {max_parts}")

        worker: NestingWorker = _extension()['worker']
        quote = worker.run(quote_drawing, drawing, params['thickness'], params['material'],
                           params['variant'], timeout=current_app.config['NESTING_TIMEOUT_SECONDS'])

        if quote.unplaced_count:
            current_app.logger.warning(f"{quote.unplaced_count} parts did not fit the sheet")

        payload = {
            'success': True,
            'variants': _variants_payload(quote, params['thickness'], params['material'],
                                          params['include_svg']),
            'selected_variant': quote.selected_variant,
            'cut_length_m': quote.cut_length_m,
            'pierce_points': quote.pierce_points,
            'extraction': quote.extraction_stats.to_dict(),
            'price': quote.price,
            'breakdown': quote.breakdown,
            'pricing_available': is_material_available(params['material'])
                and params['thickness'] in get_available_thicknesses(params['material']),
        }
        if params['include_thumbnails']:
            payload['parts'] = [{'id': part.id, 'thumbnail': render_part_thumbnail(part)}
                                for part in drawing.parts]

        current_app.logger.info(f"Nesting completed: {len(quote.results)} variants, "
                                f"price {quote.price:.2f}")
        return jsonify(payload)

    except QuoteError as e:
        error_handler.log_error(e.error_type, e, {'endpoint': 'calculate'})
        response, code = error_response_for(e)
        return jsonify(response), code

    except Exception as e:
        current_app.logger.error(f"Nesting calculation failed: {e}")
        current_app.logger.error(traceback.format_exc())
        error_handler.log_error('processing_error', e, {'endpoint': 'calculate'})
        response, code = error_response_for(e)
        return jsonify(response), code


def register_nesting_api(app, limiter: Optional[RequestLimiter] = None,
                         worker: Optional[NestingWorker] = None):
    """Register the nesting API and its request limiter and worker pool with the Flask app"""
    max_concurrent = app.config.get('MAX_CONCURRENT_NESTING', 4)
    app.config.setdefault('MAX_PARTS_PER_FILE', 500)
    app.config.setdefault('NESTING_TIMEOUT_SECONDS', 30)
    app.config.setdefault('ALLOWED_EXTENSIONS', {'dxf'})
    app.extensions[EXTENSION_KEY] = {
        'limiter': limiter or RequestLimiter(max_concurrent=max_concurrent),
        'worker': worker or NestingWorker(max_workers=max_concurrent,
                                          timeout=app.config['NESTING_TIMEOUT_SECONDS']),
    }
    app.register_blueprint(nesting_bp)
    app.logger.info("Nesting API registered")
