"""
routes/cells.py — Cell planting API routes.

Provides:
- GET  /cells/<id>                    — Cell with current plant and history
- POST /cells/<id>/assign             — Plant a catalog plant ({"plant_id": ...})
- POST /cells/<id>/remove             — Clear the cell ({"harvested_date": ISO, optional})
- GET  /cells/<id>/history            — Planting history
- GET  /cells/<id>/rotation           — Rotation preview (?family=Solanaceae)
- GET  /beds/<id>/companions          — Companion preview (?row=&column=&plant_id=)

Assign responses carry advisory rotation warnings even on success.
"""

from datetime import datetime

from flask import Blueprint, request, jsonify

from routes.common import get_store, get_manager, error_response, bad_request, to_json
from utils.validators import parse_int, validate_coordinates

cells_bp = Blueprint('cells', __name__)


@cells_bp.route('/cells/<int:cell_id>')
def get_cell(cell_id):
    cell, error = get_store().get_cell_by_id(cell_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'cell': to_json(cell)})


@cells_bp.route('/cells/<int:cell_id>/assign', methods=['POST'])
def assign_plant(cell_id):
    data = request.get_json(silent=True) or {}
    plant_id = str(data.get('plant_id') or '').strip()
    if not plant_id:
        return bad_request("plant_id is required.")

    outcome, error = get_manager().assign_plant(cell_id, plant_id)
    if error:
        return error_response(error)
    return jsonify({
        'success': True,
        'cell': to_json(outcome.cell),
        'companion': to_json(outcome.companion),
        'rotation': to_json(outcome.rotation),
        'warnings': outcome.rotation.recommendations,
    })


@cells_bp.route('/cells/<int:cell_id>/remove', methods=['POST'])
def remove_plant(cell_id):
    data = request.get_json(silent=True) or {}
    harvested_date = None
    if data.get('harvested_date'):
        try:
            harvested_date = datetime.fromisoformat(data['harvested_date'])
        except (TypeError, ValueError):
            return bad_request("harvested_date must be an ISO 8601 date.")
        # Stored dates are naive local time
        if harvested_date.tzinfo is not None:
            harvested_date = harvested_date.astimezone().replace(tzinfo=None)

    cell, error = get_manager().remove_plant(cell_id, harvested_date)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'cell': to_json(cell)})


@cells_bp.route('/cells/<int:cell_id>/history')
def cell_history(cell_id):
    history, error = get_store().get_cell_history(cell_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'history': to_json(history)})


@cells_bp.route('/cells/<int:cell_id>/rotation')
def rotation_preview(cell_id):
    family = request.args.get('family', '').strip()
    if not family:
        return bad_request("family is required.")

    result, error = get_manager().validate_rotation(cell_id, family)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'rotation': to_json(result)})


@cells_bp.route('/beds/<int:bed_id>/companions')
def companion_preview(bed_id):
    row, row_error = parse_int(request.args.get('row'), 'row')
    column, column_error = parse_int(request.args.get('column'), 'column')
    plant_id = request.args.get('plant_id', '').strip()

    errors = [e for e in (row_error, column_error) if e]
    if not errors:
        errors = validate_coordinates(row, column)
    if not plant_id:
        errors.append("plant_id is required.")
    if errors:
        return bad_request(*errors)

    result, error = get_manager().validate_companion_planting(bed_id, row, column, plant_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'companion': to_json(result)})
