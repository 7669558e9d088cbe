"""
routes/gardens.py — Garden hierarchy API routes.

Provides:
- GET    /gardens                         — List gardens (optional ?owner=)
- POST   /gardens                         — Create a garden
- GET    /gardens/<id>                    — Garden with areas, beds, decorations
- PUT    /gardens/<id>                    — Update a garden
- DELETE /gardens/<id>                    — Delete a garden and everything in it
- GET    /gardens/<id>/statistics         — Bed/cell counts and plants by family
- GET    /gardens/<id>/areas              — List areas
- POST   /gardens/<id>/areas              — Add an area
- GET    /areas/<id>                      — Area with beds and decorations
- PUT    /areas/<id>                      — Update an area
- DELETE /areas/<id>                      — Delete an area
- GET    /areas/<id>/beds                 — List beds
- POST   /areas/<id>/beds                 — Add a bed (provisions its grid)
- GET    /beds/<id>                       — Bed details
- PUT    /beds/<id>                       — Update a bed (grid size is fixed)
- POST   /beds/<id>/move                  — Move a bed within its area
- DELETE /beds/<id>                       — Delete a bed with its cells
- GET    /beds/<id>/occupancy             — Occupied/empty cell counts
- GET    /beds/<id>/cells                 — Cells (optional ?state=occupied|empty)
- GET    /areas/<id>/decorations          — List decorations
- POST   /areas/<id>/decorations          — Add a decoration
- PUT    /decorations/<id>                — Update a decoration
- DELETE /decorations/<id>                — Delete a decoration
- GET    /gardens/<id>/rotation-plans     — List rotation plans, newest season first
- POST   /gardens/<id>/rotation-plans     — Add a rotation plan with its bed groups
- GET    /rotation-plans/<id>             — Rotation plan details
- PUT    /rotation-plans/<id>             — Update a plan (a "groups" list replaces all groups)
- DELETE /rotation-plans/<id>             — Delete a rotation plan
"""

from flask import Blueprint, current_app, request, jsonify

from models import Area, Bed, Decoration, Garden, RotationGroup, RotationPlan
from routes.common import get_store, error_response, bad_request, to_json
from utils.backup import backup_db
from utils.validators import parse_float, parse_int

gardens_bp = Blueprint('gardens', __name__)

GARDEN_TEXT = ('owner', 'name', 'location', 'notes')
AREA_TEXT = ('name', 'area_type', 'sun_exposure', 'soil_type', 'notes')
AREA_NUMBERS = ('pos_x', 'pos_y', 'width', 'height', 'soil_ph')
BED_TEXT = ('name', 'bed_type', 'sun_exposure', 'notes')
BED_NUMBERS = ('pos_x', 'pos_y', 'width', 'height', 'soil_ph')
BED_INTEGERS = ('grid_rows', 'grid_columns')
DECORATION_TEXT = ('decoration_type', 'name', 'notes')
DECORATION_NUMBERS = ('pos_x', 'pos_y', 'width', 'height', 'rotation')
ROTATION_PLAN_TEXT = ('plan_name', 'season_type', 'notes')


# ========================================
# Helpers
# ========================================

def _payload():
    return request.get_json(silent=True) or {}


def _apply_payload(obj, data, text=(), numbers=(), integers=()):
    """Copy known fields from a JSON payload onto a model. Returns errors."""
    errors = []
    for key in text:
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                errors.append(f"{key} must be text.")
                continue
            setattr(obj, key, value.strip() if isinstance(value, str) else value)
    for key in numbers:
        if key in data:
            value, error = parse_float(data[key], key, default=None)
            if error:
                errors.append(error)
            else:
                setattr(obj, key, value)
    for key in integers:
        if key in data:
            value, error = parse_int(data[key], key)
            if error:
                errors.append(error)
            else:
                setattr(obj, key, value)
    return errors


def _respond(value, error, key, status=200):
    if error:
        return error_response(error)
    return jsonify({'success': True, key: to_json(value)}), status


# ========================================
# Gardens
# ========================================

@gardens_bp.route('/gardens', methods=['GET'])
def list_gardens():
    gardens, error = get_store().list_gardens(request.args.get('owner'))
    return _respond(gardens, error, 'gardens')


@gardens_bp.route('/gardens', methods=['POST'])
def create_garden():
    garden = Garden()
    errors = _apply_payload(garden, _payload(), text=GARDEN_TEXT)
    if errors:
        return bad_request(*errors)
    created, error = get_store().create_garden(garden)
    return _respond(created, error, 'garden', 201)


@gardens_bp.route('/gardens/<int:garden_id>', methods=['GET'])
def get_garden(garden_id):
    garden, error = get_store().get_garden(garden_id)
    return _respond(garden, error, 'garden')


@gardens_bp.route('/gardens/<int:garden_id>', methods=['PUT'])
def update_garden(garden_id):
    store = get_store()
    garden, error = store.get_garden(garden_id)
    if error:
        return error_response(error)
    garden.areas = []
    errors = _apply_payload(garden, _payload(), text=GARDEN_TEXT)
    if errors:
        return bad_request(*errors)
    updated, error = store.update_garden(garden)
    return _respond(updated, error, 'garden')


@gardens_bp.route('/gardens/<int:garden_id>', methods=['DELETE'])
def delete_garden(garden_id):
    # Auto-backup before a cascading delete
    backup_db('pre_delete_garden', current_app.config['DATABASE'])
    deleted, error = get_store().delete_garden(garden_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'deleted': deleted})


@gardens_bp.route('/gardens/<int:garden_id>/statistics')
def garden_statistics(garden_id):
    stats, error = get_store().get_garden_statistics(garden_id)
    return _respond(stats, error, 'statistics')


# ========================================
# Areas
# ========================================

@gardens_bp.route('/gardens/<int:garden_id>/areas', methods=['GET'])
def list_areas(garden_id):
    areas, error = get_store().list_areas(garden_id)
    return _respond(areas, error, 'areas')


@gardens_bp.route('/gardens/<int:garden_id>/areas', methods=['POST'])
def create_area(garden_id):
    area = Area(garden_id=garden_id)
    errors = _apply_payload(area, _payload(), text=AREA_TEXT, numbers=AREA_NUMBERS)
    if errors:
        return bad_request(*errors)
    created, error = get_store().create_area(area)
    return _respond(created, error, 'area', 201)


@gardens_bp.route('/areas/<int:area_id>', methods=['GET'])
def get_area(area_id):
    area, error = get_store().get_area(area_id)
    return _respond(area, error, 'area')


@gardens_bp.route('/areas/<int:area_id>', methods=['PUT'])
def update_area(area_id):
    store = get_store()
    area, error = store.get_area(area_id)
    if error:
        return error_response(error)
    area.beds, area.decorations = [], []
    errors = _apply_payload(area, _payload(), text=AREA_TEXT, numbers=AREA_NUMBERS)
    if errors:
        return bad_request(*errors)
    updated, error = store.update_area(area)
    return _respond(updated, error, 'area')


@gardens_bp.route('/areas/<int:area_id>', methods=['DELETE'])
def delete_area(area_id):
    deleted, error = get_store().delete_area(area_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'deleted': deleted})


# ========================================
# Beds
# ========================================

@gardens_bp.route('/areas/<int:area_id>/beds', methods=['GET'])
def list_beds(area_id):
    beds, error = get_store().list_beds(area_id)
    return _respond(beds, error, 'beds')


@gardens_bp.route('/areas/<int:area_id>/beds', methods=['POST'])
def create_bed(area_id):
    data = _payload()
    missing = [k for k in BED_INTEGERS if k not in data]
    if missing:
        return bad_request(*(f"{k} is required." for k in missing))
    bed = Bed(area_id=area_id)
    errors = _apply_payload(bed, data, text=BED_TEXT, numbers=BED_NUMBERS, integers=BED_INTEGERS)
    if errors:
        return bad_request(*errors)
    created, error = get_store().create_bed(bed)
    return _respond(created, error, 'bed', 201)


@gardens_bp.route('/beds/<int:bed_id>', methods=['GET'])
def get_bed(bed_id):
    bed, error = get_store().get_bed(bed_id)
    return _respond(bed, error, 'bed')


@gardens_bp.route('/beds/<int:bed_id>', methods=['PUT'])
def update_bed(bed_id):
    store = get_store()
    bed, error = store.get_bed(bed_id)
    if error:
        return error_response(error)
    errors = _apply_payload(bed, _payload(), text=BED_TEXT, numbers=BED_NUMBERS, integers=BED_INTEGERS)
    if errors:
        return bad_request(*errors)
    updated, error = store.update_bed(bed)
    return _respond(updated, error, 'bed')


@gardens_bp.route('/beds/<int:bed_id>/move', methods=['POST'])
def move_bed(bed_id):
    data = _payload()
    x, x_error = parse_float(data.get('x'), 'x')
    y, y_error = parse_float(data.get('y'), 'y')
    if x_error or y_error or x is None or y is None:
        return bad_request("x and y must both be numbers.")
    bed, error = get_store().move_bed(bed_id, x, y)
    return _respond(bed, error, 'bed')


@gardens_bp.route('/beds/<int:bed_id>', methods=['DELETE'])
def delete_bed(bed_id):
    deleted, error = get_store().delete_bed(bed_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'deleted': deleted})


@gardens_bp.route('/beds/<int:bed_id>/occupancy')
def bed_occupancy(bed_id):
    occupancy, error = get_store().get_bed_occupancy(bed_id)
    return _respond(occupancy, error, 'occupancy')


@gardens_bp.route('/beds/<int:bed_id>/cells')
def list_cells(bed_id):
    store = get_store()
    state = request.args.get('state', '')
    if state == 'occupied':
        cells, error = store.list_occupied_cells(bed_id)
    elif state == 'empty':
        cells, error = store.list_empty_cells(bed_id)
    elif state:
        return bad_request("state must be 'occupied' or 'empty'.")
    else:
        cells, error = store.list_cells(bed_id)
    return _respond(cells, error, 'cells')


# ========================================
# Decorations
# ========================================

@gardens_bp.route('/areas/<int:area_id>/decorations', methods=['GET'])
def list_decorations(area_id):
    decorations, error = get_store().list_decorations(area_id)
    return _respond(decorations, error, 'decorations')


@gardens_bp.route('/areas/<int:area_id>/decorations', methods=['POST'])
def create_decoration(area_id):
    decoration = Decoration(area_id=area_id)
    errors = _apply_payload(decoration, _payload(), text=DECORATION_TEXT, numbers=DECORATION_NUMBERS)
    if errors:
        return bad_request(*errors)
    created, error = get_store().create_decoration(decoration)
    return _respond(created, error, 'decoration', 201)


@gardens_bp.route('/decorations/<int:decoration_id>', methods=['PUT'])
def update_decoration(decoration_id):
    store = get_store()
    decoration, error = store.get_decoration(decoration_id)
    if error:
        return error_response(error)
    errors = _apply_payload(decoration, _payload(), text=DECORATION_TEXT, numbers=DECORATION_NUMBERS)
    if errors:
        return bad_request(*errors)
    updated, error = store.update_decoration(decoration)
    return _respond(updated, error, 'decoration')


@gardens_bp.route('/decorations/<int:decoration_id>', methods=['DELETE'])
def delete_decoration(decoration_id):
    deleted, error = get_store().delete_decoration(decoration_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'deleted': deleted})


# ========================================
# Rotation plans
# ========================================

def _apply_rotation_payload(plan, data):
    """Copy plan fields and groups from a JSON payload. Returns errors."""
    errors = _apply_payload(plan, data, text=ROTATION_PLAN_TEXT)
    if 'season_year' in data:
        plan.season_year, error = parse_int(data['season_year'], 'season_year')
        if error:
            errors.append(error)
    if 'groups' not in data:
        return errors
    if not isinstance(data['groups'], list):
        errors.append("groups must be a list.")
        return errors

    plan.groups = []
    for index, item in enumerate(data['groups'], 1):
        if not isinstance(item, dict):
            errors.append(f"groups[{index}] must be an object.")
            continue
        group = RotationGroup()
        errors.extend(_apply_payload(group, item, text=('group_name', 'plant_family'), integers=('rotation_order',)))
        bed_ids = item.get('assigned_bed_ids') or []
        if not isinstance(bed_ids, list):
            errors.append(f"groups[{index}].assigned_bed_ids must be a list.")
            bed_ids = []
        for value in bed_ids:
            bed_id, error = parse_int(value, f"groups[{index}].assigned_bed_ids")
            if error:
                errors.append(error)
            else:
                group.assigned_bed_ids.append(bed_id)
        plan.groups.append(group)
    return errors


@gardens_bp.route('/gardens/<int:garden_id>/rotation-plans', methods=['GET'])
def list_rotation_plans(garden_id):
    plans, error = get_store().list_rotation_plans(garden_id)
    return _respond(plans, error, 'rotation_plans')


@gardens_bp.route('/gardens/<int:garden_id>/rotation-plans', methods=['POST'])
def create_rotation_plan(garden_id):
    plan = RotationPlan(garden_id=garden_id)
    errors = _apply_rotation_payload(plan, _payload())
    if errors:
        return bad_request(*errors)
    created, error = get_store().create_rotation_plan(plan)
    return _respond(created, error, 'rotation_plan', 201)


@gardens_bp.route('/rotation-plans/<int:plan_id>', methods=['GET'])
def get_rotation_plan(plan_id):
    plan, error = get_store().get_rotation_plan(plan_id)
    return _respond(plan, error, 'rotation_plan')


@gardens_bp.route('/rotation-plans/<int:plan_id>', methods=['PUT'])
def update_rotation_plan(plan_id):
    store = get_store()
    plan, error = store.get_rotation_plan(plan_id)
    if error:
        return error_response(error)
    errors = _apply_rotation_payload(plan, _payload())
    if errors:
        return bad_request(*errors)
    updated, error = store.update_rotation_plan(plan)
    return _respond(updated, error, 'rotation_plan')


@gardens_bp.route('/rotation-plans/<int:plan_id>', methods=['DELETE'])
def delete_rotation_plan(plan_id):
    deleted, error = get_store().delete_rotation_plan(plan_id)
    if error:
        return error_response(error)
    return jsonify({'success': True, 'deleted': deleted})
