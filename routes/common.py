"""
routes/common.py — Shared helpers for the JSON API blueprints.

Provides:
- get_store() / get_manager(): the app's GardenHierarchyStore and a
  CellLifecycleManager configured from app config or the settings table
- error_response(): maps error kinds to HTTP status codes
- to_json(): dataclass → JSON-safe dict conversion
"""

import dataclasses
from datetime import datetime

from flask import current_app, jsonify

from cell_lifecycle import CellLifecycleManager
from database import get_setting
from errors import Conflict, NotFound, PersistenceFailure, ValidationFailure
from models import CellOccupancy, GardenStatistics

STATUS_BY_KIND = (
    (NotFound, 404),
    (Conflict, 409),
    (ValidationFailure, 422),
    (PersistenceFailure, 500),
)


def get_store():
    return current_app.extensions['garden_store']


def rotation_policy():
    """
    Current rotation policy as (minimum_gap_years, strict).

    App config wins; unset keys fall back to the settings table.
    """
    gap = current_app.config.get('ROTATION_MIN_GAP_YEARS')
    if gap is None:
        gap = get_setting('rotation_min_gap_years', '2', db_path=current_app.config['DATABASE'])
    strict = current_app.config.get('ROTATION_STRICT_MODE')
    if strict is None:
        strict = get_setting('rotation_strict_mode', '0', db_path=current_app.config['DATABASE'])
    gap = float(gap)
    if gap.is_integer():
        gap = int(gap)
    return gap, str(strict).lower() in ('1', 'true', 'yes', 'on')


def get_manager():
    store = get_store()
    gap, strict = rotation_policy()
    return CellLifecycleManager(store, store.catalog, minimum_gap_years=gap, strict_rotation=strict)


def error_response(error):
    """JSON body + status code for a GardenError."""
    status = 400
    for kind, code in STATUS_BY_KIND:
        if isinstance(error, kind):
            status = code
            break
    body = {'success': False}
    body.update(error.to_dict())
    return jsonify(body), status


def bad_request(*messages):
    return jsonify({'success': False, 'kind': 'bad_request', 'errors': list(messages)}), 400


def _convert(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert(v) for v in value]
    return value


def to_json(obj):
    """Convert a model dataclass (or a list of them) into JSON-safe data."""
    if isinstance(obj, list):
        return [to_json(o) for o in obj]
    data = _convert(dataclasses.asdict(obj))
    if isinstance(obj, GardenStatistics):
        data['utilization_rate'] = round(obj.utilization_rate, 2)
    elif isinstance(obj, CellOccupancy):
        data['occupancy_percentage'] = round(obj.occupancy_percentage, 2)
    return data
