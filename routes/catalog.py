"""
routes/catalog.py — Plant catalog API routes (read-only).

Provides:
- GET /catalog/                  — List all catalog plants (optional ?family=)
- GET /catalog/search            — Search plants by common or Latin name
- GET /catalog/health            — Catalog database health
- GET /catalog/<plant_id>        — Plant details with companion data
"""

import sqlite3

from flask import Blueprint, current_app, request, jsonify

from plant_catalog import (
    check_catalog_health, get_all_catalog_plants, get_catalog_plant,
    get_plants_by_family, search_catalog,
)
from routes.common import to_json

catalog_bp = Blueprint('catalog', __name__, url_prefix='/catalog')


def _catalog_path():
    return current_app.config['PLANT_CATALOG_DATABASE']


@catalog_bp.route('/')
def list_plants():
    """Get all catalog plants (JSON API)."""
    family = request.args.get('family', '').strip()
    try:
        if family:
            plants = get_plants_by_family(family, db_path=_catalog_path())
        else:
            plants = get_all_catalog_plants(db_path=_catalog_path())
        return jsonify({'success': True, 'plants': to_json(plants)})
    except sqlite3.Error as e:
        current_app.logger.exception("Catalog listing failed")
        return jsonify({'success': False, 'error': str(e)}), 500


@catalog_bp.route('/search')
def search():
    """Search catalog plants (JSON API)."""
    query = request.args.get('q', '')
    limit = request.args.get('limit', 20, type=int)

    try:
        results = search_catalog(query, limit=limit, db_path=_catalog_path())
        return jsonify({'success': True, 'results': results})
    except sqlite3.Error as e:
        current_app.logger.exception("Catalog search failed")
        return jsonify({'success': False, 'error': str(e)}), 500


@catalog_bp.route('/health')
def catalog_health():
    """Check plant catalog health (JSON API)."""
    healthy, message = check_catalog_health(db_path=_catalog_path())
    return jsonify({'success': healthy, 'message': message})


@catalog_bp.route('/<plant_id>')
def get_plant_detail(plant_id):
    """Get a single catalog plant (JSON API)."""
    try:
        plant = get_catalog_plant(plant_id, db_path=_catalog_path())
        if not plant:
            return jsonify({'success': False, 'kind': 'not_found',
                            'error': f"Plant not found in catalog: {plant_id}"}), 404
        return jsonify({'success': True, 'plant': to_json(plant)})
    except sqlite3.Error as e:
        current_app.logger.exception("Catalog lookup failed")
        return jsonify({'success': False, 'error': str(e)}), 500
