"""
routes/settings.py — Settings and administration routes.

Provides:
- GET  /settings/                 — Rotation policy, database health and backups
- POST /settings/rotation         — Save rotation policy ({"minimum_gap_years", "strict_mode"})
- GET  /settings/backup           — List backups
- POST /settings/backup/create    — Create a manual backup
- POST /settings/backup/restore   — Restore from backup ({"filename": ...})

The rotation policy stored here applies only where the app config does not
set ROTATION_MIN_GAP_YEARS / ROTATION_STRICT_MODE.
"""

from flask import Blueprint, current_app, request, jsonify

from database import check_db_health, update_setting
from plant_catalog import check_catalog_health
from routes.common import rotation_policy, bad_request
from utils.backup import backup_db, list_backups, restore_db
from utils.validators import parse_float

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')


def _db_path():
    return current_app.config['DATABASE']


@settings_bp.route('/')
def index():
    """Current settings with database health."""
    gap, strict = rotation_policy()
    db_healthy, db_message = check_db_health(_db_path())
    catalog_healthy, catalog_message = check_catalog_health(
        db_path=current_app.config['PLANT_CATALOG_DATABASE']
    )
    return jsonify({
        'success': True,
        'rotation': {'minimum_gap_years': gap, 'strict_mode': strict},
        'database': {'healthy': db_healthy, 'message': db_message},
        'catalog': {'healthy': catalog_healthy, 'message': catalog_message},
        'backups': list_backups(),
    })


# ========================================
# Rotation policy
# ========================================

@settings_bp.route('/rotation', methods=['POST'])
def rotation_save():
    """Save the rotation policy to the settings table."""
    data = request.get_json(silent=True) or {}
    errors = []

    if 'minimum_gap_years' in data:
        gap, error = parse_float(data['minimum_gap_years'], 'minimum_gap_years')
        if error:
            errors.append(error)
        elif gap < 0:
            errors.append("minimum_gap_years must be zero or positive.")
    else:
        gap = None

    strict = data.get('strict_mode')
    if strict is not None and not isinstance(strict, bool):
        errors.append("strict_mode must be true or false.")

    if errors:
        return bad_request(*errors)

    if gap is not None:
        update_setting('rotation_min_gap_years', str(gap), db_path=_db_path())
    if strict is not None:
        update_setting('rotation_strict_mode', '1' if strict else '0', db_path=_db_path())

    gap, strict = rotation_policy()
    current_app.logger.info("Rotation policy set to gap=%s strict=%s", gap, strict)
    return jsonify({'success': True, 'rotation': {'minimum_gap_years': gap, 'strict_mode': strict}})


# ========================================
# Backup Routes
# ========================================

@settings_bp.route('/backup')
def backup_list():
    return jsonify({'success': True, 'backups': list_backups()})


@settings_bp.route('/backup/create', methods=['POST'])
def backup_create():
    """Create a manual backup."""
    filename = backup_db('manual', _db_path())
    if not filename:
        return jsonify({'success': False, 'error': "Backup could not be created."}), 500
    return jsonify({'success': True, 'filename': filename})


@settings_bp.route('/backup/restore', methods=['POST'])
def backup_restore():
    """Restore the database from a backup file."""
    data = request.get_json(silent=True) or {}
    filename = str(data.get('filename') or '').strip()
    if not filename:
        return bad_request("filename is required.")

    # Create a safety backup before restoring
    backup_db('pre_restore', _db_path())

    if not restore_db(filename, _db_path()):
        return jsonify({'success': False, 'error': f"Could not restore from {filename}."}), 400
    return jsonify({'success': True, 'filename': filename})
