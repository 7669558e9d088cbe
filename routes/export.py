"""
routes/export.py — Excel export routes.

Provides:
- GET /export/excel/<garden_id>   — Download the garden's beds and planting history

Auto-backup is triggered before every export.
"""

from flask import Blueprint, current_app, send_file

from routes.common import get_store, error_response
from utils.backup import backup_db
from utils.export import generate_garden_workbook

export_bp = Blueprint('export', __name__, url_prefix='/export')


@export_bp.route('/excel/<int:garden_id>')
def export_excel(garden_id):
    """Export a single garden as an Excel workbook."""
    # Auto-backup before export
    backup_db('export', current_app.config['DATABASE'])

    buffer, result = generate_garden_workbook(get_store(), garden_id)
    if buffer is None:
        return error_response(result)

    return send_file(
        buffer,
        as_attachment=True,
        download_name=result,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
