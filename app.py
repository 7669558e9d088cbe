"""
app.py — Flask entry point for the garden layout API.

Initializes the Flask app, registers all route blueprints, creates the
garden and plant catalog databases on startup, seeds default settings and
catalog plants, and builds the shared GardenHierarchyStore.

Run: python app.py → localhost:5000
"""

import logging
import os

from flask import Flask
from flask_wtf.csrf import CSRFProtect

from cell_lifecycle import BED_LOCKS
from database import init_db, seed_defaults, get_db_path, SQLiteGardenRepository
from garden_store import GardenHierarchyStore
from plant_catalog import init_catalog_db, seed_catalog, get_catalog_db_path, PlantCatalog
from routes.gardens import gardens_bp
from routes.cells import cells_bp
from routes.catalog import catalog_bp
from routes.export import export_bp
from routes.settings import settings_bp

logger = logging.getLogger(__name__)


def _release_bed_lock(event, payload):
    if event == 'bed.deleted':
        BED_LOCKS.discard(payload)


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.secret_key = os.environ.get('GARDEN_SECRET_KEY', 'garden-layout-local-app-secret-key')
    app.config['DATABASE'] = get_db_path()
    app.config['PLANT_CATALOG_DATABASE'] = get_catalog_db_path()
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    # None = read the rotation policy from the settings table
    app.config['ROTATION_MIN_GAP_YEARS'] = None
    app.config['ROTATION_STRICT_MODE'] = None

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    CSRFProtect(app)

    # Initialize databases and seed defaults
    init_db(app.config['DATABASE'])
    seed_defaults(app.config['DATABASE'])
    init_catalog_db(app.config['PLANT_CATALOG_DATABASE'])
    seed_catalog(app.config['PLANT_CATALOG_DATABASE'])

    store = GardenHierarchyStore(
        SQLiteGardenRepository(app.config['DATABASE']),
        PlantCatalog(app.config['PLANT_CATALOG_DATABASE']),
    )
    store.subscribe(_release_bed_lock)
    app.extensions['garden_store'] = store

    # Register blueprints
    app.register_blueprint(gardens_bp)
    app.register_blueprint(cells_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(settings_bp)

    logger.info("Garden layout API ready (db=%s)", app.config['DATABASE'])
    return app


if __name__ == '__main__':
    app = create_app()
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
