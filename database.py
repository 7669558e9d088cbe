"""
database.py — SQLite schema, settings, and the garden persistence repository.

Creates the garden hierarchy tables (gardens → areas → beds → cells, plus
planting history, decorations and rotation plans). Foreign keys cascade, so deleting a
parent removes all of its descendants. Uses WAL mode for concurrent read
performance.

SQLiteGardenRepository is the persistence collaborator consumed by
garden_store.GardenHierarchyStore. Any object offering the same methods
(get_cell, get_cell_by_id, put_cell, get_cells_by_bed,
create_bed_with_cells and the garden/area/bed/decoration/rotation plan
CRUD) can stand in for it; tests/conftest.py has an in-memory one.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime

from errors import CellNotFound, PersistenceFailure
from models import (
    Area, Bed, Cell, Decoration, Garden, PlantingHistoryEntry, RotationGroup, RotationPlan,
    AREA_TYPES, BED_TYPES, DECORATION_TYPES, SEASON_TYPES, SUN_EXPOSURES,
)

logger = logging.getLogger(__name__)

# Seconds SQLite waits on a locked database before failing
DB_TIMEOUT = 5.0

DEFAULT_SETTINGS = {
    'rotation_min_gap_years': '2',
    'rotation_strict_mode': '0',
}


def get_db_path() -> str:
    """Get the garden database path from environment or default."""
    default_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'garden_layout.db')
    return os.environ.get('GARDEN_DB_PATH', default_path)


def get_db(db_path=None):
    """Get a database connection with WAL mode and foreign keys enabled."""
    db_path = db_path or get_db_path()
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=DB_TIMEOUT)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def _in_list(values):
    return ", ".join(f"'{v}'" for v in values)


def init_db(db_path=None):
    """Create all tables and indexes if they don't exist."""
    conn = get_db(db_path)
    cursor = conn.cursor()

    # Table: settings
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)

    # Table: gardens
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS gardens (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner TEXT NOT NULL,
            name TEXT NOT NULL,
            location TEXT,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Table: areas
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS areas (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            garden_id INTEGER NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            area_type TEXT NOT NULL CHECK (area_type IN ({_in_list(AREA_TYPES)})),
            pos_x REAL NOT NULL DEFAULT 0,
            pos_y REAL NOT NULL DEFAULT 0,
            width REAL NOT NULL DEFAULT 1,
            height REAL NOT NULL DEFAULT 1,
            sun_exposure TEXT CHECK (sun_exposure IS NULL OR sun_exposure IN ({_in_list(SUN_EXPOSURES)})),
            soil_type TEXT,
            soil_ph REAL,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Table: beds (grid dimensions are fixed at creation)
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS beds (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            area_id INTEGER NOT NULL REFERENCES areas(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            grid_rows INTEGER NOT NULL CHECK (grid_rows > 0),
            grid_columns INTEGER NOT NULL CHECK (grid_columns > 0),
            bed_type TEXT NOT NULL CHECK (bed_type IN ({_in_list(BED_TYPES)})),
            pos_x REAL NOT NULL DEFAULT 0,
            pos_y REAL NOT NULL DEFAULT 0,
            width REAL NOT NULL DEFAULT 1,
            height REAL NOT NULL DEFAULT 1,
            sun_exposure TEXT CHECK (sun_exposure IS NULL OR sun_exposure IN ({_in_list(SUN_EXPOSURES)})),
            soil_ph REAL,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Table: cells
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS cells (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            bed_id INTEGER NOT NULL REFERENCES beds(id) ON DELETE CASCADE,
            row_index INTEGER NOT NULL CHECK (row_index >= 0),
            column_index INTEGER NOT NULL CHECK (column_index >= 0),
            current_plant_id TEXT,
            notes TEXT,
            updated_at TEXT,
            UNIQUE(bed_id, row_index, column_index)
        )
    """)

    # Table: planting_history (append-only, ordered by position)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS planting_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            cell_id INTEGER NOT NULL REFERENCES cells(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            plant_id TEXT NOT NULL,
            plant_family TEXT NOT NULL,
            planted_date TEXT NOT NULL,
            harvested_date TEXT,
            UNIQUE(cell_id, position)
        )
    """)

    # Table: decorations
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS decorations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            area_id INTEGER NOT NULL REFERENCES areas(id) ON DELETE CASCADE,
            decoration_type TEXT NOT NULL CHECK (decoration_type IN ({_in_list(DECORATION_TYPES)})),
            name TEXT,
            pos_x REAL NOT NULL DEFAULT 0,
            pos_y REAL NOT NULL DEFAULT 0,
            width REAL NOT NULL DEFAULT 1,
            height REAL NOT NULL DEFAULT 1,
            rotation REAL NOT NULL DEFAULT 0,
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Table: rotation_plans (seasonal family-to-bed plans)
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS rotation_plans (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            garden_id INTEGER NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
            plan_name TEXT NOT NULL,
            season_year INTEGER NOT NULL,
            season_type TEXT NOT NULL CHECK (season_type IN ({_in_list(SEASON_TYPES)})),
            notes TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Table: rotation_groups
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS rotation_groups (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            plan_id INTEGER NOT NULL REFERENCES rotation_plans(id) ON DELETE CASCADE,
            group_name TEXT NOT NULL,
            plant_family TEXT NOT NULL,
            rotation_order INTEGER NOT NULL CHECK (rotation_order > 0),
            UNIQUE(plan_id, rotation_order)
        )
    """)

    # Table: rotation_group_beds (a deleted bed drops out of every group)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS rotation_group_beds (
            group_id INTEGER NOT NULL REFERENCES rotation_groups(id) ON DELETE CASCADE,
            bed_id INTEGER NOT NULL REFERENCES beds(id) ON DELETE CASCADE,
            PRIMARY KEY (group_id, bed_id)
        )
    """)

    # Performance indexes
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_areas_garden ON areas(garden_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_beds_area ON beds(area_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_decorations_area ON decorations(area_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_history_cell ON planting_history(cell_id, position)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_rotation_plans_garden ON rotation_plans(garden_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_rotation_groups_plan ON rotation_groups(plan_id)")

    conn.commit()
    conn.close()


def seed_defaults(db_path=None):
    """Populate default settings if missing. Idempotent."""
    conn = get_db(db_path)
    conn.executemany(
        "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
        list(DEFAULT_SETTINGS.items())
    )
    conn.commit()
    conn.close()


def get_setting(key, default=None, db_path=None):
    """Get a setting value by key."""
    conn = get_db(db_path)
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    if row:
        return row['value']
    return default


def update_setting(key, value, db_path=None):
    """Insert or replace a setting value."""
    conn = get_db(db_path)
    conn.execute(
        "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
        (key, str(value))
    )
    conn.commit()
    conn.close()


def check_db_health(db_path=None):
    """
    Check if the garden database is healthy and accessible.

    Returns:
        Tuple of (is_healthy, message)
    """
    try:
        conn = get_db(db_path)
        count = conn.execute("SELECT COUNT(*) FROM gardens").fetchone()[0]
        conn.close()
        return True, f"Garden database OK ({count} gardens)"
    except sqlite3.DatabaseError as e:
        return False, f"Database error: {str(e)}"


# ========================================
# Row mapping
# ========================================

def _ts(value):
    return value.isoformat() if value is not None else None


def _parse_ts(value):
    return datetime.fromisoformat(value) if value else None


def _row_to_garden(row):
    return Garden(
        id=row['id'], owner=row['owner'], name=row['name'],
        location=row['location'], notes=row['notes'], created_at=row['created_at'],
    )


def _row_to_area(row):
    return Area(
        id=row['id'], garden_id=row['garden_id'], name=row['name'],
        area_type=row['area_type'], pos_x=row['pos_x'], pos_y=row['pos_y'],
        width=row['width'], height=row['height'], sun_exposure=row['sun_exposure'],
        soil_type=row['soil_type'], soil_ph=row['soil_ph'], notes=row['notes'],
        created_at=row['created_at'],
    )


def _row_to_bed(row):
    return Bed(
        id=row['id'], area_id=row['area_id'], name=row['name'],
        grid_rows=row['grid_rows'], grid_columns=row['grid_columns'],
        bed_type=row['bed_type'], pos_x=row['pos_x'], pos_y=row['pos_y'],
        width=row['width'], height=row['height'], sun_exposure=row['sun_exposure'],
        soil_ph=row['soil_ph'], notes=row['notes'], created_at=row['created_at'],
    )


def _row_to_decoration(row):
    return Decoration(
        id=row['id'], area_id=row['area_id'], decoration_type=row['decoration_type'],
        name=row['name'], pos_x=row['pos_x'], pos_y=row['pos_y'],
        width=row['width'], height=row['height'], rotation=row['rotation'],
        notes=row['notes'], created_at=row['created_at'],
    )


def _row_to_entry(row):
    return PlantingHistoryEntry(
        plant_id=row['plant_id'],
        plant_family=row['plant_family'],
        planted_date=_parse_ts(row['planted_date']),
        harvested_date=_parse_ts(row['harvested_date']),
    )


# ========================================
# Repository
# ========================================

class SQLiteGardenRepository:
    """Key-based persistence for the garden hierarchy backed by SQLite."""

    def __init__(self, db_path=None):
        self.db_path = db_path

    @contextmanager
    def _transaction(self):
        """Yield a connection; commit on success, roll back on any error."""
        try:
            conn = get_db(self.db_path)
        except sqlite3.Error as e:
            logger.exception("Could not open garden database")
            raise PersistenceFailure(f"Could not open garden database: {e}", e)
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("Garden database operation failed")
            raise PersistenceFailure(f"Database error: {e}", e)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # --- Gardens ---

    def create_garden(self, garden):
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO gardens (owner, name, location, notes) VALUES (?, ?, ?, ?)",
                (garden.owner, garden.name, garden.location, garden.notes)
            )
            garden_id = cursor.lastrowid
        return self.get_garden(garden_id)

    def get_garden(self, garden_id):
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM gardens WHERE id = ?", (garden_id,)).fetchone()
        return _row_to_garden(row) if row else None

    def list_gardens(self, owner=None):
        with self._transaction() as conn:
            if owner is not None:
                rows = conn.execute(
                    "SELECT * FROM gardens WHERE owner = ? ORDER BY name", (owner,)
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM gardens ORDER BY name").fetchall()
        return [_row_to_garden(r) for r in rows]

    def update_garden(self, garden):
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE gardens SET owner = ?, name = ?, location = ?, notes = ? WHERE id = ?",
                (garden.owner, garden.name, garden.location, garden.notes, garden.id)
            )
            return cursor.rowcount > 0

    def delete_garden(self, garden_id):
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM gardens WHERE id = ?", (garden_id,))
            return cursor.rowcount > 0

    # --- Areas ---

    def create_area(self, area):
        with self._transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO areas (garden_id, name, area_type, pos_x, pos_y, width, height,
                                      sun_exposure, soil_type, soil_ph, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (area.garden_id, area.name, area.area_type, area.pos_x, area.pos_y,
                 area.width, area.height, area.sun_exposure, area.soil_type,
                 area.soil_ph, area.notes)
            )
            area_id = cursor.lastrowid
        return self.get_area(area_id)

    def get_area(self, area_id):
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM areas WHERE id = ?", (area_id,)).fetchone()
        return _row_to_area(row) if row else None

    def list_areas(self, garden_id):
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM areas WHERE garden_id = ? ORDER BY name, id", (garden_id,)
            ).fetchall()
        return [_row_to_area(r) for r in rows]

    def update_area(self, area):
        with self._transaction() as conn:
            cursor = conn.execute(
                """UPDATE areas SET name = ?, area_type = ?, pos_x = ?, pos_y = ?, width = ?,
                          height = ?, sun_exposure = ?, soil_type = ?, soil_ph = ?, notes = ?
                   WHERE id = ?""",
                (area.name, area.area_type, area.pos_x, area.pos_y, area.width,
                 area.height, area.sun_exposure, area.soil_type, area.soil_ph,
                 area.notes, area.id)
            )
            return cursor.rowcount > 0

    def delete_area(self, area_id):
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM areas WHERE id = ?", (area_id,))
            return cursor.rowcount > 0

    # --- Beds ---

    def create_bed_with_cells(self, bed, cells):
        """Insert a bed and its cells in a single transaction."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO beds (area_id, name, grid_rows, grid_columns, bed_type, pos_x, pos_y,
                                     width, height, sun_exposure, soil_ph, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (bed.area_id, bed.name, bed.grid_rows, bed.grid_columns, bed.bed_type,
                 bed.pos_x, bed.pos_y, bed.width, bed.height, bed.sun_exposure,
                 bed.soil_ph, bed.notes)
            )
            bed_id = cursor.lastrowid
            conn.executemany(
                """INSERT INTO cells (bed_id, row_index, column_index, current_plant_id, notes, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [(bed_id, c.row, c.column, c.current_plant_id, c.notes, _ts(c.updated_at))
                 for c in cells]
            )
        return self.get_bed(bed_id)

    def get_bed(self, bed_id):
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM beds WHERE id = ?", (bed_id,)).fetchone()
        return _row_to_bed(row) if row else None

    def list_beds(self, area_id):
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM beds WHERE area_id = ? ORDER BY name, id", (area_id,)
            ).fetchall()
        return [_row_to_bed(r) for r in rows]

    def update_bed(self, bed):
        """Update descriptive bed fields. Grid dimensions are never written."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """UPDATE beds SET name = ?, bed_type = ?, pos_x = ?, pos_y = ?, width = ?,
                          height = ?, sun_exposure = ?, soil_ph = ?, notes = ?
                   WHERE id = ?""",
                (bed.name, bed.bed_type, bed.pos_x, bed.pos_y, bed.width, bed.height,
                 bed.sun_exposure, bed.soil_ph, bed.notes, bed.id)
            )
            return cursor.rowcount > 0

    def delete_bed(self, bed_id):
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM beds WHERE id = ?", (bed_id,))
            return cursor.rowcount > 0

    # --- Decorations ---

    def create_decoration(self, decoration):
        with self._transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO decorations (area_id, decoration_type, name, pos_x, pos_y,
                                            width, height, rotation, notes)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (decoration.area_id, decoration.decoration_type, decoration.name,
                 decoration.pos_x, decoration.pos_y, decoration.width, decoration.height,
                 decoration.rotation, decoration.notes)
            )
            decoration_id = cursor.lastrowid
        return self.get_decoration(decoration_id)

    def get_decoration(self, decoration_id):
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM decorations WHERE id = ?", (decoration_id,)
            ).fetchone()
        return _row_to_decoration(row) if row else None

    def list_decorations(self, area_id):
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM decorations WHERE area_id = ? ORDER BY id", (area_id,)
            ).fetchall()
        return [_row_to_decoration(r) for r in rows]

    def update_decoration(self, decoration):
        with self._transaction() as conn:
            cursor = conn.execute(
                """UPDATE decorations SET decoration_type = ?, name = ?, pos_x = ?, pos_y = ?,
                          width = ?, height = ?, rotation = ?, notes = ?
                   WHERE id = ?""",
                (decoration.decoration_type, decoration.name, decoration.pos_x,
                 decoration.pos_y, decoration.width, decoration.height,
                 decoration.rotation, decoration.notes, decoration.id)
            )
            return cursor.rowcount > 0

    def delete_decoration(self, decoration_id):
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM decorations WHERE id = ?", (decoration_id,))
            return cursor.rowcount > 0

    # --- Rotation plans ---

    def _load_rotation_plan(self, conn, row):
        groups = []
        for g in conn.execute(
            "SELECT * FROM rotation_groups WHERE plan_id = ? ORDER BY rotation_order",
            (row['id'],)
        ).fetchall():
            bed_ids = [r['bed_id'] for r in conn.execute(
                "SELECT bed_id FROM rotation_group_beds WHERE group_id = ? ORDER BY bed_id",
                (g['id'],)
            ).fetchall()]
            groups.append(RotationGroup(
                group_name=g['group_name'], plant_family=g['plant_family'],
                assigned_bed_ids=bed_ids, rotation_order=g['rotation_order'],
            ))
        return RotationPlan(
            id=row['id'], garden_id=row['garden_id'], plan_name=row['plan_name'],
            season_year=row['season_year'], season_type=row['season_type'],
            groups=groups, notes=row['notes'],
            created_at=row['created_at'], updated_at=row['updated_at'],
        )

    def _write_rotation_groups(self, conn, plan_id, groups):
        conn.execute("DELETE FROM rotation_groups WHERE plan_id = ?", (plan_id,))
        for group in groups:
            cursor = conn.execute(
                """INSERT INTO rotation_groups (plan_id, group_name, plant_family, rotation_order)
                   VALUES (?, ?, ?, ?)""",
                (plan_id, group.group_name, group.plant_family, group.rotation_order)
            )
            conn.executemany(
                "INSERT INTO rotation_group_beds (group_id, bed_id) VALUES (?, ?)",
                [(cursor.lastrowid, bed_id) for bed_id in group.assigned_bed_ids]
            )

    def create_rotation_plan(self, plan):
        """Insert a plan together with its groups and bed assignments."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO rotation_plans (garden_id, plan_name, season_year, season_type, notes)
                   VALUES (?, ?, ?, ?, ?)""",
                (plan.garden_id, plan.plan_name, plan.season_year, plan.season_type, plan.notes)
            )
            plan_id = cursor.lastrowid
            self._write_rotation_groups(conn, plan_id, plan.groups)
        return self.get_rotation_plan(plan_id)

    def get_rotation_plan(self, plan_id):
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM rotation_plans WHERE id = ?", (plan_id,)).fetchone()
            return self._load_rotation_plan(conn, row) if row else None

    def list_rotation_plans(self, garden_id):
        with self._transaction() as conn:
            rows = conn.execute(
                """SELECT * FROM rotation_plans WHERE garden_id = ?
                   ORDER BY season_year DESC, plan_name, id""",
                (garden_id,)
            ).fetchall()
            return [self._load_rotation_plan(conn, r) for r in rows]

    def update_rotation_plan(self, plan):
        """Rewrite a plan's fields and replace its groups."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """UPDATE rotation_plans SET plan_name = ?, season_year = ?, season_type = ?,
                          notes = ?, updated_at = CURRENT_TIMESTAMP
                   WHERE id = ?""",
                (plan.plan_name, plan.season_year, plan.season_type, plan.notes, plan.id)
            )
            if cursor.rowcount == 0:
                return False
            self._write_rotation_groups(conn, plan.id, plan.groups)
            return True

    def delete_rotation_plan(self, plan_id):
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM rotation_plans WHERE id = ?", (plan_id,))
            return cursor.rowcount > 0

    # --- Cells ---

    def _load_cell(self, conn, row):
        history = conn.execute(
            "SELECT * FROM planting_history WHERE cell_id = ? ORDER BY position",
            (row['id'],)
        ).fetchall()
        return Cell(
            id=row['id'],
            bed_id=row['bed_id'],
            row=row['row_index'],
            column=row['column_index'],
            current_plant_id=row['current_plant_id'],
            history=[_row_to_entry(h) for h in history],
            notes=row['notes'],
            updated_at=_parse_ts(row['updated_at']),
        )

    def get_cell(self, bed_id, row, column):
        with self._transaction() as conn:
            found = conn.execute(
                "SELECT * FROM cells WHERE bed_id = ? AND row_index = ? AND column_index = ?",
                (bed_id, row, column)
            ).fetchone()
            return self._load_cell(conn, found) if found else None

    def get_cell_by_id(self, cell_id):
        with self._transaction() as conn:
            found = conn.execute("SELECT * FROM cells WHERE id = ?", (cell_id,)).fetchone()
            return self._load_cell(conn, found) if found else None

    def get_cells_by_bed(self, bed_id):
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM cells WHERE bed_id = ? ORDER BY row_index, column_index",
                (bed_id,)
            ).fetchall()
            return [self._load_cell(conn, r) for r in rows]

    def put_cell(self, cell):
        """
        Write a cell's plant assignment and history in one transaction.

        History is append-only: stored entries may only be closed (harvested
        date set), never removed, reordered or rewritten.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE cells SET current_plant_id = ?, notes = ?, updated_at = ? WHERE id = ?",
                (cell.current_plant_id, cell.notes, _ts(cell.updated_at), cell.id)
            )
            if cursor.rowcount == 0:
                raise CellNotFound(cell.id)

            stored = conn.execute(
                "SELECT * FROM planting_history WHERE cell_id = ? ORDER BY position",
                (cell.id,)
            ).fetchall()
            if len(cell.history) < len(stored):
                raise PersistenceFailure(f"Refusing to drop history entries of cell {cell.id}")

            for position, row in enumerate(stored):
                entry = cell.history[position]
                if entry.plant_id != row['plant_id'] or _ts(entry.planted_date) != row['planted_date']:
                    raise PersistenceFailure(
                        f"Refusing to rewrite history entry {position} of cell {cell.id}"
                    )
                if row['harvested_date'] is None and entry.harvested_date is not None:
                    conn.execute(
                        "UPDATE planting_history SET harvested_date = ? WHERE id = ?",
                        (_ts(entry.harvested_date), row['id'])
                    )

            conn.executemany(
                """INSERT INTO planting_history
                   (cell_id, position, plant_id, plant_family, planted_date, harvested_date)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [(cell.id, position, e.plant_id, e.plant_family,
                  _ts(e.planted_date), _ts(e.harvested_date))
                 for position, e in enumerate(cell.history) if position >= len(stored)]
            )
        return cell
