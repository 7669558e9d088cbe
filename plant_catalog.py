"""
plant_catalog.py — Separate plant catalog database with companion data.

This module manages a SEPARATE SQLite database of reference plants:
- Common and Latin names, with normalized versions for searching
- Botanical family (the unit of crop rotation checks)
- Companion and incompatible relationships between plants

The catalog is read-only to the garden core: cells reference catalog
plant ids, and the lifecycle manager only ever calls get_catalog_plant.
"""

import logging
import os
import re
import sqlite3
import unicodedata
from typing import Optional, List, Dict, Any, Tuple

from errors import PersistenceFailure
from models import CatalogPlant

logger = logging.getLogger(__name__)

RELATIONS = ('companion', 'incompatible')


# Default path for the catalog database (can be overridden via env var)
def get_catalog_db_path() -> str:
    """Get the plant catalog database path from environment or default."""
    default_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'plant_catalog.db')
    return os.environ.get('PLANT_CATALOG_DB_PATH', default_path)


# ========================================
# Normalization Helper
# ========================================

def normalize_name(name: str) -> str:
    """
    Normalize a plant name for searching.

    Rules:
    - lowercase, trimmed
    - diacritics removed
    - hyphens and punctuation replaced by spaces
    - whitespace collapsed

    Examples:
        "Solanum-Lycopersicum" -> "solanum lycopersicum"
        "  Sałata  " -> "salata"
    """
    if not name:
        return ""

    result = name.lower().strip()

    # NFD splits base characters from combining marks; ł has no decomposition
    result = unicodedata.normalize('NFD', result)
    result = ''.join(c for c in result if unicodedata.category(c) != 'Mn')
    result = result.replace('ł', 'l')

    result = re.sub(r'[-_.,;:\'\"()]+', ' ', result)
    result = re.sub(r'\s+', ' ', result)
    return result.strip()


# ========================================
# Database Connection Management
# ========================================

def get_catalog_db(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Get a connection to the catalog database, creating its directory if needed."""
    db_path = db_path or get_catalog_db_path()
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_catalog_db(db_path: Optional[str] = None):
    """
    Initialize the catalog schema.

    Idempotent: safe to call multiple times.
    """
    conn = get_catalog_db(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS catalog_plants (
            id TEXT PRIMARY KEY,
            common_name TEXT NOT NULL,
            common_name_norm TEXT NOT NULL,
            latin_name TEXT DEFAULT '',
            latin_name_norm TEXT DEFAULT '',
            family TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_catalog_plants_family
        ON catalog_plants(family)
    """)

    # A relation is stored on the side that declares it; readers check both sides
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS plant_relations (
            plant_id TEXT NOT NULL REFERENCES catalog_plants(id) ON DELETE CASCADE,
            other_plant_id TEXT NOT NULL,
            relation TEXT NOT NULL CHECK (relation IN ({", ".join(f"'{r}'" for r in RELATIONS)})),
            PRIMARY KEY (plant_id, other_plant_id, relation)
        )
    """)

    conn.commit()
    conn.close()


def check_catalog_health(db_path: Optional[str] = None) -> Tuple[bool, str]:
    """
    Check if the catalog database is healthy and accessible.

    Returns:
        Tuple of (is_healthy, message)
    """
    try:
        conn = get_catalog_db(db_path)
        count = conn.execute("SELECT COUNT(*) FROM catalog_plants").fetchone()[0]
        conn.close()
        return True, f"Plant catalog OK ({count} plants)"
    except sqlite3.DatabaseError as e:
        return False, f"Database error: {str(e)}"


# ========================================
# Catalog CRUD
# ========================================

def create_catalog_plant(
    plant_id: str,
    common_name: str,
    family: str,
    latin_name: str = '',
    companion_plant_ids: Optional[List[str]] = None,
    incompatible_plant_ids: Optional[List[str]] = None,
    db_path: Optional[str] = None
) -> Tuple[Optional[str], Optional[str]]:
    """
    Add a plant to the catalog.

    Returns:
        Tuple of (plant_id, error_message); exactly one is None.
    """
    if not plant_id or not plant_id.strip():
        return None, "Plant id is required."
    if not family or not family.strip():
        return None, "Plant family is required."

    plant_id = plant_id.strip()
    common_name = (common_name or plant_id).strip()

    conn = get_catalog_db(db_path)
    try:
        conn.execute(
            """INSERT INTO catalog_plants
               (id, common_name, common_name_norm, latin_name, latin_name_norm, family)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (plant_id, common_name, normalize_name(common_name),
             latin_name.strip(), normalize_name(latin_name), family.strip())
        )
        relations = [(plant_id, other, 'companion') for other in (companion_plant_ids or [])]
        relations += [(plant_id, other, 'incompatible') for other in (incompatible_plant_ids or [])]
        conn.executemany(
            "INSERT OR IGNORE INTO plant_relations (plant_id, other_plant_id, relation) VALUES (?, ?, ?)",
            relations
        )
        conn.commit()
        return plant_id, None
    except sqlite3.IntegrityError as e:
        conn.rollback()
        return None, f"Integrity error: {str(e)}"
    finally:
        conn.close()


def _row_to_catalog_plant(cursor, row) -> CatalogPlant:
    relations = cursor.execute(
        "SELECT other_plant_id, relation FROM plant_relations WHERE plant_id = ?",
        (row['id'],)
    ).fetchall()
    return CatalogPlant(
        id=row['id'],
        family=row['family'],
        common_name=row['common_name'],
        latin_name=row['latin_name'] or '',
        companion_plant_ids=frozenset(r['other_plant_id'] for r in relations if r['relation'] == 'companion'),
        incompatible_plant_ids=frozenset(r['other_plant_id'] for r in relations if r['relation'] == 'incompatible'),
    )


def get_catalog_plant(plant_id: str, db_path: Optional[str] = None) -> Optional[CatalogPlant]:
    """Get a catalog plant by id, or None if it does not exist."""
    conn = get_catalog_db(db_path)
    cursor = conn.cursor()
    try:
        row = cursor.execute("SELECT * FROM catalog_plants WHERE id = ?", (plant_id,)).fetchone()
        if not row:
            return None
        return _row_to_catalog_plant(cursor, row)
    finally:
        conn.close()


def get_all_catalog_plants(db_path: Optional[str] = None) -> List[CatalogPlant]:
    """Get every catalog plant ordered by family then common name."""
    conn = get_catalog_db(db_path)
    cursor = conn.cursor()
    try:
        rows = cursor.execute(
            "SELECT * FROM catalog_plants ORDER BY family, common_name"
        ).fetchall()
        return [_row_to_catalog_plant(cursor, row) for row in rows]
    finally:
        conn.close()


def get_plants_by_family(family: str, db_path: Optional[str] = None) -> List[CatalogPlant]:
    """Get catalog plants belonging to a botanical family (case-insensitive)."""
    conn = get_catalog_db(db_path)
    cursor = conn.cursor()
    try:
        rows = cursor.execute(
            "SELECT * FROM catalog_plants WHERE LOWER(family) = LOWER(?) ORDER BY common_name",
            (family.strip(),)
        ).fetchall()
        return [_row_to_catalog_plant(cursor, row) for row in rows]
    finally:
        conn.close()


def search_catalog(query: str, limit: int = 20, db_path: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Search the catalog by common or Latin name.

    Ranking:
    1. exact normalized match
    2. prefix match
    3. substring match
    Ties are ordered by common name.
    """
    q = normalize_name(query)
    if not q:
        return []

    conn = get_catalog_db(db_path)
    try:
        rows = conn.execute(
            """SELECT id, common_name, latin_name, family, common_name_norm, latin_name_norm
               FROM catalog_plants
               WHERE common_name_norm LIKE ? OR latin_name_norm LIKE ?""",
            (f'%{q}%', f'%{q}%')
        ).fetchall()
    finally:
        conn.close()

    def rank(row):
        names = (row['common_name_norm'], row['latin_name_norm'] or '')
        if q in names:
            return 0
        if any(n.startswith(q) for n in names):
            return 1
        return 2

    ranked = sorted(rows, key=lambda r: (rank(r), r['common_name_norm']))
    return [
        {
            'id': r['id'],
            'common_name': r['common_name'],
            'latin_name': r['latin_name'],
            'family': r['family'],
            'ranking': ('exact', 'prefix', 'contains')[rank(r)],
        }
        for r in ranked[:limit]
    ]


def get_catalog_count(db_path: Optional[str] = None) -> int:
    conn = get_catalog_db(db_path)
    try:
        return conn.execute("SELECT COUNT(*) FROM catalog_plants").fetchone()[0]
    finally:
        conn.close()


# ========================================
# Seed data
# ========================================

INITIAL_PLANTS = [
    {
        'id': 'plant_tomato_001', 'common_name': 'Tomato',
        'latin_name': 'Solanum lycopersicum', 'family': 'Solanaceae',
        'companions': ['plant_basil_001', 'plant_marigold_001'],
        'incompatible': ['plant_potato_001', 'plant_pepper_001'],
    },
    {
        'id': 'plant_potato_001', 'common_name': 'Potato',
        'latin_name': 'Solanum tuberosum', 'family': 'Solanaceae',
        'companions': ['plant_marigold_001'],
        'incompatible': [],
    },
    {
        'id': 'plant_pepper_001', 'common_name': 'Pepper',
        'latin_name': 'Capsicum annuum', 'family': 'Solanaceae',
        'companions': ['plant_basil_001'],
        'incompatible': ['plant_tomato_001'],
    },
    {
        'id': 'plant_cucumber_001', 'common_name': 'Cucumber',
        'latin_name': 'Cucumis sativus', 'family': 'Cucurbitaceae',
        'companions': ['plant_lettuce_001'],
        'incompatible': ['plant_tomato_001'],
    },
    {
        'id': 'plant_lettuce_001', 'common_name': 'Lettuce',
        'latin_name': 'Lactuca sativa', 'family': 'Asteraceae',
        'companions': ['plant_cucumber_001', 'plant_carrot_001'],
        'incompatible': [],
    },
    {
        'id': 'plant_carrot_001', 'common_name': 'Carrot',
        'latin_name': 'Daucus carota', 'family': 'Apiaceae',
        'companions': ['plant_lettuce_001'],
        'incompatible': [],
    },
    {
        'id': 'plant_basil_001', 'common_name': 'Basil',
        'latin_name': 'Ocimum basilicum', 'family': 'Lamiaceae',
        'companions': ['plant_tomato_001', 'plant_pepper_001'],
        'incompatible': [],
    },
    {
        'id': 'plant_parsley_001', 'common_name': 'Parsley',
        'latin_name': 'Petroselinum crispum', 'family': 'Apiaceae',
        'companions': ['plant_tomato_001', 'plant_carrot_001'],
        'incompatible': [],
    },
    {
        'id': 'plant_marigold_001', 'common_name': 'Marigold',
        'latin_name': 'Calendula officinalis', 'family': 'Asteraceae',
        'companions': ['plant_tomato_001', 'plant_cucumber_001', 'plant_pepper_001'],
        'incompatible': [],
    },
]


def seed_catalog(db_path: Optional[str] = None) -> int:
    """Load INITIAL_PLANTS into an empty catalog. Returns the number added."""
    if get_catalog_count(db_path) > 0:
        return 0

    added = 0
    for plant in INITIAL_PLANTS:
        plant_id, error = create_catalog_plant(
            plant['id'], plant['common_name'], plant['family'],
            latin_name=plant['latin_name'],
            companion_plant_ids=plant['companions'],
            incompatible_plant_ids=plant['incompatible'],
            db_path=db_path,
        )
        if error:
            logger.warning("Could not seed %s: %s", plant['id'], error)
        else:
            added += 1
    logger.info("Seeded plant catalog with %d plants", added)
    return added


class PlantCatalog:
    """Catalog collaborator handed to the store and lifecycle manager."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path

    def get_catalog_plant(self, plant_id: str) -> Optional[CatalogPlant]:
        try:
            return get_catalog_plant(plant_id, db_path=self.db_path)
        except sqlite3.Error as e:
            logger.exception("Catalog lookup failed for %s", plant_id)
            raise PersistenceFailure(f"Catalog error: {e}", e)

    def list_plants(self) -> List[CatalogPlant]:
        return get_all_catalog_plants(db_path=self.db_path)

    def search(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        return search_catalog(query, limit=limit, db_path=self.db_path)
