"""
tests/conftest.py — Shared fixtures.

Every test gets its own temporary garden and catalog databases (selected
through GARDEN_DB_PATH / PLANT_CATALOG_DB_PATH) and its own backup folder.
The memory_store / memory_manager fixtures run the same store and lifecycle
code against InMemoryGardenRepository instead of SQLite.
"""

import copy
import dataclasses
import itertools
import os
import shutil
import tempfile
from datetime import datetime

import pytest

from app import create_app
from cell_lifecycle import BedLockRegistry, CellLifecycleManager
from database import init_db, seed_defaults, SQLiteGardenRepository
from errors import CellNotFound, PersistenceFailure
from garden_store import GardenHierarchyStore
from models import Area, Bed, CatalogPlant, Garden
from plant_catalog import init_catalog_db, seed_catalog, PlantCatalog

TOMATO = 'plant_tomato_001'
POTATO = 'plant_potato_001'
PEPPER = 'plant_pepper_001'
BASIL = 'plant_basil_001'
LETTUCE = 'plant_lettuce_001'
CARROT = 'plant_carrot_001'

FIXED_NOW = datetime(2024, 5, 1, 9, 0, 0)


class InMemoryCatalog:
    """Catalog stand-in backed by a dict of CatalogPlant."""

    def __init__(self, plants=()):
        self.plants = {p.id: p for p in plants}

    def get_catalog_plant(self, plant_id):
        return self.plants.get(plant_id)

    def list_plants(self):
        return list(self.plants.values())


class InMemoryGardenRepository:
    """Dict-backed repository with the same methods as SQLiteGardenRepository."""

    def __init__(self):
        self.gardens = {}
        self.areas = {}
        self.beds = {}
        self.decorations = {}
        self.cells = {}
        self.rotation_plans = {}
        self._ids = itertools.count(1)

    def _insert(self, table, obj):
        obj = copy.deepcopy(obj)
        obj.id = next(self._ids)
        table[obj.id] = obj
        return copy.deepcopy(obj)

    def _update(self, table, obj):
        if obj.id not in table:
            return False
        table[obj.id] = copy.deepcopy(obj)
        return True

    @staticmethod
    def _get(table, key):
        return copy.deepcopy(table.get(key))

    # --- Gardens ---

    def create_garden(self, garden):
        return self._insert(self.gardens, dataclasses.replace(garden, areas=[]))

    def get_garden(self, garden_id):
        return self._get(self.gardens, garden_id)

    def list_gardens(self, owner=None):
        gardens = [g for g in self.gardens.values() if owner is None or g.owner == owner]
        return copy.deepcopy(sorted(gardens, key=lambda g: g.name))

    def update_garden(self, garden):
        return self._update(self.gardens, dataclasses.replace(garden, areas=[]))

    def delete_garden(self, garden_id):
        if self.gardens.pop(garden_id, None) is None:
            return False
        for area_id in [a.id for a in self.areas.values() if a.garden_id == garden_id]:
            self.delete_area(area_id)
        for plan_id in [p.id for p in self.rotation_plans.values() if p.garden_id == garden_id]:
            del self.rotation_plans[plan_id]
        return True

    # --- Areas ---

    def create_area(self, area):
        return self._insert(self.areas, dataclasses.replace(area, beds=[], decorations=[]))

    def get_area(self, area_id):
        return self._get(self.areas, area_id)

    def list_areas(self, garden_id):
        areas = [a for a in self.areas.values() if a.garden_id == garden_id]
        return copy.deepcopy(sorted(areas, key=lambda a: (a.name, a.id)))

    def update_area(self, area):
        return self._update(self.areas, dataclasses.replace(area, beds=[], decorations=[]))

    def delete_area(self, area_id):
        if self.areas.pop(area_id, None) is None:
            return False
        for bed_id in [b.id for b in self.beds.values() if b.area_id == area_id]:
            self.delete_bed(bed_id)
        for decoration_id in [d.id for d in self.decorations.values() if d.area_id == area_id]:
            del self.decorations[decoration_id]
        return True

    # --- Beds ---

    def create_bed_with_cells(self, bed, cells):
        created = self._insert(self.beds, bed)
        for cell in cells:
            self._insert(self.cells, dataclasses.replace(cell, bed_id=created.id))
        return created

    def get_bed(self, bed_id):
        return self._get(self.beds, bed_id)

    def list_beds(self, area_id):
        beds = [b for b in self.beds.values() if b.area_id == area_id]
        return copy.deepcopy(sorted(beds, key=lambda b: (b.name, b.id)))

    def update_bed(self, bed):
        stored = self.beds.get(bed.id)
        if stored is None:
            return False
        self.beds[bed.id] = dataclasses.replace(
            copy.deepcopy(bed), grid_rows=stored.grid_rows, grid_columns=stored.grid_columns
        )
        return True

    def delete_bed(self, bed_id):
        if self.beds.pop(bed_id, None) is None:
            return False
        for cell_id in [c.id for c in self.cells.values() if c.bed_id == bed_id]:
            del self.cells[cell_id]
        for plan in self.rotation_plans.values():
            for group in plan.groups:
                if bed_id in group.assigned_bed_ids:
                    group.assigned_bed_ids.remove(bed_id)
        return True

    # --- Decorations ---

    def create_decoration(self, decoration):
        return self._insert(self.decorations, decoration)

    def get_decoration(self, decoration_id):
        return self._get(self.decorations, decoration_id)

    def list_decorations(self, area_id):
        decorations = [d for d in self.decorations.values() if d.area_id == area_id]
        return copy.deepcopy(sorted(decorations, key=lambda d: d.id))

    def update_decoration(self, decoration):
        return self._update(self.decorations, decoration)

    def delete_decoration(self, decoration_id):
        return self.decorations.pop(decoration_id, None) is not None

    # --- Rotation plans ---

    def create_rotation_plan(self, plan):
        return self._insert(self.rotation_plans, plan)

    def get_rotation_plan(self, plan_id):
        return self._get(self.rotation_plans, plan_id)

    def list_rotation_plans(self, garden_id):
        plans = [p for p in self.rotation_plans.values() if p.garden_id == garden_id]
        return copy.deepcopy(sorted(plans, key=lambda p: (-p.season_year, p.plan_name, p.id)))

    def update_rotation_plan(self, plan):
        return self._update(self.rotation_plans, plan)

    def delete_rotation_plan(self, plan_id):
        return self.rotation_plans.pop(plan_id, None) is not None

    # --- Cells ---

    def get_cell(self, bed_id, row, column):
        for cell in self.cells.values():
            if (cell.bed_id, cell.row, cell.column) == (bed_id, row, column):
                return copy.deepcopy(cell)
        return None

    def get_cell_by_id(self, cell_id):
        return self._get(self.cells, cell_id)

    def get_cells_by_bed(self, bed_id):
        cells = [c for c in self.cells.values() if c.bed_id == bed_id]
        return copy.deepcopy(sorted(cells, key=lambda c: (c.row, c.column)))

    def put_cell(self, cell):
        stored = self.cells.get(cell.id)
        if stored is None:
            raise CellNotFound(cell.id)
        if len(cell.history) < len(stored.history):
            raise PersistenceFailure(f"Refusing to drop history entries of cell {cell.id}")
        for position, entry in enumerate(stored.history):
            new = cell.history[position]
            if (new.plant_id, new.planted_date) != (entry.plant_id, entry.planted_date):
                raise PersistenceFailure(
                    f"Refusing to rewrite history entry {position} of cell {cell.id}"
                )
        self.cells[cell.id] = copy.deepcopy(cell)
        return cell


@pytest.fixture
def db_paths(monkeypatch):
    """Temporary garden + catalog databases and backup directory."""
    garden_fd, garden_db = tempfile.mkstemp(suffix='.db')
    catalog_fd, catalog_db = tempfile.mkstemp(suffix='.db')
    backup_dir = tempfile.mkdtemp()

    monkeypatch.setenv('GARDEN_DB_PATH', garden_db)
    monkeypatch.setenv('PLANT_CATALOG_DB_PATH', catalog_db)
    monkeypatch.setenv('GARDEN_BACKUP_DIR', backup_dir)

    init_db()
    seed_defaults()
    init_catalog_db()
    seed_catalog()

    yield garden_db, catalog_db

    os.close(garden_fd)
    os.close(catalog_fd)
    for path in (garden_db, catalog_db):
        for suffix in ('', '-wal', '-shm'):
            try:
                os.unlink(path + suffix)
            except (FileNotFoundError, PermissionError):
                pass
    shutil.rmtree(backup_dir, ignore_errors=True)


@pytest.fixture
def store(db_paths):
    garden_db, catalog_db = db_paths
    return GardenHierarchyStore(SQLiteGardenRepository(garden_db), PlantCatalog(catalog_db))


@pytest.fixture
def clock():
    """Mutable clock: set clock.now to move time."""
    class Clock:
        now = FIXED_NOW

        def __call__(self):
            return self.now
    return Clock()


@pytest.fixture
def manager(store, clock):
    return CellLifecycleManager(store, store.catalog, clock=clock, locks=BedLockRegistry())


def build_bed(store, grid_rows=3, grid_columns=3, name='Bed A'):
    """Create garden → area → bed in any store and return the bed."""
    garden, error = store.create_garden(Garden(owner='alice', name='Home'))
    assert error is None
    area, error = store.create_area(Area(garden_id=garden.id, name='Vegetables'))
    assert error is None
    bed, error = store.create_bed(
        Bed(area_id=area.id, name=name, grid_rows=grid_rows, grid_columns=grid_columns)
    )
    assert error is None
    return bed


@pytest.fixture
def make_bed(store):
    """Factory: build_bed bound to the SQLite store."""
    def _make_bed(grid_rows=3, grid_columns=3, name='Bed A'):
        return build_bed(store, grid_rows, grid_columns, name)
    return _make_bed


def cell_at(store, bed, row, column):
    cell, error = store.get_cell(bed.id, row, column)
    assert error is None
    return cell


@pytest.fixture
def app(db_paths):
    garden_db, catalog_db = db_paths
    app = create_app({
        'TESTING': True,
        'DATABASE': garden_db,
        'PLANT_CATALOG_DATABASE': catalog_db,
        'SECRET_KEY': 'dev-key-for-testing',
        'WTF_CSRF_ENABLED': False,
    })
    yield app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def plants():
    """Small hand-built catalog for pure companion/lifecycle tests."""
    return {
        'tomato': CatalogPlant(
            id=TOMATO, family='Solanaceae', common_name='Tomato',
            companion_plant_ids=frozenset({BASIL}),
            incompatible_plant_ids=frozenset({POTATO}),
        ),
        'potato': CatalogPlant(id=POTATO, family='Solanaceae', common_name='Potato'),
        'basil': CatalogPlant(id=BASIL, family='Lamiaceae', common_name='Basil'),
        'lettuce': CatalogPlant(id=LETTUCE, family='Asteraceae', common_name='Lettuce'),
    }


@pytest.fixture
def memory_store(plants):
    """Store over InMemoryGardenRepository with the hand-built catalog."""
    return GardenHierarchyStore(InMemoryGardenRepository(), InMemoryCatalog(plants.values()))


@pytest.fixture
def memory_manager(memory_store, clock):
    return CellLifecycleManager(memory_store, memory_store.catalog, clock=clock, locks=BedLockRegistry())
