"""
garden_store.py — Garden → Area → Bed → Cell containment tree.

GardenHierarchyStore owns:
- CRUD for gardens, areas, beds, decorations and rotation plans (deleting
  a parent cascades; cascaded beds are announced as bed.deleted)
- Grid provisioning: a bed is created together with all rows × columns
  cells, or not at all
- Cell lookups, occupied-neighbour resolution and occupancy statistics
- A change-notification hook for callers that mirror the layout (UI, sync)

Every public method returns a (value, error) pair: (value, None) on
success, (None, GardenError) on failure.
"""

import functools
import logging
from collections import Counter
from typing import Callable, List

from adjacency import neighbors_of
from errors import (
    GardenError, GardenNotFound, AreaNotFound, BedNotFound, CellNotFound,
    DecorationNotFound, PlantNotFound, GridImmutable, RotationPlanNotFound, ValidationFailure,
)
from models import Cell, CellOccupancy, GardenStatistics, OccupiedNeighbor
from utils.validators import (
    validate_area, validate_bed, validate_decoration, validate_garden, validate_rotation_plan,
)

logger = logging.getLogger(__name__)


def returns_result(method):
    """Turn a method that raises GardenError into one returning (value, error)."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs), None
        except GardenError as e:
            logger.debug("%s failed: %s", method.__name__, e.message)
            return None, e
    return wrapper


def _require_valid(label, errors):
    if errors:
        raise ValidationFailure(f"Invalid {label}", errors)


class GardenHierarchyStore:
    """Hierarchy CRUD on top of a persistence repository and a plant catalog."""

    def __init__(self, repository, catalog):
        self.repository = repository
        self.catalog = catalog
        self._subscribers: List[Callable] = []

    # ========================================
    # Change notifications
    # ========================================

    def subscribe(self, callback):
        """
        Register callback(event, payload), called after each successful mutation.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self, event, payload):
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception:
                # The mutation is already committed
                logger.exception("Subscriber failed on %s", event)

    def _notify_beds_deleted(self, bed_ids):
        for bed_id in bed_ids:
            self._notify('bed.deleted', bed_id)

    # ========================================
    # Internal lookups (raise)
    # ========================================

    def _garden(self, garden_id):
        garden = self.repository.get_garden(garden_id)
        if garden is None:
            raise GardenNotFound(garden_id)
        return garden

    def _area(self, area_id):
        area = self.repository.get_area(area_id)
        if area is None:
            raise AreaNotFound(area_id)
        return area

    def _bed(self, bed_id):
        bed = self.repository.get_bed(bed_id)
        if bed is None:
            raise BedNotFound(bed_id)
        return bed

    def _cell(self, cell_id):
        cell = self.repository.get_cell_by_id(cell_id)
        if cell is None:
            raise CellNotFound(cell_id)
        return cell

    def _plant(self, plant_id):
        plant = self.catalog.get_catalog_plant(plant_id)
        if plant is None:
            raise PlantNotFound(plant_id)
        return plant

    # ========================================
    # Gardens
    # ========================================

    @returns_result
    def create_garden(self, garden):
        _require_valid("garden", validate_garden(garden))
        created = self.repository.create_garden(garden)
        logger.info("Created garden %s (%s) for %s", created.id, created.name, created.owner)
        self._notify('garden.created', created)
        return created

    @returns_result
    def get_garden(self, garden_id):
        """Garden with its areas, each carrying its beds and decorations."""
        garden = self._garden(garden_id)
        garden.areas = [self._with_children(a) for a in self.repository.list_areas(garden_id)]
        return garden

    @returns_result
    def list_gardens(self, owner=None):
        return self.repository.list_gardens(owner)

    @returns_result
    def update_garden(self, garden):
        self._garden(garden.id)
        _require_valid("garden", validate_garden(garden))
        self.repository.update_garden(garden)
        self._notify('garden.updated', garden)
        return garden

    @returns_result
    def delete_garden(self, garden_id):
        self._garden(garden_id)
        bed_ids = [b.id for a in self.repository.list_areas(garden_id)
                   for b in self.repository.list_beds(a.id)]
        self.repository.delete_garden(garden_id)
        logger.info("Deleted garden %s with all areas, beds and cells", garden_id)
        self._notify('garden.deleted', garden_id)
        self._notify_beds_deleted(bed_ids)
        return garden_id

    # ========================================
    # Areas
    # ========================================

    def _with_children(self, area):
        area.beds = self.repository.list_beds(area.id)
        area.decorations = self.repository.list_decorations(area.id)
        return area

    @returns_result
    def create_area(self, area):
        self._garden(area.garden_id)
        _require_valid("area", validate_area(area))
        created = self.repository.create_area(area)
        logger.info("Created area %s in garden %s", created.id, created.garden_id)
        self._notify('area.created', created)
        return created

    @returns_result
    def get_area(self, area_id):
        return self._with_children(self._area(area_id))

    @returns_result
    def list_areas(self, garden_id):
        self._garden(garden_id)
        return self.repository.list_areas(garden_id)

    @returns_result
    def update_area(self, area):
        existing = self._area(area.id)
        _require_valid("area", validate_area(area))
        area.garden_id = existing.garden_id
        self.repository.update_area(area)
        self._notify('area.updated', area)
        return area

    @returns_result
    def delete_area(self, area_id):
        self._area(area_id)
        bed_ids = [b.id for b in self.repository.list_beds(area_id)]
        self.repository.delete_area(area_id)
        logger.info("Deleted area %s", area_id)
        self._notify('area.deleted', area_id)
        self._notify_beds_deleted(bed_ids)
        return area_id

    # ========================================
    # Beds
    # ========================================

    @returns_result
    def create_bed(self, bed):
        """
        Create a bed and provision its full grid of empty cells.

        The bed row and all rows × columns cells are written in one
        repository call; if any part fails nothing is kept.
        """
        self._area(bed.area_id)
        _require_valid("bed", validate_bed(bed))

        cells = [
            Cell(row=r, column=c)
            for r in range(bed.grid_rows)
            for c in range(bed.grid_columns)
        ]
        created = self.repository.create_bed_with_cells(bed, cells)
        logger.info(
            "Created bed %s (%dx%d, %d cells) in area %s",
            created.id, created.grid_rows, created.grid_columns, len(cells), created.area_id
        )
        self._notify('bed.created', created)
        return created

    @returns_result
    def get_bed(self, bed_id):
        return self._bed(bed_id)

    @returns_result
    def list_beds(self, area_id):
        self._area(area_id)
        return self.repository.list_beds(area_id)

    @returns_result
    def update_bed(self, bed):
        """Update descriptive fields. Changing grid dimensions is a Conflict."""
        existing = self._bed(bed.id)
        if (bed.grid_rows, bed.grid_columns) != (existing.grid_rows, existing.grid_columns):
            raise GridImmutable(bed.id)
        _require_valid("bed", validate_bed(bed))
        bed.area_id = existing.area_id
        self.repository.update_bed(bed)
        self._notify('bed.updated', bed)
        return bed

    @returns_result
    def move_bed(self, bed_id, x, y):
        bed = self._bed(bed_id)
        bed.pos_x, bed.pos_y = float(x), float(y)
        self.repository.update_bed(bed)
        logger.info("Moved bed %s to (%s, %s)", bed_id, bed.pos_x, bed.pos_y)
        self._notify('bed.updated', bed)
        return bed

    @returns_result
    def delete_bed(self, bed_id):
        self._bed(bed_id)
        self.repository.delete_bed(bed_id)
        logger.info("Deleted bed %s with its cells and history", bed_id)
        self._notify('bed.deleted', bed_id)
        return bed_id

    # ========================================
    # Decorations
    # ========================================

    @returns_result
    def create_decoration(self, decoration):
        self._area(decoration.area_id)
        _require_valid("decoration", validate_decoration(decoration))
        created = self.repository.create_decoration(decoration)
        self._notify('decoration.created', created)
        return created

    @returns_result
    def get_decoration(self, decoration_id):
        decoration = self.repository.get_decoration(decoration_id)
        if decoration is None:
            raise DecorationNotFound(decoration_id)
        return decoration

    @returns_result
    def list_decorations(self, area_id):
        self._area(area_id)
        return self.repository.list_decorations(area_id)

    @returns_result
    def update_decoration(self, decoration):
        existing = self.repository.get_decoration(decoration.id)
        if existing is None:
            raise DecorationNotFound(decoration.id)
        _require_valid("decoration", validate_decoration(decoration))
        decoration.area_id = existing.area_id
        self.repository.update_decoration(decoration)
        self._notify('decoration.updated', decoration)
        return decoration

    @returns_result
    def delete_decoration(self, decoration_id):
        if not self.repository.delete_decoration(decoration_id):
            raise DecorationNotFound(decoration_id)
        self._notify('decoration.deleted', decoration_id)
        return decoration_id

    # ========================================
    # Cells
    # ========================================

    @returns_result
    def get_cell(self, bed_id, row, column):
        cell = self.repository.get_cell(bed_id, row, column)
        if cell is None:
            raise CellNotFound((bed_id, row, column))
        return cell

    @returns_result
    def get_cell_by_id(self, cell_id):
        return self._cell(cell_id)

    @returns_result
    def list_cells(self, bed_id):
        self._bed(bed_id)
        return self.repository.get_cells_by_bed(bed_id)

    @returns_result
    def list_occupied_cells(self, bed_id):
        self._bed(bed_id)
        return [c for c in self.repository.get_cells_by_bed(bed_id) if c.is_occupied]

    @returns_result
    def list_empty_cells(self, bed_id):
        self._bed(bed_id)
        return [c for c in self.repository.get_cells_by_bed(bed_id) if not c.is_occupied]

    @returns_result
    def get_cell_history(self, cell_id):
        return list(self._cell(cell_id).history)

    @returns_result
    def save_cell(self, cell):
        """Persist a cell's assignment and history atomically."""
        saved = self.repository.put_cell(cell)
        self._notify('cell.updated', saved)
        return saved

    @returns_result
    def get_occupied_neighbors(self, bed_id, row, column):
        """
        Resolve the occupied orthogonal neighbours of a cell.

        Returns:
            List of OccupiedNeighbor(cell, catalog plant). An occupant that is
            missing from the catalog is reported as PlantNotFound.
        """
        bed = self._bed(bed_id)
        if not (0 <= row < bed.grid_rows and 0 <= column < bed.grid_columns):
            raise CellNotFound((bed_id, row, column))
        occupied = []
        for address in neighbors_of(bed.id, row, column, bed.grid_rows, bed.grid_columns):
            cell = self.repository.get_cell(address.bed_id, address.row, address.column)
            if cell is None:
                raise CellNotFound(tuple(address))
            if cell.is_occupied:
                occupied.append(OccupiedNeighbor(cell, self._plant(cell.current_plant_id)))
        return occupied

    # ========================================
    # Rotation plans
    # ========================================

    def _rotation_plan(self, plan_id):
        plan = self.repository.get_rotation_plan(plan_id)
        if plan is None:
            raise RotationPlanNotFound(plan_id)
        return plan

    def _check_rotation_plan(self, plan):
        """Field checks, then every assigned bed must belong to the plan's garden."""
        _require_valid("rotation plan", validate_rotation_plan(plan))
        garden_beds = {b.id for a in self.repository.list_areas(plan.garden_id)
                       for b in self.repository.list_beds(a.id)}
        foreign = sorted({bed_id for g in plan.groups for bed_id in g.assigned_bed_ids} - garden_beds)
        if foreign:
            raise ValidationFailure(
                "Invalid rotation plan",
                [f"Bed {bed_id} is not part of garden {plan.garden_id}." for bed_id in foreign]
            )

    @returns_result
    def create_rotation_plan(self, plan):
        self._garden(plan.garden_id)
        self._check_rotation_plan(plan)
        created = self.repository.create_rotation_plan(plan)
        logger.info(
            "Created rotation plan %s (%s %s, %d groups) for garden %s",
            created.id, created.season_type, created.season_year, len(created.groups), created.garden_id
        )
        self._notify('rotation_plan.created', created)
        return created

    @returns_result
    def get_rotation_plan(self, plan_id):
        return self._rotation_plan(plan_id)

    @returns_result
    def list_rotation_plans(self, garden_id):
        """Plans of a garden, newest season first."""
        self._garden(garden_id)
        return self.repository.list_rotation_plans(garden_id)

    @returns_result
    def update_rotation_plan(self, plan):
        existing = self._rotation_plan(plan.id)
        plan.garden_id = existing.garden_id
        self._check_rotation_plan(plan)
        self.repository.update_rotation_plan(plan)
        updated = self._rotation_plan(plan.id)
        self._notify('rotation_plan.updated', updated)
        return updated

    @returns_result
    def delete_rotation_plan(self, plan_id):
        if not self.repository.delete_rotation_plan(plan_id):
            raise RotationPlanNotFound(plan_id)
        self._notify('rotation_plan.deleted', plan_id)
        return plan_id

    # ========================================
    # Statistics
    # ========================================

    @returns_result
    def get_bed_occupancy(self, bed_id):
        self._bed(bed_id)
        cells = self.repository.get_cells_by_bed(bed_id)
        occupied = sum(1 for c in cells if c.is_occupied)
        return CellOccupancy(
            total_cells=len(cells),
            occupied_cells=occupied,
            empty_cells=len(cells) - occupied,
        )

    @returns_result
    def get_garden_statistics(self, garden_id):
        """Bed and cell counts for a garden, with current plants grouped by family."""
        self._garden(garden_id)
        stats = GardenStatistics()
        families = Counter()

        for area in self.repository.list_areas(garden_id):
            for bed in self.repository.list_beds(area.id):
                stats.total_beds += 1
                for cell in self.repository.get_cells_by_bed(bed.id):
                    stats.total_cells += 1
                    if cell.is_occupied:
                        stats.occupied_cells += 1
                        entry = cell.open_entry
                        if entry is not None:
                            families[entry.plant_family] += 1

        stats.available_cells = stats.total_cells - stats.occupied_cells
        stats.plants_by_family = dict(families)
        return stats
