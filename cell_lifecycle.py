"""
cell_lifecycle.py — Plant assignment and removal for bed cells.

Each cell moves between two states for the lifetime of its bed:

    EMPTY --assign_plant--> OCCUPIED --remove_plant--> EMPTY

assign_plant steps:
1. Load cell (CellNotFound)
2. Reject an occupied cell (CellOccupied)
3. Load the catalog plant (PlantNotFound)
4. Companion check against occupied orthogonal neighbours (CompanionConflict)
5. Rotation check against the cell history; advisory by default,
   RotationConflict when strict_rotation is on
6. Set the plant and append an open history entry in one write

Steps 1-6 run under a per-bed lock so the occupancy check and the write
cannot interleave with another caller's write to the same bed.
"""

import dataclasses
import logging
import threading
from datetime import datetime

from companion import validate_companions
from errors import (
    CellAlreadyEmpty, CellOccupied, CompanionConflict, GardenError,
    PersistenceFailure, PlantNotFound, RotationConflict, ValidationFailure,
)
from models import AssignmentOutcome, PlantingHistoryEntry
from rotation_engine import DEFAULT_MINIMUM_GAP_YEARS, validate_rotation

logger = logging.getLogger(__name__)


class BedLockRegistry:
    """Hands out one mutex per bed id."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def lock_for(self, bed_id):
        with self._guard:
            lock = self._locks.get(bed_id)
            if lock is None:
                lock = self._locks[bed_id] = threading.Lock()
            return lock

    def discard(self, bed_id):
        """Forget the lock of a deleted bed."""
        with self._guard:
            self._locks.pop(bed_id, None)


# Shared by every manager in the process
BED_LOCKS = BedLockRegistry()


class CellLifecycleManager:
    """Enforces the EMPTY ⇄ OCCUPIED state machine of bed cells."""

    def __init__(self, store, catalog, minimum_gap_years=DEFAULT_MINIMUM_GAP_YEARS,
                 strict_rotation=False, clock=datetime.now, locks=None):
        if minimum_gap_years < 0:
            raise ValueError(f"minimum_gap_years must be >= 0, got {minimum_gap_years}")
        self.store = store
        self.catalog = catalog
        self.minimum_gap_years = minimum_gap_years
        self.strict_rotation = strict_rotation
        self.clock = clock
        self.locks = locks or BED_LOCKS

    def _lookup_plant(self, plant_id):
        try:
            plant = self.catalog.get_catalog_plant(plant_id)
        except GardenError as e:
            return None, e
        if plant is None:
            return None, PlantNotFound(plant_id)
        return plant, None

    def _locked(self, cell_id):
        """Return (lock, error) for the bed holding cell_id."""
        cell, error = self.store.get_cell_by_id(cell_id)
        if error:
            return None, error
        return self.locks.lock_for(cell.bed_id), None

    # ========================================
    # Assignment
    # ========================================

    def assign_plant(self, cell_id, plant_id):
        """
        Place a catalog plant in an empty cell.

        Returns:
            (AssignmentOutcome, None) on success, or (None, GardenError).
            The outcome carries the rotation result so advisory rotation
            warnings reach the caller even when the assignment succeeds.
        """
        lock, error = self._locked(cell_id)
        if error:
            logger.warning("Assign %s to cell %s rejected: %s", plant_id, cell_id, error.message)
            return None, error
        with lock:
            outcome, error = self._assign(cell_id, plant_id)
        if error:
            logger.warning("Assign %s to cell %s rejected: %s", plant_id, cell_id, error.message)
        return outcome, error

    def _assign(self, cell_id, plant_id):
        cell, error = self.store.get_cell_by_id(cell_id)
        if error:
            return None, error
        if cell.is_occupied:
            return None, CellOccupied(cell_id, cell.current_plant_id)

        plant, error = self._lookup_plant(plant_id)
        if error:
            return None, error

        neighbors, error = self.store.get_occupied_neighbors(cell.bed_id, cell.row, cell.column)
        if error:
            return None, error
        companion = validate_companions(plant, neighbors)
        if not companion.is_compatible:
            return None, CompanionConflict(companion.warnings)

        now = self.clock()
        rotation = validate_rotation(cell.history, plant.family, self.minimum_gap_years, now)
        if not rotation.is_valid:
            if self.strict_rotation:
                return None, RotationConflict(rotation.recommendations)
            logger.warning(
                "Rotation warning for %s in cell %s: %s",
                plant.family, cell_id, "; ".join(rotation.recommendations)
            )

        entry = PlantingHistoryEntry(
            plant_id=plant.id,
            plant_family=plant.family,
            planted_date=now,
        )
        updated = dataclasses.replace(
            cell,
            current_plant_id=plant.id,
            history=list(cell.history) + [entry],
            updated_at=now,
        )
        saved, error = self.store.save_cell(updated)
        if error:
            return None, error

        logger.info("Planted %s (%s) in cell %s", plant.id, plant.family, cell_id)
        return AssignmentOutcome(cell=saved, companion=companion, rotation=rotation), None

    # ========================================
    # Removal
    # ========================================

    def remove_plant(self, cell_id, harvested_date=None):
        """
        Clear a cell and close its open history entry.

        Args:
            cell_id: Cell to clear
            harvested_date: Harvest time; defaults to now

        Returns:
            (Cell, None) on success, or (None, GardenError).
        """
        lock, error = self._locked(cell_id)
        if error:
            return None, error
        with lock:
            cell, error = self._remove(cell_id, harvested_date)
        if error:
            logger.warning("Remove from cell %s rejected: %s", cell_id, error.message)
        return cell, error

    def _remove(self, cell_id, harvested_date):
        cell, error = self.store.get_cell_by_id(cell_id)
        if error:
            return None, error
        if not cell.is_occupied:
            return None, CellAlreadyEmpty(cell_id)

        now = self.clock()
        harvested = harvested_date or now
        history = list(cell.history)
        open_entry = cell.open_entry

        if open_entry is None or open_entry.plant_id != cell.current_plant_id:
            logger.error("Cell %s holds %s without a matching open history entry", cell_id, cell.current_plant_id)
            return None, PersistenceFailure(
                f"Cell {cell_id} holds {cell.current_plant_id} without a matching open history entry"
            )
        if harvested < open_entry.planted_date:
            return None, ValidationFailure(
                "Harvest date precedes planting date",
                [f"{open_entry.plant_id} was planted on {open_entry.planted_date.isoformat()}"]
            )
        index = len(history) - 1 - history[::-1].index(open_entry)
        history[index] = dataclasses.replace(open_entry, harvested_date=harvested)

        updated = dataclasses.replace(
            cell,
            current_plant_id=None,
            history=history,
            updated_at=now,
        )
        saved, error = self.store.save_cell(updated)
        if error:
            return None, error

        logger.info("Removed %s from cell %s", cell.current_plant_id, cell_id)
        return saved, None

    # ========================================
    # Read-only previews
    # ========================================

    def validate_companion_planting(self, bed_id, row, column, plant_id):
        """Companion verdict for placing plant_id at (row, column), without mutating."""
        plant, error = self._lookup_plant(plant_id)
        if error:
            return None, error
        neighbors, error = self.store.get_occupied_neighbors(bed_id, row, column)
        if error:
            return None, error
        return validate_companions(plant, neighbors), None

    def validate_rotation(self, cell_id, candidate_family):
        """Rotation verdict for planting candidate_family in a cell, without mutating."""
        cell, error = self.store.get_cell_by_id(cell_id)
        if error:
            return None, error
        result = validate_rotation(cell.history, candidate_family, self.minimum_gap_years, self.clock())
        return result, None
