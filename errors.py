"""
errors.py — Tagged error kinds returned by the garden layout core.

Every failure surfaces as one of four kinds:
- NotFound: a referenced record (cell, plant, bed, area, garden,
  decoration, rotation plan) is absent
- Conflict: a precondition on the current state does not hold
- ValidationFailure: companion or (strict mode) rotation conflict
- PersistenceFailure: the underlying store could not complete the operation

Repositories raise these; the store and lifecycle manager return them as
the error half of a (value, error) pair.
"""

from typing import List, Optional


class GardenError(Exception):
    """Base class for every error the core reports."""
    kind = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'kind': self.kind, 'error': self.message}


# ========================================
# NotFound
# ========================================

class NotFound(GardenError):
    kind = 'not_found'


class GardenNotFound(NotFound):
    def __init__(self, garden_id):
        super().__init__(f"Garden not found: {garden_id}")
        self.garden_id = garden_id


class AreaNotFound(NotFound):
    def __init__(self, area_id):
        super().__init__(f"Area not found: {area_id}")
        self.area_id = area_id


class BedNotFound(NotFound):
    def __init__(self, bed_id):
        super().__init__(f"Bed not found: {bed_id}")
        self.bed_id = bed_id


class CellNotFound(NotFound):
    def __init__(self, cell_ref):
        super().__init__(f"Cell not found: {cell_ref}")
        self.cell_ref = cell_ref


class PlantNotFound(NotFound):
    def __init__(self, plant_id):
        super().__init__(f"Plant not found in catalog: {plant_id}")
        self.plant_id = plant_id


class DecorationNotFound(NotFound):
    def __init__(self, decoration_id):
        super().__init__(f"Decoration not found: {decoration_id}")
        self.decoration_id = decoration_id


class RotationPlanNotFound(NotFound):
    def __init__(self, plan_id):
        super().__init__(f"Rotation plan not found: {plan_id}")
        self.plan_id = plan_id


# ========================================
# Conflict
# ========================================

class Conflict(GardenError):
    kind = 'conflict'


class CellOccupied(Conflict):
    def __init__(self, cell_id, plant_id):
        super().__init__(f"Cell {cell_id} is already occupied by {plant_id}")
        self.cell_id = cell_id
        self.plant_id = plant_id


class CellAlreadyEmpty(Conflict):
    def __init__(self, cell_id):
        super().__init__(f"Cell {cell_id} is already empty")
        self.cell_id = cell_id


class GridImmutable(Conflict):
    def __init__(self, bed_id):
        super().__init__(f"Grid dimensions of bed {bed_id} cannot change after creation")
        self.bed_id = bed_id


# ========================================
# ValidationFailure
# ========================================

class ValidationFailure(GardenError):
    kind = 'validation_failure'

    def __init__(self, message: str, warnings: Optional[List[str]] = None):
        super().__init__(message)
        self.warnings = list(warnings or [])

    def to_dict(self):
        data = super().to_dict()
        data['warnings'] = self.warnings
        return data


class CompanionConflict(ValidationFailure):
    def __init__(self, warnings: List[str]):
        super().__init__("Companion planting validation failed", warnings)


class RotationConflict(ValidationFailure):
    def __init__(self, recommendations: List[str]):
        super().__init__("Crop rotation validation failed", recommendations)


# ========================================
# PersistenceFailure
# ========================================

class PersistenceFailure(GardenError):
    kind = 'persistence_failure'

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
