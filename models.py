"""
models.py — Python dataclasses for the garden layout core.

Maps to the SQLite tables created in database.py and to the catalog
records served by plant_catalog.py.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, NamedTuple, FrozenSet
from datetime import datetime


# ========================================
# Canonical value sets (one per concept)
# ========================================

AREA_TYPES = (
    'VEGETABLE_GARDEN', 'FLOWER_GARDEN', 'HERB_GARDEN', 'ORCHARD',
    'GREENHOUSE', 'RAISED_BEDS', 'CONTAINER_GARDEN', 'OTHER',
)

BED_TYPES = ('GROUND', 'RAISED', 'CONTAINER', 'GREENHOUSE_BED', 'HYDROPONIC')

SUN_EXPOSURES = ('FULL_SUN', 'PARTIAL_SUN', 'PARTIAL_SHADE', 'FULL_SHADE')

DECORATION_TYPES = (
    'TREE', 'POND', 'FOUNTAIN', 'PATH', 'STONE', 'BORDER', 'FENCE',
    'BENCH', 'COMPOST_BIN', 'SHED', 'GREENHOUSE', 'OTHER',
)

SEASON_TYPES = ('SPRING', 'SUMMER', 'FALL', 'WINTER', 'YEAR_ROUND')


class CellAddress(NamedTuple):
    """Unique address of a cell inside a bed grid."""
    bed_id: int
    row: int
    column: int


@dataclass
class PlantingHistoryEntry:
    """One planting in a cell. Open while harvested_date is None."""
    plant_id: str
    plant_family: str
    planted_date: datetime
    harvested_date: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.harvested_date is None


@dataclass
class Cell:
    """Smallest plantable unit of a bed grid."""
    id: Optional[int] = None
    bed_id: int = 0
    row: int = 0
    column: int = 0
    current_plant_id: Optional[str] = None
    history: List[PlantingHistoryEntry] = field(default_factory=list)
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def address(self) -> CellAddress:
        return CellAddress(self.bed_id, self.row, self.column)

    @property
    def is_occupied(self) -> bool:
        return self.current_plant_id is not None

    @property
    def open_entry(self) -> Optional[PlantingHistoryEntry]:
        """The history entry of the plant currently in the cell, if any."""
        for entry in reversed(self.history):
            if entry.is_open:
                return entry
        return None


@dataclass
class Bed:
    """Growing bed subdivided into grid_rows × grid_columns cells."""
    id: Optional[int] = None
    area_id: int = 0
    name: str = ""
    grid_rows: int = 1
    grid_columns: int = 1
    bed_type: str = 'GROUND'
    pos_x: float = 0.0
    pos_y: float = 0.0
    width: float = 1.0
    height: float = 1.0
    sun_exposure: Optional[str] = None
    soil_ph: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def cell_count(self) -> int:
        return self.grid_rows * self.grid_columns


@dataclass
class Decoration:
    """Non-growing object placed in an area (path, pond, shed...)."""
    id: Optional[int] = None
    area_id: int = 0
    decoration_type: str = 'OTHER'
    name: Optional[str] = None
    pos_x: float = 0.0
    pos_y: float = 0.0
    width: float = 1.0
    height: float = 1.0
    rotation: float = 0.0
    notes: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class Area:
    """Section of a garden with its own environmental attributes."""
    id: Optional[int] = None
    garden_id: int = 0
    name: str = ""
    area_type: str = 'VEGETABLE_GARDEN'
    pos_x: float = 0.0
    pos_y: float = 0.0
    width: float = 1.0
    height: float = 1.0
    sun_exposure: Optional[str] = None
    soil_type: Optional[str] = None
    soil_ph: Optional[float] = None
    notes: Optional[str] = None
    beds: List[Bed] = field(default_factory=list)
    decorations: List[Decoration] = field(default_factory=list)
    created_at: Optional[str] = None


@dataclass
class Garden:
    """Top-level container owned by a single user."""
    id: Optional[int] = None
    owner: str = ""
    name: str = ""
    location: Optional[str] = None
    notes: Optional[str] = None
    areas: List[Area] = field(default_factory=list)
    created_at: Optional[str] = None


@dataclass
class RotationGroup:
    """Beds that grow one plant family during a season, in rotation order."""
    group_name: str = ""
    plant_family: str = ""
    assigned_bed_ids: List[int] = field(default_factory=list)
    rotation_order: int = 1


@dataclass
class RotationPlan:
    """Seasonal plan assigning plant families to groups of beds."""
    id: Optional[int] = None
    garden_id: int = 0
    plan_name: str = ""
    season_year: int = 0
    season_type: str = 'SPRING'
    groups: List[RotationGroup] = field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class CatalogPlant:
    """Reference plant data with companion relationships."""
    id: str
    family: str
    common_name: str = ""
    latin_name: str = ""
    companion_plant_ids: FrozenSet[str] = frozenset()
    incompatible_plant_ids: FrozenSet[str] = frozenset()

    @property
    def display_name(self) -> str:
        return self.common_name or self.id


class OccupiedNeighbor(NamedTuple):
    """An occupied adjacent cell together with its occupant's catalog data."""
    cell: Cell
    plant: CatalogPlant


# ========================================
# Validation results
# ========================================

@dataclass
class CompanionResult:
    is_compatible: bool = True
    warnings: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)


@dataclass
class RotationResult:
    is_valid: bool = True
    last_planted_family: Optional[str] = None
    last_planted_date: Optional[datetime] = None
    years_since_last_planting: Optional[int] = None
    recommendations: List[str] = field(default_factory=list)


@dataclass
class AssignmentOutcome:
    """Result of a successful assignment, including advisory rotation warnings."""
    cell: Cell
    companion: CompanionResult
    rotation: RotationResult


# ========================================
# Statistics
# ========================================

@dataclass
class CellOccupancy:
    total_cells: int = 0
    occupied_cells: int = 0
    empty_cells: int = 0

    @property
    def occupancy_percentage(self) -> float:
        if self.total_cells <= 0:
            return 0.0
        return self.occupied_cells / self.total_cells * 100.0


@dataclass
class GardenStatistics:
    total_beds: int = 0
    total_cells: int = 0
    occupied_cells: int = 0
    available_cells: int = 0
    plants_by_family: Dict[str, int] = field(default_factory=dict)

    @property
    def utilization_rate(self) -> float:
        """Percentage of cells currently holding a plant."""
        if self.total_cells <= 0:
            return 0.0
        return self.occupied_cells / self.total_cells * 100.0
