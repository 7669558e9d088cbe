"""
companion.py — Companion planting check for a candidate plant.

Rules, per occupied orthogonal neighbour N:
- Either side lists the other as incompatible → warning, incompatible
- Else either side lists the other as companion → benefit
A pair declared both companion and incompatible counts as incompatible.

Relationships are checked in both directions because catalog data often
declares them on one side only. Planting dates are never consulted.
"""

from typing import Iterable

from models import CatalogPlant, CompanionResult, OccupiedNeighbor


def is_incompatible(a: CatalogPlant, b: CatalogPlant) -> bool:
    return b.id in a.incompatible_plant_ids or a.id in b.incompatible_plant_ids


def is_companion(a: CatalogPlant, b: CatalogPlant) -> bool:
    return b.id in a.companion_plant_ids or a.id in b.companion_plant_ids


def validate_companions(candidate: CatalogPlant, neighbors: Iterable[OccupiedNeighbor]) -> CompanionResult:
    """
    Evaluate a candidate plant against its occupied neighbours.

    Args:
        candidate: Catalog entry of the plant about to be placed
        neighbors: OccupiedNeighbor pairs (cell, catalog plant)

    Returns:
        CompanionResult; is_compatible is True iff no warnings were produced.
    """
    warnings = []
    benefits = []

    for cell, plant in neighbors:
        where = f"row {cell.row}, column {cell.column}"
        if is_incompatible(candidate, plant):
            warnings.append(
                f"{candidate.display_name} is incompatible with {plant.display_name} at {where}"
            )
        elif is_companion(candidate, plant):
            benefits.append(
                f"{candidate.display_name} benefits from {plant.display_name} at {where}"
            )

    return CompanionResult(
        is_compatible=not warnings,
        warnings=warnings,
        benefits=benefits,
    )
