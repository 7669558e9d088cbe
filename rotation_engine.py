"""
rotation_engine.py — Crop rotation check over a cell's planting history.

This module implements:
- Last-planting lookup: the most recent history entry of a given plant family
- Elapsed time in whole years since that planting
- A verdict against a minimum gap, with human-readable recommendations

Algorithm details:
- Family comparison ignores case and surrounding whitespace
- Most recent = max planted_date; ties go to the latest harvested_date
  (an entry still in the ground counts as latest), then to the later
  position in history
- years = floor((now - planted_date) / 365 days), never below 0
- valid iff years >= minimum_gap_years; a zero gap never blocks
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from models import PlantingHistoryEntry, RotationResult


DEFAULT_MINIMUM_GAP_YEARS = 2
YEAR = timedelta(days=365)


def normalize_family(family: Optional[str]) -> str:
    """Normalize a plant family name for comparison."""
    return (family or '').strip().lower()


def _recency_key(indexed_entry):
    index, entry = indexed_entry
    open_flag = 1 if entry.harvested_date is None else 0
    harvested = entry.harvested_date if entry.harvested_date is not None else entry.planted_date
    return (entry.planted_date, open_flag, harvested, index)


def find_last_planting(history: Iterable[PlantingHistoryEntry], family: str) -> Optional[PlantingHistoryEntry]:
    """
    Return the most recent history entry for a plant family, or None.

    Args:
        history: Cell history in planting order
        family: Plant family to look for (e.g., "Solanaceae")
    """
    wanted = normalize_family(family)
    matching = [
        (i, entry) for i, entry in enumerate(history)
        if normalize_family(entry.plant_family) == wanted
    ]
    if not matching:
        return None
    return max(matching, key=_recency_key)[1]


def years_between(start: datetime, end: datetime) -> int:
    """Whole years elapsed from start to end (365-day years, floored, min 0)."""
    elapsed = (end - start) / YEAR
    return max(0, math.floor(elapsed))


def validate_rotation(history, candidate_family, minimum_gap_years=DEFAULT_MINIMUM_GAP_YEARS, now=None):
    """
    Check whether a plant family may go into a cell given its history.

    Args:
        history: List of PlantingHistoryEntry for the cell
        candidate_family: Family of the plant about to be placed
        minimum_gap_years: Years that must separate two plantings of a family
        now: Reference time; defaults to datetime.now()

    Returns:
        RotationResult. With no earlier planting of the family the result is
        valid and every other field is None.

    Raises:
        ValueError: if minimum_gap_years is negative.
    """
    if minimum_gap_years < 0:
        raise ValueError(f"minimum_gap_years must be >= 0, got {minimum_gap_years}")
    if now is None:
        now = datetime.now()

    last = find_last_planting(history, candidate_family)
    if last is None:
        return RotationResult(is_valid=True)

    years = years_between(last.planted_date, now)
    is_valid = years >= minimum_gap_years

    recommendations = []
    if not is_valid:
        elapsed_days = max(0, (now - last.planted_date).days)
        recommendations.append(
            f"{last.plant_family} was planted in this cell {years} year(s) ago "
            f"({elapsed_days} days, on {last.planted_date.date().isoformat()}); "
            f"wait at least {minimum_gap_years} year(s) between {last.plant_family} plantings."
        )
        recommendations.append(
            f"Choose a plant from another family for this cell until "
            f"{(last.planted_date + YEAR * minimum_gap_years).date().isoformat()}."
        )

    return RotationResult(
        is_valid=is_valid,
        last_planted_family=last.plant_family,
        last_planted_date=last.planted_date,
        years_since_last_planting=years,
        recommendations=recommendations,
    )
