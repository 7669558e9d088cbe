"""
tests/test_rotation.py — Tests for the crop rotation engine.
"""

from datetime import datetime, timedelta

import pytest

from models import PlantingHistoryEntry
from rotation_engine import find_last_planting, validate_rotation, years_between

NOW = datetime(2024, 5, 1, 9, 0, 0)


def entry(family, days_ago, harvested_days_ago=None, plant_id='p'):
    return PlantingHistoryEntry(
        plant_id=plant_id,
        plant_family=family,
        planted_date=NOW - timedelta(days=days_ago),
        harvested_date=None if harvested_days_ago is None else NOW - timedelta(days=harvested_days_ago),
    )


def test_empty_history_is_valid():
    result = validate_rotation([], 'Solanaceae', 2, NOW)
    assert result.is_valid
    assert result.last_planted_family is None
    assert result.last_planted_date is None
    assert result.years_since_last_planting is None
    assert result.recommendations == []


def test_other_family_only_is_valid():
    result = validate_rotation([entry('Apiaceae', 30, 10)], 'Solanaceae', 2, NOW)
    assert result.is_valid
    assert result.last_planted_family is None


def test_planted_400_days_ago_with_two_year_gap():
    result = validate_rotation([entry('Solanaceae', 400, 300)], 'Solanaceae', 2, NOW)
    assert not result.is_valid
    assert result.years_since_last_planting == 1
    assert result.last_planted_family == 'Solanaceae'
    assert result.last_planted_date == NOW - timedelta(days=400)
    assert len(result.recommendations) == 2
    assert "1 year(s) ago" in result.recommendations[0]
    assert "400 days" in result.recommendations[0]


def test_exactly_gap_years_is_valid():
    result = validate_rotation([entry('Solanaceae', 730, 600)], 'Solanaceae', 2, NOW)
    assert result.is_valid
    assert result.years_since_last_planting == 2
    assert result.recommendations == []


def test_zero_gap_never_blocks():
    result = validate_rotation([entry('Solanaceae', 0)], 'Solanaceae', 0, NOW)
    assert result.is_valid
    assert result.years_since_last_planting == 0


def test_family_match_ignores_case():
    result = validate_rotation([entry('solanaceae', 100, 50)], 'SOLANACEAE ', 2, NOW)
    assert not result.is_valid
    assert result.last_planted_family == 'solanaceae'


def test_future_planting_clamps_to_zero_years():
    result = validate_rotation([entry('Solanaceae', -10)], 'Solanaceae', 1, NOW)
    assert result.years_since_last_planting == 0
    assert not result.is_valid


def test_negative_gap_rejected():
    with pytest.raises(ValueError):
        validate_rotation([], 'Solanaceae', -1, NOW)


def test_most_recent_planting_wins():
    history = [
        entry('Solanaceae', 100, 50, plant_id='recent'),
        entry('Solanaceae', 1000, 900, plant_id='old'),
    ]
    assert find_last_planting(history, 'Solanaceae').plant_id == 'recent'
    result = validate_rotation(history, 'Solanaceae', 2, NOW)
    assert result.years_since_last_planting == 0


def test_tie_prefers_open_entry():
    history = [
        entry('Solanaceae', 100, plant_id='open'),
        entry('Solanaceae', 100, 10, plant_id='closed'),
    ]
    assert find_last_planting(history, 'Solanaceae').plant_id == 'open'


def test_tie_prefers_latest_harvest_then_later_position():
    history = [
        entry('Solanaceae', 100, 5, plant_id='late_harvest'),
        entry('Solanaceae', 100, 50, plant_id='early_harvest'),
    ]
    assert find_last_planting(history, 'Solanaceae').plant_id == 'late_harvest'

    history = [
        entry('Solanaceae', 100, 50, plant_id='first'),
        entry('Solanaceae', 100, 50, plant_id='second'),
    ]
    assert find_last_planting(history, 'Solanaceae').plant_id == 'second'


def test_years_between_floors():
    start = datetime(2020, 1, 1)
    assert years_between(start, start + timedelta(days=364)) == 0
    assert years_between(start, start + timedelta(days=365)) == 1
    assert years_between(start, start + timedelta(days=1094)) == 2
    assert years_between(start, start - timedelta(days=30)) == 0
