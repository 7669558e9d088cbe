"""
utils/validators.py — Input validation helpers.

Validates:
- Garden, area, bed, decoration and rotation plan fields before they are written
- Enumerated values against the canonical sets in models.py
- Grid coordinates and dimensions
- Request payload numbers (int/float parsing with field-named errors)

Every validator returns a list of error strings; an empty list means valid.
"""

from models import AREA_TYPES, BED_TYPES, DECORATION_TYPES, SEASON_TYPES, SUN_EXPOSURES

MAX_GRID_SIDE = 100
MIN_SEASON_YEAR = 1900
MAX_SEASON_YEAR = 2200


def _blank(value):
    """True for anything that is not a non-empty string."""
    return not isinstance(value, str) or not value.strip()


def _check_choice(errors, label, value, choices, required=True):
    if value is None:
        if required:
            errors.append(f"{label} is required.")
        return
    if value not in choices:
        errors.append(f"{label} must be one of: {', '.join(choices)}.")


def _check_ph(errors, value):
    if value is not None and not (0.0 <= value <= 14.0):
        errors.append("Soil pH must be between 0 and 14.")


def _check_size(errors, width, height):
    if width is None or width <= 0 or height is None or height <= 0:
        errors.append("Width and height must be positive.")


def validate_garden(garden):
    errors = []
    if _blank(garden.owner):
        errors.append("Garden owner is required.")
    if _blank(garden.name):
        errors.append("Garden name is required.")
    return errors


def validate_area(area):
    errors = []
    if _blank(area.name):
        errors.append("Area name is required.")
    _check_choice(errors, "Area type", area.area_type, AREA_TYPES)
    _check_choice(errors, "Sun exposure", area.sun_exposure, SUN_EXPOSURES, required=False)
    _check_size(errors, area.width, area.height)
    _check_ph(errors, area.soil_ph)
    return errors


def validate_grid(grid_rows, grid_columns):
    errors = []
    for label, value in (("Grid rows", grid_rows), ("Grid columns", grid_columns)):
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(f"{label} must be an integer.")
        elif not (1 <= value <= MAX_GRID_SIDE):
            errors.append(f"{label} must be between 1 and {MAX_GRID_SIDE}.")
    return errors


def validate_bed(bed):
    errors = []
    if _blank(bed.name):
        errors.append("Bed name is required.")
    errors.extend(validate_grid(bed.grid_rows, bed.grid_columns))
    _check_choice(errors, "Bed type", bed.bed_type, BED_TYPES)
    _check_choice(errors, "Sun exposure", bed.sun_exposure, SUN_EXPOSURES, required=False)
    _check_size(errors, bed.width, bed.height)
    _check_ph(errors, bed.soil_ph)
    return errors


def validate_decoration(decoration):
    errors = []
    _check_choice(errors, "Decoration type", decoration.decoration_type, DECORATION_TYPES)
    _check_size(errors, decoration.width, decoration.height)
    return errors


def validate_rotation_plan(plan):
    """Plan fields plus its groups: distinct orders, each bed in at most one group."""
    errors = []
    if _blank(plan.plan_name):
        errors.append("Plan name is required.")
    if not isinstance(plan.season_year, int) or isinstance(plan.season_year, bool):
        errors.append("Season year must be an integer.")
    elif not (MIN_SEASON_YEAR <= plan.season_year <= MAX_SEASON_YEAR):
        errors.append(f"Season year must be between {MIN_SEASON_YEAR} and {MAX_SEASON_YEAR}.")
    _check_choice(errors, "Season type", plan.season_type, SEASON_TYPES)

    orders = set()
    seen_beds = set()
    for index, group in enumerate(plan.groups, 1):
        label = f"Group {index}"
        if _blank(group.group_name):
            errors.append(f"{label}: name is required.")
        if _blank(group.plant_family):
            errors.append(f"{label}: plant family is required.")
        order = group.rotation_order
        if not isinstance(order, int) or isinstance(order, bool) or order < 1:
            errors.append(f"{label}: rotation order must be a positive integer.")
        elif order in orders:
            errors.append(f"{label}: rotation order {order} is used twice.")
        else:
            orders.add(order)
        for bed_id in group.assigned_bed_ids:
            if not isinstance(bed_id, int) or isinstance(bed_id, bool):
                errors.append(f"{label}: bed ids must be integers.")
            elif bed_id in seen_beds:
                errors.append(f"{label}: bed {bed_id} is already assigned to another group.")
            else:
                seen_beds.add(bed_id)
    return errors


def validate_coordinates(row, column):
    """Check that a (row, column) pair holds two non-negative integers."""
    errors = []
    for label, value in (("Row", row), ("Column", column)):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            errors.append(f"{label} must be a non-negative integer.")
    return errors


def parse_int(value, label):
    """Parse an int from request data. Returns (value, error_message)."""
    if value is None or value == '':
        return None, f"{label} is required."
    if isinstance(value, bool):
        return None, f"{label} must be an integer."
    try:
        return int(value), None
    except (TypeError, ValueError):
        return None, f"{label} must be an integer."


def parse_float(value, label, default=None):
    """Parse an optional float from request data. Returns (value, error_message)."""
    if value is None or value == '':
        return default, None
    if isinstance(value, bool):
        return None, f"{label} must be a number."
    try:
        return float(value), None
    except (TypeError, ValueError):
        return None, f"{label} must be a number."
