"""
adjacency.py — Orthogonal neighbour computation for bed grids.

Only the four orthogonal neighbours (up, down, left, right) count as
adjacent. Diagonals are excluded, so corner cells have 2 neighbours,
edge cells 3, inner cells 4 and a 1×1 bed none.
"""

from typing import List

from models import CellAddress


# (row delta, column delta) in result order: up, down, left, right
ORTHOGONAL_OFFSETS = ((-1, 0), (1, 0), (0, -1), (0, 1))


def neighbors_of(bed_id, row: int, column: int, grid_rows: int, grid_columns: int) -> List[CellAddress]:
    """
    Return the in-bounds orthogonal neighbours of (row, column).

    Args:
        bed_id: Bed the cell belongs to (copied into every address)
        row, column: Zero-based coordinates of the cell
        grid_rows, grid_columns: Bed grid dimensions

    Raises:
        ValueError: if the grid is empty or the coordinates fall outside it.
    """
    if grid_rows <= 0 or grid_columns <= 0:
        raise ValueError(f"Grid dimensions must be positive, got {grid_rows}x{grid_columns}")
    if not (0 <= row < grid_rows) or not (0 <= column < grid_columns):
        raise ValueError(
            f"Cell ({row}, {column}) is outside a {grid_rows}x{grid_columns} grid"
        )

    neighbors = []
    for d_row, d_col in ORTHOGONAL_OFFSETS:
        r, c = row + d_row, column + d_col
        if 0 <= r < grid_rows and 0 <= c < grid_columns:
            neighbors.append(CellAddress(bed_id, r, c))
    return neighbors
