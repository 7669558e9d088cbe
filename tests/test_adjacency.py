"""
tests/test_adjacency.py — Tests for orthogonal neighbour computation.
"""

import pytest

from adjacency import neighbors_of
from models import CellAddress


def coords(addresses):
    return {(a.row, a.column) for a in addresses}


def test_inner_cell_has_four_neighbors():
    result = neighbors_of(7, 1, 1, 3, 3)
    assert result == [
        CellAddress(7, 0, 1),
        CellAddress(7, 2, 1),
        CellAddress(7, 1, 0),
        CellAddress(7, 1, 2),
    ]


def test_corner_cells_have_two_neighbors():
    assert coords(neighbors_of(1, 0, 0, 3, 3)) == {(1, 0), (0, 1)}
    assert coords(neighbors_of(1, 2, 2, 3, 3)) == {(1, 2), (2, 1)}


def test_edge_cell_has_three_neighbors():
    assert coords(neighbors_of(1, 0, 1, 3, 3)) == {(1, 1), (0, 0), (0, 2)}


def test_diagonals_are_excluded():
    assert (0, 0) not in coords(neighbors_of(1, 1, 1, 3, 3))
    assert (2, 2) not in coords(neighbors_of(1, 1, 1, 3, 3))


def test_single_cell_bed_has_no_neighbors():
    assert neighbors_of(1, 0, 0, 1, 1) == []


def test_single_row_bed():
    assert coords(neighbors_of(1, 0, 2, 1, 5)) == {(0, 1), (0, 3)}


def test_adjacency_is_symmetric():
    rows, columns = 4, 5
    for r in range(rows):
        for c in range(columns):
            for n in neighbors_of(1, r, c, rows, columns):
                assert (r, c) in coords(neighbors_of(1, n.row, n.column, rows, columns))


def test_result_never_includes_the_cell_itself():
    for r in range(3):
        for c in range(3):
            assert (r, c) not in coords(neighbors_of(1, r, c, 3, 3))


@pytest.mark.parametrize('row,column', [(-1, 0), (0, -1), (3, 0), (0, 3)])
def test_out_of_grid_coordinates_rejected(row, column):
    with pytest.raises(ValueError):
        neighbors_of(1, row, column, 3, 3)


@pytest.mark.parametrize('rows,columns', [(0, 3), (3, 0), (-1, 2)])
def test_empty_grid_rejected(rows, columns):
    with pytest.raises(ValueError):
        neighbors_of(1, 0, 0, rows, columns)
