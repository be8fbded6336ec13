import dataclasses

import numpy as np
import pytest

from poroflow.discretization.schemes import Arrangement
from poroflow.errors import ConfigurationError, DimensionMismatchError, IndexMapError
from poroflow.mesh.polygon import point_in_polygon
from poroflow.mesh.grid_design import (
    FACE_BOUNDARY,
    FACE_INTERNAL,
    FACE_OUTSIDE,
    INACTIVE,
    P,
    PM,
    U,
    V,
    build_grid,
)

TRIANGLE = [[0.0, 0.0], [4.0, 0.0], [0.0, 4.0]]


def _all_grids():
    return [
        build_grid(5, 3, 3, 2.5, 1.5, 10.0, "collocated"),
        build_grid(5, 3, 3, 2.5, 1.5, 10.0, "staggered"),
        build_grid(4, 4, 2, 4.0, 4.0, 1.0, "collocated", polygon=TRIANGLE),
        build_grid(4, 4, 2, 4.0, 4.0, 1.0, "staggered", polygon=TRIANGLE),
        build_grid(3, 2, 2, 3.0, 2.0, 1.0, "staggered", double_porosity=True),
    ]


def test_index_map_and_coords_are_inverse(subtests):
    for grid in _all_grids():
        for q in range(grid.n_quantities):
            index_map = grid.index_maps[q]
            coords = grid.coords[q]
            with subtests.test(arrangement=grid.arrangement.value, quantity=q):
                for k, (i, j) in enumerate(coords):
                    assert index_map[i, j] == k
                active = np.argwhere(index_map != INACTIVE)
                for i, j in active:
                    assert tuple(coords[index_map[i, j]]) == (i, j)
                values = np.sort(index_map[index_map != INACTIVE])
                assert np.array_equal(values, np.arange(coords.shape[0]))


def test_numbering_is_row_major_and_blocks_are_quantity_major():
    for grid in _all_grids():
        for q in range(grid.n_quantities):
            coords = grid.coords[q]
            n_cols = grid.shape_of(q)[1]
            linear = coords[:, 0] * n_cols + coords[:, 1]
            assert np.all(np.diff(linear) > 0)
        assert grid.offsets[0] == 0
        for q in range(1, grid.n_quantities):
            assert grid.offsets[q] == grid.offsets[q - 1] + grid.counts[q - 1]
        assert grid.n_unknowns == sum(grid.counts)


def test_rectangle_counts():
    nx, ny = 5, 3
    coll = build_grid(nx, ny, 3, 2.5, 1.5, 10.0, "collocated")
    assert coll.counts == (nx * ny, nx * ny, nx * ny)
    stag = build_grid(nx, ny, 3, 2.5, 1.5, 10.0, "staggered")
    assert stag.counts == (ny * (nx + 1), (ny + 1) * nx, nx * ny)
    assert stag.shape_of(U) == (ny, nx + 1)
    assert stag.shape_of(V) == (ny + 1, nx)
    assert stag.shape_of(P) == (ny, nx)


def test_sizes_and_time_step():
    grid = build_grid(5, 3, 11, 2.5, 1.5, 10.0, "staggered")
    assert grid.dx == pytest.approx(0.5)
    assert grid.dy == pytest.approx(0.5)
    assert grid.dt == pytest.approx(1.0)
    assert grid.h == pytest.approx(0.5)
    assert grid.arrangement is Arrangement.STAGGERED


def test_triangle_clipping():
    coll = build_grid(4, 4, 2, 4.0, 4.0, 1.0, "collocated", polygon=TRIANGLE)
    assert coll.counts[P] == 10
    expected = np.add.outer(np.arange(4), np.arange(4)) <= 3
    assert np.array_equal(coll.index_maps[P] != INACTIVE, expected)

    stag = build_grid(4, 4, 2, 4.0, 4.0, 1.0, "staggered", polygon=TRIANGLE)
    assert stag.counts[P] == 10
    assert stag.counts[U] == 5 + 4 + 3 + 2
    assert stag.counts[V] == 5 + 4 + 3 + 2


def test_staggered_faces_follow_midpoint_containment(subtests):
    trapezoid = np.array([[4.0, 4.0], [0.0, 4.0], [0.0, 0.0], [2.5, 0.0]])
    grid = build_grid(8, 8, 2, 4.0, 4.0, 1.0, "staggered", polygon=trapezoid)
    vx = np.ascontiguousarray(trapezoid[:, 0])
    vy = np.ascontiguousarray(trapezoid[:, 1])
    tol = 1.0e-9 * 4.0

    statuses = {U: grid.face_status_x, V: grid.face_status_y}
    for q in (U, V):
        with subtests.test(quantity=q):
            active = grid.index_maps[q] != INACTIVE
            for i, j in np.ndindex(active.shape):
                x, y = grid.position(q, i, j)
                inside = point_in_polygon(x, y, vx, vy, tol)
                bounds_cell = statuses[q][i, j] != FACE_OUTSIDE
                assert active[i, j] == (inside or bounds_cell), (q, i, j)


def test_face_midpoint_inside_polygon_is_active_without_cells():
    # one row of cells plus a spike too thin to hold a cell centre
    spike = [
        [0.0, 0.0], [4.0, 0.0], [4.0, 1.0], [1.1, 1.0],
        [1.1, 4.0], [0.9, 4.0], [0.9, 1.0], [0.0, 1.0],
    ]
    grid = build_grid(4, 4, 2, 4.0, 4.0, 1.0, "staggered", polygon=spike)
    assert grid.counts[P] == 4
    for i in (1, 2, 3):
        assert grid.face_status_x[i, 1] == FACE_OUTSIDE
        assert grid.global_index(U, i, 1) is not None
        assert grid.global_index(U, i, 2) is None
    grid.check_integrity()


def test_face_status_rectangle():
    nx, ny = 4, 3
    grid = build_grid(nx, ny, 2, 4.0, 3.0, 1.0, "collocated")
    sx = grid.face_status_x
    sy = grid.face_status_y
    assert sx.shape == (ny, nx + 1)
    assert sy.shape == (ny + 1, nx)
    assert np.all(sx[:, 0] == FACE_BOUNDARY)
    assert np.all(sx[:, -1] == FACE_BOUNDARY)
    assert np.all(sx[:, 1:-1] == FACE_INTERNAL)
    assert np.all(sy[0, :] == FACE_BOUNDARY)
    assert np.all(sy[-1, :] == FACE_BOUNDARY)
    assert np.all(sy[1:-1, :] == FACE_INTERNAL)


def test_face_status_triangle_has_outside_faces():
    grid = build_grid(4, 4, 2, 4.0, 4.0, 1.0, "collocated", polygon=TRIANGLE)
    assert grid.face_status_x[3, 4] == FACE_OUTSIDE
    assert grid.face_status_x[3, 1] == FACE_BOUNDARY
    assert grid.face_status_x[0, 2] == FACE_INTERNAL


def test_double_porosity_shares_pressure_map():
    grid = build_grid(3, 2, 2, 3.0, 2.0, 1.0, "collocated", double_porosity=True)
    assert grid.n_quantities == 4
    assert grid.n_pressures == 2
    assert np.array_equal(grid.index_maps[PM], grid.index_maps[P])
    assert grid.offsets[PM] == grid.offsets[P] + grid.counts[P]
    fields = grid.create_fields()
    assert fields.names == ("u", "v", "p", "pm")


def test_global_index_and_positions():
    grid = build_grid(4, 4, 2, 4.0, 4.0, 1.0, "staggered", polygon=TRIANGLE)
    assert grid.global_index(P, 3, 3) is None
    assert grid.global_index(P, -1, 0) is None
    assert grid.global_index(P, 0, 0) == grid.offsets[P]
    assert grid.global_index(U, 0, 0) == 0
    assert grid.position(U, 0, 0) == pytest.approx((0.0, 0.5))
    assert grid.position(V, 0, 0) == pytest.approx((0.5, 0.0))
    assert grid.position(P, 1, 2) == pytest.approx((2.5, 1.5))


def test_gather_scatter_round_trip():
    grid = build_grid(4, 4, 2, 4.0, 4.0, 1.0, "staggered", polygon=TRIANGLE)
    rng = np.random.default_rng(7)
    x = rng.standard_normal(grid.n_unknowns)
    fields = grid.scatter(x, grid.create_fields())
    assert np.array_equal(grid.gather(fields), x)
    assert np.all(fields.p[grid.index_maps[P] == INACTIVE] == 0.0)


def test_scatter_rejects_wrong_length():
    grid = build_grid(2, 2, 2, 1.0, 1.0, 1.0, "collocated")
    with pytest.raises(DimensionMismatchError):
        grid.scatter(np.zeros(grid.n_unknowns + 1), grid.create_fields())


def test_index_maps_are_read_only():
    grid = build_grid(2, 2, 2, 1.0, 1.0, 1.0, "collocated")
    with pytest.raises(ValueError):
        grid.index_maps[P][0, 0] = 5


def test_corrupt_index_map_is_detected():
    grid = build_grid(3, 3, 2, 1.0, 1.0, 1.0, "collocated")
    grid.check_integrity()
    bad = grid.index_maps[P].copy()
    bad[0, 0], bad[0, 1] = bad[0, 1], bad[0, 0]
    maps = list(grid.index_maps)
    maps[P] = bad
    corrupt = dataclasses.replace(grid, index_maps=tuple(maps))
    with pytest.raises(IndexMapError):
        corrupt.check_integrity()


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(nx=0, ny=2, nt=2),
        dict(nx=2, ny=2, nt=1),
        dict(nx=2, ny=2, nt=2, polygon=[[10.0, 10.0], [11.0, 10.0], [11.0, 11.0]]),
        dict(nx=2, ny=2, nt=2, grid_type="hexagonal"),
    ],
)
def test_invalid_grids_raise_configuration_error(kwargs):
    args = dict(lx=1.0, ly=1.0, total_time=1.0, grid_type="collocated")
    args.update(kwargs)
    with pytest.raises(ConfigurationError):
        build_grid(**args)
