"""
Structured grid design for the poroelastic finite-volume core.

A GridDesign describes a uniform nx x ny grid over the bounding box
[0, lx] x [0, ly], clipped to a polygonal domain. Each quantity has its own
logical grid and index map:

    collocated  u, v, p, pm  at cell centres           (ny, nx)
    staggered   u            on vertical faces          (ny, nx + 1)
                v            on horizontal faces        (ny + 1, nx)
                p, pm        at cell centres            (ny, nx)

Row i = 0 is the southern row. Active positions are numbered row-major
within a quantity, and quantities are stacked u, v, p, pm to form the global
unknown vector. Every stencil relies on this ordering: neighbours are found
by offsetting logical coordinates and reading the index map, never through
an adjacency list.

Index maps hold INACTIVE (-1) outside the domain.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
from numba import njit

from poroflow.core.fields import FieldSet, gather_block, scatter_block
from poroflow.discretization.schemes import Arrangement, parse_arrangement
from poroflow.errors import ConfigurationError, DimensionMismatchError, IndexMapError
from poroflow.mesh.polygon import classify_points, rectangle_polygon, validate_polygon

logger = logging.getLogger(__name__)

INACTIVE = -1

# Quantity codes (block order and boundary-table column order)
U = 0
V = 1
P = 2
PM = 3

QUANTITY_NAMES = ("u", "v", "p", "pm")

# Face status codes
FACE_INTERNAL = 1
FACE_BOUNDARY = 0
FACE_OUTSIDE = -1

# Parity of each location class on the half-spacing lattice (I = 2 y/dy, J = 2 x/dx)
CENTER = (1, 1)
XFACE = (1, 0)
YFACE = (0, 1)
CORNER = (0, 0)


# --- numba kernels ---
@njit
def number_active(mask):
    """Row-major numbering of a boolean mask; returns (index_map, coords)."""
    n_rows, n_cols = mask.shape
    index_map = np.full((n_rows, n_cols), -1, dtype=np.int64)
    count = 0
    for i in range(n_rows):
        for j in range(n_cols):
            if mask[i, j]:
                index_map[i, j] = count
                count += 1
    coords = np.empty((count, 2), dtype=np.int64)
    for i in range(n_rows):
        for j in range(n_cols):
            k = index_map[i, j]
            if k >= 0:
                coords[k, 0] = i
                coords[k, 1] = j
    return index_map, coords


@njit
def compute_face_status(active):
    """
    Status of every vertical and horizontal face of the centre grid.

    Returns (status_x, status_y) with shapes (ny, nx + 1) and (ny + 1, nx).
    """
    ny, nx = active.shape
    status_x = np.empty((ny, nx + 1), dtype=np.int64)
    status_y = np.empty((ny + 1, nx), dtype=np.int64)

    for i in range(ny):
        for j in range(nx + 1):
            left = j > 0 and active[i, j - 1]
            right = j < nx and active[i, j]
            if left and right:
                status_x[i, j] = 1
            elif left or right:
                status_x[i, j] = 0
            else:
                status_x[i, j] = -1

    for i in range(ny + 1):
        for j in range(nx):
            below = i > 0 and active[i - 1, j]
            above = i < ny and active[i, j]
            if below and above:
                status_y[i, j] = 1
            elif below or above:
                status_y[i, j] = 0
            else:
                status_y[i, j] = -1

    return status_x, status_y


@njit
def check_inverse(index_map, coords):
    """Number of positions where index map and coordinate table disagree."""
    bad = 0
    n = coords.shape[0]
    n_rows, n_cols = index_map.shape
    seen = 0
    for k in range(n):
        i = coords[k, 0]
        j = coords[k, 1]
        if i < 0 or i >= n_rows or j < 0 or j >= n_cols or index_map[i, j] != k:
            bad += 1
    for i in range(n_rows):
        for j in range(n_cols):
            k = index_map[i, j]
            if k >= 0:
                seen += 1
                if k >= n:
                    bad += 1
    if seen != n:
        bad += abs(seen - n)
    return bad


@dataclass(frozen=True, eq=False)
class GridDesign:
    nx: int
    ny: int
    nt: int
    lx: float
    ly: float
    total_time: float
    arrangement: Arrangement
    polygon: np.ndarray
    double_porosity: bool
    index_maps: Tuple[np.ndarray, ...]
    coords: Tuple[np.ndarray, ...]
    face_status_x: np.ndarray
    face_status_y: np.ndarray
    counts: Tuple[int, ...] = field(init=False)
    offsets: Tuple[int, ...] = field(init=False)

    def __post_init__(self):
        counts = tuple(int(c.shape[0]) for c in self.coords)
        offsets = tuple(int(o) for o in np.concatenate(([0], np.cumsum(counts)[:-1])))
        object.__setattr__(self, "counts", counts)
        object.__setattr__(self, "offsets", offsets)
        for arr in (*self.index_maps, *self.coords, self.face_status_x,
                    self.face_status_y, self.polygon):
            arr.setflags(write=False)

    # --- sizes ---
    @property
    def dx(self):
        return self.lx / self.nx

    @property
    def dy(self):
        return self.ly / self.ny

    @property
    def dt(self):
        return self.total_time / (self.nt - 1)

    @property
    def h(self):
        return max(self.dx, self.dy)

    @property
    def n_quantities(self):
        return len(self.index_maps)

    @property
    def n_pressures(self):
        return self.n_quantities - 2

    @property
    def n_unknowns(self):
        return int(sum(self.counts))

    # --- lattice bookkeeping ---
    def home(self, quantity):
        """Lattice parity of the points where ``quantity`` lives."""
        if self.arrangement is Arrangement.STAGGERED:
            if quantity == U:
                return XFACE
            if quantity == V:
                return YFACE
        return CENTER

    def shape_of(self, quantity):
        return self.index_maps[quantity].shape

    def block(self, quantity):
        start = self.offsets[quantity]
        return slice(start, start + self.counts[quantity])

    def global_index(self, quantity, row, col):
        """Global unknown number of a logical position, or None if inactive."""
        index_map = self.index_maps[quantity]
        n_rows, n_cols = index_map.shape
        if row < 0 or row >= n_rows or col < 0 or col >= n_cols:
            return None
        k = index_map[row, col]
        if k == INACTIVE:
            return None
        return self.offsets[quantity] + int(k)

    def position(self, quantity, row, col):
        """Physical (x, y) of a logical position of ``quantity``."""
        pi, pj = self.home(quantity)
        return (col + 0.5 * pj) * self.dx, (row + 0.5 * pi) * self.dy

    # --- fields ---
    def create_fields(self):
        names = QUANTITY_NAMES[: self.n_quantities]
        return FieldSet({name: np.zeros(self.shape_of(q)) for q, name in enumerate(names)})

    def gather(self, fields):
        """Flatten the active entries of ``fields`` into a global vector."""
        x = np.zeros(self.n_unknowns)
        for q in range(self.n_quantities):
            values = fields[QUANTITY_NAMES[q]]
            if values.shape != self.shape_of(q):
                raise DimensionMismatchError(
                    f"Field '{QUANTITY_NAMES[q]}' has shape {values.shape}, "
                    f"expected {self.shape_of(q)}"
                )
            gather_block(values, self.coords[q], x[self.block(q)])
        return x

    def scatter(self, x, fields):
        """Write a global vector back into the active entries of ``fields``."""
        if x.shape[0] != self.n_unknowns:
            raise DimensionMismatchError(
                f"Solution has length {x.shape[0]}, grid has {self.n_unknowns} unknowns"
            )
        for q in range(self.n_quantities):
            scatter_block(x[self.block(q)], self.coords[q], fields[QUANTITY_NAMES[q]])
        return fields

    def check_integrity(self):
        for q in range(self.n_quantities):
            bad = check_inverse(self.index_maps[q], self.coords[q])
            if bad:
                raise IndexMapError(
                    f"Index map for '{QUANTITY_NAMES[q]}' is corrupt "
                    f"({bad} inconsistent entries)"
                )

    def summary(self):
        parts = ", ".join(
            f"{QUANTITY_NAMES[q]}={self.counts[q]}" for q in range(self.n_quantities)
        )
        return (
            f"{self.arrangement.value} grid {self.nx}x{self.ny}, dx={self.dx:.4g}, "
            f"dy={self.dy:.4g}, dt={self.dt:.4g}, active: {parts}"
        )


def build_grid(
    nx,
    ny,
    nt,
    lx,
    ly,
    total_time,
    grid_type="staggered",
    polygon: Optional[np.ndarray] = None,
    double_porosity=False,
) -> GridDesign:
    """
    Build index maps, coordinate tables and face-status tables.

    Parameters
    ----------
    nx, ny : int
        Number of cell columns and rows of the bounding box.
    nt : int
        Number of time levels; the run performs nt - 1 steps.
    lx, ly : float
        Bounding box width and height.
    total_time : float
        Simulated time.
    grid_type : str or Arrangement
        'collocated' or 'staggered'.
    polygon : array_like, optional
        Domain vertices in order; defaults to the bounding box.
    double_porosity : bool
        Adds the macro pressure quantity, sharing the pressure index map.

    Returns
    -------
    GridDesign
    """
    arrangement = parse_arrangement(grid_type)
    if int(nx) < 1 or int(ny) < 1:
        raise ConfigurationError(f"Grid resolution must be positive, got {nx}x{ny}")
    if int(nt) < 2:
        raise ConfigurationError(f"At least two time levels are needed, got nt={nt}")
    if not (lx > 0 and ly > 0 and total_time > 0):
        raise ConfigurationError("Domain extents and total time must be positive")
    nx, ny, nt = int(nx), int(ny), int(nt)
    lx, ly, total_time = float(lx), float(ly), float(total_time)

    vertices = rectangle_polygon(lx, ly) if polygon is None else validate_polygon(polygon)
    vx = np.ascontiguousarray(vertices[:, 0])
    vy = np.ascontiguousarray(vertices[:, 1])
    tol = 1.0e-9 * max(lx, ly)

    dx = lx / nx
    dy = ly / ny
    xc = (np.arange(nx) + 0.5) * dx
    yc = (np.arange(ny) + 0.5) * dy

    active_p = classify_points(xc, yc, vx, vy, tol)
    if not active_p.any():
        raise ConfigurationError("Polygon leaves no active pressure cell")

    status_x, status_y = compute_face_status(active_p)

    if arrangement is Arrangement.STAGGERED:
        # Face midpoints inside the polygon, plus every face of an active pressure cell
        xf = np.arange(nx + 1) * dx
        yf = np.arange(ny + 1) * dy
        active_u = classify_points(xf, yc, vx, vy, tol) | (status_x != FACE_OUTSIDE)
        active_v = classify_points(xc, yf, vx, vy, tol) | (status_y != FACE_OUTSIDE)
    else:
        active_u = active_p
        active_v = active_p

    masks = [active_u, active_v, active_p]
    if double_porosity:
        masks.append(active_p)

    index_maps = []
    coords = []
    for q, mask in enumerate(masks):
        if not mask.any():
            raise ConfigurationError(
                f"Polygon leaves no active cell for quantity '{QUANTITY_NAMES[q]}'"
            )
        index_map, coord = number_active(mask)
        index_maps.append(index_map)
        coords.append(coord)

    grid = GridDesign(
        nx=nx,
        ny=ny,
        nt=nt,
        lx=lx,
        ly=ly,
        total_time=total_time,
        arrangement=arrangement,
        polygon=vertices,
        double_porosity=bool(double_porosity),
        index_maps=tuple(index_maps),
        coords=tuple(coords),
        face_status_x=status_x,
        face_status_y=status_y,
    )
    logger.info(grid.summary())
    return grid
