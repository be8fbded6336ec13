"""
Assembly of the coupled coefficient operator.

The working form keeps one LinearForm per row so overlapping stencil
contributions accumulate in place and variant overrides can replace whole
rows. ``triplets`` collapses it to sorted (row, col, value) arrays with
duplicates summed and zeros elided; ``matrix`` is the CSR handed to the
solver.
"""

import logging

import numpy as np
from scipy.sparse import coo_matrix

from poroflow.assembly.equations import build_equations
from poroflow.discretization.boundary import NORTH, ROW_BALANCE
from poroflow.discretization.stencils import LinearForm
from poroflow.errors import AssemblyError, DimensionMismatchError
from poroflow.mesh.grid_design import P, QUANTITY_NAMES

logger = logging.getLogger(__name__)


class CoefficientOperator:
    def __init__(self, n_unknowns, rows, discretization=None):
        if len(rows) != n_unknowns:
            raise DimensionMismatchError(
                f"{len(rows)} rows assembled for {n_unknowns} unknowns"
            )
        self.n = n_unknowns
        self.rows = list(rows)
        self.discretization = discretization
        self._frozen = False
        self._matrix = None

    @property
    def shape(self):
        return (self.n, self.n)

    @property
    def frozen(self):
        return self._frozen

    def override_row(self, row, form):
        """Replace a row of the working form; only allowed before freezing."""
        if self._frozen:
            raise AssemblyError("Operator is frozen; rows can no longer be overridden")
        if not 0 <= row < self.n:
            raise AssemblyError(f"Row {row} outside operator of size {self.n}")
        self.rows[row] = form
        self._matrix = None

    def freeze(self):
        self._frozen = True
        return self

    def triplets(self):
        """Sorted (row, col, data) arrays; duplicates summed, zeros dropped."""
        max_nnz = sum(len(form) for form in self.rows)
        row = np.zeros(max_nnz, dtype=np.int64)
        col = np.zeros(max_nnz, dtype=np.int64)
        data = np.zeros(max_nnz, dtype=np.float64)

        idx = 0
        for r, form in enumerate(self.rows):
            for c, value in form.nonzero_items():
                if c < 0 or c >= self.n:
                    raise AssemblyError(f"Row {r} references column {c} outside [0, {self.n})")
                row[idx] = r
                col[idx] = c
                data[idx] = value
                idx += 1

        return row[:idx], col[:idx], data[:idx]

    @property
    def matrix(self):
        if self._matrix is None:
            row, col, data = self.triplets()
            A = coo_matrix((data, (row, col)), shape=self.shape).tocsr()
            A.eliminate_zeros()
            self._matrix = A
        return self._matrix

    @property
    def nnz(self):
        return self.matrix.nnz

    def to_dense(self):
        """Dense copy of the working form."""
        dense = np.zeros(self.shape)
        for r, form in enumerate(self.rows):
            for c, value in form.terms.items():
                dense[r, c] += value
        return dense


def assemble_operator(grid, discretization, bc_types, coefficients, equations=None):
    """
    Assemble the coefficient operator of the coupled problem.

    Parameters
    ----------
    grid : GridDesign
    discretization : Discretization
    bc_types : array_like, 4 x K
        Boundary type table (1 Dirichlet, 0 Neumann, -1 stress/flux).
    coefficients : CouplingCoefficients
    equations : list of RowEquation, optional
        Reuse rows already built for the RHS assembler.

    Returns
    -------
    CoefficientOperator
    """
    if equations is None:
        equations = build_equations(grid, discretization, bc_types, coefficients)
    for expected, eq in enumerate(equations):
        if eq.row != expected:
            raise AssemblyError(f"Equation {expected} carries row index {eq.row}")

    operator = CoefficientOperator(
        grid.n_unknowns,
        [eq.lhs.copy() for eq in equations],
        discretization=discretization,
    )
    logger.info(
        "Assembled %s operator: %d rows, %d non-zeros",
        discretization.label, operator.n, operator.nnz,
    )
    return operator


def add_drained_strip(operator, grid, equations, coefficients, strip_size, pressure=0):
    """
    Drain the top boundary outside a loaded strip.

    Top pressure cells in columns >= ``strip_size`` get a north face held at
    zero pressure half a cell away, i.e. ``dt (K_k / mu) 2 / dy^2`` on the
    diagonal. Only balance rows can be drained.
    """
    quantity = P + pressure
    if quantity >= grid.n_quantities:
        raise AssemblyError(f"Grid has no '{QUANTITY_NAMES[quantity]}' pressure")
    coefficient = 2.0 * grid.dt * coefficients.mobility[pressure] / grid.dy**2

    drained = 0
    for eq in equations[grid.block(quantity)]:
        i, j = eq.cell
        if NORTH not in eq.boundary_sides or j < strip_size:
            continue
        if eq.kind != ROW_BALANCE:
            raise AssemblyError(
                f"Cannot drain {eq.kind} row {eq.row} at ({i}, {j}); "
                f"the north {QUANTITY_NAMES[quantity]} boundary must be flux-type"
            )
        form = operator.rows[eq.row].copy()
        form.add(LinearForm.unit(eq.row), coefficient)
        operator.override_row(eq.row, form)
        drained += 1

    logger.info("Drained %d top %s cells outside the strip", drained, QUANTITY_NAMES[quantity])
    return operator
