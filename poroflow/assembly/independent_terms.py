"""
Right-hand side of the implicit step.

rhs = history @ x_prev + constants, then variant overrides in registration
order. The history matrix carries the storage and volumetric-strain terms of
the previous step. The constants carry boundary values, body force and the
gravity part of the Darcy flux. Both are derived from the same RowEquation
list as the operator.
"""

import logging

import numpy as np
from scipy.sparse import coo_matrix

from poroflow.discretization.boundary import (
    NORTH,
    ROW_BALANCE,
    ROW_TRACTION,
    SIDE_NORMALS,
    validate_boundary_values,
)
from poroflow.errors import DimensionMismatchError
from poroflow.mesh.grid_design import V

logger = logging.getLogger(__name__)


class IndependentTermsAssembler:
    def __init__(self, grid, equations, bc_values, coefficients):
        if len(equations) != grid.n_unknowns:
            raise DimensionMismatchError(
                f"{len(equations)} equations for {grid.n_unknowns} unknowns"
            )
        self.bc_values = validate_boundary_values(bc_values, n_quantities=grid.n_quantities)
        self.grid = grid
        self.equations = equations
        self.coefficients = coefficients
        self.overrides = []

        self.constants = self._constant_terms()
        self.history = self._history_matrix()

    # --- precomputed parts ---
    def side_contribution(self, eq, side, value):
        """RHS contribution of prescribing ``value`` on ``side`` of this row."""
        if eq.kind != ROW_BALANCE:
            return value if side == eq.side else 0.0
        axis = SIDE_NORMALS[side][0]
        h = (self.grid.dy, self.grid.dx)[axis]
        if eq.is_pressure:
            # prescribed outward flux leaves the cell
            return -self.grid.dt * value / h
        # prescribed traction
        return value / h

    def _constant_terms(self):
        grid = self.grid
        coeffs = self.coefficients
        g = coeffs.gravity
        constants = np.zeros(grid.n_unknowns)

        for eq in self.equations:
            q = eq.quantity
            if eq.kind != ROW_BALANCE:
                constants[eq.row] = self.bc_values[eq.side, q]
                continue

            total = 0.0
            for side in eq.boundary_sides:
                total += self.side_contribution(eq, side, self.bc_values[side, q])

            if eq.is_pressure:
                if g != 0.0:
                    mobility = coeffs.mobility[eq.pressure_index]
                    for side, (axis, sign) in enumerate(SIDE_NORMALS):
                        if axis == 0 and side not in eq.boundary_sides:
                            total += grid.dt * mobility * sign * coeffs.fluid_density * g / grid.dy
            elif q == V:
                total -= coeffs.bulk_density * g
            constants[eq.row] = total
        return constants

    def _history_matrix(self):
        n = self.grid.n_unknowns
        max_nnz = sum(len(eq.history) for eq in self.equations if eq.history is not None)
        row = np.zeros(max_nnz, dtype=np.int64)
        col = np.zeros(max_nnz, dtype=np.int64)
        data = np.zeros(max_nnz, dtype=np.float64)

        idx = 0
        for eq in self.equations:
            if eq.history is None:
                continue
            for c, value in eq.history.nonzero_items():
                row[idx] = eq.row
                col[idx] = c
                data[idx] = value
                idx += 1

        return coo_matrix((data[:idx], (row[:idx], col[:idx])), shape=(n, n)).tocsr()

    # --- per step ---
    def add_override(self, override):
        self.overrides.append(override)
        return self

    def assemble(self, fields, time_step=0):
        """Fresh RHS vector for advancing from ``fields`` (time level ``time_step``)."""
        x_prev = self.grid.gather(fields)
        rhs = self.history @ x_prev
        rhs += self.constants
        for override in self.overrides:
            override.apply(rhs, self, time_step)
        logger.debug("Step %d: |rhs| = %.6e", time_step, np.linalg.norm(rhs))
        return rhs


class StripfootLoad:
    """Vertical traction ``load`` on the top boundary, columns < ``strip_size``."""

    def __init__(self, strip_size, load):
        self.strip_size = int(strip_size)
        self.load = float(load)

    def rows(self, assembler):
        for eq in assembler.equations[assembler.grid.block(V)]:
            if NORTH not in eq.boundary_sides or eq.cell[1] >= self.strip_size:
                continue
            if eq.kind == ROW_BALANCE or (eq.kind == ROW_TRACTION and eq.side == NORTH):
                yield eq

    def apply(self, rhs, assembler, time_step):
        base = assembler.bc_values[NORTH, V]
        for eq in self.rows(assembler):
            rhs[eq.row] += (
                assembler.side_contribution(eq, NORTH, self.load)
                - assembler.side_contribution(eq, NORTH, base)
            )
