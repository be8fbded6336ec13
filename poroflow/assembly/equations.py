"""
Row-by-row construction of the discrete balance equations.

One RowEquation is produced per active unknown, in global row order. Both the
operator assembler (lhs) and the RHS assembler (history, kind, sides) read
these rows, so the two can never disagree about what a row means.

Discrete equations, per unit volume and after multiplying mass balances by dt:

    momentum   -div(sigma') + sum_k alpha_k grad(p_k) = rho b
    mass (k)   sum_m S_km p_m + alpha_k div(u) + dt div(q_k) + dt leak_k
                   = sum_m S_km p_m^n + alpha_k div(u^n)

with q_k = -(K_k / mu)(grad p_k + rho_f g e_y).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from poroflow.discretization.boundary import (
    BC_DIRICHLET,
    BC_NEUMANN,
    ROW_BALANCE,
    ROW_DIRICHLET,
    ROW_NEUMANN,
    ROW_TRACTION,
    SIDE_NAMES,
    SIDE_NORMALS,
    governing_side,
    validate_boundary_tables,
)
from poroflow.discretization.face_interpolation import select_face_interpolator
from poroflow.discretization.stencils import LatticeSampler, LinearForm
from poroflow.errors import AssemblyError, ConfigurationError
from poroflow.mesh.grid_design import P, QUANTITY_NAMES, U, V

logger = logging.getLogger(__name__)

# Displacement component acting along each axis, and the axis of each component
DISPLACEMENT_OF_AXIS = (V, U)
AXIS_OF_DISPLACEMENT = {U: 1, V: 0}


@dataclass
class RowEquation:
    row: int
    quantity: int
    cell: Tuple[int, int]
    kind: str
    side: Optional[int]
    boundary_sides: Tuple[int, ...]
    lhs: LinearForm
    history: Optional[LinearForm] = None

    @property
    def is_pressure(self):
        return self.quantity >= P

    @property
    def pressure_index(self):
        return self.quantity - P


class EquationBuilder:
    def __init__(self, grid, discretization, bc_types, coefficients):
        if grid.arrangement is not discretization.arrangement:
            raise ConfigurationError(
                f"Grid is {grid.arrangement.value} but the discretization is "
                f"{discretization.label}"
            )
        if coefficients.n_pressures != grid.n_pressures:
            raise ConfigurationError(
                f"Coefficients describe {coefficients.n_pressures} pressure field(s), "
                f"grid carries {grid.n_pressures}"
            )
        self.bc_types, _ = validate_boundary_tables(
            bc_types, n_quantities=grid.n_quantities
        )
        self.grid = grid
        self.discretization = discretization
        self.coefficients = coefficients
        self.sampler = LatticeSampler(grid)
        self.face_value = select_face_interpolator(discretization)

    # --- neighbourhood ---
    def boundary_sides(self, quantity, i, j):
        sides = []
        for side, (axis, sign) in enumerate(SIDE_NORMALS):
            ni, nj = (i + sign, j) if axis == 0 else (i, j + sign)
            if self.grid.global_index(quantity, ni, nj) is None:
                sides.append(side)
        return tuple(sides)

    def sits_on_side(self, quantity, side):
        """True when the unknown lies on the grid line bounding that side."""
        axis = SIDE_NORMALS[side][0]
        return self.grid.home(quantity)[axis] == 0

    def lattice_point(self, quantity, i, j):
        pI, pJ = self.grid.home(quantity)
        return 2 * i + pI, 2 * j + pJ

    # --- stresses ---
    def pressure_term(self, I, J):
        """sum_k alpha_k p_k at (I, J)."""
        form = LinearForm()
        for k, alpha_k in enumerate(self.coefficients.biot):
            form.add(self.sampler.value_form(P + k, I, J), alpha_k)
        return form

    def stress(self, component_axis, normal_axis, I, J):
        """Total stress sigma_{n,c} = sigma'_{n,c} - delta_nc sum_k alpha_k p_k at (I, J)."""
        G = self.coefficients.shear_modulus
        lam = self.coefficients.lame
        s = self.sampler
        form = LinearForm()
        if component_axis == normal_axis:
            a = normal_axis
            form.add(s.derivative(DISPLACEMENT_OF_AXIS[a], I, J, a), lam + 2.0 * G)
            form.add(s.derivative(DISPLACEMENT_OF_AXIS[1 - a], I, J, 1 - a), lam)
            form.add(self.pressure_term(I, J), -1.0)
        else:
            form.add(s.derivative(U, I, J, 0), G)
            form.add(s.derivative(V, I, J, 1), G)
        return form

    def divergence(self, I, J):
        """Discrete div(u) of the cell centred at (I, J), from face displacements."""
        form = LinearForm()
        for axis in (0, 1):
            q = DISPLACEMENT_OF_AXIS[axis]
            dI, dJ = (1, 0) if axis == 0 else (0, 1)
            hi = self.face_value(self.sampler, self.coefficients, q, I + dI, J + dJ)
            lo = self.face_value(self.sampler, self.coefficients, q, I - dI, J - dJ)
            if hi is None or lo is None:
                raise AssemblyError(
                    f"Missing {QUANTITY_NAMES[q]} face value around lattice point ({I}, {J})"
                )
            form.add(hi - lo, 1.0 / self.sampler.spacing[axis])
        return form

    # --- rows ---
    def momentum_balance(self, quantity, I, J, boundary_sides):
        c = AXIS_OF_DISPLACEMENT[quantity]
        lhs = LinearForm()
        for side, (axis, sign) in enumerate(SIDE_NORMALS):
            if side in boundary_sides:
                continue
            dI, dJ = (sign, 0) if axis == 0 else (0, sign)
            sigma = self.stress(c, axis, I + dI, J + dJ)
            lhs.add(sigma, -sign / self.sampler.spacing[axis])
        return lhs

    def traction(self, quantity, I, J, side):
        axis, sign = SIDE_NORMALS[side]
        return self.stress(AXIS_OF_DISPLACEMENT[quantity], axis, I, J) * float(sign)

    def mass_balance(self, quantity, i, j, I, J, boundary_sides):
        k = quantity - P
        coeffs = self.coefficients
        dt = self.grid.dt

        storage = LinearForm()
        for m in range(coeffs.n_pressures):
            storage.add(LinearForm.unit(self.grid.global_index(P + m, i, j)),
                        coeffs.storage[k, m])
        history = storage.add(self.divergence(I, J), coeffs.biot[k])
        lhs = history.copy()

        mobility = coeffs.mobility[k]
        for side, (axis, sign) in enumerate(SIDE_NORMALS):
            if side in boundary_sides:
                continue
            dI, dJ = (sign, 0) if axis == 0 else (0, sign)
            grad = self.sampler.derivative(quantity, I + dI, J + dJ, axis)
            # outward Darcy flux through this face
            lhs.add(grad, -mobility * sign * dt / self.sampler.spacing[axis])

        if coeffs.n_pressures == 2 and coeffs.leak > 0.0:
            own = 1.0 if k == 0 else -1.0
            lhs.add(LinearForm.unit(self.grid.global_index(P, i, j)), own * dt * coeffs.leak)
            lhs.add(LinearForm.unit(self.grid.global_index(P + 1, i, j)), -own * dt * coeffs.leak)
        return lhs, history

    def build_row(self, quantity, i, j, row):
        I, J = self.lattice_point(quantity, i, j)
        sides = self.boundary_sides(quantity, i, j)
        pressure = quantity >= P

        side = None
        kind = ROW_BALANCE
        if sides:
            side = governing_side(sides, self.bc_types, quantity)
            bc = self.bc_types[side, quantity]
            if bc == BC_DIRICHLET:
                kind = ROW_DIRICHLET
            elif bc == BC_NEUMANN:
                kind = ROW_NEUMANN
            else:
                # every boundary side is stress/flux here
                on_line = [s for s in sides if self.sits_on_side(quantity, s)]
                if on_line:
                    side = on_line[0]
                    kind = ROW_TRACTION

        history = None
        if kind == ROW_DIRICHLET:
            lhs = LinearForm.unit(row)
        elif kind == ROW_NEUMANN:
            axis, sign = SIDE_NORMALS[side]
            ni, nj = (i - sign, j) if axis == 0 else (i, j - sign)
            inner = self.grid.global_index(quantity, ni, nj)
            if inner is None:
                raise AssemblyError(
                    f"Neumann row for {QUANTITY_NAMES[quantity]} at ({i}, {j}) on the "
                    f"{SIDE_NAMES[side]} side has no inner neighbour"
                )
            h = self.sampler.spacing[axis]
            lhs = LinearForm({row: 1.0 / h, inner: -1.0 / h})
        elif kind == ROW_TRACTION:
            lhs = self.traction(quantity, I, J, side)
        elif pressure:
            lhs, history = self.mass_balance(quantity, i, j, I, J, sides)
        else:
            lhs = self.momentum_balance(quantity, I, J, sides)

        if lhs.coefficient(row) == 0.0:
            logger.warning(
                "Row %d (%s at (%d, %d), %s) has no diagonal coefficient",
                row, QUANTITY_NAMES[quantity], i, j, kind,
            )
        return RowEquation(row, quantity, (i, j), kind, side, sides, lhs, history)

    def build(self):
        grid = self.grid
        equations = []
        for q in range(grid.n_quantities):
            offset = grid.offsets[q]
            for k, (i, j) in enumerate(grid.coords[q]):
                row = offset + k
                equations.append(self.build_row(q, int(i), int(j), row))
        return equations


def build_equations(grid, discretization, bc_types, coefficients):
    """All row equations of the coupled system, in global row order."""
    return EquationBuilder(grid, discretization, bc_types, coefficients).build()
