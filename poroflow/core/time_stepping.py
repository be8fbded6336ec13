"""
Time-stepping solver: factorize once, then one triangular solve per step.

States: UNFACTORED -> FACTORED -> DONE. ``solve_step`` is only valid while
FACTORED and never refactorizes.
"""

import logging
from enum import Enum

import numpy as np

from poroflow.errors import DimensionMismatchError, SolverStateError
from poroflow.linear_solvers import make_factorization
from poroflow.mesh.grid_design import PM, QUANTITY_NAMES

logger = logging.getLogger(__name__)


class SolverState(str, Enum):
    UNFACTORED = "unfactored"
    FACTORED = "factored"
    DONE = "done"


class TimeSteppingSolver:
    """
    Owns the factorization and the field arrays of a run.

    Parameters
    ----------
    grid : GridDesign
        Provides the index maps used to scatter the flat solution.
    fields : FieldSet
        Initial fields; the solver takes ownership and overwrites them in
        place after each step.
    backend : str
        'scipy' (SuperLU) or 'petsc'.
    """

    def __init__(self, grid, fields=None, backend="scipy"):
        grid.check_integrity()
        self.grid = grid
        self.fields = grid.create_fields() if fields is None else fields
        for q, name in enumerate(QUANTITY_NAMES[: grid.n_quantities]):
            if name not in self.fields:
                raise DimensionMismatchError(f"Field set has no '{name}' array")
            if self.fields[name].shape != grid.shape_of(q):
                raise DimensionMismatchError(
                    f"Field '{name}' has shape {self.fields[name].shape}, "
                    f"expected {grid.shape_of(q)}"
                )
        self.backend = backend
        self.state = SolverState.UNFACTORED
        self.steps_taken = 0

        n = grid.n_unknowns
        self._factorization = None
        self._operator = None
        self._rhs = np.zeros(n)
        self._solution = np.zeros(n)

    @property
    def n_unknowns(self):
        return self.grid.n_unknowns

    def _context(self, operator):
        label = operator.discretization.label if operator.discretization else "unknown"
        return f"grid {self.grid.nx}x{self.grid.ny}, {label}, {self.n_unknowns} unknowns"

    def factorize(self, operator):
        if self.state is not SolverState.UNFACTORED:
            raise SolverStateError(f"factorize called in state '{self.state.value}'")
        if operator.shape != (self.n_unknowns, self.n_unknowns):
            raise DimensionMismatchError(
                f"Operator is {operator.shape}, grid has {self.n_unknowns} unknowns"
            )
        operator.freeze()
        A = operator.matrix
        factorization = make_factorization(self.backend)
        factorization.factorize(A, context=self._context(operator))

        self._factorization = factorization
        self._operator = A
        self.state = SolverState.FACTORED
        logger.info(
            "Factorized operator with %s (%d unknowns, %d non-zeros)",
            factorization.name, self.n_unknowns, A.nnz,
        )
        return self

    def solve_step(self, rhs):
        """Advance one step with ``rhs`` and return the updated fields."""
        if self.state is not SolverState.FACTORED:
            raise SolverStateError(
                f"solve_step requires a factorized operator (state '{self.state.value}')"
            )
        rhs = np.asarray(rhs, dtype=np.float64)
        if rhs.ndim != 1 or rhs.shape[0] != self.n_unknowns:
            raise DimensionMismatchError(
                f"Right-hand side has shape {rhs.shape}, expected ({self.n_unknowns},)"
            )

        self._rhs.fill(0.0)
        self._solution.fill(0.0)

        self._rhs[:] = rhs
        self._factorization.solve(self._rhs, out=self._solution)
        self.grid.scatter(self._solution, self.fields)
        self.steps_taken += 1

        if logger.isEnabledFor(logging.DEBUG):
            residual = np.linalg.norm(self._operator @ self._solution - self._rhs)
            logger.debug("Step %d: residual %.3e", self.steps_taken, residual)

        self._rhs.fill(0.0)
        self._solution.fill(0.0)
        return self.fields

    def set_macro_field(self, values):
        if PM >= self.grid.n_quantities:
            raise SolverStateError("Macro field is only tracked for dual porosity")
        self.fields["pm"] = values

    def get_macro_field(self):
        if PM >= self.grid.n_quantities:
            raise SolverStateError("Macro field is only tracked for dual porosity")
        return self.fields["pm"]

    def finish(self):
        if self._factorization is not None:
            self._factorization.release()
        self._factorization = None
        self._operator = None
        self.state = SolverState.DONE
        logger.info("Solver finished after %d step(s)", self.steps_taken)
        return self.fields
