"""
Pipeline composition: grid -> equations -> operator + RHS -> time loop.

Every stage hands its product to the next through return values. The solver
owns the field arrays during the loop; snapshots are copies.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from poroflow.assembly.coefficients import add_drained_strip, assemble_operator
from poroflow.assembly.equations import build_equations
from poroflow.assembly.independent_terms import IndependentTermsAssembler, StripfootLoad
from poroflow.core.fields import FieldSet
from poroflow.core.parameters import double_porosity, leakage_coefficient, single_porosity
from poroflow.core.time_stepping import TimeSteppingSolver
from poroflow.discretization.boundary import validate_boundary_tables
from poroflow.discretization.schemes import Discretization, Scheme
from poroflow.errors import ConfigurationError
from poroflow.mesh.grid_design import GridDesign, build_grid

logger = logging.getLogger(__name__)


@dataclass
class Problem:
    grid: GridDesign
    discretization: Discretization
    bc_types: np.ndarray
    bc_values: np.ndarray
    coefficients: object
    initial_fields: Optional[FieldSet] = None
    strip_size: Optional[int] = None
    strip_load: float = 0.0

    def __post_init__(self):
        self.bc_types, self.bc_values = validate_boundary_tables(
            self.bc_types, self.bc_values, n_quantities=self.grid.n_quantities
        )


@dataclass
class SimulationResult:
    grid: GridDesign
    fields: FieldSet
    snapshots: Dict[int, FieldSet] = field(default_factory=dict)
    steps: int = 0


def default_export_steps(nt):
    last = nt - 1
    return sorted({s for s in (1, last // 8, last // 2, last) if s >= 1})


def run_simulation(problem, export_steps=None, backend="scipy"):
    """
    Run the implicit time loop of ``problem``.

    Returns a SimulationResult holding the final fields and copies of the
    fields after each step listed in ``export_steps``.
    """
    grid = problem.grid
    disc = problem.discretization
    export = set(default_export_steps(grid.nt) if export_steps is None else export_steps)

    if disc.scheme is Scheme.CDS:
        dt_min = problem.coefficients.minimum_time_step(grid.h)
        if grid.dt < dt_min:
            logger.warning(
                "dt = %.4g is below %.4g; collocated CDS pressures may oscillate",
                grid.dt, dt_min,
            )

    equations = build_equations(grid, disc, problem.bc_types, problem.coefficients)
    operator = assemble_operator(
        grid, disc, problem.bc_types, problem.coefficients, equations=equations
    )
    rhs_assembler = IndependentTermsAssembler(
        grid, equations, problem.bc_values, problem.coefficients
    )

    if problem.strip_size is not None:
        for k in range(grid.n_pressures):
            add_drained_strip(
                operator, grid, equations, problem.coefficients, problem.strip_size, pressure=k
            )
        rhs_assembler.add_override(StripfootLoad(problem.strip_size, problem.strip_load))

    fields = problem.initial_fields.copy() if problem.initial_fields is not None else None
    solver = TimeSteppingSolver(grid, fields, backend=backend)
    solver.factorize(operator)

    snapshots = {}
    for step in range(1, grid.nt):
        rhs = rhs_assembler.assemble(solver.fields, time_step=step - 1)
        fields = solver.solve_step(rhs)
        if step in export:
            snapshots[step] = fields.copy()

    fields = solver.finish()
    logger.info("Run finished: %d step(s) on %s", grid.nt - 1, grid.summary())
    return SimulationResult(grid=grid, fields=fields, snapshots=snapshots, steps=grid.nt - 1)


def run_from_config(config):
    """
    Build and run the problem described by a RunConfig.

    Three-column boundary tables give a single-porosity run; four columns
    give a dual-porosity run, which needs the macro properties.
    """
    g = config.grid
    props = config.properties
    disc = Discretization.from_strings(g.grid_type, g.interp_scheme)
    bc_types, bc_values = config.boundary.arrays()

    dual = bc_types.shape[1] == 4
    if dual:
        if not props.has_macro:
            raise ConfigurationError(
                "Four-column boundary tables need macro_porosity and macro_permeability"
            )
        leak = leakage_coefficient(config.shape_factor, props.permeability, props.fluid_viscosity)
        coefficients = double_porosity(props, gravity=config.gravity, leak=leak)
    else:
        coefficients = single_porosity(props, gravity=config.gravity)

    grid = build_grid(
        g.nx, g.ny, g.nt, g.lx, g.ly, g.total_time, disc.arrangement, g.polygon,
        double_porosity=dual,
    )
    problem = Problem(
        grid=grid,
        discretization=disc,
        bc_types=bc_types,
        bc_values=bc_values,
        coefficients=coefficients,
        strip_size=config.strip_size,
        strip_load=config.strip_load,
    )
    return run_simulation(
        problem, export_steps=config.solver.export_steps, backend=config.solver.backend
    )
