"""Finite-volume poroelasticity on collocated and staggered grids."""

from poroflow.assembly import (
    IndependentTermsAssembler,
    StripfootLoad,
    add_drained_strip,
    assemble_operator,
    build_equations,
)
from poroflow.core.parameters import (
    CouplingCoefficients,
    PoroelasticParameters,
    double_porosity,
    leakage_coefficient,
    single_porosity,
)
from poroflow.core.simulation import Problem, run_from_config, run_simulation
from poroflow.core.time_stepping import SolverState, TimeSteppingSolver
from poroflow.discretization import Arrangement, Discretization, Scheme
from poroflow.mesh import build_grid

__version__ = "0.1.0"
