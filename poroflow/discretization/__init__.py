from .boundary import BC_DIRICHLET, BC_NEUMANN, BC_STRESS, EAST, NORTH, SOUTH, WEST
from .schemes import Arrangement, Discretization, Scheme

__all__ = [
    "BC_DIRICHLET",
    "BC_NEUMANN",
    "BC_STRESS",
    "NORTH",
    "WEST",
    "SOUTH",
    "EAST",
    "Arrangement",
    "Discretization",
    "Scheme",
]
