"""
Boundary-condition codes and the per-row boundary classification.

Boundary tables are 4 x K arrays. Rows follow the side order north, west,
south, east; columns follow the quantity order u, v, p (, pm).
"""

import numpy as np

from poroflow.errors import ConfigurationError

# Boundary condition type codes
BC_DIRICHLET = 1  # prescribed value
BC_NEUMANN = 0  # prescribed outward normal derivative
BC_STRESS = -1  # prescribed traction (displacements) or outward flux (pressures)

BC_TYPES = (BC_DIRICHLET, BC_NEUMANN, BC_STRESS)

# Side codes, in table order
NORTH = 0
WEST = 1
SOUTH = 2
EAST = 3

SIDE_NAMES = ("north", "west", "south", "east")

# (axis, outward sign) per side; axis 0 runs along rows (y), axis 1 along columns (x)
SIDE_NORMALS = ((0, 1), (1, -1), (0, -1), (1, 1))

# Row kinds
ROW_DIRICHLET = "dirichlet"
ROW_NEUMANN = "neumann"
ROW_TRACTION = "traction"
ROW_BALANCE = "balance"

_PRIORITY = {BC_DIRICHLET: 0, BC_NEUMANN: 1, BC_STRESS: 2}


def _as_table(table, dtype, label, n_quantities):
    try:
        table = np.asarray(table, dtype=dtype)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Boundary {label} table is malformed: {exc}") from exc
    if table.ndim != 2 or table.shape[0] != 4:
        raise ConfigurationError(
            f"Boundary {label} table must be 4 x K, got shape {table.shape}"
        )
    if table.shape[1] not in (3, 4):
        raise ConfigurationError(
            f"Boundary tables need 3 or 4 quantity columns, got {table.shape[1]}"
        )
    if n_quantities is not None and table.shape[1] != n_quantities:
        raise ConfigurationError(
            f"Boundary tables have {table.shape[1]} columns but the grid "
            f"carries {n_quantities} quantities"
        )
    return table


def validate_boundary_values(bc_values, n_quantities=None):
    values = _as_table(bc_values, np.float64, "value", n_quantities)
    if not np.all(np.isfinite(values)):
        raise ConfigurationError("Boundary value table contains non-finite entries")
    return values


def validate_boundary_tables(bc_types, bc_values=None, n_quantities=None):
    """
    Check shape and codes of a boundary table pair.

    Returns the tables as numpy arrays (int64 types, float64 values).
    """
    types = _as_table(bc_types, np.float64, "type", n_quantities)
    if not np.all(np.isin(types, BC_TYPES)):
        bad = sorted(set(np.unique(types).tolist()) - set(BC_TYPES))
        raise ConfigurationError(f"Unknown boundary type(s) {bad}")
    types = types.astype(np.int64)

    if bc_values is None:
        return types, None

    values = validate_boundary_values(bc_values, n_quantities)
    if values.shape != types.shape:
        raise ConfigurationError(
            f"Boundary value table shape {values.shape} does not match "
            f"type table shape {types.shape}"
        )
    return types, values


def governing_side(boundary_sides, bc_types, quantity_column):
    """
    Pick the side whose boundary type decides the row kind.

    Dirichlet beats Neumann beats stress/flux; ties go to the first side in
    table order.
    """
    best = None
    for side in boundary_sides:
        bc = int(bc_types[side, quantity_column])
        if bc not in _PRIORITY:
            raise ConfigurationError(
                f"Unknown boundary type {bc} on the {SIDE_NAMES[side]} side"
            )
        if best is None or _PRIORITY[bc] < _PRIORITY[int(bc_types[best, quantity_column])]:
            best = side
    return best
