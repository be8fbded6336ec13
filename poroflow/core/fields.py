import numpy as np
from numba import njit


class FieldSet:
    """
    Named 2D field arrays of the coupled problem.

    Field names:
    - u: horizontal displacement
    - v: vertical displacement
    - p: pore pressure
    - pm: fracture (macro) pressure, dual porosity only

    Each array has the logical shape of its quantity; entries outside the
    domain are placeholders and stay at their initial value.
    """

    def __init__(self, arrays):
        self._arrays = dict(arrays)

    def __getitem__(self, name):
        return self._arrays[name]

    def __setitem__(self, name, values):
        current = self._arrays[name]
        values = np.asarray(values, dtype=np.float64)
        if values.shape != current.shape:
            raise ValueError(
                f"Field '{name}' expects shape {current.shape}, got {values.shape}"
            )
        current[...] = values

    def __contains__(self, name):
        return name in self._arrays

    @property
    def names(self):
        return tuple(self._arrays)

    @property
    def u(self):
        return self._arrays["u"]

    @property
    def v(self):
        return self._arrays["v"]

    @property
    def p(self):
        return self._arrays["p"]

    @property
    def pm(self):
        return self._arrays.get("pm")

    def copy(self):
        return FieldSet({name: values.copy() for name, values in self._arrays.items()})

    def fill(self, name, value):
        self._arrays[name].fill(value)


@njit
def scatter_block(values, coords, field):
    for k in range(coords.shape[0]):
        field[coords[k, 0], coords[k, 1]] = values[k]


@njit
def gather_block(field, coords, out):
    for k in range(coords.shape[0]):
        out[k] = field[coords[k, 0], coords[k, 1]]
