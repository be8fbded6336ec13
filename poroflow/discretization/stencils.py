"""
Linear forms and lattice sampling shared by every stencil.

All geometry is expressed on a half-spacing lattice: a point (I, J) sits at
x = J dx / 2, y = I dy / 2. Cell centres have odd (I, J), vertical faces
(odd, even), horizontal faces (even, odd) and corners (even, even). A
quantity lives on one of these classes (see GridDesign.home); sampling it
anywhere else averages the surrounding home points that are active.
"""

from collections import namedtuple

import numpy as np


class LinearForm:
    """Sparse linear combination of unknowns, {global column: coefficient}."""

    __slots__ = ("terms",)

    def __init__(self, terms=None):
        self.terms = dict(terms) if terms else {}

    @classmethod
    def unit(cls, col, coeff=1.0):
        return cls({col: coeff})

    def add(self, other, scale=1.0):
        """In-place ``self += scale * other``; returns self."""
        if other is None or scale == 0.0:
            return self
        terms = self.terms
        for col, coeff in other.terms.items():
            terms[col] = terms.get(col, 0.0) + scale * coeff
        return self

    def copy(self):
        return LinearForm(self.terms)

    def __add__(self, other):
        return self.copy().add(other)

    def __sub__(self, other):
        return self.copy().add(other, -1.0)

    def __mul__(self, scale):
        return LinearForm({col: scale * coeff for col, coeff in self.terms.items()})

    __rmul__ = __mul__

    def __truediv__(self, scale):
        return self * (1.0 / scale)

    def __neg__(self):
        return self * -1.0

    def __len__(self):
        return len(self.terms)

    def __repr__(self):
        return f"LinearForm({self.terms})"

    def coefficient(self, col):
        return self.terms.get(col, 0.0)

    def dot(self, x):
        return float(sum(coeff * x[col] for col, coeff in self.terms.items()))

    def nonzero_items(self):
        """(column, coefficient) pairs sorted by column, zeros dropped."""
        return [(c, v) for c, v in sorted(self.terms.items()) if v != 0.0]


Sample = namedtuple("Sample", ["form", "I", "J"])


class LatticeSampler:
    """Values and derivatives of grid quantities at arbitrary lattice points."""

    def __init__(self, grid):
        self.grid = grid
        self.spacing = (grid.dy, grid.dx)
        self._homes = tuple(grid.home(q) for q in range(grid.n_quantities))
        self._values = {}
        self._derivatives = {}

    def direct(self, quantity, I, J):
        """Global column of ``quantity`` at (I, J) if it lives there and is active."""
        pI, pJ = self._homes[quantity]
        if (I - pI) % 2 or (J - pJ) % 2:
            return None
        return self.grid.global_index(quantity, (I - pI) // 2, (J - pJ) // 2)

    def value(self, quantity, I, J):
        """
        Sample of ``quantity`` at (I, J), or None when no home point is near.

        The returned position is the centroid of the home points used, so a
        one-sided average reports where it actually sits.
        """
        key = (quantity, I, J)
        if key in self._values:
            return self._values[key]

        pI, pJ = self._homes[quantity]
        offs_I = (-1, 1) if (I - pI) % 2 else (0,)
        offs_J = (-1, 1) if (J - pJ) % 2 else (0,)
        cols = []
        pos_I = 0.0
        pos_J = 0.0
        for a in offs_I:
            for b in offs_J:
                col = self.direct(quantity, I + a, J + b)
                if col is not None:
                    cols.append(col)
                    pos_I += I + a
                    pos_J += J + b

        if not cols:
            sample = None
        else:
            n = len(cols)
            form = LinearForm()
            for col in cols:
                form.terms[col] = form.terms.get(col, 0.0) + 1.0 / n
            sample = Sample(form, pos_I / n, pos_J / n)
        self._values[key] = sample
        return sample

    def value_form(self, quantity, I, J):
        sample = self.value(quantity, I, J)
        return None if sample is None else sample.form

    def derivative(self, quantity, I, J, axis):
        """
        First derivative of ``quantity`` along ``axis`` (0 = y, 1 = x) at (I, J).

        Uses the samples half a lattice step either side; falls back to a
        one-sided difference with the centre sample when one side is missing.
        Returns None when no non-degenerate pair exists.
        """
        key = (quantity, I, J, axis)
        if key in self._derivatives:
            return self._derivatives[key]

        dI, dJ = (1, 0) if axis == 0 else (0, 1)
        ahead = self.value(quantity, I + dI, J + dJ)
        behind = self.value(quantity, I - dI, J - dJ)
        pairs = [(ahead, behind)]
        if ahead is None or behind is None:
            centre = self.value(quantity, I, J)
            pairs = [(ahead, centre), (centre, behind)]

        result = None
        half = 0.5 * self.spacing[axis]
        for hi, lo in pairs:
            if hi is None or lo is None:
                continue
            distance = ((hi.I - lo.I) if axis == 0 else (hi.J - lo.J)) * half
            if abs(distance) < 1.0e-12 * half:
                continue
            result = (hi.form - lo.form) * (1.0 / distance)
            break

        self._derivatives[key] = result
        return result

    def second_derivative(self, quantity, I, J, axis):
        """Second derivative along ``axis`` at a home point, or None near edges."""
        dI, dJ = (1, 0) if axis == 0 else (0, 1)
        ahead = self.derivative(quantity, I + dI, J + dJ, axis)
        behind = self.derivative(quantity, I - dI, J - dJ, axis)
        if ahead is None or behind is None:
            return None
        return (ahead - behind) * (1.0 / self.spacing[axis])


def evaluate(form, x):
    """Value of a LinearForm (or None, read as zero) for the global vector x."""
    if form is None:
        return 0.0
    return form.dot(np.asarray(x))
