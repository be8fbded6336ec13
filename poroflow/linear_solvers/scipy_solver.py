import numpy as np
from scipy.sparse import csr_matrix, diags, issparse
from scipy.sparse.linalg import splu

from poroflow.errors import DimensionMismatchError, FactorizationError


def row_equilibration(A_csr):
    """Reciprocal of the largest absolute entry of every row."""
    row_max = abs(A_csr).max(axis=1).toarray().ravel()
    empty = np.flatnonzero(row_max == 0.0)
    if empty.size:
        raise FactorizationError(
            f"Operator has {empty.size} empty row(s), first at {empty[0]}"
        )
    return 1.0 / row_max


class ScipyLUFactorization:
    """
    Sparse LU via SuperLU (scipy.sparse.linalg.splu), factorized once and
    reused for every right-hand side.

    Rows are equilibrated before factorizing; the same scaling is applied to
    each right-hand side in ``solve``.
    """

    name = "scipy"

    def __init__(self, permc_spec="COLAMD"):
        self.permc_spec = permc_spec
        self._lu = None
        self._scale = None
        self.n = 0

    def factorize(self, A, context=""):
        if not issparse(A):
            A = csr_matrix(A)
        A = A.tocsr()
        if A.shape[0] != A.shape[1]:
            raise DimensionMismatchError(f"Operator is not square: {A.shape}")

        scale = row_equilibration(A)
        scaled = diags(scale) @ A
        try:
            lu = splu(scaled.tocsc(), permc_spec=self.permc_spec)
        except RuntimeError as exc:
            raise FactorizationError(f"SuperLU factorization failed ({context}): {exc}") from exc

        pivots = lu.U.diagonal()
        if not np.all(np.isfinite(pivots)) or np.any(pivots == 0.0):
            raise FactorizationError(f"Operator is singular ({context})")

        self._lu = lu
        self._scale = scale
        self.n = A.shape[0]
        return self

    def solve(self, b, out=None):
        if self._lu is None:
            raise FactorizationError("solve called before factorize")
        if b.shape[0] != self.n:
            raise DimensionMismatchError(
                f"Right-hand side has length {b.shape[0]}, operator is {self.n} x {self.n}"
            )
        x = self._lu.solve(self._scale * b)
        if out is None:
            return x
        out[:] = x
        return out

    def release(self):
        self._lu = None
        self._scale = None
