import numpy as np
from scipy.sparse import csr_matrix, diags, issparse
from petsc4py import PETSc

from poroflow.errors import DimensionMismatchError, FactorizationError
from poroflow.linear_solvers.scipy_solver import row_equilibration


class PetscLUFactorization:
    """
    Direct solve through a PETSc KSP of type ``preonly`` with an LU
    preconditioner. The KSP keeps the factorization between solves.
    """

    name = "petsc"

    def __init__(self, factor_solver_type=None):
        self.factor_solver_type = factor_solver_type
        self._ksp = None
        self._A = None
        self._scale = None
        self.n = 0

    def factorize(self, A, context=""):
        if not issparse(A):
            A = csr_matrix(A)
        A = A.tocsr()
        if A.shape[0] != A.shape[1]:
            raise DimensionMismatchError(f"Operator is not square: {A.shape}")

        scale = row_equilibration(A)
        scaled = (diags(scale) @ A).tocsr()
        scaled.sort_indices()

        A_petsc = PETSc.Mat().createAIJ(
            size=scaled.shape,
            csr=(
                scaled.indptr.astype(PETSc.IntType),
                scaled.indices.astype(PETSc.IntType),
                scaled.data,
            ),
        )
        A_petsc.assemble()

        ksp = PETSc.KSP().create()
        ksp.setOperators(A_petsc)
        ksp.setType("preonly")
        pc = ksp.getPC()
        pc.setType("lu")
        if self.factor_solver_type is not None:
            pc.setFactorSolverType(self.factor_solver_type)
        try:
            ksp.setUp()
        except PETSc.Error as exc:
            A_petsc.destroy()
            ksp.destroy()
            raise FactorizationError(f"PETSc LU factorization failed ({context}): {exc}") from exc

        self._ksp = ksp
        self._A = A_petsc
        self._scale = scale
        self.n = A.shape[0]
        return self

    def solve(self, b, out=None):
        if self._ksp is None:
            raise FactorizationError("solve called before factorize")
        if b.shape[0] != self.n:
            raise DimensionMismatchError(
                f"Right-hand side has length {b.shape[0]}, operator is {self.n} x {self.n}"
            )
        b_petsc = PETSc.Vec().createWithArray(np.ascontiguousarray(self._scale * b))
        x_petsc = PETSc.Vec().createSeq(self.n)
        self._ksp.solve(b_petsc, x_petsc)

        reason = self._ksp.getConvergedReason()
        if reason < 0:
            b_petsc.destroy()
            x_petsc.destroy()
            raise FactorizationError(f"PETSc solve failed. Reason: {reason}")

        x = x_petsc.getArray().copy()
        b_petsc.destroy()
        x_petsc.destroy()
        if out is None:
            return x
        out[:] = x
        return out

    def release(self):
        if self._ksp is not None:
            self._ksp.destroy()
            self._A.destroy()
        self._ksp = None
        self._A = None
        self._scale = None
