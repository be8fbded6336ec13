from poroflow.errors import ConfigurationError


def make_factorization(backend="scipy"):
    """Factorization backend by name; petsc4py is only imported when asked for."""
    backend = str(backend).lower()
    if backend == "scipy":
        from .scipy_solver import ScipyLUFactorization

        return ScipyLUFactorization()
    if backend == "petsc":
        from .petsc_solver import PetscLUFactorization

        return PetscLUFactorization()
    raise ConfigurationError(f"Unknown linear solver backend '{backend}'")
