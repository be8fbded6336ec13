"""
Exception hierarchy for the poroelastic finite-volume core.

Every failure is fatal for the run: the stage that detects the problem raises,
and nothing downstream tries to recover.
"""


class PoroFlowError(Exception):
    """Base class for all errors raised by poroflow."""


class ConfigurationError(PoroFlowError, ValueError):
    """Invalid input detected before any heavy computation starts."""


class AssemblyError(PoroFlowError):
    """A stencil or row override could not be built for an active cell."""


class FactorizationError(PoroFlowError, RuntimeError):
    """The sparse LU factorization failed or the operator is singular."""


class SolverStateError(PoroFlowError):
    """An operation was requested in a state that does not allow it."""


class DimensionMismatchError(PoroFlowError, ValueError):
    """Operator, right-hand side and field sizes disagree."""


class IndexMapError(PoroFlowError):
    """Index maps and coordinate tables are not mutual inverses."""
