from .coefficients import CoefficientOperator, add_drained_strip, assemble_operator
from .equations import RowEquation, build_equations
from .independent_terms import IndependentTermsAssembler, StripfootLoad

__all__ = [
    "CoefficientOperator",
    "IndependentTermsAssembler",
    "RowEquation",
    "StripfootLoad",
    "add_drained_strip",
    "assemble_operator",
    "build_equations",
]
