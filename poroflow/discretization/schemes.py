"""
Arrangement x interpolation-scheme variant.

The variant is resolved once, from the user-facing strings, before any
assembly starts. Downstream code asks the variant for its face interpolator
instead of comparing strings per cell.
"""

from dataclasses import dataclass
from enum import Enum

from poroflow.errors import ConfigurationError


class Arrangement(str, Enum):
    COLLOCATED = "collocated"
    STAGGERED = "staggered"


class Scheme(str, Enum):
    NONE = "NA"
    CDS = "CDS"
    I2DPIS = "I2DPIS"


_SCHEME_ALIASES = {
    "na": Scheme.NONE,
    "none": Scheme.NONE,
    "": Scheme.NONE,
    "cds": Scheme.CDS,
    "i2dpis": Scheme.I2DPIS,
}

VALID_COMBINATIONS = {
    Arrangement.STAGGERED: (Scheme.NONE,),
    Arrangement.COLLOCATED: (Scheme.CDS, Scheme.I2DPIS),
}


def parse_arrangement(grid_type):
    if isinstance(grid_type, Arrangement):
        return grid_type
    try:
        return Arrangement(str(grid_type).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown grid arrangement '{grid_type}'; expected one of "
            f"{[a.value for a in Arrangement]}"
        ) from None


def parse_scheme(interp_scheme):
    if isinstance(interp_scheme, Scheme):
        return interp_scheme
    key = "" if interp_scheme is None else str(interp_scheme).strip().lower()
    if key not in _SCHEME_ALIASES:
        raise ConfigurationError(
            f"Unknown interpolation scheme '{interp_scheme}'; expected one of "
            f"{[s.value for s in Scheme]}"
        )
    return _SCHEME_ALIASES[key]


@dataclass(frozen=True)
class Discretization:
    arrangement: Arrangement
    scheme: Scheme

    def __post_init__(self):
        if self.scheme not in VALID_COMBINATIONS[self.arrangement]:
            allowed = [s.value for s in VALID_COMBINATIONS[self.arrangement]]
            raise ConfigurationError(
                f"Interpolation scheme '{self.scheme.value}' is not defined for the "
                f"{self.arrangement.value} arrangement (allowed: {allowed})"
            )

    @classmethod
    def from_strings(cls, grid_type, interp_scheme=None):
        arrangement = parse_arrangement(grid_type)
        if interp_scheme is None and arrangement is Arrangement.STAGGERED:
            interp_scheme = Scheme.NONE
        return cls(arrangement, parse_scheme(interp_scheme))

    @property
    def staggered(self):
        return self.arrangement is Arrangement.STAGGERED

    @property
    def label(self):
        return f"{self.arrangement.value}-{self.scheme.value}"

    def __str__(self):
        return self.label
