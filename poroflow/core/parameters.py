"""
Derived poroelastic parameters and the coupling constants fed to assembly.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from poroflow.errors import ConfigurationError


class PoroelasticParameters:
    """Derived Biot quantities for a single-porosity medium."""

    def __init__(self, props):
        self.props = props
        G = props.shear_modulus
        K = props.bulk_modulus
        phi = props.porosity

        self.shear_modulus = G
        self.lame = K - 2.0 * G / 3.0
        self.longitudinal_modulus = K + 4.0 * G / 3.0
        self.biot_coefficient = 1.0 - K / props.solid_bulk_modulus
        self.storativity = (
            phi / props.fluid_bulk_modulus
            + (self.biot_coefficient - phi) / props.solid_bulk_modulus
        )
        self.biot_modulus = 1.0 / self.storativity
        self.bulk_density = phi * props.fluid_density + (1.0 - phi) * props.solid_density
        self.mobility = props.permeability / props.fluid_viscosity
        self.consolidation_coefficient = self.mobility / (
            self.storativity + self.biot_coefficient**2 / self.longitudinal_modulus
        )

    def undrained_pressure(self, load):
        """Pore pressure right after a vertical load ``load`` (negative in compression)."""
        alpha = self.biot_coefficient
        Q = self.biot_modulus
        return -load * alpha * Q / (self.longitudinal_modulus + alpha**2 * Q)

    def minimum_time_step(self, h):
        """Time step below which collocated CDS pressures start to oscillate."""
        return h * h / (6.0 * self.consolidation_coefficient)


@dataclass(frozen=True)
class CouplingCoefficients:
    shear_modulus: float
    lame: float
    biot: Tuple[float, ...]
    storage: np.ndarray
    mobility: Tuple[float, ...]
    leak: float
    bulk_density: float
    fluid_density: float
    gravity: float = 0.0

    def __post_init__(self):
        storage = np.atleast_2d(np.asarray(self.storage, dtype=np.float64))
        k = len(self.biot)
        if k not in (1, 2):
            raise ConfigurationError(f"One or two pressure fields are supported, got {k}")
        if storage.shape != (k, k) or len(self.mobility) != k:
            raise ConfigurationError(
                f"Storage {storage.shape} and mobility ({len(self.mobility)}) "
                f"do not match {k} pressure field(s)"
            )
        if self.shear_modulus <= 0 or any(m <= 0 for m in self.mobility):
            raise ConfigurationError("Shear modulus and mobilities must be positive")
        if self.lame + 2.0 * self.shear_modulus <= 0:
            raise ConfigurationError("Longitudinal modulus lambda + 2G must be positive")
        if self.leak < 0:
            raise ConfigurationError("Leak coefficient must be non-negative")
        object.__setattr__(self, "storage", storage)

    @property
    def n_pressures(self):
        return len(self.biot)

    def minimum_time_step(self, h):
        """
        Collocated-CDS oscillation threshold h^2 / (6 c), taken for the fastest
        pressure field, c_k = mobility_k / (S_kk + alpha_k^2 / (lambda + 2G)).
        """
        M = self.lame + 2.0 * self.shear_modulus
        c = max(
            self.mobility[k] / (self.storage[k, k] + self.biot[k] ** 2 / M)
            for k in range(self.n_pressures)
        )
        return h * h / (6.0 * c)


def single_porosity(props, gravity=0.0):
    params = PoroelasticParameters(props)
    return CouplingCoefficients(
        shear_modulus=params.shear_modulus,
        lame=params.lame,
        biot=(params.biot_coefficient,),
        storage=np.array([[params.storativity]]),
        mobility=(params.mobility,),
        leak=0.0,
        bulk_density=params.bulk_density,
        fluid_density=props.fluid_density,
        gravity=gravity,
    )


def leakage_coefficient(shape_factor, permeability, viscosity):
    """Inter-porosity transfer coefficient, shape factor times matrix mobility."""
    if shape_factor < 0:
        raise ConfigurationError("Shape factor must be non-negative")
    return shape_factor * permeability / viscosity


def double_porosity(props, gravity=0.0, leak=0.0):
    """
    Coupling constants for a pore (matrix) + fracture (macro) medium.

    The Biot coefficient and the grain-compressibility storage are split
    between the two pressures by porosity share psi_i, so that summing the
    two mass balances recovers the single-porosity one.
    """
    if not props.has_macro:
        raise ConfigurationError(
            "Dual porosity needs macro_porosity and macro_permeability"
        )
    G = props.shear_modulus
    K = props.bulk_modulus
    Ks = props.solid_bulk_modulus
    Kf = props.fluid_bulk_modulus
    phi_p = props.porosity
    phi_f = props.macro_porosity
    phi = phi_p + phi_f

    alpha = 1.0 - K / Ks
    if alpha <= phi:
        raise ConfigurationError(
            f"Biot coefficient {alpha:.4g} must exceed total porosity {phi:.4g}"
        )
    psi = np.array([phi_p, phi_f]) / phi
    grain = (alpha - phi) / Ks
    storage = grain * np.outer(psi, psi) + np.diag([phi_p / Kf, phi_f / Kf])

    return CouplingCoefficients(
        shear_modulus=G,
        lame=K - 2.0 * G / 3.0,
        biot=(alpha * psi[0], alpha * psi[1]),
        storage=storage,
        mobility=(
            props.permeability / props.fluid_viscosity,
            props.macro_permeability / props.fluid_viscosity,
        ),
        leak=leak,
        bulk_density=phi * props.fluid_density + (1.0 - phi) * props.solid_density,
        fluid_density=props.fluid_density,
        gravity=gravity,
    )
