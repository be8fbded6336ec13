# conftest.py

import numpy as np
import pytest

from poroflow.config import PoroelasticProperties
from poroflow.core.parameters import PoroelasticParameters
from poroflow.discretization.schemes import Discretization
from poroflow.mesh.grid_design import build_grid

DISCRETIZATIONS = {
    "staggered-NA": ("staggered", "NA"),
    "collocated-CDS": ("collocated", "CDS"),
    "collocated-I2DPIS": ("collocated", "I2DPIS"),
}

SIGMAB = -1.0e4


@pytest.fixture
def properties():
    return PoroelasticProperties(
        shear_modulus=6.0e9,
        bulk_modulus=8.0e9,
        solid_bulk_modulus=3.6e10,
        solid_density=2700.0,
        fluid_bulk_modulus=2.2e9,
        fluid_density=1000.0,
        fluid_viscosity=1.0e-3,
        porosity=0.19,
        permeability=1.9e-13,
    )


@pytest.fixture
def dual_properties(properties):
    return properties.model_copy(
        update={
            "porosity": 0.12,
            "macro_porosity": 0.06,
            "permeability": 1.9e-16,
            "macro_permeability": 1.9e-13,
        }
    )


@pytest.fixture
def sigmab():
    return SIGMAB


@pytest.fixture
def terzaghi_tables():
    """Laterally confined column, loaded and drained on top, rows N/W/S/E."""
    bc_types = np.array(
        [
            [-1, -1, 1],
            [1, -1, -1],
            [-1, 1, 0],
            [1, -1, -1],
        ]
    )
    bc_values = np.array(
        [
            [0.0, SIGMAB, 0.0],
            [0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0],
        ]
    )
    return bc_types, bc_values


@pytest.fixture
def terzaghi_solution(properties):
    """Closed-form consolidation pressure p(depth, t) for a drained top."""
    params = PoroelasticParameters(properties)
    p0 = params.undrained_pressure(SIGMAB)
    c = params.consolidation_coefficient

    def pressure(depth, t, height, n_terms=200):
        depth = np.asarray(depth, dtype=np.float64)
        Tv = c * t / height**2
        p = np.zeros_like(depth)
        for n in range(n_terms):
            m = (2 * n + 1) * np.pi / 2
            p += (2.0 / m) * np.sin(m * depth / height) * np.exp(-(m**2) * Tv)
        return p0 * p

    pressure.p0 = p0
    pressure.c = c
    return pressure


@pytest.fixture
def discretization(discretization_label):
    return Discretization.from_strings(*DISCRETIZATIONS[discretization_label])


@pytest.fixture
def small_grid(discretization):
    return build_grid(4, 3, 2, 2.0, 1.5, 1.0, discretization.arrangement)


def pytest_generate_tests(metafunc):
    if "discretization_label" in metafunc.fixturenames:
        metafunc.parametrize("discretization_label", list(DISCRETIZATIONS))
