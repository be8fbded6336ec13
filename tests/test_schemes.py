import pytest

from poroflow.discretization.face_interpolation import (
    cds_face_value,
    i2dpis_face_value,
    select_face_interpolator,
    staggered_face_value,
)
from poroflow.discretization.schemes import Arrangement, Discretization, Scheme
from poroflow.errors import ConfigurationError


@pytest.mark.parametrize(
    "grid_type, scheme, expected",
    [
        ("staggered", "NA", (Arrangement.STAGGERED, Scheme.NONE)),
        ("staggered", None, (Arrangement.STAGGERED, Scheme.NONE)),
        ("Staggered", "none", (Arrangement.STAGGERED, Scheme.NONE)),
        ("collocated", "CDS", (Arrangement.COLLOCATED, Scheme.CDS)),
        ("collocated", "i2dpis", (Arrangement.COLLOCATED, Scheme.I2DPIS)),
    ],
)
def test_valid_combinations(grid_type, scheme, expected):
    disc = Discretization.from_strings(grid_type, scheme)
    assert (disc.arrangement, disc.scheme) == expected


@pytest.mark.parametrize(
    "grid_type, scheme",
    [
        ("staggered", "CDS"),
        ("staggered", "I2DPIS"),
        ("collocated", "NA"),
        ("collocated", None),
        ("collocated", "QUICK"),
        ("unstructured", "CDS"),
    ],
)
def test_undefined_combinations_are_configuration_errors(grid_type, scheme):
    with pytest.raises(ConfigurationError):
        Discretization.from_strings(grid_type, scheme)


def test_interpolator_dispatch():
    assert select_face_interpolator(Discretization.from_strings("staggered")) is staggered_face_value
    assert select_face_interpolator(Discretization.from_strings("collocated", "CDS")) is cds_face_value
    assert (
        select_face_interpolator(Discretization.from_strings("collocated", "I2DPIS"))
        is i2dpis_face_value
    )


def test_label():
    assert Discretization.from_strings("collocated", "I2DPIS").label == "collocated-I2DPIS"
    assert str(Discretization.from_strings("staggered")) == "staggered-NA"
