import numpy as np
import pytest

from poroflow.errors import ConfigurationError
from poroflow.mesh.polygon import (
    classify_points,
    point_in_polygon,
    polygon_area,
    rectangle_polygon,
    validate_polygon,
)

TRIANGLE = np.array([[0.0, 0.0], [4.0, 0.0], [0.0, 4.0]])


def _inside(x, y, vertices, tol=1e-9):
    return point_in_polygon(x, y, vertices[:, 0].copy(), vertices[:, 1].copy(), tol)


def test_interior_and_exterior_points():
    assert _inside(1.0, 1.0, TRIANGLE)
    assert not _inside(3.0, 3.0, TRIANGLE)
    assert not _inside(-0.5, 1.0, TRIANGLE)
    assert not _inside(1.0, 5.0, TRIANGLE)


def test_edges_and_vertices_count_as_inside():
    square = rectangle_polygon(2.0, 1.0)
    assert _inside(0.0, 0.5, square)
    assert _inside(2.0, 0.5, square)
    assert _inside(1.0, 1.0, square)
    assert _inside(1.0, 0.0, square)
    assert _inside(2.0, 1.0, square)
    assert _inside(2.0, 2.0, TRIANGLE)
    assert not _inside(2.0, 1.0 + 1e-6, square)


def test_classify_points_mask():
    xs = np.array([0.5, 1.5, 2.5, 3.5])
    ys = np.array([0.5, 1.5, 2.5, 3.5])
    mask = classify_points(xs, ys, TRIANGLE[:, 0].copy(), TRIANGLE[:, 1].copy(), 1e-9)
    assert mask.shape == (4, 4)
    expected = np.add.outer(np.arange(4), np.arange(4)) <= 3
    assert np.array_equal(mask, expected)


def test_rectangle_orientation_and_area():
    square = rectangle_polygon(3.0, 2.0)
    assert np.allclose(square, [[3.0, 2.0], [0.0, 2.0], [0.0, 0.0], [3.0, 0.0]])
    assert abs(polygon_area(square)) == pytest.approx(6.0)


@pytest.mark.parametrize(
    "polygon",
    [
        [[0.0, 0.0], [1.0, 0.0]],
        [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]],
        [[0.0, 0.0], [1.0, np.nan], [0.0, 1.0]],
        [0.0, 1.0, 2.0],
    ],
)
def test_degenerate_polygons_are_rejected(polygon):
    with pytest.raises(ConfigurationError):
        validate_polygon(polygon)


def test_validate_polygon_copies_input():
    vertices = np.array(TRIANGLE)
    checked = validate_polygon(vertices)
    assert checked is not vertices
    assert np.array_equal(checked, vertices)
