"""
Point-in-polygon kernels used to clip the bounding rectangle to the domain.

Containment is inclusive: a point lying on an edge (within ``tol``) is inside,
so staggered face midpoints on the domain edge stay active.
"""

import numpy as np
from numba import njit

from poroflow.errors import ConfigurationError


@njit(inline="always")
def _on_segment(px, py, ax, ay, bx, by, tol):
    ex = bx - ax
    ey = by - ay
    seg_len2 = ex * ex + ey * ey
    if seg_len2 == 0.0:
        return (px - ax) ** 2 + (py - ay) ** 2 <= tol * tol
    t = ((px - ax) * ex + (py - ay) * ey) / seg_len2
    if t < 0.0:
        t = 0.0
    elif t > 1.0:
        t = 1.0
    cx = ax + t * ex - px
    cy = ay + t * ey - py
    return cx * cx + cy * cy <= tol * tol


@njit
def point_in_polygon(px, py, vx, vy, tol):
    """Ray-casting containment test; edges count as inside."""
    n = vx.shape[0]
    inside = False
    j = n - 1
    for i in range(n):
        if _on_segment(px, py, vx[j], vy[j], vx[i], vy[i], tol):
            return True
        # --- crossing test on a ray towards +x ---
        if (vy[i] > py) != (vy[j] > py):
            x_cross = vx[i] + (py - vy[i]) * (vx[j] - vx[i]) / (vy[j] - vy[i])
            if px < x_cross:
                inside = not inside
        j = i
    return inside


@njit
def classify_points(xs, ys, vx, vy, tol):
    """
    Containment mask for a logical grid of sample points.

    xs has length n_cols, ys length n_rows; the result is (n_rows, n_cols).
    """
    n_rows = ys.shape[0]
    n_cols = xs.shape[0]
    mask = np.zeros((n_rows, n_cols), dtype=np.bool_)
    for i in range(n_rows):
        for j in range(n_cols):
            mask[i, j] = point_in_polygon(xs[j], ys[i], vx, vy, tol)
    return mask


def polygon_area(vertices):
    x = vertices[:, 0]
    y = vertices[:, 1]
    return 0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def rectangle_polygon(lx, ly):
    """Bounding rectangle, vertices ordered NE, NW, SW, SE."""
    return np.array([[lx, ly], [0.0, ly], [0.0, 0.0], [lx, 0.0]], dtype=np.float64)


def validate_polygon(polygon):
    vertices = np.array(polygon, dtype=np.float64)
    if vertices.ndim != 2 or vertices.shape[1] != 2:
        raise ConfigurationError(
            f"Polygon must be an (n, 2) array of vertices, got shape {vertices.shape}"
        )
    if vertices.shape[0] < 3:
        raise ConfigurationError("Polygon needs at least three vertices")
    if not np.all(np.isfinite(vertices)):
        raise ConfigurationError("Polygon vertices must be finite")
    if abs(polygon_area(vertices)) == 0.0:
        raise ConfigurationError("Polygon has zero area")
    return vertices
