"""
Face values of the normal displacement used by the volumetric coupling term.

Each interpolator has the signature ``(sampler, coefficients, quantity, I, J)``
and returns a LinearForm (or None when the face is outside the domain).
(I, J) is a face point on the half-spacing lattice and ``quantity`` is the
displacement component normal to that face.
"""

from poroflow.discretization.schemes import Scheme
from poroflow.discretization.stencils import LinearForm
from poroflow.mesh.grid_design import FACE_INTERNAL, FACE_OUTSIDE, P, U, V


def _face_axis(I, J):
    """Normal axis of a face point: 1 for vertical faces, 0 for horizontal."""
    return 1 if J % 2 == 0 else 0


def _face_status(grid, I, J):
    if J % 2 == 0:
        return grid.face_status_x[(I - 1) // 2, J // 2]
    return grid.face_status_y[I // 2, (J - 1) // 2]


def staggered_face_value(sampler, coefficients, quantity, I, J):
    col = sampler.direct(quantity, I, J)
    return None if col is None else LinearForm.unit(col)


def cds_face_value(sampler, coefficients, quantity, I, J):
    """Mean of the two adjacent cells; the lone active cell on boundary faces."""
    if _face_status(sampler.grid, I, J) == FACE_OUTSIDE:
        return None
    return sampler.value_form(quantity, I, J)


def i2dpis_face_value(sampler, coefficients, quantity, I, J):
    """
    Physical-influence interpolation.

    The momentum balance for the normal component q written at the face,

        (lambda + 2G) q_nn + G q_tt + (lambda + G) w_nt - sum_k alpha_k p_k,n = 0,

    with q_nn ~ 4 (q_P - 2 q_f + q_N) / h_n^2, gives

        q_f = (q_P + q_N) / 2
              + h_n^2 / (8 (lambda + 2G)) (G q_tt + (lambda + G) w_nt - sum_k alpha_k p_k,n)

    q_tt is averaged from the two adjacent cells and w_nt is the normal
    difference of the cells' tangential derivatives of w. Terms whose
    stencil leaves the domain are dropped.
    """
    grid = sampler.grid
    status = _face_status(grid, I, J)
    if status == FACE_OUTSIDE:
        return None
    base = sampler.value_form(quantity, I, J)
    if status != FACE_INTERNAL:
        return base

    n = _face_axis(I, J)
    t = 1 - n
    other = V if quantity == U else U
    dn = (0, 1) if n == 1 else (1, 0)
    h_n = sampler.spacing[n]
    G = coefficients.shear_modulus
    lam = coefficients.lame

    cells = ((I - dn[0], J - dn[1]), (I + dn[0], J + dn[1]))

    bracket = LinearForm()

    curvatures = [sampler.second_derivative(quantity, ci, cj, t) for ci, cj in cells]
    curvatures = [c for c in curvatures if c is not None]
    for c in curvatures:
        bracket.add(c, G / len(curvatures))

    slope_lo = sampler.derivative(other, cells[0][0], cells[0][1], t)
    slope_hi = sampler.derivative(other, cells[1][0], cells[1][1], t)
    if slope_lo is not None and slope_hi is not None:
        bracket.add(slope_hi - slope_lo, (lam + G) / h_n)

    for k, alpha_k in enumerate(coefficients.biot):
        grad_p = sampler.derivative(P + k, I, J, n)
        bracket.add(grad_p, -alpha_k)

    return base + bracket * (h_n * h_n / (8.0 * (lam + 2.0 * G)))


FACE_INTERPOLATORS = {
    Scheme.NONE: staggered_face_value,
    Scheme.CDS: cds_face_value,
    Scheme.I2DPIS: i2dpis_face_value,
}


def select_face_interpolator(discretization):
    return FACE_INTERPOLATORS[discretization.scheme]
