"""Rotation of spherical-harmonic expansions.

A translation along an arbitrary direction is evaluated as a rotation that
maps the direction onto the z axis, a coaxial translation, and the inverse
rotation. The rotation coefficients :math:`D^n_{m'm}` are defined by

.. math::

    Y_n^m(\\hat r) = \\sum_{m'} D^n_{m'm} Y_n^{m'}(R \\hat r),

so that expansion coefficients transform as :math:`c' = D^n c`. They are
obtained by projecting onto the rotated harmonics with a product quadrature
(Gauss-Legendre in :math:`\\cos\\theta`, trapezoidal in :math:`\\phi`) that
integrates products of harmonics up to degree ``n_max`` exactly. Working
from the harmonics themselves keeps the coefficients consistent with
:func:`spherescat.functions.spherical_harmonics.spherical_harmonic` whatever
phase convention the Wigner-D literature uses.
"""

import numpy as np
from numpy.polynomial.legendre import leggauss
from scipy.linalg import block_diag

from spherescat.functions.spherical_harmonics import spherical_harmonic


def rotation_to_z(theta: float, phi: float) -> np.ndarray:
    """Rotation matrix ``R`` with ``R @ d = e_z`` for the direction ``d(theta, phi)``."""
    cp, sp = np.cos(phi), np.sin(phi)
    ct, st = np.cos(theta), np.sin(theta)
    rz = np.array([[cp, sp, 0.0], [-sp, cp, 0.0], [0.0, 0.0, 1.0]])
    ry = np.array([[ct, 0.0, -st], [0.0, 1.0, 0.0], [st, 0.0, ct]])
    return ry @ rz


def _quadrature(n_max: int):
    x, w = leggauss(n_max + 1)
    phi_count = 2 * n_max + 1
    phi = 2 * np.pi * np.arange(phi_count) / phi_count

    theta = np.arccos(x)
    theta_grid, phi_grid = np.meshgrid(theta, phi, indexing="ij")
    weights = np.repeat(w, phi_count) * (2 * np.pi / phi_count)
    return theta_grid.ravel(), phi_grid.ravel(), weights


def rotation_coefficients(n_max: int, theta: float, phi: float) -> list[np.ndarray]:
    """Per-degree rotation coefficients for the rotation onto ``(theta, phi)``.

    Parameters
    ----------
    n_max : int
        Maximum degree.
    theta : float
        Polar angle of the direction rotated onto the z axis.
    phi : float
        Azimuthal angle of that direction.

    Returns
    -------
    list of np.ndarray
        ``D[n]`` of shape ``(2n+1, 2n+1)`` for ``n = 0 .. n_max``, indexed by
        ``[m' + n, m + n]``. Every matrix is unitary.
    """
    theta_q, phi_q, weights = _quadrature(max(n_max, 1))

    points = np.stack(
        [
            np.sin(theta_q) * np.cos(phi_q),
            np.sin(theta_q) * np.sin(phi_q),
            np.cos(theta_q),
        ]
    )
    rotated = rotation_to_z(theta, phi) @ points
    theta_r = np.arccos(np.clip(rotated[2], -1.0, 1.0))
    phi_r = np.arctan2(rotated[1], rotated[0])

    coefficients = []
    for n in range(n_max + 1):
        orders = range(-n, n + 1)
        original = np.array([spherical_harmonic(n, m, theta_q, phi_q) for m in orders])
        turned = np.array([spherical_harmonic(n, m, theta_r, phi_r) for m in orders])
        coefficients.append((np.conj(turned) * weights) @ original.T)
    return coefficients


def rotation_block(n_max: int, theta: float, phi: float) -> np.ndarray:
    """Block-diagonal rotation acting on one polarization block (``n >= 1``)."""
    return block_diag(*rotation_coefficients(n_max, theta, phi)[1:])
