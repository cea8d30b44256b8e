"""Orthonormal scalar and vector spherical harmonics.

The scalar harmonics include the Condon-Shortley phase,

.. math::

    Y_n^m(\\theta, \\phi) = \\sqrt{\\frac{2n+1}{4\\pi}\\frac{(n-m)!}{(n+m)!}}
    P_n^m(\\cos\\theta) e^{i m \\phi},

with :math:`Y_n^{-m} = (-1)^m \\overline{Y_n^m}`. The vector harmonics are
:math:`X_{nm} = L Y_n^m / \\sqrt{n(n+1)}` with the angular momentum operator
:math:`L = -i\\, r \\times \\nabla`.
"""

import numpy as np
from scipy.special import gammaln, lpmv


def spherical_harmonic(n: int, m: int, theta, phi) -> np.ndarray:
    """Evaluate :math:`Y_n^m(\\theta, \\phi)`.

    Parameters
    ----------
    n : int
        Degree.
    m : int
        Order, any integer. Orders with ``|m| > n`` evaluate to zero.
    theta : float or np.ndarray
        Polar angle(s).
    phi : float or np.ndarray
        Azimuthal angle(s), broadcast against ``theta``.

    Returns
    -------
    np.ndarray
        Complex values of the harmonic.
    """
    theta, phi = np.broadcast_arrays(np.asarray(theta, dtype=float), np.asarray(phi, dtype=float))
    if n < 0 or abs(m) > n:
        return np.zeros(theta.shape, dtype=complex)

    am = abs(m)
    norm = np.sqrt(
        (2 * n + 1) / (4 * np.pi) * np.exp(gammaln(n - am + 1) - gammaln(n + am + 1))
    )
    value = norm * lpmv(am, n, np.cos(theta)) * np.exp(1j * am * phi)
    if m < 0:
        value = (-1) ** am * np.conj(value)
    return value


def vector_spherical_harmonic(n: int, m: int, theta, phi) -> np.ndarray:
    """Cartesian components of :math:`X_{nm}(\\theta, \\phi)`.

    The components follow from the ladder operators
    :math:`L_\\pm Y_n^m = \\sqrt{(n \\mp m)(n \\pm m + 1)} Y_n^{m \\pm 1}` and
    :math:`L_z Y_n^m = m Y_n^m`.

    Returns
    -------
    np.ndarray
        Array of shape ``(3,) + theta.shape``.
    """
    if n < 1:
        raise ValueError(f"Vector spherical harmonics need n >= 1, got {n}")
    up = np.sqrt((n - m) * (n + m + 1)) * spherical_harmonic(n, m + 1, theta, phi)
    down = np.sqrt((n + m) * (n - m + 1)) * spherical_harmonic(n, m - 1, theta, phi)
    y = spherical_harmonic(n, m, theta, phi)

    lx = (up + down) / 2
    ly = (up - down) / 2j
    lz = m * y
    return np.stack([lx, ly, lz]) / np.sqrt(n * (n + 1))
