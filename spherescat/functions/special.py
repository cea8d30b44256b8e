"""Special functions shared by the translation and Mie code."""

from math import sqrt

import numpy as np
from scipy.special import spherical_jn, spherical_yn


def recurrence_a(n: int, m: int) -> float:
    """Coefficient of the three-term degree recurrence of spherical waves.

    ``cos(theta) f_n^m = a(n-1, m) f_{n-1}^m + a(n, m) f_{n+1}^m`` for the
    orthonormal spherical harmonics, see Gumerov and Duraiswami, *Fast
    Multipole Methods for the Helmholtz Equation in Three Dimensions*, 2004.

    Parameters
    ----------
    n : int
        Degree.
    m : int
        Order.

    Returns
    -------
    float
        The coefficient, zero for ``n < |m|``.
    """
    m = abs(m)
    if n < m:
        return 0.0
    return sqrt((n + 1 + m) * (n + 1 - m) / ((2 * n + 1) * (2 * n + 3)))


def recurrence_b(n: int, m: int) -> float:
    """Coefficient of the order-raising recurrence of spherical waves.

    Positive for ``0 <= m <= n``, negative for ``-n <= m < 0`` and zero for
    ``|m| > n``.
    """
    if abs(m) > n:
        return 0.0
    value = sqrt((n - m - 1) * (n - m) / ((2 * n - 1) * (2 * n + 1)))
    return value if m >= 0 else -value


def spherical_bessel(n, z, derivative: bool = False):
    """Spherical Bessel function of the first kind ``j_n(z)``."""
    return spherical_jn(n, z, derivative=derivative)


def spherical_hankel(n, z, derivative: bool = False):
    """Spherical Hankel function of the first kind ``h_n(z) = j_n + i y_n``."""
    return spherical_jn(n, z, derivative=derivative) + 1j * spherical_yn(
        n, z, derivative=derivative
    )


def radial_function(n, z, regular: bool):
    """``j_n(z)`` for regular and ``h_n(z)`` for singular (radiating) waves."""
    if regular:
        return spherical_bessel(n, z)
    return spherical_hankel(n, z)


def riccati_derivative(n, z, kind: str = "j"):
    """Derivative ``d/dz [z f_n(z)] = f_n(z) + z f_n'(z)``.

    Parameters
    ----------
    n : int or np.ndarray
        Degree(s).
    z : complex or np.ndarray
        Argument(s).
    kind : str
        ``"j"`` for the spherical Bessel and ``"h"`` for the spherical Hankel
        function.
    """
    if kind == "j":
        f = spherical_bessel
    elif kind == "h":
        f = spherical_hankel
    else:
        raise ValueError(f"kind must be 'j' or 'h', got {kind!r}")
    return f(n, z) + np.asarray(z) * f(n, z, derivative=True)
