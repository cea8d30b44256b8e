"""Mie coefficients of homogeneous spheres.

The T-matrix of a homogeneous sphere is diagonal in the vector spherical
wave basis. Its entries are the negated Mie coefficients,

- ``tau = 1`` (TE, waves ``M``): :math:`-b_n`
- ``tau = 2`` (TM, waves ``N``): :math:`-a_n`

with the magnetic permeabilities of sphere and medium kept, following
Bohren and Huffman, *Absorption and Scattering of Light by Small Particles*,
eqs. (4.52) and (4.53). The ratios between internal-field and scattered-field
coefficients are computed alongside; they turn solved scattered coefficients
into internal ones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from spherescat.functions.special import riccati_derivative, spherical_bessel, spherical_hankel

if TYPE_CHECKING:
    from spherescat.electromagnetic import ElectroMagnetic


def compute_mie_coefficients(
    omega: float,
    radius: float,
    elmag: ElectroMagnetic,
    background: ElectroMagnetic,
    n_max: int,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Mie coefficients and internal/scattered ratios for ``n = 1 .. n_max``.

    Parameters
    ----------
    omega : float
        Angular frequency of the field.
    radius : float
        Sphere radius.
    elmag : ElectroMagnetic
        Material of the sphere.
    background : ElectroMagnetic
        Material of the embedding medium.
    n_max : int
        Maximum degree.

    Returns
    -------
    mie_tau1, mie_tau2 : np.ndarray
        T-matrix entries per degree, ``-b_n`` and ``-a_n``.
    ratio_tau1, ratio_tau2 : np.ndarray
        Internal over scattered coefficient ratios per degree, ``c_n / -b_n``
        and ``d_n / -a_n``.

    Notes
    -----
    With :math:`x = k_b r`, :math:`m = k_s / k_b`, sphere permeability
    :math:`\\mu_1` and medium permeability :math:`\\mu`,

    .. math::

        a_n = \\frac{\\mu m^2 j_n(mx)[x j_n(x)]' - \\mu_1 j_n(x)[mx j_n(mx)]'}
                   {\\mu m^2 j_n(mx)[x h_n(x)]' - \\mu_1 h_n(x)[mx j_n(mx)]'},
        \\qquad
        b_n = \\frac{\\mu_1 j_n(mx)[x j_n(x)]' - \\mu j_n(x)[mx j_n(mx)]'}
                   {\\mu_1 j_n(mx)[x h_n(x)]' - \\mu h_n(x)[mx j_n(mx)]'}.
    """
    l_orders = np.arange(1, n_max + 1)

    k_medium = background.wavenumber(omega)
    k_sphere = elmag.wavenumber(omega)
    m = k_sphere / k_medium
    mu = background.mu_r
    mu1 = elmag.mu_r

    x = k_medium * radius
    mx = k_sphere * radius

    jx = spherical_bessel(l_orders, x)
    hx = spherical_hankel(l_orders, x)
    jmx = spherical_bessel(l_orders, mx)

    # Riccati-Bessel derivatives: d/dz [z * f_l(z)]
    djx = riccati_derivative(l_orders, x, "j")
    djmx = riccati_derivative(l_orders, mx, "j")
    dhx = riccati_derivative(l_orders, x, "h")

    numer_b = mu1 * jmx * djx - mu * jx * djmx
    denom_b = mu1 * jmx * dhx - mu * hx * djmx
    numer_a = mu * m**2 * jmx * djx - mu1 * jx * djmx
    denom_a = mu * m**2 * jmx * dhx - mu1 * hx * djmx

    # scattered
    mie_tau1 = -numer_b / denom_b
    mie_tau2 = -numer_a / denom_a

    # ratio (internal / scattered)
    wronskian = jx * dhx - hx * djx
    ratio_tau1 = mu1 * wronskian / (-numer_b)
    ratio_tau2 = mu1 * m * wronskian / (-numer_a)

    return mie_tau1, mie_tau2, ratio_tau1, ratio_tau2
