from numba import jit

import numpy as np


@jit(nopython=True, nogil=True, cache=True)
def coaxial_vector_coefficients(
    table: np.ndarray,
    a_table: np.ndarray,
    kt: complex,
    n_max: int,
):
    """Vector coaxial translation coefficients from the scalar ones.

    For a translation by ``t`` along the z axis, normalized vector spherical
    waves re-expand as

    .. math::

        \\tilde M_n^m = \\sum_l A^m_{nl} \\tilde M_l^m + B^m_{nl} \\tilde N_l^m,
        \\qquad
        \\tilde N_n^m = \\sum_l B^m_{nl} \\tilde M_l^m + A^m_{nl} \\tilde N_l^m,

    with

    .. math::

        A^m_{nl} = \\frac{n(n+1) T^m_{nl} - kt\\,[(n+1) a_{n-1}^m T^m_{n-1,l}
        + n a_n^m T^m_{n+1,l}]}{\\sqrt{n(n+1)l(l+1)}},
        \\qquad
        B^m_{nl} = \\frac{i kt\\, m\\, T^m_{nl}}{\\sqrt{n(n+1)l(l+1)}}.

    Parameters
    ----------
    table : np.ndarray
        Scalar coaxial coefficients indexed ``[n, |m|, l]`` with shape
        ``(n_max + 2, n_max + 1, n_max + 1)``; invalid entries are zero.
    a_table : np.ndarray
        Recurrence coefficients ``a(n, |m|)`` with shape
        ``(n_max + 2, n_max + 1)``.
    kt : complex
        Wavenumber times translation distance.
    n_max : int
        Maximum degree.

    Returns
    -------
    tuple of np.ndarray
        ``(A, B)``, each of shape ``(n_max (n_max + 2), n_max (n_max + 2))``.
        Rows index the target harmonic ``(l, m)``, columns the source
        harmonic ``(n, m)``.
    """
    size = n_max * (n_max + 2)
    coef_a = np.zeros((size, size), dtype=np.complex128)
    coef_b = np.zeros((size, size), dtype=np.complex128)

    for n in range(1, n_max + 1):
        for m in range(-n, n + 1):
            am = abs(m)
            col = n * (n + 1) + m - 1
            for l in range(max(1, am), n_max + 1):
                row = l * (l + 1) + m - 1
                t = table[n, am, l]
                norm = np.sqrt(n * (n + 1) * l * (l + 1.0))
                coef_a[row, col] = (
                    n * (n + 1) * t
                    - kt
                    * (
                        (n + 1) * a_table[n - 1, am] * table[n - 1, am, l]
                        + n * a_table[n, am] * table[n + 1, am, l]
                    )
                ) / norm
                coef_b[row, col] = 1j * kt * m * t / norm

    return coef_a, coef_b
