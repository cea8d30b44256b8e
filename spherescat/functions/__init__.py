"""Special functions and numerical kernels.

This subpackage holds the scalar special functions, spherical harmonics,
rotation coefficients and the Numba-accelerated kernels used by the
coupling engine.
"""
