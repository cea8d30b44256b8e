"""Cached recurrence for scalar coaxial translation coefficients.

For a translation by ``t`` along the z axis the scalar spherical waves
re-expand as

.. math::

    f_n^m(\\mathbf r + t \\hat z) = \\sum_l T(n, m, l)\\, g_l^m(\\mathbf r),

with :math:`f_n^m = z_n(kr) Y_n^m` and :math:`g_l^m = j_l(kr) Y_l^m`. For a
regular table both sides are regular waves (``z_n = j_n``). For a singular
table a radiating wave (``z_n = h_n``) is re-expanded in regular waves, which
is valid inside the ball ``|r| < |t|``.

The coefficients follow Gumerov and Duraiswami, *Recursions for the
computation of multipole translation and rotation coefficients for the 3-D
Helmholtz equation*, SIAM J. Sci. Comput. 25 (2003):

- seeds :math:`T(0, 0, l) = (-s)^l \\sqrt{2l+1}\\, z_l(k|t|)`, ``s = sign(t)``
- the three-term recurrence in ``n``

  .. math::

      a_{n-1}^m T(n-1, m, l) - a_n^m T(n+1, m, l)
      = a_l^m T(n, m, l+1) - a_{l-1}^m T(n, m, l-1)

- the companion recurrence in ``m`` for the sectorial terms ``n = |m|``

  .. math::

      b_n^m T(n-1, m+1, l) - b_{n+1}^{-m-1} T(n+1, m+1, l)
      = b_{l+1}^m T(n, m, l+1) - b_l^{-m-1} T(n, m, l-1)
"""

from __future__ import annotations

import logging

import numpy as np

from spherescat.functions.special import radial_function, recurrence_a, recurrence_b


class CachedCoAxialRecurrence:
    """Memoized coaxial translation coefficients ``T(n, m, l)``.

    Entries are stored in a dictionary keyed by ``(n, |m|, l)``. A request
    for a missing entry fills the table iteratively up to the order
    ``n + l`` of the request: every entry the recurrences need has an order
    no larger than the entry itself, so an ascending sweep over ``|m|``,
    then ``n``, then ``l`` always finds its dependencies cached.

    Parameters
    ----------
    distance : float
        Signed translation distance along the z axis.
    wavenumber : complex
        Wavenumber of the medium.
    regular : bool
        Whether the translated waves are regular (``j_n``) or radiating
        (``h_n``).

    Attributes
    ----------
    order : int
        Largest order ``n + l`` for which all entries are cached.
    """

    def __init__(self, distance: float, wavenumber: complex, regular: bool = True):
        self.distance = float(distance)
        self.wavenumber = complex(wavenumber)
        self.regular = bool(regular)
        self.order = -1
        self._cache: dict[tuple[int, int, int], complex] = {}

        self.log = logging.getLogger(self.__class__.__module__)

    @property
    def size(self) -> int:
        """Number of cached entries."""
        return len(self._cache)

    def __call__(self, n: int, m: int, l: int) -> complex:
        """Translation coefficient ``T(n, m, l)``.

        Entries with ``n < 0``, ``l < 0`` or ``|m| > min(n, l)`` are zero.
        A zero distance translates every wave onto itself.
        """
        m = abs(m)
        if n < 0 or l < 0 or m > n or m > l:
            return 0j
        if self.distance == 0:
            return 1.0 + 0j if n == l else 0j

        key = (n, m, l)
        if key not in self._cache:
            self._fill(n + l)
        return self._cache[key]

    def dense(self, n_max: int, l_max: int) -> np.ndarray:
        """Table ``T[n, |m|, l]`` for ``n <= n_max``, ``l <= l_max``.

        The order axis runs up to ``min(n_max, l_max)``; entries outside the
        valid range are zero.
        """
        m_max = min(n_max, l_max)
        table = np.zeros((n_max + 1, m_max + 1, l_max + 1), dtype=complex)
        if self.distance != 0:
            self._fill(n_max + l_max)
        for n in range(n_max + 1):
            for m in range(min(n, m_max) + 1):
                for l in range(m, l_max + 1):
                    table[n, m, l] = self(n, m, l)
        return table

    def _get(self, n: int, m: int, l: int) -> complex:
        if n < 0 or l < 0 or m > n or m > l:
            return 0j
        return self._cache[(n, m, l)]

    def _seeds(self, order: int) -> None:
        l = np.arange(order + 1)
        sign = 1.0 if self.distance >= 0 else -1.0
        values = (
            (-sign) ** l
            * np.sqrt(2 * l + 1)
            * radial_function(l, self.wavenumber * abs(self.distance), self.regular)
        )
        for degree, value in zip(l, values):
            self._cache.setdefault((0, 0, int(degree)), complex(value))

    def _fill(self, order: int) -> None:
        if order <= self.order:
            return

        self._seeds(order)
        get = self._get
        cache = self._cache
        for m in range(1, order // 2 + 1):
            # sectorial entries T(m, m, l) from the order recurrence
            denominator = recurrence_b(m, -m)
            for l in range(m, order - m + 1):
                if (m, m, l) in cache:
                    continue
                cache[(m, m, l)] = (
                    recurrence_b(l, -m) * get(m - 1, m - 1, l - 1)
                    - recurrence_b(l + 1, m - 1) * get(m - 1, m - 1, l + 1)
                ) / denominator

        for m in range(0, order // 2 + 1):
            for n in range(m + 1, order - m + 1):
                denominator = recurrence_a(n - 1, m)
                for l in range(m, order - n + 1):
                    if (n, m, l) in cache:
                        continue
                    cache[(n, m, l)] = (
                        recurrence_a(n - 2, m) * get(n - 2, m, l)
                        - recurrence_a(l, m) * get(n - 1, m, l + 1)
                        + recurrence_a(l - 1, m) * get(n - 1, m, l - 1)
                    ) / denominator

        self.log.debug(
            "coaxial table (regular=%s) filled to order %d: %d entries",
            self.regular,
            order,
            len(cache),
        )
        self.order = order
