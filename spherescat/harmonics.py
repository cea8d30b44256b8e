"""Flat indexing of spherical-harmonic degree/order pairs.

Pairs ``(n, m)`` with ``|m| <= n`` are ordered by increasing degree ``n`` and,
within a degree, by increasing order ``m``::

    (0, 0), (1, -1), (1, 0), (1, 1), (2, -2), ...

The ``(0, 0)`` term carries no vector spherical wave, so the coefficient
blocks of a scatterer start at ``(1, -1)``: a block for one polarization has
:func:`block_size` entries and entry ``(n, m)`` sits at
``flat_index(n, m) - 1``.
"""

from __future__ import annotations

from math import isqrt
from typing import Iterator

import numpy as np


def max_flat(n_max: int) -> int:
    """Number of pairs ``(n, m)`` with ``0 <= n <= n_max``.

    Parameters
    ----------
    n_max : int
        Maximum degree.

    Returns
    -------
    int
        ``n_max * (n_max + 2) + 1``.
    """
    if n_max < 0:
        raise ValueError(f"Maximum degree must be non-negative, got {n_max}")
    return n_max * (n_max + 2) + 1


def block_size(n_max: int) -> int:
    """Per-polarization block size of one scatterer."""
    return max_flat(n_max) - 1


def flat_index(n: int, m: int) -> int:
    """Zero-based flat index of ``(n, m)``."""
    if n < 0 or abs(m) > n:
        raise ValueError(f"Invalid harmonic (n={n}, m={m})")
    return n * (n + 1) + m


def unflat_index(index: int) -> tuple[int, int]:
    """Inverse of :func:`flat_index`."""
    if index < 0:
        raise ValueError(f"Flat index must be non-negative, got {index}")
    n = isqrt(index)
    return n, index - n * (n + 1)


def degree_order_pairs(n_max: int, start: int = 1) -> Iterator[tuple[int, int]]:
    """Iterate over ``(n, m)`` in flat order for ``start <= n <= n_max``."""
    for n in range(start, n_max + 1):
        for m in range(-n, n + 1):
            yield n, m


class Harmonics:
    """Degree and order of every entry of a polarization block.

    Parameters
    ----------
    n_max : int
        Maximum degree.

    Attributes
    ----------
    n_max : int
        Maximum degree.
    size : int
        Number of entries in one polarization block.
    n : np.ndarray
        Degree of each entry.
    m : np.ndarray
        Order of each entry.
    """

    def __init__(self, n_max: int):
        self.n_max = int(n_max)
        self.size = block_size(self.n_max)
        pairs = np.array(list(degree_order_pairs(self.n_max)), dtype=int).reshape(-1, 2)
        self.n = pairs[:, 0]
        self.m = pairs[:, 1]

    def expand(self, values: np.ndarray) -> np.ndarray:
        """Repeat per-degree values ``values[n - 1]`` over all orders."""
        values = np.asarray(values)
        return values[self.n - 1]
