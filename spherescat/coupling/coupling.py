"""Coupling between the expansions of two scatterers.

The field radiated by scatterer ``j`` is expanded in outgoing vector
spherical waves about its center. Seen from scatterer ``i`` it is a regular
(incoming) field, and its coefficients about ``center_i`` follow from the
translation by ``center_i - center_j``:

.. math::

    \\begin{pmatrix} p_i \\\\ q_i \\end{pmatrix}
    =
    \\begin{pmatrix} A & B \\\\ B & A \\end{pmatrix}
    \\begin{pmatrix} p_j \\\\ q_j \\end{pmatrix},

where ``p`` collects the coefficients of the TE waves (``M``), ``q`` those of
the TM waves (``N``), ``A`` is the same-polarization (diagonal) and ``B`` the
cross-polarization (off-diagonal) coupling.

``A`` and ``B`` are evaluated as rotation onto the z axis, coaxial
translation and back rotation, see
:mod:`spherescat.coupling.recurrence` and
:mod:`spherescat.functions.rotation`.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from spherescat.coupling.recurrence import CachedCoAxialRecurrence
from spherescat.functions.cpu_numba import coaxial_vector_coefficients
from spherescat.functions.rotation import rotation_block
from spherescat.functions.special import recurrence_a
from spherescat.harmonics import block_size


@dataclass
class CouplingMatrix:
    """Same- and cross-polarization coupling of one ordered scatterer pair.

    Rows index the harmonic ``(l, mu)`` about the target center, columns the
    harmonic ``(n, m)`` about the source center, both in flat block order.
    """

    diagonal: np.ndarray
    offdiagonal: np.ndarray

    def translation_operator(self) -> np.ndarray:
        """The full ``2B x 2B`` operator ``[[A, B], [B, A]]``."""
        return np.block(
            [[self.diagonal, self.offdiagonal], [self.offdiagonal, self.diagonal]]
        )


def _a_table(n_max: int, m_max: int) -> np.ndarray:
    table = np.zeros((n_max + 1, m_max + 1))
    for n in range(n_max + 1):
        for m in range(min(n, m_max) + 1):
            table[n, m] = recurrence_a(n, m)
    return table


def compute_coupling(
    displacement: np.ndarray,
    wavenumber: complex,
    n_max: int,
    regular: bool = False,
) -> CouplingMatrix:
    """Coupling coefficients for a translation by ``displacement``.

    Parameters
    ----------
    displacement : np.ndarray
        Cartesian vector ``center_target - center_source``.
    wavenumber : complex
        Wavenumber of the embedding medium.
    n_max : int
        Maximum degree of both expansions.
    regular : bool, optional
        ``False`` (default) re-expands radiating waves in regular waves,
        ``True`` re-expands regular waves in regular waves.

    Returns
    -------
    CouplingMatrix
        Matrices of size ``block_size(n_max)``. A zero displacement yields the
        identity and a zero cross-polarization block.
    """
    displacement = np.asarray(displacement, dtype=float)
    size = block_size(n_max)
    distance = float(np.linalg.norm(displacement))
    if distance == 0:
        return CouplingMatrix(
            np.eye(size, dtype=complex), np.zeros((size, size), dtype=complex)
        )

    theta = np.arccos(np.clip(displacement[2] / distance, -1.0, 1.0))
    phi = np.arctan2(displacement[1], displacement[0])

    recurrence = CachedCoAxialRecurrence(distance, wavenumber, regular=regular)
    table = np.ascontiguousarray(recurrence.dense(n_max + 1, n_max))
    coax_a, coax_b = coaxial_vector_coefficients(
        table, _a_table(n_max + 1, n_max), complex(wavenumber * distance), n_max
    )

    rotation = rotation_block(n_max, theta, phi)
    inverse = rotation.conj().T
    return CouplingMatrix(inverse @ coax_a @ rotation, inverse @ coax_b @ rotation)
