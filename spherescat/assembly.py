"""Assembly of the global multiple-scattering system.

For ``K`` scatterers with local T-matrices ``T_i`` and couplings ``C(i, j)``
(outgoing waves of ``j`` re-expanded about the center of ``i``), the
scattered coefficients ``x`` satisfy one of two equivalent block systems:

- direct: :math:`x_i - T_i \\sum_{j \\neq i} C(i, j) x_j = T_i e_i`
- indirect: :math:`y_i - \\sum_{j \\neq i} C(i, j) T_j y_j = e_i` with
  :math:`x_i = T_i y_i`

where ``e_i`` are the incoming coefficients about the center of ``i``. The
indirect form keeps the T-matrices out of the right-hand side and is the
one assembled column block by column block on a worker group.

Each block of the system has size ``2B`` with ``B = block_size(n_max)``, TE
coefficients first, TM coefficients second.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from time import time
from typing import TYPE_CHECKING

import numpy as np

from spherescat.coupling import compute_coupling
from spherescat.errors import ConfigurationError
from spherescat.harmonics import block_size

if TYPE_CHECKING:
    from spherescat.distributed import BlockCyclicLayout, WorkerGroup
    from spherescat.excitation import PlaneWave
    from spherescat.geometry import Geometry

log = logging.getLogger(__name__)


class Method(str, Enum):
    """Formulation of the global system."""

    DIRECT = "direct"
    INDIRECT = "indirect"


@dataclass
class GlobalSystem:
    """Assembled matrix ``S`` and right-hand side ``Q``.

    Attributes
    ----------
    matrix : np.ndarray
        ``S``, square of size ``2 B K``.
    vector : np.ndarray
        ``Q``, length ``2 B K``.
    method : Method
        Formulation the system was assembled in.
    n_max : int
        Maximum degree.
    omega : float
        Angular frequency of the excitation.
    layout : BlockCyclicLayout, optional
        Block-cyclic layout of ``tiles`` when assembled on a worker group.
    tiles : dict, optional
        Local tiles of ``S`` per process-grid coordinate.
    """

    matrix: np.ndarray
    vector: np.ndarray
    method: Method
    n_max: int
    omega: float
    layout: BlockCyclicLayout | None = None
    tiles: dict | None = field(default=None, repr=False)

    @property
    def size(self) -> int:
        return self.vector.shape[0]


def _local_diagonals(geometry: Geometry, omega: float, n_max: int) -> list[np.ndarray]:
    return [geometry.local_operator_diagonal(omega, i, n_max) for i in range(len(geometry))]


def source_vector(geometry: Geometry, excitation: PlaneWave, n_max: int) -> np.ndarray:
    """Incoming coefficients of all scatterers, stacked."""
    width = 2 * block_size(n_max)
    result = np.zeros(width * len(geometry), dtype=complex)
    for i, obj in enumerate(geometry.objects):
        result[i * width : (i + 1) * width] = excitation.incoming_local(obj.position, n_max)
    return result


def local_source_vector(
    geometry: Geometry, excitation: PlaneWave, internal: np.ndarray, n_max: int
) -> np.ndarray:
    """Second-harmonic source coefficients of all scatterers, stacked.

    Sets the sources of ``geometry`` from the first-harmonic ``internal``
    coefficients, then gathers the local source of every scatterer.
    """
    width = 2 * block_size(n_max)
    geometry.set_sources(internal, n_max)
    result = np.zeros(width * len(geometry), dtype=complex)
    for i in range(len(geometry)):
        result[i * width : (i + 1) * width] = geometry.source_local(i, excitation, n_max)
    return result


def scattering_matrix_columns(
    geometry: Geometry, excitation: PlaneWave, n_max: int, columns
) -> np.ndarray:
    """Column blocks of the indirect matrix for the scatterers in ``columns``.

    Returns
    -------
    np.ndarray
        Shape ``(2 B K, 2 B len(columns))``; the block of scatterer
        ``columns[c]`` occupies columns ``c * 2B`` to ``(c + 1) * 2B``.
    """
    width = 2 * block_size(n_max)
    count = len(geometry)
    columns = list(columns)
    k_background = geometry.background.wavenumber(excitation.omega)

    result = np.zeros((width * count, width * len(columns)), dtype=complex)
    for c, j in enumerate(columns):
        t_j = geometry.local_operator_diagonal(excitation.omega, j, n_max)
        for i in range(count):
            rows = slice(i * width, (i + 1) * width)
            cols = slice(c * width, (c + 1) * width)
            if i == j:
                result[rows, cols] = np.eye(width)
                continue
            coupling = compute_coupling(
                geometry.objects[i].position - geometry.objects[j].position, k_background, n_max
            )
            result[rows, cols] = -coupling.translation_operator() * t_j[None, :]
    return result


def preconditioned_scattering_matrix(geometry: Geometry, excitation: PlaneWave, n_max: int) -> np.ndarray:
    """Indirect system matrix ``S_ij = delta_ij - C(i, j) T_j``."""
    return scattering_matrix_columns(geometry, excitation, n_max, range(len(geometry)))


def assemble_direct(
    geometry: Geometry, excitation: PlaneWave, n_max: int, internal: np.ndarray | None = None
) -> GlobalSystem:
    """Direct system ``S_ij = delta_ij - T_i C(i, j)``, ``Q_i = T_i e_i``."""
    width = 2 * block_size(n_max)
    count = len(geometry)
    omega = excitation.omega
    k_background = geometry.background.wavenumber(omega)

    if internal is None:
        incoming = source_vector(geometry, excitation, n_max)
    else:
        incoming = local_source_vector(geometry, excitation, internal, n_max)

    diagonals = _local_diagonals(geometry, omega, n_max)
    matrix = np.zeros((width * count, width * count), dtype=complex)
    vector = np.zeros(width * count, dtype=complex)
    for i in range(count):
        rows = slice(i * width, (i + 1) * width)
        vector[rows] = diagonals[i] * incoming[rows]
        for j in range(count):
            cols = slice(j * width, (j + 1) * width)
            if i == j:
                matrix[rows, cols] = np.eye(width)
                continue
            coupling = compute_coupling(
                geometry.objects[i].position - geometry.objects[j].position, k_background, n_max
            )
            matrix[rows, cols] = -diagonals[i][:, None] * coupling.translation_operator()

    return GlobalSystem(matrix, vector, Method.DIRECT, n_max, omega)


def assemble_indirect(
    geometry: Geometry, excitation: PlaneWave, n_max: int, internal: np.ndarray | None = None
) -> GlobalSystem:
    """Indirect system ``S_ij = delta_ij - C(i, j) T_j``, ``Q_i = e_i``."""
    if internal is None:
        vector = source_vector(geometry, excitation, n_max)
    else:
        vector = local_source_vector(geometry, excitation, internal, n_max)
    matrix = preconditioned_scattering_matrix(geometry, excitation, n_max)
    return GlobalSystem(matrix, vector, Method.INDIRECT, n_max, excitation.omega)


ASSEMBLERS = {
    Method.DIRECT: assemble_direct,
    Method.INDIRECT: assemble_indirect,
}


def _column_block(task):
    geometry, excitation, n_max, columns = task
    return scattering_matrix_columns(geometry, excitation, n_max, columns)


def assemble_distributed(
    geometry: Geometry,
    excitation: PlaneWave,
    n_max: int,
    workers: WorkerGroup,
    layout: BlockCyclicLayout,
    internal: np.ndarray | None = None,
) -> GlobalSystem:
    """Indirect system assembled column block by column block on ``workers``.

    Scatterers are split into contiguous column ranges (plus a remainder
    group), every worker assembles its columns, and the blocks are
    redistributed onto the block-cyclic ``layout``. The matrix entries are
    the ones :func:`assemble_indirect` produces.
    """
    width = 2 * block_size(n_max)
    parts = [part for part in workers.partition(len(geometry)) if part]
    tasks = [(geometry, excitation, n_max, part) for part in parts]
    blocks = workers.map(_column_block, tasks)

    columns = [
        np.concatenate([np.arange(j * width, (j + 1) * width) for j in part]) for part in parts
    ]
    tiles = workers.redistribute(list(zip(columns, blocks)), layout)

    if internal is None:
        vector = source_vector(geometry, excitation, n_max)
    else:
        vector = local_source_vector(geometry, excitation, internal, n_max)
    return GlobalSystem(
        layout.gather(tiles), vector, Method.INDIRECT, n_max, excitation.omega, layout, tiles
    )


def _check_background(geometry: Geometry, excitation: PlaneWave) -> None:
    medium, wave_medium = geometry.background, excitation.background
    if medium.epsilon_r != wave_medium.epsilon_r or medium.mu_r != wave_medium.mu_r:
        raise ConfigurationError(
            f"Excitation travels in {wave_medium!r}, but the scatterers are embedded in {medium!r}"
        )


def assemble(
    geometry: Geometry,
    excitation: PlaneWave,
    n_max: int,
    method: Method = Method.DIRECT,
    internal: np.ndarray | None = None,
    workers: WorkerGroup | None = None,
    layout: BlockCyclicLayout | None = None,
) -> GlobalSystem:
    """Assemble the global system in the requested formulation.

    Parameters
    ----------
    geometry : Geometry
        Scatterers and background. All scatterers must share one maximum
        degree, otherwise :class:`spherescat.errors.ConfigurationError` is
        raised before anything is built.
    excitation : PlaneWave
        Incident wave; its frequency is the frequency of the system. It has
        to travel in the background medium of ``geometry``.
    n_max : int
        Maximum degree of the expansions.
    method : Method, optional
        Direct or indirect formulation.
    internal : np.ndarray, optional
        First-harmonic internal coefficients. When given, the right-hand side
        is built from second-harmonic sources instead of the excitation.
    workers : WorkerGroup, optional
        Worker group for the distributed indirect assembly.
    layout : BlockCyclicLayout, optional
        Target layout of the distributed assembly.

    Returns
    -------
    GlobalSystem
        The assembled system. Zero scatterers give an empty system.
    """
    geometry.validate()
    _check_background(geometry, excitation)
    method = Method(method)

    start = time()
    if workers is not None and workers.size > 1 and layout is not None and method == Method.INDIRECT:
        system = assemble_distributed(geometry, excitation, n_max, workers, layout, internal)
    else:
        system = ASSEMBLERS[method](geometry, excitation, n_max, internal)
    log.info(
        "assembled %s system: %d scatterers, n_max=%d, size=%d (%.3fs)",
        method.value,
        len(geometry),
        n_max,
        system.size,
        time() - start,
    )
    return system
