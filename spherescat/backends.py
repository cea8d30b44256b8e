"""Linear-system backends for the assembled global system.

Three backends share one contract, ``solve(matrix, vector) -> x``:

- :class:`KrylovBackend`: SciPy's ``gmres``, ``lgmres`` or ``bicgstab``
- :class:`DistributedDenseBackend`: LU factorization on a block-cyclic layout
  of a worker group
- :class:`DenseBackend`: single-process QR with column pivoting

:func:`select_backend` picks one from the configuration: an iterative solver
named in the configuration wins; otherwise a worker group of more than one
worker engages the distributed backend; otherwise the serial dense backend
is used. A non-zero status of any backend raises
:class:`spherescat.errors.LinearSolveError`; there is no fallback to another
backend.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from scipy.linalg import qr, solve_triangular
from scipy.sparse.linalg import bicgstab, gmres, lgmres

from spherescat import log
from spherescat.distributed import BlockCyclicLayout, ProcessGrid
from spherescat.errors import ConfigurationError, LinearSolveError
from spherescat.harmonics import block_size

if TYPE_CHECKING:
    from spherescat.config import SolverConfig
    from spherescat.distributed import WorkerGroup
    from spherescat.geometry import Geometry

KRYLOV_SOLVERS = ("gmres", "lgmres", "bicgstab")
DIRECT = "direct"


class LinearSystemBackend:
    """Base class of the linear-system backends."""

    name: str = ""

    def solve(self, matrix: np.ndarray, vector: np.ndarray, tiles=None) -> np.ndarray:  # pragma: no cover
        """Solve ``matrix @ x = vector``.

        Parameters
        ----------
        matrix : np.ndarray
            Square system matrix.
        vector : np.ndarray
            Right-hand side.
        tiles : dict, optional
            Block-cyclic tiles of ``matrix`` when already distributed.

        Returns
        -------
        np.ndarray
            The solution.
        """
        raise NotImplementedError


class IterationCounter:
    """Counts solver iterations and logs the residual or current iterate.

    Parameters
    ----------
    callback_type : str
        ``"pr_norm"`` for residual norms, ``"x"`` for iterates.
    """

    def __init__(self, callback_type: str = "pr_norm"):
        self.log = log.scattering_logger(__name__)
        self.niter = 0
        if callback_type == "pr_norm":
            self.header = "% 10s \t % 15s" % ("Iteration", "Residual")
        else:
            self.header = "% 10s \t %s" % ("Iteration", "Current Iterate")

    def __call__(self, rk=None):
        self.niter += 1
        if isinstance(rk, np.ndarray):
            msg = "% 10i \t " % self.niter + np.array2string(rk, threshold=8)
        else:
            msg = "% 10i \t % 15.5e" % (self.niter, float(rk))

        if self.niter == 1:
            self.log.numerics(self.header)
        self.log.numerics(msg)


class KrylovBackend(LinearSystemBackend):
    """Iterative Krylov solver from :mod:`scipy.sparse.linalg`.

    Parameters
    ----------
    solver_type : str
        ``"gmres"``, ``"lgmres"`` or ``"bicgstab"``.
    tolerance : float
        Relative residual tolerance.
    max_iter : int
        Maximum number of iterations (restart cycles for GMRES).
    restart : int
        GMRES restart length.
    """

    def __init__(self, solver_type: str = "gmres", tolerance: float = 1e-6, max_iter: int = 1000, restart: int = 100):
        self.name = solver_type.lower()
        if self.name not in KRYLOV_SOLVERS:
            raise ConfigurationError(f"Unknown iterative solver {solver_type!r}")
        self.tolerance = tolerance
        self.max_iter = int(max_iter)
        self.restart = int(restart)

        self.log = log.scattering_logger(__name__)

    def solve(self, matrix, vector, tiles=None):
        x0 = np.copy(vector)

        if self.name == "bicgstab":
            counter = IterationCounter(callback_type="x")
            value, err_code = bicgstab(
                matrix,
                vector,
                x0=x0,
                rtol=self.tolerance,
                atol=0.0,
                maxiter=self.max_iter,
                callback=counter,
            )
        elif self.name == "gmres":
            counter = IterationCounter(callback_type="pr_norm")
            value, err_code = gmres(
                matrix,
                vector,
                x0=x0,
                restart=self.restart,
                rtol=self.tolerance,
                atol=0.0,
                maxiter=self.max_iter,
                callback=counter,
                callback_type="pr_norm",
            )
        else:
            counter = IterationCounter(callback_type="x")
            value, err_code = lgmres(
                matrix,
                vector,
                x0=x0,
                rtol=self.tolerance,
                atol=0.0,
                maxiter=self.max_iter,
                callback=counter,
            )

        self.log.info("%s finished after %d iterations with status %d", self.name, counter.niter, err_code)
        if err_code != 0:
            raise LinearSolveError(self.name, err_code)
        return value


class DenseBackend(LinearSystemBackend):
    """Rank-revealing dense solve by QR with column pivoting.

    Columns whose pivot falls below ``rank_tolerance`` times the largest
    pivot are treated as dependent and their unknowns set to zero, so
    near-singular systems still give a finite basic solution.
    """

    name = DIRECT

    def __init__(self, rank_tolerance: float | None = None):
        self.rank_tolerance = rank_tolerance
        self.log = logging.getLogger(self.__class__.__module__)

    def solve(self, matrix, vector, tiles=None):
        q, r, permutation = qr(matrix, pivoting=True)
        pivots = np.abs(np.diag(r))
        tolerance = self.rank_tolerance
        if tolerance is None:
            tolerance = max(matrix.shape) * np.finfo(float).eps
        rank = int(np.count_nonzero(pivots > tolerance * pivots[0])) if pivots.size else 0
        if rank < pivots.size:
            self.log.warning("system matrix is rank deficient: rank %d of %d", rank, pivots.size)

        y = q.conj().T @ vector
        solution = np.zeros(matrix.shape[1], dtype=complex)
        solution[permutation[:rank]] = solve_triangular(r[:rank, :rank], y[:rank])
        if not np.all(np.isfinite(solution)):
            raise LinearSolveError(self.name, 1, "Dense solve produced non-finite values")
        return solution


class DistributedDenseBackend(LinearSystemBackend):
    """Dense LU solve on the block-cyclic layout of a worker group.

    Parameters
    ----------
    workers : WorkerGroup
        Worker group the solve runs on.
    grid : ProcessGrid
        Process grid, validated against the group size.
    block : int
        Block size of the block-cyclic layout.
    """

    name = "distributed"

    def __init__(self, workers: WorkerGroup, grid: ProcessGrid, block: int):
        grid.validate(workers.size)
        self.workers = workers
        self.grid = grid
        self.block = int(block)
        self.log = logging.getLogger(self.__class__.__module__)

    def layout(self, size: int) -> BlockCyclicLayout:
        return BlockCyclicLayout((size, size), self.block, self.grid)

    def solve(self, matrix, vector, tiles=None):
        layout = self.layout(vector.shape[0])
        if tiles is None:
            tiles = layout.scatter(matrix)
        x, status = self.workers.collective_solve(tiles, layout, vector)
        if status != 0:
            raise LinearSolveError(self.name, status)
        return self.workers.broadcast(x)


def select_backend(config: SolverConfig, workers: WorkerGroup | None = None) -> LinearSystemBackend:
    """Backend for ``config`` and an optional worker group.

    Raises
    ------
    ConfigurationError
        For an unknown backend name or a process grid that does not fit the
        worker group.
    """
    logger = logging.getLogger(__name__)
    name = config.backend.lower()
    if name in KRYLOV_SOLVERS:
        backend = KrylovBackend(name, config.tolerance, config.max_iter, config.restart)
    elif name != DIRECT:
        raise ConfigurationError(f"Unknown backend {config.backend!r}")
    elif workers is not None and workers.size > 1:
        grid = ProcessGrid(*config.grid) if config.grid is not None else ProcessGrid.squarest(workers.size)
        backend = DistributedDenseBackend(workers, grid, config.block_size)
    else:
        backend = DenseBackend()
    logger.info("selected %s backend", backend.name)
    return backend


def convert_indirect(geometry: Geometry, omega: float, n_max: int, solution: np.ndarray) -> np.ndarray:
    """Scattered coefficients ``x_i = T_i y_i`` from an indirect solution."""
    width = 2 * block_size(n_max)
    result = np.zeros_like(solution, dtype=complex)
    for i in range(len(geometry)):
        segment = slice(i * width, (i + 1) * width)
        result[segment] = geometry.local_operator_diagonal(omega, i, n_max) * solution[segment]
    return result


def solve_internal(geometry: Geometry, omega: float, n_max: int, scattered: np.ndarray) -> np.ndarray:
    """Internal coefficients from scattered ones, scatterer by scatterer."""
    width = 2 * block_size(n_max)
    result = np.zeros_like(scattered, dtype=complex)
    for j in range(len(geometry)):
        segment = slice(j * width, (j + 1) * width)
        result[segment] = geometry.internal_auxiliary(omega, j, n_max) * scattered[segment]
    return result
