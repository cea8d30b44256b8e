"""Worker groups and block-cyclic data distribution.

The assembler and the dense backends only talk to a worker group through the
:class:`WorkerGroup` protocol:

- ``partition`` splits the scatterers into per-worker column ranges
- ``map`` runs one task per worker
- ``redistribute`` moves column blocks onto a 2D block-cyclic layout
- ``collective_solve`` factorizes and solves on that layout
- ``broadcast`` hands the solution to every worker of the group

:class:`SerialWorkerGroup` runs everything in the calling process and is what
the solver uses when no group is given. :class:`ProcessWorkerGroup` farms the
column blocks out to a :mod:`multiprocessing` pool.
"""

from __future__ import annotations

import logging
import multiprocessing
from dataclasses import dataclass
from math import isqrt
from typing import Any, Callable, Iterable, Protocol

import numpy as np
from scipy.linalg import get_lapack_funcs

from spherescat.errors import ConfigurationError


def linear_partition(count: int, workers: int) -> list[list[int]]:
    """Split ``count`` scatterers over ``workers`` workers.

    Each worker first receives ``count // workers`` consecutive scatterers;
    the leftover scatterers form the remainder group and go one each to the
    first workers.

    Returns
    -------
    list of list of int
        Scatterer indices per worker; workers without scatterers get an empty
        list.
    """
    if workers < 1:
        raise ConfigurationError(f"Number of workers must be positive, got {workers}")
    per_worker = count // workers
    remainder = count % workers

    parts = [list(range(w * per_worker, (w + 1) * per_worker)) for w in range(workers)]
    for r in range(remainder):
        parts[r].append(per_worker * workers + r)
    return parts


@dataclass(frozen=True)
class ProcessGrid:
    """Two-dimensional grid of ``rows x cols`` workers."""

    rows: int
    cols: int

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @classmethod
    def squarest(cls, size: int) -> "ProcessGrid":
        """The most square grid using all ``size`` workers."""
        if size < 1:
            raise ConfigurationError(f"Process grid needs at least one worker, got {size}")
        rows = isqrt(size)
        while size % rows:
            rows -= 1
        return cls(rows, size // rows)

    def validate(self, group_size: int) -> None:
        """Raise :class:`ConfigurationError` if the grid does not fit the group."""
        if self.rows < 1 or self.cols < 1:
            raise ConfigurationError(f"Invalid process grid {self.rows}x{self.cols}")
        if self.size > group_size:
            raise ConfigurationError(
                f"Process grid {self.rows}x{self.cols} needs {self.size} workers, "
                f"the worker group has {group_size}"
            )


class BlockCyclicLayout:
    """2D block-cyclic distribution of a matrix over a process grid.

    Entry ``(i, j)`` belongs to grid coordinate
    ``((i // block) % rows, (j // block) % cols)``.

    Parameters
    ----------
    shape : tuple of int
        Global matrix shape.
    block : int
        Square block size.
    grid : ProcessGrid
        Process grid.
    """

    def __init__(self, shape: tuple[int, int], block: int, grid: ProcessGrid):
        if block < 1:
            raise ConfigurationError(f"Block size must be positive, got {block}")
        self.shape = tuple(shape)
        self.block = int(block)
        self.grid = grid

        row_owner = (np.arange(self.shape[0]) // self.block) % grid.rows
        col_owner = (np.arange(self.shape[1]) // self.block) % grid.cols
        self.rows = [np.flatnonzero(row_owner == p) for p in range(grid.rows)]
        self.cols = [np.flatnonzero(col_owner == p) for p in range(grid.cols)]
        self._col_owner = col_owner
        self._col_local = np.zeros(self.shape[1], dtype=int)
        for p, cols in enumerate(self.cols):
            self._col_local[cols] = np.arange(cols.size)

    def column_owner(self, j: int) -> tuple[int, int]:
        """Process column owning global column ``j`` and its index in the local tiles."""
        return int(self._col_owner[j]), int(self._col_local[j])

    def empty_tiles(self) -> dict[tuple[int, int], np.ndarray]:
        return {
            (pr, pc): np.zeros((self.rows[pr].size, self.cols[pc].size), dtype=complex)
            for pr in range(self.grid.rows)
            for pc in range(self.grid.cols)
        }

    def scatter(self, matrix: np.ndarray) -> dict[tuple[int, int], np.ndarray]:
        """Local tiles of ``matrix`` for every grid coordinate."""
        return {
            (pr, pc): matrix[np.ix_(self.rows[pr], self.cols[pc])]
            for pr in range(self.grid.rows)
            for pc in range(self.grid.cols)
        }

    def gather(self, tiles: dict[tuple[int, int], np.ndarray]) -> np.ndarray:
        """Global matrix from its local tiles."""
        matrix = np.zeros(self.shape, dtype=complex)
        for (pr, pc), tile in tiles.items():
            matrix[np.ix_(self.rows[pr], self.cols[pc])] = tile
        return matrix


class WorkerGroup(Protocol):
    """Capabilities the distributed assembly and solve rely on."""

    size: int

    def partition(self, count: int) -> list[list[int]]:
        """Scatterer indices per worker."""

    def map(self, func: Callable[[Any], Any], tasks: Iterable[Any]) -> list[Any]:
        """Run ``func`` on every task, one task per worker."""

    def redistribute(
        self, columns: list[tuple[np.ndarray, np.ndarray]], layout: BlockCyclicLayout
    ) -> dict[tuple[int, int], np.ndarray]:
        """Move ``(global column indices, column block)`` pairs onto ``layout``."""

    def collective_solve(
        self, tiles: dict[tuple[int, int], np.ndarray], layout: BlockCyclicLayout, rhs: np.ndarray
    ) -> tuple[np.ndarray, int]:
        """Solve the distributed system, returning the solution and a status."""

    def broadcast(self, value: np.ndarray) -> np.ndarray:
        """Make ``value`` available to every worker of the group."""


class SerialWorkerGroup:
    """Worker group running every task in the calling process.

    Parameters
    ----------
    size : int, optional
        Number of logical workers. Partitioning and layouts honour it, the
        tasks still run one after the other.
    """

    def __init__(self, size: int = 1):
        if size < 1:
            raise ConfigurationError(f"Worker group needs at least one worker, got {size}")
        self.size = int(size)
        self.log = logging.getLogger(self.__class__.__module__)

    def partition(self, count: int) -> list[list[int]]:
        return linear_partition(count, min(self.size, count) if count else 1)

    def map(self, func, tasks):
        return [func(task) for task in tasks]

    def redistribute(self, columns, layout):
        tiles = layout.empty_tiles()
        for global_cols, block in columns:
            for k, j in enumerate(global_cols):
                pc, lc = layout.column_owner(j)
                for pr in range(layout.grid.rows):
                    tiles[(pr, pc)][:, lc] = block[layout.rows[pr], k]
        self.log.debug(
            "redistributed %d column blocks onto a %dx%d grid",
            len(columns),
            layout.grid.rows,
            layout.grid.cols,
        )
        return tiles

    def collective_solve(self, tiles, layout, rhs):
        matrix = layout.gather(tiles)
        rhs = np.asarray(rhs, dtype=complex)
        getrf, getrs = get_lapack_funcs(("getrf", "getrs"), (matrix, rhs))
        lu, piv, info = getrf(matrix)
        if info != 0:
            return np.full_like(rhs, np.nan), int(info)
        x, info = getrs(lu, piv, rhs)
        return x, int(info)

    def broadcast(self, value):
        return np.array(value, copy=True)


class ProcessWorkerGroup(SerialWorkerGroup):
    """Worker group backed by a :mod:`multiprocessing` pool of ``size`` processes.

    Tasks and their arguments have to be picklable.
    """

    def __init__(self, size: int, start_method: str | None = None):
        super().__init__(size)
        self._context = multiprocessing.get_context(start_method)

    def map(self, func, tasks):
        tasks = list(tasks)
        if len(tasks) <= 1:
            return [func(task) for task in tasks]
        with self._context.Pool(min(self.size, len(tasks))) as pool:
            return pool.map(func, tasks)
