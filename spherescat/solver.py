"""Solver facade of the multiple-scattering problem.

:class:`Solver` owns the assembled global system of one geometry and
excitation. Its state moves

- ``UNINITIALIZED`` to ``POPULATED`` when the system is assembled (on
  construction, :meth:`Solver.populate`, :meth:`Solver.update` or a new
  first-harmonic result passed to :meth:`Solver.sh`)
- ``POPULATED`` to ``SOLVED`` on :meth:`Solver.solve`, which never modifies
  the system and can be repeated.

Second-harmonic solves take the first-harmonic :class:`Result` as an explicit
input: its internal coefficients, scaled by each material's second-order
susceptibility, replace the excitation as the source of the system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from time import time

import numpy as np

from spherescat import log
from spherescat.assembly import GlobalSystem, Method, assemble
from spherescat.backends import DistributedDenseBackend, convert_indirect, select_backend, solve_internal
from spherescat.config import SolverConfig
from spherescat.distributed import WorkerGroup
from spherescat.excitation import PlaneWave
from spherescat.geometry import Geometry
from spherescat.harmonics import block_size


class State(Enum):
    UNINITIALIZED = "uninitialized"
    POPULATED = "populated"
    SOLVED = "solved"


@dataclass
class Result:
    """Scattered and internal coefficients of all scatterers.

    Both arrays are flat with ``2 * block_size(n_max)`` entries per
    scatterer, TE coefficients before TM coefficients.
    """

    scattered: np.ndarray
    internal: np.ndarray
    n_max: int
    omega: float

    def per_scatterer(self) -> tuple[np.ndarray, np.ndarray]:
        """Views of shape ``(K, 2, B)`` of the scattered and internal coefficients."""
        size = block_size(self.n_max)
        shape = (-1, 2, size) if size else (0, 2, 0)
        return self.scattered.reshape(shape), self.internal.reshape(shape)


class Solver:
    """Assemble and solve the multiple-scattering system.

    Parameters
    ----------
    geometry : Geometry
        Scatterers and background medium.
    excitation : PlaneWave
        Incident wave. For second-harmonic solves this is the wave at the
        second-harmonic frequency.
    config : SolverConfig, optional
        Formulation and backend settings.
    n_max : int, optional
        Maximum degree; defaults to the common degree of the scatterers.
    harmonic : Result, optional
        First-harmonic result whose internal coefficients become the
        sources of a second-harmonic solve.
    workers : WorkerGroup, optional
        Worker group for distributed assembly and solve.

    Raises
    ------
    ConfigurationError
        If the scatterers do not share one maximum degree or the process grid
        does not fit the worker group. No system is built in that case.
    """

    def __init__(
        self,
        geometry: Geometry,
        excitation: PlaneWave,
        config: SolverConfig | None = None,
        n_max: int | None = None,
        harmonic: Result | None = None,
        workers: WorkerGroup | None = None,
    ):
        self.geometry = geometry
        self.excitation = excitation
        self.config = config if config is not None else SolverConfig()
        self.n_max = n_max
        self.workers = workers
        self.harmonic: Result | None = None
        self.system: GlobalSystem | None = None
        self.state = State.UNINITIALIZED

        self.log = log.scattering_logger(__name__)

        self.populate(harmonic)

    @property
    def method(self) -> Method:
        return Method(self.config.method)

    def populate(self, harmonic: Result | None = None) -> None:
        """Assemble the system, from the excitation or from ``harmonic``."""
        n_max = self.n_max if self.n_max is not None else self.geometry.n_max
        backend = select_backend(self.config, self.workers)

        layout = None
        if isinstance(backend, DistributedDenseBackend):
            layout = backend.layout(2 * block_size(n_max) * len(self.geometry))

        internal = None
        if harmonic is not None:
            if harmonic.n_max != n_max:
                raise ValueError(
                    f"First-harmonic result has n_max={harmonic.n_max}, the solver uses n_max={n_max}"
                )
            internal = harmonic.internal
            self.log.info("populating second-harmonic system at omega=%g", self.excitation.omega)

        self.system = assemble(
            self.geometry,
            self.excitation,
            n_max,
            self.method,
            internal=internal,
            workers=self.workers,
            layout=layout,
        )
        self.harmonic = harmonic
        self.state = State.POPULATED

    def update(
        self,
        geometry: Geometry | None = None,
        excitation: PlaneWave | None = None,
        n_max: int | None = None,
        harmonic: Result | None = None,
    ) -> "Solver":
        """Replace geometry, excitation or degree and repopulate.

        Any previous first-harmonic input is dropped unless ``harmonic`` is
        given again.
        """
        if geometry is not None:
            self.geometry = geometry
        if excitation is not None:
            self.excitation = excitation
        if n_max is not None:
            self.n_max = n_max
        self.populate(harmonic)
        return self

    def sh(self, harmonic: Result | None) -> "Solver":
        """Switch to the second-harmonic sources of ``harmonic``.

        Passing the result the system was populated with is a no-op; any
        other result (or ``None`` to return to the excitation) repopulates.
        """
        if harmonic is not self.harmonic:
            self.populate(harmonic)
        return self

    def solve(self, workers: WorkerGroup | None = None) -> Result:
        """Solve the populated system.

        Parameters
        ----------
        workers : WorkerGroup, optional
            Worker group to solve on instead of the one given at
            construction.

        Returns
        -------
        Result
            Scattered and internal coefficients.

        Raises
        ------
        ConfigurationError
            If the process grid does not fit the worker group.
        LinearSolveError
            If the backend reports a non-zero status.
        """
        if self.system is None:
            raise RuntimeError("Solver has not been populated")

        system = self.system
        workers = workers if workers is not None else self.workers
        backend = select_backend(self.config, workers)

        if system.size == 0:
            empty = np.zeros(0, dtype=complex)
            self.state = State.SOLVED
            return Result(empty, empty.copy(), system.n_max, system.omega)

        tiles = None
        if isinstance(backend, DistributedDenseBackend) and system.layout is not None:
            if backend.grid == system.layout.grid and backend.block == system.layout.block:
                tiles = system.tiles

        start = time()
        solution = backend.solve(system.matrix, system.vector, tiles=tiles)
        if system.method == Method.INDIRECT:
            solution = convert_indirect(self.geometry, system.omega, system.n_max, solution)
        internal = solve_internal(self.geometry, system.omega, system.n_max, solution)
        self.log.info("solved system of size %d with %s (%.3fs)", system.size, backend.name, time() - start)

        self.state = State.SOLVED
        return Result(solution, internal, system.n_max, system.omega)
