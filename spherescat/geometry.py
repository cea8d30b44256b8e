from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

import numpy as np

from spherescat.coupling import compute_coupling
from spherescat.electromagnetic import ElectroMagnetic
from spherescat.errors import ConfigurationError
from spherescat.harmonics import Harmonics, block_size
from spherescat.mie_coefficients import compute_mie_coefficients
from spherescat.scatterer import Scatterer

if TYPE_CHECKING:
    from spherescat.excitation import PlaneWave


class Geometry:
    """Ordered collection of spheres in a homogeneous background.

    The registry provides everything the assembler needs per scatterer: the
    local T-matrix, the internal/scattered coefficient ratios and, in the
    second-harmonic case, the local source coefficients.

    Parameters
    ----------
    objects : iterable of Scatterer, optional
        Initial scatterers. Overlapping spheres are rejected.
    background : ElectroMagnetic, optional
        Embedding medium, vacuum by default.
    """

    def __init__(self, objects: Iterable[Scatterer] | None = None, background: ElectroMagnetic | None = None):
        self.objects: list[Scatterer] = []
        self.background = background if background is not None else ElectroMagnetic()
        self.log = logging.getLogger(self.__class__.__module__)

        for scatterer in objects or []:
            self.push_object(scatterer)

    def __len__(self) -> int:
        return len(self.objects)

    def push_object(self, scatterer: Scatterer) -> None:
        """Append a scatterer.

        Raises
        ------
        ConfigurationError
            If the sphere overlaps an existing one, or if its material
            matches the background. Such a sphere does not scatter, and its
            internal field cannot be recovered from the scattered one.
        """
        elmag = scatterer.elmag
        if elmag.epsilon_r == self.background.epsilon_r and elmag.mu_r == self.background.mu_r:
            raise ConfigurationError(
                f"Scatterer {len(self.objects)} has the material of the background and does not scatter"
            )
        radii = np.array([o.radius for o in self.objects])
        distances = np.linalg.norm(self.centers - scatterer.position, axis=1)
        overlapping = np.flatnonzero(distances < radii + scatterer.radius)
        if overlapping.size:
            raise ConfigurationError(
                f"Scatterer {len(self.objects)} overlaps scatterer {overlapping[0]}"
            )
        self.objects.append(scatterer)

    @property
    def centers(self) -> np.ndarray:
        return np.array([o.position for o in self.objects], dtype=float).reshape(-1, 3)

    @property
    def n_max(self) -> int:
        """Common maximum degree of all scatterers, ``0`` for an empty registry."""
        self.validate()
        if not self.objects:
            return 0
        return self.objects[0].n_max

    def validate(self) -> None:
        """Check that all scatterers share the same maximum degree."""
        degrees = {o.n_max for o in self.objects}
        if len(degrees) > 1:
            raise ConfigurationError(
                f"All objects must have same number of harmonics, got degrees {sorted(degrees)}"
            )

    def local_operator_diagonal(self, omega: float, index: int, n_max: int) -> np.ndarray:
        """Diagonal of the local T-matrix of scatterer ``index``.

        The first half of the vector acts on the TE coefficients (``-b_n``),
        the second half on the TM coefficients (``-a_n``).
        """
        obj = self.objects[index]
        mie_tau1, mie_tau2, _, _ = compute_mie_coefficients(
            omega, obj.radius, obj.elmag, self.background, n_max
        )
        harmonics = Harmonics(n_max)
        return np.concatenate([harmonics.expand(mie_tau1), harmonics.expand(mie_tau2)])

    def local_operator(self, omega: float, index: int, n_max: int) -> np.ndarray:
        """Local T-matrix of scatterer ``index`` as a ``2B x 2B`` matrix."""
        return np.diag(self.local_operator_diagonal(omega, index, n_max))

    def internal_auxiliary(self, omega: float, index: int, n_max: int) -> np.ndarray:
        """Ratios of internal to scattered coefficients of scatterer ``index``."""
        obj = self.objects[index]
        _, _, ratio_tau1, ratio_tau2 = compute_mie_coefficients(
            omega, obj.radius, obj.elmag, self.background, n_max
        )
        harmonics = Harmonics(n_max)
        return np.concatenate([harmonics.expand(ratio_tau1), harmonics.expand(ratio_tau2)])

    def set_sources(self, internal: np.ndarray, n_max: int) -> None:
        """Second-harmonic sources from first-harmonic internal coefficients.

        The source of each scatterer is its internal field scaled by the
        second-order susceptibility of its material.

        Parameters
        ----------
        internal : np.ndarray
            First-harmonic internal coefficients of all scatterers,
            ``2 * block_size(n_max)`` entries per scatterer.
        n_max : int
            Maximum degree of ``internal``.
        """
        width = 2 * block_size(n_max)
        internal = np.asarray(internal)
        if internal.shape != (width * len(self.objects),):
            raise ValueError(
                f"Expected {width * len(self.objects)} internal coefficients, got shape {internal.shape}"
            )
        for index, obj in enumerate(self.objects):
            obj.source = obj.elmag.chi2 * internal[index * width : (index + 1) * width]
        self.log.info("second-harmonic sources set for %d scatterers", len(self.objects))

    def source_local(self, index: int, excitation: PlaneWave, n_max: int) -> np.ndarray:
        """Source coefficients seen by scatterer ``index``.

        Its own source plus the sources of all other scatterers translated to
        its center at the excitation frequency.
        """
        obj = self.objects[index]
        if obj.source is None:
            raise RuntimeError(f"Second-harmonic sources of scatterer {index} are not set")

        result = np.array(obj.source, dtype=complex)
        k_background = self.background.wavenumber(excitation.omega)
        for j, other in enumerate(self.objects):
            if j == index:
                continue
            coupling = compute_coupling(obj.position - other.position, k_background, n_max)
            result += coupling.translation_operator() @ other.source
        return result
