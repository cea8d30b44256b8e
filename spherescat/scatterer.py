from __future__ import annotations

import numpy as np

from spherescat.electromagnetic import ElectroMagnetic


class Scatterer:
    """A homogeneous sphere taking part in the multiple-scattering problem.

    Parameters
    ----------
    position : array_like
        Cartesian center of the sphere.
    elmag : ElectroMagnetic
        Material of the sphere.
    radius : float
        Radius of the sphere.
    n_max : int
        Maximum degree of the expansions about the center.

    Attributes
    ----------
    source : np.ndarray or None
        Second-harmonic source coefficients, ``2 * block_size(n_max)``
        entries. Overwritten whenever second-harmonic sources are populated.
    """

    def __init__(self, position, elmag: ElectroMagnetic, radius: float, n_max: int):
        self.position = np.asarray(position, dtype=float)
        if self.position.shape != (3,):
            raise ValueError(f"Position must have three components, got shape {self.position.shape}")
        if radius <= 0:
            raise ValueError(f"Radius must be positive, got {radius}")
        if n_max < 1:
            raise ValueError(f"Maximum degree must be at least 1, got {n_max}")

        self.elmag = elmag
        self.radius = float(radius)
        self.n_max = int(n_max)
        self.source: np.ndarray | None = None

    @classmethod
    def from_spherical(cls, r: float, theta: float, phi: float, elmag: ElectroMagnetic, radius: float, n_max: int):
        """Sphere centered at the spherical coordinates ``(r, theta, phi)``."""
        position = r * np.array(
            [np.sin(theta) * np.cos(phi), np.sin(theta) * np.sin(phi), np.cos(theta)]
        )
        return cls(position, elmag, radius, n_max)

    def __repr__(self) -> str:
        return (
            f"Scatterer(position={self.position.tolist()}, radius={self.radius}, "
            f"n_max={self.n_max}, elmag={self.elmag!r})"
        )
