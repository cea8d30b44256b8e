"""Plane-wave excitation.

A plane wave :math:`E_0 e^{i k \\hat k \\cdot r}` expands about a center
:math:`c` in regular vector spherical waves,

.. math::

    E = \\sum_{nm} p_{nm} \\tilde M_{nm} + q_{nm} \\tilde N_{nm},

with the normalized waves :math:`\\tilde M_{nm} = -i j_n X_{nm}` and
:math:`\\tilde N_{nm} = \\nabla \\times \\tilde M_{nm} / k` and

.. math::

    p_{nm} = 4\\pi i^{n+1} \\overline{X_{nm}(\\hat k)} \\cdot E_0 e^{i k \\hat k \\cdot c},
    \\qquad
    q_{nm} = -4\\pi i^{n} \\overline{X_{nm}(\\hat k)} \\cdot (\\hat k \\times E_0)
    e^{i k \\hat k \\cdot c},

see Jackson, *Classical Electrodynamics*, 3rd ed., section 10.4.
"""

from __future__ import annotations

import copy
import logging

import numpy as np
from scipy.constants import c

from spherescat.electromagnetic import ElectroMagnetic
from spherescat.functions.spherical_harmonics import vector_spherical_harmonic
from spherescat.harmonics import block_size, degree_order_pairs


class PlaneWave:
    """Plane wave travelling along ``(polar_angle, azimuthal_angle)``.

    Parameters
    ----------
    omega : float
        Angular frequency.
    polar_angle : float, optional
        Polar angle of the propagation direction.
    azimuthal_angle : float, optional
        Azimuthal angle of the propagation direction.
    polarization : str or array_like, optional
        ``"TE"`` (field along the azimuthal unit vector), ``"TM"`` (field along
        the polar unit vector) or an explicit complex Cartesian field
        direction, which has to be transverse to the propagation direction.
    amplitude : complex, optional
        Field amplitude.
    background : ElectroMagnetic, optional
        Medium the wave travels in, vacuum by default.
    """

    def __init__(
        self,
        omega: float,
        polar_angle: float = 0.0,
        azimuthal_angle: float = 0.0,
        polarization: str | np.ndarray = "TE",
        amplitude: complex = 1.0,
        background: ElectroMagnetic | None = None,
    ):
        if omega <= 0:
            raise ValueError(f"Angular frequency must be positive, got {omega}")
        self.omega = float(omega)
        self.polar_angle = float(polar_angle)
        self.azimuthal_angle = float(azimuthal_angle)
        self.amplitude = complex(amplitude)
        self.background = background if background is not None else ElectroMagnetic()

        st, ct = np.sin(self.polar_angle), np.cos(self.polar_angle)
        sp, cp = np.sin(self.azimuthal_angle), np.cos(self.azimuthal_angle)
        self.direction = np.array([st * cp, st * sp, ct])
        e_theta = np.array([ct * cp, ct * sp, -st])
        e_phi = np.array([-sp, cp, 0.0])

        if isinstance(polarization, str):
            match polarization.upper():
                case "TE":
                    field = e_phi.astype(complex)
                case "TM":
                    field = e_theta.astype(complex)
                case _:
                    raise ValueError(f"Unknown polarization {polarization!r}, use 'TE', 'TM' or a vector")
        else:
            field = np.asarray(polarization, dtype=complex)
            if field.shape != (3,):
                raise ValueError(f"Polarization vector must have three components, got shape {field.shape}")
            if abs(np.dot(self.direction, field)) > 1e-12 * np.linalg.norm(field):
                raise ValueError("Polarization must be transverse to the propagation direction")
            field = field / np.linalg.norm(field)
        self.polarization = field

        self.log = logging.getLogger(self.__class__.__module__)

    @classmethod
    def from_wavelength(cls, wavelength: float, **kwargs) -> "PlaneWave":
        """Plane wave with the given vacuum wavelength."""
        return cls(2 * np.pi * c / wavelength, **kwargs)

    @property
    def wavelength(self) -> float:
        """Vacuum wavelength."""
        return 2 * np.pi * c / self.omega

    @property
    def wavenumber(self) -> complex:
        """Wavenumber in the background medium."""
        return self.background.wavenumber(self.omega)

    def harmonic(self, order: int) -> "PlaneWave":
        """The same wave at ``order`` times the frequency."""
        wave = copy.copy(self)
        wave.omega = self.omega * order
        return wave

    def incoming_local(self, center: np.ndarray, n_max: int) -> np.ndarray:
        """Expansion coefficients about ``center``.

        Returns
        -------
        np.ndarray
            ``2 * block_size(n_max)`` entries, the TE coefficients ``p`` followed
            by the TM coefficients ``q``.
        """
        size = block_size(n_max)
        result = np.zeros(2 * size, dtype=complex)

        field = self.amplitude * self.polarization
        cross = np.cross(self.direction, field)
        phase = np.exp(1j * self.wavenumber * np.dot(self.direction, np.asarray(center, dtype=float)))

        for index, (n, m) in enumerate(degree_order_pairs(n_max)):
            x_conj = np.conj(vector_spherical_harmonic(n, m, self.polar_angle, self.azimuthal_angle))
            result[index] = 4 * np.pi * 1j ** (n + 1) * np.dot(x_conj, field)
            result[size + index] = -4 * np.pi * 1j**n * np.dot(x_conj, cross)
        return result * phase
