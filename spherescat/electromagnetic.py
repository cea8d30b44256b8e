import numpy as np
from scipy.constants import c


class ElectroMagnetic:
    """Electromagnetic parameters of a homogeneous, isotropic material.

    Parameters
    ----------
    epsilon_r : complex, optional
        Relative permittivity.
    mu_r : complex, optional
        Relative permeability.
    chi2 : complex, optional
        Scalar second-order susceptibility. It scales the first-harmonic
        internal field into the second-harmonic source of a scatterer.
    """

    def __init__(self, epsilon_r: complex = 1.0, mu_r: complex = 1.0, chi2: complex = 0.0):
        self.epsilon_r = complex(epsilon_r)
        self.mu_r = complex(mu_r)
        self.chi2 = complex(chi2)

    @classmethod
    def from_refractive_index(cls, refractive_index: complex, mu_r: complex = 1.0, chi2: complex = 0.0):
        """Material with the given refractive index and permeability."""
        refractive_index = complex(refractive_index)
        return cls(refractive_index**2 / mu_r, mu_r, chi2)

    @property
    def refractive_index(self) -> complex:
        return complex(np.sqrt(self.epsilon_r * self.mu_r))

    def wavenumber(self, omega: float) -> complex:
        """Wavenumber ``omega / c * n`` inside the material."""
        return omega / c * self.refractive_index

    def __repr__(self) -> str:
        return f"ElectroMagnetic(epsilon_r={self.epsilon_r}, mu_r={self.mu_r}, chi2={self.chi2})"
