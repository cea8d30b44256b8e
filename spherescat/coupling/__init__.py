"""Translation and coupling coefficients between scatterer expansions."""

from spherescat.coupling.coupling import CouplingMatrix, compute_coupling
from spherescat.coupling.recurrence import CachedCoAxialRecurrence

__all__ = ["CachedCoAxialRecurrence", "CouplingMatrix", "compute_coupling"]
