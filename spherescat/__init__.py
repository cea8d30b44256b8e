from .assembly import GlobalSystem, Method, assemble
from .config import SceneConfig, SolverConfig, load_scene
from .coupling import CachedCoAxialRecurrence, CouplingMatrix, compute_coupling
from .distributed import ProcessWorkerGroup, SerialWorkerGroup
from .electromagnetic import ElectroMagnetic
from .errors import ConfigurationError, LinearSolveError
from .excitation import PlaneWave
from .geometry import Geometry
from .harmonics import max_flat
from .scatterer import Scatterer
from .solver import Result, Solver

__version__ = "0.1.0"
