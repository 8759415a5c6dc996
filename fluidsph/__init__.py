"""SPH (Smoothed Particle Hydrodynamics) fluid solver with implicit surface queries."""

from . import core
from . import physics
from . import scenarios

# Import API to trigger backend registration
from . import api

# Import unified API
from .api import (
    # Core functions
    compute_density,
    compute_forces,
    surface_info,

    # Backend management
    set_backend,
    get_backend,
    list_backends,
    auto_select_backend,
    print_backend_info,

    # Core classes
    ParticleArrays,
    MullerKernel
)

from .config import SolverConfig, ConfigurationError
from .display import RenderMode, MaterialPreset, Material
from .lattice import SurfaceLattice
from .solver import SPHSolver

__version__ = "0.1.0"

__all__ = [
    # Modules
    'core',
    'physics',
    'scenarios',

    # API functions
    'compute_density',
    'compute_forces',
    'surface_info',

    # Backend management
    'set_backend',
    'get_backend',
    'list_backends',
    'auto_select_backend',
    'print_backend_info',

    # Core classes
    'ParticleArrays',
    'MullerKernel',
    'SolverConfig',
    'ConfigurationError',
    'RenderMode',
    'MaterialPreset',
    'Material',
    'SurfaceLattice',
    'SPHSolver'
]
