"""Physics passes for SPH: density, forces, implicit surface field and diagnostics."""

from .density_vectorized import compute_density_vectorized
from .forces_vectorized import compute_forces_vectorized
from .surface_field import surface_info_vectorized, SURFACE_OFFSET
from .diagnostics import compute_step_statistics, compute_kinetic_energy

__all__ = [
    # Density
    'compute_density_vectorized',
    # Forces
    'compute_forces_vectorized',
    # Surface field
    'surface_info_vectorized',
    'SURFACE_OFFSET',
    # Diagnostics
    'compute_step_statistics',
    'compute_kinetic_energy'
]
