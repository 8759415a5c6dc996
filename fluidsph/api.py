"""
Unified API for the SPH passes with automatic backend dispatch.

This module provides a clean interface that dispatches to the CPU
(NumPy) or Numba implementations based on the current backend.
"""

import numpy as np
from typing import Optional, Tuple
from .core.backend import (dispatch, set_backend, get_backend, auto_select_backend,
                           print_backend_info, list_backends, backend_function,
                           for_backend, Backend)
from .core.particles import ParticleArrays
from .core.kernel_vectorized import MullerKernel
from .core.spatial_grid import SpatialIndex

# CPU implementations
from .physics.density_vectorized import compute_density_vectorized
from .physics.forces_vectorized import compute_forces_vectorized
from .physics.surface_field import surface_info_vectorized, SURFACE_OFFSET


# Register CPU implementations
@backend_function("compute_density")
@for_backend(Backend.CPU)
def _compute_density_cpu(particles, kernel, grid):
    compute_density_vectorized(particles, kernel, grid)


@backend_function("compute_forces")
@for_backend(Backend.CPU)
def _compute_forces_cpu(particles, kernel, grid, gravity, pressure_coeff,
                        viscosity_coeff, tension_coeff):
    compute_forces_vectorized(particles, kernel, grid, gravity, pressure_coeff,
                              viscosity_coeff, tension_coeff)


@backend_function("surface_info")
@for_backend(Backend.CPU)
def _surface_info_cpu(points, particles, kernel, grid, offset):
    return surface_info_vectorized(points, particles, kernel, grid, offset)


# Try to import and register Numba implementations
try:
    from .physics.density_numba import compute_density_numba_wrapper
    from .physics.forces_numba import compute_forces_numba_wrapper
    from .physics.surface_field_numba import surface_info_numba_wrapper

    @backend_function("compute_density")
    @for_backend(Backend.NUMBA)
    def _compute_density_numba(particles, kernel, grid):
        compute_density_numba_wrapper(particles, kernel, grid)

    @backend_function("compute_forces")
    @for_backend(Backend.NUMBA)
    def _compute_forces_numba(particles, kernel, grid, gravity, pressure_coeff,
                              viscosity_coeff, tension_coeff):
        compute_forces_numba_wrapper(particles, kernel, grid, gravity, pressure_coeff,
                                     viscosity_coeff, tension_coeff)

    @backend_function("surface_info")
    @for_backend(Backend.NUMBA)
    def _surface_info_numba(points, particles, kernel, grid, offset):
        return surface_info_numba_wrapper(points, particles, kernel, grid, offset)

except ImportError:
    pass


# Public API functions that dispatch to appropriate backend
def compute_density(particles: ParticleArrays, kernel: MullerKernel, grid: SpatialIndex,
                    backend: Optional[str] = None):
    """Compute corrected density, volume and pressure.

    Args:
        particles: Particle arrays
        kernel: Kernel evaluators
        grid: Spatial index the particles are filed in
        backend: Override backend ('cpu', 'numba', or None for current)
    """
    dispatch("compute_density", particles, kernel, grid, backend=backend)


def compute_forces(particles: ParticleArrays, kernel: MullerKernel, grid: SpatialIndex,
                   gravity: np.ndarray = None, pressure_coeff: float = 0.0,
                   viscosity_coeff: float = 0.0, tension_coeff: float = 0.0,
                   backend: Optional[str] = None):
    """Compute accelerations from pressure, viscosity, tension and gravity.

    Args:
        particles: Particle arrays with density computed
        kernel: Kernel evaluators
        grid: Spatial index
        gravity: Gravity vector [gx, gy, gz] in the local frame (default zero)
        pressure_coeff: Pressure stiffness
        viscosity_coeff: Viscosity coefficient
        tension_coeff: Surface tension coefficient
        backend: Override backend
    """
    if gravity is None:
        gravity = np.zeros(3)
    gravity = np.asarray(gravity, dtype=np.float64)

    dispatch("compute_forces", particles, kernel, grid, gravity, pressure_coeff,
             viscosity_coeff, tension_coeff, backend=backend)


def surface_info(points: np.ndarray, particles: ParticleArrays, kernel: MullerKernel,
                 grid: SpatialIndex, offset: float = SURFACE_OFFSET,
                 backend: Optional[str] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Evaluate the implicit surface field at (P, 3) points.

    Returns:
        (values, normals) with shapes (P,) and (P, 3)
    """
    return dispatch("surface_info", points, particles, kernel, grid, offset, backend=backend)


__all__ = [
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
]
