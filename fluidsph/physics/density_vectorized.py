"""
Vectorized density computation for SPH.

Corrected (Shepard) direct summation:
    ρᵢ = Σⱼ mⱼ W(rᵢⱼ) / Σⱼ (mⱼ / ρⱼ) W(rᵢⱼ)

where ρⱼ in the denominator is the previous step's density. Particles
are processed one grid cell at a time so every particle of a cell shares
the same candidate neighbor list.
"""

import numpy as np
from ..core.particles import ParticleArrays
from ..core.kernel_vectorized import MullerKernel
from ..core.spatial_grid import SpatialIndex


def pairwise_r2(points: np.ndarray, candidates: np.ndarray) -> np.ndarray:
    """Squared distances between (M, 3) points and (K, 3) candidates, shape (M, K)."""
    diff = points[:, np.newaxis, :] - candidates[np.newaxis, :, :]
    return np.einsum('mkd,mkd->mk', diff, diff)


def compute_density_vectorized(particles: ParticleArrays, kernel: MullerKernel,
                               grid: SpatialIndex):
    """Compute corrected density, volume and pressure for every particle.

    Reads positions, masses and previous densities; the new fields are
    written only after the full sweep.

    Args:
        particles: Particle arrays filed in ``grid``
        kernel: Kernel evaluators for the solver's smoothing radius
        grid: Spatial index
    """
    positions = particles.get_positions()
    mass = particles.mass
    previous_density = particles.density

    density = np.empty(particles.count, dtype=np.float64)

    for members, candidates in grid.batches(particles.cell_index):
        r2 = pairwise_r2(positions[members], positions[candidates])
        inside = r2 < kernel.h2

        # Mask before summing: Poly6 is not clamped outside the support
        kernel_mass = np.where(inside, kernel.density(r2), 0.0) * mass[candidates]

        raw = np.sum(kernel_mass, axis=1)
        correction = np.sum(kernel_mass / previous_density[candidates], axis=1)
        density[members] = raw / correction

    # Commit
    particles.density[:] = density
    particles.volume[:] = particles.mass / particles.density
    particles.pressure[:] = kernel.equation_of_state(particles.density)
