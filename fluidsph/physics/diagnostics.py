"""Per-step diagnostics for monitoring a running simulation."""

import numpy as np
from ..core.particles import ParticleArrays
from ..core.spatial_grid import UniformGrid


def compute_kinetic_energy(particles: ParticleArrays) -> float:
    speed2 = particles.velocity_x**2 + particles.velocity_y**2 + particles.velocity_z**2
    return float(0.5 * np.sum(particles.mass * speed2))


def compute_step_statistics(particles: ParticleArrays, grid: UniformGrid) -> dict:
    """Summarise particle motion, density and grid occupancy.

    Returns dict with:
        - max_speed, kinetic_energy
        - mean_density, min_density, max_density
        - grid: occupancy statistics from the spatial grid
    """
    speed = np.sqrt(particles.velocity_x**2 + particles.velocity_y**2 + particles.velocity_z**2)

    return {
        'max_speed': float(np.max(speed)),
        'kinetic_energy': compute_kinetic_energy(particles),
        'mean_density': float(np.mean(particles.density)),
        'min_density': float(np.min(particles.density)),
        'max_density': float(np.max(particles.density)),
        'grid': grid.get_statistics(),
    }
