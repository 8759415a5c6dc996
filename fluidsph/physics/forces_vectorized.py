"""
Fully vectorized force computation for SPH.

Includes:
- Pressure forces (Spiky kernel, mean pair pressure)
- Viscous forces (viscosity Laplacian)
- Surface tension (Poly6-weighted cohesion)
- External forces (gravity, expressed in the solver's local frame)

Each force sum is renormalised by the kernel-weighted neighbor volume
Σⱼ Vⱼ W(rᵢⱼ) before conversion to acceleration.
"""

import numpy as np
from ..core.particles import ParticleArrays
from ..core.kernel_vectorized import MullerKernel
from ..core.spatial_grid import SpatialIndex


def compute_forces_vectorized(particles: ParticleArrays, kernel: MullerKernel,
                              grid: SpatialIndex, gravity: np.ndarray,
                              pressure_coeff: float, viscosity_coeff: float,
                              tension_coeff: float):
    """Compute the acceleration of every particle.

    Reads previous-step positions, velocities, pressures, volumes and
    densities; only the acceleration arrays are written, after the sweep.

    Args:
        particles: Particle arrays with density/pressure/volume computed
        kernel: Kernel evaluators
        grid: Spatial index
        gravity: Gravity vector [gx, gy, gz] in the local frame
        pressure_coeff: Pressure stiffness
        viscosity_coeff: Viscosity coefficient
        tension_coeff: Surface tension coefficient
    """
    positions = particles.get_positions()
    velocities = particles.get_velocities()
    pressure = particles.pressure
    volume = particles.volume

    accel = np.empty((particles.count, 3), dtype=np.float64)

    for members, candidates in grid.batches(particles.cell_index):
        # Pair differences x_i - x_j, shape (M, K, 3)
        diff = positions[members][:, np.newaxis, :] - positions[candidates][np.newaxis, :, :]
        r2 = np.einsum('mkd,mkd->mk', diff, diff)
        inside = r2 < kernel.h2
        r = np.sqrt(np.where(inside, r2, 0.0))

        neighbor_volume = volume[candidates][np.newaxis, :]
        mean_pressure = (pressure[candidates][np.newaxis, :] + pressure[members][:, np.newaxis]) * 0.5

        pressure_weight = np.where(inside, kernel.pressure(r), 0.0) * mean_pressure * neighbor_volume
        pressure_force = -np.einsum('mk,mkd->md', pressure_weight, diff)

        velocity_diff = velocities[candidates][np.newaxis, :, :] - velocities[members][:, np.newaxis, :]
        viscosity_weight = np.where(inside, kernel.viscosity(r), 0.0) * neighbor_volume
        viscosity_force = np.einsum('mk,mkd->md', viscosity_weight, velocity_diff)

        kernel_rr = np.where(inside, kernel.density(r2), 0.0)
        tension_force = np.einsum('mk,mkd->md', kernel_rr, diff)
        correction = np.sum(kernel_rr * neighbor_volume, axis=1)[:, np.newaxis]

        # Normalize results and apply uniform coefficients
        pressure_force *= pressure_coeff / correction
        viscosity_force *= viscosity_coeff / correction
        tension_force *= tension_coeff / correction

        density = particles.density[members][:, np.newaxis]
        accel[members] = (viscosity_force - pressure_force - tension_force) / density + gravity

    particles.set_accelerations(accel)
