"""
Numba-optimized force computation for SPH.

This is the biggest per-step cost; the sweep is parallel over particles
and writes only the acceleration of the particle being processed.
"""

import numpy as np
import numba as nb
from ..core.particles import ParticleArrays
from ..core.kernel_vectorized import MullerKernel
from ..core.spatial_grid import UniformGrid
from .density_numba import poly6


@nb.njit(fastmath=True, cache=True)
def spiky_over_r(r: float, h: float, coeff: float) -> float:
    """Spiky gradient magnitude divided by r; zero for coincident points."""
    if r == 0.0:
        return 0.0
    diff = h - r
    return coeff * diff * diff / r


@nb.njit(parallel=True, fastmath=True, cache=True)
def compute_forces_numba(position_x: np.ndarray, position_y: np.ndarray,
                         position_z: np.ndarray,
                         velocity_x: np.ndarray, velocity_y: np.ndarray,
                         velocity_z: np.ndarray,
                         density: np.ndarray, pressure: np.ndarray, volume: np.ndarray,
                         cell_index: np.ndarray,
                         neighbor_start: np.ndarray, neighbor_cells: np.ndarray,
                         cell_start: np.ndarray, cell_entries: np.ndarray,
                         h: float, h2: float,
                         coeff_density: float, coeff_pressure: float, coeff_viscosity: float,
                         pressure_coeff: float, viscosity_coeff: float, tension_coeff: float,
                         gravity_x: float, gravity_y: float, gravity_z: float,
                         accel_out: np.ndarray):
    """Numba-optimized pressure, viscosity and surface tension sweep."""
    n = position_x.shape[0]
    for i in nb.prange(n):
        px = position_x[i]
        py = position_y[i]
        pz = position_z[i]
        vx = velocity_x[i]
        vy = velocity_y[i]
        vz = velocity_z[i]
        p_i = pressure[i]
        cell = cell_index[i]

        fpx = 0.0
        fpy = 0.0
        fpz = 0.0
        fvx = 0.0
        fvy = 0.0
        fvz = 0.0
        ftx = 0.0
        fty = 0.0
        ftz = 0.0
        correction = 0.0

        for c_idx in range(neighbor_start[cell], neighbor_start[cell + 1]):
            c = neighbor_cells[c_idx]
            for e_idx in range(cell_start[c], cell_start[c + 1]):
                j = cell_entries[e_idx]
                dx = px - position_x[j]
                dy = py - position_y[j]
                dz = pz - position_z[j]
                r2 = dx * dx + dy * dy + dz * dz

                if r2 < h2:
                    r = np.sqrt(r2)
                    vol = volume[j]
                    mean_pressure = (pressure[j] + p_i) * 0.5

                    w_p = spiky_over_r(r, h, coeff_pressure) * mean_pressure * vol
                    fpx -= dx * w_p
                    fpy -= dy * w_p
                    fpz -= dz * w_p

                    w_v = coeff_viscosity * (h - r) * vol
                    fvx += (velocity_x[j] - vx) * w_v
                    fvy += (velocity_y[j] - vy) * w_v
                    fvz += (velocity_z[j] - vz) * w_v

                    kernel_rr = poly6(r2, h2, coeff_density)
                    ftx += dx * kernel_rr
                    fty += dy * kernel_rr
                    ftz += dz * kernel_rr
                    correction += kernel_rr * vol

        sp = pressure_coeff / correction
        sv = viscosity_coeff / correction
        st = tension_coeff / correction
        rho = density[i]

        accel_out[i, 0] = (fvx * sv - fpx * sp - ftx * st) / rho + gravity_x
        accel_out[i, 1] = (fvy * sv - fpy * sp - fty * st) / rho + gravity_y
        accel_out[i, 2] = (fvz * sv - fpz * sp - ftz * st) / rho + gravity_z


def compute_forces_numba_wrapper(particles: ParticleArrays, kernel: MullerKernel,
                                 grid: UniformGrid, gravity: np.ndarray,
                                 pressure_coeff: float, viscosity_coeff: float,
                                 tension_coeff: float):
    """Wrapper for Numba force computation."""
    cell_start, cell_entries = grid.membership_table()
    accel = np.empty((particles.count, 3), dtype=np.float64)

    compute_forces_numba(
        particles.position_x, particles.position_y, particles.position_z,
        particles.velocity_x, particles.velocity_y, particles.velocity_z,
        particles.density, particles.pressure, particles.volume,
        particles.cell_index,
        grid.neighbor_start, grid.neighbor_cells,
        cell_start, cell_entries,
        kernel.h, kernel.h2,
        kernel.coeff_density, kernel.coeff_pressure, kernel.coeff_viscosity,
        float(pressure_coeff), float(viscosity_coeff), float(tension_coeff),
        float(gravity[0]), float(gravity[1]), float(gravity[2]),
        accel
    )

    particles.set_accelerations(accel)
