"""
Numba-optimized implicit surface field evaluation.

Lattice sampling calls the field at every vertex, so the batch is
evaluated in parallel over query points.
"""

import numpy as np
import numba as nb
from typing import Tuple
from ..core.particles import ParticleArrays
from ..core.kernel_vectorized import MullerKernel
from ..core.spatial_grid import UniformGrid
from .density_numba import poly6
from .surface_field import SURFACE_OFFSET, finish_field


@nb.njit(parallel=True, fastmath=True, cache=True)
def accumulate_field_numba(points: np.ndarray, point_cells: np.ndarray,
                           position_x: np.ndarray, position_y: np.ndarray,
                           position_z: np.ndarray, mass: np.ndarray,
                           neighbor_start: np.ndarray, neighbor_cells: np.ndarray,
                           cell_start: np.ndarray, cell_entries: np.ndarray,
                           h2: float, coeff: float,
                           density_out: np.ndarray, gradient_out: np.ndarray):
    """Raw density sums and Poly6 gradients at each query point."""
    for q in nb.prange(points.shape[0]):
        qx = points[q, 0]
        qy = points[q, 1]
        qz = points[q, 2]
        cell = point_cells[q]

        density = 0.0
        gx = 0.0
        gy = 0.0
        gz = 0.0

        for c_idx in range(neighbor_start[cell], neighbor_start[cell + 1]):
            c = neighbor_cells[c_idx]
            for e_idx in range(cell_start[c], cell_start[c + 1]):
                j = cell_entries[e_idx]
                dx = qx - position_x[j]
                dy = qy - position_y[j]
                dz = qz - position_z[j]
                r2 = dx * dx + dy * dy + dz * dz

                if r2 < h2:
                    density += poly6(r2, h2, coeff) * mass[j]
                    diff = h2 - r2
                    grad = -3.0 * coeff * diff * diff * mass[j]
                    gx += 2.0 * dx * grad
                    gy += 2.0 * dy * grad
                    gz += 2.0 * dz * grad

        density_out[q] = density
        gradient_out[q, 0] = gx
        gradient_out[q, 1] = gy
        gradient_out[q, 2] = gz


def surface_info_numba_wrapper(points: np.ndarray, particles: ParticleArrays,
                               kernel: MullerKernel, grid: UniformGrid,
                               offset: float = SURFACE_OFFSET) -> Tuple[np.ndarray, np.ndarray]:
    """Wrapper for Numba field evaluation that matches standard interface."""
    points = np.ascontiguousarray(np.atleast_2d(np.asarray(points, dtype=np.float64)))
    cell_start, cell_entries = grid.membership_table()

    density = np.empty(len(points), dtype=np.float64)
    gradient = np.empty((len(points), 3), dtype=np.float64)

    accumulate_field_numba(
        points, grid.cell_indices(points),
        particles.position_x, particles.position_y, particles.position_z,
        particles.mass,
        grid.neighbor_start, grid.neighbor_cells,
        cell_start, cell_entries,
        kernel.h2, kernel.coeff_density,
        density, gradient
    )

    return finish_field(density, gradient, kernel.rest_density, offset)
