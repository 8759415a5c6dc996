"""
Vectorized SPH smoothing kernels for a fixed smoothing radius.

Implements the three radial kernels of the Muller et al. fluid model:
- Poly6 for density (and its radial derivative for surface normals)
- Spiky gradient for pressure
- Viscosity Laplacian for viscous diffusion

Every evaluator accepts Python scalars as well as NumPy arrays.
"""

import numpy as np
from typing import Union

ArrayLike = Union[float, np.ndarray]


class MullerKernel:
    """Precomputed kernel coefficients and evaluators for radius ``h``.

    Kernels assume ``0 <= r <= h``. Callers must filter neighbors by
    squared distance (``r2 < h2``) before evaluating; values outside the
    support are not clamped to zero.
    """

    def __init__(self, smoothing_radius: float, rest_density: float = 1000.0):
        """Initialize kernel coefficients.

        Args:
            smoothing_radius: Support radius h (must be > 0)
            rest_density: Reference density used by the equation of state
        """
        if smoothing_radius <= 0:
            raise ValueError(f"Smoothing radius must be positive: {smoothing_radius}")

        self.h = float(smoothing_radius)
        self.h2 = self.h * self.h
        self.rest_density = float(rest_density)

        # H^n
        h6 = self.h2 * self.h2 * self.h2
        h9 = h6 * self.h2 * self.h

        self.coeff_density = 315.0 / (64.0 * np.pi * h9)
        self.coeff_pressure = 45.0 / (np.pi * h6)
        self.coeff_viscosity = 45.0 / (np.pi * h6)

    def density(self, r2: ArrayLike) -> ArrayLike:
        """Poly6 kernel W(r) evaluated from the squared distance."""
        diff = self.h2 - r2
        return self.coeff_density * diff * diff * diff

    def density_gradient(self, r2: ArrayLike) -> ArrayLike:
        """Radial derivative factor of Poly6 with respect to r2.

        Multiply by ``2 * (x_i - x_j)`` to obtain a Cartesian gradient
        component.
        """
        diff = self.h2 - r2
        return -3.0 * self.coeff_density * diff * diff

    def pressure(self, r: ArrayLike) -> ArrayLike:
        """Spiky gradient magnitude divided by r; zero at r == 0."""
        if np.isscalar(r):
            if r == 0:
                return 0.0
            diff = self.h - r
            return self.coeff_pressure * diff * diff / r

        r = np.asarray(r, dtype=np.float64)
        result = np.zeros_like(r)
        mask = r != 0
        diff = self.h - r[mask]
        result[mask] = self.coeff_pressure * diff * diff / r[mask]
        return result

    def viscosity(self, r: ArrayLike) -> ArrayLike:
        """Viscosity kernel Laplacian."""
        return self.coeff_viscosity * (self.h - r)

    def equation_of_state(self, density: ArrayLike) -> ArrayLike:
        """Linear pressure model P = rho / rho0 - 1."""
        return density / self.rest_density - 1.0

    def W_self(self) -> float:
        """Poly6 value at r = 0 (self-contribution)."""
        return self.density(0.0)
