"""
Solver configuration.

All parameters are fixed once a solver is built. ``validate`` rejects
values that would make kernel coefficients or particle masses undefined.
"""

import dataclasses
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .core.integrator import COLLISION_BIAS, MAX_BOUNCES
from .physics.surface_field import SURFACE_OFFSET

BACKENDS = ("cpu", "numba", "auto")


class ConfigurationError(ValueError):
    """Raised when solver parameters are invalid."""


@dataclass(frozen=True)
class SolverConfig:
    """Parameters of an SPH solver."""
    # Kernel
    smoothing_radius: float = 0.1

    # Force coefficients
    viscosity: float = 1.0
    pressure: float = 100.0
    surface_tension: float = 0.5

    # Fluid
    rest_density: float = 1000.0
    total_volume: float = 0.125
    particle_count: int = 1000

    # Integration
    max_timestep: float = 0.01
    gravity: Tuple[float, float, float] = (0.0, -9.8, 0.0)
    collision_bias: float = COLLISION_BIAS
    max_bounces: int = MAX_BOUNCES

    # Spatial grid and isosurface lattice resolution
    grid_cells: Tuple[int, int, int] = (10, 10, 10)
    lattice_cubes: Tuple[int, int, int] = (20, 20, 20)
    surface_offset: float = SURFACE_OFFSET

    # Runtime
    backend: str = "auto"
    seed: Optional[int] = None

    # Extra bounding-box inflation for grid and lattice
    inflation: float = 1.2

    def validate(self) -> 'SolverConfig':
        """Check every parameter.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: If a parameter is out of range
        """
        if not self.smoothing_radius > 0:
            raise ConfigurationError(f"smoothing_radius must be positive, got {self.smoothing_radius}")
        if self.particle_count < 1:
            raise ConfigurationError(f"particle_count must be at least 1, got {self.particle_count}")
        if not self.rest_density > 0:
            raise ConfigurationError(f"rest_density must be positive, got {self.rest_density}")
        if not self.total_volume > 0:
            raise ConfigurationError(f"total_volume must be positive, got {self.total_volume}")
        if not self.max_timestep > 0:
            raise ConfigurationError(f"max_timestep must be positive, got {self.max_timestep}")

        for name in ("viscosity", "pressure", "surface_tension"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative, got {getattr(self, name)}")

        gravity = np.asarray(self.gravity, dtype=np.float64)
        if gravity.shape != (3,) or not np.all(np.isfinite(gravity)):
            raise ConfigurationError(f"gravity must be a finite 3-vector, got {self.gravity}")

        for name in ("grid_cells", "lattice_cubes"):
            counts = tuple(getattr(self, name))
            if len(counts) != 3 or any(int(c) < 1 for c in counts):
                raise ConfigurationError(f"{name} needs three positive counts, got {counts}")

        if not self.collision_bias > 0:
            raise ConfigurationError(f"collision_bias must be positive, got {self.collision_bias}")
        if self.max_bounces < 1:
            raise ConfigurationError(f"max_bounces must be at least 1, got {self.max_bounces}")
        if not self.inflation >= 1.0:
            raise ConfigurationError(f"inflation must be >= 1, got {self.inflation}")
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"backend must be one of {BACKENDS}, got {self.backend!r}")

        return self

    @property
    def total_mass(self) -> float:
        return self.total_volume * self.rest_density

    @property
    def particle_mass(self) -> float:
        return self.total_mass / self.particle_count

    def replace(self, **changes) -> 'SolverConfig':
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, values: dict) -> 'SolverConfig':
        """Build a config from a plain dict, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        values = dict(values)
        for name in ("gravity", "grid_cells", "lattice_cubes"):
            if name in values:
                values[name] = tuple(values[name])
        return cls(**values)
