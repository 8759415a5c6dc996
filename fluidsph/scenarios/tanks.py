"""
Tank scenarios for SPH simulation.

Each factory returns a ``(container, config)`` pair sized so that the
smoothing radius spans a few particle spacings and grid cells are about
one smoothing radius wide.
"""

import numpy as np
from typing import Tuple

from ..config import SolverConfig
from ..core.container import BoxContainer, Container, SphereContainer

# Smoothing radius as a multiple of the mean particle spacing
H_PER_SPACING = 2.5


def smoothing_radius_for(total_volume: float, particle_count: int,
                         factor: float = H_PER_SPACING) -> float:
    """Smoothing radius from the mean inter-particle spacing (V/N)^(1/3)."""
    spacing = (total_volume / particle_count) ** (1.0 / 3.0)
    return factor * spacing


def grid_cells_for(container: Container, smoothing_radius: float,
                   inflation: float = 1.2) -> Tuple[int, int, int]:
    """Cell counts giving cells roughly one smoothing radius wide."""
    size = container.bounding_box().size * inflation
    counts = np.maximum(1, np.floor(size / smoothing_radius)).astype(int)
    return tuple(int(c) for c in counts)


def _tank_config(container: Container, particle_count: int, fill_fraction: float,
                 container_volume: float, **overrides) -> SolverConfig:
    total_volume = container_volume * fill_fraction
    h = smoothing_radius_for(total_volume, particle_count)
    values = dict(
        particle_count=particle_count,
        total_volume=total_volume,
        smoothing_radius=h,
        grid_cells=grid_cells_for(container, h),
    )
    values.update(overrides)
    return SolverConfig(**values)


def create_box_tank(size: float = 1.0, particle_count: int = 1000,
                    fill_fraction: float = 0.125, **overrides) -> Tuple[Container, SolverConfig]:
    """Cubic tank centered at the origin.

    Args:
        size: Edge length of the cube
        particle_count: Number of particles
        fill_fraction: Fluid volume as a fraction of the tank volume
        **overrides: Any other SolverConfig field

    Returns:
        (container, config)
    """
    half = size / 2.0
    container = BoxContainer((-half, -half, -half), (half, half, half))
    return container, _tank_config(container, particle_count, fill_fraction,
                                   size ** 3, **overrides)


def create_water_column(width: float = 0.5, height: float = 2.0, particle_count: int = 1500,
                        fill_fraction: float = 0.2, **overrides) -> Tuple[Container, SolverConfig]:
    """Tall box tank, bottom face at y = 0."""
    half = width / 2.0
    container = BoxContainer((-half, 0.0, -half), (half, height, half))
    return container, _tank_config(container, particle_count, fill_fraction,
                                   width * width * height, **overrides)


def create_spherical_bowl(radius: float = 0.5, particle_count: int = 1000,
                          fill_fraction: float = 0.2, **overrides) -> Tuple[Container, SolverConfig]:
    """Spherical container centered at the origin."""
    container = SphereContainer((0.0, 0.0, 0.0), radius)
    volume = 4.0 / 3.0 * np.pi * radius ** 3
    return container, _tank_config(container, particle_count, fill_fraction,
                                   volume, **overrides)


SCENARIOS = {
    'box': create_box_tank,
    'column': create_water_column,
    'sphere': create_spherical_bowl,
}
