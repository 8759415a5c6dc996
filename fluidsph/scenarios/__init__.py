"""SPH simulation scenarios."""

from .tanks import (
    SCENARIOS,
    create_box_tank,
    create_water_column,
    create_spherical_bowl,
    smoothing_radius_for,
    grid_cells_for
)

__all__ = [
    'SCENARIOS',
    'create_box_tank',
    'create_water_column',
    'create_spherical_bowl',
    'smoothing_radius_for',
    'grid_cells_for'
]
