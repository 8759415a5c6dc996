"""Core SPH components: particles, kernels, spatial grid, containers and integration."""

from .particles import ParticleArrays
from .kernel_vectorized import MullerKernel
from .spatial_grid import SpatialIndex, UniformGrid
from .container import BoundingBox, Ray, Intersection, Container, BoxContainer, SphereContainer
from .integrator import (
    IntegrationReport,
    integrate_semi_implicit_euler,
    resolve_movement,
    COLLISION_BIAS,
    MAX_BOUNCES
)

__all__ = [
    'ParticleArrays',
    'MullerKernel',
    'SpatialIndex',
    'UniformGrid',
    'BoundingBox',
    'Ray',
    'Intersection',
    'Container',
    'BoxContainer',
    'SphereContainer',
    'IntegrationReport',
    'integrate_semi_implicit_euler',
    'resolve_movement',
    'COLLISION_BIAS',
    'MAX_BOUNCES'
]
