"""
Time integration for SPH particles inside a closed container.

Semi-implicit (symplectic) Euler with inelastic collision response:
velocity is advanced first, positions follow the updated velocity, and
any boundary crossing along the way is resolved by sliding the remaining
movement along the hit surface.

This pass mutates grid membership, so it runs sequentially.
"""

import logging
import numpy as np
from dataclasses import dataclass

from .container import Container, Ray
from .particles import ParticleArrays
from .spatial_grid import SpatialIndex

logger = logging.getLogger(__name__)

# Distance a particle is pushed back inside after touching the container
COLLISION_BIAS = 5e-4
MAX_BOUNCES = 8

# Movements shorter than this are committed without a ray cast
_MIN_MOVEMENT = 1e-12


@dataclass
class IntegrationReport:
    """Counters collected during one integration pass."""
    collisions: int = 0          # boundary resolutions performed
    clamped: int = 0             # particles that exhausted the bounce cap
    cell_changes: int = 0        # particles re-filed in the grid


def resolve_movement(container: Container, position: np.ndarray, velocity: np.ndarray,
                     movement: np.ndarray, bias: float = COLLISION_BIAS,
                     max_bounces: int = MAX_BOUNCES):
    """Move a point by ``movement`` without leaving ``container``.

    Each boundary hit before the end of the movement moves the point to the
    hit (pushed ``bias`` inside along the normal), projects the leftover
    movement and the velocity onto the tangent plane, then continues.

    Args:
        container: Boundary oracle
        position: Start position (3,)
        velocity: Velocity after the acceleration update (3,)
        movement: Intended displacement for this step (3,)
        bias: Push-back distance along the surface normal
        max_bounces: Maximum number of resolutions before clamping

    Returns:
        (position, velocity, collisions, clamped)
    """
    position = np.array(position, dtype=np.float64)
    velocity = np.array(velocity, dtype=np.float64)
    movement = np.array(movement, dtype=np.float64)
    target = position + movement
    collisions = 0

    while True:
        length = np.linalg.norm(movement)
        if length < _MIN_MOVEMENT:
            return position, velocity, collisions, False

        if collisions >= max_bounces:
            # Stay on the last surface-nudged position
            return position, velocity, collisions, True

        direction = movement / length
        hit = container.intersect(Ray(position, direction))

        if hit is None or hit.t >= length:
            return position + movement, velocity, collisions, False

        normal = hit.normal
        remaining = target - hit.position
        movement = remaining - np.dot(remaining, normal) * normal
        position = hit.position - normal * bias
        target = position + movement
        velocity = velocity - np.dot(velocity, normal) * normal
        collisions += 1


def integrate_semi_implicit_euler(particles: ParticleArrays, grid: SpatialIndex,
                                  container: Container, dt: float,
                                  bias: float = COLLISION_BIAS,
                                  max_bounces: int = MAX_BOUNCES) -> IntegrationReport:
    """Advance every particle by ``dt`` and keep the grid consistent.

    Args:
        particles: Particle arrays with accelerations computed
        grid: Spatial index the particles are filed in
        container: Boundary oracle
        dt: Time step (already clamped by the caller)
        bias: Collision push-back distance
        max_bounces: Collision resolutions allowed per particle per step

    Returns:
        IntegrationReport for the pass
    """
    report = IntegrationReport()

    # Velocity update is independent per particle (vectorized)
    vel_x = particles.velocity_x + dt * particles.accel_x
    vel_y = particles.velocity_y + dt * particles.accel_y
    vel_z = particles.velocity_z + dt * particles.accel_z

    for i in range(particles.count):
        velocity = np.array([vel_x[i], vel_y[i], vel_z[i]])
        position = particles.position(i)

        position, velocity, collisions, clamped = resolve_movement(
            container, position, velocity, dt * velocity, bias, max_bounces)

        report.collisions += collisions
        if clamped:
            report.clamped += 1
            logger.debug("Particle %d clamped after %d collision resolutions", i, collisions)

        particles.set_position(i, position)
        particles.set_velocity(i, velocity)

        # Re-file the particle if it changed cell
        old_cell = int(particles.cell_index[i])
        new_cell = grid.cell_index(position)
        if old_cell != new_cell:
            grid.remove_particle(old_cell, i)
            grid.add_particle(new_cell, i)
            particles.cell_index[i] = new_cell
            report.cell_changes += 1

    return report
