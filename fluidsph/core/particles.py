"""
Particle data structure using the Structure-of-Arrays (SoA) pattern.

Particle count is fixed at allocation; a particle's identity is its slot.
Arrays are float64 so that derived quantities (volume = mass / density)
are reproducible bit for bit across backends.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional


@dataclass
class ParticleArrays:
    """Structure of Arrays for a fixed-size 3D particle set."""
    # Kinematic state (N particles)
    position_x: np.ndarray      # shape: (N,) float64
    position_y: np.ndarray      # shape: (N,) float64
    position_z: np.ndarray      # shape: (N,) float64
    velocity_x: np.ndarray      # shape: (N,) float64
    velocity_y: np.ndarray      # shape: (N,) float64
    velocity_z: np.ndarray      # shape: (N,) float64
    accel_x: np.ndarray         # shape: (N,) float64
    accel_y: np.ndarray         # shape: (N,) float64
    accel_z: np.ndarray         # shape: (N,) float64

    # Fluid properties
    mass: np.ndarray            # shape: (N,) float64, fixed after init
    density: np.ndarray         # shape: (N,) float64
    pressure: np.ndarray        # shape: (N,) float64
    volume: np.ndarray          # shape: (N,) float64, mass / density

    # Spatial grid cell the particle is filed in
    cell_index: np.ndarray      # shape: (N,) int64

    @staticmethod
    def allocate(n_particles: int) -> 'ParticleArrays':
        """Pre-allocate zeroed arrays for ``n_particles`` particles."""
        def zeros():
            return np.zeros(n_particles, dtype=np.float64)

        return ParticleArrays(
            position_x=zeros(), position_y=zeros(), position_z=zeros(),
            velocity_x=zeros(), velocity_y=zeros(), velocity_z=zeros(),
            accel_x=zeros(), accel_y=zeros(), accel_z=zeros(),
            mass=zeros(),
            density=zeros(),
            pressure=zeros(),
            volume=zeros(),
            cell_index=np.zeros(n_particles, dtype=np.int64),
        )

    def __len__(self) -> int:
        return len(self.position_x)

    @property
    def count(self) -> int:
        return len(self.position_x)

    def get_positions(self, indices: Optional[np.ndarray] = None) -> np.ndarray:
        """Get particle positions as (N, 3) array for convenience."""
        if indices is None:
            return np.column_stack((self.position_x, self.position_y, self.position_z))
        return np.column_stack((self.position_x[indices], self.position_y[indices],
                                self.position_z[indices]))

    def get_velocities(self, indices: Optional[np.ndarray] = None) -> np.ndarray:
        """Get particle velocities as (N, 3) array for convenience."""
        if indices is None:
            return np.column_stack((self.velocity_x, self.velocity_y, self.velocity_z))
        return np.column_stack((self.velocity_x[indices], self.velocity_y[indices],
                                self.velocity_z[indices]))

    def get_accelerations(self) -> np.ndarray:
        return np.column_stack((self.accel_x, self.accel_y, self.accel_z))

    def set_position(self, i: int, position: np.ndarray):
        self.position_x[i], self.position_y[i], self.position_z[i] = position

    def set_velocity(self, i: int, velocity: np.ndarray):
        self.velocity_x[i], self.velocity_y[i], self.velocity_z[i] = velocity

    def position(self, i: int) -> np.ndarray:
        return np.array([self.position_x[i], self.position_y[i], self.position_z[i]])

    def velocity(self, i: int) -> np.ndarray:
        return np.array([self.velocity_x[i], self.velocity_y[i], self.velocity_z[i]])

    def acceleration(self, i: int) -> np.ndarray:
        return np.array([self.accel_x[i], self.accel_y[i], self.accel_z[i]])

    def set_accelerations(self, accel: np.ndarray):
        """Commit an (N, 3) acceleration array."""
        self.accel_x[:] = accel[:, 0]
        self.accel_y[:] = accel[:, 1]
        self.accel_z[:] = accel[:, 2]

    def reset_velocities(self):
        """Zero all velocities; positions and fluid fields are untouched."""
        self.velocity_x.fill(0.0)
        self.velocity_y.fill(0.0)
        self.velocity_z.fill(0.0)
