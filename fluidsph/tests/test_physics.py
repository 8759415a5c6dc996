"""
Physics validation tests for the SPH passes.

Tests physical correctness including:
- Corrected density and the derived volume/pressure fields
- Pairwise force symmetry
- Gravity on isolated particles
- Implicit surface field sign and normals
"""

import numpy as np
import pytest
import fluidsph
from fluidsph.core.container import BoundingBox
from fluidsph.core.kernel_vectorized import MullerKernel
from fluidsph.core.particles import ParticleArrays
from fluidsph.core.spatial_grid import UniformGrid


def build_system(positions, velocities=None, h=0.1, mass=1.0, density=1000.0):
    """Particles filed in a grid over [-1, 1]^3 with cells 0.2 wide."""
    positions = np.asarray(positions, dtype=np.float64)
    n = len(positions)
    particles = ParticleArrays.allocate(n)
    kernel = MullerKernel(h, rest_density=1000.0)
    grid = UniformGrid(BoundingBox((-1, -1, -1), (1, 1, 1)), 10, 10, 10, smoothing_radius=h)

    for i in range(n):
        particles.set_position(i, positions[i])
        if velocities is not None:
            particles.set_velocity(i, velocities[i])
        cell = grid.cell_index(positions[i])
        particles.cell_index[i] = cell
        grid.add_particle(cell, i)

    particles.mass.fill(mass)
    particles.density.fill(density)
    particles.volume.fill(mass / density)
    return particles, kernel, grid


def random_blob(n=150, seed=0, radius=0.25):
    rng = np.random.default_rng(seed)
    return rng.uniform(-radius, radius, size=(n, 3))


class TestDensity:

    def test_single_particle_has_rest_density(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0]])

        fluidsph.compute_density(particles, kernel, grid, backend=backend)

        assert particles.density[0] == pytest.approx(1000.0)
        assert particles.pressure[0] == pytest.approx(0.0, abs=1e-12)

    def test_density_fields(self, backend):
        particles, kernel, grid = build_system(random_blob(), mass=0.1)

        fluidsph.compute_density(particles, kernel, grid, backend=backend)

        assert np.all(particles.density > 0)
        assert np.all(np.isfinite(particles.density))
        assert np.array_equal(particles.volume, particles.mass / particles.density)
        assert np.allclose(particles.pressure, particles.density / 1000.0 - 1.0)

    def test_uniform_previous_density_is_reproduced(self, backend):
        """With equal masses and a uniform previous density the correction cancels."""
        particles, kernel, grid = build_system(random_blob(), mass=0.1, density=850.0)

        fluidsph.compute_density(particles, kernel, grid, backend=backend)

        assert np.allclose(particles.density, 850.0)

    def test_correction_uses_previous_density(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0], [0.05, 0.0, 0.0]])
        particles.density[:] = [1000.0, 500.0]

        fluidsph.compute_density(particles, kernel, grid, backend=backend)

        w0 = kernel.W_self()
        w1 = kernel.density(0.05 ** 2)
        expected = (w0 + w1) / (w0 / 1000.0 + w1 / 500.0)
        assert particles.density[0] == pytest.approx(expected)


class TestForces:

    def test_isolated_particle_feels_only_gravity(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]],
                                               velocities=[[1.0, 0.0, 0.0], [0.0, 2.0, 0.0]])
        gravity = np.array([0.0, -9.8, 0.0])

        fluidsph.compute_density(particles, kernel, grid, backend=backend)
        fluidsph.compute_forces(particles, kernel, grid, gravity=gravity,
                                pressure_coeff=100.0, viscosity_coeff=1.0,
                                tension_coeff=0.5, backend=backend)

        assert np.array_equal(particles.get_accelerations(), np.tile(gravity, (2, 1)))

    def test_default_gravity_is_zero(self):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0]])

        fluidsph.compute_forces(particles, kernel, grid, backend='cpu')

        assert np.allclose(particles.get_accelerations(), 0.0)

    def test_pressure_pushes_pair_apart(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0], [0.05, 0.0, 0.0]])
        particles.pressure[:] = 0.5

        fluidsph.compute_forces(particles, kernel, grid, pressure_coeff=100.0, backend=backend)

        accel = particles.get_accelerations()
        assert accel[0, 0] < 0
        assert accel[1, 0] > 0
        assert np.allclose(accel[0], -accel[1])

    def test_surface_tension_pulls_pair_together(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0], [0.05, 0.0, 0.0]])

        fluidsph.compute_forces(particles, kernel, grid, tension_coeff=1.0, backend=backend)

        accel = particles.get_accelerations()
        assert accel[0, 0] > 0
        assert accel[1, 0] < 0
        assert np.allclose(accel[0], -accel[1])

    def test_viscosity_damps_relative_velocity(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0], [0.05, 0.0, 0.0]],
                                               velocities=[[1.0, 0.0, 0.0], [0.0, 0.0, 0.0]])

        fluidsph.compute_forces(particles, kernel, grid, viscosity_coeff=1.0, backend=backend)

        accel = particles.get_accelerations()
        assert accel[0, 0] < 0
        assert accel[1, 0] > 0
        assert np.allclose(accel[0], -accel[1])


class TestSurfaceField:

    def test_far_from_fluid(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0]])

        values, normals = fluidsph.surface_info(np.array([[0.5, 0.5, 0.5]]), particles,
                                                kernel, grid, offset=0.3, backend=backend)

        assert values[0] == pytest.approx(-0.7)
        assert np.array_equal(normals[0], [0.0, 0.0, 0.0])

    def test_value_at_particle(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0]], mass=0.5)

        values, normals = fluidsph.surface_info(np.zeros((1, 3)), particles, kernel, grid,
                                                offset=0.3, backend=backend)

        assert values[0] == pytest.approx(kernel.W_self() * 0.5 / 1000.0 - 0.7)
        assert np.allclose(normals[0], 0.0)

    def test_normal_points_away_from_fluid(self, backend):
        particles, kernel, grid = build_system([[0.0, 0.0, 0.0]])

        _, normals = fluidsph.surface_info(np.array([[0.05, 0.0, 0.0], [0.0, -0.03, 0.0]]),
                                           particles, kernel, grid, backend=backend)

        assert np.allclose(normals[0], [1.0, 0.0, 0.0])
        assert np.allclose(normals[1], [0.0, -1.0, 0.0])

    def test_inside_dense_blob_is_positive(self, backend):
        # Mass chosen so the blob interior sits near rest density
        positions = random_blob(n=1000, seed=4, radius=0.2)
        particles, kernel, grid = build_system(positions, mass=0.064 * 1000.0 / 1000)

        values, _ = fluidsph.surface_info(np.array([[0.0, 0.0, 0.0], [0.8, 0.8, 0.8]]),
                                          particles, kernel, grid, backend=backend)

        assert values[0] > 0
        assert values[1] < 0
