"""
Test suite for SPH backend implementations.

Tests CPU and Numba backends for correctness and consistency.
"""

import subprocess
import sys
import warnings
from pathlib import Path

import numpy as np
import pytest
import fluidsph
from fluidsph.core.backend import Backend, dispatch, is_backend_available, recommended_backend
from fluidsph.core.container import BoundingBox
from fluidsph.core.kernel_vectorized import MullerKernel
from fluidsph.core.particles import ParticleArrays
from fluidsph.core.spatial_grid import UniformGrid


def make_particles(n_particles=300, seed=0):
    """Random particle cloud filed in a grid, with random velocities."""
    rng = np.random.default_rng(seed)
    particles = ParticleArrays.allocate(n_particles)
    kernel = MullerKernel(0.12, rest_density=1000.0)
    grid = UniformGrid(BoundingBox((-0.6, -0.6, -0.6), (0.6, 0.6, 0.6)), 10, 10, 10,
                       smoothing_radius=kernel.h)

    positions = rng.uniform(-0.5, 0.5, size=(n_particles, 3))
    velocities = rng.normal(0.0, 0.3, size=(n_particles, 3))
    for i in range(n_particles):
        particles.set_position(i, positions[i])
        particles.set_velocity(i, velocities[i])
        cell = grid.cell_index(positions[i])
        particles.cell_index[i] = cell
        grid.add_particle(cell, i)

    particles.mass.fill(1000.0 / n_particles)
    particles.density[:] = rng.uniform(900.0, 1100.0, size=n_particles)
    particles.volume[:] = particles.mass / particles.density
    return particles, kernel, grid


class TestBackends:
    """Test all backend implementations for consistency."""

    def test_density_computation(self, backend):
        particles, kernel, grid = make_particles()

        fluidsph.compute_density(particles, kernel, grid, backend=backend)

        assert np.all(particles.density > 0)
        assert np.all(np.isfinite(particles.density))
        assert np.all(np.isfinite(particles.pressure))

    def test_force_computation(self, backend):
        particles, kernel, grid = make_particles()

        fluidsph.compute_density(particles, kernel, grid, backend=backend)
        fluidsph.compute_forces(particles, kernel, grid, gravity=np.array([0.0, -9.8, 0.0]),
                                pressure_coeff=100.0, viscosity_coeff=1.0,
                                tension_coeff=0.5, backend=backend)

        assert np.all(np.isfinite(particles.get_accelerations()))

    def test_surface_info_shapes(self, backend):
        particles, kernel, grid = make_particles()
        points = np.random.default_rng(1).uniform(-0.7, 0.7, size=(64, 3))

        values, normals = fluidsph.surface_info(points, particles, kernel, grid, backend=backend)

        assert values.shape == (64,)
        assert normals.shape == (64, 3)
        lengths = np.linalg.norm(normals, axis=1)
        assert np.allclose(lengths[lengths > 0], 1.0)


@pytest.mark.skipif(not is_backend_available('numba'), reason="Numba not available")
class TestBackendConsistency:
    """Numba results must match the NumPy reference."""

    def test_density_matches(self):
        cpu = make_particles(seed=4)
        jit = make_particles(seed=4)

        fluidsph.compute_density(*cpu, backend='cpu')
        fluidsph.compute_density(*jit, backend='numba')

        assert np.allclose(cpu[0].density, jit[0].density, rtol=1e-9)
        assert np.allclose(cpu[0].pressure, jit[0].pressure, rtol=1e-9, atol=1e-12)

    def test_forces_match(self):
        cpu = make_particles(seed=5)
        jit = make_particles(seed=5)
        params = dict(gravity=np.array([0.0, -9.8, 0.0]), pressure_coeff=100.0,
                      viscosity_coeff=1.0, tension_coeff=0.5)

        fluidsph.compute_density(*cpu, backend='cpu')
        fluidsph.compute_forces(*cpu, backend='cpu', **params)
        fluidsph.compute_density(*jit, backend='numba')
        fluidsph.compute_forces(*jit, backend='numba', **params)

        assert np.allclose(cpu[0].get_accelerations(), jit[0].get_accelerations(),
                           rtol=1e-7, atol=1e-9)

    def test_surface_info_matches(self):
        particles, kernel, grid = make_particles(seed=6)
        points = np.random.default_rng(2).uniform(-0.7, 0.7, size=(100, 3))

        cpu_values, cpu_normals = fluidsph.surface_info(points, particles, kernel, grid,
                                                        backend='cpu')
        jit_values, jit_normals = fluidsph.surface_info(points, particles, kernel, grid,
                                                        backend='numba')

        assert np.allclose(cpu_values, jit_values, rtol=1e-9, atol=1e-12)
        assert np.allclose(cpu_normals, jit_normals, atol=1e-7)


class TestBackendManagement:

    def test_cpu_always_available(self):
        assert fluidsph.list_backends()['cpu'] is True
        assert is_backend_available('cpu')

    def test_set_invalid_backend(self):
        original = fluidsph.get_backend()
        with pytest.warns(UserWarning):
            assert fluidsph.set_backend('gpu') is False
        assert fluidsph.get_backend() == original

    def test_set_backend_roundtrip(self):
        original = fluidsph.get_backend()
        try:
            assert fluidsph.set_backend('cpu')
            assert fluidsph.get_backend() == 'cpu'
        finally:
            fluidsph.set_backend(original)

    def test_recommended_backend_does_not_switch(self):
        original = fluidsph.get_backend()
        small = recommended_backend(10)
        assert small == 'cpu'
        recommended_backend(100000)
        assert fluidsph.get_backend() == original

    def test_unknown_function_raises(self):
        with pytest.raises(ValueError):
            dispatch("no_such_pass")

    def test_registered_passes(self):
        for name in ("compute_density", "compute_forces", "surface_info"):
            with warnings.catch_warnings():
                warnings.simplefilter("error")
                impl = fluidsph.core.backend._registry.implementation(
                    name, Backend.CPU)
            assert callable(impl)

    def test_import_without_numba(self):
        """Blocking numba leaves the package importable with only the cpu passes."""
        script = (
            "import sys, warnings\n"
            "sys.modules['numba'] = None\n"
            "import fluidsph\n"
            "from fluidsph.core.backend import Backend, _registry, recommended_backend\n"
            "assert fluidsph.list_backends() == {'cpu': True, 'numba': False}\n"
            "assert recommended_backend(10 ** 6) == 'cpu'\n"
            "with warnings.catch_warnings(record=True):\n"
            "    warnings.simplefilter('always')\n"
            "    assert fluidsph.set_backend('numba') is False\n"
            "    impl = _registry.implementation('compute_density', Backend.NUMBA)\n"
            "assert impl is _registry.implementation('compute_density', Backend.CPU)\n"
        )
        workspace_root = Path(__file__).parent.parent.parent
        result = subprocess.run([sys.executable, "-c", script], cwd=str(workspace_root),
                                capture_output=True, text=True)
        assert result.returncode == 0, result.stderr
