"""
SPH fluid solver: particles in a closed container.

One animation step runs three full sweeps in order:

1. density pass  - corrected density, volume and pressure
2. force pass    - acceleration from pressure, viscosity, tension, gravity
3. integration   - semi-implicit Euler with container collisions, then
                   re-filing of particles that changed grid cell

The implicit surface field is queried separately (``surface_info``),
typically by an isosurface extractor walking ``self.lattice``.
"""

import logging
import warnings
import numpy as np
from typing import Optional, Tuple

from . import api
from .config import SolverConfig, ConfigurationError
from .core import transform
from .core.backend import is_backend_available, recommended_backend
from .core.container import BoundingBox, Container
from .core.integrator import IntegrationReport, integrate_semi_implicit_euler
from .core.kernel_vectorized import MullerKernel
from .core.particles import ParticleArrays
from .core.spatial_grid import UniformGrid
from .display import MATERIAL_PRESETS, Material, MaterialPreset, RenderMode
from .lattice import SurfaceLattice
from .physics.diagnostics import compute_step_statistics


class SPHSolver:
    """Fixed-radius SPH fluid confined to a container."""

    def __init__(self, container: Container, config: Optional[SolverConfig] = None,
                 local_transform: Optional[np.ndarray] = None, log_level: str = "INFO"):
        """Build the solver and scatter particles inside the container.

        Args:
            container: Boundary oracle (bounding box, interior sampling, rays)
            config: Solver parameters (defaults to ``SolverConfig()``)
            local_transform: 4x4 local-to-parent matrix (identity if None)
            log_level: Logging level name for this solver's logger

        Raises:
            ConfigurationError: If a parameter is invalid
        """
        self.config = (config if config is not None else SolverConfig()).validate()
        self.container = container

        # ---------- logger -------------------------------------------------
        self.logger = logging.getLogger(f"SPHSolver_{id(self)}")
        self.logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

        self.local_transform = transform.identity()
        if local_transform is not None:
            self.set_local_transform(local_transform)

        self.kernel = MullerKernel(self.config.smoothing_radius, self.config.rest_density)

        bounding_box = self.inflated_container_bounding_box()
        self.grid = UniformGrid(bounding_box, *self.config.grid_cells,
                                smoothing_radius=self.config.smoothing_radius)
        self.lattice = SurfaceLattice(bounding_box, *self.config.lattice_cubes)

        self.backend = self._resolve_backend(self.config.backend)
        self.render_mode = RenderMode.PARTICLES
        self.material_preset = MaterialPreset.OPAQUE

        self.rng = np.random.default_rng(self.config.seed)
        self.particles = ParticleArrays.allocate(self.config.particle_count)
        self._initialize_particles()

        self.time = 0.0
        self.step_count = 0
        self.last_report = IntegrationReport()

        self.logger.info(
            "SPH solver: %d particles, h=%.4g, grid %s, backend %s",
            self.particles.count, self.config.smoothing_radius,
            "x".join(str(c) for c in self.config.grid_cells), self.backend,
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _resolve_backend(self, requested: str) -> str:
        if requested == "auto":
            return recommended_backend(self.config.particle_count)
        if not is_backend_available(requested):
            warnings.warn(f"Backend {requested} not available, using cpu")
            return "cpu"
        return requested

    def inflated_container_bounding_box(self) -> BoundingBox:
        """Container bounding box scaled about its center (grid/lattice extent)."""
        return self.container.bounding_box().inflated(self.config.inflation)

    def _initialize_particles(self):
        """Uniform mass, rest density, random interior positions, grid filing."""
        particles = self.particles
        mass = self.config.particle_mass
        rest_density = self.config.rest_density

        particles.mass.fill(mass)
        particles.density.fill(rest_density)
        particles.volume.fill(mass / rest_density)
        particles.pressure.fill(0.0)

        for i in range(particles.count):
            particles.set_position(i, self.container.random_interior_point(self.rng))
            cell = self.grid.cell_index(particles.position(i))
            particles.cell_index[i] = cell
            self.grid.add_particle(cell, i)

    def place_particles(self, positions: np.ndarray, velocities: Optional[np.ndarray] = None):
        """Move particles to explicit positions, keeping grid filing consistent.

        Args:
            positions: (N, 3) positions, one per particle
            velocities: Optional (N, 3) velocities (left unchanged if None)
        """
        expected = (self.particles.count, 3)
        positions = np.asarray(positions, dtype=np.float64)
        if positions.shape != expected:
            raise ValueError(f"Expected positions of shape {expected}, got {positions.shape}")
        if velocities is not None:
            velocities = np.asarray(velocities, dtype=np.float64)
            if velocities.shape != expected:
                raise ValueError(f"Expected velocities of shape {expected}, "
                                 f"got {velocities.shape}")

        for i, position in enumerate(positions):
            self.particles.set_position(i, position)
            old_cell = int(self.particles.cell_index[i])
            new_cell = self.grid.cell_index(position)
            if old_cell != new_cell:
                self.grid.remove_particle(old_cell, i)
                self.grid.add_particle(new_cell, i)
                self.particles.cell_index[i] = new_cell

        if velocities is not None:
            self.particles.velocity_x[:] = velocities[:, 0]
            self.particles.velocity_y[:] = velocities[:, 1]
            self.particles.velocity_z[:] = velocities[:, 2]

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def set_local_transform(self, matrix: np.ndarray):
        """Place the solver in its parent frame (local-to-parent 4x4 matrix).

        Raises:
            ConfigurationError: If the matrix is not an invertible 4x4 matrix
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ConfigurationError(f"Local transform must be 4x4, got shape {matrix.shape}")
        try:
            np.linalg.inv(matrix)
        except np.linalg.LinAlgError as e:
            raise ConfigurationError(f"Local transform is not invertible: {e}") from e
        self.local_transform = matrix

    def local_gravity(self) -> np.ndarray:
        """Gravity expressed in the solver's frame for the current placement."""
        return transform.parent_to_local_vector(self.local_transform, self.config.gravity)

    # ------------------------------------------------------------------
    # Simulation step
    # ------------------------------------------------------------------

    def animate(self, delta_time: float) -> IntegrationReport:
        """Advance the simulation by one step.

        Args:
            delta_time: Elapsed time; clamped to ``config.max_timestep``

        Returns:
            IntegrationReport of the integration pass
        """
        if delta_time < 0:
            raise ValueError(f"delta_time must not be negative, got {delta_time}")

        dt = min(delta_time, self.config.max_timestep)

        self.compute_densities()
        self.compute_forces()
        report = self.move_particles(dt)

        self.time += dt
        self.step_count += 1

        if report.clamped:
            self.logger.debug("Step %d: %d particles hit the collision cap",
                              self.step_count, report.clamped)
        return report

    def compute_densities(self):
        api.compute_density(self.particles, self.kernel, self.grid, backend=self.backend)

    def compute_forces(self):
        # Parent transform may change between steps: re-derive every pass
        api.compute_forces(
            self.particles, self.kernel, self.grid,
            gravity=self.local_gravity(),
            pressure_coeff=self.config.pressure,
            viscosity_coeff=self.config.viscosity,
            tension_coeff=self.config.surface_tension,
            backend=self.backend,
        )

    def move_particles(self, dt: float) -> IntegrationReport:
        report = integrate_semi_implicit_euler(
            self.particles, self.grid, self.container, dt,
            bias=self.config.collision_bias,
            max_bounces=self.config.max_bounces,
        )
        self.last_report = report
        return report

    # ------------------------------------------------------------------
    # Implicit surface
    # ------------------------------------------------------------------

    def surface_info(self, point) -> Tuple[float, np.ndarray]:
        """Implicit field value and outward normal at one point."""
        values, normals = self.surface_info_batch(np.asarray(point, dtype=np.float64)[np.newaxis, :])
        return float(values[0]), normals[0]

    def surface_info_batch(self, points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return api.surface_info(points, self.particles, self.kernel, self.grid,
                                offset=self.config.surface_offset, backend=self.backend)

    def sample_lattice(self) -> Tuple[np.ndarray, np.ndarray]:
        """Field values and normals at every vertex of ``self.lattice``."""
        return self.lattice.evaluate(self.surface_info_batch)

    # ------------------------------------------------------------------
    # Commands and display state
    # ------------------------------------------------------------------

    @property
    def material(self) -> Material:
        return MATERIAL_PRESETS[self.material_preset]

    def change_render_mode(self) -> RenderMode:
        self.render_mode = self.render_mode.toggled()
        self.logger.info("Render mode: %s", self.render_mode.value)
        return self.render_mode

    def change_material(self) -> Material:
        self.material_preset = self.material_preset.toggled()
        self.logger.info("Material: %s", self.material_preset.value)
        return self.material

    def reset_velocities(self):
        """Stop all particles; positions, density and pressure are kept."""
        self.particles.reset_velocities()
        self.logger.info("Velocities reset")

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def statistics(self) -> dict:
        stats = compute_step_statistics(self.particles, self.grid)
        stats.update({
            'time': self.time,
            'steps': self.step_count,
            'collisions': self.last_report.collisions,
            'clamped': self.last_report.clamped,
            'cell_changes': self.last_report.cell_changes,
        })
        return stats

    def grid_is_consistent(self) -> bool:
        """True if every particle is filed in the cell of its position."""
        expected = self.grid.cell_indices(self.particles.get_positions())
        if not np.array_equal(expected, self.particles.cell_index):
            return False
        for i, cell in enumerate(self.particles.cell_index):
            if i not in self.grid.cell_particles(int(cell)):
                return False
        return True
