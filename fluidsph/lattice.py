"""
Regular sampling lattice for implicit surface extraction.

The lattice divides a bounding box into nx * ny * nz cubes. An external
extractor (e.g. marching tetrahedra) walks the cubes; this module only
provides the vertex positions and the sampled field at each vertex.
"""

import numpy as np
from typing import Callable, Tuple

from .core.container import BoundingBox

FieldFunction = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]


class SurfaceLattice:
    """Vertex lattice over a bounding box."""

    def __init__(self, bounding_box: BoundingBox, nx: int, ny: int, nz: int):
        if min(nx, ny, nz) < 1:
            raise ValueError(f"Lattice needs at least one cube per axis: {(nx, ny, nz)}")

        self.bounding_box = bounding_box
        self.cubes = (int(nx), int(ny), int(nz))
        self.shape = (self.cubes[0] + 1, self.cubes[1] + 1, self.cubes[2] + 1)
        self.spacing = bounding_box.size / np.array(self.cubes)

        axes = [np.linspace(bounding_box.minimum[d], bounding_box.maximum[d], self.shape[d])
                for d in range(3)]
        self.vertices = np.stack(np.meshgrid(*axes, indexing='ij'), axis=-1)

    @property
    def n_vertices(self) -> int:
        return int(np.prod(self.shape))

    def evaluate(self, field: FieldFunction) -> Tuple[np.ndarray, np.ndarray]:
        """Sample ``field`` at every vertex.

        Args:
            field: Maps (P, 3) points to (values (P,), normals (P, 3)),
                for example ``SPHSolver.surface_info_batch``

        Returns:
            values with shape (nx+1, ny+1, nz+1) and normals with shape
            (nx+1, ny+1, nz+1, 3)
        """
        values, normals = field(self.vertices.reshape(-1, 3))
        return values.reshape(self.shape), normals.reshape(self.shape + (3,))

    def inside_fraction(self, values: np.ndarray) -> float:
        """Fraction of vertices on the fluid side of the surface."""
        return float(np.mean(values > 0.0))
