"""
Uniform cell grid for fixed-radius SPH neighbor searches.

The grid partitions a bounding box into nx * ny * nz cells. Each cell
keeps the indices of the particles filed in it, and a precomputed
neighborhood: the cell itself plus every cell within one smoothing
radius. Compiled backends read flattened (CSR) copies of both tables.
"""

import logging
import numpy as np
from abc import ABC, abstractmethod
from typing import Iterator, List, Sequence, Tuple

from .container import BoundingBox

logger = logging.getLogger(__name__)


class SpatialIndex(ABC):
    """Cell-bucket index consumed by the SPH passes."""

    @abstractmethod
    def cell_index(self, point: np.ndarray) -> int:
        pass

    @abstractmethod
    def neighborhood(self, cell: int) -> Sequence[int]:
        pass

    @abstractmethod
    def cell_particles(self, cell: int) -> Sequence[int]:
        pass

    @abstractmethod
    def add_particle(self, cell: int, particle: int):
        pass

    @abstractmethod
    def remove_particle(self, cell: int, particle: int):
        pass

    def candidate_particles(self, cell: int) -> np.ndarray:
        """All particle indices filed in the neighborhood of ``cell``."""
        chunks = [np.asarray(self.cell_particles(c), dtype=np.int64)
                  for c in self.neighborhood(cell)]
        if not chunks:
            return np.zeros(0, dtype=np.int64)
        return np.concatenate(chunks)

    def batches(self, cells: np.ndarray) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """Group items by cell.

        Args:
            cells: Cell index of each item (particles or query points)

        Yields:
            (item_indices, candidate_particles) for every distinct cell
        """
        cells = np.asarray(cells, dtype=np.int64)
        if len(cells) == 0:
            return
        order = np.argsort(cells, kind='stable')
        boundaries = np.flatnonzero(np.diff(cells[order])) + 1
        for group in np.split(order, boundaries):
            yield group, self.candidate_particles(int(cells[group[0]]))


class UniformGrid(SpatialIndex):
    """Regular grid of particle buckets over a bounding box.

    Points outside the box are filed in the nearest border cell so every
    position maps to a valid cell.
    """

    def __init__(self, bounding_box: BoundingBox, nx: int, ny: int, nz: int,
                 smoothing_radius: float):
        """Initialize grid.

        Args:
            bounding_box: Region covered by the grid
            nx, ny, nz: Number of cells along each axis
            smoothing_radius: Neighborhood reach (cells within this distance)
        """
        if min(nx, ny, nz) < 1:
            raise ValueError(f"Grid needs at least one cell per axis: {(nx, ny, nz)}")

        self.bounding_box = bounding_box
        self.dims = np.array([nx, ny, nz], dtype=np.int64)
        self.n_cells = int(nx * ny * nz)
        self.cell_size = bounding_box.size / self.dims
        self.smoothing_radius = float(smoothing_radius)

        self._cells: List[List[int]] = [[] for _ in range(self.n_cells)]
        self._table_dirty = True
        self._cell_start = np.zeros(self.n_cells + 1, dtype=np.int64)
        self._cell_entries = np.zeros(0, dtype=np.int64)

        self.neighbor_start, self.neighbor_cells = self._build_neighborhoods()

        logger.debug("Grid: %dx%dx%d cells, cell size %s, %d neighbor cells max",
                     nx, ny, nz, self.cell_size,
                     int(np.max(np.diff(self.neighbor_start))))

    def _build_neighborhoods(self) -> Tuple[np.ndarray, np.ndarray]:
        """Precompute the neighborhood of every cell in CSR form."""
        reach = np.ceil(self.smoothing_radius / self.cell_size).astype(np.int64)
        reach = np.minimum(reach, self.dims - 1)

        offsets = np.stack(np.meshgrid(
            np.arange(-reach[0], reach[0] + 1),
            np.arange(-reach[1], reach[1] + 1),
            np.arange(-reach[2], reach[2] + 1),
            indexing='ij'), axis=-1).reshape(-1, 3)

        coords = self.cell_coords(np.arange(self.n_cells))
        candidates = coords[:, np.newaxis, :] + offsets[np.newaxis, :, :]
        valid = np.all((candidates >= 0) & (candidates < self.dims), axis=2)

        linear = self._linearize(candidates)
        counts = np.sum(valid, axis=1)

        neighbor_start = np.zeros(self.n_cells + 1, dtype=np.int64)
        np.cumsum(counts, out=neighbor_start[1:])
        neighbor_cells = linear[valid].astype(np.int64)
        return neighbor_start, neighbor_cells

    def _linearize(self, coords: np.ndarray) -> np.ndarray:
        nx, ny = self.dims[0], self.dims[1]
        return coords[..., 0] + nx * (coords[..., 1] + ny * coords[..., 2])

    def cell_coords(self, cells: np.ndarray) -> np.ndarray:
        """Convert linear cell indices to (i, j, k) coordinates."""
        cells = np.asarray(cells, dtype=np.int64)
        nx, ny = self.dims[0], self.dims[1]
        return np.stack((cells % nx, (cells // nx) % ny, cells // (nx * ny)), axis=-1)

    def cell_indices(self, points: np.ndarray) -> np.ndarray:
        """Vectorized cell lookup for an (N, 3) array of points."""
        points = np.asarray(points, dtype=np.float64)
        coords = np.floor((points - self.bounding_box.minimum) / self.cell_size).astype(np.int64)
        coords = np.clip(coords, 0, self.dims - 1)
        return self._linearize(coords)

    def cell_index(self, point: np.ndarray) -> int:
        return int(self.cell_indices(np.asarray(point)[np.newaxis, :])[0])

    def neighborhood(self, cell: int) -> np.ndarray:
        return self.neighbor_cells[self.neighbor_start[cell]:self.neighbor_start[cell + 1]]

    def cell_particles(self, cell: int) -> List[int]:
        return self._cells[cell]

    def add_particle(self, cell: int, particle: int):
        self._cells[cell].append(int(particle))
        self._table_dirty = True

    def remove_particle(self, cell: int, particle: int):
        # Raises ValueError if the particle is not filed in ``cell``
        self._cells[cell].remove(int(particle))
        self._table_dirty = True

    def membership_table(self) -> Tuple[np.ndarray, np.ndarray]:
        """Flattened (cell_start, cell_entries) view of the buckets.

        Particles of cell ``c`` are ``cell_entries[cell_start[c]:cell_start[c+1]]``.
        Rebuilt lazily after any add/remove.
        """
        if self._table_dirty:
            counts = np.fromiter((len(cell) for cell in self._cells),
                                 dtype=np.int64, count=self.n_cells)
            np.cumsum(counts, out=self._cell_start[1:])
            total = int(self._cell_start[-1])
            self._cell_entries = np.fromiter(
                (p for cell in self._cells for p in cell), dtype=np.int64, count=total)
            self._table_dirty = False
        return self._cell_start, self._cell_entries

    def candidate_particles(self, cell: int) -> np.ndarray:
        """All particle indices filed in the neighborhood of ``cell``."""
        cell_start, cell_entries = self.membership_table()
        chunks = [cell_entries[cell_start[c]:cell_start[c + 1]] for c in self.neighborhood(cell)]
        if not chunks:
            return np.zeros(0, dtype=np.int64)
        return np.concatenate(chunks)

    def get_statistics(self) -> dict:
        """Get grid occupancy statistics for debugging."""
        cell_start, _ = self.membership_table()
        counts = np.diff(cell_start)
        occupied = counts > 0

        return {
            'total_cells': self.n_cells,
            'occupied_cells': int(np.sum(occupied)),
            'occupancy_rate': float(np.sum(occupied)) / self.n_cells,
            'max_particles_per_cell': int(np.max(counts)) if self.n_cells else 0,
            'mean_particles_per_occupied_cell': float(np.mean(counts[occupied])) if np.any(occupied) else 0.0,
        }
