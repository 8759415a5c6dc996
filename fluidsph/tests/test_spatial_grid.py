"""
Tests for the uniform cell grid used for neighbor searches.
"""

import numpy as np
import pytest
from fluidsph.core.container import BoundingBox
from fluidsph.core.spatial_grid import UniformGrid


@pytest.fixture
def grid():
    """4x4x4 grid over the unit cube, cells as wide as the smoothing radius."""
    return UniformGrid(BoundingBox((0, 0, 0), (1, 1, 1)), 4, 4, 4, smoothing_radius=0.25)


class TestCellLookup:

    def test_linear_index_order(self, grid):
        assert grid.cell_index(np.array([0.1, 0.1, 0.1])) == 0
        assert grid.cell_index(np.array([0.9, 0.1, 0.1])) == 3
        assert grid.cell_index(np.array([0.1, 0.9, 0.1])) == 12
        assert grid.cell_index(np.array([0.1, 0.1, 0.9])) == 48

    def test_points_outside_are_clamped(self, grid):
        assert grid.cell_index(np.array([2.0, 2.0, 2.0])) == grid.n_cells - 1
        assert grid.cell_index(np.array([-1.0, -1.0, -1.0])) == 0
        assert grid.cell_index(np.array([1.0, 0.0, 0.0])) == 3

    def test_vectorized_lookup_matches_scalar(self, grid):
        rng = np.random.default_rng(3)
        points = rng.uniform(-0.2, 1.2, size=(50, 3))
        cells = grid.cell_indices(points)
        assert all(cells[i] == grid.cell_index(points[i]) for i in range(len(points)))

    def test_cell_coords_roundtrip(self, grid):
        coords = grid.cell_coords(np.arange(grid.n_cells))
        assert np.array_equal(grid._linearize(coords), np.arange(grid.n_cells))

    def test_requires_one_cell_per_axis(self):
        with pytest.raises(ValueError):
            UniformGrid(BoundingBox((0, 0, 0), (1, 1, 1)), 0, 4, 4, smoothing_radius=0.25)


class TestNeighborhoods:

    def test_interior_cell_has_27_neighbors(self, grid):
        cell = 1 + 4 * (1 + 4 * 1)
        assert len(grid.neighborhood(cell)) == 27

    def test_corner_cell_has_8_neighbors(self, grid):
        assert len(grid.neighborhood(0)) == 8

    def test_neighborhood_contains_own_cell(self, grid):
        for cell in range(grid.n_cells):
            assert cell in grid.neighborhood(cell)

    def test_reach_grows_with_radius(self):
        """Cells narrower than h need more than one ring of neighbors."""
        grid = UniformGrid(BoundingBox((0, 0, 0), (1, 1, 1)), 4, 4, 4, smoothing_radius=0.3)
        cell = 1 + 4 * (1 + 4 * 1)
        assert len(grid.neighborhood(cell)) == 64

    def test_neighborhood_covers_support(self, grid):
        """Every particle within h of a point lies in the point's neighborhood."""
        rng = np.random.default_rng(11)
        points = rng.uniform(0.0, 1.0, size=(200, 3))
        cells = grid.cell_indices(points)
        for i in range(0, 200, 7):
            near = np.linalg.norm(points - points[i], axis=1) < grid.smoothing_radius
            allowed = np.isin(cells, grid.neighborhood(cells[i]))
            assert np.all(allowed[near])


class TestMembership:

    def test_add_and_remove(self, grid):
        grid.add_particle(5, 0)
        grid.add_particle(5, 1)
        assert grid.cell_particles(5) == [0, 1]

        grid.remove_particle(5, 0)
        assert grid.cell_particles(5) == [1]

    def test_remove_missing_particle_raises(self, grid):
        with pytest.raises(ValueError):
            grid.remove_particle(3, 42)

    def test_membership_table(self, grid):
        grid.add_particle(0, 4)
        grid.add_particle(2, 7)
        grid.add_particle(2, 9)

        cell_start, cell_entries = grid.membership_table()
        assert cell_start[-1] == 3
        assert list(cell_entries[cell_start[0]:cell_start[1]]) == [4]
        assert list(cell_entries[cell_start[2]:cell_start[3]]) == [7, 9]

        # Rebuilt after a change
        grid.remove_particle(2, 7)
        cell_start, cell_entries = grid.membership_table()
        assert cell_start[-1] == 2
        assert list(cell_entries[cell_start[2]:cell_start[3]]) == [9]

    def test_candidate_particles(self, grid):
        grid.add_particle(0, 0)
        grid.add_particle(1, 1)
        grid.add_particle(63, 2)

        candidates = set(grid.candidate_particles(0).tolist())
        assert candidates == {0, 1}

    def test_batches_group_by_cell(self, grid):
        grid.add_particle(0, 0)
        grid.add_particle(63, 1)

        cells = np.array([63, 0, 63, 0, 0])
        groups = {int(cells[members[0]]): (members, candidates)
                  for members, candidates in grid.batches(cells)}

        assert sorted(groups) == [0, 63]
        assert list(groups[0][0]) == [1, 3, 4]
        assert list(groups[63][0]) == [0, 2]
        assert list(groups[0][1]) == [0]
        assert list(groups[63][1]) == [1]

    def test_batches_empty(self, grid):
        assert list(grid.batches(np.zeros(0, dtype=np.int64))) == []

    def test_statistics(self, grid):
        grid.add_particle(0, 0)
        grid.add_particle(0, 1)
        grid.add_particle(9, 2)

        stats = grid.get_statistics()
        assert stats['total_cells'] == 64
        assert stats['occupied_cells'] == 2
        assert stats['max_particles_per_cell'] == 2
        assert stats['mean_particles_per_occupied_cell'] == pytest.approx(1.5)
