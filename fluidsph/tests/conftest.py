"""Pytest configuration for SPH tests."""
import os
import sys
from pathlib import Path
from typing import Any

import pytest

from fluidsph.config import SolverConfig
from fluidsph.core.backend import is_backend_available
from fluidsph.core.container import BoxContainer


def pytest_configure(config):
    """Configure pytest environment for SPH tests."""
    # Add workspace root to Python path for fluidsph imports
    workspace_root = Path(__file__).parent.parent.parent
    if str(workspace_root) not in sys.path:
        sys.path.insert(0, str(workspace_root))

    # Headless snapshot rendering
    os.environ['MPLBACKEND'] = 'Agg'


def pytest_ignore_collect(collection_path: Path, config: Any) -> bool:
    """Ignore paths that cannot be stat'ed (broken symlinks on Windows checkouts)."""
    try:
        _ = collection_path.is_dir()
    except OSError:
        return True
    return False


@pytest.fixture(params=['cpu', 'numba'])
def backend(request):
    """Parametrize tests over all available backends."""
    if not is_backend_available(request.param):
        pytest.skip(f"Backend {request.param} not available")
    return request.param


@pytest.fixture
def unit_box():
    return BoxContainer((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))


@pytest.fixture
def quiet_config():
    """Small deterministic config with every force switched off."""
    return SolverConfig(
        smoothing_radius=0.2,
        viscosity=0.0,
        pressure=0.0,
        surface_tension=0.0,
        gravity=(0.0, 0.0, 0.0),
        particle_count=2,
        total_volume=0.001,
        grid_cells=(8, 8, 8),
        lattice_cubes=(4, 4, 4),
        backend='cpu',
        seed=7,
    )
