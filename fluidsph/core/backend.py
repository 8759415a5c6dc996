"""
Backend registry for the per-particle SPH passes.

Each pass (density, forces, surface field) ships a NumPy implementation
and a Numba one. NumPy is the reference and is always present; Numba is
used when installed and the particle count justifies the JIT cost.

Selection is global (``set_backend``) with a per-call override
(``dispatch(..., backend='numba')``).
"""

import enum
import logging
import warnings
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Below this particle count NumPy beats Numba once compile time is counted
NUMBA_PARTICLE_THRESHOLD = 1000


class Backend(enum.Enum):
    """Implementations a pass can be registered for."""
    CPU = "cpu"      # NumPy, cell-batched
    NUMBA = "numba"  # prange over particles

    @classmethod
    def parse(cls, name: str) -> 'Backend':
        return cls(name.strip().lower())


@dataclass
class BackendInfo:
    """What was detected for one backend at import time."""
    backend: Backend
    available: bool
    description: str = ""
    threads: int = 1
    passes: List[str] = field(default_factory=list)


class PassRegistry:
    """Holds the active backend and every registered pass implementation."""

    def __init__(self):
        self._active = Backend.CPU
        self._info: Dict[Backend, BackendInfo] = {}
        self._passes: Dict[str, Dict[Backend, Callable]] = {}
        self._probe()

    def _probe(self):
        self._info[Backend.CPU] = BackendInfo(Backend.CPU, True, "NumPy (vectorized per cell)")

        try:
            import numba
        except ImportError:
            self._info[Backend.NUMBA] = BackendInfo(Backend.NUMBA, False, "numba not installed")
            return

        self._info[Backend.NUMBA] = BackendInfo(
            Backend.NUMBA, True, f"Numba {numba.__version__} (parallel)",
            threads=numba.config.NUMBA_NUM_THREADS,
        )

    @property
    def active(self) -> Backend:
        return self._active

    def info(self, backend: Backend) -> BackendInfo:
        return self._info[backend]

    def availability(self) -> Dict[str, bool]:
        return {b.value: info.available for b, info in self._info.items()}

    def activate(self, backend: Backend) -> bool:
        """Make ``backend`` the default for every pass.

        Returns:
            False (with a warning) if the backend is not installed
        """
        if not self._info[backend].available:
            warnings.warn(f"Backend {backend.value} not available, keeping {self._active.value}")
            return False

        self._active = backend
        logger.debug("Active SPH backend: %s", self._info[backend].description)
        return True

    def recommend(self, n_particles: int) -> Backend:
        if self._info[Backend.NUMBA].available and n_particles > NUMBA_PARTICLE_THRESHOLD:
            return Backend.NUMBA
        return Backend.CPU

    def register(self, pass_name: str, backend: Backend, implementation: Callable):
        self._passes.setdefault(pass_name, {})[backend] = implementation
        self._info[backend].passes.append(pass_name)

    def implementation(self, pass_name: str, backend: Optional[Backend] = None) -> Callable:
        """Look up a pass, falling back to the NumPy version.

        Raises:
            ValueError: If nothing is registered under ``pass_name``
        """
        backend = backend or self._active
        candidates = self._passes.get(pass_name)
        if not candidates:
            raise ValueError(f"No implementations registered for {pass_name}")

        if backend in candidates:
            return candidates[backend]

        if Backend.CPU in candidates:
            warnings.warn(f"No {backend.value} implementation for {pass_name}, using cpu")
            return candidates[Backend.CPU]

        raise ValueError(f"No usable implementation of {pass_name} for {backend.value}")

    def run(self, pass_name: str, *args, backend: Optional[Backend] = None, **kwargs):
        return self.implementation(pass_name, backend)(*args, **kwargs)

    def print_info(self):
        print("\nSPH Backend Information")
        print("=" * 60)
        for backend, info in self._info.items():
            mark = "✓" if info.available else "✗"
            threads = f", {info.threads} threads" if info.available and info.threads > 1 else ""
            print(f"{mark} {backend.value:6s}: {info.description}{threads}")
            if info.passes:
                print(f"         passes: {', '.join(sorted(info.passes))}")
        print(f"\nCurrent backend: {self._active.value}")
        print("=" * 60)


_registry = PassRegistry()


def set_backend(backend: str) -> bool:
    """Select the global backend ('cpu' or 'numba').

    Returns:
        True if the backend is now active
    """
    try:
        choice = Backend.parse(backend)
    except ValueError:
        warnings.warn(f"Invalid backend: {backend}. Choose from: cpu, numba")
        return False
    return _registry.activate(choice)


def get_backend() -> str:
    return _registry.active.value


def list_backends() -> Dict[str, bool]:
    return _registry.availability()


def is_backend_available(backend: str) -> bool:
    return _registry.info(Backend.parse(backend)).available


def recommended_backend(n_particles: int) -> str:
    """Best available backend for a particle count, without switching to it."""
    return _registry.recommend(n_particles).value


def auto_select_backend(n_particles: int) -> str:
    """Switch to the recommended backend for ``n_particles``."""
    backend = _registry.recommend(n_particles)
    _registry.activate(backend)
    return backend.value


def print_backend_info():
    _registry.print_info()


def backend_function(pass_name: str):
    """Register the decorated function as an implementation of ``pass_name``.

    Usage:
        @backend_function("compute_density")
        @for_backend(Backend.NUMBA)
        def _compute_density_numba(...):
            ...
    """
    def decorator(func):
        if hasattr(func, '_backend'):
            _registry.register(pass_name, func._backend, func)
        return func
    return decorator


def for_backend(backend: Backend):
    """Tag a function with the backend it implements."""
    def decorator(func):
        func._backend = backend
        return func
    return decorator


def dispatch(pass_name: str, *args, backend: Optional[str] = None, **kwargs):
    """Run ``pass_name`` on the given backend (None for the active one)."""
    choice = Backend.parse(backend) if backend else None
    return _registry.run(pass_name, *args, backend=choice, **kwargs)
