"""
Helpers for the solver's placement in its parent coordinate frame.

Transforms are 4x4 homogeneous matrices mapping local coordinates to the
parent frame. Vectors (directions such as gravity) ignore translation.
"""

import numpy as np


def identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


def translation(offset) -> np.ndarray:
    matrix = identity()
    matrix[:3, 3] = offset
    return matrix


def rotation(axis, angle: float) -> np.ndarray:
    """Rotation of ``angle`` radians about ``axis`` (Rodrigues formula)."""
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    x, y, z = axis
    c = np.cos(angle)
    s = np.sin(angle)
    C = 1.0 - c

    matrix = identity()
    matrix[:3, :3] = [
        [c + x * x * C,     x * y * C - z * s, x * z * C + y * s],
        [y * x * C + z * s, c + y * y * C,     y * z * C - x * s],
        [z * x * C - y * s, z * y * C + x * s, c + z * z * C],
    ]
    return matrix


def scaling(factors) -> np.ndarray:
    matrix = identity()
    matrix[:3, :3] = np.diag(np.broadcast_to(np.asarray(factors, dtype=np.float64), (3,)))
    return matrix


def map_vector(matrix: np.ndarray, vector) -> np.ndarray:
    """Apply the linear part of ``matrix`` to a direction vector."""
    return matrix[:3, :3] @ np.asarray(vector, dtype=np.float64)


def parent_to_local_vector(local_to_parent: np.ndarray, vector) -> np.ndarray:
    """Express a parent-frame direction in the local frame.

    Raises:
        numpy.linalg.LinAlgError: If the transform is singular
    """
    return map_vector(np.linalg.inv(local_to_parent), vector)
