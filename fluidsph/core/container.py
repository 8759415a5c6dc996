"""
Container geometry used as a boundary oracle by the integrator.

The solver only needs three things from a container: its axis-aligned
bounding box, uniformly distributed interior points, and the first
boundary hit along a ray. Two closed shapes are provided (box, sphere).
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box."""
    minimum: np.ndarray  # shape: (3,)
    maximum: np.ndarray  # shape: (3,)

    def __post_init__(self):
        object.__setattr__(self, 'minimum', np.asarray(self.minimum, dtype=np.float64))
        object.__setattr__(self, 'maximum', np.asarray(self.maximum, dtype=np.float64))

    @property
    def center(self) -> np.ndarray:
        return (self.minimum + self.maximum) * 0.5

    @property
    def size(self) -> np.ndarray:
        return self.maximum - self.minimum

    def inflated(self, factor: float) -> 'BoundingBox':
        """Scale the box about its center."""
        center = self.center
        return BoundingBox((self.minimum - center) * factor + center,
                           (self.maximum - center) * factor + center)

    def contains(self, point: np.ndarray) -> bool:
        point = np.asarray(point)
        return bool(np.all(point >= self.minimum) and np.all(point <= self.maximum))


@dataclass(frozen=True)
class Ray:
    """Half-line ``origin + t * direction`` with a unit direction."""
    origin: np.ndarray
    direction: np.ndarray

    def at(self, t: float) -> np.ndarray:
        return self.origin + t * self.direction


@dataclass(frozen=True)
class Intersection:
    """First boundary hit along a ray."""
    t: float                # ray parameter of the hit
    position: np.ndarray    # hit point on the boundary
    normal: np.ndarray      # outward unit normal of the container surface


class Container(ABC):
    """Closed region holding the fluid."""

    @abstractmethod
    def bounding_box(self) -> BoundingBox:
        pass

    @abstractmethod
    def random_interior_point(self, rng: np.random.Generator) -> np.ndarray:
        pass

    @abstractmethod
    def intersect(self, ray: Ray) -> Optional[Intersection]:
        """Return the nearest boundary hit with ``t >= 0``, or None."""
        pass

    @abstractmethod
    def contains(self, point: np.ndarray) -> bool:
        pass


class BoxContainer(Container):
    """Axis-aligned box container."""

    def __init__(self, minimum, maximum):
        self.box = BoundingBox(minimum, maximum)
        if np.any(self.box.size <= 0):
            raise ValueError(f"Degenerate box: {self.box.minimum} - {self.box.maximum}")

    def bounding_box(self) -> BoundingBox:
        return self.box

    def random_interior_point(self, rng: np.random.Generator) -> np.ndarray:
        return rng.uniform(self.box.minimum, self.box.maximum)

    def contains(self, point: np.ndarray) -> bool:
        return self.box.contains(point)

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        # Slab test
        t_near = -np.inf
        t_far = np.inf
        near_axis = -1
        far_axis = -1

        for axis in range(3):
            o = ray.origin[axis]
            d = ray.direction[axis]
            lo = self.box.minimum[axis]
            hi = self.box.maximum[axis]

            if d == 0.0:
                if o < lo or o > hi:
                    return None
                continue

            t1 = (lo - o) / d
            t2 = (hi - o) / d
            if t1 > t2:
                t1, t2 = t2, t1
            if t1 > t_near:
                t_near, near_axis = t1, axis
            if t2 < t_far:
                t_far, far_axis = t2, axis

        if t_near > t_far or t_far < 0.0:
            return None

        normal = np.zeros(3)
        if t_near > 0.0:
            # Entering from outside: outward normal faces against the ray
            t = t_near
            normal[near_axis] = -np.sign(ray.direction[near_axis])
        else:
            # Leaving from inside: outward normal faces along the ray
            t = t_far
            normal[far_axis] = np.sign(ray.direction[far_axis])

        return Intersection(t=float(t), position=ray.at(t), normal=normal)


class SphereContainer(Container):
    """Spherical container."""

    def __init__(self, center, radius: float):
        if radius <= 0:
            raise ValueError(f"Sphere radius must be positive: {radius}")
        self.center = np.asarray(center, dtype=np.float64)
        self.radius = float(radius)

    def bounding_box(self) -> BoundingBox:
        return BoundingBox(self.center - self.radius, self.center + self.radius)

    def random_interior_point(self, rng: np.random.Generator) -> np.ndarray:
        # Rejection sampling from the bounding cube
        while True:
            point = rng.uniform(-1.0, 1.0, size=3)
            if np.dot(point, point) <= 1.0:
                return self.center + point * self.radius

    def contains(self, point: np.ndarray) -> bool:
        offset = np.asarray(point) - self.center
        return bool(np.dot(offset, offset) <= self.radius * self.radius)

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        oc = ray.origin - self.center
        b = np.dot(oc, ray.direction)
        c = np.dot(oc, oc) - self.radius * self.radius
        disc = b * b - c
        if disc < 0.0:
            return None

        sq = np.sqrt(disc)
        t0 = -b - sq
        t1 = -b + sq
        if t0 > 0.0:
            t = t0
        elif t1 >= 0.0:
            t = t1
        else:
            return None

        position = ray.at(t)
        normal = (position - self.center) / self.radius
        return Intersection(t=float(t), position=position, normal=normal)
