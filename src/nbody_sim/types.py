"""
Common types for the n-body simulation.

This module provides the fundamental value types used across the package:
- Vector: Immutable 2D vector with named arithmetic operations
- Body: Mass, position and velocity of a single body
- Snapshot: Read-only view of the simulation for renderers and exporters
- EventType: Simulation lifecycle events
- Event: Event payload for callbacks
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, NamedTuple, Optional, Sequence, TypedDict, Union

import numpy as np

# Floating point type used for every simulation array and force accumulation.
DTYPE = np.float64


class EventType(IntEnum):
    """
    Simulation lifecycle events.

    - start: A run of steps has begun
    - tick: Fired once per integration step
    - end: A run of steps has finished
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    step: int
    time: float
    recycled: int


@dataclass(frozen=True)
class Vector:
    """
    Immutable 2D vector.

    All operations return new values and act componentwise, except
    l2_sqrd (sum of squares) and in_bounds (componentwise range test).
    """

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def zero(cls) -> Vector:
        """The zero vector."""
        return cls(0.0, 0.0)

    @classmethod
    def from_xy(cls, x: float, y: float) -> Vector:
        """Build a vector from two coordinates, coercing to float."""
        return cls(float(x), float(y))

    def add(self, other: Vector) -> Vector:
        return Vector(self.x + other.x, self.y + other.y)

    def sub(self, other: Vector) -> Vector:
        return Vector(self.x - other.x, self.y - other.y)

    def scale(self, factor: float) -> Vector:
        return Vector(self.x * factor, self.y * factor)

    def l2_sqrd(self) -> float:
        """Squared euclidean length."""
        return self.x * self.x + self.y * self.y

    def in_bounds(self, min_corner: Vector, max_corner: Vector) -> bool:
        """True if min_corner <= self <= max_corner on every axis."""
        return min_corner.x <= self.x <= max_corner.x and min_corner.y <= self.y <= max_corner.y

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Body:
    """
    A single body, used to pass values in and out of a simulation.

    Attributes:
        mass: Mass of the body. Zero marks an empty slot.
        position: Position vector
        velocity: Velocity vector
    """

    mass: float
    position: Vector
    velocity: Vector = Vector()

    @property
    def is_real(self) -> bool:
        """True if this body carries mass (zero mass is the empty-slot sentinel)."""
        return self.mass > 0

    def __repr__(self) -> str:
        return (
            f"Body(mass={self.mass:.4g}, x={self.position.x:.2f}, y={self.position.y:.2f}, "
            f"vx={self.velocity.x:.2f}, vy={self.velocity.y:.2f})"
        )


class Snapshot(NamedTuple):
    """
    Read-only copy of the drawable state of a simulation.

    Attributes:
        masses: (n,) array of masses
        positions: (n, 2) array of positions
        num_blackholes: Bodies [0, num_blackholes) are black holes
    """

    masses: np.ndarray
    positions: np.ndarray
    num_blackholes: int


# Type aliases for callbacks
EventCallback = Callable[[Optional[Event]], None]

VectorLike = Union[Vector, tuple[float, float], Sequence[float]]
"""Input type for vectors: Vector objects or (x, y) pairs."""


def as_vector(value: Any) -> Vector:
    """Convert a Vector or (x, y) sequence to a Vector."""
    if isinstance(value, Vector):
        return value
    x, y = value
    return Vector.from_xy(x, y)


__all__ = [
    "DTYPE",
    "EventType",
    "Event",
    "Vector",
    "Body",
    "Snapshot",
    "EventCallback",
    "VectorLike",
    "as_vector",
]
