"""
Input validation utilities for the n-body simulation.

Provides centralized validation functions for body counts, domain bounds,
softening parameters, time steps and bodies. Raises descriptive exceptions
on invalid input so a simulation is never built from a bad configuration.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .spatial.bounds import BoundingBox
    from .types import Body


class ValidationError(ValueError):
    """Base exception for simulation validation errors."""

    pass


class ConfigurationError(ValidationError):
    """Raised when a simulation is constructed with an invalid configuration."""

    pass


class InvalidBoundsError(ConfigurationError):
    """Raised when a bounding box has zero or negative area."""

    pass


class InvalidBodyError(ValidationError):
    """Raised when a body is malformed."""

    pass


class CapacityError(ValidationError):
    """Raised when a body cannot be added because every slot is a black hole."""

    pass


class RecyclingFallbackWarning(UserWarning):
    """Issued when a body is recycled without any black hole to orbit."""

    pass


def validate_body_count(n: int) -> int:
    """
    Validate the number of bodies in a simulation.

    Args:
        n: Number of bodies

    Returns:
        Validated body count

    Raises:
        ConfigurationError: If n < 1
    """
    if n < 1:
        raise ConfigurationError(f"body count must be >= 1, got {n}")
    return int(n)


def validate_bounds(bounds: BoundingBox) -> BoundingBox:
    """
    Validate that a bounding box has positive width and height.

    Args:
        bounds: Domain bounding box

    Returns:
        The same bounding box

    Raises:
        InvalidBoundsError: If the box is degenerate
    """
    width = bounds.max_x - bounds.min_x
    height = bounds.max_y - bounds.min_y
    if not (math.isfinite(width) and math.isfinite(height)):
        raise InvalidBoundsError(f"Bounds must be finite, got {bounds}")
    if width <= 0:
        raise InvalidBoundsError(f"Bounds width must be positive, got {width}")
    if height <= 0:
        raise InvalidBoundsError(f"Bounds height must be positive, got {height}")
    return bounds


def validate_min_dist(min_dist: float) -> float:
    """
    Validate the minimum (absorption / cutoff) distance.

    Raises:
        ConfigurationError: If min_dist is not positive
    """
    min_dist = float(min_dist)
    if not min_dist > 0:
        raise ConfigurationError(f"min_dist must be positive, got {min_dist}")
    return min_dist


def validate_softening(softening: float) -> float:
    """
    Validate the softening length.

    Raises:
        ConfigurationError: If softening is negative
    """
    softening = float(softening)
    if softening < 0 or math.isnan(softening):
        raise ConfigurationError(f"softening must be >= 0, got {softening}")
    return softening


def validate_num_blackholes(num_blackholes: int, n: int) -> int:
    """
    Validate the black hole count against the body count.

    Raises:
        ConfigurationError: If num_blackholes is not in [0, n]
    """
    if num_blackholes < 0 or num_blackholes > n:
        raise ConfigurationError(f"num_blackholes must be in [0, {n}], got {num_blackholes}")
    return int(num_blackholes)


def validate_time_step(dt: float) -> float:
    """
    Validate a time step.

    Raises:
        ValidationError: If dt is not positive and finite
    """
    dt = float(dt)
    if not (dt > 0 and math.isfinite(dt)):
        raise ValidationError(f"dt must be positive, got {dt}")
    return dt


def validate_theta(theta: float) -> float:
    """
    Validate the Barnes-Hut accuracy parameter.

    Raises:
        ValidationError: If theta < 0
    """
    theta = float(theta)
    if theta < 0 or math.isnan(theta):
        raise ValidationError(f"theta must be >= 0, got {theta}")
    return theta


def validate_body(body: Body) -> Body:
    """
    Validate a body's mass and components.

    Raises:
        InvalidBodyError: If mass is negative or any component is not finite
    """
    values = (
        body.mass,
        body.position.x,
        body.position.y,
        body.velocity.x,
        body.velocity.y,
    )
    if not all(math.isfinite(v) for v in values):
        raise InvalidBodyError(f"Body components must be finite, got {body!r}")
    if body.mass < 0:
        raise InvalidBodyError(f"Body mass must be >= 0, got {body.mass}")
    return body


__all__ = [
    "ValidationError",
    "ConfigurationError",
    "InvalidBoundsError",
    "InvalidBodyError",
    "CapacityError",
    "RecyclingFallbackWarning",
    "validate_body_count",
    "validate_bounds",
    "validate_min_dist",
    "validate_softening",
    "validate_num_blackholes",
    "validate_time_step",
    "validate_theta",
    "validate_body",
]
