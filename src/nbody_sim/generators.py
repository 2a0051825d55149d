"""
Initial conditions and body recycling.

Satellites are sampled around a center body (usually a black hole):

- angle uniform in [0, 2*pi)
- radius and mass from positive-folded normal distributions, the radius
  clamped to [min_radius, max_radius]
- speed velocity_scale * sqrt(M) / r, perpendicular to the offset, so the
  satellite starts on a roughly circular orbit

This is the only stochastic part of the package. The random source is an
injectable random.Random, so runs can be made reproducible with a seed.
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING, Optional

from .types import Body, Vector, VectorLike, as_vector
from .validation import ValidationError

if TYPE_CHECKING:
    from .simulation import Simulation


class SatelliteGenerator:
    """
    Generates satellites orbiting a center body.

    Example:
        gen = SatelliteGenerator(max_radius=150, random_seed=42)
        center = Body(5e6, Vector(250, 250))
        satellite = gen.generate_satellite(center)
    """

    def __init__(
        self,
        *,
        radius_mean: float = 0.0,
        radius_std: float = 80.0,
        min_radius: float = 1.0,
        max_radius: float = 200.0,
        mass_mean: float = 1.0,
        mass_std: float = 0.5,
        min_mass: float = 1e-6,
        velocity_scale: float = 10.0,
        random_seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize generator.

        Args:
            radius_mean: Mean of the normal distribution radii are folded from
            radius_std: Standard deviation of the radius distribution
            min_radius: Smallest orbit radius (keep above the absorption distance)
            max_radius: Largest orbit radius
            mass_mean: Mean of the normal distribution masses are folded from
            mass_std: Standard deviation of the mass distribution
            min_mass: Floor for sampled masses (zero mass marks an empty slot)
            velocity_scale: Scale factor applied to sqrt(M) / r
            random_seed: Seed for a private random source
            rng: Random source to use instead (takes precedence over random_seed)
        """
        if radius_std < 0 or mass_std < 0:
            raise ValidationError("standard deviations must be >= 0")
        if min_radius <= 0:
            raise ValidationError(f"min_radius must be positive, got {min_radius}")
        if max_radius < min_radius:
            raise ValidationError(
                f"max_radius must be >= min_radius, got {max_radius} < {min_radius}"
            )
        if min_mass <= 0:
            raise ValidationError(f"min_mass must be positive, got {min_mass}")

        self.radius_mean = float(radius_mean)
        self.radius_std = float(radius_std)
        self.min_radius = float(min_radius)
        self.max_radius = float(max_radius)
        self.mass_mean = float(mass_mean)
        self.mass_std = float(mass_std)
        self.min_mass = float(min_mass)
        self.velocity_scale = float(velocity_scale)
        self.rng: random.Random = rng if rng is not None else random.Random(random_seed)

    def seed(self, value: Optional[int]) -> None:
        """Reseed the random source."""
        self.rng.seed(value)

    def sample_radius(self) -> float:
        r = abs(self.rng.gauss(self.radius_mean, self.radius_std))
        return min(max(r, self.min_radius), self.max_radius)

    def sample_mass(self) -> float:
        return max(abs(self.rng.gauss(self.mass_mean, self.mass_std)), self.min_mass)

    def choose(self, count: int) -> int:
        """Pick an index in [0, count) uniformly."""
        return self.rng.randrange(count)

    def generate_satellite(self, center: Body) -> Body:
        """Sample a satellite on an approximately circular orbit around `center`."""
        angle = self.rng.uniform(0.0, 2 * math.pi)
        r = self.sample_radius()
        m = self.sample_mass()

        cos_a, sin_a = math.cos(angle), math.sin(angle)
        offset = Vector(r * cos_a, r * sin_a)

        speed = self.velocity_scale * math.sqrt(max(center.mass, 0.0)) / r
        # Perpendicular to the offset, counter-clockwise
        tangent = Vector(-sin_a, cos_a).scale(speed)

        return Body(
            mass=m,
            position=center.position.add(offset),
            velocity=center.velocity.add(tangent),
        )


def generate_galaxy(sim: Simulation, center: Body) -> Simulation:
    """
    Fill a simulation with one central black hole and orbiting satellites.

    Slot 0 becomes `center` and is the only black hole; every other slot
    gets a satellite from the simulation's generator.

    Returns:
        sim (for chaining)
    """
    sim.num_blackholes = 0
    sim.set(0, center)
    sim.num_blackholes = 1
    for i in range(1, sim.n):
        sim.set(i, sim.generator.generate_satellite(center))
    return sim


def generate_blackhole(
    sim: Simulation,
    position: VectorLike,
    mass: float,
    velocity: Optional[VectorLike] = None,
) -> int:
    """
    Turn the first satellite slot of `sim` into a black hole.

    Returns:
        Index of the new black hole
    """
    vel = as_vector(velocity) if velocity is not None else Vector.zero()
    return sim.inject_mass(as_vector(position), mass, vel)


__all__ = ["SatelliteGenerator", "generate_galaxy", "generate_blackhole"]
