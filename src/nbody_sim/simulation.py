"""
Fixed-capacity n-body simulation.

The simulation owns parallel arrays of mass, position, velocity and
acceleration for n bodies. Indices [0, num_blackholes) are black holes;
every other slot is a satellite. Bodies are never inserted or removed:
a satellite that falls into a black hole or leaves the domain is recycled,
i.e. its slot is overwritten with a freshly generated satellite.

One step is atomic: evaluate forces (direct or Barnes-Hut), integrate with
semi-implicit Euler, recycle.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

import numpy as np

if TYPE_CHECKING:
    from typing_extensions import Self

from .base import CutoffPolicy, ForceEvaluator
from .force.barnes_hut import BarnesHutForce
from .force.direct import DirectForce
from .generators import SatelliteGenerator, generate_galaxy
from .spatial.bounds import BoundingBox
from .types import (
    DTYPE,
    Body,
    Event,
    EventCallback,
    EventType,
    Snapshot,
    Vector,
    VectorLike,
    as_vector,
)
from .validation import (
    CapacityError,
    RecyclingFallbackWarning,
    ValidationError,
    validate_body,
    validate_body_count,
    validate_bounds,
    validate_min_dist,
    validate_num_blackholes,
    validate_softening,
    validate_theta,
    validate_time_step,
)

# Satellites drawn per recycled slot before falling back to clamping
RESPAWN_ATTEMPTS = 16

BoundsLike = Union[BoundingBox, tuple[VectorLike, VectorLike]]
"""Domain bounds: a BoundingBox or a (min_corner, max_corner) pair."""


def _as_bounds(value: BoundsLike) -> BoundingBox:
    if isinstance(value, BoundingBox):
        return validate_bounds(value)
    min_corner, max_corner = value
    return validate_bounds(BoundingBox.from_vectors(as_vector(min_corner), as_vector(max_corner)))


class Simulation:
    """
    Gravitational n-body simulation with black-hole recycling.

    Example:
        sim = Simulation.initialize(
            1000,
            center_mass=5e6,
            bounds=BoundingBox(0, 500, 0, 500),
            min_dist=10.0,
            random_seed=42,
        )
        for _ in range(100):
            sim.step(0.1, theta=0.5)

        frame = sim.snapshot()
    """

    def __init__(
        self,
        n: int,
        *,
        bounds: BoundsLike,
        min_dist: float,
        softening: float = 0.0,
        num_blackholes: int = 0,
        cutoff: CutoffPolicy | str = CutoffPolicy.PLAIN,
        generator: Optional[SatelliteGenerator] = None,
        random_seed: Optional[int] = None,
        on_start: Optional[EventCallback] = None,
        on_tick: Optional[EventCallback] = None,
        on_end: Optional[EventCallback] = None,
    ) -> None:
        """
        Allocate a simulation with n empty (zero-mass) slots.

        Args:
            n: Number of bodies (fixed for the lifetime of the simulation)
            bounds: Domain; satellites leaving it are recycled
            min_dist: Absorption radius around black holes and Barnes-Hut
                minimum-distance cutoff
            softening: Softening length added to every separation
            num_blackholes: Number of leading slots that are black holes
            cutoff: Minimum-distance cutoff policy of both force evaluators
            generator: Satellite generator used for recycling. Defaults to
                one sized to the domain.
            random_seed: Seed for the default generator
            on_start: Callback for start event
            on_tick: Callback for tick event
            on_end: Callback for end event

        Raises:
            ConfigurationError: If n, bounds, min_dist, softening or
                num_blackholes is invalid.
        """
        self._n: int = validate_body_count(n)
        self._bounds: BoundingBox = _as_bounds(bounds)
        self._min_dist: float = validate_min_dist(min_dist)
        self._min_dist_sqrd: float = self._min_dist * self._min_dist
        self._softening: float = validate_softening(softening)
        self._num_blackholes: int = validate_num_blackholes(num_blackholes, self._n)

        self._mass: np.ndarray = np.zeros(self._n, dtype=DTYPE)
        self._position: np.ndarray = np.zeros((self._n, 2), dtype=DTYPE)
        self._velocity: np.ndarray = np.zeros((self._n, 2), dtype=DTYPE)
        self._acceleration: np.ndarray = np.zeros((self._n, 2), dtype=DTYPE)

        if generator is None:
            generator = self._default_generator(random_seed)
        self._generator: SatelliteGenerator = generator

        self._direct = DirectForce(cutoff=cutoff)
        self._barnes_hut = BarnesHutForce(cutoff=cutoff)

        self._time: float = 0.0
        self._step_count: int = 0

        self._events: dict[EventType, EventCallback] = {}
        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    @classmethod
    def initialize(
        cls,
        n: int,
        center_mass: float,
        bounds: BoundsLike,
        min_dist: float,
        **kwargs: Any,
    ) -> Simulation:
        """
        Build a galaxy: one central black hole and n - 1 satellites.

        The black hole sits at the center of the domain at rest.

        Args:
            n: Number of bodies including the central black hole
            center_mass: Mass of the central black hole
            bounds: Domain bounds
            min_dist: Absorption radius / minimum distance
            **kwargs: Passed to the constructor

        Returns:
            A ready-to-step simulation
        """
        if center_mass <= 0:
            raise ValidationError(f"center_mass must be positive, got {center_mass}")
        sim = cls(n, bounds=bounds, min_dist=min_dist, **kwargs)
        cx, cy = sim.bounds.center()
        generate_galaxy(sim, Body(float(center_mass), Vector(cx, cy)))
        return sim

    @classmethod
    def from_bodies(
        cls,
        bodies: Sequence[Body],
        *,
        bounds: BoundsLike,
        min_dist: float,
        num_blackholes: int = 0,
        **kwargs: Any,
    ) -> Simulation:
        """Build a simulation whose slots hold `bodies` in order."""
        sim = cls(
            len(bodies),
            bounds=bounds,
            min_dist=min_dist,
            num_blackholes=num_blackholes,
            **kwargs,
        )
        for i, body in enumerate(bodies):
            sim.set(i, body)
        return sim

    def _default_generator(self, random_seed: Optional[int]) -> SatelliteGenerator:
        """Generator whose orbits fit comfortably inside the domain."""
        half_extent = min(self._bounds.width(), self._bounds.height()) / 2
        max_radius = max(0.8 * half_extent, self._min_dist)
        return SatelliteGenerator(
            radius_std=max_radius / 2.5,
            min_radius=self._min_dist,
            max_radius=max_radius,
            random_seed=random_seed,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def n(self) -> int:
        """Get the number of body slots."""
        return self._n

    def __len__(self) -> int:
        return self._n

    @property
    def mass(self) -> np.ndarray:
        """Mass array, shape (n,). Mutable: use snapshot() for a safe copy."""
        return self._mass

    @property
    def position(self) -> np.ndarray:
        """Position array, shape (n, 2)."""
        return self._position

    @property
    def velocity(self) -> np.ndarray:
        """Velocity array, shape (n, 2)."""
        return self._velocity

    @property
    def acceleration(self) -> np.ndarray:
        """Acceleration array, shape (n, 2), written by force evaluators."""
        return self._acceleration

    @property
    def bounds(self) -> BoundingBox:
        """Get domain bounds."""
        return self._bounds

    @bounds.setter
    def bounds(self, value: BoundsLike) -> None:
        """Set domain bounds."""
        self._bounds = _as_bounds(value)

    @property
    def min_position(self) -> Vector:
        return self._bounds.min_corner

    @property
    def max_position(self) -> Vector:
        return self._bounds.max_corner

    @property
    def min_dist(self) -> float:
        """Get minimum distance (absorption radius and force cutoff)."""
        return self._min_dist

    @min_dist.setter
    def min_dist(self, value: float) -> None:
        """Set minimum distance and refresh its cached square."""
        self._min_dist = validate_min_dist(value)
        self._min_dist_sqrd = self._min_dist * self._min_dist

    @property
    def min_dist_sqrd(self) -> float:
        return self._min_dist_sqrd

    @property
    def softening(self) -> float:
        """Get softening length."""
        return self._softening

    @softening.setter
    def softening(self, value: float) -> None:
        self._softening = validate_softening(value)

    @property
    def num_blackholes(self) -> int:
        """Get number of black holes (the leading slots)."""
        return self._num_blackholes

    @num_blackholes.setter
    def num_blackholes(self, value: int) -> None:
        self._num_blackholes = validate_num_blackholes(value, self._n)

    @property
    def cutoff(self) -> CutoffPolicy:
        """Get the minimum-distance cutoff policy."""
        return self._barnes_hut.cutoff

    @cutoff.setter
    def cutoff(self, value: CutoffPolicy | str) -> None:
        self._direct.cutoff = CutoffPolicy(value)
        self._barnes_hut.cutoff = CutoffPolicy(value)

    @property
    def generator(self) -> SatelliteGenerator:
        """Get the satellite generator used for recycling."""
        return self._generator

    @generator.setter
    def generator(self, value: SatelliteGenerator) -> None:
        self._generator = value

    @property
    def time(self) -> float:
        """Simulated time elapsed through step()."""
        return self._time

    @property
    def step_count(self) -> int:
        return self._step_count

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: EventCallback) -> Self:
        """
        Subscribe to a simulation event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """Trigger an event, calling the registered callback."""
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    def _event(self, event_type: EventType, recycled: int = 0) -> Event:
        return {
            "type": event_type,
            "step": self._step_count,
            "time": self._time,
            "recycled": recycled,
        }

    # -------------------------------------------------------------------------
    # Body access
    # -------------------------------------------------------------------------

    def _check_index(self, i: int) -> int:
        if not 0 <= i < self._n:
            raise IndexError(f"body index {i} out of range [0, {self._n})")
        return int(i)

    def set(self, i: int, body: Body) -> None:
        """Overwrite slot i with `body` and zero its acceleration."""
        i = self._check_index(i)
        validate_body(body)
        self._mass[i] = body.mass
        self._position[i] = body.position.to_tuple()
        self._velocity[i] = body.velocity.to_tuple()
        self._acceleration[i] = 0.0

    def get(self, i: int) -> Body:
        """Read slot i as a Body value."""
        i = self._check_index(i)
        return Body(
            mass=float(self._mass[i]),
            position=Vector(float(self._position[i, 0]), float(self._position[i, 1])),
            velocity=Vector(float(self._velocity[i, 0]), float(self._velocity[i, 1])),
        )

    def bodies(self) -> list[Body]:
        """All slots as Body values."""
        return [self.get(i) for i in range(self._n)]

    def is_blackhole(self, i: int) -> bool:
        return self._check_index(i) < self._num_blackholes

    def snapshot(self) -> Snapshot:
        """Read-only copy of masses and positions for renderers and exporters."""
        masses = self._mass.copy()
        positions = self._position.copy()
        masses.setflags(write=False)
        positions.setflags(write=False)
        return Snapshot(masses, positions, self._num_blackholes)

    def inject_mass(
        self,
        position: VectorLike,
        mass: float,
        velocity: Optional[VectorLike] = None,
    ) -> int:
        """
        Convert the first satellite slot into a black hole.

        Args:
            position: Position of the new black hole
            mass: Its mass (must be positive)
            velocity: Its velocity (default: at rest)

        Returns:
            Index of the new black hole

        Raises:
            ValidationError: If mass is not positive
            CapacityError: If every slot already holds a black hole
        """
        if not mass > 0:
            raise ValidationError(f"black hole mass must be positive, got {mass}")
        k = self._num_blackholes
        if k >= self._n:
            raise CapacityError(f"all {self._n} slots are already black holes")

        vel = as_vector(velocity) if velocity is not None else Vector.zero()
        self.set(k, Body(float(mass), as_vector(position), vel))
        self._num_blackholes = k + 1
        return k

    # -------------------------------------------------------------------------
    # Recycling
    # -------------------------------------------------------------------------

    def _reference_body(self, ref: Optional[int]) -> Body:
        """Body that a recycled satellite should orbit."""
        if ref is None or self._num_blackholes == 0:
            # No black hole to orbit: use the domain center with the whole
            # system's mass as a stand-in.
            warnings.warn(
                "recycling without a black hole; respawning around the domain center",
                RecyclingFallbackWarning,
                stacklevel=3,
            )
            cx, cy = self._bounds.center()
            return Body(float(self._mass.sum()), Vector(cx, cy))
        if not 0 <= ref < self._num_blackholes:
            raise IndexError(
                f"reference index {ref} is not a black hole [0, {self._num_blackholes})"
            )
        return self.get(ref)

    def reset(self, i: int, ref: Optional[int]) -> int:
        """
        Recycle slot i as a new satellite orbiting black hole `ref`.

        If i is itself a black hole, the last black hole is moved into slot
        i, the black hole count drops by one and the freed slot becomes the
        new satellite. The number of bodies never changes. The new satellite
        always lies within the domain.

        Args:
            i: Slot to recycle
            ref: Index of the black hole to orbit. None (or no black holes
                at all) falls back to the domain center.

        Returns:
            Index of the slot that now holds the new satellite
        """
        i = self._check_index(i)
        center = self._reference_body(ref)

        slot = i
        k = self._num_blackholes
        if i < k:
            last = k - 1
            if i != last:
                self._mass[i] = self._mass[last]
                self._position[i] = self._position[last]
                self._velocity[i] = self._velocity[last]
                self._acceleration[i] = self._acceleration[last]
            self._num_blackholes = last
            slot = last

        self.set(slot, self._spawn_inside(center))
        return slot

    def _spawn_inside(self, center: Body) -> Body:
        """
        Generate a satellite of `center` that lies within the domain.

        Draws up to RESPAWN_ATTEMPTS satellites and keeps the first one
        inside the bounds. If none is, the last draw is clamped onto the
        domain; for a center inside the domain this never moves it further
        from the center.
        """
        bb = self._bounds
        for _ in range(RESPAWN_ATTEMPTS):
            body = self._generator.generate_satellite(center)
            if bb.contains(body.position.x, body.position.y):
                return body
        x = min(max(body.position.x, bb.min_x), bb.max_x)
        y = min(max(body.position.y, bb.min_y), bb.max_y)
        return Body(body.mass, Vector(x, y), body.velocity)

    def _choose_reference(self) -> Optional[int]:
        if self._num_blackholes == 0:
            return None
        return self._generator.choose(self._num_blackholes)

    def _recycle(self) -> int:
        """Recycle absorbed and out-of-bounds satellites. Returns how many."""
        k = self._num_blackholes
        if k >= self._n:
            return 0

        sats = self._position[k:]
        real = self._mass[k:] > 0

        if k > 0:
            d = sats[:, None, :] - self._position[None, :k, :]
            dist_sqrd = np.einsum("ijk,ijk->ij", d, d)
            absorbed = dist_sqrd < self._min_dist_sqrd
            hit = absorbed.any(axis=1) & real
            nearest = absorbed.argmax(axis=1)
        else:
            hit = np.zeros(self._n - k, dtype=bool)
            nearest = np.zeros(self._n - k, dtype=int)

        bb = self._bounds
        inside = (
            (sats[:, 0] >= bb.min_x)
            & (sats[:, 0] <= bb.max_x)
            & (sats[:, 1] >= bb.min_y)
            & (sats[:, 1] <= bb.max_y)
        )
        outside = ~inside & real & ~hit

        recycled = 0
        for offset in np.flatnonzero(hit | outside):
            ref = int(nearest[offset]) if hit[offset] else self._choose_reference()
            self.reset(k + int(offset), ref)
            recycled += 1
        return recycled

    # -------------------------------------------------------------------------
    # Time stepping
    # -------------------------------------------------------------------------

    def integrate(self, dt: float) -> int:
        """
        Advance velocities and positions by dt, then recycle.

        Semi-implicit Euler: v += a * dt, then r += v * dt.

        Returns:
            Number of recycled bodies
        """
        self._velocity += self._acceleration * dt
        self._position += self._velocity * dt
        return self._recycle()

    def evaluator(self, theta: float = 0.0) -> ForceEvaluator:
        """Force evaluator for theta: direct when theta == 0, Barnes-Hut otherwise."""
        theta = validate_theta(theta)
        if theta == 0:
            return self._direct
        self._barnes_hut.theta = theta
        return self._barnes_hut

    def step(self, dt: float, theta: float = 0.0) -> int:
        """
        Advance the simulation by one time step.

        Args:
            dt: Time step
            theta: Barnes-Hut accuracy; 0 selects the direct algorithm

        Returns:
            Number of recycled bodies
        """
        dt = validate_time_step(dt)
        self.evaluator(theta).compute(self)
        recycled = self.integrate(dt)

        self._time += dt
        self._step_count += 1
        self.trigger(self._event(EventType.tick, recycled))
        return recycled

    def run(self, steps: int, dt: float, theta: float = 0.0) -> Self:
        """
        Run a number of steps, firing start and end events around them.

        Returns:
            self (for chaining)
        """
        if steps < 0:
            raise ValidationError(f"steps must be >= 0, got {steps}")
        self.trigger(self._event(EventType.start))
        for _ in range(steps):
            self.step(dt, theta)
        self.trigger(self._event(EventType.end))
        return self

    def __repr__(self) -> str:
        return (
            f"Simulation(n={self._n}, num_blackholes={self._num_blackholes}, "
            f"step={self._step_count}, time={self._time:.3f})"
        )


__all__ = ["BoundsLike", "Simulation"]
