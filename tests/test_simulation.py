"""
Tests for the Simulation container, integration and recycling.
"""

import math

import numpy as np
import pytest

from nbody_sim import (
    BarnesHutForce,
    Body,
    BoundingBox,
    DirectForce,
    EventType,
    SatelliteGenerator,
    Simulation,
    Vector,
)
from nbody_sim.force import CutoffPolicy
from nbody_sim.validation import (
    CapacityError,
    ConfigurationError,
    InvalidBodyError,
    InvalidBoundsError,
    RecyclingFallbackWarning,
    ValidationError,
)

BOX = BoundingBox(0.0, 500.0, 0.0, 500.0)

# =============================================================================
# Test Fixtures
# =============================================================================


def create_sim(bodies, num_blackholes=0, min_dist=10.0, **kwargs):
    """Simulation over the 500x500 box holding `bodies`."""
    return Simulation.from_bodies(
        bodies, bounds=BOX, min_dist=min_dist, num_blackholes=num_blackholes, **kwargs
    )


def ring_generator(radius=50.0, seed=1):
    """Generator that always places satellites exactly `radius` from the center."""
    return SatelliteGenerator(min_radius=radius, max_radius=radius, random_seed=seed)


def distance(body, point):
    return math.hypot(body.position.x - point[0], body.position.y - point[1])


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Tests for building simulations."""

    def test_slots_start_empty(self):
        """A new simulation holds n zero-mass bodies at the origin."""
        sim = Simulation(5, bounds=BOX, min_dist=1.0)
        assert sim.n == len(sim) == 5
        assert sim.mass.shape == (5,)
        assert sim.position.shape == (5, 2)
        assert np.all(sim.mass == 0.0)
        assert sim.num_blackholes == 0
        assert sim.time == 0.0
        assert sim.step_count == 0

    def test_arrays_are_float64(self):
        """All state arrays use double precision."""
        sim = Simulation(2, bounds=BOX, min_dist=1.0)
        for array in (sim.mass, sim.position, sim.velocity, sim.acceleration):
            assert array.dtype == np.float64

    def test_bounds_from_corner_pair(self):
        """Bounds may be given as (min_corner, max_corner)."""
        sim = Simulation(1, bounds=((0, 0), (100, 50)), min_dist=1.0)
        assert sim.bounds == BoundingBox(0.0, 100.0, 0.0, 50.0)
        assert sim.min_position == Vector(0.0, 0.0)
        assert sim.max_position == Vector(100.0, 50.0)

    def test_invalid_body_count(self):
        """At least one body is required."""
        with pytest.raises(ConfigurationError, match="body count"):
            Simulation(0, bounds=BOX, min_dist=1.0)

    def test_degenerate_bounds(self):
        """Zero-width bounds are rejected."""
        with pytest.raises(InvalidBoundsError):
            Simulation(1, bounds=((0, 0), (0, 10)), min_dist=1.0)
        with pytest.raises(InvalidBoundsError):
            Simulation(1, bounds=BoundingBox(0.0, 10.0, 5.0, 5.0), min_dist=1.0)

    def test_invalid_min_dist(self):
        """min_dist must be positive."""
        with pytest.raises(ConfigurationError, match="min_dist"):
            Simulation(1, bounds=BOX, min_dist=0.0)

    def test_invalid_softening(self):
        """Softening must be non-negative."""
        with pytest.raises(ConfigurationError, match="softening"):
            Simulation(1, bounds=BOX, min_dist=1.0, softening=-1.0)

    def test_too_many_blackholes(self):
        """num_blackholes cannot exceed n."""
        with pytest.raises(ConfigurationError, match="num_blackholes"):
            Simulation(3, bounds=BOX, min_dist=1.0, num_blackholes=4)

    def test_cutoff_option(self):
        """The Barnes-Hut cutoff policy is configurable by name."""
        sim = Simulation(1, bounds=BOX, min_dist=1.0, cutoff="mass_ln")
        assert sim.cutoff is CutoffPolicy.MASS_LN
        assert sim.evaluator(0.0).cutoff is CutoffPolicy.MASS_LN
        sim.cutoff = CutoffPolicy.PLAIN
        assert sim.cutoff is CutoffPolicy.PLAIN
        assert sim.evaluator(0.0).cutoff is CutoffPolicy.PLAIN
        assert sim.evaluator(0.5).cutoff is CutoffPolicy.PLAIN

    def test_direct_step_cuts_off_close_pairs(self):
        """A direct step never sees near-unbounded accelerations."""
        bodies = [
            Body(1.0, Vector(100.0, 100.0)),
            Body(1.0, Vector(100.0 + 1e-6, 100.0)),
        ]
        sim = create_sim(bodies, min_dist=10.0)
        sim.step(0.1)
        assert np.all(sim.acceleration == 0.0)
        assert np.all(sim.velocity == 0.0)

    def test_min_dist_setter_updates_square(self):
        """Changing min_dist refreshes min_dist_sqrd."""
        sim = Simulation(1, bounds=BOX, min_dist=2.0)
        assert sim.min_dist_sqrd == 4.0
        sim.min_dist = 3.0
        assert sim.min_dist_sqrd == 9.0

    def test_repr(self):
        """repr summarizes the state."""
        sim = Simulation(4, bounds=BOX, min_dist=1.0, num_blackholes=1)
        assert repr(sim).startswith("Simulation(n=4, num_blackholes=1")


class TestInitialize:
    """Tests for galaxy initialization."""

    def test_galaxy_layout(self):
        """One central black hole at rest, satellites orbiting within range."""
        sim = Simulation.initialize(50, 5e6, BOX, 10.0, random_seed=42)

        assert sim.n == 50
        assert sim.num_blackholes == 1
        center = sim.get(0)
        assert center.mass == 5e6
        assert center.position == Vector(250.0, 250.0)
        assert center.velocity == Vector.zero()

        for body in sim.bodies()[1:]:
            assert body.mass > 0
            r = distance(body, (250.0, 250.0))
            assert 10.0 - 1e-9 <= r <= 200.0 + 1e-9
            assert BOX.contains(body.position.x, body.position.y)

    def test_same_seed_same_galaxy(self):
        """Initialization is reproducible with a seed."""
        a = Simulation.initialize(30, 1e5, BOX, 5.0, random_seed=7)
        b = Simulation.initialize(30, 1e5, BOX, 5.0, random_seed=7)
        np.testing.assert_array_equal(a.position, b.position)
        np.testing.assert_array_equal(a.velocity, b.velocity)
        np.testing.assert_array_equal(a.mass, b.mass)

    def test_different_seed_different_galaxy(self):
        """Different seeds give different satellites."""
        a = Simulation.initialize(30, 1e5, BOX, 5.0, random_seed=7)
        b = Simulation.initialize(30, 1e5, BOX, 5.0, random_seed=8)
        assert not np.array_equal(a.position, b.position)

    def test_single_body_galaxy(self):
        """n = 1 is just the black hole."""
        sim = Simulation.initialize(1, 10.0, BOX, 1.0)
        assert sim.num_blackholes == 1
        assert sim.get(0).mass == 10.0

    def test_center_mass_must_be_positive(self):
        """A galaxy needs a massive center."""
        with pytest.raises(ValidationError, match="center_mass"):
            Simulation.initialize(10, 0.0, BOX, 1.0)


# =============================================================================
# Body access
# =============================================================================


class TestBodyAccess:
    """Tests for set, get and snapshot."""

    def test_set_get_round_trip(self):
        """get returns what set stored."""
        sim = Simulation(2, bounds=BOX, min_dist=1.0)
        body = Body(3.0, Vector(10.0, 20.0), Vector(-1.0, 2.0))
        sim.set(1, body)
        assert sim.get(1) == body

    def test_set_zeroes_acceleration(self):
        """Overwriting a slot clears its acceleration."""
        sim = Simulation(1, bounds=BOX, min_dist=1.0)
        sim.acceleration[0] = (5.0, 5.0)
        sim.set(0, Body(1.0, Vector(1.0, 1.0)))
        assert np.all(sim.acceleration[0] == 0.0)

    def test_index_out_of_range(self):
        """Indices outside [0, n) raise IndexError."""
        sim = Simulation(2, bounds=BOX, min_dist=1.0)
        with pytest.raises(IndexError):
            sim.get(2)
        with pytest.raises(IndexError):
            sim.set(-1, Body(1.0, Vector()))

    def test_invalid_bodies_rejected(self):
        """Negative mass and non-finite components are rejected."""
        sim = Simulation(1, bounds=BOX, min_dist=1.0)
        with pytest.raises(InvalidBodyError):
            sim.set(0, Body(-1.0, Vector()))
        with pytest.raises(InvalidBodyError):
            sim.set(0, Body(1.0, Vector(float("nan"), 0.0)))

    def test_is_blackhole(self):
        """The leading num_blackholes slots are black holes."""
        sim = Simulation(3, bounds=BOX, min_dist=1.0, num_blackholes=2)
        assert sim.is_blackhole(0)
        assert sim.is_blackhole(1)
        assert not sim.is_blackhole(2)

    def test_snapshot_is_read_only_copy(self):
        """Snapshots cannot be written and do not follow later changes."""
        sim = create_sim([Body(1.0, Vector(10.0, 10.0)), Body(2.0, Vector(20.0, 20.0))], 1)
        snap = sim.snapshot()

        assert snap.num_blackholes == 1
        with pytest.raises(ValueError):
            snap.positions[0, 0] = 99.0
        with pytest.raises(ValueError):
            snap.masses[0] = 99.0

        sim.position[0] = (300.0, 300.0)
        assert tuple(snap.positions[0]) == (10.0, 10.0)


class TestInjectMass:
    """Tests for converting satellites into black holes."""

    def test_inject_fills_next_slot(self):
        """Each injection converts the first satellite slot."""
        sim = create_sim([Body(1.0, Vector(10.0 * i, 10.0)) for i in range(1, 4)])

        assert sim.inject_mass((100.0, 100.0), 500.0) == 0
        assert sim.inject_mass(Vector(200.0, 200.0), 600.0, velocity=(1.0, 0.0)) == 1
        assert sim.num_blackholes == 2
        assert sim.get(0) == Body(500.0, Vector(100.0, 100.0))
        assert sim.get(1).velocity == Vector(1.0, 0.0)

    def test_capacity_error_when_full(self):
        """No satellite slot left to convert."""
        sim = create_sim([Body(1.0, Vector(10.0, 10.0))])
        sim.inject_mass((50.0, 50.0), 10.0)
        with pytest.raises(CapacityError):
            sim.inject_mass((60.0, 60.0), 10.0)
        assert sim.num_blackholes == 1

    def test_mass_must_be_positive(self):
        """Black holes need positive mass."""
        sim = create_sim([Body(1.0, Vector(10.0, 10.0))])
        with pytest.raises(ValidationError, match="mass"):
            sim.inject_mass((50.0, 50.0), 0.0)


# =============================================================================
# Integration
# =============================================================================


class TestIntegration:
    """Tests for integrate and step."""

    def test_integrate_at_rest_is_identity(self):
        """Zero velocity and acceleration leave positions unchanged."""
        bodies = [Body(1.0, Vector(100.0, 100.0)), Body(2.0, Vector(300.0, 200.0))]
        sim = create_sim(bodies)
        before = sim.position.copy()

        assert sim.integrate(0.5) == 0
        assert sim.integrate(0.5) == 0
        np.testing.assert_array_equal(sim.position, before)

    def test_semi_implicit_euler(self):
        """Velocity is updated first, then position with the new velocity."""
        sim = create_sim([Body(1.0, Vector(100.0, 100.0), Vector(1.0, 0.0))])
        sim.acceleration[0] = (2.0, 0.0)

        sim.integrate(0.5)

        assert tuple(sim.velocity[0]) == (2.0, 0.0)
        assert tuple(sim.position[0]) == (101.0, 100.0)

    def test_two_body_direct_step(self):
        """One direct step of a satellite 100 units from a 5e6 black hole."""
        bodies = [
            Body(5e6, Vector(250.0, 250.0)),
            Body(1.0, Vector(350.0, 250.0), Vector(0.0, 200.0)),
        ]
        sim = create_sim(bodies, num_blackholes=1)

        recycled = sim.step(0.1)

        # a = M / r^2 = 500 toward the black hole
        assert recycled == 0
        assert sim.acceleration[1, 0] == pytest.approx(-500.0)
        assert tuple(sim.velocity[1]) == pytest.approx((-50.0, 200.0))
        assert tuple(sim.position[1]) == pytest.approx((345.0, 270.0))
        assert sim.step_count == 1
        assert sim.time == pytest.approx(0.1)

    def test_barnes_hut_step_matches_direct_for_two_bodies(self):
        """With only two bodies both evaluators agree."""
        bodies = [
            Body(5e6, Vector(250.0, 250.0)),
            Body(1.0, Vector(350.0, 250.0), Vector(0.0, 200.0)),
        ]
        direct = create_sim(bodies, num_blackholes=1)
        approx = create_sim(bodies, num_blackholes=1)

        direct.step(0.1, theta=0.0)
        approx.step(0.1, theta=0.5)

        np.testing.assert_allclose(approx.position, direct.position, rtol=1e-12)

    def test_evaluator_selection(self):
        """theta = 0 selects direct evaluation, anything else Barnes-Hut."""
        sim = Simulation(1, bounds=BOX, min_dist=1.0)
        assert isinstance(sim.evaluator(0.0), DirectForce)
        bh = sim.evaluator(0.7)
        assert isinstance(bh, BarnesHutForce)
        assert bh.theta == 0.7
        with pytest.raises(ValidationError):
            sim.evaluator(-1.0)

    def test_invalid_time_step(self):
        """dt must be positive."""
        sim = Simulation(1, bounds=BOX, min_dist=1.0)
        with pytest.raises(ValidationError, match="dt"):
            sim.step(0.0)
        with pytest.raises(ValidationError):
            sim.step(-0.1)

    def test_body_count_constant_over_run(self):
        """Recycling keeps every slot occupied and inside the domain."""
        sim = Simulation.initialize(100, 5e6, BOX, 10.0, random_seed=5)
        sim.run(20, 0.01, theta=0.5)

        assert sim.n == 100
        assert sim.num_blackholes == 1
        assert np.all(sim.mass > 0)
        center = sim.position[0]
        for i in range(1, sim.n):
            x, y = sim.position[i]
            assert BOX.contains(x, y)
            assert math.hypot(x - center[0], y - center[1]) >= 10.0 - 1e-9


# =============================================================================
# Recycling
# =============================================================================


class TestRecycling:
    """Tests for absorption, out-of-bounds respawn and reset."""

    def test_absorbed_satellite_respawns(self):
        """A satellite within min_dist of a black hole is replaced."""
        bodies = [Body(1000.0, Vector(250.0, 250.0)), Body(1.0, Vector(255.0, 250.0))]
        sim = create_sim(bodies, num_blackholes=1, generator=ring_generator(50.0))

        assert sim.integrate(0.01) == 1
        assert sim.num_blackholes == 1
        assert sim.get(0).mass == 1000.0
        satellite = sim.get(1)
        assert satellite.mass > 0
        assert distance(satellite, (250.0, 250.0)) == pytest.approx(50.0)

    def test_absorption_prefers_lowest_index(self):
        """A satellite inside two absorption radii orbits the first black hole."""
        bodies = [
            Body(1000.0, Vector(250.0, 250.0)),
            Body(1000.0, Vector(256.0, 250.0)),
            Body(1.0, Vector(253.0, 250.0)),
        ]
        sim = create_sim(bodies, num_blackholes=2, generator=ring_generator(50.0))

        assert sim.integrate(0.01) == 1
        assert distance(sim.get(2), (250.0, 250.0)) == pytest.approx(50.0)

    def test_out_of_bounds_satellite_respawns(self):
        """A satellite that leaves the domain is respawned near a black hole."""
        bodies = [Body(5e6, Vector(250.0, 250.0)), Body(1.0, Vector(600.0, 250.0))]
        sim = create_sim(bodies, num_blackholes=1, random_seed=3)

        assert sim.step(0.1) == 1
        satellite = sim.get(1)
        assert BOX.contains(satellite.position.x, satellite.position.y)
        center = sim.position[0]
        assert distance(satellite, center) <= sim.generator.max_radius + 1e-9

    @pytest.mark.parametrize("seed", range(20))
    def test_respawn_near_edge_stays_in_bounds(self, seed):
        """A black hole near the edge still gets respawned satellites inside the domain."""
        bodies = [Body(5e6, Vector(480.0, 250.0)), Body(1.0, Vector(600.0, 250.0))]
        sim = create_sim(bodies, num_blackholes=1, random_seed=seed)

        assert sim.integrate(0.001) == 1
        satellite = sim.get(1)
        assert BOX.contains(satellite.position.x, satellite.position.y)
        assert distance(satellite, sim.position[0]) <= sim.generator.max_radius + 1e-9
        # A respawned satellite is not recycled again on the next pass
        assert sim.integrate(0.0) == 0

    def test_respawn_clamps_when_every_draw_is_outside(self):
        """Satellites of a black hole outside the domain are clamped onto it."""
        bodies = [Body(1000.0, Vector(600.0, 250.0)), Body(1.0, Vector(605.0, 250.0))]
        sim = create_sim(bodies, num_blackholes=1, generator=ring_generator(50.0))

        assert sim.integrate(0.01) == 1
        satellite = sim.get(1)
        assert satellite.position.x == 500.0
        assert BOX.contains(satellite.position.x, satellite.position.y)

    def test_blackholes_are_not_respawned(self):
        """Black holes outside the domain stay where they are."""
        bodies = [Body(10.0, Vector(600.0, 600.0)), Body(1.0, Vector(100.0, 100.0))]
        sim = create_sim(bodies, num_blackholes=1)

        assert sim.integrate(0.1) == 0
        assert sim.get(0).position == Vector(600.0, 600.0)
        assert sim.num_blackholes == 1

    def test_empty_slots_are_not_recycled(self):
        """Zero-mass slots are skipped even when outside the domain."""
        sim = Simulation(3, bounds=BOX, min_dist=10.0, num_blackholes=1)
        sim.set(0, Body(100.0, Vector(250.0, 250.0)))
        sim.set(1, Body(0.0, Vector(-50.0, -50.0)))
        sim.set(2, Body(0.0, Vector(250.0, 252.0)))

        assert sim.integrate(0.1) == 0
        assert sim.mass[1] == 0.0

    def test_zero_blackholes_fallback_warns(self):
        """Without black holes, respawn around the domain center with a warning."""
        bodies = [Body(1.0, Vector(100.0, 100.0)), Body(1.0, Vector(600.0, 250.0))]
        sim = create_sim(bodies, generator=ring_generator(50.0))

        with pytest.warns(RecyclingFallbackWarning):
            recycled = sim.integrate(0.1)

        assert recycled == 1
        assert distance(sim.get(1), (250.0, 250.0)) == pytest.approx(50.0)

    def test_reset_satellite(self):
        """Resetting a satellite keeps its slot and the black hole count."""
        bodies = [Body(1000.0, Vector(100.0, 100.0)), Body(1.0, Vector(400.0, 400.0))]
        sim = create_sim(bodies, num_blackholes=1, generator=ring_generator(30.0))

        assert sim.reset(1, 0) == 1
        assert sim.num_blackholes == 1
        assert distance(sim.get(1), (100.0, 100.0)) == pytest.approx(30.0)

    def test_reset_blackhole_swaps_last(self):
        """Resetting a black hole moves the last one into its slot."""
        bodies = [
            Body(10.0, Vector(100.0, 100.0)),
            Body(20.0, Vector(200.0, 200.0)),
            Body(30.0, Vector(300.0, 300.0)),
            Body(1.0, Vector(400.0, 400.0)),
        ]
        sim = create_sim(bodies, num_blackholes=3, generator=ring_generator(40.0))

        slot = sim.reset(0, 2)

        assert slot == 2
        assert sim.num_blackholes == 2
        assert sim.get(0) == Body(30.0, Vector(300.0, 300.0))
        assert sim.get(1) == Body(20.0, Vector(200.0, 200.0))
        # The new satellite orbits where the reference black hole was
        assert distance(sim.get(2), (300.0, 300.0)) == pytest.approx(40.0)
        assert sim.get(3) == Body(1.0, Vector(400.0, 400.0))
        assert sim.n == 4

    def test_reset_last_blackhole_around_itself(self):
        """A black hole can be recycled into a satellite of its old position."""
        bodies = [Body(10.0, Vector(100.0, 100.0)), Body(20.0, Vector(200.0, 200.0))]
        sim = create_sim(bodies, num_blackholes=2, generator=ring_generator(40.0))

        assert sim.reset(1, 1) == 1
        assert sim.num_blackholes == 1
        assert distance(sim.get(1), (200.0, 200.0)) == pytest.approx(40.0)

    def test_reset_without_reference_warns(self):
        """ref = None falls back to the domain center."""
        sim = create_sim([Body(1.0, Vector(10.0, 10.0))], generator=ring_generator(20.0))
        with pytest.warns(RecyclingFallbackWarning):
            sim.reset(0, None)
        assert distance(sim.get(0), (250.0, 250.0)) == pytest.approx(20.0)

    def test_reset_invalid_indices(self):
        """Slot and reference must be valid."""
        bodies = [Body(10.0, Vector(100.0, 100.0)), Body(1.0, Vector(200.0, 200.0))]
        sim = create_sim(bodies, num_blackholes=1)
        with pytest.raises(IndexError):
            sim.reset(5, 0)
        with pytest.raises(IndexError):
            sim.reset(1, 1)


# =============================================================================
# Events
# =============================================================================


class TestEvents:
    """Tests for the event system."""

    def test_run_fires_start_ticks_end(self):
        """run() brackets its ticks with start and end."""
        events = []
        sim = Simulation.initialize(
            10,
            1e4,
            BOX,
            5.0,
            random_seed=1,
            on_start=events.append,
            on_tick=events.append,
            on_end=events.append,
        )

        result = sim.run(3, 0.01)

        assert result is sim
        types = [e["type"] for e in events]
        assert types == [EventType.start, EventType.tick, EventType.tick, EventType.tick,
                         EventType.end]
        assert [e["step"] for e in events] == [0, 1, 2, 3, 3]
        assert events[-1]["time"] == pytest.approx(0.03)
        assert sim.step_count == 3

    def test_on_by_name_chains(self):
        """on() accepts event names and returns the simulation."""
        ticks = []
        sim = Simulation.initialize(5, 1e4, BOX, 5.0, random_seed=1)
        assert sim.on("tick", ticks.append) is sim

        sim.step(0.01)

        assert len(ticks) == 1
        assert ticks[0]["type"] is EventType.tick
        assert "recycled" in ticks[0]

    def test_negative_steps_rejected(self):
        """run() needs a non-negative step count."""
        sim = Simulation(1, bounds=BOX, min_dist=1.0)
        with pytest.raises(ValidationError, match="steps"):
            sim.run(-1, 0.1)
