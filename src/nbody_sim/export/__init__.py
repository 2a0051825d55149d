"""
Export functionality for simulations.

This module provides functions to move body lists in and out of a
simulation as JSON, for scenario files and external renderers.

Example usage:
    from nbody_sim import BoundingBox, Simulation
    from nbody_sim.export import from_json, to_json

    sim = Simulation.initialize(100, 5e6, BoundingBox(0, 500, 0, 500), 10.0)
    text = to_json(sim, indent=2)

    bodies, num_blackholes = from_json(text)
    copy = Simulation.from_bodies(
        bodies,
        bounds=sim.bounds,
        min_dist=sim.min_dist,
        num_blackholes=num_blackholes,
    )
"""

from .json import body_from_dict, body_to_dict, from_json, to_json

__all__ = [
    "body_from_dict",
    "body_to_dict",
    "from_json",
    "to_json",
]
