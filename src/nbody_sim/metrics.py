"""
Simulation diagnostics.

Provides quantitative measures of a simulation state:
- Total mass and center of mass
- Linear momentum and kinetic energy
- Softened potential energy
- Relative error between two acceleration fields (e.g. Barnes-Hut vs direct)

All functions read the simulation's arrays and never modify them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from .types import Vector

if TYPE_CHECKING:
    from .simulation import Simulation


def total_mass(sim: Simulation) -> float:
    """Sum of all masses (empty slots count as zero)."""
    return float(sim.mass.sum())


def center_of_mass(sim: Simulation) -> Vector:
    """
    Mass-weighted mean position.

    Returns the zero vector for a simulation without mass.
    """
    m = total_mass(sim)
    if m == 0:
        return Vector.zero()
    cx, cy = (sim.mass @ sim.position) / m
    return Vector(float(cx), float(cy))


def linear_momentum(sim: Simulation) -> Vector:
    """Total momentum, sum of m * v."""
    px, py = sim.mass @ sim.velocity
    return Vector(float(px), float(py))


def kinetic_energy(sim: Simulation) -> float:
    """Sum of 1/2 m |v|^2."""
    v_sqrd = np.einsum("ij,ij->i", sim.velocity, sim.velocity)
    return float(0.5 * (sim.mass @ v_sqrd))


def potential_energy(sim: Simulation, softening: Optional[float] = None) -> float:
    """
    Softened gravitational potential energy.

    U = -sum_{i<j} m_i m_j / sqrt(|r_i - r_j|^2 + eps^2)

    Pairs at zero separation are skipped when eps is zero.

    Time Complexity: O(n^2)
    """
    eps = sim.softening if softening is None else float(softening)
    eps_sq = eps * eps
    energy = 0.0
    pos = sim.position
    for i in range(sim.n - 1):
        if sim.mass[i] == 0:
            continue
        d = pos[i + 1 :] - pos[i]
        dist = np.sqrt(np.einsum("ij,ij->i", d, d) + eps_sq)
        valid = dist > 0
        energy -= float(sim.mass[i] * np.sum(sim.mass[i + 1 :][valid] / dist[valid]))
    return energy


def max_relative_error(approx: np.ndarray, exact: np.ndarray) -> float:
    """
    Largest per-body relative error |approx - exact| / |exact|.

    Bodies whose exact vector is zero are compared absolutely.
    """
    approx = np.asarray(approx, dtype=float)
    exact = np.asarray(exact, dtype=float)
    if approx.shape != exact.shape:
        raise ValueError(f"shape mismatch: {approx.shape} != {exact.shape}")
    if approx.size == 0:
        return 0.0
    diff = np.linalg.norm(approx - exact, axis=-1)
    scale = np.linalg.norm(exact, axis=-1)
    rel = np.where(scale > 0, diff / np.where(scale > 0, scale, 1.0), diff)
    return float(rel.max())


def simulation_summary(sim: Simulation) -> dict[str, Any]:
    """
    Compute a summary of the simulation state.

    Returns:
        Dictionary with:
        - n: Number of body slots
        - num_blackholes: Number of black holes
        - total_mass: Total mass
        - center_of_mass: (x, y)
        - momentum: (px, py)
        - kinetic_energy: Kinetic energy
        - potential_energy: Softened potential energy
        - total_energy: Kinetic + potential
    """
    ke = kinetic_energy(sim)
    pe = potential_energy(sim)
    return {
        "n": sim.n,
        "num_blackholes": sim.num_blackholes,
        "total_mass": total_mass(sim),
        "center_of_mass": center_of_mass(sim).to_tuple(),
        "momentum": linear_momentum(sim).to_tuple(),
        "kinetic_energy": ke,
        "potential_energy": pe,
        "total_energy": ke + pe,
    }


__all__ = [
    "total_mass",
    "center_of_mass",
    "linear_momentum",
    "kinetic_energy",
    "potential_energy",
    "max_relative_error",
    "simulation_summary",
]
