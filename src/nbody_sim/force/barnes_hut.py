"""
Barnes-Hut gravitational acceleration.

Builds a MassQuadtree from the current positions and masses, then for each
body walks the tree with a QuadtreeIterator. Every admissible node adds

    m_node * d / (|d|^2 + eps^2)^(3/2),    d = r_node - r_i

Nodes closer than the cutoff radius are skipped. This drops the body's own
leaf (d = 0) and bounds the acceleration from very close neighbours.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np

from ..base import CutoffPolicy, ForceEvaluator
from ..spatial.quadtree import MassQuadtree, QuadtreeIterator
from ..validation import validate_theta

if TYPE_CHECKING:
    from ..simulation import Simulation


class BarnesHutForce(ForceEvaluator):
    """
    O(n log n) force evaluation using a mass quadtree.

    The theta parameter controls the accuracy/speed tradeoff:
    - theta = 0: Exact calculation (every leaf is visited)
    - theta = 0.5: Good balance (recommended)
    - theta = 1.0+: Fast but less accurate

    Example:
        BarnesHutForce(theta=0.5).compute(sim)
    """

    def __init__(
        self,
        theta: float = 0.5,
        *,
        cutoff: CutoffPolicy | str = CutoffPolicy.PLAIN,
        softening: Optional[float] = None,
    ) -> None:
        """
        Initialize Barnes-Hut evaluator.

        Args:
            theta: Barnes-Hut threshold (0 = exact, higher = more approximation)
            cutoff: Minimum-distance cutoff policy
            softening: Softening length override
        """
        super().__init__(cutoff=cutoff, softening=softening)
        self._theta: float = validate_theta(theta)

    @property
    def theta(self) -> float:
        """Get Barnes-Hut theta parameter (accuracy)."""
        return self._theta

    @theta.setter
    def theta(self, value: float) -> None:
        """Set Barnes-Hut theta parameter."""
        self._theta = validate_theta(value)

    def build_tree(self, sim: Simulation) -> MassQuadtree:
        """Build a quadtree over the simulation's domain from its current state."""
        return MassQuadtree(sim.position, sim.mass, sim.bounds.square())

    def compute(self, sim: Simulation) -> np.ndarray:
        """Compute accelerations using the Barnes-Hut approximation."""
        tree = self.build_tree(sim)
        masses = sim.mass
        pos = sim.position
        acc = sim.acceleration
        eps_sq = self._epsilon_sqrd(sim)
        min_dist_sqrd = sim.min_dist_sqrd
        cutoff = self._cutoff

        acc.fill(0)
        for i in range(sim.n):
            if masses[i] == 0:
                continue
            x = float(pos[i, 0])
            y = float(pos[i, 1])
            ax, ay = 0.0, 0.0

            for node in QuadtreeIterator(x, y, self._theta, tree.root, tree.bounds):
                dx = node.x - x
                dy = node.y - y
                d_sqrd = dx * dx + dy * dy
                if d_sqrd < cutoff.threshold(min_dist_sqrd, node.mass):
                    continue
                inv_d_cubed = (d_sqrd + eps_sq) ** -1.5
                ax += node.mass * dx * inv_d_cubed
                ay += node.mass * dy * inv_d_cubed

            acc[i, 0] = ax
            acc[i, 1] = ay

        return acc


__all__ = ["BarnesHutForce"]
