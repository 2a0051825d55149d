"""
Direct all-pairs gravitational acceleration.

For every body i the acceleration is the sum over all bodies j of

    a_i = m_j * d_ij / (|d_ij|^2 + eps^2)^(3/2),    d_ij = r_j - r_i

Pairs closer than the cutoff radius (min_dist for the plain policy) are
skipped, as in BarnesHutForce. This drops i == j and bounds the
acceleration from very close neighbours. O(n^2) per step; used as ground
truth and for small n.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np

from ..base import CutoffPolicy, ForceEvaluator
from ..types import DTYPE

if TYPE_CHECKING:
    from ..simulation import Simulation


class DirectForce(ForceEvaluator):
    """
    Exact O(n^2) force evaluation.

    Example:
        DirectForce().compute(sim)
    """

    def __init__(
        self,
        *,
        cutoff: CutoffPolicy | str = CutoffPolicy.PLAIN,
        softening: Optional[float] = None,
    ) -> None:
        super().__init__(cutoff=cutoff, softening=softening)

    def compute(self, sim: Simulation) -> np.ndarray:
        """Compute accelerations by summing over all pairs."""
        masses = sim.mass
        pos = sim.position
        acc = sim.acceleration
        eps_sq = self._epsilon_sqrd(sim)
        limit = self._cutoff.thresholds(sim.min_dist_sqrd, masses)

        acc.fill(0)
        for i in range(sim.n):
            if masses[i] == 0:
                continue
            d = pos - pos[i]
            dist_sqrd = d[:, 0] * d[:, 0] + d[:, 1] * d[:, 1]
            # min_dist > 0, so i == j (and any coincident body) is always cut off
            near = dist_sqrd < limit
            with np.errstate(divide="ignore"):
                inv_d_cubed = np.where(near, 0.0, (dist_sqrd + eps_sq) ** -1.5)
            weights = (masses * inv_d_cubed).astype(DTYPE, copy=False)
            acc[i] = weights @ d

        return acc


__all__ = ["DirectForce"]
