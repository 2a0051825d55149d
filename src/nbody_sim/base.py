"""
Base class for force evaluation strategies.

A force evaluator reads the current masses and positions of a simulation
and writes the net gravitational acceleration on every body into the
simulation's acceleration array. Strategies are interchangeable:

- DirectForce: exact all-pairs sum, O(n^2)
- BarnesHutForce: quadtree approximation, O(n log n)

Both apply the same minimum-distance cutoff (see CutoffPolicy), so pairs
closer than the simulation's min_dist never interact and Barnes-Hut
converges to the direct sum as theta goes to 0.

Gravitational constant is folded into the mass units (G = 1).
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional

import numpy as np

from .validation import validate_softening

if TYPE_CHECKING:
    from .simulation import Simulation


class CutoffPolicy(str, Enum):
    """
    Minimum-distance cutoff applied to each interacting mass.

    - plain: skip when |d|^2 < min_dist^2
    - mass_ln: skip when |d|^2 < min_dist^2 * max(1, ln(m))
    - mass_log10: skip when |d|^2 < min_dist^2 * max(1, log10(m))

    The mass-scaled variants widen the cutoff around heavy masses.
    """

    PLAIN = "plain"
    MASS_LN = "mass_ln"
    MASS_LOG10 = "mass_log10"

    def threshold(self, min_dist_sqrd: float, mass: float) -> float:
        """Squared distance below which a mass is skipped."""
        if self is CutoffPolicy.MASS_LN:
            return min_dist_sqrd * max(1.0, math.log(mass))
        if self is CutoffPolicy.MASS_LOG10:
            return min_dist_sqrd * max(1.0, math.log10(mass))
        return min_dist_sqrd

    def thresholds(self, min_dist_sqrd: float, masses: np.ndarray) -> np.ndarray:
        """Vectorized threshold() for an array of masses."""
        if self is CutoffPolicy.PLAIN:
            return np.full(masses.shape, min_dist_sqrd)
        # Empty slots give -inf, floored to the plain cutoff
        with np.errstate(divide="ignore"):
            log_m = np.log(masses) if self is CutoffPolicy.MASS_LN else np.log10(masses)
        return min_dist_sqrd * np.maximum(1.0, log_m)


class ForceEvaluator(ABC):
    """
    Abstract base class for all force evaluation strategies.

    Example:
        evaluator = DirectForce()
        evaluator.compute(sim)
        sim.integrate(0.1)
    """

    def __init__(
        self,
        *,
        cutoff: CutoffPolicy | str = CutoffPolicy.PLAIN,
        softening: Optional[float] = None,
    ) -> None:
        """
        Initialize evaluator.

        Args:
            cutoff: Minimum-distance cutoff policy
            softening: Softening length. If None, the simulation's own
                softening is used.
        """
        self._cutoff: CutoffPolicy = CutoffPolicy(cutoff)
        self._softening: Optional[float] = (
            validate_softening(softening) if softening is not None else None
        )

    @property
    def cutoff(self) -> CutoffPolicy:
        """Get the minimum-distance cutoff policy."""
        return self._cutoff

    @cutoff.setter
    def cutoff(self, value: CutoffPolicy | str) -> None:
        self._cutoff = CutoffPolicy(value)

    @property
    def softening(self) -> Optional[float]:
        """Get softening override (None = use the simulation's)."""
        return self._softening

    @softening.setter
    def softening(self, value: Optional[float]) -> None:
        """Set softening override."""
        self._softening = validate_softening(value) if value is not None else None

    def _epsilon_sqrd(self, sim: Simulation) -> float:
        eps = self._softening if self._softening is not None else sim.softening
        return eps * eps

    @abstractmethod
    def compute(self, sim: Simulation) -> np.ndarray:
        """
        Compute accelerations for every body of `sim`.

        Writes into sim.acceleration in place.

        Returns:
            The (n, 2) acceleration array
        """
        pass


__all__ = ["CutoffPolicy", "ForceEvaluator"]
