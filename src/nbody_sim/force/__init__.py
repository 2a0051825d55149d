"""
Force evaluation strategies.

Available strategies:
- DirectForce: Exact all-pairs summation, O(n^2)
- BarnesHutForce: Quadtree approximation, O(n log n)
"""

from ..base import CutoffPolicy
from .barnes_hut import BarnesHutForce
from .direct import DirectForce

__all__ = [
    "BarnesHutForce",
    "CutoffPolicy",
    "DirectForce",
]
