"""
Spatial data structures for efficient force calculations.

Provides bounding boxes and a mass quadtree for Barnes-Hut O(n log n)
force approximation.
"""

from .bounds import BoundingBox
from .quadtree import MERGE_EPSILON, MassQuadtree, QuadtreeIterator, QuadtreeNode

__all__ = ["BoundingBox", "MERGE_EPSILON", "MassQuadtree", "QuadtreeIterator", "QuadtreeNode"]
