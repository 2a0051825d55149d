"""
Mass-aggregating quadtree for Barnes-Hut force approximation.

The quadtree recursively subdivides 2D space into quadrants. Every node
stores the total mass and center of mass of everything below it, which
lets distant clusters stand in for all of their bodies and enables
O(n log n) approximate n-body force calculations.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from ..validation import validate_theta
from .bounds import BoundingBox

# Two points closer than this on both axes are merged into one pseudo-body
# instead of being split further. Cells narrower than this are never split.
MERGE_EPSILON = 1e-4


@dataclass
class QuadtreeNode:
    """
    A node in the mass quadtree.

    Attributes:
        x, y: Center of mass of the bodies in this subtree
        mass: Total mass of the bodies in this subtree (0 = empty)
        children: Four optional child quadrants, indexed as BoundingBox.quadrant()
    """

    x: float = 0.0
    y: float = 0.0
    mass: float = 0.0
    children: List[Optional[QuadtreeNode]] = field(default_factory=lambda: [None, None, None, None])

    def is_leaf(self) -> bool:
        """True if all four child slots are empty."""
        return all(child is None for child in self.children)

    def is_empty(self) -> bool:
        """True if this node holds no mass."""
        return self.mass == 0

    def add_mass(self, x: float, y: float, m: float) -> None:
        """Fold a point mass into this node's aggregate."""
        total = self.mass + m
        self.x = (self.mass * self.x + m * x) / total
        self.y = (self.mass * self.y + m * y) / total
        self.mass = total


class MassQuadtree:
    """
    Quadtree that keeps track of centers of mass.

    Built fresh from a set of positions and masses; values are copied in, so
    the tree holds no reference to the arrays it was built from.

    Usage:
        tree = MassQuadtree(positions, masses, BoundingBox(0, 500, 0, 500))
        for node in tree.iter_from(x, y, theta=0.5):
            ...  # accumulate node.mass at (node.x, node.y)

    Insertion walks down the tree updating every aggregate on the path. When
    the walk ends on a leaf that already holds a point, both points are
    pushed down a chain of single-child cells until their quadrants differ.
    Points that cannot be separated (closer than MERGE_EPSILON on both axes,
    or still together once the cell is narrower than MERGE_EPSILON) stay
    merged as a single pseudo-body at their center of mass, which bounds the
    tree depth for coincident input.
    """

    def __init__(
        self,
        positions: Optional[Sequence[Sequence[float]]] = None,
        masses: Optional[Sequence[float]] = None,
        bounds: BoundingBox = BoundingBox(0.0, 1.0, 0.0, 1.0),
    ) -> None:
        """
        Build a quadtree by inserting every body in order.

        Args:
            positions: Sequence of (x, y) pairs (or an (n, 2) array)
            masses: Sequence of n masses; zero-mass entries are skipped
            bounds: Region covered by the root node
        """
        self.root = QuadtreeNode()
        self.bounds = bounds
        self.body_count = 0

        if positions is None or masses is None:
            return
        if len(positions) != len(masses):
            raise ValueError(
                f"positions and masses differ in length: {len(positions)} != {len(masses)}"
            )
        for (x, y), m in zip(positions, masses):
            self.insert(float(x), float(y), float(m))

    def insert(self, x: float, y: float, m: float) -> None:
        """Insert a point mass, keeping every aggregate on its path up to date."""
        if m == 0:
            return
        self.body_count += 1

        node = self.root
        if node.is_empty():
            node.x, node.y, node.mass = x, y, m
            return

        bb = self.bounds
        while not node.is_leaf():
            node.add_mass(x, y, m)
            quadrant = bb.quadrant(x, y)
            child = node.children[quadrant]
            if child is None:
                node.children[quadrant] = QuadtreeNode(x, y, m)
                return
            node = child
            bb = bb.child(quadrant)

        self._split_leaf(node, bb, x, y, m)

    def _split_leaf(self, node: QuadtreeNode, bb: BoundingBox, x: float, y: float, m: float) -> None:
        """Separate the point held by leaf `node` from the new point (x, y, m)."""
        old_x, old_y, old_m = node.x, node.y, node.mass
        node.add_mass(x, y, m)

        if abs(old_x - x) < MERGE_EPSILON and abs(old_y - y) < MERGE_EPSILON:
            return

        while bb.width() >= MERGE_EPSILON:
            q_old = bb.quadrant(old_x, old_y)
            q_new = bb.quadrant(x, y)
            if q_old != q_new:
                node.children[q_old] = QuadtreeNode(old_x, old_y, old_m)
                node.children[q_new] = QuadtreeNode(x, y, m)
                return
            # Both points share a quadrant: extend the single-child chain
            child = QuadtreeNode(node.x, node.y, node.mass)
            node.children[q_old] = child
            node = child
            bb = bb.child(q_old)

    def iter_from(self, x: float, y: float, theta: float) -> QuadtreeIterator:
        """Iterate the admissible nodes for a query point, see QuadtreeIterator."""
        return QuadtreeIterator(x, y, theta, self.root, self.bounds)

    def leaves(self) -> List[QuadtreeNode]:
        """All non-empty leaf nodes."""
        result: List[QuadtreeNode] = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                if not node.is_empty():
                    result.append(node)
                continue
            stack.extend(child for child in node.children if child is not None)
        return result

    def depth(self) -> int:
        """Number of levels below the root (0 for an empty or single-body tree)."""
        deepest = 0
        stack: List[Tuple[QuadtreeNode, int]] = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((child, level + 1) for child in node.children if child is not None)
        return deepest


class QuadtreeIterator:
    """
    Barnes-Hut traversal of a mass quadtree from a query point.

    Whether a node is far enough away from the query point depends on s/d,
    where s is the width of the node's region and d the distance from the
    query point to the node's center of mass. The node is yielded as a
    single aggregate when s/d < theta; leaves are always yielded. Otherwise
    its children are visited.

    Larger theta is faster and less accurate. With theta = 0 no internal
    node is admissible and every leaf is yielded (a direct sum).

    The sequence is lazy, finite and single-pass. Its order follows the
    depth-first stack and carries no physical meaning.
    """

    def __init__(
        self,
        x: float,
        y: float,
        theta: float,
        tree: QuadtreeNode,
        bounds: BoundingBox,
    ) -> None:
        self.x = x
        self.y = y
        self.theta = validate_theta(theta)
        self._stack: List[Tuple[QuadtreeNode, BoundingBox]] = []
        if not tree.is_empty():
            self._stack.append((tree, bounds))

    def __iter__(self) -> Iterator[QuadtreeNode]:
        return self

    def __next__(self) -> QuadtreeNode:
        while self._stack:
            node, bb = self._stack.pop()

            if node.is_leaf():
                return node

            d = math.hypot(node.x - self.x, node.y - self.y)
            s = bb.width()
            ratio = s / d if d > 0 else math.inf
            if ratio < self.theta:
                return node

            # Not far enough away: visit the children instead
            for quadrant, child in enumerate(node.children):
                if child is not None:
                    self._stack.append((child, bb.child(quadrant)))

        raise StopIteration


__all__ = ["MERGE_EPSILON", "MassQuadtree", "QuadtreeIterator", "QuadtreeNode"]
