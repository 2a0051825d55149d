"""
Axis-aligned bounding boxes that split into quadrants.

Quadrant numbering uses bit 0 for the x half and bit 1 for the y half:

    +---+---+
    | 0 | 1 |    0 = low x, low y      1 = high x, low y
    +---+---+
    | 2 | 3 |    2 = low x, high y     3 = high x, high y
    +---+---+

(y grows downward, as in screen coordinates.)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..types import Vector


@dataclass(frozen=True)
class BoundingBox:
    """
    Immutable axis-aligned 2D region.

    Child boxes are derived with child(); a box is never mutated.
    """

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @classmethod
    def from_vectors(cls, min_corner: Vector, max_corner: Vector) -> BoundingBox:
        """Build a box from its minimum and maximum corners."""
        return cls(
            float(min_corner.x), float(max_corner.x), float(min_corner.y), float(max_corner.y)
        )

    @property
    def cx(self) -> float:
        return (self.max_x + self.min_x) / 2

    @property
    def cy(self) -> float:
        return (self.max_y + self.min_y) / 2

    @property
    def min_corner(self) -> Vector:
        return Vector(self.min_x, self.min_y)

    @property
    def max_corner(self) -> Vector:
        return Vector(self.max_x, self.max_y)

    def center(self) -> tuple[float, float]:
        """Midpoint of the box."""
        return self.cx, self.cy

    def width(self) -> float:
        """X extent of the box (quadtree cells are square, so this is the cell size)."""
        return self.max_x - self.min_x

    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, x: float, y: float) -> bool:
        """Check if point (x, y) is within this box (edges included)."""
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def quadrant(self, x: float, y: float) -> int:
        """
        Get quadrant index for a point.

        Coordinates equal to the center map to the high half.

        Returns:
            0..3, see module docstring
        """
        x_bit = 1 if x >= self.cx else 0
        y_bit = 1 if y >= self.cy else 0
        return x_bit + (y_bit << 1)

    def child(self, quadrant: int) -> BoundingBox:
        """
        Get the sub-box for a quadrant.

        Any quadrant outside 0..3 returns this box unchanged.
        """
        cx, cy = self.cx, self.cy
        if quadrant == 0:
            return BoundingBox(self.min_x, cx, self.min_y, cy)
        if quadrant == 1:
            return BoundingBox(cx, self.max_x, self.min_y, cy)
        if quadrant == 2:
            return BoundingBox(self.min_x, cx, cy, self.max_y)
        if quadrant == 3:
            return BoundingBox(cx, self.max_x, cy, self.max_y)
        return self

    def square(self) -> BoundingBox:
        """Smallest square box with the same center that covers this one."""
        # Use max dimension to ensure square region
        half = max(self.width(), self.height()) / 2
        cx, cy = self.cx, self.cy
        return BoundingBox(cx - half, cx + half, cy - half, cy + half)


__all__ = ["BoundingBox"]
