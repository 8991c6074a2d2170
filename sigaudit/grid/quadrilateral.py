"""
Four-corner regions used to address register cells.
"""

from typing import Iterator, List, Sequence, Tuple

import numpy as np


Point = Tuple[int, int]

TOP_LEFT = 0
TOP_RIGHT = 1
BOTTOM_RIGHT = 2
BOTTOM_LEFT = 3


class Quadrilateral:
    """
    Quadrilateral with a fixed corner order.

    Corners are always stored as [TopLeft, TopRight, BottomRight, BottomLeft]
    in the order they were given. They are never re-sorted by geometry.
    """

    def __init__(self, points: Sequence[Point]):
        if len(points) != 4:
            raise ValueError(f"A quadrilateral needs exactly 4 points, got {len(points)}")
        self.points: List[Point] = [(int(x), int(y)) for x, y in points]

    @classmethod
    def from_corners(
        cls,
        top_left: Point,
        top_right: Point,
        bottom_right: Point,
        bottom_left: Point
    ) -> "Quadrilateral":
        return cls([top_left, top_right, bottom_right, bottom_left])

    def __getitem__(self, index: int) -> Point:
        return self.points[index]

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __len__(self) -> int:
        return 4

    def __eq__(self, other) -> bool:
        if not isinstance(other, Quadrilateral):
            return NotImplemented
        return self.points == other.points

    def __repr__(self) -> str:
        return f"Quadrilateral({self.points})"

    @property
    def top_left(self) -> Point:
        return self.points[TOP_LEFT]

    @property
    def top_right(self) -> Point:
        return self.points[TOP_RIGHT]

    @property
    def bottom_right(self) -> Point:
        return self.points[BOTTOM_RIGHT]

    @property
    def bottom_left(self) -> Point:
        return self.points[BOTTOM_LEFT]

    def copy(self) -> "Quadrilateral":
        return Quadrilateral(list(self.points))

    def _origin(self) -> Point:
        return (
            min(self.top_left[0], self.bottom_left[0]),
            min(self.top_left[1], self.top_right[1]),
        )

    def bounding_rect(self) -> Tuple[int, int, int, int]:
        """
        Axis-aligned rectangle spanned by the corners.

        Returns:
            (x, y, width, height)
        """
        x, y = self._origin()
        x2 = max(self.top_right[0], self.bottom_right[0])
        y2 = max(self.bottom_left[1], self.bottom_right[1])
        return (x, y, x2 - x, y2 - y)

    def relative(self) -> "Quadrilateral":
        """Copy translated so the bounding rectangle starts at (0, 0)."""
        ox, oy = self._origin()
        return Quadrilateral([(x - ox, y - oy) for x, y in self.points])

    def inflate(self, amount: int) -> "Quadrilateral":
        """
        Copy with each corner moved outward by amount on both axes.

        A negative amount moves corners inward.
        """
        (tlx, tly), (trx, try_), (brx, bry), (blx, bly) = self.points
        return Quadrilateral([
            (tlx - amount, tly - amount),
            (trx + amount, try_ - amount),
            (brx + amount, bry + amount),
            (blx - amount, bly + amount),
        ])

    def deflate(self, amount: int) -> "Quadrilateral":
        return self.inflate(-amount)

    def as_contour(self) -> np.ndarray:
        """Corners as an int32 (4, 1, 2) array, the layout OpenCV expects."""
        return np.array(self.points, dtype=np.int32).reshape(-1, 1, 2)
