"""
Register grid reconstruction from detected line intersections.

Intersections of the printed table lines are detected as blobs; their
centroids form a noisy point cloud that may contain duplicates (a single
crossing split into several blobs) and stray points. This module groups
the cloud into vertical grid lines and derives the cell quadrilaterals.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from sigaudit.errors import StructuralError
from sigaudit.grid.quadrilateral import Quadrilateral


logger = logging.getLogger(__name__)

Point = Tuple[int, int]


# =============================================================================
# ALGORITHM
# =============================================================================
#
# Keep (columns + 1) growing lists, one per expected vertical line. Each
# point is offered to the lists in order:
#
#   empty list                          -> accepted
#   |p - top| < noise or |p - bot| < noise  -> discarded (duplicate blob)
#   |top.x - p.x| < tx, 0 < top.y - p.y < ty -> prepended
#   |bot.x - p.x| < tx, 0 < p.y - bot.y < ty -> appended
#   otherwise                           -> offered to the next list
#
# A point refused by every list is unplaced. Any unplaced point triggers a
# new attempt with all tolerances grown by x1.3 (integer truncation), up to
# MAX_ATTEMPTS attempts in total.
# =============================================================================

MAX_ATTEMPTS = 8
GROWTH_FACTOR = 1.3
DEFAULT_NOISE_THRESHOLD = 8
VERTICAL_TOLERANCE_DIVISOR = 13
HORIZONTAL_TOLERANCE_DIVISOR = 93

ACCEPT_NOISE = -2
REJECT = -1


@dataclass
class GridReconstruction:
    """
    Result of a grid reconstruction.

    Attributes:
        lines: Vertical grid lines left to right, each sorted top to bottom
        column_count: Effective number of cell columns (len(lines) - 1)
        attempts: Number of grouping passes performed
        unplaced: Points refused by every line on the final pass
    """
    lines: List[List[Point]] = field(default_factory=list)
    column_count: int = 0
    attempts: int = 0
    unplaced: int = 0

    @property
    def retries(self) -> int:
        return max(0, self.attempts - 1)

    @property
    def rows(self) -> int:
        """Number of cell rows."""
        if not self.lines:
            return 0
        return max(0, len(self.lines[0]) - 1)

    def cell_quadrilaterals(self) -> List[List[Quadrilateral]]:
        """
        Cell regions, indexed [row][column].

        A cell spans lines[c][r], lines[c+1][r], lines[c+1][r+1], lines[c][r+1].
        """
        cells = []
        for r in range(self.rows):
            row = []
            for c in range(len(self.lines) - 1):
                row.append(Quadrilateral.from_corners(
                    self.lines[c][r],
                    self.lines[c + 1][r],
                    self.lines[c + 1][r + 1],
                    self.lines[c][r + 1],
                ))
            cells.append(row)
        return cells


def _distance(a: Point, b: Point) -> float:
    return ((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2) ** 0.5


def insertion_index(
    line: Sequence[Point],
    point: Point,
    tolerance_x: int,
    tolerance_y: int,
    noise_threshold: int
) -> int:
    """
    Decide where a point goes in a line.

    Returns:
        Insertion index, REJECT if the point does not belong to this line,
        or ACCEPT_NOISE if it should be discarded
    """
    if len(line) == 0:
        return 0

    top = line[0]
    bottom = line[-1]

    if _distance(top, point) < noise_threshold:
        return ACCEPT_NOISE
    if _distance(bottom, point) < noise_threshold:
        return ACCEPT_NOISE

    if abs(top[0] - point[0]) < tolerance_x:
        if point[1] < top[1] and top[1] - point[1] < tolerance_y:
            return 0

    if abs(bottom[0] - point[0]) < tolerance_x:
        if point[1] > bottom[1] and point[1] - bottom[1] < tolerance_y:
            return len(line)

    return REJECT


def group_points(
    points: Sequence[Point],
    column_count: int,
    tolerance_x: int,
    tolerance_y: int,
    noise_threshold: int
) -> Tuple[List[List[Point]], int]:
    """
    Single grouping pass.

    Returns:
        Tuple of (lines, number of unplaced points)
    """
    lines: List[List[Point]] = [[] for _ in range(column_count + 1)]
    unplaced = 0

    for point in points:
        for k, line in enumerate(lines):
            index = insertion_index(line, point, tolerance_x, tolerance_y, noise_threshold)
            if index == ACCEPT_NOISE:
                break
            if index >= 0:
                line.insert(index, point)
                break
            if k == len(lines) - 1:
                unplaced += 1

    return lines, unplaced


class GridReconstructor:
    """
    Groups intersection points into vertical grid lines.
    """

    def __init__(
        self,
        tolerance_x: int,
        tolerance_y: int,
        noise_threshold: int = DEFAULT_NOISE_THRESHOLD,
        max_attempts: int = MAX_ATTEMPTS,
        growth_factor: float = GROWTH_FACTOR
    ):
        """
        Initialize reconstructor.

        Args:
            tolerance_x: Initial horizontal tolerance in pixels
            tolerance_y: Initial vertical tolerance in pixels
            noise_threshold: Initial duplicate-point distance in pixels
            max_attempts: Total number of grouping passes allowed
            growth_factor: Tolerance multiplier between passes
        """
        self.tolerance_x = tolerance_x
        self.tolerance_y = tolerance_y
        self.noise_threshold = noise_threshold
        self.max_attempts = max_attempts
        self.growth_factor = growth_factor

    @classmethod
    def for_image(
        cls,
        height: int,
        width: int,
        noise_threshold: int = DEFAULT_NOISE_THRESHOLD
    ) -> "GridReconstructor":
        """Reconstructor with tolerances derived from the register size."""
        return cls(
            tolerance_x=width // HORIZONTAL_TOLERANCE_DIVISOR,
            tolerance_y=height // VERTICAL_TOLERANCE_DIVISOR,
            noise_threshold=noise_threshold,
        )

    def reconstruct(self, points: Sequence[Point], column_count: int) -> GridReconstruction:
        """
        Group points into column_count + 1 vertical lines.

        Args:
            points: Intersection centroids as (x, y)
            column_count: Expected number of cell columns

        Returns:
            GridReconstruction

        Raises:
            StructuralError: If points remain unplaced after all attempts or
                the lines do not form a consistent grid
        """
        points = [(int(x), int(y)) for x, y in points]
        tolerance_x = self.tolerance_x
        tolerance_y = self.tolerance_y
        noise_threshold = self.noise_threshold

        attempts = 0
        while True:
            lines, unplaced = group_points(
                points, column_count, tolerance_x, tolerance_y, noise_threshold
            )
            attempts += 1

            if unplaced == 0 or attempts >= self.max_attempts:
                break

            logger.warning(
                "%d intersection points unplaced on attempt %d; growing tolerances",
                unplaced, attempts
            )
            tolerance_x = int(tolerance_x * self.growth_factor)
            tolerance_y = int(tolerance_y * self.growth_factor)
            noise_threshold = int(noise_threshold * self.growth_factor)

        if unplaced > 0:
            raise StructuralError(
                f"Unable to sort points into columns: {unplaced} extra intersections "
                f"after {attempts} attempts"
            )

        effective_columns = column_count
        surviving = []
        for line in lines:
            if line:
                surviving.append(line)
            else:
                effective_columns -= 1

        if effective_columns != column_count:
            logger.info(
                "Dropped %d empty grid lines; using %d columns",
                column_count - effective_columns, effective_columns
            )

        if len(surviving) < 2:
            raise StructuralError("Unable to sort points into columns: fewer than two grid lines found")

        surviving.sort(key=lambda line: line[0][0])

        lengths = {len(line) for line in surviving}
        if len(lengths) != 1:
            raise StructuralError(
                f"Unable to sort points into columns: grid lines have unequal lengths {sorted(lengths)}"
            )

        logger.debug(
            "Reconstructed grid with %d lines of %d points in %d attempts",
            len(surviving), len(surviving[0]), attempts
        )

        return GridReconstruction(
            lines=surviving,
            column_count=effective_columns,
            attempts=attempts,
            unplaced=unplaced,
        )
