"""
Register cells.
"""

from typing import Optional

import cv2
import numpy as np

from sigaudit.grid.quadrilateral import Quadrilateral
from sigaudit.vision import image_ops


SIGNATURE_RATIO_THRESHOLD = 0.004
CLUTTER_AREA_DIVISOR = 95


class Cell:
    """
    A single grid square of a register.

    Attributes:
        quadrilateral: Region of the cell in the register image
        relative_quadrilateral: Same region with its own origin at (0, 0)
        number: Column index (the last column holds signatures)
        contents: Cut-out pixels, dark ink on light paper
        processed_contents: Cleaned contents, dark ink on light paper
    """

    def __init__(self, quadrilateral: Quadrilateral, number: int):
        self.quadrilateral = quadrilateral
        self.relative_quadrilateral = quadrilateral.relative()
        self.number = number
        self.contents: Optional[np.ndarray] = None
        self.processed_contents: Optional[np.ndarray] = None

    def is_signature_cell(self, columns: int) -> bool:
        return self.number == columns - 1

    def set_contents(self, contents: np.ndarray, columns: int) -> None:
        """
        Store and clean the cell's pixels.

        Args:
            contents: Cut-out pixels with white ink on black
            columns: Number of columns of the register
        """
        self.contents = cv2.bitwise_not(contents)

        if self.is_signature_cell(columns):
            h, w = contents.shape[:2]
            cleaned = image_ops.remove_clutter(contents, w * h / CLUTTER_AREA_DIVISOR)
            self.processed_contents = cv2.bitwise_not(cleaned)
        else:
            self.processed_contents = image_ops.morphology(self.contents, "ellipse", (3, 3), "open")

    def ink_ratio(self) -> float:
        """Fraction of ink (black) pixels in the processed contents."""
        if self.processed_contents is None or self.processed_contents.size == 0:
            return 0.0
        ink = image_ops.count_pixels(self.processed_contents, 0)
        return ink / self.processed_contents.size

    def contains_signature(self, threshold: float = SIGNATURE_RATIO_THRESHOLD) -> bool:
        return self.ink_ratio() > threshold
