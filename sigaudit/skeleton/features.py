"""
Shape descriptor extraction from skeletonized signatures.

This module turns a thinned signature raster into a fixed-length feature
vector combining global ratios, histogram peaks, skeleton topology and
recursively computed centers of mass.
"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from scipy import ndimage

from sigaudit.errors import ConfigurationError, FormatError
from sigaudit.skeleton.thinning import (
    FOREGROUND,
    count_foreground_neighbors,
    get_neighbors,
    validate_binary,
)


logger = logging.getLogger(__name__)

Point = Tuple[int, int]


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# All features are computed on a skeleton with white (0xFF) ink.
#
# Topology:
# ---------
# - Edge point:  ink pixel with exactly one ink pixel among its 8 neighbors
#                (a stroke ending)
# - Cross point: ink pixel with at least three ink pixels among its four
#                orthogonal neighbors (a branch)
# - Closed loops are estimated with an Euler-characteristic style count:
#
#       S     = Σ_cross max(0, N8(p) - 2)
#       loops = max(0, 1 + floor((S - edges) / 2))   (0 without ink)
#
# Geometric centers:
# ------------------
# Vertical-first: split the image at the vertical midline, take the center
# of mass of each half, then split each half horizontally at its own
# center's row and take the center of mass of the four quarters.
# Horizontal-first performs the same recursion with the axes swapped.
# Each yields 6 points, expressed in the coordinates of the full image.
#
# Normalized vector (7 + 2 * 6 + 2 * 6 = 31 values with 6 + 6 centers):
#
#   [aspect, occupancy, peak_row / H, peak_col / W,
#    edges / 10, crosses / 10, loops / 5,
#    x_k / (W // 2), y_k / (H // 2) for every center]
# =============================================================================

EDGE_SCALE = 10
CROSS_SCALE = 10
LOOP_SCALE = 5
BASE_FEATURES = 7


@dataclass
class FeatureSet:
    """
    Feature set describing a single signature.

    Attributes:
        aspect_ratio: Width / height of the processed image
        occupancy_ratio: Ink pixels / total pixels
        max_horizontal_histogram: Row index holding the most ink
        max_vertical_histogram: Column index holding the most ink
        edge_points: (x, y) stroke endings
        cross_points: (x, y) branch points
        closed_loops: Estimated number of loops in the skeleton
        vertical_centers: Vertical-first geometric centers
        horizontal_centers: Horizontal-first geometric centers
        normalized_data: Fixed-length descriptor, set by normalize()
    """
    aspect_ratio: float = 0.0
    occupancy_ratio: float = 0.0
    max_horizontal_histogram: int = 0
    max_vertical_histogram: int = 0
    edge_points: List[Point] = field(default_factory=list)
    cross_points: List[Point] = field(default_factory=list)
    closed_loops: int = 0
    vertical_centers: Optional[List[Point]] = field(default_factory=list)
    horizontal_centers: Optional[List[Point]] = field(default_factory=list)
    normalized_data: Optional[np.ndarray] = None

    @property
    def size(self) -> int:
        """Length of the normalized vector."""
        if self.vertical_centers is None and self.horizontal_centers is None:
            # Imported sets only carry their normalized data
            return 0 if self.normalized_data is None else len(self.normalized_data)
        return (
            BASE_FEATURES
            + 2 * len(self.vertical_centers or [])
            + 2 * len(self.horizontal_centers or [])
        )

    @property
    def is_normalized(self) -> bool:
        return self.normalized_data is not None

    def normalize(self, image_size: Tuple[int, int]) -> np.ndarray:
        """
        Build the normalized feature vector.

        Args:
            image_size: (width, height) of the image the features came from

        Returns:
            The normalized vector (also stored in normalized_data)

        Raises:
            ConfigurationError: If the set has no raw features to normalize
        """
        if self.vertical_centers is None and self.horizontal_centers is None:
            raise ConfigurationError("Feature set holds no raw features to normalize")

        width, height = image_size
        width = max(1, int(width))
        height = max(1, int(height))
        half_width = max(1, width // 2)
        half_height = max(1, height // 2)

        data = np.zeros(self.size, dtype=np.float32)
        data[0] = self.aspect_ratio
        data[1] = self.occupancy_ratio
        data[2] = self.max_horizontal_histogram / height
        data[3] = self.max_vertical_histogram / width
        data[4] = len(self.edge_points) / EDGE_SCALE
        data[5] = len(self.cross_points) / CROSS_SCALE
        data[6] = self.closed_loops / LOOP_SCALE

        offset = BASE_FEATURES
        for x, y in list(self.vertical_centers or []) + list(self.horizontal_centers or []):
            data[offset] = x / half_width
            data[offset + 1] = y / half_height
            offset += 2

        self.normalized_data = data
        return data

    def __sub__(self, other: "FeatureSet") -> float:
        return dissimilarity(self, other)

    def export(self, path: Union[str, Path]) -> None:
        """
        Write the normalized vector to a file, one value per line.

        Raises:
            ConfigurationError: If the set is not normalized
        """
        if not self.is_normalized:
            raise ConfigurationError("Feature set not normalized")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            for value in self.normalized_data:
                f.write(f"{float(value)!r}\n")

    @classmethod
    def from_normalized(cls, values) -> "FeatureSet":
        """Create a feature set that only carries a normalized vector."""
        return cls(
            vertical_centers=None,
            horizontal_centers=None,
            normalized_data=np.asarray(values, dtype=np.float32),
        )

    @classmethod
    def import_file(cls, path: Union[str, Path]) -> "FeatureSet":
        """
        Read a feature set written by export().

        The returned set only contains the normalized data.

        Raises:
            FileNotFoundError: If the file does not exist
            FormatError: If a line is not a number
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Feature file not found: {path}")
        with open(path, 'r') as f:
            lines = [line.strip() for line in f if line.strip()]
        try:
            values = [float(line) for line in lines]
        except ValueError as exc:
            raise FormatError(f"Malformed feature file {path}: {exc}") from exc
        return cls.from_normalized(values)


def dissimilarity(a: FeatureSet, b: FeatureSet) -> float:
    """
    Sum of absolute differences between two normalized feature vectors.

    Raises:
        ConfigurationError: If either set is unnormalized or the lengths differ
    """
    if not a.is_normalized or not b.is_normalized:
        raise ConfigurationError("Feature set not normalized")
    if len(a.normalized_data) != len(b.normalized_data):
        raise ConfigurationError("Feature sets must be of same length")
    return float(np.sum(np.abs(
        a.normalized_data.astype(np.float64) - b.normalized_data.astype(np.float64)
    )))


def get_occupancy(ink: np.ndarray) -> int:
    """Number of ink pixels."""
    return int(np.count_nonzero(ink))


def get_max_horizontal_histogram(ink: np.ndarray) -> int:
    """Index of the row with the most ink (first one on ties)."""
    if ink.shape[0] == 0:
        return 0
    return int(np.argmax(ink.sum(axis=1)))


def get_max_vertical_histogram(ink: np.ndarray) -> int:
    """Index of the column with the most ink (first one on ties)."""
    if ink.shape[1] == 0:
        return 0
    return int(np.argmax(ink.sum(axis=0)))


def _interior_points(mask: np.ndarray) -> List[Point]:
    """Convert an interior mask into full-image (x, y) points, row-major."""
    ys, xs = np.nonzero(mask)
    return [(int(x) + 1, int(y) + 1) for y, x in zip(ys, xs)]


def get_edge_points(ink: np.ndarray) -> List[Point]:
    """
    Return the edge points of a skeleton.

    An edge point is an ink pixel with exactly one ink pixel among its
    8 neighbors. Border pixels are not considered.
    """
    if ink.shape[0] < 3 or ink.shape[1] < 3:
        return []
    image = ink.astype(np.uint8)
    neighbors = get_neighbors(image)
    mask = (image[1:-1, 1:-1] == 1) & (count_foreground_neighbors(neighbors) == 1)
    return _interior_points(mask)


def get_cross_points(ink: np.ndarray) -> List[Point]:
    """
    Return the cross points of a skeleton.

    A cross point is an ink pixel with at least three ink pixels among its
    four orthogonal neighbors. Border pixels are not considered.
    """
    if ink.shape[0] < 3 or ink.shape[1] < 3:
        return []
    image = ink.astype(np.uint8)
    P2, _, P4, _, P6, _, P8, _ = get_neighbors(image)
    orthogonal = P2.astype(np.int32) + P4 + P6 + P8
    mask = (image[1:-1, 1:-1] == 1) & (orthogonal >= 3)
    return _interior_points(mask)


def get_closed_loops(ink: np.ndarray, cross_points: List[Point], edge_count: int) -> int:
    """
    Estimate the number of closed loops of a skeleton.

    Args:
        ink: Boolean ink mask
        cross_points: Cross points of the skeleton
        edge_count: Number of edge points of the skeleton

    Returns:
        Non-negative loop estimate; 0 for a skeleton without ink
    """
    if not ink.any():
        return 0

    total = 0
    for x, y in cross_points:
        neighbours = int(np.count_nonzero(ink[y-1:y+2, x-1:x+2])) - 1
        if neighbours > 2:
            total += neighbours - 2

    return max(0, 1 + (total - edge_count) // 2)


def center_of_mass(ink: np.ndarray) -> Point:
    """
    Center of mass of the ink in a region, truncated to integers.

    A region without ink (or with no pixels at all) yields (0, 0).

    Returns:
        (x, y) in the region's own coordinates
    """
    if ink.size == 0 or not ink.any():
        return (0, 0)
    cy, cx = ndimage.center_of_mass(ink.astype(np.float64))
    return (int(cx), int(cy))


def get_vertical_geometric_centers(ink: np.ndarray) -> List[Point]:
    """
    Six vertical-first geometric centers.

    The image is split at its vertical midline; each half is then split
    horizontally at the row of its own center of mass.

    Returns:
        [left, right, left-top, left-bottom, right-top, right-bottom]
    """
    height, width = ink.shape
    left = ink[:, 0:math.ceil(width / 2)]
    right = ink[:, width // 2:width // 2 + width // 2]
    left_width = left.shape[1]

    v1 = center_of_mass(left)
    cx, cy = center_of_mass(right)
    v2 = (cx + left_width, cy)

    left_top = left[0:v1[1], :]
    v3 = center_of_mass(left_top)
    cx, cy = center_of_mass(left[v1[1]:height, :])
    v4 = (cx, cy + left_top.shape[0])

    right_top = right[0:v2[1], :]
    cx, cy = center_of_mass(right_top)
    v5 = (cx + left_width, cy)
    cx, cy = center_of_mass(right[v2[1]:height, :])
    v6 = (cx + left_width, cy + right_top.shape[0])

    return [v1, v2, v3, v4, v5, v6]


def get_horizontal_geometric_centers(ink: np.ndarray) -> List[Point]:
    """
    Six horizontal-first geometric centers.

    The image is split at its horizontal midline; each half is then split
    vertically at the column of its own center of mass.

    Returns:
        [top, bottom, top-left, top-right, bottom-left, bottom-right]
    """
    height, width = ink.shape
    top = ink[0:math.ceil(height / 2), :]
    bottom = ink[height // 2:height // 2 + height // 2, :]
    top_height = top.shape[0]

    h1 = center_of_mass(top)
    cx, cy = center_of_mass(bottom)
    h2 = (cx, cy + top_height)

    top_left = top[:, 0:h1[0]]
    h3 = center_of_mass(top_left)
    cx, cy = center_of_mass(top[:, h1[0]:width])
    h4 = (cx + top_left.shape[1], cy)

    bottom_left = bottom[:, 0:h2[0]]
    cx, cy = center_of_mass(bottom_left)
    h5 = (cx, cy + top_height)
    cx, cy = center_of_mass(bottom[:, h2[0]:width])
    h6 = (cx + bottom_left.shape[1], cy + top_height)

    return [h1, h2, h3, h4, h5, h6]


class FeatureExtractor:
    """
    Configurable signature feature extractor.
    """

    def __init__(self, include_geometric_centers: bool = True):
        """
        Initialize extractor.

        Args:
            include_geometric_centers: Whether to compute the 12 geometric
                centers (disabling them shrinks the vector to 7 values)
        """
        self.include_geometric_centers = include_geometric_centers

    def extract(self, skeleton: np.ndarray, normalize: bool = True) -> FeatureSet:
        """
        Extract features from a skeletonized signature.

        Args:
            skeleton: 2-D uint8 raster with white (0xFF) ink on black
            normalize: Whether to normalize the set against the raster size

        Returns:
            FeatureSet

        Raises:
            FormatError: If the raster is not single-channel binary
        """
        validate_binary(skeleton)
        height, width = skeleton.shape
        if height == 0 or width == 0:
            raise FormatError("Cannot extract features from an empty raster")

        ink = skeleton == FOREGROUND
        features = FeatureSet()

        features.occupancy_ratio = get_occupancy(ink) / (height * width)
        features.aspect_ratio = width / height

        features.max_horizontal_histogram = get_max_horizontal_histogram(ink)
        features.max_vertical_histogram = get_max_vertical_histogram(ink)

        if self.include_geometric_centers:
            features.vertical_centers = get_vertical_geometric_centers(ink)
            features.horizontal_centers = get_horizontal_geometric_centers(ink)

        features.edge_points = get_edge_points(ink)
        features.cross_points = get_cross_points(ink)
        features.closed_loops = get_closed_loops(
            ink, features.cross_points, len(features.edge_points)
        )

        logger.debug(
            "Extracted features: occupancy=%.4f edges=%d crosses=%d loops=%d",
            features.occupancy_ratio, len(features.edge_points),
            len(features.cross_points), features.closed_loops
        )

        if normalize:
            features.normalize((width, height))

        return features
