"""
Image thinning (skeletonization) algorithms.

This module implements thinning algorithms that reduce signature ink to
single-pixel-wide skeletons, which is a prerequisite for the topological
features (edge points, cross points, closed loops) of a signature.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Tuple, Type

import numpy as np

from sigaudit.errors import ConfigurationError, FormatError


logger = logging.getLogger(__name__)

FOREGROUND = 0xFF
BACKGROUND = 0x00


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Thinning/Skeletonization:
# ------------------------
# Thinning reduces binary objects to 1-pixel-wide skeletons while
# preserving topology (connectivity) and approximating the medial axis.
#
# For a pixel P1 with 8-neighbors P2-P9 (clockwise from north):
#     P9 P2 P3
#     P8 P1 P4
#     P7 P6 P5
#
# B(P1) = number of foreground neighbors
# A(P1) = number of 0->1 patterns in the sequence P2, P3, ..., P9, P2
#
# Zhang-Suen (two sub-iterations per iteration):
# - 2 <= B(P1) <= 6 and A(P1) = 1
# - sub-iteration 1: P2 * P4 * P6 = 0 and P4 * P6 * P8 = 0
# - sub-iteration 2: P2 * P4 * P8 = 0 and P2 * P6 * P8 = 0
#
# Stentiford (four templates per iteration):
# A pixel is deleted when it is foreground, its neighbor in the template
# direction is foreground, the opposite neighbor is background,
# A(P1) = 1 and B(P1) > 1.
#
# Pixels are always evaluated against the image as it was at the start of
# the (sub-)iteration and removed afterwards, so the scan order of a
# template never changes which pixels it matches.
#
# The outermost rows and columns are never evaluated and never removed.
#
# References:
# Zhang, T. Y., & Suen, C. Y. (1984).
# "A fast parallel algorithm for thinning digital patterns."
# Communications of the ACM, 27(3), 236-239.
# Stentiford, F. W. M., & Mortimer, R. G. (1983).
# "Some new heuristics for thinning binary handprinted characters for OCR."
# IEEE Transactions on Systems, Man, and Cybernetics, 13(1), 81-84.
# =============================================================================


def validate_binary(raster: np.ndarray) -> None:
    """
    Check that a raster is a single-channel binary image.

    Raises:
        FormatError: If the raster is not a 2-D uint8 array holding only
            0x00 and 0xFF
    """
    if not isinstance(raster, np.ndarray):
        raise FormatError(f"Expected a numpy array, got {type(raster).__name__}")
    if raster.ndim != 2:
        raise FormatError(
            f"Thinning requires a single-channel image, got shape {raster.shape}"
        )
    if raster.dtype != np.uint8:
        raise FormatError(f"Thinning requires an 8-bit image, got {raster.dtype}")
    if not np.isin(raster, (BACKGROUND, FOREGROUND)).all():
        raise FormatError("Thinning requires a binary image (0x00/0xFF only)")


def to_working_copy(raster: np.ndarray, foreground: int = FOREGROUND) -> np.ndarray:
    """
    Convert a 0x00/0xFF raster into a private 0/1 array (1 = foreground).
    """
    return (raster == foreground).astype(np.uint8)


def from_working_copy(image: np.ndarray, foreground: int = FOREGROUND) -> np.ndarray:
    """
    Convert a 0/1 working array back into a 0x00/0xFF raster.
    """
    background = BACKGROUND if foreground == FOREGROUND else FOREGROUND
    return np.where(image == 1, foreground, background).astype(np.uint8)


def get_neighbors(image: np.ndarray) -> Tuple[np.ndarray, ...]:
    """
    Get the 8-neighbor planes of all interior pixels in clockwise order.

    Neighbor arrangement:
        P9 P2 P3
        P8 P1 P4
        P7 P6 P5

    Each plane has shape (h - 2, w - 2); element [i, j] of plane Pk is
    the Pk neighbor of pixel (i + 1, j + 1).

    Args:
        image: 0/1 image of at least 3x3 pixels

    Returns:
        Tuple (P2, P3, P4, P5, P6, P7, P8, P9)
    """
    h, w = image.shape
    return (
        image[0:h-2, 1:w-1],  # P2 (north)
        image[0:h-2, 2:w],    # P3 (north-east)
        image[1:h-1, 2:w],    # P4 (east)
        image[2:h, 2:w],      # P5 (south-east)
        image[2:h, 1:w-1],    # P6 (south)
        image[2:h, 0:w-2],    # P7 (south-west)
        image[1:h-1, 0:w-2],  # P8 (west)
        image[0:h-2, 0:w-2],  # P9 (north-west)
    )


def count_transitions(neighbors: Tuple[np.ndarray, ...]) -> np.ndarray:
    """
    Count 0-to-1 transitions in the ordered neighbor sequence.

    This is the A(P1) function, evaluated for every interior pixel.

    Args:
        neighbors: Neighbor planes from get_neighbors

    Returns:
        Array of transition counts
    """
    count = np.zeros(neighbors[0].shape, dtype=np.int32)
    n = neighbors + (neighbors[0],)

    for i in range(8):
        count += (n[i] == 0) & (n[i+1] == 1)

    return count


def count_foreground_neighbors(neighbors: Tuple[np.ndarray, ...]) -> np.ndarray:
    """
    Count foreground neighbors of every interior pixel.

    This is the B(P1) function.
    """
    total = np.zeros(neighbors[0].shape, dtype=np.int32)
    for plane in neighbors:
        total += plane
    return total


def zhang_suen_iteration(image: np.ndarray, sub_iteration: int) -> Tuple[np.ndarray, int]:
    """
    Perform one sub-iteration of Zhang-Suen thinning.

    Args:
        image: 0/1 image (1 = foreground), modified in place
        sub_iteration: Sub-iteration number (0 or 1)

    Returns:
        Tuple of (image, number of removed pixels)
    """
    interior = image[1:-1, 1:-1]
    neighbors = get_neighbors(image)
    P2, P3, P4, P5, P6, P7, P8, P9 = neighbors

    B = count_foreground_neighbors(neighbors)
    A = count_transitions(neighbors)

    markers = (interior == 1) & (B >= 2) & (B <= 6) & (A == 1)

    if sub_iteration == 0:
        markers &= (P2 * P4 * P6 == 0) & (P4 * P6 * P8 == 0)
    else:
        markers &= (P2 * P4 * P8 == 0) & (P2 * P6 * P8 == 0)

    removed = int(np.count_nonzero(markers))
    interior[markers] = 0

    return image, removed


def zhang_suen_thinning(image: np.ndarray) -> np.ndarray:
    """
    Apply Zhang-Suen thinning to a 0/1 image until it stops changing.

    Iterations stop after a full iteration in which neither sub-iteration
    removed a pixel, so the result is a fixed point of both.

    Args:
        image: 0/1 image (1 = foreground)

    Returns:
        Thinned 0/1 image (a new array)
    """
    result = image.copy()
    if result.shape[0] < 3 or result.shape[1] < 3:
        return result

    iterations = 0
    while True:
        result, removed_first = zhang_suen_iteration(result, 0)
        result, removed_second = zhang_suen_iteration(result, 1)
        iterations += 1

        if removed_first == 0 and removed_second == 0:
            break

    logger.debug("Zhang-Suen thinning converged after %d iterations", iterations)
    return result


# Template direction as (dy, dx) of the neighbor that must be foreground;
# the opposite neighbor must be background.
STENTIFORD_TEMPLATES = (
    ("down", (1, 0)),
    ("right", (0, 1)),
    ("up", (-1, 0)),
    ("left", (0, -1)),
)

_DIRECTION_TO_PLANE = {
    (-1, 0): 0,  # P2
    (0, 1): 2,   # P4
    (1, 0): 4,   # P6
    (0, -1): 6,  # P8
}


def stentiford_iteration(image: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    Perform one iteration (all four templates) of Stentiford thinning.

    Args:
        image: 0/1 image (1 = foreground), modified in place

    Returns:
        Tuple of (image, number of removed pixels)
    """
    interior = image[1:-1, 1:-1]
    neighbors = get_neighbors(image)

    candidates = (
        (interior == 1)
        & (count_transitions(neighbors) == 1)
        & (count_foreground_neighbors(neighbors) > 1)
    )

    markers = np.zeros(interior.shape, dtype=bool)
    for _, (dy, dx) in STENTIFORD_TEMPLATES:
        toward = neighbors[_DIRECTION_TO_PLANE[(dy, dx)]]
        away = neighbors[_DIRECTION_TO_PLANE[(-dy, -dx)]]
        markers |= candidates & (toward == 1) & (away == 0)

    removed = int(np.count_nonzero(markers))
    interior[markers] = 0

    return image, removed


def stentiford_thinning(image: np.ndarray) -> np.ndarray:
    """
    Apply Stentiford thinning to a 0/1 image until no template matches.

    Args:
        image: 0/1 image (1 = foreground)

    Returns:
        Thinned 0/1 image (a new array)
    """
    result = image.copy()
    if result.shape[0] < 3 or result.shape[1] < 3:
        return result

    iterations = 0
    while True:
        result, removed = stentiford_iteration(result)
        iterations += 1
        if removed == 0:
            break

    logger.debug("Stentiford thinning converged after %d iterations", iterations)
    return result


class ThinningFilter(ABC):
    """
    Base class for thinning filters working on 0x00/0xFF rasters.

    Filters never modify their input; ``apply`` returns a new raster of
    the same shape in which the foreground value is still foreground.
    """

    def __init__(self, foreground: int = FOREGROUND):
        """
        Initialize the filter.

        Args:
            foreground: Pixel value representing ink (0xFF or 0x00)
        """
        if foreground not in (FOREGROUND, BACKGROUND):
            raise ConfigurationError(
                f"Foreground must be 0x00 or 0xFF, got {foreground}"
            )
        self.foreground = foreground

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def thin(self, image: np.ndarray) -> np.ndarray:
        """Thin a 0/1 working image."""
        pass

    def is_supported(self, raster: np.ndarray) -> bool:
        """Return whether the raster can be processed by this filter."""
        try:
            validate_binary(raster)
        except FormatError:
            return False
        return True

    def apply(self, raster: np.ndarray) -> np.ndarray:
        """
        Thin a binary raster.

        Args:
            raster: 2-D uint8 array of 0x00/0xFF values

        Returns:
            New thinned raster with the same shape and value convention

        Raises:
            FormatError: If the raster is not single-channel binary
        """
        validate_binary(raster)
        working = to_working_copy(raster, self.foreground)
        thinned = self.thin(working)
        result = from_working_copy(thinned, self.foreground)
        validate_binary(result)
        return result


class ZhangSuenThinningFilter(ThinningFilter):
    """Thinning filter using the Zhang-Suen algorithm."""

    @property
    def name(self) -> str:
        return "zhang_suen"

    def thin(self, image: np.ndarray) -> np.ndarray:
        return zhang_suen_thinning(image)


class StentifordThinningFilter(ThinningFilter):
    """Thinning filter using Stentiford's template algorithm."""

    @property
    def name(self) -> str:
        return "stentiford"

    def thin(self, image: np.ndarray) -> np.ndarray:
        return stentiford_thinning(image)


THINNING_METHODS: Dict[str, Type[ThinningFilter]] = {
    "zhang_suen": ZhangSuenThinningFilter,
    "stentiford": StentifordThinningFilter,
}


def create_thinning_filter(method: str = "zhang_suen", foreground: int = FOREGROUND) -> ThinningFilter:
    """
    Create a thinning filter by name.

    Args:
        method: 'zhang_suen' or 'stentiford'
        foreground: Pixel value representing ink

    Returns:
        ThinningFilter instance

    Raises:
        ConfigurationError: If the method is unknown
    """
    if method not in THINNING_METHODS:
        raise ConfigurationError(f"Unknown thinning method: {method}")
    return THINNING_METHODS[method](foreground)


class Thinner:
    """
    Configurable thinning processor.
    """

    def __init__(self, method: str = "zhang_suen", foreground: int = FOREGROUND):
        """
        Initialize thinner.

        Args:
            method: Thinning algorithm ('zhang_suen' or 'stentiford')
            foreground: Pixel value representing ink
        """
        self.method = method
        self.foreground = foreground
        self._filter = create_thinning_filter(method, foreground)

    def process(self, raster: np.ndarray) -> np.ndarray:
        """
        Thin a binary raster.

        Args:
            raster: 2-D uint8 array of 0x00/0xFF values

        Returns:
            Thinned raster
        """
        return self._filter.apply(raster)
