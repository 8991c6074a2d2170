"""
Image operations for register scanning.

Thin layer over OpenCV used by the scanner and the signature preprocessing.
All functions take and return single-channel uint8 arrays unless noted and
never modify their input.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from sigaudit.errors import StructuralError
from sigaudit.grid.quadrilateral import Quadrilateral


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Register table lines are isolated with directional morphology:
#
#   opening with a 10x1 (1x10) bar keeps only horizontal (vertical)
#   structures; a second-order Sobel derivative across the bar keeps their
#   edges; contours whose bounding box is not elongated enough are erased;
#   a long 50x1 (1x50) dilation reconnects broken line segments.
#
# Uneven lighting is flattened by dividing the image by its closing with an
# 11x11 ellipse (an estimate of the paper background):
#
#   I'(x, y) = 255 * I(x, y) / closing(I)(x, y)
# =============================================================================

Rect = Tuple[int, int, int, int]

MORPH_OPS = {
    "open": cv2.MORPH_OPEN,
    "close": cv2.MORPH_CLOSE,
    "erode": cv2.MORPH_ERODE,
    "dilate": cv2.MORPH_DILATE,
}

KERNEL_SHAPES = {
    "rect": cv2.MORPH_RECT,
    "ellipse": cv2.MORPH_ELLIPSE,
    "cross": cv2.MORPH_CROSS,
}

ROI_THRESHOLD = 220
MIN_REGISTER_AREA = 1000


@dataclass
class ContourInfo:
    """
    Summary of a detected contour.

    Attributes:
        bounding_box: (x, y, width, height)
        area: Contour area
        centroid: (x, y) center of gravity, None for degenerate contours
        points: Raw OpenCV contour array
    """
    bounding_box: Rect
    area: float
    centroid: Optional[Tuple[int, int]]
    points: np.ndarray


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR or BGRA image to grayscale; grayscale input is copied."""
    if image.ndim == 2:
        return image.copy()
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def threshold(image: np.ndarray, inverse: bool = False) -> np.ndarray:
    """
    Otsu binarization.

    Args:
        image: Grayscale image
        inverse: Map dark pixels to 255 instead of 0

    Returns:
        Binary image with values 0 and 255
    """
    mode = cv2.THRESH_BINARY_INV if inverse else cv2.THRESH_BINARY
    _, binary = cv2.threshold(image, 0, 255, mode | cv2.THRESH_OTSU)
    return binary


def structuring_element(shape: str, size: Tuple[int, int]) -> np.ndarray:
    """
    Build a structuring element.

    Args:
        shape: 'rect', 'ellipse' or 'cross'
        size: (width, height)
    """
    if shape not in KERNEL_SHAPES:
        raise ValueError(f"Unknown kernel shape: {shape}")
    return cv2.getStructuringElement(KERNEL_SHAPES[shape], size)


def morphology(
    image: np.ndarray,
    kernel_shape: str = "rect",
    kernel_size: Tuple[int, int] = (3, 3),
    op: str = "open",
    iterations: int = 1
) -> np.ndarray:
    """
    Apply a morphological operation.

    Args:
        image: Input image
        kernel_shape: 'rect', 'ellipse' or 'cross'
        kernel_size: (width, height) of the structuring element
        op: 'open', 'close', 'erode' or 'dilate'
        iterations: Number of times the operation is applied

    Returns:
        Filtered image
    """
    if op not in MORPH_OPS:
        raise ValueError(f"Unknown morphological operation: {op}")
    kernel = structuring_element(kernel_shape, kernel_size)
    return cv2.morphologyEx(image, MORPH_OPS[op], kernel, iterations=iterations)


def dilate(image: np.ndarray, iterations: int = 1) -> np.ndarray:
    """Dilate with a 3x3 square."""
    return cv2.dilate(image, np.ones((3, 3), dtype=np.uint8), iterations=iterations)


def find_contours(image: np.ndarray, external: bool = False) -> List[ContourInfo]:
    """
    Find contours in a binary image.

    Args:
        image: Binary image (non-zero pixels are foreground)
        external: Only return outermost contours

    Returns:
        List of ContourInfo
    """
    mode = cv2.RETR_EXTERNAL if external else cv2.RETR_LIST
    contours, _ = cv2.findContours(image, mode, cv2.CHAIN_APPROX_SIMPLE)

    results = []
    for contour in contours:
        moments = cv2.moments(contour)
        centroid = None
        if moments["m00"] != 0:
            centroid = (
                int(moments["m10"] / moments["m00"]),
                int(moments["m01"] / moments["m00"]),
            )
        results.append(ContourInfo(
            bounding_box=tuple(int(v) for v in cv2.boundingRect(contour)),
            area=float(cv2.contourArea(contour)),
            centroid=centroid,
            points=contour,
        ))
    return results


def erase_contours(
    image: np.ndarray,
    predicate: Callable[[ContourInfo], bool],
    source: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Fill the external contours matching predicate with black.

    Args:
        image: Image to draw on (a copy is returned)
        predicate: Selects the contours to erase
        source: Image to detect contours in, defaults to image

    Returns:
        Image with the selected contours erased
    """
    result = image.copy()
    detect = image if source is None else source
    for info in find_contours(detect, external=True):
        if predicate(info):
            cv2.drawContours(result, [info.points], -1, 0, thickness=-1, lineType=cv2.LINE_4)
    return result


def hough_lines(
    image: np.ndarray,
    rho: float = 1.0,
    theta: float = math.pi / 180,
    threshold: int = 150,
    min_line_length: float = 0.0,
    max_line_gap: float = 30.0
) -> List[Tuple[int, int, int, int]]:
    """
    Probabilistic Hough transform.

    Returns:
        Segments as (x1, y1, x2, y2)
    """
    lines = cv2.HoughLinesP(
        image, rho, theta, threshold,
        minLineLength=min_line_length, maxLineGap=max_line_gap
    )
    if lines is None:
        return []
    return [tuple(int(v) for v in line[0]) for line in lines]


def rotate(image: np.ndarray, angle: float, border_value: int = 0) -> np.ndarray:
    """
    Rotate around the image center, keeping the original size.

    Args:
        image: Input image
        angle: Rotation in degrees, positive values rotate clockwise
        border_value: Fill value for uncovered pixels

    Returns:
        Rotated image
    """
    height, width = image.shape[:2]
    matrix = cv2.getRotationMatrix2D((width / 2.0, height / 2.0), -angle, 1.0)
    return cv2.warpAffine(
        image, matrix, (width, height),
        flags=cv2.INTER_LINEAR, borderValue=border_value
    )


def normalize_size(image: np.ndarray, width: int, interpolation: int = cv2.INTER_AREA) -> np.ndarray:
    """Resize to the given width, scaling the height proportionally."""
    h, w = image.shape[:2]
    height = max(1, int(h * (width / w)))
    return cv2.resize(image, (width, height), interpolation=interpolation)


def adjust_brightness(image: np.ndarray) -> np.ndarray:
    """Flatten uneven lighting by dividing by an 11x11 elliptical closing."""
    background = morphology(image, "ellipse", (11, 11), "close")
    return cv2.divide(image, background, scale=255)


def largest_contour_mask(binary: np.ndarray, min_area: float = MIN_REGISTER_AREA) -> np.ndarray:
    """
    Mask of the largest contour in a binary image.

    Raises:
        StructuralError: If no contour exceeds min_area
    """
    contours, _ = cv2.findContours(binary, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE)

    largest = None
    max_area = 0.0
    for contour in contours:
        area = cv2.contourArea(contour)
        if area > min_area and area > max_area:
            max_area = area
            largest = contour

    if largest is None:
        raise StructuralError("No register outline found in image")

    mask = np.zeros_like(binary)
    cv2.drawContours(mask, [largest], -1, 255, thickness=-1)
    return mask


def region_of_interest(image: np.ndarray, threshold: int = ROI_THRESHOLD) -> Rect:
    """
    Tightest rectangle containing every pixel brighter than threshold.

    Returns:
        (x, y, width, height); (0, 0, 0, 0) if no pixel qualifies
    """
    bright = image > threshold
    rows = np.nonzero(bright.any(axis=1))[0]
    cols = np.nonzero(bright.any(axis=0))[0]
    if len(rows) == 0:
        return (0, 0, 0, 0)
    top, bottom = int(rows[0]), int(rows[-1]) + 1
    left, right = int(cols[0]), int(cols[-1]) + 1
    return (left, top, right - left, bottom - top)


def crop(image: np.ndarray, rect: Rect) -> np.ndarray:
    """Copy of the (x, y, width, height) region, clipped to the image."""
    x, y, w, h = rect
    x = max(0, x)
    y = max(0, y)
    return image[y:y + h, x:x + w].copy()


def _directional_edges(image: np.ndarray, dx: int, dy: int) -> np.ndarray:
    # Negative responses saturate to zero
    edges = cv2.Sobel(image, cv2.CV_32F, dx, dy, ksize=3)
    return np.clip(edges, 0, 255).astype(np.uint8)


def deskew_angle(image: np.ndarray, min_line_width: Optional[float] = None) -> float:
    """
    Estimate the rotation that levels the horizontal table lines.

    Args:
        image: Binary register image
        min_line_width: Minimum Hough segment length, defaults to a third
            of the region of interest width

    Returns:
        Correction angle in degrees (0 if no lines are found)
    """
    if min_line_width is None:
        min_line_width = region_of_interest(image)[2] / 3

    binary = threshold(image)
    binary = morphology(binary, "rect", (10, 1), "open")
    edges = _directional_edges(binary, 0, 2)

    area_threshold = int(0.0025 * image.shape[0] * image.shape[1])
    edges = erase_contours(edges, lambda c: _is_short_horizontal(c, area_threshold))
    edges = dilate(edges)

    lines = hough_lines(edges, 1, math.pi / 180, 150, min_line_width, 30)
    if not lines:
        return 0.0

    angle = 0.0
    for x1, y1, x2, y2 in lines:
        angle += math.degrees(math.atan2(y2 - y1, x2 - x1))
    angle /= len(lines)

    return -angle


def _is_short_horizontal(contour: ContourInfo, area_threshold: int) -> bool:
    _, _, w, h = contour.bounding_box
    return w / max(1, h) < 14 or w * h < area_threshold


def _is_short_vertical(contour: ContourInfo, area_threshold: int) -> bool:
    _, _, w, h = contour.bounding_box
    return h / max(1, w) < 5 or w * h < area_threshold


def extract_horizontal_lines(image: np.ndarray) -> np.ndarray:
    """Isolate the horizontal table lines of a binary register image."""
    lines = morphology(image, "rect", (10, 1), "open")
    lines = threshold(lines)
    lines = _directional_edges(lines, 0, 1)

    area_threshold = int(0.0025 * image.shape[0] * image.shape[1])
    lines = erase_contours(lines, lambda c: _is_short_horizontal(c, area_threshold))

    lines = morphology(lines, "rect", (2, 2), "open")
    lines = morphology(lines, "rect", (2, 2), "close")
    return morphology(lines, "rect", (50, 1), "dilate")


def extract_vertical_lines(image: np.ndarray) -> np.ndarray:
    """Isolate the vertical table lines of a binary register image."""
    lines = morphology(image, "rect", (1, 10), "open")
    lines = _directional_edges(lines, 2, 0)

    area_threshold = int(0.002 * image.shape[0] * image.shape[1])
    lines = erase_contours(lines, lambda c: _is_short_vertical(c, area_threshold))

    lines = morphology(lines, "ellipse", (3, 3), "open")
    lines = morphology(lines, "ellipse", (3, 3), "close")
    return morphology(lines, "rect", (1, 50), "dilate")


def remove_clutter(image: np.ndarray, area_threshold: float) -> np.ndarray:
    """
    Erase small blobs from a white-ink image.

    Blobs are measured on a dilated copy so that detached strokes close to
    larger ones (the dot of an 'i') survive.
    """
    dilated = dilate(image, iterations=3)
    return erase_contours(image, lambda c: c.area < area_threshold, source=dilated)


def fill_quadrilateral(image: np.ndarray, quadrilateral: Quadrilateral, value: int = 255) -> np.ndarray:
    """Copy of image with the quadrilateral filled with value."""
    result = image.copy()
    cv2.fillConvexPoly(result, quadrilateral.as_contour(), value, lineType=cv2.LINE_4)
    return result


def count_pixels(image: np.ndarray, value: int = 255) -> int:
    return int(np.count_nonzero(image == value))
