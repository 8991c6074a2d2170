"""
End-to-end register scanning.

Pipeline:
    grayscale -> width normalization -> brightness adjustment
    -> Otsu (inverse) -> keep largest contour -> deskew -> crop
    -> table line extraction -> intersections -> grid reconstruction
    -> cells -> table removal -> cell contents -> OCR / signature presence
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import cv2
import numpy as np

from sigaudit.errors import StructuralError
from sigaudit.grid.reconstruction import GridReconstructor
from sigaudit.registers.cell import Cell
from sigaudit.registers.entry import Entry
from sigaudit.registers.register import Register, Row
from sigaudit.registers.signature import Signature
from sigaudit.utils.config import ScanConfig, SignatureConfig
from sigaudit.utils.io import load_image
from sigaudit.vision import image_ops
from sigaudit.vision.ocr import OCREngine


logger = logging.getLogger(__name__)

Observer = Callable[[str, np.ndarray], None]

NAME_COLUMN = 1
ID_COLUMN = 2
MIN_COLUMNS = 4


def _ignore(checkpoint: str, image: np.ndarray) -> None:
    pass


class RegisterScanner:
    """
    Interprets photographed registers.

    An optional observer is called with (checkpoint name, image) at each
    stage of the pipeline: 'binary', 'deskewed', 'vertical_lines',
    'horizontal_lines', 'intersections', 'signatures_only'.
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        signature_config: Optional[SignatureConfig] = None,
        ocr: Optional[OCREngine] = None,
        observer: Optional[Observer] = None
    ):
        self.config = config or ScanConfig()
        self.signature_config = signature_config or SignatureConfig()
        self.ocr = ocr or OCREngine()
        self.observer = observer or _ignore

    def scan_file(self, path: Union[str, Path], **kwargs) -> Register:
        """Load an image from disk and scan it."""
        return self.scan(load_image(path), **kwargs)

    def scan(
        self,
        image: np.ndarray,
        columns: Optional[int] = None,
        normalized_width: Optional[int] = None
    ) -> Register:
        """
        Interpret an image as a register.

        Args:
            image: BGR or grayscale photograph of the register
            columns: Number of cell columns, defaults to the configured value
            normalized_width: Resize the image to this width first

        Returns:
            Register with one Entry per non-header row

        Raises:
            StructuralError: If no consistent table is found
        """
        columns = columns or self.config.columns
        if normalized_width is None:
            normalized_width = self.config.normalized_width

        binary = self._binarize(image, normalized_width)
        self.observer("binary", binary)

        binary = self._deskew(binary)
        self.observer("deskewed", binary)

        v_lines = image_ops.extract_vertical_lines(binary)
        h_lines = image_ops.extract_horizontal_lines(binary)
        self.observer("vertical_lines", v_lines)
        self.observer("horizontal_lines", h_lines)

        intersections = image_ops.dilate(cv2.bitwise_and(v_lines, h_lines))
        self.observer("intersections", intersections)

        points = [
            contour.centroid for contour in image_ops.find_contours(intersections)
            if contour.centroid is not None
        ]
        logger.info("Found %d intersection points", len(points))

        height, width = binary.shape
        reconstructor = GridReconstructor.for_image(height, width, self.config.noise_threshold)
        grid = reconstructor.reconstruct(points, columns)

        if grid.column_count < MIN_COLUMNS:
            raise StructuralError(
                f"Register needs at least {MIN_COLUMNS} columns, found {grid.column_count}"
            )

        register = Register(grid.column_count)
        register.image = binary
        register.rows = self._build_rows(grid.cell_quadrilaterals())

        register.signatures_only_image = self._remove_table(register, v_lines, h_lines)
        self.observer("signatures_only", register.signatures_only_image)

        self._fill_cells(register)
        self._read_entries(register)

        logger.info(
            "Scanned register with %d rows and %d columns (%d grid retries)",
            len(register.rows), register.columns, grid.retries
        )
        return register

    def _binarize(self, image: np.ndarray, normalized_width: Optional[int]) -> np.ndarray:
        gray = image_ops.to_grayscale(image)
        if normalized_width:
            gray = image_ops.normalize_size(gray, normalized_width)
        gray = image_ops.adjust_brightness(gray)
        binary = image_ops.threshold(gray, inverse=True)

        mask = image_ops.largest_contour_mask(binary)
        return cv2.bitwise_and(binary, mask)

    def _deskew(self, binary: np.ndarray) -> np.ndarray:
        angle = image_ops.deskew_angle(binary)
        logger.debug("Deskew angle: %.3f degrees", angle)
        rotated = image_ops.rotate(binary, angle, border_value=0)
        roi = image_ops.region_of_interest(rotated)
        if roi[2] == 0 or roi[3] == 0:
            raise StructuralError("Register image is empty after deskewing")
        return image_ops.crop(rotated, roi)

    def _build_rows(self, quadrilaterals) -> List[Row]:
        rows = []
        for r, row_quads in enumerate(quadrilaterals):
            cells = [Cell(quad, c) for c, quad in enumerate(row_quads)]
            rows.append(Row(number=r + 1, cells=cells))
        return rows

    def _remove_table(self, register: Register, v_lines: np.ndarray, h_lines: np.ndarray) -> np.ndarray:
        table = cv2.bitwise_or(v_lines, h_lines)

        # Signature strokes may survive in the line images; blank the
        # inside of every signature cell before subtracting the table
        for row in register.rows[1:]:
            signature_cell = row.cells[register.columns - 1]
            inner = signature_cell.quadrilateral.deflate(self.config.signature_cell_margin)
            table = image_ops.fill_quadrilateral(table, inner, 0)

        return cv2.subtract(register.image, image_ops.dilate(table))

    def _fill_cells(self, register: Register) -> None:
        source = register.signatures_only_image
        for row in register.rows:
            for cell in row.cells:
                mask = image_ops.fill_quadrilateral(np.zeros_like(source), cell.quadrilateral, 255)
                masked = cv2.bitwise_and(source, source, mask=mask)
                contents = image_ops.crop(masked, cell.quadrilateral.bounding_rect())
                cell.set_contents(contents, register.columns)

    def _read_entries(self, register: Register) -> None:
        for row in register.rows[1:]:
            name, identifier = self._read_identity(row)
            entry = Entry(id=identifier, name=name)

            signature_cell = row.cells[register.columns - 1]
            if signature_cell.contains_signature(self.config.signature_ratio_threshold):
                entry.signature = Signature(
                    signature_cell.processed_contents, config=self.signature_config
                )
            row.entry = entry
            logger.debug("Row %d: %s signed=%s", row.number, entry.display_name, entry.is_signed)

    def _read_identity(self, row: Row) -> Tuple[str, str]:
        name = self.ocr.recognize_text(row.cells[NAME_COLUMN].processed_contents)
        identifier = self.ocr.recognize_digits(row.cells[ID_COLUMN].processed_contents)
        return name, identifier
