"""Tests for image operations and OCR filtering."""
from unittest.mock import patch

import cv2
import numpy as np
import pytest

from sigaudit.errors import StructuralError
from sigaudit.grid.quadrilateral import Quadrilateral
from sigaudit.vision import image_ops
from sigaudit.vision.ocr import OCREngine, filter_digits, filter_text


class TestOCRFilters:
    """Post-processing of raw Tesseract output."""

    def test_digits_map_letter_o(self):
        assert filter_digits("ID: 12O4.5\n") == "1204.5"

    def test_digits_lowercase_o(self):
        assert filter_digits("o7") == "07"

    def test_digits_empty(self):
        assert filter_digits("") == ""

    def test_text_collapses_lines(self):
        assert filter_text("John\n\nDoe-Smith 3rd!\n") == "John Doe-Smith rd"

    def test_text_windows_line_breaks(self):
        assert filter_text("Ann\r\nLee") == "Ann Lee"

    def test_text_keeps_accents(self):
        assert filter_text("Zoë Ærø") == "Zoë Ærø"


class TestOCREngine:
    """Engine delegates to pytesseract."""

    @pytest.fixture
    def image(self):
        return np.full((20, 60), 255, dtype=np.uint8)

    def test_recognize_text(self, image):
        with patch("sigaudit.vision.ocr.pytesseract.image_to_string", return_value="Ann\nLee 1\n") as mock:
            assert OCREngine(lang="eng").recognize_text(image) == "Ann Lee"
        _, kwargs = mock.call_args
        assert kwargs["lang"] == "eng"

    def test_recognize_digits(self, image):
        with patch("sigaudit.vision.ocr.pytesseract.image_to_string", return_value="4O2 "):
            assert OCREngine().recognize_digits(image) == "402"


class TestImageOps:
    """OpenCV helpers."""

    def test_threshold_binary(self):
        image = np.full((10, 10), 200, dtype=np.uint8)
        image[2:5, 2:5] = 20
        binary = image_ops.threshold(image, inverse=True)
        assert set(np.unique(binary)) == {0, 255}
        assert binary[3, 3] == 255
        assert binary[8, 8] == 0

    def test_grayscale_conversion(self):
        color = np.zeros((5, 5, 3), dtype=np.uint8)
        assert image_ops.to_grayscale(color).shape == (5, 5)

    def test_unknown_morphology(self):
        with pytest.raises(ValueError):
            image_ops.morphology(np.zeros((5, 5), dtype=np.uint8), op="skeletonize")

    def test_region_of_interest(self):
        image = np.zeros((50, 80), dtype=np.uint8)
        image[10:20, 30:45] = 255
        assert image_ops.region_of_interest(image) == (30, 10, 15, 10)

    def test_region_of_interest_empty(self):
        assert image_ops.region_of_interest(np.zeros((5, 5), dtype=np.uint8)) == (0, 0, 0, 0)

    def test_crop(self):
        image = np.arange(100, dtype=np.uint8).reshape(10, 10)
        cropped = image_ops.crop(image, (2, 3, 4, 2))
        assert cropped.shape == (2, 4)
        assert cropped[0, 0] == 32

    def test_rotate_keeps_shape(self):
        image = np.zeros((40, 60), dtype=np.uint8)
        assert image_ops.rotate(image, 5.0).shape == (40, 60)

    def test_rotate_zero_is_identity(self):
        image = np.zeros((20, 20), dtype=np.uint8)
        image[5:15, 9:11] = 255
        np.testing.assert_array_equal(image_ops.rotate(image, 0.0), image)

    def test_normalize_size(self):
        image = np.zeros((100, 200), dtype=np.uint8)
        assert image_ops.normalize_size(image, 100).shape == (50, 100)

    def test_find_contours_centroid(self):
        image = np.zeros((30, 30), dtype=np.uint8)
        image[10:21, 10:21] = 255
        contours = image_ops.find_contours(image, external=True)
        assert len(contours) == 1
        assert contours[0].centroid == (15, 15)
        assert contours[0].bounding_box == (10, 10, 11, 11)

    def test_remove_clutter(self):
        image = np.zeros((60, 100), dtype=np.uint8)
        cv2.line(image, (10, 30), (90, 30), 255, 3)
        image[5, 5] = 255
        cleaned = image_ops.remove_clutter(image, 63)
        assert cleaned[5, 5] == 0
        assert cleaned[30, 50] == 255

    def test_largest_contour_mask(self):
        image = np.zeros((100, 100), dtype=np.uint8)
        image[10:90, 10:90] = 255
        image[0:3, 0:3] = 255
        mask = image_ops.largest_contour_mask(image)
        assert mask[50, 50] == 255
        assert mask[1, 1] == 0

    def test_largest_contour_mask_missing(self):
        with pytest.raises(StructuralError):
            image_ops.largest_contour_mask(np.zeros((20, 20), dtype=np.uint8))

    def test_fill_quadrilateral_copies(self):
        image = np.zeros((20, 20), dtype=np.uint8)
        quad = Quadrilateral([(2, 2), (10, 2), (10, 10), (2, 10)])
        filled = image_ops.fill_quadrilateral(image, quad)
        assert filled[5, 5] == 255
        assert image[5, 5] == 0
        assert image_ops.count_pixels(filled) == 81

    def test_deskew_blank(self):
        assert image_ops.deskew_angle(np.zeros((50, 50), dtype=np.uint8)) == 0.0
