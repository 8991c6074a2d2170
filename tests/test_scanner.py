"""Tests for the register scanning pipeline steps."""
import cv2
import numpy as np
import pytest

from sigaudit.errors import StructuralError
from sigaudit.grid.quadrilateral import Quadrilateral
from sigaudit.registers.cell import Cell
from sigaudit.registers.register import Register, Row
from sigaudit.registers.scanner import RegisterScanner


CELL_W = 100
CELL_H = 60
COLUMNS = 4
ROWS = 3


class FakeOCR:
    """Returns canned text per row instead of calling Tesseract."""

    def __init__(self, names, identifiers):
        self.names = list(names)
        self.identifiers = list(identifiers)

    def recognize_text(self, image):
        return self.names.pop(0)

    def recognize_digits(self, image):
        return self.identifiers.pop(0)


def cell_quad(row: int, column: int) -> Quadrilateral:
    x0, y0 = column * CELL_W, row * CELL_H
    return Quadrilateral([
        (x0, y0), (x0 + CELL_W, y0), (x0 + CELL_W, y0 + CELL_H), (x0, y0 + CELL_H)
    ])


def build_register() -> Register:
    register = Register(COLUMNS)
    for r in range(ROWS):
        cells = [Cell(cell_quad(r, c), c) for c in range(COLUMNS)]
        register.rows.append(Row(number=r + 1, cells=cells))
    return register


def signed_page() -> np.ndarray:
    """White-ink page with a stroke in the signature cell of row 2 only."""
    image = np.zeros((ROWS * CELL_H, COLUMNS * CELL_W), dtype=np.uint8)
    cv2.line(image, (320, 80), (380, 100), 255, 3)
    cv2.line(image, (330, 100), (370, 75), 255, 2)
    return image


@pytest.fixture
def scanner():
    return RegisterScanner(ocr=FakeOCR(["Ann Lee", "Bo Chan"], ["1", "2"]))


class TestReadEntries:
    """Cell contents to entries."""

    def test_entries_from_cells(self, scanner):
        register = build_register()
        register.signatures_only_image = signed_page()

        scanner._fill_cells(register)
        scanner._read_entries(register)

        entries = register.entries
        assert [e.name for e in entries] == ["Ann Lee", "Bo Chan"]
        assert [e.id for e in entries] == ["1", "2"]
        assert entries[0].is_signed
        assert not entries[1].is_signed

    def test_signature_contents_are_dark_on_light(self, scanner):
        register = build_register()
        register.signatures_only_image = signed_page()
        scanner._fill_cells(register)

        contents = register.rows[1].cells[COLUMNS - 1].processed_contents
        assert contents.shape == (CELL_H, CELL_W)
        assert contents[0, 0] == 255
        assert np.count_nonzero(contents == 0) > 0

    def test_export_after_scan(self, scanner):
        register = build_register()
        register.signatures_only_image = signed_page()
        scanner._fill_cells(register)
        scanner._read_entries(register)

        assert register.to_text() == "#1\tAnn Lee\t1\tSigned\n#2\tBo Chan\t2\tNot signed\n"

    def test_signed_entry_has_features(self, scanner):
        register = build_register()
        register.signatures_only_image = signed_page()
        scanner._fill_cells(register)
        scanner._read_entries(register)

        assert register.entries[0].signature.features.size == 31


class TestRemoveTable:
    """Table subtraction keeps signature strokes."""

    def test_strokes_inside_signature_cells_survive(self, scanner):
        register = build_register()
        image = signed_page()
        h_lines = np.zeros_like(image)
        h_lines[CELL_H, :] = 255
        # Part of the signature leaked into the line image
        h_lines[90, 340:360] = 255
        image[CELL_H, :] = 255
        register.image = image

        result = scanner._remove_table(register, np.zeros_like(image), h_lines)

        assert np.count_nonzero(result[CELL_H - 1:CELL_H + 2, :]) == 0
        assert result[90, 350] == image[90, 350]


class TestScan:
    """Failure modes of the full pipeline."""

    def test_blank_page(self, scanner):
        with pytest.raises(StructuralError):
            scanner.scan(np.full((200, 300), 255, dtype=np.uint8))

    def test_default_observer_accepts_checkpoints(self):
        scanner = RegisterScanner()
        scanner.observer("binary", np.zeros((2, 2), dtype=np.uint8))
