"""
Registers, their rows and their text export.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from sigaudit.errors import StructuralError
from sigaudit.registers.cell import Cell
from sigaudit.registers.entry import Entry
from sigaudit.utils.io import read_text, write_text


SIGNED = "Signed"
NOT_SIGNED = "Not signed"


@dataclass
class Row:
    """
    A register row.

    Attributes:
        number: 1-based row number
        cells: Cells left to right
        entry: Identity record, None for the header row
    """
    number: int
    cells: List[Cell] = field(default_factory=list)
    entry: Optional[Entry] = None


class Register:
    """
    A scanned register.

    Row 0 is the header row; every other row carries one Entry.

    Attributes:
        columns: Number of cell columns
        rows: Rows top to bottom
        image: Binarized, deskewed register image
        signatures_only_image: Register image with the table removed
    """

    def __init__(self, columns: int = 4):
        self.columns = columns
        self.rows: List[Row] = []
        self.image: Optional[np.ndarray] = None
        self.signatures_only_image: Optional[np.ndarray] = None

    @property
    def entries(self) -> List[Entry]:
        return [row.entry for row in self.rows[1:] if row.entry is not None]

    def to_text(self) -> str:
        """
        Tab-delimited export, one line per non-header row:

            #<row>\\t<name>\\t<id>\\t<Signed|Not signed>
        """
        lines = []
        for r in range(1, len(self.rows)):
            entry = self.rows[r].entry
            status = SIGNED if entry.is_signed else NOT_SIGNED
            lines.append(f"#{r}\t{entry.name}\t{entry.id}\t{status}\n")
        return "".join(lines)

    def __str__(self) -> str:
        return self.to_text()

    def export(self, path: Union[str, Path]) -> None:
        write_text(self.to_text(), path)

    def compare(self, path: Union[str, Path]) -> str:
        """
        Compare with a previously exported register.

        Args:
            path: File written by export()

        Returns:
            The rows of this register that differ, newline separated
            (empty when both agree)

        Raises:
            StructuralError: If the row count or a row's field count differs
        """
        return compare_exports(self.to_text(), read_text(path))


def compare_exports(current: str, expected: str) -> str:
    """
    Compare two register exports row by row.

    Fields are compared after stripping surrounding whitespace.

    Raises:
        StructuralError: If the row count or a row's field count differs
    """
    rows1 = [line for line in current.splitlines() if line.strip()]
    rows2 = [line for line in expected.splitlines() if line.strip()]

    if len(rows1) != len(rows2):
        raise StructuralError("Given data file's structure does not match current structure")

    differences = []
    for row1, row2 in zip(rows1, rows2):
        fields1 = row1.split("\t")
        fields2 = row2.split("\t")
        if len(fields1) != len(fields2):
            raise StructuralError("Given data file's structure does not match current structure")

        if any(a.strip() != b.strip() for a, b in zip(fields1, fields2)):
            differences.append(row1)

    return "".join(f"{row}\n" for row in differences)
