"""
Identity records read from register rows.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sigaudit.errors import ConfigurationError, FormatError
from sigaudit.registers.signature import Signature
from sigaudit.skeleton.features import FeatureSet
from sigaudit.utils.io import read_text, write_text


FIELD_SEPARATOR = "|"


@dataclass
class Entry:
    """
    One person's record on a register.

    Attributes:
        id: Identity number as read from the register
        name: Person's name
        signature: The signature, None if the cell was left unsigned

    Note:
        Pipe characters inside the ID or name are not escaped, so such
        entries cannot be read back correctly.
    """
    id: str = ""
    name: str = ""
    signature: Optional[Signature] = None

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.id})"

    def to_line(self) -> str:
        """
        Serialize as ``ID|Name|f0|f1|...|``.

        Raises:
            ConfigurationError: If the entry has no signature
        """
        if self.signature is None:
            raise ConfigurationError(f"Entry {self.display_name} has no signature to export")

        values = self.signature.feature_vector()
        parts = [self.id, self.name] + [repr(float(v)) for v in values]
        return FIELD_SEPARATOR.join(parts) + FIELD_SEPARATOR

    @classmethod
    def from_line(cls, line: str) -> "Entry":
        """
        Parse a line written by to_line().

        The restored signature only carries normalized features.

        Raises:
            FormatError: If fields are missing or a feature is not a number
        """
        fields = line.strip().split(FIELD_SEPARATOR)
        if fields and fields[-1] == "":
            fields = fields[:-1]
        if len(fields) < 2:
            raise FormatError(f"Malformed entry: {line!r}")

        try:
            values = [float(value) for value in fields[2:]]
        except ValueError as exc:
            raise FormatError(f"Malformed entry feature: {exc}") from exc

        signature = Signature.from_features(FeatureSet.from_normalized(values))
        return cls(id=fields[0], name=fields[1], signature=signature)

    def export(self, path: Union[str, Path]) -> None:
        """Write the entry to a file."""
        write_text(self.to_line(), path)

    @classmethod
    def import_file(cls, path: Union[str, Path]) -> "Entry":
        """Read an entry written by export()."""
        return cls.from_line(read_text(path))
