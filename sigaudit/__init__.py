"""
sigaudit: attendance register signature auditing.

Locates the table of a photographed register, reads the name and ID of each
row, detects whether the row was signed and verifies signatures against
per-identity neural classifiers.
"""

__version__ = "0.1.0"

from sigaudit.errors import (
    SigauditError,
    FormatError,
    ConfigurationError,
    StructuralError,
    Score,
    UnknownIdentity,
    ClassificationResult
)

__all__ = [
    'SigauditError',
    'FormatError',
    'ConfigurationError',
    'StructuralError',
    'Score',
    'UnknownIdentity',
    'ClassificationResult',
]
