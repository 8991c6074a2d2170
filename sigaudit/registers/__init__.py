"""
Registers, their rows, cells, entries and signatures.

Usage:
------
from sigaudit.registers import RegisterScanner

register = RegisterScanner().scan_file("register.png")
register.export("register.txt")
"""

from sigaudit.registers.signature import (
    Signature,
    SignatureState,
    preprocess_signature
)
from sigaudit.registers.entry import Entry, FIELD_SEPARATOR
from sigaudit.registers.cell import Cell, SIGNATURE_RATIO_THRESHOLD
from sigaudit.registers.register import (
    Register,
    Row,
    compare_exports,
    SIGNED,
    NOT_SIGNED
)
from sigaudit.registers.scanner import RegisterScanner

__all__ = [
    'Signature',
    'SignatureState',
    'preprocess_signature',
    'Entry',
    'FIELD_SEPARATOR',
    'Cell',
    'SIGNATURE_RATIO_THRESHOLD',
    'Register',
    'Row',
    'compare_exports',
    'SIGNED',
    'NOT_SIGNED',
    'RegisterScanner',
]
