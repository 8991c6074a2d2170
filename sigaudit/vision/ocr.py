"""
Text recognition for register header cells.

Recognition is delegated to Tesseract through pytesseract; the raw output
is then filtered for the two kinds of cells a register holds (names and
numeric IDs).
"""

import logging
import re
import unicodedata

import numpy as np
import pytesseract
from PIL import Image


logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^.0-9]")


def filter_digits(text: str) -> str:
    """
    Keep only digits and dots.

    Tesseract often reads a zero as the letter O, so O is mapped to 0 before
    filtering.
    """
    text = text.upper().replace("O", "0")
    return _NON_DIGITS.sub("", text)


def _is_separator(char: str) -> bool:
    return unicodedata.category(char).startswith("Z")


def filter_text(text: str) -> str:
    """Collapse line breaks to spaces and keep letters, separators and dashes."""
    text = text.replace("\r\n", "\n").replace("\n\n", "\n").replace("\n", " ")
    text = "".join(c for c in text if c.isalpha() or _is_separator(c) or c == "-")
    return text.strip()


class OCREngine:
    """
    Tesseract-backed recognizer.
    """

    def __init__(self, lang: str = "eng", config: str = ""):
        """
        Initialize engine.

        Args:
            lang: Tesseract language code
            config: Extra Tesseract command line options
        """
        self.lang = lang
        self.config = config

    def recognize(self, image: np.ndarray) -> str:
        """Raw Tesseract output for an image."""
        text = pytesseract.image_to_string(Image.fromarray(image), lang=self.lang, config=self.config)
        logger.debug("OCR raw output: %r", text)
        return text

    def recognize_text(self, image: np.ndarray) -> str:
        """Recognize a name."""
        return filter_text(self.recognize(image))

    def recognize_digits(self, image: np.ndarray) -> str:
        """Recognize a numeric identifier."""
        return filter_digits(self.recognize(image))
