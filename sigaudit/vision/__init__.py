"""
OpenCV and Tesseract adapters.
"""

from sigaudit.vision import image_ops
from sigaudit.vision.image_ops import ContourInfo
from sigaudit.vision.ocr import OCREngine, filter_digits, filter_text

__all__ = [
    'image_ops',
    'ContourInfo',
    'OCREngine',
    'filter_digits',
    'filter_text',
]
