"""
I/O utilities for register auditing.

Provides functions for loading and saving register images, small text
and JSON files, and for deriving file-system safe identity names.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import cv2
import numpy as np


# Supported image extensions
SUPPORTED_EXTENSIONS = {'.tif', '.tiff', '.png', '.jpg', '.jpeg', '.bmp'}


def load_image(
    path: Union[str, Path],
    grayscale: bool = False
) -> np.ndarray:
    """
    Load an image from disk.

    Args:
        path: Path to the image file
        grayscale: Whether to load as grayscale

    Returns:
        Image as numpy array (BGR unless grayscale)

    Raises:
        FileNotFoundError: If image file does not exist
        ValueError: If image cannot be loaded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    image = cv2.imread(str(path), flag)

    if image is None:
        raise ValueError(f"Failed to load image: {path}")

    return image


def save_image(image: np.ndarray, path: Union[str, Path]) -> None:
    """
    Save an image to disk, creating parent directories.

    Args:
        image: Image as numpy array
        path: Output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if image.dtype in [np.float32, np.float64]:
        image = (image * 255).clip(0, 255).astype(np.uint8)

    cv2.imwrite(str(path), image)


def discover_images(
    directory: Union[str, Path],
    extensions: Optional[set] = None,
    recursive: bool = True
) -> List[Path]:
    """
    Discover all images in a directory.

    Args:
        directory: Root directory to search
        extensions: Set of valid extensions (default: SUPPORTED_EXTENSIONS)
        recursive: Whether to search subdirectories

    Returns:
        Sorted list of paths to discovered images
    """
    directory = Path(directory)
    extensions = extensions or SUPPORTED_EXTENSIONS

    pattern = '**/*' if recursive else '*'
    images = [
        path for path in directory.glob(pattern)
        if path.is_file() and path.suffix.lower() in extensions
    ]

    return sorted(images)


def read_text(path: Union[str, Path]) -> str:
    """Read a whole text file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def write_text(contents: str, path: Union[str, Path]) -> None:
    """Write a text file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(contents)


def load_json(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a JSON file."""
    with open(path, 'r') as f:
        return json.load(f)


def save_json(data: Dict[str, Any], path: Union[str, Path], indent: int = 2) -> None:
    """Save data to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=indent, default=str)


def sanitize_name(name: str) -> str:
    """
    Normalize a person's name for use in artifact file names.

    Lower-cases the name and strips spaces and commas.
    """
    return name.lower().replace(" ", "").replace(",", "")


def sanitize_id(identifier: str) -> str:
    """Strip asterisks from an identity number."""
    return identifier.replace("*", "")
