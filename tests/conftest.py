"""Pytest configuration and shared fixtures for the register auditing tests."""
import sys
import logging
from pathlib import Path

import cv2
import numpy as np
import pytest

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sigaudit.registers.entry import Entry
from sigaudit.registers.signature import Signature
from sigaudit.skeleton.features import FeatureSet
from sigaudit.utils.config import ClassifierConfig


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logging.getLogger('PIL').setLevel(logging.WARNING)


@pytest.fixture(scope="session")
def project_root():
    """Provide project root directory path."""
    return PROJECT_ROOT


@pytest.fixture
def blank_skeleton():
    """Skeleton raster without any ink."""
    return np.zeros((20, 30), dtype=np.uint8)


@pytest.fixture
def ring_skeleton():
    """One pixel wide rectangular outline (one closed loop)."""
    image = np.zeros((12, 16), dtype=np.uint8)
    image[2, 2:13] = 255
    image[8, 2:13] = 255
    image[2:9, 2] = 255
    image[2:9, 12] = 255
    return image


@pytest.fixture
def filled_block():
    """Thick white block of odd height, the typical input of thinning."""
    image = np.zeros((30, 40), dtype=np.uint8)
    image[8:23, 5:35] = 255
    return image


@pytest.fixture
def signature_image():
    """Synthetic grayscale signature, dark ink on white paper."""
    image = np.full((80, 200), 255, dtype=np.uint8)
    cv2.ellipse(image, (50, 40), (30, 20), 0, 0, 360, 0, 3)
    cv2.line(image, (80, 40), (170, 25), 0, 3)
    cv2.line(image, (120, 60), (180, 50), 0, 2)
    return image


@pytest.fixture
def other_signature_image():
    """A second, clearly different synthetic signature."""
    image = np.full((80, 200), 255, dtype=np.uint8)
    cv2.line(image, (10, 70), (60, 10), 0, 3)
    cv2.line(image, (60, 10), (110, 70), 0, 3)
    cv2.line(image, (110, 70), (190, 15), 0, 3)
    return image


@pytest.fixture
def feature_set_factory():
    """Create normalized feature sets filled with a constant."""
    def _make(value: float, size: int = 31) -> FeatureSet:
        return FeatureSet.from_normalized(np.full(size, value, dtype=np.float32))
    return _make


@pytest.fixture
def entry_factory(feature_set_factory):
    """Create signed entries backed by constant feature vectors."""
    def _make(name: str = "John Doe", identifier: str = "1234", value: float = 0.2) -> Entry:
        signature = Signature.from_features(feature_set_factory(value))
        return Entry(id=identifier, name=name, signature=signature)
    return _make


@pytest.fixture
def classifier_config(tmp_path):
    """Faster-learning classifier configuration writing to a temporary directory."""
    return ClassifierConfig(networks_dir=str(tmp_path / "networks"), learning_rate=0.1, momentum=0.5)
