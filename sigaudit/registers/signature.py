"""
Signatures cut out of register cells.

A signature moves through four states, each computed lazily from the
previous one on first use:

    RAW -> PREPROCESSED -> FEATURE_EXTRACTED -> NORMALIZED
"""

import logging
from enum import Enum
from typing import Optional

import cv2
import numpy as np

from sigaudit.errors import ConfigurationError
from sigaudit.skeleton.features import FeatureExtractor, FeatureSet
from sigaudit.skeleton.thinning import FOREGROUND, Thinner
from sigaudit.utils.config import SignatureConfig
from sigaudit.vision import image_ops


logger = logging.getLogger(__name__)


class SignatureState(Enum):
    """Processing state of a signature."""
    RAW = "raw"
    PREPROCESSED = "preprocessed"
    FEATURE_EXTRACTED = "feature_extracted"
    NORMALIZED = "normalized"


def preprocess_signature(image: np.ndarray, config: Optional[SignatureConfig] = None) -> np.ndarray:
    """
    Turn a raw signature into a skeleton.

    Steps: Otsu inverse binarization, resize to the configured width,
    crop to the ink bounding box (plus one pixel), thinning.

    Args:
        image: Grayscale signature, dark ink on light paper
        config: Signature settings

    Returns:
        Skeleton with white (0xFF) ink on black
    """
    config = config or SignatureConfig()
    gray = image_ops.to_grayscale(image)

    if gray.size == 0:
        raise ConfigurationError("Cannot preprocess an empty signature image")

    if gray.min() == gray.max():
        # Uniform image, nothing to separate
        binary = np.zeros_like(gray)
    else:
        binary = image_ops.threshold(gray, inverse=True)

    h, w = binary.shape
    width = config.normalized_width
    height = max(1, int(width / w * h))
    resized = cv2.resize(binary, (width, height), interpolation=cv2.INTER_CUBIC)
    binary = np.where(resized > 127, FOREGROUND, 0).astype(np.uint8)

    x, y, rw, rh = image_ops.region_of_interest(binary)
    if rw > 0 and rh > 0:
        x0 = max(0, x - 1)
        y0 = max(0, y - 1)
        x1 = min(binary.shape[1], x + rw + 1)
        y1 = min(binary.shape[0], y + rh + 1)
        binary = binary[y0:y1, x0:x1].copy()

    thinner = Thinner(config.thinning_method, foreground=FOREGROUND)
    return thinner.process(binary)


class Signature:
    """
    A signature and its lazily derived representations.

    Attributes:
        image: Raw grayscale image (dark ink on light paper), may be None
            for signatures restored from persisted features
        config: Preprocessing and extraction settings
    """

    def __init__(
        self,
        image: Optional[np.ndarray] = None,
        features: Optional[FeatureSet] = None,
        config: Optional[SignatureConfig] = None
    ):
        self.image = image
        self.config = config or SignatureConfig()
        self._processed_image: Optional[np.ndarray] = None
        self._features = features

    @classmethod
    def from_features(cls, features: FeatureSet) -> "Signature":
        return cls(features=features)

    @property
    def state(self) -> SignatureState:
        if self._features is not None:
            if self._features.is_normalized:
                return SignatureState.NORMALIZED
            return SignatureState.FEATURE_EXTRACTED
        if self._processed_image is not None:
            return SignatureState.PREPROCESSED
        return SignatureState.RAW

    @property
    def processed_image(self) -> np.ndarray:
        """Skeletonized signature (white ink), computed on first access."""
        if self._processed_image is None:
            if self.image is None:
                raise ConfigurationError("Signature has no image to preprocess")
            self._processed_image = preprocess_signature(self.image, self.config)
        return self._processed_image

    @property
    def features(self) -> FeatureSet:
        """Normalized feature set, computed on first access."""
        return self.extract_features()

    @features.setter
    def features(self, value: FeatureSet) -> None:
        self._features = value

    def extract_features(self, include_geometric_centers: Optional[bool] = None) -> FeatureSet:
        """
        Extract and normalize the signature's features.

        Already normalized features are returned unchanged; features that
        were extracted but not normalized are normalized against the
        processed image.

        Args:
            include_geometric_centers: Overrides the configured setting

        Returns:
            Normalized FeatureSet
        """
        if self._features is not None:
            if not self._features.is_normalized:
                skeleton = self.processed_image
                self._features.normalize((skeleton.shape[1], skeleton.shape[0]))
            return self._features

        if include_geometric_centers is None:
            include_geometric_centers = self.config.include_geometric_centers

        extractor = FeatureExtractor(include_geometric_centers)
        self._features = extractor.extract(self.processed_image, normalize=True)
        logger.debug("Extracted %d features", self._features.size)
        return self._features

    def feature_vector(self) -> np.ndarray:
        """Normalized feature vector."""
        return self.extract_features().normalized_data
