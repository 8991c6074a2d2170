"""
Neural classifiers for signature verification.
"""

from sigaudit.models.classifier import (
    Classifier,
    build_network,
    network_path,
    normalize_feature_vectors,
    GENUINE_TARGET,
    FORGED_TARGET
)

__all__ = [
    'Classifier',
    'build_network',
    'network_path',
    'normalize_feature_vectors',
    'GENUINE_TARGET',
    'FORGED_TARGET',
]
