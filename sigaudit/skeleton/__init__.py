"""
Signature skeletonization and shape description.

Usage:
------
from sigaudit.skeleton import Thinner, FeatureExtractor

skeleton = Thinner("zhang_suen").process(binary)
features = FeatureExtractor().extract(skeleton)
"""

from sigaudit.skeleton.thinning import (
    FOREGROUND,
    BACKGROUND,
    ThinningFilter,
    ZhangSuenThinningFilter,
    StentifordThinningFilter,
    THINNING_METHODS,
    create_thinning_filter,
    zhang_suen_thinning,
    stentiford_thinning,
    validate_binary,
    Thinner
)
from sigaudit.skeleton.features import (
    FeatureSet,
    FeatureExtractor,
    dissimilarity,
    get_closed_loops,
    get_cross_points,
    get_edge_points,
    get_horizontal_geometric_centers,
    get_vertical_geometric_centers
)

__all__ = [
    # Thinning
    'FOREGROUND',
    'BACKGROUND',
    'ThinningFilter',
    'ZhangSuenThinningFilter',
    'StentifordThinningFilter',
    'THINNING_METHODS',
    'create_thinning_filter',
    'zhang_suen_thinning',
    'stentiford_thinning',
    'validate_binary',
    'Thinner',
    # Features
    'FeatureSet',
    'FeatureExtractor',
    'dissimilarity',
    'get_closed_loops',
    'get_cross_points',
    'get_edge_points',
    'get_horizontal_geometric_centers',
    'get_vertical_geometric_centers',
]
