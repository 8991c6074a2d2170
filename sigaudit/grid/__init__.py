"""
Register grid geometry.
"""

from sigaudit.grid.quadrilateral import Quadrilateral
from sigaudit.grid.reconstruction import (
    GridReconstructor,
    GridReconstruction,
    group_points,
    MAX_ATTEMPTS
)

__all__ = [
    'Quadrilateral',
    'GridReconstructor',
    'GridReconstruction',
    'group_points',
    'MAX_ATTEMPTS',
]
