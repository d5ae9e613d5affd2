"""
Seeded Fast Marching distance maps.

Builds the initial level set of a segmentation run by solving the Eikonal
equation outward from seed points, and re-solves it from zero crossings when
the narrow band is redistanced.
"""

from .solver import (
    PointStatus,
    Seed,
    FastMarchingConfig,
    DistanceMapResult,
    SeededDistanceMapSolver,
)

__all__ = [
    'PointStatus',
    'Seed',
    'FastMarchingConfig',
    'DistanceMapResult',
    'SeededDistanceMapSolver',
]
