"""
Geodesic active contour segmentation.

Segments an object boundary by growing an implicit contour from seed points
with a Fast Marching distance map and then evolving it on a narrow band
toward the edges of an edge-potential field.

Pipeline:
1. Edge potential: anisotropic smoothing → gradient magnitude → sigmoid
2. Initial level set: seeded Fast Marching (Eikonal) distance map
3. Evolution: narrow-band geodesic active contour until RMS convergence
4. Thresholding: level set → binary mask (inside negative)
"""

from .errors import (
    ErrorKind,
    SegmentationError,
    InvalidSeedError,
    InvalidConfigurationError,
    GridMismatchError,
    NumericalBreakdownError,
)
from .grid import Grid
from .fast_marching import Seed, FastMarchingConfig, SeededDistanceMapSolver, DistanceMapResult
from .narrow_band import NarrowBandConfig, NarrowBandManager
from .level_set import EvolutionConfig, EvolutionStatus, EvolutionResult, LevelSetEvolutionEngine
from .edge_potential import EdgePotentialConfig, EdgePotential, EdgePotentialPipeline
from .segmentation import (
    SeedProvider,
    initial_level_set_from_mask,
    ThresholdConfig,
    ThresholdExtractor,
    SegmentationConfig,
    SegmentationResult,
    segment,
    segment_images_batch,
)
from .logging_config import setup_logging

__all__ = [
    'ErrorKind',
    'SegmentationError',
    'InvalidSeedError',
    'InvalidConfigurationError',
    'GridMismatchError',
    'NumericalBreakdownError',
    'Grid',
    'Seed',
    'FastMarchingConfig',
    'SeededDistanceMapSolver',
    'DistanceMapResult',
    'NarrowBandConfig',
    'NarrowBandManager',
    'EvolutionConfig',
    'EvolutionStatus',
    'EvolutionResult',
    'LevelSetEvolutionEngine',
    'EdgePotentialConfig',
    'EdgePotential',
    'EdgePotentialPipeline',
    'SeedProvider',
    'initial_level_set_from_mask',
    'ThresholdConfig',
    'ThresholdExtractor',
    'SegmentationConfig',
    'SegmentationResult',
    'segment',
    'segment_images_batch',
    'setup_logging',
]
