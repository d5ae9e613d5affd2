"""
Segmentation pipeline: seeds, thresholding and the end-to-end run.
"""

from .seeds import SeedProvider, initial_level_set_from_mask
from .threshold import ThresholdConfig, ThresholdExtractor
from .pipeline import (
    SegmentationConfig,
    SegmentationResult,
    compute_initial_level_set,
    segment,
    segment_images_batch,
)

__all__ = [
    'SeedProvider',
    'initial_level_set_from_mask',
    'ThresholdConfig',
    'ThresholdExtractor',
    'SegmentationConfig',
    'SegmentationResult',
    'compute_initial_level_set',
    'segment',
    'segment_images_batch',
]
