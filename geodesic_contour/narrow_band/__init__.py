"""
Narrow band bookkeeping for level set evolution.

Tracks the grid points within a fixed distance of the zero crossing and
restores the signed-distance property of the level set by re-running Fast
Marching from the current zero crossing.
"""

from .band import NarrowBandConfig, NarrowBand, NarrowBandManager, zero_crossing_distances

__all__ = ['NarrowBandConfig', 'NarrowBand', 'NarrowBandManager', 'zero_crossing_distances']
