"""
Grid primitives shared by the distance solver and the evolution engine.

Provides the immutable N-dimensional grid geometry (shape, spacing, origin)
and band-restricted finite-difference stencils.
"""

from .grid import Grid
from .stencil import BandStencil

__all__ = ['Grid', 'BandStencil']
