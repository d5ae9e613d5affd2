"""
Edge-potential fields for geodesic active contours.

The evolution engine reads a potential in [0, 1] that is low on strong edges
and high in homogeneous regions, together with its gradient. This module
builds both from a raw image.
"""

from .pipeline import (
    EdgePotentialMethod,
    EdgePotentialConfig,
    EdgePotential,
    EdgePotentialPipeline,
    curvature_anisotropic_diffusion,
    sigmoid,
)

__all__ = [
    'EdgePotentialMethod',
    'EdgePotentialConfig',
    'EdgePotential',
    'EdgePotentialPipeline',
    'curvature_anisotropic_diffusion',
    'sigmoid',
]
