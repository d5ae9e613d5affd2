"""
Level-set evolution for geodesic active contours.

Provides the configuration, finite-difference terms and the narrow-band
evolution engine with its status state machine.
"""

from .config import EvolutionConfig
from .engine import EvolutionStatus, EvolutionResult, LevelSetEvolutionEngine
from .terms import (
    advection_term,
    curvature_term,
    propagation_term,
    sample_speeds,
    stable_time_step,
)

__all__ = [
    'EvolutionConfig',
    'EvolutionStatus',
    'EvolutionResult',
    'LevelSetEvolutionEngine',
    'advection_term',
    'curvature_term',
    'propagation_term',
    'sample_speeds',
    'stable_time_step',
]
