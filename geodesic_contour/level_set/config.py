"""Configuration of the level-set evolution engine."""

from dataclasses import dataclass, field
from typing import Optional
import numpy as np

from ..errors import InvalidConfigurationError
from ..narrow_band import NarrowBandConfig


@dataclass
class EvolutionConfig:
    """
    Configuration for geodesic active contour evolution.

    Attributes:
        propagation_scaling: Weight of the inflation term P|∇u| (>= 0, default: 1.0)
        curvature_scaling: Weight of the smoothing term Pκ|∇u| (>= 0, default: 1.0)
        advection_scaling: Weight of the edge attraction term ∇P·∇u; the sign
                           selects the direction of attraction (default: 1.0)
        maximum_iterations: Iteration cap (> 0, default: 800)
        maximum_rms_error: Converged once the RMS change over the band drops
                           below this value (> 0, default: 0.02)
        cfl_number: Fraction of the stable time step actually taken,
                    in (0, 1] (default: 0.5)
        time_step: Optional upper bound on the time step (default: None)
        interpolate_speeds: Sample P and ∇P at the nearest zero-crossing
                            position instead of the grid point (default: True)
        band: Narrow band configuration
    """
    propagation_scaling: float = 1.0
    curvature_scaling: float = 1.0
    advection_scaling: float = 1.0
    maximum_iterations: int = 800
    maximum_rms_error: float = 0.02
    cfl_number: float = 0.5
    time_step: Optional[float] = None
    interpolate_speeds: bool = True
    band: NarrowBandConfig = field(default_factory=NarrowBandConfig)

    def __post_init__(self):
        """Validate configuration parameters."""
        if not np.isfinite(self.propagation_scaling) or self.propagation_scaling < 0:
            raise InvalidConfigurationError(
                f"propagation_scaling must be >= 0, got {self.propagation_scaling}"
            )
        if not np.isfinite(self.curvature_scaling) or self.curvature_scaling < 0:
            raise InvalidConfigurationError(
                f"curvature_scaling must be >= 0, got {self.curvature_scaling}"
            )
        if not np.isfinite(self.advection_scaling):
            raise InvalidConfigurationError(
                f"advection_scaling must be finite, got {self.advection_scaling}"
            )
        if isinstance(self.maximum_iterations, bool) or int(self.maximum_iterations) != self.maximum_iterations:
            raise InvalidConfigurationError(
                f"maximum_iterations must be an integer, got {self.maximum_iterations}"
            )
        if self.maximum_iterations <= 0:
            raise InvalidConfigurationError(
                f"maximum_iterations must be > 0, got {self.maximum_iterations}"
            )
        self.maximum_iterations = int(self.maximum_iterations)
        if not self.maximum_rms_error > 0:
            raise InvalidConfigurationError(
                f"maximum_rms_error must be > 0, got {self.maximum_rms_error}"
            )
        if not 0 < self.cfl_number <= 1:
            raise InvalidConfigurationError(f"cfl_number must be in (0, 1], got {self.cfl_number}")
        if self.time_step is not None and not self.time_step > 0:
            raise InvalidConfigurationError(f"time_step must be > 0, got {self.time_step}")
        if not isinstance(self.band, NarrowBandConfig):
            raise InvalidConfigurationError("band must be a NarrowBandConfig")
