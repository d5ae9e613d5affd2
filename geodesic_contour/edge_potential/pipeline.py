"""
Edge-potential pipeline.

Implements the preprocessing chain that turns an image into the speed field
of a geodesic active contour:

1. Edge-preserving smoothing with curvature-driven anisotropic diffusion
2. Gradient magnitude of the smoothed image (Gaussian derivatives)
3. Sigmoid mapping of the gradient magnitude to [0, 1], decreasing on edges

As an alternative to steps 2-3, scikit-image's inverse gaussian gradient can
produce the edge-stopping function directly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
import logging
import numpy as np
from scipy import ndimage
from skimage.segmentation import inverse_gaussian_gradient

from ..errors import GridMismatchError, InvalidConfigurationError
from ..grid import Grid

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================

class EdgePotentialMethod(Enum):
    """Available edge-stopping functions."""
    SIGMOID = "sigmoid"
    INVERSE_GAUSSIAN = "inverse_gaussian"


@dataclass
class EdgePotentialConfig:
    """
    Configuration for the edge-potential pipeline.

    Attributes:
        method: Edge-stopping function (default: sigmoid of gradient magnitude)
        conductance: Edge sensitivity of the anisotropic diffusion (default: 3.0)
        diffusion_time_step: Diffusion time step (default: 0.125)
        diffusion_iterations: Number of diffusion steps, 0 disables (default: 5)
        sigma: Gaussian scale of the gradient magnitude, world units (default: 1.0)
        alpha: Sigmoid width; negative so that strong edges map low (default: -0.5)
        beta: Gradient magnitude at the sigmoid centre (default: 3.0)
        output_minimum: Potential value far below the centre (default: 0.0)
        output_maximum: Potential value far above the centre (default: 1.0)
        igg_alpha: Steepness for the inverse gaussian method (default: 100.0)
    """
    method: EdgePotentialMethod = EdgePotentialMethod.SIGMOID
    conductance: float = 3.0
    diffusion_time_step: float = 0.125
    diffusion_iterations: int = 5
    sigma: float = 1.0
    alpha: float = -0.5
    beta: float = 3.0
    output_minimum: float = 0.0
    output_maximum: float = 1.0
    igg_alpha: float = 100.0

    def __post_init__(self):
        """Validate configuration parameters."""
        if isinstance(self.method, str):
            try:
                self.method = EdgePotentialMethod(self.method)
            except ValueError:
                raise InvalidConfigurationError(
                    f"method must be 'sigmoid' or 'inverse_gaussian', got '{self.method}'"
                )
        if self.conductance <= 0:
            raise InvalidConfigurationError(f"conductance must be > 0, got {self.conductance}")
        if self.diffusion_time_step <= 0:
            raise InvalidConfigurationError(
                f"diffusion_time_step must be > 0, got {self.diffusion_time_step}"
            )
        if self.diffusion_iterations < 0:
            raise InvalidConfigurationError(
                f"diffusion_iterations must be >= 0, got {self.diffusion_iterations}"
            )
        if self.sigma <= 0:
            raise InvalidConfigurationError(f"sigma must be > 0, got {self.sigma}")
        if self.alpha == 0:
            raise InvalidConfigurationError("alpha must be non-zero")
        if not 0.0 <= self.output_minimum < self.output_maximum <= 1.0:
            raise InvalidConfigurationError(
                f"output range must satisfy 0 <= min < max <= 1, got "
                f"[{self.output_minimum}, {self.output_maximum}]"
            )
        if self.igg_alpha <= 0:
            raise InvalidConfigurationError(f"igg_alpha must be > 0, got {self.igg_alpha}")


# ============================================================================
# Results
# ============================================================================

@dataclass
class EdgePotential:
    """
    Read-only speed field consumed by the evolution engine.

    Attributes:
        potential: Edge potential P in [0, 1], low on edges
        grid: Geometry shared with the level set
        gradient: ∇P, shape (ndim, *grid.shape); computed when omitted
        smoothed: Smoothed input image, if produced by the pipeline
        gradient_magnitude: Gradient magnitude image, if produced by the pipeline
    """
    potential: np.ndarray
    grid: Grid
    gradient: Optional[np.ndarray] = None
    smoothed: Optional[np.ndarray] = None
    gradient_magnitude: Optional[np.ndarray] = None

    def __post_init__(self):
        self.potential = np.array(self.potential, dtype=np.float64)
        self.grid.require_array(self.potential, "edge potential")
        if self.gradient is None:
            self.gradient = field_gradient(self.potential, self.grid.spacing)
        else:
            self.gradient = np.array(self.gradient, dtype=np.float64)
            expected = (self.grid.ndim,) + self.grid.shape
            if self.gradient.shape != expected:
                raise GridMismatchError(
                    f"edge potential gradient has shape {self.gradient.shape}, expected {expected}"
                )
        self.potential.setflags(write=False)
        self.gradient.setflags(write=False)

    @classmethod
    def constant(cls, grid: Grid, value: float) -> 'EdgePotential':
        """Uniform potential, e.g. 1.0 for pure curvature flow."""
        return cls(potential=np.full(grid.shape, float(value)), grid=grid)

    def __str__(self) -> str:
        finite = self.potential[np.isfinite(self.potential)]
        span = f"[{finite.min():.3f}, {finite.max():.3f}]" if finite.size else "[]"
        return f"EdgePotential(shape={self.potential.shape}, range={span})"


def field_gradient(values: np.ndarray, spacing: Sequence[float]) -> np.ndarray:
    """
    Central-difference gradient stacked along a new first axis.

    Axes with a single sample have zero derivative.
    """
    gradient = np.zeros((values.ndim,) + values.shape, dtype=np.float64)
    for axis in range(values.ndim):
        if values.shape[axis] > 1:
            gradient[axis] = np.gradient(values, spacing[axis], axis=axis)
    return gradient


def curvature_anisotropic_diffusion(
    image: np.ndarray,
    spacing: Sequence[float],
    conductance: float = 3.0,
    time_step: float = 0.125,
    iterations: int = 5
) -> np.ndarray:
    """
    Edge-preserving smoothing by the modified curvature diffusion equation.

    Evolves I_t = |∇I| div(c(|∇I|) ∇I / |∇I|) with the conductance
    c(g) = exp(-(g / K)^2), where K is the conductance parameter scaled by
    the mean gradient magnitude of the current image. Homogeneous regions
    are smoothed while strong edges are preserved.

    Args:
        image: Input image (any dimension)
        spacing: Per-axis spacing
        conductance: Edge sensitivity; larger values smooth across more edges
        time_step: Explicit step size, stable up to 1 / 2^(N+1) on unit spacing
        iterations: Number of steps

    Returns:
        Smoothed image (float64)
    """
    smoothed = np.asarray(image, dtype=np.float64).copy()
    for _ in range(iterations):
        gradient = field_gradient(smoothed, spacing)
        magnitude = np.sqrt((gradient ** 2).sum(axis=0))
        mean_magnitude = magnitude.mean()
        if mean_magnitude == 0:
            break
        k = conductance * mean_magnitude
        conduct = np.exp(-(magnitude / k) ** 2)
        normalizer = np.where(magnitude > 0, magnitude, 1.0)
        divergence = np.zeros_like(smoothed)
        for axis in range(smoothed.ndim):
            if smoothed.shape[axis] > 1:
                flux = conduct * gradient[axis] / normalizer
                divergence += np.gradient(flux, spacing[axis], axis=axis)
        smoothed += time_step * magnitude * divergence
    return smoothed


def sigmoid(
    values: np.ndarray,
    alpha: float,
    beta: float,
    output_minimum: float = 0.0,
    output_maximum: float = 1.0
) -> np.ndarray:
    """
    Sigmoid intensity mapping (max - min) / (1 + exp(-(x - beta) / alpha)) + min.

    With a negative alpha, values well above beta map to output_minimum.
    """
    with np.errstate(over='ignore'):
        scaled = np.exp(-(np.asarray(values, dtype=np.float64) - beta) / alpha)
    return (output_maximum - output_minimum) / (1.0 + scaled) + output_minimum


# ============================================================================
# Pipeline
# ============================================================================

class EdgePotentialPipeline:
    """
    Build an EdgePotential from a raw image.

    Example:
        >>> pipeline = EdgePotentialPipeline(EdgePotentialConfig(sigma=1.0, alpha=-0.5, beta=3.0))
        >>> edge = pipeline.compute(image)
        >>> edge.potential.min() >= 0.0 and edge.potential.max() <= 1.0
        True
    """

    def __init__(self, config: Optional[EdgePotentialConfig] = None):
        self.config = config or EdgePotentialConfig()

    def compute(self, image: np.ndarray, grid: Optional[Grid] = None) -> EdgePotential:
        """
        Run the full chain on an image.

        Args:
            image: Scalar image (2D or N-D)
            grid: Geometry of the image (default: unit spacing at the origin)

        Returns:
            EdgePotential carrying the potential, its gradient and the
            intermediate images
        """
        image = np.asarray(image, dtype=np.float64)
        if grid is None:
            grid = Grid.like(image)
        grid.require_array(image, "input image")
        config = self.config

        smoothed = curvature_anisotropic_diffusion(
            image,
            grid.spacing,
            conductance=config.conductance,
            time_step=config.diffusion_time_step,
            iterations=config.diffusion_iterations
        )

        if config.method == EdgePotentialMethod.INVERSE_GAUSSIAN:
            magnitude = None
            potential = inverse_gaussian_gradient(smoothed, alpha=config.igg_alpha, sigma=config.sigma)
        else:
            magnitude = self.gradient_magnitude(smoothed, grid)
            potential = sigmoid(
                magnitude,
                alpha=config.alpha,
                beta=config.beta,
                output_minimum=config.output_minimum,
                output_maximum=config.output_maximum
            )

        logger.info(
            "Edge potential computed (%s): range [%.3f, %.3f]",
            config.method.value, float(potential.min()), float(potential.max())
        )
        return EdgePotential(
            potential=potential,
            grid=grid,
            smoothed=smoothed,
            gradient_magnitude=magnitude
        )

    def gradient_magnitude(self, image: np.ndarray, grid: Grid) -> np.ndarray:
        """Gradient magnitude with Gaussian derivatives; sigma in world units."""
        sigma_index = [self.config.sigma / h for h in grid.spacing]
        magnitude = ndimage.gaussian_gradient_magnitude(image, sigma=sigma_index)
        # Derivatives were taken per index; rescale to world units
        if len(set(grid.spacing)) == 1:
            return magnitude / grid.spacing[0]
        gradient = [
            ndimage.gaussian_filter(image, sigma=sigma_index, order=[int(a == axis) for a in range(image.ndim)])
            / grid.spacing[axis]
            for axis in range(image.ndim)
        ]
        return np.sqrt(sum(g ** 2 for g in gradient))
