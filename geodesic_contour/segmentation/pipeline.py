"""
End-to-end geodesic active contour segmentation.

Data flows in one direction through the stages:

    image ──► EdgePotentialPipeline ──► edge potential ─────────┐
    seeds ──► SeededDistanceMapSolver ──► initial level set ──► LevelSetEvolutionEngine
                                                                 │
                                         mask ◄── ThresholdExtractor

Every stage output is kept on the SegmentationResult. Configuration, seed
and geometry errors, as well as a failed evolution, end the run before
thresholding: the result then carries the error and no mask.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence
import logging
import numpy as np
from skimage import measure

from ..edge_potential import EdgePotential, EdgePotentialConfig, EdgePotentialPipeline
from ..errors import ErrorKind, InvalidConfigurationError, SegmentationError
from ..fast_marching import DistanceMapResult, FastMarchingConfig, Seed, SeededDistanceMapSolver
from ..grid import Grid
from ..level_set import EvolutionConfig, EvolutionResult, LevelSetEvolutionEngine
from .seeds import SeedProvider
from .threshold import ThresholdConfig, ThresholdExtractor

logger = logging.getLogger(__name__)


@dataclass
class SegmentationConfig:
    """
    Configuration for a full segmentation run.

    Attributes:
        initial_distance: Radius of the initial contour around each seed (default: 5.0)
        spacing: Per-axis pixel spacing of the input (default: 1.0 per axis)
        origin: World position of the first pixel (default: 0.0 per axis)
        edge_potential: Edge potential pipeline configuration
        evolution: Evolution engine configuration
        threshold: Thresholding configuration
    """
    initial_distance: float = 5.0
    spacing: Optional[Sequence[float]] = None
    origin: Optional[Sequence[float]] = None
    edge_potential: EdgePotentialConfig = field(default_factory=EdgePotentialConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)

    def __post_init__(self):
        """Validate configuration parameters."""
        if not np.isfinite(self.initial_distance) or self.initial_distance < 0:
            raise InvalidConfigurationError(
                f"initial_distance must be a non-negative finite number, got {self.initial_distance}"
            )


@dataclass
class SegmentationResult:
    """
    Outputs of every stage of a segmentation run.

    Attributes:
        edge_potential: Edge potential and intermediate images
        initial_level_set: Fast Marching distance map used as initial contour
        evolution: Evolution result (final level set, status, iterations)
        mask: 8-bit mask, None unless the run succeeded
        error: Kind of the error that ended the run, if any
        message: Error message, if any
    """
    edge_potential: Optional[EdgePotential] = None
    initial_level_set: Optional[DistanceMapResult] = None
    evolution: Optional[EvolutionResult] = None
    mask: Optional[np.ndarray] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.mask is not None

    def contours(self, level: float = 0.0) -> List[np.ndarray]:
        """
        Sub-pixel contours of the final 2D level set.

        Returns:
            List of (n, 2) arrays of (row, column) coordinates
        """
        if self.evolution is None:
            raise ValueError("No evolution result available")
        level_set = self.evolution.level_set
        if level_set.ndim != 2:
            raise ValueError(f"Contours require a 2D level set, got {level_set.ndim}D")
        return measure.find_contours(level_set, level)

    def report(self) -> List[str]:
        """Summary lines of the run."""
        lines = []
        if self.evolution is not None:
            evolution = self.evolution
            lines.extend([
                f"No. elapsed iterations: {evolution.elapsed_iterations}",
                f"RMS change: {evolution.rms_change:g}",
                f"Status: {evolution.status.value}",
            ])
        if self.error is not None:
            lines.append(f"Error ({self.error.value}): {self.message}")
        elif self.mask is not None:
            inside = int((self.mask > 0).sum())
            lines.append(f"Segmented points: {inside} / {self.mask.size}")
        return lines


def compute_initial_level_set(
    grid: Grid,
    seeds: Sequence[Seed],
    stopping_value: Optional[float] = None
) -> DistanceMapResult:
    """
    Seeded Fast Marching distance map with unit speed.

    Args:
        grid: Output geometry
        seeds: Validated seeds
        stopping_value: Stop marching beyond this arrival value (default: no limit)

    Returns:
        DistanceMapResult whose zero crossing is the initial contour
    """
    config = FastMarchingConfig(
        seeds=list(seeds),
        output_size=grid.shape,
        spacing=grid.spacing,
        origin=grid.origin,
        speed_constant=1.0,
        stopping_value=np.inf if stopping_value is None else stopping_value
    )
    solver = SeededDistanceMapSolver(config)
    solver.validate_seeds()
    return solver.solve()


def segment(
    image: np.ndarray,
    seeds: Sequence[Sequence[int]],
    config: Optional[SegmentationConfig] = None,
    should_stop: Optional[Callable[[LevelSetEvolutionEngine], bool]] = None
) -> SegmentationResult:
    """
    Segment the object around the seeds.

    Args:
        image: Scalar input image
        seeds: Seed indices in array order, e.g. [(row, column)]
        config: Segmentation configuration. If None, uses defaults.
        should_stop: Optional cancellation check passed to the engine

    Returns:
        SegmentationResult; check succeeded before using the mask
    """
    config = config or SegmentationConfig()
    result = SegmentationResult()
    try:
        image = np.asarray(image, dtype=np.float64)
        grid = Grid.like(image, spacing=config.spacing, origin=config.origin)
        seed_list = SeedProvider(grid).from_indices(seeds, config.initial_distance)

        result.edge_potential = EdgePotentialPipeline(config.edge_potential).compute(image, grid)
        # Points farther than the band sentinel are clamped when the band is built
        stopping_value = config.evolution.band.bandwidth + 2.0 * max(grid.spacing)
        result.initial_level_set = compute_initial_level_set(grid, seed_list, stopping_value)
        logger.info("Initial level set: %s", result.initial_level_set)

        engine = LevelSetEvolutionEngine(
            result.initial_level_set, result.edge_potential, config.evolution
        )
        result.evolution = engine.run(should_stop=should_stop)
        result.evolution.raise_for_status()
    except SegmentationError as e:
        logger.error("Segmentation failed (%s): %s", e.kind.value, e.message)
        result.error = e.kind
        result.message = e.message
        return result

    result.mask = ThresholdExtractor(config.threshold).extract(result.evolution.level_set)
    return result


def segment_images_batch(
    images: Dict[str, np.ndarray],
    seeds: Dict[str, Sequence[Sequence[int]]],
    config: Optional[SegmentationConfig] = None
) -> Dict[str, SegmentationResult]:
    """
    Aplica la segmentación por contorno activo geodésico a un batch de imágenes.

    Para cada imagen se construye el potencial de bordes, se inicializa el
    level set con Fast Marching desde sus semillas y se evoluciona hasta
    convergencia. Los errores de una imagen quedan registrados en su
    resultado y no detienen el resto del batch.

    Args:
        images: Diccionario {image_id: numpy_array} con imágenes en escala de grises.
        seeds: Diccionario {image_id: [(fila, columna), ...]} con las semillas
               de cada imagen.
        config: Configuración de segmentación. Si None, usa valores por defecto.

    Returns:
        Diccionario {image_id: SegmentationResult}.

    Raises:
        ValueError: Si images y seeds tienen IDs diferentes.
        ValueError: Si alguna imagen no es 2D.

    Example:
        >>> results = segment_images_batch({'brain': image}, {'brain': [(81, 56)]})
        >>> mask = results['brain'].mask
    """
    # Validar que ambos diccionarios tienen los mismos IDs
    image_ids = set(images.keys())
    seed_ids = set(seeds.keys())

    if image_ids != seed_ids:
        missing_in_seeds = image_ids - seed_ids
        missing_in_images = seed_ids - image_ids
        error_msg = "Los diccionarios images y seeds deben tener los mismos IDs.\n"
        if missing_in_seeds:
            error_msg += f"Faltan en seeds: {missing_in_seeds}\n"
        if missing_in_images:
            error_msg += f"Faltan en images: {missing_in_images}\n"
        raise ValueError(error_msg)

    results = {}

    for image_id in images:
        img = np.asarray(images[image_id])

        if img.ndim != 2:
            raise ValueError(
                f"Imagen '{image_id}' debe tener shape (H, W), "
                f"tiene shape {img.shape}"
            )

        logger.info("Segmenting image '%s'", image_id)
        results[image_id] = segment(img, seeds[image_id], config)

    return results
