"""
Initial contours for the evolution engine.

Two ways to start a segmentation:

- SeedProvider: seed points whose Fast Marching distance map has its zero
  crossing at a fixed distance around each seed
- initial_level_set_from_mask: signed distance to the boundary of an
  existing binary region, computed with scikit-fmm
"""

from typing import Iterable, List, Sequence
import logging
import numpy as np
import skfmm

from ..errors import InvalidConfigurationError, InvalidSeedError
from ..fast_marching import Seed
from ..grid import Grid

logger = logging.getLogger(__name__)


class SeedProvider:
    """
    Build validated seeds on a grid.

    The arrival value of every seed is -initial_distance, so the zero level
    of the distance map grown from it lies initial_distance away.

    Example:
        >>> provider = SeedProvider(Grid.from_shape((128, 128)))
        >>> provider.from_indices([(81, 56)], initial_distance=5.0)
        [Seed(index=(81, 56), value=-5.0)]
    """

    def __init__(self, grid: Grid):
        self.grid = grid

    def from_indices(
        self,
        indices: Iterable[Sequence[int]],
        initial_distance: float = 0.0
    ) -> List[Seed]:
        """
        Seeds at integer grid indices.

        Args:
            indices: Index tuples in array order
            initial_distance: Distance from the seeds to the initial contour

        Returns:
            List of Seed objects

        Raises:
            InvalidSeedError: If an index has the wrong dimension, is not
                              integral or lies outside the grid
            InvalidConfigurationError: If initial_distance is negative or not finite
        """
        if not np.isfinite(initial_distance) or initial_distance < 0:
            raise InvalidConfigurationError(
                f"initial_distance must be a non-negative finite number, got {initial_distance}"
            )
        seeds = []
        for index in indices:
            index = tuple(index)
            if len(index) != self.grid.ndim:
                raise InvalidSeedError(
                    f"Seed {index} has {len(index)} coordinates, grid has {self.grid.ndim} axes"
                )
            if any(float(i) != int(i) for i in index):
                raise InvalidSeedError(f"Seed {index} is not an integer index")
            index = tuple(int(i) for i in index)
            if not self.grid.contains(index):
                raise InvalidSeedError(
                    f"Seed {index} lies outside grid of shape {self.grid.shape}"
                )
            seeds.append(Seed(index, -float(initial_distance)))
        if not seeds:
            raise InvalidSeedError("At least one seed is required")
        return seeds

    def from_world_points(
        self,
        points: Iterable[Sequence[float]],
        initial_distance: float = 0.0
    ) -> List[Seed]:
        """Seeds at the grid points nearest to world coordinates."""
        indices = [
            tuple(int(i) for i in np.rint(self.grid.world_to_index(point)))
            for point in points
        ]
        return self.from_indices(indices, initial_distance)


def initial_level_set_from_mask(mask: np.ndarray, grid: Grid = None) -> np.ndarray:
    """
    Inside-negative signed distance to the boundary of a binary region.

    Uses the Fast Marching Method from scikit-fmm. The zero contour lies
    halfway between inside and outside samples.

    Args:
        mask: Boolean region, True inside
        grid: Geometry of the mask (default: unit spacing)

    Returns:
        Signed distance map, negative inside the region

    Raises:
        GridMismatchError: If the mask does not match the grid
        InvalidSeedError: If the mask is empty or covers the whole grid
    """
    mask = np.asarray(mask, dtype=bool)
    if grid is None:
        grid = Grid.like(mask)
    grid.require_array(mask, "mask")
    if mask.all() or not mask.any():
        raise InvalidSeedError("mask must contain both inside and outside points")

    # -1 inside, +1 outside
    phi = np.where(mask, -1.0, 1.0)
    distance = np.asarray(skfmm.distance(phi, dx=list(grid.spacing)), dtype=np.float64)
    logger.debug(
        "Mask level set: %d inside points, range [%.3f, %.3f]",
        int(mask.sum()), float(distance.min()), float(distance.max())
    )
    return distance
