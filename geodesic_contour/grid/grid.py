"""
N-dimensional grid geometry.

A Grid describes where the samples of a scalar field live: the number of
samples per axis, the physical distance between neighbouring samples and the
world position of index (0, ..., 0). Arrays are stored in numpy index order,
so axis 0 of the grid is axis 0 of every field defined on it.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import numpy as np

from ..errors import GridMismatchError, InvalidConfigurationError


@dataclass(frozen=True)
class Grid:
    """
    Immutable grid geometry.

    Attributes:
        shape: Number of samples along each axis
        spacing: Physical distance between samples along each axis (> 0)
        origin: World coordinates of index (0, ..., 0)

    Example:
        >>> grid = Grid.from_shape((64, 64), spacing=(0.5, 0.5))
        >>> grid.index_to_world((2, 4))
        array([1., 2.])
        >>> grid.contains((64, 0))
        False
    """
    shape: Tuple[int, ...]
    spacing: Tuple[float, ...]
    origin: Tuple[float, ...]

    def __post_init__(self):
        """Validate geometry."""
        if len(self.shape) == 0:
            raise InvalidConfigurationError("Grid must have at least one axis")
        if any(int(n) <= 0 for n in self.shape):
            raise InvalidConfigurationError(f"Grid shape must be positive, got {self.shape}")
        if len(self.spacing) != len(self.shape) or len(self.origin) != len(self.shape):
            raise InvalidConfigurationError(
                f"spacing {self.spacing} and origin {self.origin} must have "
                f"{len(self.shape)} entries"
            )
        if any(not np.isfinite(h) or h <= 0 for h in self.spacing):
            raise InvalidConfigurationError(f"Grid spacing must be positive, got {self.spacing}")

    @classmethod
    def from_shape(
        cls,
        shape: Sequence[int],
        spacing: Optional[Sequence[float]] = None,
        origin: Optional[Sequence[float]] = None
    ) -> 'Grid':
        """
        Build a grid from its shape, defaulting to unit spacing at the origin.

        Args:
            shape: Samples per axis
            spacing: Per-axis spacing, or a scalar applied to every axis
            origin: Per-axis origin

        Returns:
            Grid instance
        """
        shape = tuple(int(n) for n in shape)
        ndim = len(shape)
        if spacing is None:
            spacing = (1.0,) * ndim
        elif np.isscalar(spacing):
            spacing = (float(spacing),) * ndim
        if origin is None:
            origin = (0.0,) * ndim
        return cls(
            shape=shape,
            spacing=tuple(float(h) for h in spacing),
            origin=tuple(float(o) for o in origin)
        )

    @classmethod
    def like(cls, array: np.ndarray, spacing=None, origin=None) -> 'Grid':
        """Grid matching the shape of an existing array."""
        return cls.from_shape(array.shape, spacing=spacing, origin=origin)

    @property
    def ndim(self) -> int:
        """Number of axes."""
        return len(self.shape)

    @property
    def size(self) -> int:
        """Total number of grid points."""
        return int(np.prod(self.shape))

    def contains(self, index: Sequence[int]) -> bool:
        """True if the integer index lies inside the grid bounds."""
        if len(index) != self.ndim:
            return False
        return all(0 <= int(i) < n for i, n in zip(index, self.shape))

    def index_to_world(self, index: Sequence[float]) -> np.ndarray:
        """Map a (possibly continuous) index to world coordinates."""
        index = np.asarray(index, dtype=np.float64)
        return np.asarray(self.origin) + index * np.asarray(self.spacing)

    def world_to_index(self, point: Sequence[float]) -> np.ndarray:
        """Map world coordinates to a continuous index."""
        point = np.asarray(point, dtype=np.float64)
        return (point - np.asarray(self.origin)) / np.asarray(self.spacing)

    def same_geometry(self, other: 'Grid') -> bool:
        """True if both grids have the same shape, spacing and origin."""
        return (
            self.shape == other.shape
            and np.allclose(self.spacing, other.spacing)
            and np.allclose(self.origin, other.origin)
        )

    def require_same_geometry(self, other: 'Grid', what: str = "field") -> None:
        """
        Raise GridMismatchError unless other has this grid's geometry.

        Args:
            other: Grid to compare against
            what: Name of the offending field, used in the error message
        """
        if not self.same_geometry(other):
            raise GridMismatchError(
                f"{what} grid (shape={other.shape}, spacing={other.spacing}, "
                f"origin={other.origin}) does not match level set grid "
                f"(shape={self.shape}, spacing={self.spacing}, origin={self.origin})"
            )

    def require_array(self, array: np.ndarray, what: str = "array") -> None:
        """Raise GridMismatchError unless the array shape equals the grid shape."""
        if tuple(array.shape) != self.shape:
            raise GridMismatchError(
                f"{what} has shape {tuple(array.shape)}, expected {self.shape}"
            )
