"""
Fast Marching Method for seeded distance maps.

Solves the Eikonal equation |∇T| = 1/F outward from a set of seeds whose
arrival values are fixed. Points are finalized in increasing order of T using
a binary heap of Trial points, so the resulting map grows monotonically away
from the seeds:

1. Seeds are Trial with the fixed T = seed value, every other point is Far
   (T = +inf)
2. Far/Trial neighbours of Alive points get a tentative T from the upwind
   quadratic and become Trial; seed values are never re-solved
3. The smallest Trial point becomes Alive and its neighbours are re-solved,
   until the heap is empty, the stopping value is passed or a target region
   is covered

References:
    Sethian, J.A. (1996). "A fast marching level set method for monotonically
    advancing fronts." PNAS 93(4).
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Sequence, Tuple, Union
import heapq
import logging
import math
import numpy as np

from ..errors import InvalidConfigurationError, InvalidSeedError
from ..grid import Grid

logger = logging.getLogger(__name__)


class PointStatus(IntEnum):
    """Fast Marching state of a grid point."""
    FAR = 0
    TRIAL = 1
    ALIVE = 2


# ============================================================================
# Configuration
# ============================================================================

@dataclass(frozen=True)
class Seed:
    """
    A grid index with a fixed arrival value.

    For a segmentation run the value is usually the negative of the desired
    initial contour distance, so the zero crossing of the distance map is a
    circle (sphere) of that radius around the seed.
    """
    index: Tuple[int, ...]
    value: float = 0.0


SeedLike = Union[Seed, Tuple[Sequence[int], float]]


@dataclass
class FastMarchingConfig:
    """
    Configuration for the seeded distance map solver.

    Attributes:
        seeds: Seeds as Seed objects or (index, value) pairs
        output_size: Shape of the output grid
        spacing: Per-axis spacing (default: 1.0 per axis)
        origin: Per-axis origin (default: 0.0 per axis)
        speed_constant: Propagation speed used when no speed field is given
        stopping_value: Marching stops once the next Trial value exceeds this
    """
    seeds: List[SeedLike]
    output_size: Tuple[int, ...]
    spacing: Optional[Sequence[float]] = None
    origin: Optional[Sequence[float]] = None
    speed_constant: float = 1.0
    stopping_value: float = math.inf
    grid: Grid = field(init=False, repr=False)

    def __post_init__(self):
        """Validate configuration and normalise seeds."""
        if not np.isfinite(self.speed_constant) or self.speed_constant <= 0:
            raise InvalidConfigurationError(
                f"speed_constant must be a positive finite number, got {self.speed_constant}"
            )
        if math.isnan(self.stopping_value):
            raise InvalidConfigurationError("stopping_value must not be NaN")
        self.output_size = tuple(int(n) for n in self.output_size)
        self.grid = Grid.from_shape(self.output_size, spacing=self.spacing, origin=self.origin)
        self.seeds = [self._as_seed(s) for s in self.seeds]

    @staticmethod
    def _as_seed(seed: SeedLike) -> Seed:
        if isinstance(seed, Seed):
            return Seed(tuple(int(i) for i in seed.index), float(seed.value))
        index, value = seed
        return Seed(tuple(int(i) for i in index), float(value))


# ============================================================================
# Results
# ============================================================================

@dataclass
class DistanceMapResult:
    """
    Output of a Fast Marching run.

    Attributes:
        distances: Arrival values T; Far points keep +inf
        status: PointStatus per point (int8 array)
        order: Finalization order per point, -1 for points never made Alive
        grid: Geometry of the output
    """
    distances: np.ndarray
    status: np.ndarray
    order: np.ndarray
    grid: Grid

    @property
    def alive_count(self) -> int:
        return int((self.status == PointStatus.ALIVE).sum())

    @property
    def unreached(self) -> np.ndarray:
        """Mask of points still Far (unreachable or beyond the stopping value)."""
        return self.status == PointStatus.FAR

    def __str__(self) -> str:
        finite = self.distances[np.isfinite(self.distances)]
        span = f"[{finite.min():.3f}, {finite.max():.3f}]" if finite.size else "[]"
        return (
            f"DistanceMapResult(shape={self.distances.shape}, "
            f"alive={self.alive_count}, range={span})"
        )


# ============================================================================
# Solver
# ============================================================================

class SeededDistanceMapSolver:
    """
    Fast Marching solver seeded with fixed arrival values.

    Example:
        >>> config = FastMarchingConfig(seeds=[((32, 32), -5.0)], output_size=(64, 64))
        >>> result = SeededDistanceMapSolver(config).solve()
        >>> result.distances[32, 32]
        -5.0
        >>> result.distances[32, 37]
        0.0
    """

    def __init__(self, config: FastMarchingConfig):
        self.config = config
        self.grid = config.grid
        self._strides = tuple(
            int(np.prod(self.grid.shape[axis + 1:], dtype=np.int64))
            for axis in range(self.grid.ndim)
        )

    def validate_seeds(self) -> None:
        """
        Reject seeds that do not address an in-bounds grid point.

        Raises:
            InvalidSeedError: On wrong dimension, out-of-bounds index or
                              non-finite seed value
        """
        for seed in self.config.seeds:
            if len(seed.index) != self.grid.ndim:
                raise InvalidSeedError(
                    f"Seed {seed.index} has {len(seed.index)} coordinates, "
                    f"grid has {self.grid.ndim} axes"
                )
            if not self.grid.contains(seed.index):
                raise InvalidSeedError(
                    f"Seed {seed.index} lies outside grid of shape {self.grid.shape}"
                )
            if not np.isfinite(seed.value):
                raise InvalidSeedError(f"Seed {seed.index} has non-finite value {seed.value}")

    def solve(
        self,
        speed: Optional[np.ndarray] = None,
        target_mask: Optional[np.ndarray] = None
    ) -> DistanceMapResult:
        """
        Compute the distance map.

        Args:
            speed: Optional non-negative speed field on the output grid. Points
                   with zero speed are never reached and keep T = +inf.
                   Without it, config.speed_constant is used everywhere.
            target_mask: Optional boolean region; marching stops as soon as
                         every point of the region is Alive

        Returns:
            DistanceMapResult

        Raises:
            InvalidSeedError: If a seed is invalid (checked before marching)
            InvalidConfigurationError: If the speed field is negative or not finite
            GridMismatchError: If speed/target_mask do not match the output grid
        """
        self.validate_seeds()
        grid = self.grid
        n_points = grid.size

        speed_list = None
        if speed is not None:
            speed = np.asarray(speed, dtype=np.float64)
            grid.require_array(speed, "speed field")
            if not np.all(np.isfinite(speed)) or np.any(speed < 0):
                raise InvalidConfigurationError("speed field must be finite and non-negative")
            speed_list = speed.ravel().tolist()

        remaining = None
        target_list = None
        if target_mask is not None:
            target_mask = np.asarray(target_mask, dtype=bool)
            grid.require_array(target_mask, "target mask")
            target_list = target_mask.ravel().tolist()
            remaining = int(target_mask.sum())

        values = [math.inf] * n_points
        status = [PointStatus.FAR] * n_points
        order = [-1] * n_points
        heap: List[Tuple[float, int]] = []
        n_alive = 0

        # Duplicate seeds keep the smallest value
        seed_values = {}
        for seed in self.config.seeds:
            flat = self._ravel(seed.index)
            seed_values[flat] = min(seed.value, seed_values.get(flat, math.inf))

        if not seed_values:
            logger.warning("Fast Marching called without seeds; every point stays Far")

        # Seeds are Trial points whose value is never re-solved, so they are
        # finalized in heap order together with the marched points
        fixed = [False] * n_points
        for flat, value in seed_values.items():
            values[flat] = value
            status[flat] = PointStatus.TRIAL
            fixed[flat] = True
            heapq.heappush(heap, (value, flat))

        stopping_value = self.config.stopping_value
        while heap and remaining != 0:
            value, flat = heapq.heappop(heap)
            # Skip stale heap entries
            if status[flat] == PointStatus.ALIVE or value > values[flat]:
                continue
            if value > stopping_value:
                break
            status[flat] = PointStatus.ALIVE
            order[flat] = n_alive
            n_alive += 1
            if target_list is not None and target_list[flat]:
                remaining -= 1
            self._update_neighbors(flat, values, status, fixed, speed_list, heap)

        logger.debug(
            "Fast Marching finished: %d of %d points alive, %d trial left in heap",
            n_alive, n_points, len(heap)
        )

        return DistanceMapResult(
            distances=np.array(values, dtype=np.float64).reshape(grid.shape),
            status=np.array(status, dtype=np.int8).reshape(grid.shape),
            order=np.array(order, dtype=np.int64).reshape(grid.shape),
            grid=grid
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ravel(self, index: Sequence[int]) -> int:
        return sum(int(i) * s for i, s in zip(index, self._strides))

    def _axis_neighbors(self, flat: int, axis: int):
        stride = self._strides[axis]
        coord = (flat // stride) % self.grid.shape[axis]
        if coord > 0:
            yield flat - stride
        if coord < self.grid.shape[axis] - 1:
            yield flat + stride

    def _update_neighbors(self, flat, values, status, fixed, speed_list, heap) -> None:
        """Re-solve every non-Alive, non-seed face neighbour of a newly Alive point."""
        for axis in range(self.grid.ndim):
            for neighbor in self._axis_neighbors(flat, axis):
                if status[neighbor] == PointStatus.ALIVE or fixed[neighbor]:
                    continue
                tentative = self._solve_eikonal(neighbor, values, status, speed_list)
                if tentative < values[neighbor]:
                    values[neighbor] = tentative
                    status[neighbor] = PointStatus.TRIAL
                    heapq.heappush(heap, (tentative, neighbor))

    def _solve_eikonal(self, flat, values, status, speed_list) -> float:
        """
        Upwind solution of sum_j ((T - a_j) / h_j)^2 = 1 / F^2 at one point.

        a_j is the smallest Alive neighbour value along axis j. Axes are
        admitted in increasing order of a_j while the running solution still
        exceeds a_j, and the larger root of the quadratic is taken.
        """
        speed = speed_list[flat] if speed_list is not None else self.config.speed_constant
        if speed <= 0:
            return math.inf

        candidates = []
        for axis in range(self.grid.ndim):
            best = math.inf
            for neighbor in self._axis_neighbors(flat, axis):
                if status[neighbor] == PointStatus.ALIVE and values[neighbor] < best:
                    best = values[neighbor]
            if best < math.inf:
                candidates.append((best, self.grid.spacing[axis]))
        candidates.sort()

        rhs = 1.0 / (speed * speed)
        a = b = c = 0.0
        solution = math.inf
        for value, h in candidates:
            if solution <= value:
                break
            weight = 1.0 / (h * h)
            a += weight
            b += value * weight
            c += value * value * weight
            discriminant = b * b - a * (c - rhs)
            if discriminant < 0:
                break
            solution = (b + math.sqrt(discriminant)) / a
        return solution
