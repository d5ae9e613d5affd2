"""
Narrow band around the zero crossing of a level set.

The evolution engine only updates points whose value lies within ±B of zero.
Points outside the band hold a sentinel of magnitude B + max(spacing) with
the sign of their side, so finite differences at the band rim stay bounded.

Band membership is re-derived after every evolution step: points whose value
drifted beyond ±B leave the band. Once the zero crossing comes within the
landmine width of the band rim (or, if configured, after a fixed number of
iterations) the band is redistanced: the zero crossing is located with
sub-cell accuracy, the seeded Fast Marching solver is run once on each side
and the band is rebuilt from the fresh distances.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging
import numpy as np
from scipy import ndimage

from ..errors import InvalidConfigurationError, NumericalBreakdownError
from ..fast_marching import FastMarchingConfig, PointStatus, Seed, SeededDistanceMapSolver
from ..grid import BandStencil, Grid

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================

@dataclass
class NarrowBandConfig:
    """
    Configuration for the narrow band.

    Attributes:
        bandwidth: Half width B of the band in world units (default: 3.0)
        landmine_width: Redistance once the zero crossing is closer than this
                        to the band rim (default: 1.0, must be < bandwidth)
        reinitialization_interval: Also redistance every N iterations
                                   (default: 0, disabled)
    """
    bandwidth: float = 3.0
    landmine_width: float = 1.0
    reinitialization_interval: int = 0

    def __post_init__(self):
        """Validate configuration parameters."""
        if not np.isfinite(self.bandwidth) or self.bandwidth <= 0:
            raise InvalidConfigurationError(f"bandwidth must be > 0, got {self.bandwidth}")
        if not 0 <= self.landmine_width < self.bandwidth:
            raise InvalidConfigurationError(
                f"landmine_width must be in [0, bandwidth), got {self.landmine_width}"
            )
        if self.reinitialization_interval < 0:
            raise InvalidConfigurationError(
                f"reinitialization_interval must be >= 0, got {self.reinitialization_interval}"
            )


# ============================================================================
# Band
# ============================================================================

@dataclass
class NarrowBand:
    """
    Cached band membership.

    Attributes:
        coords: Index arrays of the band points (np.nonzero layout)
        mask: Boolean membership over the whole grid
    """
    coords: Tuple[np.ndarray, ...]
    mask: np.ndarray

    @classmethod
    def from_mask(cls, mask: np.ndarray) -> 'NarrowBand':
        return cls(coords=np.nonzero(mask), mask=mask)

    @property
    def size(self) -> int:
        return int(self.coords[0].size) if self.coords else 0

    def __len__(self) -> int:
        return self.size


def _upwind_distance(neighbor_values: np.ndarray, spacing: Sequence[float]) -> np.ndarray:
    """
    First-order upwind solution of |∇T| = 1, one row per point.

    Args:
        neighbor_values: (n_points, ndim) smallest known value per axis,
                         inf where an axis has none
        spacing: Per-axis grid spacing

    Returns:
        Tentative T per point (inf where no axis is known)
    """
    order = np.argsort(neighbor_values, axis=1)
    values = np.take_along_axis(neighbor_values, order, axis=1)
    weights = 1.0 / np.asarray(spacing, dtype=np.float64)[order] ** 2
    n_points = values.shape[0]
    a = np.zeros(n_points)
    b = np.zeros(n_points)
    c = np.zeros(n_points)
    solution = np.full(n_points, np.inf)
    active = np.ones(n_points, dtype=bool)
    for k in range(values.shape[1]):
        value = values[:, k]
        active &= np.isfinite(value) & (solution > value)
        if not np.any(active):
            break
        weight = np.where(active, weights[:, k], 0.0)
        admitted = np.where(active, value, 0.0)
        a = a + weight
        b = b + admitted * weight
        c = c + admitted * admitted * weight
        discriminant = b * b - a * (c - 1.0)
        active &= discriminant >= 0
        safe_a = np.where(active, a, 1.0)
        solution = np.where(active, (b + np.sqrt(np.maximum(discriminant, 0.0))) / safe_a, solution)
    return solution


def zero_crossing_distances(
    stencil: BandStencil,
    known: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sub-cell distance from stencil points to the zero crossing.

    Along every axis where a face neighbour has the opposite sign, the
    crossing is located by linear interpolation; the per-axis distances d_j
    are combined as 1 / sqrt(sum 1 / d_j^2). Points whose value is exactly
    zero are on the crossing.

    Values outside the known region (sentinels beyond the band, Far points)
    are never interpolated against:

    - a known point next to an unknown point of the opposite sign takes its
      own magnitude as the distance
    - an unknown point next to known points of the opposite sign gets the
      upwind distance continued from their values
    - a sign change between two unknown points is put half a cell away

    Args:
        stencil: Stencil over the points to examine
        known: Boolean mask over the whole grid of trustworthy values
               (default: every finite value)

    Returns:
        (crossing, distance): boolean mask of points adjacent to the zero
        crossing and their unsigned distance to it (inf elsewhere)
    """
    if known is None:
        known = np.isfinite(stencil.values)
    known_stencil = BandStencil(known, stencil.coords, stencil.spacing)
    center = stencil.center
    center_known = known_stencil.center
    inside = center <= 0
    magnitude = np.abs(center)

    inv_sq = np.zeros(center.shape)
    next_to_unknown = np.zeros(center.shape, dtype=bool)
    unknown_pair = np.zeros(center.shape, dtype=bool)
    continued = np.full((center.size, stencil.ndim), np.inf)
    for axis in range(stencil.ndim):
        h = stencil.spacing[axis]
        axis_distance = np.full(center.shape, np.inf)
        for step in (-1, 1):
            neighbor = stencil.shifted((axis, step))
            neighbor_known = known_stencil.shifted((axis, step))
            opposite = inside != (neighbor <= 0)
            both_known = opposite & center_known & neighbor_known
            with np.errstate(divide='ignore', invalid='ignore'):
                jump = np.abs(center - neighbor)
                d = np.where(both_known & (jump > 0), h * magnitude / jump, np.inf)
                behind = np.where(opposite & ~center_known & neighbor_known, -np.abs(neighbor), np.inf)
            axis_distance = np.fmin(axis_distance, d)
            continued[:, axis] = np.fmin(continued[:, axis], behind)
            next_to_unknown |= opposite & center_known & ~neighbor_known
            unknown_pair |= opposite & ~center_known & ~neighbor_known
        finite = np.isfinite(axis_distance)
        inv_sq[finite] += 1.0 / np.maximum(axis_distance[finite], 1e-12) ** 2

    distance = np.full(center.shape, np.inf)
    distance[inv_sq > 0] = 1.0 / np.sqrt(inv_sq[inv_sq > 0])
    distance = np.where(next_to_unknown, np.fmin(distance, magnitude), distance)

    half_cell = 0.5 * min(stencil.spacing)
    reached = np.isfinite(continued).any(axis=1)
    if np.any(reached):
        estimate = _upwind_distance(continued[reached], stencil.spacing)
        distance[reached] = np.where(np.isfinite(estimate) & (estimate > 0), estimate, half_cell)
    distance[unknown_pair & ~reached] = half_cell

    distance[center == 0] = 0.0
    crossing = np.isfinite(distance)
    return crossing, distance


# ============================================================================
# Manager
# ============================================================================

class NarrowBandManager:
    """
    Maintains the narrow band of a level set owned by an evolution engine.

    The manager works in place on the level set array handed to it; the
    caller keeps exclusive ownership and must not read the array while a
    refresh is running.

    Example:
        >>> manager = NarrowBandManager(grid, NarrowBandConfig(bandwidth=3.0))
        >>> manager.initialize(phi)          # redistance + build band
        >>> ...                              # engine updates phi[manager.band.coords]
        >>> manager.refresh(phi, iteration)  # drop drifted points, redistance if needed
    """

    def __init__(self, grid: Grid, config: Optional[NarrowBandConfig] = None):
        self.grid = grid
        self.config = config or NarrowBandConfig()
        self.band: Optional[NarrowBand] = None
        self.redistance_count = 0
        self._last_redistance_iteration = 0

    @property
    def sentinel(self) -> float:
        """Magnitude stored at points outside the band."""
        return self.config.bandwidth + max(self.grid.spacing)

    def initialize(self, phi: np.ndarray) -> NarrowBand:
        """
        Turn an initial level set into a banded signed distance function.

        Args:
            phi: Level set on the manager's grid; +/-inf (Far points of a
                 distance map) are allowed, NaN is not

        Returns:
            The new band

        Raises:
            GridMismatchError: If phi does not match the grid
            NumericalBreakdownError: If phi contains NaN
        """
        self.grid.require_array(phi, "level set")
        if np.any(np.isnan(phi)):
            raise NumericalBreakdownError("initial level set contains NaN")
        self._last_redistance_iteration = 0
        return self.redistance(phi)

    def refresh(self, phi: np.ndarray, iteration: int) -> bool:
        """
        Re-derive band membership after an evolution step.

        Args:
            phi: Level set after the step was committed
            iteration: Number of completed iterations

        Returns:
            True if the band was redistanced
        """
        band = self.band
        values = phi[band.coords]
        drifted = np.abs(values) > self.config.bandwidth
        if np.any(drifted):
            dropped = tuple(c[drifted] for c in band.coords)
            phi[dropped] = np.where(phi[dropped] > 0, self.sentinel, -self.sentinel)
            band.mask[dropped] = False
            band.coords = tuple(c[~drifted] for c in band.coords)

        if self._needs_redistance(phi, iteration):
            self._last_redistance_iteration = iteration
            self.redistance(phi)
            return True
        return False

    def redistance(self, phi: np.ndarray) -> NarrowBand:
        """
        Replace band values with distances to the current zero crossing.

        Values beyond the bandwidth are clamped to the signed sentinel. If
        the level set no longer has a zero crossing the band becomes empty.

        Args:
            phi: Level set, modified in place

        Returns:
            The rebuilt band
        """
        if self.band is None:
            known = np.isfinite(phi)
            coords = np.nonzero(np.ones(self.grid.shape, dtype=bool))
        else:
            # The front may already sit between the rim and the first sentinel
            known = self.band.mask & np.isfinite(phi)
            structure = ndimage.generate_binary_structure(self.grid.ndim, 1)
            coords = np.nonzero(ndimage.binary_dilation(self.band.mask, structure=structure))
        stencil = BandStencil(phi, coords, self.grid.spacing)
        crossing, distance = zero_crossing_distances(stencil, known)

        inside = phi <= 0
        if not np.any(crossing):
            logger.warning("Level set has no zero crossing; narrow band is empty")
            phi[...] = np.where(inside, -self.sentinel, self.sentinel)
            self.band = NarrowBand.from_mask(np.zeros(self.grid.shape, dtype=bool))
            self.redistance_count += 1
            return self.band

        crossing_coords = tuple(c[crossing] for c in coords)
        crossing_inside = stencil.center[crossing] <= 0
        crossing_distance = distance[crossing]
        seed_index = np.stack(crossing_coords, axis=1)

        inner = self._march(seed_index[crossing_inside], crossing_distance[crossing_inside], inside)
        outer = self._march(seed_index[~crossing_inside], crossing_distance[~crossing_inside], ~inside)

        bandwidth = self.config.bandwidth
        redistanced = np.where(inside, -inner, outer)
        within = np.abs(redistanced) <= bandwidth
        phi[...] = np.where(within, redistanced, np.where(inside, -self.sentinel, self.sentinel))
        self.band = NarrowBand.from_mask(within)
        self.redistance_count += 1

        logger.debug(
            "Redistanced narrow band: %d crossing points, %d band points",
            int(crossing.sum()), self.band.size
        )
        return self.band

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _march(self, index: np.ndarray, values: np.ndarray, side: np.ndarray) -> np.ndarray:
        """Fast Marching restricted to one side of the zero crossing."""
        if index.shape[0] == 0:
            return np.full(self.grid.shape, np.inf)
        seeds: List[Seed] = [
            Seed(tuple(int(i) for i in idx), float(v)) for idx, v in zip(index, values)
        ]
        config = FastMarchingConfig(
            seeds=seeds,
            output_size=self.grid.shape,
            spacing=self.grid.spacing,
            origin=self.grid.origin,
            stopping_value=self.sentinel
        )
        result = SeededDistanceMapSolver(config).solve(speed=side.astype(np.float64))
        distances = result.distances
        # Trial points beyond the stopping value keep only tentative values
        distances[result.status != PointStatus.ALIVE] = np.inf
        return distances

    def _needs_redistance(self, phi: np.ndarray, iteration: int) -> bool:
        band = self.band
        if band.size == 0:
            return False
        interval = self.config.reinitialization_interval
        if interval and iteration - self._last_redistance_iteration >= interval:
            return True

        # Band rim: band points with an in-grid face neighbour outside the band
        rim = np.zeros(band.size, dtype=bool)
        for axis in range(self.grid.ndim):
            for step in (-1, 1):
                shifted = list(band.coords)
                shifted[axis] = np.clip(shifted[axis] + step, 0, self.grid.shape[axis] - 1)
                rim |= ~band.mask[tuple(shifted)]
        if not np.any(rim):
            return False
        rim_values = np.abs(phi[band.coords][rim])
        return bool(rim_values.min() < self.config.landmine_width)
