"""
Narrow-band geodesic active contour evolution.

The engine owns a copy of the level set and advances it one explicit time
step at a time:

1. Build a stencil over the narrow band from a frozen snapshot of u
2. Sample the edge potential P and its gradient at the band points
3. Combine the propagation, curvature and advection terms
4. Choose the time step from the CFL condition over the band
5. Check the new values, commit them, record the RMS change
6. Let the narrow band manager drop drifted points and redistance

A run ends when the RMS change drops below the configured threshold, when
the iteration cap is reached, or when a numerical breakdown is detected. In
the last case the field from before the failing step is kept.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union
import logging
import math
import numpy as np

from ..edge_potential import EdgePotential
from ..errors import ErrorKind, NumericalBreakdownError
from ..fast_marching import DistanceMapResult
from ..grid import BandStencil, Grid
from ..narrow_band import NarrowBand, NarrowBandManager
from .config import EvolutionConfig
from .terms import (
    advection_term,
    curvature_term,
    propagation_term,
    sample_speeds,
    stable_time_step,
)

logger = logging.getLogger(__name__)


class EvolutionStatus(Enum):
    """State of an evolution run."""
    RUNNING = "running"
    CONVERGED_BY_RMS = "converged_by_rms"
    STOPPED_BY_ITERATION_CAP = "stopped_by_iteration_cap"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not EvolutionStatus.RUNNING

    @property
    def is_success(self) -> bool:
        """True for terminal states whose level set is usable."""
        return self in (EvolutionStatus.CONVERGED_BY_RMS, EvolutionStatus.STOPPED_BY_ITERATION_CAP)


@dataclass
class EvolutionResult:
    """
    Snapshot of an evolution run.

    Attributes:
        level_set: Final level set (last valid field if the run failed)
        status: Terminal state, or RUNNING if the caller stopped early
        elapsed_iterations: Number of committed iterations
        rms_change: RMS change of the last committed iteration
        grid: Geometry of the level set
        error: ErrorKind.NUMERICAL_BREAKDOWN for failed runs
        message: Human readable reason for a failure
        rms_history: RMS change of every committed iteration
        redistance_count: Number of narrow band redistancing passes
    """
    level_set: np.ndarray
    status: EvolutionStatus
    elapsed_iterations: int
    rms_change: float
    grid: Grid
    error: Optional[ErrorKind] = None
    message: str = ""
    rms_history: List[float] = field(default_factory=list)
    redistance_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status.is_success

    def raise_for_status(self) -> None:
        """Raise NumericalBreakdownError if the run failed."""
        if self.status is EvolutionStatus.FAILED:
            raise NumericalBreakdownError(self.message)

    def __str__(self) -> str:
        return (
            f"EvolutionResult(status={self.status.value}, "
            f"iterations={self.elapsed_iterations}, rms_change={self.rms_change:.6g})"
        )


class LevelSetEvolutionEngine:
    """
    Evolve a level set by the geodesic active contour equation.

    The level set is negative inside the contour. The engine copies the
    initial field and is the only writer of that copy; read it through
    result() or level_set between iterations.

    Example:
        >>> engine = LevelSetEvolutionEngine(distance_map, edge_potential,
        ...                                  EvolutionConfig(propagation_scaling=2.0))
        >>> result = engine.run()
        >>> result.status
        <EvolutionStatus.CONVERGED_BY_RMS: 'converged_by_rms'>
        >>> mask = result.level_set <= 0
    """

    def __init__(
        self,
        initial_level_set: Union[np.ndarray, DistanceMapResult],
        edge_potential: Union[EdgePotential, np.ndarray],
        config: Optional[EvolutionConfig] = None
    ):
        """
        Args:
            initial_level_set: Initial field, or a distance map whose grid must
                               match the edge potential's
            edge_potential: Speed field; a plain array is taken to live on a
                            unit grid
            config: Evolution configuration. If None, uses defaults.

        Raises:
            GridMismatchError: If the fields do not share one geometry
            NumericalBreakdownError: If the initial level set contains NaN
        """
        self.config = config or EvolutionConfig()
        if not isinstance(edge_potential, EdgePotential):
            array = np.asarray(edge_potential, dtype=np.float64)
            edge_potential = EdgePotential(potential=array, grid=Grid.like(array))
        self.grid = edge_potential.grid

        if isinstance(initial_level_set, DistanceMapResult):
            self.grid.require_same_geometry(initial_level_set.grid, "initial level set")
            values = initial_level_set.distances
        else:
            values = initial_level_set
        phi = np.array(values, dtype=np.float64)
        self.grid.require_array(phi, "initial level set")

        self._edge_potential = edge_potential
        self._phi = phi
        self._band = NarrowBandManager(self.grid, self.config.band)
        self._band.initialize(self._phi)

        self._status = EvolutionStatus.RUNNING
        self._elapsed = 0
        self._rms_change = math.inf
        self._rms_history: List[float] = []
        self._error: Optional[ErrorKind] = None
        self._message = ""
        self._time_step = 0.0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def status(self) -> EvolutionStatus:
        return self._status

    @property
    def elapsed_iterations(self) -> int:
        return self._elapsed

    @property
    def rms_change(self) -> float:
        return self._rms_change

    @property
    def time_step(self) -> float:
        """Time step of the last committed iteration."""
        return self._time_step

    @property
    def band(self) -> NarrowBand:
        return self._band.band

    @property
    def redistance_count(self) -> int:
        return self._band.redistance_count

    @property
    def level_set(self) -> np.ndarray:
        """Read-only view of the current field."""
        view = self._phi.view()
        view.setflags(write=False)
        return view

    def result(self) -> EvolutionResult:
        return EvolutionResult(
            level_set=self._phi.copy(),
            status=self._status,
            elapsed_iterations=self._elapsed,
            rms_change=self._rms_change,
            grid=self.grid,
            error=self._error,
            message=self._message,
            rms_history=list(self._rms_history),
            redistance_count=self._band.redistance_count
        )

    # ------------------------------------------------------------------
    # Evolution
    # ------------------------------------------------------------------

    def run(self, should_stop: Optional[Callable[['LevelSetEvolutionEngine'], bool]] = None) -> EvolutionResult:
        """
        Iterate until a terminal state is reached.

        Args:
            should_stop: Called with the engine after every committed
                         iteration; returning True ends the run early and
                         leaves the status at RUNNING

        Returns:
            EvolutionResult of the run
        """
        config = self.config
        logger.info(
            "Evolving level set: propagation=%g, curvature=%g, advection=%g, "
            "max_iterations=%d, max_rms_error=%g, band=%d points",
            config.propagation_scaling, config.curvature_scaling, config.advection_scaling,
            config.maximum_iterations, config.maximum_rms_error, self.band.size
        )
        while not self._status.is_terminal:
            self.step()
            if self._status.is_terminal:
                break
            if should_stop is not None and should_stop(self):
                logger.info("Evolution stopped by caller after %d iterations", self._elapsed)
                break
        return self.result()

    def step(self) -> EvolutionStatus:
        """
        Perform one iteration.

        Returns:
            Status after the iteration; terminal engines are left untouched
        """
        if self._status.is_terminal:
            return self._status

        config = self.config
        band = self._band.band
        if band.size == 0:
            self._commit_rms(0.0)
            return self._status

        stencil = BandStencil(self._phi, band.coords, self.grid.spacing)
        potential, potential_gradient = sample_speeds(
            self._edge_potential.potential,
            self._edge_potential.gradient,
            stencil,
            interpolate=config.interpolate_speeds,
            max_offset=self._band.sentinel
        )
        if not np.all(np.isfinite(potential)) or not all(np.all(np.isfinite(g)) for g in potential_gradient):
            return self._fail("edge potential is not finite inside the narrow band")

        propagation_speed = config.propagation_scaling * potential
        curvature_coefficient = config.curvature_scaling * potential
        advection_velocity = [config.advection_scaling * g for g in potential_gradient]

        update = np.zeros_like(stencil.center)
        if config.propagation_scaling:
            update += propagation_term(stencil, propagation_speed)
        if config.curvature_scaling:
            kappa_grad, grad_sq = curvature_term(stencil)
            degenerate = (grad_sq == 0) & (curvature_coefficient != 0) & stencil.on_zero_crossing()
            if np.any(degenerate):
                return self._fail(
                    f"curvature undefined at {int(degenerate.sum())} zero-crossing points "
                    f"with zero gradient"
                )
            update += curvature_coefficient * kappa_grad
        if config.advection_scaling:
            update += advection_term(stencil, advection_velocity)

        dt = stable_time_step(
            propagation_speed,
            curvature_coefficient,
            advection_velocity,
            self.grid.spacing,
            cfl_number=config.cfl_number,
            maximum=config.time_step
        )
        previous = stencil.center
        updated = previous + dt * update
        if not np.all(np.isfinite(updated)):
            return self._fail("level set update produced non-finite values")

        self._phi[band.coords] = updated
        self._time_step = dt
        self._commit_rms(float(np.sqrt(np.mean((updated - previous) ** 2))))
        return self._status

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit_rms(self, rms: float) -> None:
        self._elapsed += 1
        self._rms_change = rms
        self._rms_history.append(rms)
        redistanced = self._band.refresh(self._phi, self._elapsed) if self._band.band.size else False
        logger.debug(
            "Iteration %d: rms=%.6g dt=%.4g band=%d%s",
            self._elapsed, rms, self._time_step, self._band.band.size,
            " (redistanced)" if redistanced else ""
        )

        if rms < self.config.maximum_rms_error:
            self._status = EvolutionStatus.CONVERGED_BY_RMS
        elif self._elapsed >= self.config.maximum_iterations:
            self._status = EvolutionStatus.STOPPED_BY_ITERATION_CAP
        if self._status.is_terminal:
            logger.info(
                "Evolution finished: %s after %d iterations (rms change %.6g)",
                self._status.value, self._elapsed, rms
            )

    def _fail(self, message: str) -> EvolutionStatus:
        self._status = EvolutionStatus.FAILED
        self._error = ErrorKind.NUMERICAL_BREAKDOWN
        self._message = message
        logger.error("Evolution failed after %d iterations: %s", self._elapsed, message)
        return self._status
