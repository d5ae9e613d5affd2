"""
Error taxonomy for the segmentation core.

Configuration, seed and geometry errors are raised before any computation
starts. Numerical breakdown during evolution is reported through the
evolution result instead of being raised; the exception class exists for
callers that want to turn a failed result into an exception.
"""

from enum import Enum


class ErrorKind(Enum):
    """Kinds of failure a segmentation run can end with."""
    INVALID_SEED = "invalid_seed"
    INVALID_CONFIGURATION = "invalid_configuration"
    GRID_MISMATCH = "grid_mismatch"
    NUMERICAL_BREAKDOWN = "numerical_breakdown"


class SegmentationError(Exception):
    """Base class for all errors raised by the segmentation core."""

    kind: ErrorKind = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSeedError(SegmentationError, ValueError):
    """A seed index lies outside the grid or has the wrong dimension."""
    kind = ErrorKind.INVALID_SEED


class InvalidConfigurationError(SegmentationError, ValueError):
    """A configuration value is out of its allowed range."""
    kind = ErrorKind.INVALID_CONFIGURATION


class GridMismatchError(SegmentationError, ValueError):
    """Two fields that must share a grid have different geometry."""
    kind = ErrorKind.GRID_MISMATCH


class NumericalBreakdownError(SegmentationError, ArithmeticError):
    """A non-finite value or a degenerate curvature appeared during evolution."""
    kind = ErrorKind.NUMERICAL_BREAKDOWN
