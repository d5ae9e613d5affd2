"""Shared test fixtures."""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from geodesic_contour.edge_potential import EdgePotential
from geodesic_contour.grid import Grid


CENTER = (32, 32)
RING_RADIUS = 16.0
RING_WIDTH = 2.0
DISK_RADIUS = 12.0


def radius_map(shape, center=CENTER):
    """Euclidean distance of every grid point to center."""
    rows, cols = np.indices(shape, dtype=np.float64)
    return np.sqrt((rows - center[0]) ** 2 + (cols - center[1]) ** 2)


def circle_sdf(shape, radius, center=CENTER):
    """Exact signed distance to a circle, negative inside."""
    return radius_map(shape, center) - radius


def radius_along(level_set, direction, center=CENTER, step=0.05):
    """
    Sub-pixel distance from center to the first sign change of the level set
    along a direction.
    """
    from scipy import ndimage

    direction = np.asarray(direction, dtype=np.float64)
    direction = direction / np.linalg.norm(direction)
    distances = np.arange(0.0, min(level_set.shape) / 2.0 - 1.0, step)
    points = np.asarray(center, dtype=np.float64)[:, None] + direction[:, None] * distances[None, :]
    values = ndimage.map_coordinates(level_set, points, order=1, mode='nearest')
    outside = np.nonzero(values > 0)[0]
    assert outside.size, "level set has no sign change along the ray"
    return float(distances[outside[0]])


@pytest.fixture
def grid() -> Grid:
    return Grid.from_shape((64, 64))


@pytest.fixture
def ring_potential(grid) -> EdgePotential:
    """Potential vanishing on a ring of radius 16 around the centre."""
    r = radius_map(grid.shape)
    potential = 1.0 - np.exp(-(r - RING_RADIUS) ** 2 / (2.0 * RING_WIDTH ** 2))
    return EdgePotential(potential=potential, grid=grid)


@pytest.fixture
def unit_potential(grid) -> EdgePotential:
    return EdgePotential.constant(grid, 1.0)


@pytest.fixture
def disk_image() -> np.ndarray:
    """Bright disk of radius 12 on a dark background."""
    r = radius_map((64, 64))
    return np.where(r <= DISK_RADIUS, 200.0, 50.0)
