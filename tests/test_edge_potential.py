import numpy as np
import pytest

from geodesic_contour.edge_potential import (
    EdgePotential,
    EdgePotentialConfig,
    EdgePotentialMethod,
    EdgePotentialPipeline,
    curvature_anisotropic_diffusion,
    sigmoid,
)
from geodesic_contour.errors import GridMismatchError, InvalidConfigurationError
from geodesic_contour.grid import Grid


@pytest.mark.parametrize("kwargs", [
    {"method": "bogus"},
    {"sigma": 0.0},
    {"alpha": 0.0},
    {"conductance": -1.0},
    {"diffusion_iterations": -1},
    {"output_minimum": 0.5, "output_maximum": 0.5},
])
def test_invalid_config(kwargs):
    with pytest.raises(InvalidConfigurationError):
        EdgePotentialConfig(**kwargs)


def test_method_accepts_string():
    assert EdgePotentialConfig(method="inverse_gaussian").method is EdgePotentialMethod.INVERSE_GAUSSIAN


def test_sigmoid_centre_and_tails():
    values = sigmoid(np.array([3.0, 100.0, 0.0]), alpha=-0.5, beta=3.0)
    assert values[0] == pytest.approx(0.5)
    assert values[1] == pytest.approx(0.0, abs=1e-12)
    assert values[2] == pytest.approx(1.0, abs=0.01)


def test_diffusion_keeps_constant_image():
    image = np.full((16, 16), 7.0)
    np.testing.assert_allclose(curvature_anisotropic_diffusion(image, (1.0, 1.0)), image)


def test_diffusion_preserves_step_edge(disk_image):
    smoothed = curvature_anisotropic_diffusion(disk_image, (1.0, 1.0))
    assert smoothed.shape == disk_image.shape
    assert smoothed[32, 32] == pytest.approx(200.0, abs=5.0)
    assert smoothed[2, 2] == pytest.approx(50.0, abs=5.0)


def test_sigmoid_pipeline_is_low_on_edges(disk_image):
    edge = EdgePotentialPipeline().compute(disk_image)

    assert edge.potential.min() >= 0.0
    assert edge.potential.max() <= 1.0
    assert edge.potential[32, 44] < 0.1
    assert edge.potential[32, 32] > 0.9
    assert edge.potential[2, 2] > 0.9
    assert edge.gradient.shape == (2, 64, 64)
    assert edge.smoothed.shape == (64, 64)
    assert edge.gradient_magnitude[32, 44] > edge.gradient_magnitude[32, 32]


def test_inverse_gaussian_pipeline(disk_image):
    config = EdgePotentialConfig(method="inverse_gaussian", sigma=1.0)
    edge = EdgePotentialPipeline(config).compute(disk_image)

    assert edge.gradient_magnitude is None
    assert edge.potential[32, 44] < edge.potential[32, 32]
    assert edge.potential.min() >= 0.0
    assert edge.potential.max() <= 1.0


def test_pipeline_respects_grid_spacing():
    _, cols = np.indices((64, 64), dtype=np.float64)
    config = EdgePotentialConfig(sigma=2.0, diffusion_iterations=0)
    fine = EdgePotentialPipeline(config).compute(cols)
    coarse = EdgePotentialPipeline(config).compute(cols, Grid.like(cols, spacing=2.0))
    assert fine.gradient_magnitude[32, 32] == pytest.approx(1.0, abs=0.02)
    assert coarse.gradient_magnitude[32, 32] == pytest.approx(0.5, abs=0.02)


def test_pipeline_rejects_mismatched_grid(disk_image):
    with pytest.raises(GridMismatchError):
        EdgePotentialPipeline().compute(disk_image, Grid.from_shape((32, 32)))


def test_edge_potential_is_read_only(grid):
    source = np.ones(grid.shape)
    edge = EdgePotential(potential=source, grid=grid)
    with pytest.raises(ValueError):
        edge.potential[0, 0] = 0.0
    # The caller's array is copied, not frozen
    source[0, 0] = 0.0


def test_edge_potential_gradient_of_ramp(grid):
    rows, _ = np.indices(grid.shape, dtype=np.float64)
    edge = EdgePotential(potential=rows / 63.0, grid=grid)
    np.testing.assert_allclose(edge.gradient[0], 1.0 / 63.0)
    np.testing.assert_allclose(edge.gradient[1], 0.0)


def test_edge_potential_rejects_bad_gradient(grid):
    with pytest.raises(GridMismatchError):
        EdgePotential(potential=np.ones(grid.shape), grid=grid, gradient=np.zeros((2, 8, 8)))
    with pytest.raises(GridMismatchError):
        EdgePotential(potential=np.ones((8, 8)), grid=grid)
