import numpy as np
import pytest

from geodesic_contour.errors import GridMismatchError, InvalidConfigurationError
from geodesic_contour.grid import BandStencil, Grid


def test_from_shape_defaults():
    grid = Grid.from_shape((4, 5))
    assert grid.shape == (4, 5)
    assert grid.spacing == (1.0, 1.0)
    assert grid.origin == (0.0, 0.0)
    assert grid.ndim == 2
    assert grid.size == 20


def test_scalar_spacing_applies_to_every_axis():
    grid = Grid.from_shape((4, 5, 6), spacing=0.5)
    assert grid.spacing == (0.5, 0.5, 0.5)


def test_index_world_round_trip():
    grid = Grid.from_shape((10, 10), spacing=(0.5, 2.0), origin=(1.0, -1.0))
    world = grid.index_to_world((2, 3))
    np.testing.assert_allclose(world, [2.0, 5.0])
    np.testing.assert_allclose(grid.world_to_index(world), [2.0, 3.0])


def test_contains():
    grid = Grid.from_shape((3, 3))
    assert grid.contains((0, 2))
    assert not grid.contains((3, 0))
    assert not grid.contains((-1, 0))
    assert not grid.contains((1,))


@pytest.mark.parametrize("kwargs", [
    {"shape": (0, 3), "spacing": (1.0, 1.0), "origin": (0.0, 0.0)},
    {"shape": (3, 3), "spacing": (1.0, 0.0), "origin": (0.0, 0.0)},
    {"shape": (3, 3), "spacing": (1.0,), "origin": (0.0, 0.0)},
    {"shape": (), "spacing": (), "origin": ()},
])
def test_invalid_geometry_rejected(kwargs):
    with pytest.raises(InvalidConfigurationError):
        Grid(**kwargs)


def test_geometry_mismatch():
    grid = Grid.from_shape((8, 8))
    grid.require_same_geometry(Grid.from_shape((8, 8)))
    with pytest.raises(GridMismatchError):
        grid.require_same_geometry(Grid.from_shape((8, 8), spacing=0.5))
    with pytest.raises(GridMismatchError):
        grid.require_array(np.zeros((8, 9)))


def test_stencil_linear_field_derivatives():
    rows, cols = np.indices((6, 6), dtype=np.float64)
    phi = 2.0 * rows + 3.0 * cols
    coords = np.nonzero(np.ones((6, 6), dtype=bool))
    stencil = BandStencil(phi, coords, (1.0, 0.5))
    interior = (coords[0] > 0) & (coords[0] < 5) & (coords[1] > 0) & (coords[1] < 5)

    np.testing.assert_allclose(stencil.central(0)[interior], 2.0)
    np.testing.assert_allclose(stencil.central(1)[interior], 6.0)
    np.testing.assert_allclose(stencil.second(0)[interior], 0.0)
    np.testing.assert_allclose(stencil.mixed(0, 1)[interior], 0.0)


def test_stencil_replicates_border():
    phi = np.arange(5.0)[:, None] * np.ones((1, 3))
    coords = (np.array([0, 4]), np.array([1, 1]))
    stencil = BandStencil(phi, coords, (1.0, 1.0))
    np.testing.assert_allclose(stencil.backward(0), [0.0, 1.0])
    np.testing.assert_allclose(stencil.forward(0), [1.0, 0.0])


def test_stencil_zero_crossing():
    phi = np.arange(6.0)[:, None] * np.ones((1, 4)) - 2.5
    coords = np.nonzero(np.ones(phi.shape, dtype=bool))
    crossing = BandStencil(phi, coords, (1.0, 1.0)).on_zero_crossing()
    assert set(coords[0][crossing]) == {2, 3}
