import numpy as np
import pytest
from skimage import measure

from geodesic_contour.errors import GridMismatchError, InvalidConfigurationError, InvalidSeedError
from geodesic_contour.fast_marching import (
    FastMarchingConfig,
    PointStatus,
    Seed,
    SeededDistanceMapSolver,
)

from conftest import radius_map


def solve(seeds, shape=(64, 64), speed=None, **kwargs):
    config = FastMarchingConfig(seeds=seeds, output_size=shape, **kwargs)
    return SeededDistanceMapSolver(config).solve(speed=speed)


def test_seed_keeps_its_value():
    result = solve([((32, 32), -5.0)])
    assert result.distances[32, 32] == -5.0
    assert result.status[32, 32] == PointStatus.ALIVE
    assert result.order[32, 32] == 0


def test_axis_distances_are_exact():
    result = solve([((32, 32), -5.0)])
    for k in range(1, 10):
        assert result.distances[32, 32 + k] == pytest.approx(-5.0 + k)
        assert result.distances[32 - k, 32] == pytest.approx(-5.0 + k)
    assert result.distances[32, 37] == pytest.approx(0.0)


def test_front_order_is_monotone():
    result = solve([((20, 20), 0.0), ((40, 45), -2.0)])
    alive = result.order >= 0
    by_order = result.distances[alive][np.argsort(result.order[alive])]
    assert np.all(np.diff(by_order) >= -1e-12)
    assert result.alive_count == 64 * 64


def test_seeds_with_different_values_are_finalized_in_value_order():
    result = solve([((20, 20), 0.0), ((40, 45), -2.0)])
    # Seed values are fixed, the lower seed's front is not allowed to lower them
    assert result.distances[20, 20] == 0.0
    assert result.distances[40, 45] == -2.0
    assert result.distances[40, 46] == pytest.approx(-1.0)
    assert result.order[40, 45] == 0
    assert result.order[40, 46] < result.order[20, 20]


def test_zero_crossing_is_a_circle_around_the_seed():
    result = solve([((32, 32), -5.0)])
    r = radius_map((64, 64))
    assert np.all(result.distances[r <= 3.5] < 0)
    assert np.all(result.distances[r >= 6.0] > 0)
    # First-order marching never underestimates a point-source distance much
    assert np.all(result.distances >= r - 5.0 - 1e-9)
    contours = measure.find_contours(result.distances, 0.0)
    assert len(contours) == 1
    radii = np.hypot(contours[0][:, 0] - 32.0, contours[0][:, 1] - 32.0)
    assert np.max(np.abs(radii - 5.0)) <= 1.0


def test_corner_seed():
    result = solve([((0, 0), 0.0)], shape=(16, 16))
    assert result.distances[0, 5] == pytest.approx(5.0)
    assert result.distances[5, 0] == pytest.approx(5.0)
    assert np.all(np.isfinite(result.distances))
    assert result.distances[15, 15] > 15.0 * np.sqrt(2.0) - 1e-9


def test_anisotropic_spacing():
    result = solve([((8, 8), 0.0)], shape=(16, 16), spacing=(1.0, 0.5))
    assert result.distances[8, 12] == pytest.approx(2.0)
    assert result.distances[12, 8] == pytest.approx(4.0)
    assert result.grid.spacing == (1.0, 0.5)


def test_speed_constant_scales_arrival_times():
    result = solve([((8, 8), 0.0)], shape=(16, 16), speed_constant=2.0)
    assert result.distances[8, 12] == pytest.approx(2.0)


def test_zero_speed_region_stays_far():
    speed = np.ones((16, 16))
    speed[:, 8] = 0.0
    result = solve([((4, 2), 0.0)], shape=(16, 16), speed=speed)
    assert np.all(np.isfinite(result.distances[:, :8]))
    assert np.all(np.isinf(result.distances[:, 8:]))
    assert np.all(result.unreached[:, 8:])


def test_duplicate_seeds_keep_smallest_value():
    result = solve([((4, 4), 1.0), Seed((4, 4), -1.0)], shape=(9, 9))
    assert result.distances[4, 4] == -1.0
    assert result.distances[4, 5] == pytest.approx(0.0)


def test_stopping_value_limits_alive_region():
    result = solve([((32, 32), 0.0)], stopping_value=4.0)
    alive = result.status == PointStatus.ALIVE
    assert np.all(result.distances[alive] <= 4.0)
    assert result.status[32, 36] == PointStatus.ALIVE
    assert np.isinf(result.distances[0, 0])
    assert result.alive_count < 64 * 64


def test_target_mask_stops_marching_once_covered():
    config = FastMarchingConfig(seeds=[((32, 32), 0.0)], output_size=(64, 64))
    target = np.zeros((64, 64), dtype=bool)
    target[32, 35] = True
    result = SeededDistanceMapSolver(config).solve(target_mask=target)
    assert result.status[32, 35] == PointStatus.ALIVE
    assert result.status[32, 60] != PointStatus.ALIVE


def test_three_dimensional_grid():
    result = solve([((5, 5, 5), 0.0)], shape=(11, 11, 11))
    assert result.distances[5, 5, 9] == pytest.approx(4.0)
    assert result.distances[0, 0, 0] > 0


@pytest.mark.parametrize("seed", [
    ((64, 0), 0.0),
    ((-1, 3), 0.0),
    ((3,), 0.0),
    ((3, 3), float('nan')),
])
def test_invalid_seed_rejected_before_marching(seed):
    config = FastMarchingConfig(seeds=[seed], output_size=(64, 64))
    with pytest.raises(InvalidSeedError):
        SeededDistanceMapSolver(config).solve()


def test_invalid_configuration():
    with pytest.raises(InvalidConfigurationError):
        FastMarchingConfig(seeds=[((0, 0), 0.0)], output_size=(4, 4), speed_constant=0.0)
    with pytest.raises(InvalidConfigurationError):
        FastMarchingConfig(seeds=[((0, 0), 0.0)], output_size=(4, 4), stopping_value=float('nan'))


def test_speed_field_validation():
    solver = SeededDistanceMapSolver(FastMarchingConfig(seeds=[((0, 0), 0.0)], output_size=(4, 4)))
    with pytest.raises(GridMismatchError):
        solver.solve(speed=np.ones((4, 5)))
    with pytest.raises(InvalidConfigurationError):
        solver.solve(speed=-np.ones((4, 4)))
