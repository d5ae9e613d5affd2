import logging

import numpy as np
import pytest

from geodesic_contour.errors import ErrorKind, InvalidConfigurationError, InvalidSeedError
from geodesic_contour.fast_marching import Seed
from geodesic_contour.grid import Grid
from geodesic_contour.level_set import EvolutionConfig, EvolutionStatus
from geodesic_contour.segmentation import (
    SeedProvider,
    SegmentationConfig,
    ThresholdConfig,
    ThresholdExtractor,
    initial_level_set_from_mask,
    segment,
    segment_images_batch,
)

from conftest import DISK_RADIUS, radius_map


def quick_config(**evolution):
    evolution.setdefault("maximum_iterations", 300)
    return SegmentationConfig(initial_distance=5.0, evolution=EvolutionConfig(**evolution))


# ============================================================================
# Seeds
# ============================================================================

def test_seed_provider_uses_negative_initial_distance():
    provider = SeedProvider(Grid.from_shape((16, 16)))
    assert provider.from_indices([(3, 4)], initial_distance=5.0) == [Seed((3, 4), -5.0)]


@pytest.mark.parametrize("indices", [[(16, 0)], [(0, -1)], [(1, 2, 3)], [(1.5, 2)], []])
def test_seed_provider_rejects_invalid_indices(indices):
    with pytest.raises(InvalidSeedError):
        SeedProvider(Grid.from_shape((16, 16))).from_indices(indices, 1.0)


def test_seed_provider_rejects_negative_distance():
    with pytest.raises(InvalidConfigurationError):
        SeedProvider(Grid.from_shape((16, 16))).from_indices([(1, 1)], -1.0)


def test_seed_provider_from_world_points():
    provider = SeedProvider(Grid.from_shape((32, 32), spacing=0.5))
    seeds = provider.from_world_points([(10.0, 5.0)], initial_distance=2.0)
    assert seeds == [Seed((20, 10), -2.0)]


def test_level_set_from_mask():
    r = radius_map((64, 64))
    phi = initial_level_set_from_mask(r <= 10.0)
    assert phi[32, 32] == pytest.approx(-10.0, abs=1.0)
    assert np.all(phi[r <= 9.0] < 0)
    assert np.all(phi[r >= 11.0] > 0)


def test_level_set_from_mask_needs_both_sides():
    with pytest.raises(InvalidSeedError):
        initial_level_set_from_mask(np.ones((8, 8), dtype=bool))


# ============================================================================
# Threshold
# ============================================================================

def test_threshold_default_inside_is_non_positive():
    level_set = np.array([[-2.0, 0.0], [0.5, np.nan]])
    mask = ThresholdExtractor().extract(level_set)
    assert mask.dtype == np.uint8
    np.testing.assert_array_equal(mask, [[255, 255], [0, 0]])


def test_threshold_is_pure():
    level_set = np.linspace(-3.0, 3.0, 25).reshape(5, 5)
    original = level_set.copy()
    extractor = ThresholdExtractor()
    first = extractor.extract(level_set)
    second = extractor.extract(level_set)
    np.testing.assert_array_equal(first, second)
    np.testing.assert_array_equal(level_set, original)


def test_threshold_custom_interval():
    extractor = ThresholdExtractor(ThresholdConfig(lower=-1.0, upper=1.0, inside_value=1, outside_value=0))
    np.testing.assert_array_equal(extractor.extract(np.array([-2.0, -1.0, 1.0, 2.0])), [0, 1, 1, 0])


def test_threshold_invalid_config():
    with pytest.raises(InvalidConfigurationError):
        ThresholdConfig(lower=1.0, upper=0.0)
    with pytest.raises(InvalidConfigurationError):
        ThresholdConfig(inside_value=300)


# ============================================================================
# Pipeline
# ============================================================================

def test_segment_disk(disk_image):
    result = segment(disk_image, [(32, 32)], quick_config())

    assert result.succeeded
    assert result.error is None
    assert result.evolution.status in (
        EvolutionStatus.CONVERGED_BY_RMS, EvolutionStatus.STOPPED_BY_ITERATION_CAP
    )
    assert result.mask[32, 32] == 255
    assert result.mask[0, 0] == 0
    inside = int((result.mask > 0).sum())
    assert np.pi * 8.0 ** 2 < inside < np.pi * (DISK_RADIUS + 1.5) ** 2
    assert result.initial_level_set.distances[32, 32] == -5.0
    assert len(result.contours()) >= 1
    assert any(line.startswith("No. elapsed iterations") for line in result.report())


def test_segment_invalid_seed_returns_error_result(disk_image, caplog):
    with caplog.at_level(logging.ERROR, logger="geodesic_contour"):
        result = segment(disk_image, [(100, 32)], quick_config())
    assert not result.succeeded
    assert result.error is ErrorKind.INVALID_SEED
    assert result.mask is None
    assert result.edge_potential is None
    assert "outside grid" in result.message
    assert any("invalid_seed" in line for line in result.report())


def test_segment_numerical_breakdown_has_no_mask(disk_image):
    image = disk_image.copy()
    image[:, :] = np.nan
    result = segment(image, [(32, 32)], quick_config())
    assert result.error is ErrorKind.NUMERICAL_BREAKDOWN
    assert result.evolution.status is EvolutionStatus.FAILED
    assert result.mask is None


def test_segment_with_cancellation(disk_image):
    result = segment(disk_image, [(32, 32)], quick_config(), should_stop=lambda e: True)
    assert result.evolution.status is EvolutionStatus.RUNNING
    assert result.evolution.elapsed_iterations == 1
    # A stopped run still yields a usable field
    assert result.mask is not None


def test_segmentation_config_validation():
    with pytest.raises(InvalidConfigurationError):
        SegmentationConfig(initial_distance=-1.0)


def test_batch_requires_matching_ids(disk_image):
    with pytest.raises(ValueError, match="mismos IDs"):
        segment_images_batch({'a': disk_image}, {'b': [(32, 32)]})


def test_batch_rejects_non_2d_images(disk_image):
    with pytest.raises(ValueError):
        segment_images_batch({'a': np.stack([disk_image] * 3, axis=-1)}, {'a': [(32, 32)]})


def test_batch_keeps_per_image_errors(disk_image):
    results = segment_images_batch(
        {'good': disk_image, 'bad': disk_image},
        {'good': [(32, 32)], 'bad': [(-1, 0)]},
        quick_config()
    )
    assert results['good'].succeeded
    assert results['bad'].error is ErrorKind.INVALID_SEED
