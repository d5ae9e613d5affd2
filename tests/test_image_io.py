import numpy as np
import pytest
from PIL import Image

from geodesic_contour.image_io import (
    load_image,
    rescale_to_uint8,
    save_mask,
    write_intermediates,
)
from geodesic_contour.segmentation import SegmentationConfig, segment
from geodesic_contour.level_set import EvolutionConfig


def test_mask_round_trip(tmp_path):
    mask = np.zeros((10, 12), dtype=np.uint8)
    mask[2:5, 3:9] = 255
    path = save_mask(mask, tmp_path / "mask.png")
    loaded = load_image(path)
    assert loaded.dtype == np.float64
    np.testing.assert_array_equal(loaded, mask)


def test_color_image_loaded_as_grayscale(tmp_path):
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    rgb[..., 1] = 200
    Image.fromarray(rgb).save(tmp_path / "rgb.png")
    loaded = load_image(tmp_path / "rgb.png")
    assert loaded.shape == (8, 8)
    assert np.all(loaded > 0)


def test_missing_image(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.png")


def test_rescale_to_uint8():
    np.testing.assert_array_equal(rescale_to_uint8(np.array([0.0, 0.5, 1.0])), [0, 128, 255])
    np.testing.assert_array_equal(rescale_to_uint8(np.array([-1.0, 1.0, np.inf, np.nan])), [0, 255, 255, 0])
    np.testing.assert_array_equal(rescale_to_uint8(np.full(3, 4.0)), [0, 0, 0])


def test_write_intermediates(tmp_path, disk_image):
    config = SegmentationConfig(evolution=EvolutionConfig(maximum_iterations=5))
    result = segment(disk_image, [(32, 32)], config)
    written = write_intermediates(result, tmp_path / "out")

    assert set(written) == {
        'smoothed', 'gradient_magnitude', 'edge_potential', 'edge_potential_map',
        'initial_level_set', 'initial_level_set_map',
    }
    for path in written.values():
        assert path.exists()
    assert (tmp_path / "out" / "GeodesicActiveContourOutput3.png").exists()
    np.testing.assert_allclose(
        np.load(written['edge_potential_map']), result.edge_potential.potential
    )
