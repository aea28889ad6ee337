import numpy as np
import pytest
from PIL import Image

from mcmapmagic import resample_nearest, resample_to_map_grid


def test_uniform_256_image_resamples_to_uniform_128():
    image = Image.new("RGBA", (256, 256), (12, 34, 56, 255))
    grid = resample_to_map_grid(image)
    assert grid.shape == (128, 128, 4)
    assert grid.dtype == np.uint8
    assert np.all(grid == (12, 34, 56, 255))


def test_nearest_mapping_uses_floor_of_scaled_coordinate():
    height, width = 200, 300
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    xs = np.arange(width)
    ys = np.arange(height)
    pixels[..., 0] = (xs % 256)[None, :]
    pixels[..., 1] = (ys % 256)[:, None]
    pixels[..., 3] = 255

    grid = resample_nearest(pixels, 128, 128)
    for y in (0, 1, 63, 127):
        for x in (0, 5, 64, 127):
            assert grid[y, x, 0] == (x * width // 128) % 256
            assert grid[y, x, 1] == (y * height // 128) % 256


def test_upscaling_repeats_pixels():
    pixels = np.arange(4 * 4 * 4, dtype=np.uint8).reshape((4, 4, 4))
    grid = resample_nearest(pixels, 128, 128)
    assert np.array_equal(grid[0:32, 0:32], np.broadcast_to(pixels[0, 0], (32, 32, 4)))
    assert np.array_equal(grid[96, 127], pixels[3, 3])


def test_rgb_input_gets_opaque_alpha():
    pixels = np.full((10, 10, 3), 200, dtype=np.uint8)
    grid = resample_nearest(pixels, 128, 128)
    assert np.all(grid[..., 3] == 255)
    assert np.all(grid[..., :3] == 200)


def test_palette_mode_image_is_converted():
    image = Image.new("P", (20, 10), 0)
    image.putpalette([9, 8, 7] + [0, 0, 0] * 255)
    grid = resample_to_map_grid(image)
    assert np.all(grid == (9, 8, 7, 255))


def test_non_square_targets():
    pixels = np.zeros((50, 70, 4), dtype=np.uint8)
    assert resample_nearest(pixels, 30, 20).shape == (20, 30, 4)


@pytest.mark.parametrize("pixels", [
    np.zeros((0, 5, 4), dtype=np.uint8),
    np.zeros((5, 5), dtype=np.uint8),
    np.zeros((5, 5, 2), dtype=np.uint8),
])
def test_invalid_inputs_raise(pixels):
    with pytest.raises(ValueError):
        resample_nearest(pixels, 128, 128)
