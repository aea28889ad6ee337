import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def write_png(tmp_path):
    """Saves an RGBA pixel array (or a solid color of a given size) as a PNG."""
    def _write(pixels=None, size=(64, 64), color=(0, 0, 0, 255), name="input.png"):
        if pixels is None:
            width, height = size
            pixels = np.zeros((height, width, 4), dtype=np.uint8)
            pixels[:, :] = color
        path = tmp_path / name
        Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(path)
        return path
    return _write
