import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def noise_grid():
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(32, 32)).astype(np.float64)


@pytest.fixture
def noise_png(tmp_path):
    rng = np.random.default_rng(7)
    arr = rng.integers(0, 256, size=(64, 64), dtype=np.uint8)
    path = tmp_path / "noise.png"
    Image.fromarray(arr).save(path)
    return path
