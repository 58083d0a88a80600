import io

import numpy as np
import pytest
from PIL import Image

from phashkit import ConfigError, GridProvider, PillowBackend, SourceUnavailableError
import phashkit.backends as backends_mod
from phashkit import register_backend
from phashkit.backends import BACKENDS, GridBackend, OpenCVBackend


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class _FailingBackend(GridBackend):
    name = "failing"

    def load(self, source, size, resample):
        raise SourceUnavailableError("always fails")


def test_pillow_backend_from_path_and_bytes_agree(noise_png):
    backend = PillowBackend()
    from_path = backend.load(noise_png, 32, "bicubic")
    from_bytes = backend.load(noise_png.read_bytes(), 32, "bicubic")
    assert from_path.shape == (32, 32)
    assert from_path.dtype == np.float64
    assert np.array_equal(from_path, from_bytes)


def test_transparent_pixels_become_white():
    img = Image.new("RGBA", (40, 40), (0, 0, 0, 0))
    grid = PillowBackend().load(img, 32, "bilinear")
    assert np.allclose(grid, 255.0)


def test_undecodable_bytes_raise_source_unavailable():
    with pytest.raises(SourceUnavailableError):
        PillowBackend().load(b"definitely not an image", 32, "bicubic")


def test_unknown_backend_is_a_config_error():
    with pytest.raises(ConfigError):
        GridProvider(backends=("imagemagick",))


def test_provider_falls_through_to_next_backend(monkeypatch, noise_png):
    monkeypatch.setitem(BACKENDS, "failing", _FailingBackend)
    provider = GridProvider(backends=("failing", "pillow"))
    grid = provider.load(noise_png)
    assert grid.shape == (32, 32)


def test_provider_reports_every_failure(monkeypatch):
    monkeypatch.setitem(BACKENDS, "failing", _FailingBackend)
    provider = GridProvider(backends=("failing", "pillow"))
    with pytest.raises(SourceUnavailableError) as excinfo:
        provider.load(b"garbage")
    assert len(excinfo.value.failures) == 2
    assert not isinstance(excinfo.value, ConfigError)


def test_missing_opencv_is_skipped(monkeypatch, noise_png):
    monkeypatch.setattr(OpenCVBackend, "available", lambda self: False)
    provider = GridProvider(backends=("opencv", "pillow"))
    assert provider.load(noise_png.read_bytes()).shape == (32, 32)
    with pytest.raises(SourceUnavailableError, match="not installed"):
        GridProvider(backends=("opencv",)).load(noise_png.read_bytes())


def test_provider_reads_file_objects(noise_png):
    provider = GridProvider(backends=("pillow",))
    with open(noise_png, "rb") as fh:
        grid = provider.load(fh)
    assert np.array_equal(grid, provider.load(noise_png))


def test_provider_accepts_arrays():
    provider = GridProvider(backends=("pillow",), size=16)
    grid = np.full((16, 16), 7.5)
    out = provider.load(grid)
    assert np.array_equal(out, grid)
    assert out is not grid
    assert provider.load(np.zeros((40, 30), dtype=np.uint8)).shape == (16, 16)
    with pytest.raises(SourceUnavailableError):
        provider.load(np.zeros(10))


def test_single_channel_arrays_are_squeezed():
    provider = GridProvider(backends=("pillow",), size=16)
    gray = np.full((40, 30), 90, dtype=np.uint8)
    out = provider.load(gray[:, :, None])
    assert out.shape == (16, 16)
    assert np.array_equal(out, provider.load(gray))


def test_unsupported_arrays_raise_source_unavailable():
    provider = GridProvider(backends=("pillow",), size=16)
    with pytest.raises(SourceUnavailableError):
        provider.load(np.zeros((40, 30, 5), dtype=np.uint8))
    with pytest.raises(SourceUnavailableError):
        provider.load(np.zeros((40, 30, 3), dtype=np.float64))
    with pytest.raises(SourceUnavailableError):
        provider.load(np.zeros((0, 30), dtype=np.uint8))


def test_float_arrays_keep_their_value_range():
    rng = np.random.default_rng(4)
    unit = rng.random((64, 64))
    grid = GridProvider(backends=("pillow",), size=32).load(unit)
    assert grid.shape == (32, 32)
    assert np.count_nonzero(grid) > 0
    assert 0.3 < grid.mean() < 0.7


def test_register_backend_makes_it_selectable(monkeypatch, noise_png):
    monkeypatch.setattr(backends_mod, "BACKENDS", dict(BACKENDS))

    class ConstantBackend(GridBackend):
        name = "constant"

        def load(self, source, size, resample):
            return np.full((size, size), 3.0)

    assert register_backend(ConstantBackend) is ConstantBackend
    grid = GridProvider(backends=("constant",)).load(noise_png)
    assert np.array_equal(grid, np.full((32, 32), 3.0))


def test_register_backend_needs_a_name(monkeypatch):
    monkeypatch.setattr(backends_mod, "BACKENDS", dict(BACKENDS))

    class Nameless(GridBackend):
        def load(self, source, size, resample):
            return np.zeros((size, size))

    with pytest.raises(ValueError):
        register_backend(Nameless)
    assert "" not in backends_mod.BACKENDS


def test_opencv_backend_decodes_bytes_and_paths(noise_png):
    pytest.importorskip("cv2")
    backend = OpenCVBackend()
    assert backend.available()
    from_bytes = backend.load(noise_png.read_bytes(), 32, "bicubic")
    from_path = backend.load(noise_png, 32, "bicubic")
    assert from_bytes.shape == (32, 32)
    assert from_bytes.dtype == np.float64
    assert np.array_equal(from_bytes, from_path)


@pytest.mark.parametrize("resample", ["nearest", "box", "bilinear", "hamming", "bicubic", "lanczos"])
def test_opencv_backend_every_filter(resample):
    pytest.importorskip("cv2")
    data = _png_bytes(Image.new("L", (64, 64), 77))
    grid = OpenCVBackend().load(data, 32, resample)
    assert np.array_equal(grid, np.full((32, 32), 77.0))


def test_opencv_backend_rejects_bad_input(tmp_path):
    pytest.importorskip("cv2")
    backend = OpenCVBackend()
    with pytest.raises(SourceUnavailableError):
        backend.load(b"", 32, "bicubic")
    with pytest.raises(SourceUnavailableError):
        backend.load(b"not an image", 32, "bicubic")
    with pytest.raises(SourceUnavailableError):
        backend.load(tmp_path / "missing.png", 32, "bicubic")
