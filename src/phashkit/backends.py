"""
Luminance grid providers.

A backend turns an image source (path, bytes, binary file object or an
already opened image) into a size x size float64 luminance grid. Backends are
tried in priority order by :class:`GridProvider`.

Different backends and resize filters produce slightly different grids, so
hashes computed with different providers, library versions or filters are
not guaranteed to be comparable. Keep them fixed for one hash collection.
"""

from __future__ import annotations

import importlib.util
import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Sequence, Type, Union

import numpy as np
from PIL import Image, ImageOps

from .errors import ConfigError, SourceUnavailableError

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, memoryview, Image.Image, np.ndarray]

PIL_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "box": Image.Resampling.BOX,
    "bilinear": Image.Resampling.BILINEAR,
    "hamming": Image.Resampling.HAMMING,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


def _describe(source: object) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes>"
    return f"<{type(source).__name__}>"


def flatten_to_luminance(img: Image.Image) -> Image.Image:
    """
    Normalise an opened image to single-channel luminance.

    - EXIF orientation is applied
    - alpha is composited onto a white background
    """
    img = ImageOps.exif_transpose(img)
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        bg = Image.new("RGB", rgba.size, (255, 255, 255))
        bg.paste(rgba, mask=rgba.split()[-1])
        img = bg
    if img.mode != "L":
        img = img.convert("L")
    return img


class GridBackend(ABC):
    """Capability interface: decode a source into a luminance grid."""

    name: str = ""

    def available(self) -> bool:
        return True

    @abstractmethod
    def load(self, source: ImageSource, size: int, resample: str) -> np.ndarray:
        """Return a (size, size) float64 grid or raise SourceUnavailableError."""


class PillowBackend(GridBackend):
    name = "pillow"

    def _open(self, source: ImageSource) -> Image.Image:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return Image.open(io.BytesIO(bytes(source)))
        return Image.open(source)

    def _to_grid(self, img: Image.Image, size: int, resample: str) -> np.ndarray:
        img.load()
        gray = flatten_to_luminance(img)
        gray = gray.resize((size, size), PIL_FILTERS[resample])
        return np.asarray(gray, dtype=np.float64)

    def load(self, source: ImageSource, size: int, resample: str) -> np.ndarray:
        try:
            if isinstance(source, Image.Image):
                return self._to_grid(source, size, resample)
            with self._open(source) as img:
                return self._to_grid(img, size, resample)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise SourceUnavailableError(f"pillow could not decode {_describe(source)}: {exc}") from exc


class OpenCVBackend(GridBackend):
    """Decoder backed by OpenCV (``pip install phashkit[opencv]``)."""

    name = "opencv"

    _INTERPOLATION = {
        "nearest": "INTER_NEAREST",
        "box": "INTER_AREA",
        "bilinear": "INTER_LINEAR",
        "hamming": "INTER_AREA",
        "bicubic": "INTER_CUBIC",
        "lanczos": "INTER_LANCZOS4",
    }

    def available(self) -> bool:
        return importlib.util.find_spec("cv2") is not None

    def load(self, source: ImageSource, size: int, resample: str) -> np.ndarray:
        import cv2

        if isinstance(source, Image.Image):
            raise SourceUnavailableError("opencv cannot read PIL images directly")
        if isinstance(source, (bytes, bytearray, memoryview)):
            buf = np.frombuffer(bytes(source), dtype=np.uint8)
        else:
            try:
                buf = np.fromfile(str(source), dtype=np.uint8)
            except OSError as exc:
                raise SourceUnavailableError(f"opencv could not read {_describe(source)}: {exc}") from exc
        gray = cv2.imdecode(buf, cv2.IMREAD_GRAYSCALE) if buf.size else None
        if gray is None:
            raise SourceUnavailableError(f"opencv could not decode {_describe(source)}")
        interp = getattr(cv2, self._INTERPOLATION[resample])
        small = cv2.resize(gray, (size, size), interpolation=interp)
        return np.asarray(small, dtype=np.float64)


BACKENDS: Dict[str, Type[GridBackend]] = {
    PillowBackend.name: PillowBackend,
    OpenCVBackend.name: OpenCVBackend,
}


def register_backend(cls: Type[GridBackend]) -> Type[GridBackend]:
    """Make a backend class selectable by its ``name`` in EngineSettings.backends."""
    if not cls.name:
        raise ValueError("Backend classes need a non-empty name.")
    BACKENDS[cls.name] = cls
    return cls


class GridProvider:
    """Tries each configured backend in order until one yields a grid."""

    def __init__(self, backends: Sequence[str] = ("pillow", "opencv"), size: int = 32, resample: str = "bicubic"):
        unknown = [name for name in backends if name not in BACKENDS]
        if unknown:
            raise ConfigError(f"Unknown image backend(s): {', '.join(unknown)}; known: {', '.join(sorted(BACKENDS))}.")
        if resample not in PIL_FILTERS:
            raise ConfigError(f"Unknown resample filter {resample!r}.")
        self.size = size
        self.resample = resample
        self.backends: List[GridBackend] = [BACKENDS[name]() for name in backends]

    @classmethod
    def from_settings(cls, settings) -> "GridProvider":
        return cls(backends=settings.backends, size=settings.size, resample=settings.resample)

    def _from_array(self, arr: np.ndarray) -> np.ndarray:
        """
        Luminance grid from an in-memory array.

        - an R x R 2D array is used as is (copied)
        - other 2D arrays are resized in Pillow's float mode, keeping their value range
        - 3D arrays must be uint8 (H, W, C) images; a single channel is squeezed
        """
        if arr.ndim == 3 and arr.shape[2] == 1:
            arr = arr[:, :, 0]
        if arr.ndim == 2 and arr.shape == (self.size, self.size):
            return np.array(arr, dtype=np.float64, copy=True)
        if arr.ndim not in (2, 3) or 0 in arr.shape:
            raise SourceUnavailableError(f"Cannot build a luminance grid from an array of shape {arr.shape}.")
        if arr.ndim == 2 and arr.dtype != np.uint8:
            img = Image.fromarray(np.asarray(arr, dtype=np.float32))
            small = img.resize((self.size, self.size), PIL_FILTERS[self.resample])
            return np.asarray(small, dtype=np.float64)
        if arr.dtype != np.uint8:
            raise SourceUnavailableError(f"Colour arrays must be uint8, got {arr.dtype}.")
        try:
            img = Image.fromarray(arr)
        except (TypeError, ValueError) as exc:
            raise SourceUnavailableError(f"Cannot build an image from an array of shape {arr.shape}: {exc}") from exc
        return PillowBackend().load(img, self.size, self.resample)

    def load(self, source: ImageSource) -> np.ndarray:
        if isinstance(source, np.ndarray):
            return self._from_array(source)
        if hasattr(source, "read") and not isinstance(source, Image.Image):
            source = source.read()

        failures: List[str] = []
        for backend in self.backends:
            if not backend.available():
                logger.debug("backend %s not installed, skipping", backend.name)
                failures.append(f"{backend.name}: not installed")
                continue
            try:
                grid = backend.load(source, self.size, self.resample)
            except SourceUnavailableError as exc:
                logger.debug("backend %s failed: %s", backend.name, exc)
                failures.append(f"{backend.name}: {exc}")
                continue
            logger.debug("decoded %s with %s", _describe(source), backend.name)
            return grid
        raise SourceUnavailableError(f"No image backend could decode {_describe(source)}", failures)


__all__ = [
    "ImageSource",
    "GridBackend",
    "PillowBackend",
    "OpenCVBackend",
    "GridProvider",
    "BACKENDS",
    "register_backend",
    "flatten_to_luminance",
]
