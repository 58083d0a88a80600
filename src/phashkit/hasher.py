"""Per-image hash engine with memoised coefficient matrix and results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .backends import GridProvider, ImageSource
from .bitmask import make_bits, threshold_pool
from .config import EngineSettings, HashConfig, Linear, Method, Square
from .dct import dct2
from .distance import hamming_distance
from .encoding import bits_to_hex, bits_to_int, hex_to_bits
from .errors import ConfigError
from .mirror import mirror_matrix, mirrorproof_values
from .selector import gather, selection_order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HashResult:
    """Hash bits in canonical order plus their hex encoding."""

    bits: Tuple[int, ...]
    hex: str
    config: Optional[HashConfig] = field(default=None, compare=False)

    @classmethod
    def from_bits(cls, bits, config: Optional[HashConfig] = None) -> "HashResult":
        data = tuple(int(b) for b in bits)
        return cls(bits=data, hex=bits_to_hex(data), config=config)

    @classmethod
    def from_hex(cls, value: str, length: Optional[int] = None) -> "HashResult":
        return cls.from_bits(hex_to_bits(value, length))

    def __len__(self) -> int:
        return len(self.bits)

    def __str__(self) -> str:
        return self.hex

    def to_int(self) -> int:
        return bits_to_int(self.bits)

    def distance(self, other: "HashResult") -> int:
        return hamming_distance(self.hex, other.hex)

    def __sub__(self, other: "HashResult") -> int:
        if not isinstance(other, HashResult):
            return NotImplemented
        return self.distance(other)


class Hasher:
    """
    Hash engine for one image.

    The luminance grid and its DCT coefficient matrix are computed lazily, at
    most once, on the first request. Each distinct HashConfig is computed once
    and then served from an instance-local cache. Not safe for concurrent
    first-time computation from several threads; use one Hasher per thread.
    """

    def __init__(
        self,
        source: Optional[ImageSource] = None,
        settings: Optional[EngineSettings] = None,
        provider: Optional[GridProvider] = None,
    ):
        self.settings = settings if settings is not None else EngineSettings()
        self._source = source
        self._provider = provider
        self._grid: Optional[np.ndarray] = None
        self._coeffs: Optional[np.ndarray] = None
        self._mirrored: Optional[np.ndarray] = None
        self._cache: Dict[HashConfig, HashResult] = {}

    @classmethod
    def from_grid(cls, grid: np.ndarray, settings: Optional[EngineSettings] = None) -> "Hasher":
        """Build a Hasher around an existing R x R luminance grid."""
        arr = np.array(grid, dtype=np.float64, copy=True)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise ConfigError(f"Luminance grid must be square, got shape {arr.shape}.")
        if settings is None:
            n = arr.shape[0]
            settings = EngineSettings(size=n, default_config=HashConfig(Square(min(8, n))))
        elif settings.size != arr.shape[0]:
            raise ConfigError(f"Grid is {arr.shape[0]}x{arr.shape[0]} but settings.size is {settings.size}.")
        hasher = cls(None, settings)
        arr.setflags(write=False)
        hasher._grid = arr
        return hasher

    @property
    def size(self) -> int:
        return self.settings.size

    def luminance(self) -> np.ndarray:
        """The R x R luminance grid (read-only), decoded on first use."""
        if self._grid is None:
            if self._source is None:
                raise ConfigError("Hasher has neither a source nor a luminance grid.")
            provider = self._provider or GridProvider.from_settings(self.settings)
            grid = np.array(provider.load(self._source), dtype=np.float64, copy=True)
            if grid.shape != (self.size, self.size):
                raise ConfigError(f"Provider returned a {grid.shape} grid, expected {(self.size, self.size)}.")
            grid.setflags(write=False)
            self._grid = grid
        return self._grid

    def coefficient_matrix(self) -> np.ndarray:
        """DCT coefficients of the luminance grid (read-only), computed once."""
        if self._coeffs is None:
            coeffs = dct2(self.luminance())
            coeffs.setflags(write=False)
            self._coeffs = coeffs
            logger.debug("computed %dx%d coefficient matrix", self.size, self.size)
        return self._coeffs

    def mirrored_matrix(self) -> np.ndarray:
        """Coefficients of the horizontally flipped image, derived from the cached matrix."""
        if self._mirrored is None:
            mirrored = mirror_matrix(self.coefficient_matrix())
            mirrored.setflags(write=False)
            self._mirrored = mirrored
        return self._mirrored

    def _resolve(self, config: Optional[HashConfig], overrides: dict) -> HashConfig:
        if config is None:
            config = self.settings.default_config
        if overrides:
            config = config.with_options(**overrides)
        return config

    def compute(self, config: Optional[HashConfig] = None, **overrides) -> HashResult:
        """
        Hash for ``config`` (the settings' default when omitted).

        Keyword overrides replace single config fields, e.g.
        ``hasher.compute(geometry="7x7", reduce=True)``.
        """
        config = self._resolve(config, overrides)
        cached = self._cache.get(config)
        if cached is not None:
            return cached

        config.validate_for(self.size)
        logger.debug("cache miss for %s", config.describe())
        result = HashResult.from_bits(self._compute_bits(config), config)
        self._cache[config] = result
        return result

    def cached_configs(self) -> List[HashConfig]:
        return list(self._cache)

    def _compute_bits(self, config: HashConfig) -> np.ndarray:
        matrix = self.mirrored_matrix() if config.mirror else self.coefficient_matrix()
        order = selection_order(config.geometry, config.reduce, self.size)
        values = gather(matrix, order)
        dc_first = bool(order) and order[0] == (0, 0)

        pool = None
        if config.method is Method.AVERAGE_X:
            wide = self._average_x_order(config)
            pool = threshold_pool(gather(matrix, wide), dc_first=True)

        if config.mirrorproof:
            values = mirrorproof_values(values)
            if pool is not None:
                pool = mirrorproof_values(pool)

        return make_bits(values, config.method, dc_first=dc_first, pool=pool)

    def _average_x_order(self, config: HashConfig) -> Tuple[Tuple[int, int], ...]:
        """Wider selection the average_x threshold is computed over."""
        geom = config.geometry
        if isinstance(geom, Square):
            return selection_order(geom, False, self.size)
        return selection_order(Linear(2 * geom.k), False, self.size)


def compute_hash(hasher: Hasher, config: Optional[HashConfig] = None) -> HashResult:
    return hasher.compute(config)


def coefficient_matrix(hasher: Hasher) -> np.ndarray:
    return hasher.coefficient_matrix()


def phash(
    source: ImageSource,
    config: Optional[HashConfig] = None,
    settings: Optional[EngineSettings] = None,
    **overrides,
) -> HashResult:
    """One-shot hash of an image source."""
    return Hasher(source, settings).compute(config, **overrides)


__all__ = ["HashResult", "Hasher", "compute_hash", "coefficient_matrix", "phash"]
