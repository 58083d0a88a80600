"""Hash configuration values and engine-wide settings."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Optional, Tuple, Union

from .errors import ConfigError

_SQUARE_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
_INT_RE = re.compile(r"^\s*(\d+)\s*$")

RESAMPLE_FILTERS = ("nearest", "box", "bilinear", "hamming", "bicubic", "lanczos")


@dataclass(frozen=True)
class Square:
    """Top-left n x n block of the coefficient matrix."""

    n: int

    def __str__(self) -> str:
        return f"{self.n}x{self.n}"


@dataclass(frozen=True)
class Linear:
    """First k coefficients visited diagonal by diagonal from the DC term."""

    k: int

    def __str__(self) -> str:
        return str(self.k)


Geometry = Union[Square, Linear]


def parse_geometry(value: Union[str, int, Square, Linear]) -> Geometry:
    """Parse ``"NxN"`` into :class:`Square` and a positive integer into :class:`Linear`."""
    if isinstance(value, (Square, Linear)):
        size = value.n if isinstance(value, Square) else value.k
        if size < 1:
            raise ConfigError(f"Geometry size must be positive, got {value!r}.")
        return value
    if isinstance(value, bool):
        raise ConfigError(f"Invalid geometry {value!r}.")
    if isinstance(value, int):
        if value < 1:
            raise ConfigError(f"Linear geometry needs a positive count, got {value}.")
        return Linear(value)
    if not isinstance(value, str):
        raise ConfigError(f"Invalid geometry {value!r}.")

    match = _SQUARE_RE.match(value)
    if match:
        rows, cols = int(match.group(1)), int(match.group(2))
        if rows != cols:
            raise ConfigError(f"Square geometry needs equal dimensions, got {value!r}.")
        if rows < 1:
            raise ConfigError(f"Square geometry needs a positive size, got {value!r}.")
        return Square(rows)
    match = _INT_RE.match(value)
    if match:
        count = int(match.group(1))
        if count < 1:
            raise ConfigError(f"Linear geometry needs a positive count, got {value!r}.")
        return Linear(count)
    raise ConfigError(f"Invalid geometry {value!r}; expected 'NxN' or a positive integer.")


class Method(str, Enum):
    AVERAGE = "average"
    MEDIAN = "median"
    AVERAGE_X = "average_x"
    LOG = "log"
    DIFF = "diff"

    @classmethod
    def parse(cls, value: Union[str, "Method"]) -> "Method":
        if isinstance(value, Method):
            return value
        if not isinstance(value, str):
            raise ConfigError(f"Invalid method {value!r}.")
        key = value.strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            names = ", ".join(m.value for m in cls)
            raise ConfigError(f"Unknown method {value!r}; expected one of: {names}.") from None


@dataclass(frozen=True)
class HashConfig:
    """
    One hash variant. Hashable so it can key the per-image result cache.

    ``reduce`` only applies to square geometries and is normalised to False
    for linear ones, so equivalent configurations share one cache entry.
    """

    geometry: Geometry = Square(8)
    reduce: bool = False
    method: Method = Method.AVERAGE
    mirror: bool = False
    mirrorproof: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "geometry", parse_geometry(self.geometry))
        object.__setattr__(self, "method", Method.parse(self.method))
        if self.mirror and self.mirrorproof:
            raise ConfigError("mirror and mirrorproof are mutually exclusive.")
        if isinstance(self.geometry, Linear) and self.reduce:
            object.__setattr__(self, "reduce", False)

    @classmethod
    def create(
        cls,
        geometry: Union[str, int, Square, Linear] = "8x8",
        method: Union[str, Method] = Method.AVERAGE,
        reduce: bool = False,
        mirror: bool = False,
        mirrorproof: bool = False,
    ) -> "HashConfig":
        return cls(
            geometry=parse_geometry(geometry),
            reduce=bool(reduce),
            method=Method.parse(method),
            mirror=bool(mirror),
            mirrorproof=bool(mirrorproof),
        )

    def with_options(self, **changes) -> "HashConfig":
        """Return a copy with some fields replaced (strings are parsed)."""
        return replace(self, **changes)

    @property
    def bit_length(self) -> int:
        if isinstance(self.geometry, Linear):
            return self.geometry.k
        n = self.geometry.n
        if self.reduce:
            return (n - 1) * (n + 2) // 2
        return n * n

    def validate_for(self, size: int) -> None:
        """Check that this config can be served from a ``size`` x ``size`` matrix."""
        geom = self.geometry
        if isinstance(geom, Square):
            if geom.n > size:
                raise ConfigError(f"Geometry {geom} does not fit a {size}x{size} coefficient matrix.")
            if self.reduce and geom.n < 2:
                raise ConfigError("Reduced square geometry needs n >= 2.")
            return
        total = size * size
        if geom.k > total:
            raise ConfigError(f"Linear geometry {geom.k} exceeds the {total} available coefficients.")
        if self.method is Method.AVERAGE_X and 2 * geom.k > total:
            raise ConfigError(
                f"average_x on linear geometry {geom.k} needs {2 * geom.k} coefficients, "
                f"only {total} available."
            )

    def describe(self) -> str:
        parts = [str(self.geometry), self.method.value]
        if self.reduce:
            parts.append("reduce")
        if self.mirror:
            parts.append("mirror")
        if self.mirrorproof:
            parts.append("mirrorproof")
        return "/".join(parts)


def _parse_bool(raw: str, name: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"Invalid boolean for {name}: {raw!r}.")


@dataclass(frozen=True)
class EngineSettings:
    """
    Immutable defaults handed to a Hasher at construction.

    size: side R of the luminance grid and coefficient matrix (32 -> 32x32).
    resample: resize filter used by the image backends.
    backends: backend names tried in order when decoding a source.
    default_config: HashConfig used when a caller does not pass one.
    """

    size: int = 32
    resample: str = "bicubic"
    backends: Tuple[str, ...] = ("pillow", "opencv")
    default_config: HashConfig = field(default_factory=HashConfig)

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 2:
            raise ConfigError(f"Grid size must be an integer >= 2, got {self.size!r}.")
        resample = str(self.resample).strip().lower()
        if resample not in RESAMPLE_FILTERS:
            raise ConfigError(
                f"Unknown resample filter {self.resample!r}; expected one of: {', '.join(RESAMPLE_FILTERS)}."
            )
        object.__setattr__(self, "resample", resample)
        backends = tuple(str(b).strip().lower() for b in self.backends if str(b).strip())
        if not backends:
            raise ConfigError("At least one image backend must be configured.")
        object.__setattr__(self, "backends", backends)
        self.default_config.validate_for(self.size)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = "PHASHKIT_",
    ) -> "EngineSettings":
        """Build settings from ``<prefix>SIZE``, ``RESAMPLE``, ``BACKENDS``, ``GEOMETRY``, ``METHOD``, ``REDUCE``."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        raw_size = env.get(prefix + "SIZE")
        if raw_size is not None:
            if not _INT_RE.match(raw_size):
                raise ConfigError(f"Invalid {prefix}SIZE: {raw_size!r}.")
            kwargs["size"] = int(raw_size)
        if env.get(prefix + "RESAMPLE"):
            kwargs["resample"] = env[prefix + "RESAMPLE"]
        if env.get(prefix + "BACKENDS"):
            kwargs["backends"] = tuple(env[prefix + "BACKENDS"].split(","))

        config_kwargs: dict = {}
        if env.get(prefix + "GEOMETRY"):
            config_kwargs["geometry"] = env[prefix + "GEOMETRY"]
        if env.get(prefix + "METHOD"):
            config_kwargs["method"] = env[prefix + "METHOD"]
        if prefix + "REDUCE" in env:
            config_kwargs["reduce"] = _parse_bool(env[prefix + "REDUCE"], prefix + "REDUCE")
        if config_kwargs:
            kwargs["default_config"] = HashConfig.create(**config_kwargs)
        return cls(**kwargs)


__all__ = [
    "Square",
    "Linear",
    "Geometry",
    "parse_geometry",
    "Method",
    "HashConfig",
    "EngineSettings",
    "RESAMPLE_FILTERS",
]
