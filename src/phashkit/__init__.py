"""
phashkit

DCT-based perceptual hashing: configurable coefficient geometry, five bit
decision methods, mirror-aware variants and Hamming distance on hex hashes.

Dependencies:
    - numpy
    - Pillow
    - opencv-python-headless (optional backend)
"""

from .backends import GridBackend, GridProvider, OpenCVBackend, PillowBackend, register_backend
from .config import EngineSettings, HashConfig, Linear, Method, Square, parse_geometry
from .dct import dct2, idct2
from .distance import hamming_distance
from .encoding import bits_to_hex, hex_to_bits
from .errors import ConfigError, HashInputError, PHashError, SourceUnavailableError
from .hasher import Hasher, HashResult, coefficient_matrix, compute_hash, phash
from .mirror import mirror_matrix
from .selector import selection_order

__version__ = "0.3.0"

__all__ = [
    "GridBackend",
    "GridProvider",
    "OpenCVBackend",
    "PillowBackend",
    "register_backend",
    "EngineSettings",
    "HashConfig",
    "Linear",
    "Method",
    "Square",
    "parse_geometry",
    "dct2",
    "idct2",
    "hamming_distance",
    "bits_to_hex",
    "hex_to_bits",
    "ConfigError",
    "HashInputError",
    "PHashError",
    "SourceUnavailableError",
    "Hasher",
    "HashResult",
    "coefficient_matrix",
    "compute_hash",
    "phash",
    "mirror_matrix",
    "selection_order",
]
