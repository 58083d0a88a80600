"""Hex encoding of hash bit sequences."""

from __future__ import annotations

import string
from typing import Iterable, List, Optional

from .errors import HashInputError

_HEX_DIGITS = frozenset(string.hexdigits)


def check_hex(value: str, label: str = "hash") -> str:
    """Return ``value`` unchanged if it is a non-empty hex string, else raise HashInputError."""
    if not isinstance(value, str):
        raise HashInputError(f"{label} must be a hex string, got {type(value).__name__}.")
    if not value:
        raise HashInputError(f"{label} is empty.")
    bad = sorted(set(value) - _HEX_DIGITS)
    if bad:
        raise HashInputError(f"{label} contains non-hex characters: {''.join(bad)!r}.")
    return value


def hex_width(bit_length: int) -> int:
    """Number of hex digits needed for ``bit_length`` bits."""
    return (bit_length + 3) // 4


def bits_to_int(bits: Iterable[int]) -> int:
    h = 0
    for bit in bits:
        h = (h << 1) | (1 if bit else 0)
    return h


def bits_to_hex(bits: Iterable[int]) -> str:
    """
    Pack bits MSB-first into one integer and print it as lower-case hex.

    The result is left-padded with zeros to ceil(n / 4) digits, so a 27-bit
    hash takes 7 digits whose leading bit is always 0.
    """
    data = [1 if b else 0 for b in bits]
    width = hex_width(len(data))
    if width == 0:
        return ""
    return f"{bits_to_int(data):0{width}x}"


def hex_to_bits(value: str, length: Optional[int] = None) -> List[int]:
    """
    Decode a hex hash into bits, MSB first.

    Without ``length`` every digit yields 4 bits. With ``length`` the left
    padding added by :func:`bits_to_hex` is stripped; it must be zero.
    """
    check_hex(value)
    total = len(value) * 4
    number = int(value, 16)
    bits = [(number >> (total - 1 - i)) & 1 for i in range(total)]
    if length is None:
        return bits
    if length < 1 or hex_width(length) != len(value):
        raise HashInputError(f"Hash of {len(value)} hex digits cannot hold exactly {length} bits.")
    pad = total - length
    if any(bits[:pad]):
        raise HashInputError(f"Hash {value!r} has non-zero padding for a {length}-bit length.")
    return bits[pad:]


__all__ = ["check_hex", "hex_width", "bits_to_int", "bits_to_hex", "hex_to_bits"]
