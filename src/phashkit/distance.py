"""Hamming distance between hex-encoded hashes."""

from __future__ import annotations

from .encoding import check_hex
from .errors import HashInputError

# 16 hex digits = one 64-bit word
CHUNK_DIGITS = 16


def hamming_distance(a: str, b: str) -> int:
    """
    Number of differing bits between two hex hashes of the same length.

    Hashes up to 64 bits are compared as one integer; longer ones word by word.
    """
    check_hex(a, "first hash")
    check_hex(b, "second hash")
    if len(a) != len(b):
        raise HashInputError(f"Hash length mismatch: {len(a) * 4} bits vs {len(b) * 4} bits.")
    if len(a) <= CHUNK_DIGITS:
        return (int(a, 16) ^ int(b, 16)).bit_count()
    total = 0
    for start in range(0, len(a), CHUNK_DIGITS):
        end = start + CHUNK_DIGITS
        total += (int(a[start:end], 16) ^ int(b[start:end], 16)).bit_count()
    return total


__all__ = ["hamming_distance", "CHUNK_DIGITS"]
