"""Horizontal-flip relations on DCT coefficient matrices."""

from __future__ import annotations

import numpy as np


def mirror_matrix(coeffs: np.ndarray) -> np.ndarray:
    """
    Coefficients of the horizontally flipped image, without re-running the DCT.

    Flipping columns of the input negates every coefficient in an odd column.
    Returns a new array; ``coeffs`` is left untouched.
    """
    out = np.array(coeffs, dtype=np.float64, copy=True)
    out[:, 1::2] *= -1.0
    # keep +0.0 for zero cells so mirrored matrices compare cleanly
    out[out == 0.0] = 0.0
    return out


def mirrorproof_values(values: np.ndarray) -> np.ndarray:
    """Magnitudes of selected coefficients; invariant under the flip sign pattern."""
    return np.abs(np.asarray(values, dtype=np.float64))


__all__ = ["mirror_matrix", "mirrorproof_values"]
