"""Orthonormal 2D DCT-II used as the hash transform."""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

# Basis matrices per grid size
_DCT_CACHE: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}

# Coefficients below this magnitude are floating point residue, not signal.
NOISE_FLOOR = 1e-9


def _get_dct_mats(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """Return the size-n DCT-II matrix and its transpose (which is its inverse)."""
    if n in _DCT_CACHE:
        return _DCT_CACHE[n]

    k = np.arange(n)[:, None]
    x = np.arange(n)[None, :]
    scale = np.full((n, 1), np.sqrt(2.0 / n), dtype=np.float64)
    scale[0] = np.sqrt(1.0 / n)
    dct_mat = scale * np.cos(np.pi * (2 * x + 1) * k / (2.0 * n))
    dct_mat.setflags(write=False)
    inv_mat = dct_mat.T
    _DCT_CACHE[n] = (dct_mat, inv_mat)
    return dct_mat, inv_mat


def _check_square(a: np.ndarray) -> np.ndarray:
    arr = np.asarray(a, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(f"Expected a square 2D grid, got shape {arr.shape}.")
    return arr


def dct2(a: np.ndarray) -> np.ndarray:
    """2D DCT (type II, orthonormal): D * A * D^T, with residue snapped to 0.0."""
    arr = _check_square(a)
    D, _ = _get_dct_mats(arr.shape[0])
    out = D @ arr @ D.T
    out[np.abs(out) < NOISE_FLOOR] = 0.0
    return out


def idct2(a: np.ndarray) -> np.ndarray:
    """2D inverse DCT: D^T * A * D."""
    arr = _check_square(a)
    _, D_inv = _get_dct_mats(arr.shape[0])
    return D_inv @ arr @ D_inv.T


__all__ = ["dct2", "idct2", "NOISE_FLOOR"]
