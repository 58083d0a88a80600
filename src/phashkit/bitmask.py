"""Turn an ordered coefficient sequence into hash bits."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .config import Method


def log_compress(values: np.ndarray) -> np.ndarray:
    """Sign-preserving magnitude compression: sign(x) * log(1 + |x|)."""
    arr = np.asarray(values, dtype=np.float64)
    return np.sign(arr) * np.log1p(np.abs(arr))


def threshold_pool(values: np.ndarray, dc_first: bool) -> np.ndarray:
    """
    Values a global threshold is computed from: everything except a leading DC term.

    A selection that is only the DC term keeps it, so the threshold stays defined.
    """
    arr = np.asarray(values, dtype=np.float64)
    if dc_first and arr.size > 1:
        return arr[1:]
    return arr


def diff_bits(values: np.ndarray) -> np.ndarray:
    """Bit i is set when value i exceeds value i-1; bit 0 compares against zero."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return np.zeros(0, dtype=np.uint8)
    previous = np.concatenate(([0.0], arr[:-1]))
    return (arr > previous).astype(np.uint8)


def compute_threshold(pool: np.ndarray, method: Method) -> float:
    """Global threshold for the threshold-based methods, in the method's own domain."""
    arr = np.asarray(pool, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    if method in (Method.AVERAGE, Method.AVERAGE_X):
        return float(arr.mean())
    if method is Method.MEDIAN:
        return float(np.median(arr))
    if method is Method.LOG:
        return float(log_compress(arr).mean())
    raise ValueError(f"Method {method.value} has no global threshold.")


def make_bits(
    values: np.ndarray,
    method: Method,
    dc_first: bool = False,
    pool: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Bits for ``values`` (same length and order) under ``method``.

    values: selected coefficients in canonical order.
    dc_first: whether values[0] is the DC term (excluded from thresholds).
    pool: explicit threshold population, already without the DC term.
        Used by ``average_x``, which thresholds against a wider selection.
    Ties go to 0: a bit is set only when strictly greater than the threshold.
    """
    method = Method.parse(method)
    arr = np.asarray(values, dtype=np.float64)
    if method is Method.DIFF:
        return diff_bits(arr)
    if pool is None:
        pool = threshold_pool(arr, dc_first)
    thr = compute_threshold(pool, method)
    if method is Method.LOG:
        return (log_compress(arr) > thr).astype(np.uint8)
    return (arr > thr).astype(np.uint8)


__all__ = ["log_compress", "threshold_pool", "diff_bits", "compute_threshold", "make_bits"]
