"""Coefficient selection: which matrix cells form the hash, and in what order."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Tuple

import numpy as np

from .config import Geometry, Linear, Square

Coord = Tuple[int, int]


def square_order(n: int) -> List[Coord]:
    """Row-major coordinates of the top-left n x n block."""
    return [(row, col) for row in range(n) for col in range(n)]


def reduced_square_order(n: int) -> List[Coord]:
    """
    Upper-left triangle of the n x n block (row + col <= n - 1) without the DC term.

    The DC term is dropped because it is the largest coefficient for nearly
    every natural image and carries no discriminative bit.
    Yields (n - 1)(n + 2) / 2 coordinates.
    """
    return [(row, col) for row, col in square_order(n) if row + col <= n - 1 and (row, col) != (0, 0)]


def diagonal_order(k: int, size: int) -> List[Coord]:
    """
    First k coordinates visited by increasing diagonal d = row + col.

    Within a diagonal rows increase; columns outside the matrix are skipped.
    """
    coords: List[Coord] = []
    for d in range(2 * size - 1):
        for row in range(max(0, d - size + 1), min(d, size - 1) + 1):
            if len(coords) == k:
                return coords
            coords.append((row, d - row))
    return coords


@lru_cache(maxsize=128)
def _order(geometry: Geometry, reduce: bool, size: int) -> Tuple[Coord, ...]:
    if isinstance(geometry, Square):
        coords = reduced_square_order(geometry.n) if reduce else square_order(geometry.n)
    elif isinstance(geometry, Linear):
        coords = diagonal_order(geometry.k, size)
    else:
        raise TypeError(f"Unsupported geometry {geometry!r}")
    return tuple(coords)


def selection_order(geometry: Geometry, reduce: bool, size: int) -> Tuple[Coord, ...]:
    """
    Canonical bit order for a geometry: a pure function of its arguments.

    ``reduce`` is ignored for :class:`Linear` geometries.
    """
    if isinstance(geometry, Linear):
        reduce = False
    return _order(geometry, bool(reduce), int(size))


def gather(matrix: np.ndarray, coords: Tuple[Coord, ...]) -> np.ndarray:
    """Pick coefficient values at ``coords`` (in that order) as a flat float array."""
    if not coords:
        return np.zeros(0, dtype=np.float64)
    rows, cols = zip(*coords)
    return np.asarray(matrix, dtype=np.float64)[list(rows), list(cols)]


def select(matrix: np.ndarray, geometry: Geometry, reduce: bool = False) -> np.ndarray:
    """Selected coefficient values in canonical order."""
    return gather(matrix, selection_order(geometry, reduce, matrix.shape[0]))


__all__ = [
    "Coord",
    "square_order",
    "reduced_square_order",
    "diagonal_order",
    "selection_order",
    "gather",
    "select",
]
