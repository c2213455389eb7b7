from __future__ import annotations

from typing import Optional

import numpy as np


def normalize_missing(grid: np.ndarray, fill_value: Optional[float]) -> np.ndarray:
    """
    Replace every occurrence of ``fill_value`` in ``grid`` with ``numpy.nan``.

    Parameters
    ----------
    grid:
        Raw numeric array of any dimensionality. Not modified.
    fill_value:
        Sentinel marking absent measurements. Compared exactly in the grid's
        dtype; a sentinel that dtype cannot represent exactly (fractional on
        an integer grid, out of range, or losing precision when narrowed to
        float32) matches nothing. When the sentinel is itself a NaN the
        comparison is done on its bit pattern. ``None`` only promotes the
        dtype.

    Returns
    -------
    numpy.ndarray
        Floating copy of ``grid`` with sentinels replaced. Integer inputs are
        promoted to ``float64``.
    """
    raw = np.asarray(grid)
    if fill_value is None:
        return _as_float(raw).copy()

    if np.isnan(fill_value):
        if not np.issubdtype(raw.dtype, np.floating):
            return _as_float(raw).copy()
        mask = _nan_sentinel_mask(raw, fill_value)
    else:
        mask = _sentinel_mask(raw, fill_value)

    result = _as_float(raw).copy()
    result[mask] = np.nan
    return result


def _as_float(raw: np.ndarray) -> np.ndarray:
    if np.issubdtype(raw.dtype, np.floating):
        return raw
    return raw.astype(np.float64)


def _nan_sentinel_mask(raw: np.ndarray, fill_value: float) -> np.ndarray:
    bits_dtype = np.dtype(f"u{raw.dtype.itemsize}")
    sentinel = np.asarray(fill_value, dtype=raw.dtype).view(bits_dtype)
    return np.ascontiguousarray(raw).view(bits_dtype) == sentinel


def _sentinel_mask(raw: np.ndarray, fill_value: float) -> np.ndarray:
    # compare in the source representation, before any promotion
    sentinel = np.asarray(fill_value)
    with np.errstate(invalid="ignore", over="ignore"):
        cast = sentinel.astype(raw.dtype)
        exact = cast.astype(sentinel.dtype) == sentinel
    if not exact:
        return np.zeros(raw.shape, dtype=bool)
    return raw == cast
