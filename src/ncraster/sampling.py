from __future__ import annotations

from typing import Union, overload

import numpy as np
import pandas as pd

from .raster import Raster
from .stack import RasterStack


@overload
def sample_nearest(source: Raster, lon: float, lat: float) -> float: ...


@overload
def sample_nearest(source: RasterStack, lon: float, lat: float) -> pd.Series: ...


def sample_nearest(source: Union[Raster, RasterStack], lon: float, lat: float):
    """
    Return the value of the cell nearest to ``(lon, lat)``.

    Each axis is searched independently; ties go to the lower index. Points
    strictly outside the raster's bounding box yield ``nan``.

    For a :class:`RasterStack` the result is a ``pandas.Series`` indexed by
    the stack keys, one value per layer.
    """
    if isinstance(source, RasterStack):
        index = pd.Index(list(source.keys), name="key")
        if not len(source):
            return pd.Series([], index=index, dtype=float)
        cell = nearest_cell(source.template, lon, lat)
        if cell is None:
            values = np.full(len(source), np.nan)
        else:
            row, col = cell
            values = np.array([raster.data[row, col] for _, raster in source], dtype=float)
        series = pd.Series(values, index=index, name=source.template.name)
        series.attrs.update({"lon": lon, "lat": lat})
        return series

    cell = nearest_cell(source, lon, lat)
    if cell is None:
        return np.nan
    row, col = cell
    return float(source.data[row, col])


def nearest_cell(raster: Raster, lon: float, lat: float) -> tuple[int, int] | None:
    """Return ``(row, col)`` of the nearest cell, or ``None`` outside the bounds."""
    xmin, xmax, ymin, ymax = raster.bounds
    if not (xmin <= lon <= xmax and ymin <= lat <= ymax):
        return None
    # y is stored descending, so higher latitudes map to lower rows
    row = int(np.argmin(np.abs(raster.y - lat)))
    col = int(np.argmin(np.abs(raster.x - lon)))
    return row, col
