from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd
import rasterio

from .raster import Raster
from .stack import RasterStack

logger = logging.getLogger(__name__)

DEFAULT_NODATA = -9999.0


def _geotiff_profile(raster: Raster, count: int, nodata: float, compress: str) -> dict:
    return {
        "driver": "GTiff",
        "height": raster.height,
        "width": raster.width,
        "count": count,
        "dtype": "float32",
        "crs": raster.crs,
        "transform": raster.transform,
        "compress": compress,
        "nodata": nodata,
    }


def write_geotiff(
    raster: Raster,
    path: str | Path,
    *,
    nodata: Optional[float] = None,
    compress: str = "deflate",
) -> Path:
    """
    Write a raster as a single-band float32 GeoTIFF, NaN cells as ``nodata``.

    With ``nodata=None`` -9999 is used unless a valid cell holds that value,
    in which case the lowest float32 is used instead. An explicit ``nodata``
    equal to a valid cell raises ``ValueError``.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    nodata = _resolve_nodata([raster], nodata)
    with rasterio.open(path, "w", **_geotiff_profile(raster, 1, nodata, compress)) as dst:
        dst.write(_band(raster, nodata), 1)
        if raster.name:
            dst.set_band_description(1, raster.name)
        dst.update_tags(**_string_tags(raster.attrs))

    logger.info("Saved: %s", path)
    return path


def write_stack_geotiff(
    stack: RasterStack,
    path: str | Path,
    *,
    nodata: Optional[float] = None,
    compress: str = "deflate",
) -> Path:
    """Write every stack layer as one band, band descriptions set to the keys."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    template = stack.template
    nodata = _resolve_nodata(stack.rasters, nodata)
    profile = _geotiff_profile(template, len(stack), nodata, compress)
    with rasterio.open(path, "w", **profile) as dst:
        for band, (key, raster) in enumerate(stack, start=1):
            dst.write(_band(raster, nodata), band)
            dst.set_band_description(band, str(key))
        dst.update_tags(**_string_tags(template.attrs))

    logger.info("Saved %d band(s): %s", len(stack), path)
    return path


def write_series_csv(series: pd.Series, path: str | Path) -> Path:
    """Write a sampled series as a two-column ``key,value`` CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    frame = pd.DataFrame({"key": series.index.to_list(), "value": series.to_numpy()})
    frame.to_csv(path, index=False)

    logger.info("Saved: %s", path)
    return path


def _resolve_nodata(rasters: Sequence[Raster], nodata: Optional[float]) -> float:
    """Pick a nodata value that no valid cell takes once written as float32."""
    values = [np.asarray(raster.data, dtype=np.float32) for raster in rasters]

    def _collides(candidate: float) -> bool:
        return any((data == np.float32(candidate)).any() for data in values)

    if nodata is not None:
        if _collides(nodata):
            raise ValueError(f"nodata value {nodata} occurs as valid data; choose another nodata value.")
        return nodata
    if not _collides(DEFAULT_NODATA):
        return DEFAULT_NODATA
    fallback = float(np.finfo(np.float32).min)
    logger.warning("Valid data contains %s; writing nodata as %s instead.", DEFAULT_NODATA, fallback)
    return fallback


def _band(raster: Raster, nodata: float) -> np.ndarray:
    data = np.asarray(raster.data, dtype=np.float32)
    return np.where(np.isnan(data), np.float32(nodata), data)


def _string_tags(attrs: dict) -> dict:
    return {
        str(key): str(value)
        for key, value in attrs.items()
        if not str(key).startswith("_") and isinstance(value, (str, int, float))
    }
