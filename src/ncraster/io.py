from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Hashable, Optional, Sequence

import numpy as np
import pandas as pd
import pyproj
import xarray as xr
import rioxarray  # noqa: F401
from rasterio.errors import CRSError as RasterioCRSError

from .normalize import normalize_missing
from .raster import AxisOrder, check_axis

logger = logging.getLogger(__name__)

X_CANDIDATES = ("lon", "longitude", "x", "rlon")
Y_CANDIDATES = ("lat", "latitude", "y", "rlat")
TIME_CANDIDATES = ("time", "t", "year")

_LAT_NAMES = {"lat", "latitude"}
_LON_NAMES = {"lon", "longitude"}


@dataclass
class GridSource:
    """
    In-memory view of one gridded NetCDF variable.

    ``data`` keeps the raw stored values (fill sentinels included) with the
    time dimension, when present, moved first. The remaining two axes follow
    ``axis_order``.
    """

    variable: str
    data: np.ndarray
    x: np.ndarray
    y: np.ndarray
    axis_order: AxisOrder
    crs: str
    fill_value: Optional[float] = None
    time: Optional[np.ndarray] = None
    scale_factor: Optional[float] = None
    add_offset: Optional[float] = None
    attrs: dict = field(default_factory=dict)
    global_attrs: dict = field(default_factory=dict)

    @property
    def has_time(self) -> bool:
        return self.time is not None

    @property
    def units(self) -> str:
        return str(self.attrs.get("units", ""))

    def normalized(self) -> np.ndarray:
        """Return the data with fill values replaced by NaN and packing undone."""
        values = normalize_missing(self.data, self.fill_value)
        if self.scale_factor is not None:
            values = values * self.scale_factor
        if self.add_offset is not None:
            values = values + self.add_offset
        return values

    def time_keys(self, key: str = "value") -> list:
        """
        Keys identifying each time slice.

        ``"value"`` returns the raw time coordinate values, ``"year"`` the
        calendar year and ``"date"`` an ISO ``YYYY-MM-DD`` string.
        """
        if self.time is None:
            return [0]
        if key == "value":
            return list(self.time)
        if key == "year":
            return [_time_year(value) for value in self.time]
        if key == "date":
            return [_time_date(value) for value in self.time]
        raise ValueError(f"Unknown time key {key!r}; expected 'value', 'year' or 'date'.")

    def slices(self, *, normalize: bool = True, key: str = "value") -> list[tuple[Hashable, np.ndarray]]:
        values = self.normalized() if normalize else np.asarray(self.data)
        keys = self.time_keys(key)
        if self.time is None:
            return [(keys[0], values)]
        return [(k, values[idx]) for idx, k in enumerate(keys)]


def load_grid_source(
    path: str | Path,
    variable: str,
    *,
    x_dim: Optional[str] = None,
    y_dim: Optional[str] = None,
    time_dim: Optional[str] = None,
    crs: Optional[str] = None,
    wrap_longitude: bool = False,
    engine: str = "netcdf4",
) -> GridSource:
    """
    Read one variable and its coordinate vectors from a NetCDF file.

    Parameters
    ----------
    path:
        NetCDF file to open.
    variable:
        Name of the gridded variable (case sensitive).
    x_dim, y_dim, time_dim:
        Dimension names. Detected from common names when omitted.
    crs:
        CRS to assign. When omitted it is read from the variable's grid
        mapping, or inferred as ``EPSG:4326`` for geographic coordinates.
    wrap_longitude:
        Convert 0..360 longitudes to -180..180 and re-sort the columns.
    engine:
        xarray backend engine (default ``'netcdf4'``).

    Returns
    -------
    GridSource
        Raw values with fill sentinels intact, ready for normalization.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"NetCDF file not found: {path}")

    with xr.open_dataset(path, engine=engine, mask_and_scale=False, decode_coords="all") as ds:
        if variable not in ds:
            raise KeyError(f"Variable '{variable}' not present in dataset. Available: {list(ds.data_vars)}")

        data_array = ds[variable]
        x_dim = x_dim or _locate_dimension(data_array, X_CANDIDATES)
        y_dim = y_dim or _locate_dimension(data_array, Y_CANDIDATES)
        if x_dim is None or y_dim is None:
            raise ValueError(
                f"Unable to determine spatial dimensions of '{variable}' from {data_array.dims}; "
                "pass x_dim and y_dim explicitly."
            )
        if time_dim is None:
            time_dim = _locate_dimension(data_array, TIME_CANDIDATES)

        data_array = _drop_singleton_dims(data_array, keep=(x_dim, y_dim, time_dim))

        spatial = [dim for dim in data_array.dims if dim in (x_dim, y_dim)]
        axis_order = AxisOrder.X_MAJOR if spatial == [y_dim, x_dim] else AxisOrder.Y_MAJOR
        leading = [time_dim] if time_dim in data_array.dims else []
        data_array = data_array.transpose(*leading, *spatial)

        data = np.asarray(data_array.values)
        x = _axis_values(ds, data_array, x_dim)
        y = _axis_values(ds, data_array, y_dim)
        time = np.asarray(ds[time_dim].values) if leading else None

        attrs = dict(data_array.attrs)
        resolved_crs = crs or _grid_mapping_crs(data_array) or _infer_crs(x, y, variable)
        global_attrs = dict(ds.attrs)

    _check_axis_ranges(x_dim, x, y_dim, y)

    if wrap_longitude:
        x, data = _wrap_longitude(x, data, axis=-1 if axis_order is AxisOrder.X_MAJOR else -2)

    logger.info(
        "Loaded '%s' from %s: shape=%s, order=%s, crs=%s",
        variable,
        path.name,
        data.shape,
        axis_order.value,
        resolved_crs,
    )
    return GridSource(
        variable=variable,
        data=data,
        x=x,
        y=y,
        axis_order=axis_order,
        crs=resolved_crs,
        fill_value=_fill_value(attrs),
        time=time,
        scale_factor=_maybe_float(attrs.get("scale_factor")),
        add_offset=_maybe_float(attrs.get("add_offset")),
        attrs=attrs,
        global_attrs=global_attrs,
    )


def _locate_dimension(data: xr.DataArray, candidates: Sequence[str]) -> Optional[str]:
    lowered = {str(dim).lower(): dim for dim in data.dims}
    for name in candidates:
        if name in lowered:
            return lowered[name]
    return None


def _drop_singleton_dims(data_array: xr.DataArray, keep: Sequence[Optional[str]]) -> xr.DataArray:
    extra = [dim for dim in data_array.dims if dim not in keep]
    too_large = [dim for dim in extra if data_array.sizes[dim] != 1]
    if too_large:
        raise ValueError(
            f"Variable '{data_array.name}' has non-singleton dimensions {too_large}; "
            "select a single level before loading."
        )
    if extra:
        data_array = data_array.isel({dim: 0 for dim in extra}, drop=True)
    return data_array


def _axis_values(ds: xr.Dataset, data_array: xr.DataArray, dim: str) -> np.ndarray:
    if dim in ds.coords or dim in ds.variables:
        values = np.asarray(ds[dim].values, dtype=np.float64)
    else:
        values = np.arange(data_array.sizes[dim], dtype=np.float64)
    return check_axis(values, dim)


def _fill_value(attrs: dict) -> Optional[float]:
    for key in ("_FillValue", "missing_value"):
        if key in attrs:
            value = np.atleast_1d(attrs[key])[0]
            return value.item() if hasattr(value, "item") else value
    return None


def _maybe_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(np.atleast_1d(value)[0])


def _grid_mapping_crs(data_array: xr.DataArray) -> Optional[str]:
    try:
        found = data_array.rio.crs
    except (RasterioCRSError, pyproj.exceptions.CRSError) as exc:
        raise ValueError(f"Invalid grid mapping CRS on variable '{data_array.name}': {exc}") from exc
    if found is None:
        return None
    return found.to_string()


def _infer_crs(x: np.ndarray, y: np.ndarray, variable: str) -> str:
    if (
        np.nanmin(x) >= -180
        and np.nanmax(x) <= 360
        and np.nanmin(y) >= -90
        and np.nanmax(y) <= 90
    ):
        return "EPSG:4326"
    raise ValueError(
        f"Cannot infer a CRS for '{variable}': coordinates are not geographic. Pass crs explicitly."
    )


def _check_axis_ranges(x_dim: str, x: np.ndarray, y_dim: str, y: np.ndarray) -> None:
    lat_out_of_range = str(y_dim).lower() in _LAT_NAMES and np.nanmax(np.abs(y)) > 90
    x_fits_latitude = np.nanmax(np.abs(x)) <= 90
    if lat_out_of_range and x_fits_latitude:
        logger.warning(
            "Dimension '%s' exceeds latitude range while '%s' fits it; the axes may be swapped.",
            y_dim,
            x_dim,
        )
    if str(x_dim).lower() in _LON_NAMES and (np.nanmin(x) < -180 or np.nanmax(x) > 360):
        logger.warning("Dimension '%s' exceeds longitude range [-180, 360].", x_dim)


def _wrap_longitude(x: np.ndarray, data: np.ndarray, axis: int) -> tuple[np.ndarray, np.ndarray]:
    if np.nanmax(x) <= 180:
        return x, data
    wrapped = ((x + 180.0) % 360.0) - 180.0
    order = np.argsort(wrapped, kind="stable")
    return check_axis(wrapped[order], "x"), np.take(data, order, axis=axis)


def _time_year(value) -> int:
    if isinstance(value, np.datetime64):
        return int(pd.Timestamp(value).year)
    if hasattr(value, "year"):
        return int(value.year)
    return int(value)


def _time_date(value) -> str:
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).strftime("%Y-%m-%d")
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value)
