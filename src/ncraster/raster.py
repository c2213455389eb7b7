from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
import xarray as xr
import rioxarray  # noqa: F401
from pyproj import CRS
from rasterio.transform import Affine, from_bounds

from .errors import EmptyAxis, NonMonotonicAxis, ShapeMismatch


class AxisOrder(str, Enum):
    """Storage order of a 2D slice relative to the (row=y, column=x) target."""

    X_MAJOR = "x-major"  # rows = y, columns = x
    Y_MAJOR = "y-major"  # rows = x, columns = y


Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True, eq=False)
class Raster:
    """
    North-up 2D grid with georeferencing.

    ``data[0, 0]`` is the cell at ``(min(x), max(y))``. ``x`` is stored
    ascending and ``y`` descending so both index the grid directly.
    """

    data: np.ndarray
    x: np.ndarray
    y: np.ndarray
    crs: str
    name: str | None = None
    attrs: dict = field(default_factory=dict)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    @property
    def bounds(self) -> Bounds:
        """Cell-center extent as ``(xmin, xmax, ymin, ymax)``."""
        return (
            float(self.x[0]),
            float(self.x[-1]),
            float(self.y[-1]),
            float(self.y[0]),
        )

    @property
    def resolution(self) -> tuple[float, float]:
        """Cell size ``(xres, yres)``; a single-cell axis borrows the other axis' spacing."""
        xres, yres = _spacing(self.x), _spacing(self.y)
        if xres is None and yres is None:
            raise ValueError("Cannot infer the cell size of a 1x1 raster.")
        return (xres if xres is not None else yres, yres if yres is not None else xres)

    @property
    def transform(self) -> Affine:
        """Affine transform over the cell-edge extent, for GeoTIFF export."""
        xres, yres = self.resolution
        xmin, xmax, ymin, ymax = self.bounds
        return from_bounds(
            xmin - xres / 2,
            ymin - yres / 2,
            xmax + xres / 2,
            ymax + yres / 2,
            self.width,
            self.height,
        )

    def same_grid(self, other: "Raster") -> bool:
        return (
            self.shape == other.shape
            and self.bounds == other.bounds
            and crs_equal(self.crs, other.crs)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return (
            self.crs == other.crs
            and np.array_equal(self.x, other.x)
            and np.array_equal(self.y, other.y)
            and np.array_equal(self.data, other.data, equal_nan=True)
        )

    __hash__ = None  # type: ignore[assignment]

    def to_dataarray(self) -> xr.DataArray:
        """Return the raster as an ``(y, x)`` DataArray with CRS and nodata set."""
        data_array = xr.DataArray(
            np.array(self.data),
            coords={"y": np.array(self.y), "x": np.array(self.x)},
            dims=("y", "x"),
            name=self.name,
            attrs=dict(self.attrs),
        )
        data_array.rio.write_crs(self.crs, inplace=True)
        data_array.rio.set_spatial_dims(x_dim="x", y_dim="y", inplace=True)
        data_array.rio.write_nodata(np.nan, inplace=True)
        return data_array


def to_raster(
    slice_2d: np.ndarray,
    x_axis,
    y_axis,
    axis_order: Union[AxisOrder, str],
    crs: str,
    *,
    name: str | None = None,
    attrs: dict | None = None,
) -> Raster:
    """
    Build a north-up :class:`Raster` from a 2D slice and its axis vectors.

    A ``Y_MAJOR`` slice is transposed into (row=y, column=x) form first.
    Rows are then reversed when ``y_axis`` increases and columns when
    ``x_axis`` decreases, so that row 0 holds max(y) and column 0 min(x).
    """
    axis_order = AxisOrder(axis_order)
    x = check_axis(x_axis, "x")
    y = check_axis(y_axis, "y")

    grid = np.asarray(slice_2d)
    if grid.ndim != 2:
        raise ShapeMismatch(f"Expected a 2D slice, got {grid.ndim} dimension(s) with shape {grid.shape}.")
    if axis_order is AxisOrder.Y_MAJOR:
        grid = grid.T

    if grid.shape != (y.size, x.size):
        raise ShapeMismatch(
            f"Slice shape {grid.shape} (rows=y, cols=x) does not match "
            f"axis lengths (y={y.size}, x={x.size})."
        )

    if _increasing(y):
        grid = grid[::-1, :]
        y = y[::-1]
    if not _increasing(x):
        grid = grid[:, ::-1]
        x = x[::-1]

    return Raster(
        data=_frozen(grid),
        x=_frozen(x),
        y=_frozen(y),
        crs=crs,
        name=name,
        attrs=dict(attrs or {}),
    )


def check_axis(values, label: str = "axis") -> np.ndarray:
    """Return ``values`` as a 1D float array, enforcing non-empty strict monotonicity."""
    axis = np.asarray(values, dtype=np.float64)
    if axis.ndim != 1:
        raise ShapeMismatch(f"{label} axis must be one-dimensional, got shape {axis.shape}.")
    if axis.size == 0:
        raise EmptyAxis(f"{label} axis is empty.")
    if axis.size > 1:
        steps = np.diff(axis)
        if not (np.all(steps > 0) or np.all(steps < 0)):
            raise NonMonotonicAxis(f"{label} axis is not strictly monotonic.")
    return axis


def crs_equal(left: str, right: str) -> bool:
    if left == right:
        return True
    return CRS.from_user_input(left) == CRS.from_user_input(right)


def _increasing(axis: np.ndarray) -> bool:
    return axis.size > 1 and axis[-1] > axis[0]


def _spacing(axis: np.ndarray) -> Optional[float]:
    if axis.size < 2:
        return None
    return float(abs(axis[-1] - axis[0]) / (axis.size - 1))


def _frozen(values: np.ndarray) -> np.ndarray:
    values = np.array(values, copy=True)
    values.setflags(write=False)
    return values
