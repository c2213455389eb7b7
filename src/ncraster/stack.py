from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Hashable, Iterable, Iterator, Sequence, Tuple, Union

import numpy as np
import xarray as xr
import rioxarray  # noqa: F401

from .errors import KeyNotFound, ShapeMismatch
from .raster import AxisOrder, Raster, to_raster

logger = logging.getLogger(__name__)


class RasterStack:
    """Ordered, keyed sequence of rasters sharing one grid and CRS."""

    def __init__(self, keys: Sequence[Hashable], rasters: Sequence[Raster]):
        if len(keys) != len(rasters):
            raise ValueError(f"Got {len(keys)} keys for {len(rasters)} rasters.")
        if len(set(keys)) != len(keys):
            raise ValueError("Stack keys must be unique.")
        if rasters:
            first = rasters[0]
            for key, raster in zip(keys, rasters):
                if not first.same_grid(raster):
                    raise ShapeMismatch(
                        f"Layer {key!r} has shape {raster.shape} and bounds {raster.bounds}, "
                        f"expected {first.shape} and {first.bounds}."
                    )
        self._keys = tuple(keys)
        self._rasters = tuple(rasters)
        self._index = {key: idx for idx, key in enumerate(self._keys)}

    @property
    def keys(self) -> tuple:
        return self._keys

    @property
    def rasters(self) -> tuple:
        return self._rasters

    @property
    def template(self) -> Raster:
        if not self._rasters:
            raise ValueError("Stack is empty.")
        return self._rasters[0]

    def layer(self, key: Hashable) -> Raster:
        try:
            return self._rasters[self._index[key]]
        except KeyError:
            raise KeyNotFound(f"No layer with key {key!r}. Available: {list(self._keys)}") from None

    def __len__(self) -> int:
        return len(self._rasters)

    def __iter__(self) -> Iterator[Tuple[Hashable, Raster]]:
        return iter(zip(self._keys, self._rasters))

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def to_dataarray(self, dim: str = "key") -> xr.DataArray:
        """Concatenate the layers into a ``(dim, y, x)`` DataArray."""
        template = self.template
        data_array = xr.DataArray(
            np.stack([raster.data for raster in self._rasters]),
            coords={dim: list(self._keys), "y": np.array(template.y), "x": np.array(template.x)},
            dims=(dim, "y", "x"),
            name=template.name,
            attrs=dict(template.attrs),
        )
        data_array.rio.write_crs(template.crs, inplace=True)
        data_array.rio.set_spatial_dims(x_dim="x", y_dim="y", inplace=True)
        data_array.rio.write_nodata(np.nan, inplace=True)
        return data_array


def build_stack(
    slices: Iterable[Tuple[Hashable, np.ndarray]],
    x_axis,
    y_axis,
    axis_order: Union[AxisOrder, str],
    crs: str,
    *,
    name: str | None = None,
    attrs: dict | None = None,
    workers: int = 1,
) -> RasterStack:
    """
    Orient every ``(key, slice)`` pair with the same axes and stack the results.

    Raises
    ------
    ShapeMismatch
        If any layer's dimensions differ from the first layer's.
    """
    pairs = list(slices)
    keys = [key for key, _ in pairs]

    def _adapt(pair):
        key, grid = pair
        try:
            return to_raster(grid, x_axis, y_axis, axis_order, crs, name=name, attrs=attrs)
        except ShapeMismatch as exc:
            raise ShapeMismatch(f"Layer {key!r}: {exc}") from exc

    if workers > 1 and len(pairs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            rasters = list(pool.map(_adapt, pairs))
    else:
        rasters = [_adapt(pair) for pair in pairs]

    logger.debug("Built stack of %d layer(s) for %s", len(rasters), name or "unnamed variable")
    return RasterStack(keys, rasters)
