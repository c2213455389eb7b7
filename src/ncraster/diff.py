from __future__ import annotations

import numpy as np

from .errors import ShapeMismatch
from .raster import AxisOrder, Raster, to_raster


def raster_diff(a: Raster, b: Raster, *, name: str | None = None) -> Raster:
    """
    Element-wise ``a - b`` on two rasters sharing one grid.

    Cells that are NoData in either operand are NoData in the result.
    """
    if not a.same_grid(b):
        raise ShapeMismatch(
            f"Cannot difference rasters on different grids: "
            f"{a.shape} {a.bounds} {a.crs!r} vs {b.shape} {b.bounds} {b.crs!r}."
        )
    missing = np.isnan(a.data) | np.isnan(b.data)
    with np.errstate(invalid="ignore"):
        values = np.where(missing, np.nan, a.data - b.data)

    attrs = dict(a.attrs)
    attrs["long_name"] = f"Difference of {a.name or 'a'} and {b.name or 'b'}"
    return to_raster(values, a.x, a.y, AxisOrder.X_MAJOR, a.crs, name=name or a.name, attrs=attrs)
