import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import xarray as xr

FILL = -9999.0


@pytest.fixture
def tmax_dataset() -> xr.Dataset:
    """Two yearly (time, lat, lon) slices on an ascending-latitude grid."""
    values = np.array(
        [
            [[1.0, FILL, 3.0], [4.0, 5.0, 6.0]],
            [[2.0, 2.0, 5.0], [FILL, 9.0, 10.0]],
        ],
        dtype=np.float32,
    )
    return xr.Dataset(
        {
            "tmax": (
                ("time", "lat", "lon"),
                values,
                {"units": "K", "long_name": "Maximum temperature"},
            )
        },
        coords={
            "time": pd.to_datetime(["2006-01-01", "2099-01-01"]),
            "lat": [0.0, 10.0],
            "lon": [10.0, 20.0, 30.0],
        },
        attrs={"title": "synthetic"},
    )


@pytest.fixture
def tmax_path(tmp_path, tmax_dataset):
    path = tmp_path / "tmax.nc"
    tmax_dataset.to_netcdf(path, encoding={"tmax": {"_FillValue": FILL}})
    return path
