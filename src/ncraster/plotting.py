from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .raster import Raster

logger = logging.getLogger(__name__)


def plot_raster(
    raster: Raster,
    *,
    title: Optional[str] = None,
    label: Optional[str] = None,
    cmap: str = "viridis",
    center_zero: bool = False,
    output_path: str | Path | None = None,
    show: bool = False,
) -> Path | None:
    """Plot a north-up raster map with a colorbar."""

    data_array = raster.to_dataarray()
    fig, ax = plt.subplots(figsize=(8, 6))

    plot_kwargs = {}
    if center_zero:
        limit = np.nanmax(np.abs(raster.data)) if np.isfinite(raster.data).any() else 1.0
        plot_kwargs.update({"vmin": -limit, "vmax": limit})

    data_array.plot.imshow(
        ax=ax,
        cmap=cmap,
        cbar_kwargs={"label": label or raster.attrs.get("units", "Value")},
        **plot_kwargs,
    )
    ax.set_title(title or raster.attrs.get("long_name", raster.name or "Raster"))
    ax.set_xlabel("x coordinate")
    ax.set_ylabel("y coordinate")
    ax.set_aspect("equal")

    return _finish(fig, output_path, show)


def plot_series(
    series: pd.Series,
    *,
    title: Optional[str] = None,
    ylabel: Optional[str] = None,
    output_path: str | Path | None = None,
    show: bool = False,
) -> Path | None:
    """Plot a point time series sampled from a raster stack."""

    lon = series.attrs.get("lon")
    lat = series.attrs.get("lat")

    fig, ax = plt.subplots(figsize=(9, 5))
    positions = np.arange(len(series))
    ax.plot(positions, series.to_numpy(), marker="o", linewidth=2)
    ax.set_xticks(positions)
    ax.set_xticklabels([str(key) for key in series.index], rotation=45, ha="right")
    ax.set_xlabel(series.index.name or "Key")
    ax.set_ylabel(ylabel or "Value")
    if title is None:
        title = f"{series.name or 'Value'} at lon={lon}, lat={lat}"
    ax.set_title(title)
    ax.grid(True, alpha=0.4)

    return _finish(fig, output_path, show)


def _finish(fig: plt.Figure, output_path: str | Path | None, show: bool) -> Path | None:
    saved_path: Path | None = None
    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=200, bbox_inches="tight")
        saved_path = output_path
        logger.info("Saved: %s", saved_path)

    if show:
        plt.show()
    else:
        plt.close(fig)

    return saved_path
