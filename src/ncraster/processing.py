from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Hashable, Optional

import pandas as pd

from .config import PipelineConfig
from .diff import raster_diff
from .errors import KeyNotFound
from .export import write_geotiff, write_series_csv, write_stack_geotiff
from .io import GridSource, load_grid_source
from .plotting import plot_raster, plot_series
from .raster import Raster
from .sampling import sample_nearest
from .stack import RasterStack, build_stack

logger = logging.getLogger(__name__)


def stack_from_source(
    source: GridSource,
    *,
    normalize: bool = True,
    time_key: str = "value",
    workers: int = 1,
) -> RasterStack:
    """Orient every time slice of a loaded variable into a :class:`RasterStack`."""
    return build_stack(
        source.slices(normalize=normalize, key=time_key),
        source.x,
        source.y,
        source.axis_order,
        source.crs,
        name=source.variable,
        attrs=_decoded_attrs(source.attrs) if normalize else source.attrs,
        workers=workers,
    )


def run_pipeline(
    config: PipelineConfig,
    *,
    save_results: bool = True,
    make_plots: bool = True,
    show_plots: bool = False,
) -> Dict[str, object]:
    """
    Execute the NetCDF to raster workflow for one variable.
    """
    source = load_grid_source(
        config.netcdf_path,
        config.variable,
        x_dim=config.x_dim,
        y_dim=config.y_dim,
        time_dim=config.time_dim,
        crs=config.crs,
        wrap_longitude=config.wrap_longitude,
    )
    stack = stack_from_source(source, time_key=config.time_key, workers=config.workers)
    first_key = stack.keys[0]
    first = stack.layer(first_key)

    series: Optional[pd.Series] = None
    if config.has_point:
        series = sample_nearest(stack, config.point_lon, config.point_lat)
        logger.info(
            "Sampled %d value(s) at lon=%s, lat=%s",
            len(series),
            config.point_lon,
            config.point_lat,
        )

    difference: Optional[Raster] = None
    diff_from = diff_to = None
    if len(stack) > 1 or config.diff_from or config.diff_to:
        diff_from = _resolve_key(stack, config.diff_from, default=stack.keys[0])
        diff_to = _resolve_key(stack, config.diff_to, default=stack.keys[-1])
        difference = raster_diff(
            stack.layer(diff_to),
            stack.layer(diff_from),
            name=f"{config.variable}_diff",
        )

    output_dir = Path(config.output_dir)
    base = config.variable.lower()
    units = source.units or None

    geotiff_path = stack_geotiff_path = diff_geotiff_path = series_csv_path = None
    if save_results:
        geotiff_path = write_geotiff(first, output_dir / f"{base}_{_slug(first_key)}.tif")
        stack_geotiff_path = write_stack_geotiff(stack, output_dir / f"{base}_stack.tif")
        if difference is not None:
            diff_geotiff_path = write_geotiff(
                difference,
                output_dir / f"{base}_diff_{_slug(diff_to)}_{_slug(diff_from)}.tif",
            )
        if series is not None:
            series_csv_path = write_series_csv(series, output_dir / f"{base}_point_series.csv")

    map_plot = series_plot = diff_plot = None
    if make_plots:
        map_plot = plot_raster(
            first,
            title=f"{config.variable} ({first_key})",
            label=units,
            output_path=output_dir / f"{base}_{_slug(first_key)}.png",
            show=show_plots,
        )
        if series is not None:
            series_plot = plot_series(
                series,
                ylabel=units,
                output_path=output_dir / f"{base}_point_series.png",
                show=show_plots,
            )
        if difference is not None:
            diff_plot = plot_raster(
                difference,
                title=f"{config.variable}: {diff_to} minus {diff_from}",
                label=units,
                cmap="RdBu_r",
                center_zero=True,
                output_path=output_dir / f"{base}_diff.png",
                show=show_plots,
            )

    return {
        "source": source,
        "stack": stack,
        "first_layer": first,
        "series": series,
        "difference": difference,
        "diff_keys": (diff_to, diff_from),
        "geotiff": geotiff_path,
        "stack_geotiff": stack_geotiff_path,
        "diff_geotiff": diff_geotiff_path,
        "series_csv": series_csv_path,
        "map_plot": map_plot,
        "series_plot": series_plot,
        "diff_plot": diff_plot,
    }


def _resolve_key(stack: RasterStack, requested: Optional[str], default: Hashable) -> Hashable:
    """Match a key given as text in a config file against the stack's keys."""
    if requested is None:
        return default
    for key in stack.keys:
        if key == requested or str(key) == requested:
            return key
    raise KeyNotFound(f"No layer with key {requested!r}. Available: {[str(key) for key in stack.keys]}")


def _decoded_attrs(attrs: dict) -> dict:
    packing = {"_FillValue", "missing_value", "scale_factor", "add_offset", "valid_range"}
    return {key: value for key, value in attrs.items() if key not in packing}


def _slug(key: Hashable) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in str(key))
