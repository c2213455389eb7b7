"""
Convert gridded NetCDF variables into north-up georeferenced rasters.
"""

from .diff import raster_diff
from .errors import EmptyAxis, KeyNotFound, NcRasterError, NonMonotonicAxis, ShapeMismatch
from .io import GridSource, load_grid_source
from .normalize import normalize_missing
from .processing import run_pipeline, stack_from_source
from .raster import AxisOrder, Raster, to_raster
from .sampling import sample_nearest
from .stack import RasterStack, build_stack

__all__ = [
    "AxisOrder",
    "EmptyAxis",
    "GridSource",
    "KeyNotFound",
    "NcRasterError",
    "NonMonotonicAxis",
    "Raster",
    "RasterStack",
    "ShapeMismatch",
    "build_stack",
    "load_grid_source",
    "normalize_missing",
    "raster_diff",
    "run_pipeline",
    "sample_nearest",
    "stack_from_source",
    "to_raster",
]
