from __future__ import annotations


class NcRasterError(Exception):
    """Base class for errors raised by ncraster."""


class ShapeMismatch(NcRasterError, ValueError):
    """Operands that must align differ in dimensions, bounds or CRS."""


class KeyNotFound(NcRasterError, KeyError):
    """Lookup into a raster stack by a key it does not hold."""


class EmptyAxis(NcRasterError, ValueError):
    """A zero-length coordinate vector was supplied."""


class NonMonotonicAxis(NcRasterError, ValueError):
    """A coordinate vector is not strictly increasing or decreasing."""
