from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class PipelineConfig:
    netcdf_path: Path
    variable: str
    output_dir: Path
    x_dim: Optional[str] = None
    y_dim: Optional[str] = None
    time_dim: Optional[str] = None
    crs: Optional[str] = None
    time_key: str = "date"
    point_lon: Optional[float] = None
    point_lat: Optional[float] = None
    diff_from: Optional[str] = None
    diff_to: Optional[str] = None
    wrap_longitude: bool = False
    workers: int = 1

    @property
    def has_point(self) -> bool:
        return self.point_lon is not None and self.point_lat is not None


_KNOWN_KEYS = frozenset(field.name for field in fields(PipelineConfig))


def _read_key_values(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for lineno, raw in enumerate(path.read_text().splitlines(), start=1):
        text = raw.split(" #", 1)[0].strip()
        if not text or text.startswith("#"):
            continue
        key, sep, value = text.partition("=")
        key = key.strip().lower()
        if not sep or not key:
            raise ValueError(f"{path}:{lineno}: expected 'key = value', got {raw.strip()!r}")
        if key not in _KNOWN_KEYS:
            raise ValueError(f"{path}:{lineno}: unknown config key {key!r}")
        if key in values:
            raise ValueError(f"{path}:{lineno}: config key {key!r} given twice")
        values[key] = value.strip()
    return values


def parse_config_file(path: str | Path) -> PipelineConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    values = _read_key_values(path)

    required = ["netcdf_path", "variable", "output_dir"]
    missing = [key for key in required if key not in values]
    if missing:
        raise ValueError(f"Missing required config keys: {missing}")

    def _maybe_str(key: str) -> Optional[str]:
        return values.get(key) or None

    def _maybe_float(key: str) -> Optional[float]:
        raw = values.get(key)
        return float(raw) if raw else None

    point_lon = _maybe_float("point_lon")
    point_lat = _maybe_float("point_lat")
    if (point_lon is None) != (point_lat is None):
        raise ValueError("Both point_lon and point_lat must be set to sample a point.")

    return PipelineConfig(
        netcdf_path=Path(values["netcdf_path"]),
        variable=values["variable"],
        output_dir=Path(values["output_dir"]),
        x_dim=_maybe_str("x_dim"),
        y_dim=_maybe_str("y_dim"),
        time_dim=_maybe_str("time_dim"),
        crs=_maybe_str("crs"),
        time_key=values.get("time_key") or "date",
        point_lon=point_lon,
        point_lat=point_lat,
        diff_from=_maybe_str("diff_from"),
        diff_to=_maybe_str("diff_to"),
        wrap_longitude=values.get("wrap_longitude", "").lower() in _TRUE_VALUES,
        workers=int(values.get("workers") or 1),
    )
