from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import parse_config_file
from .processing import run_pipeline


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ncraster",
        description="Convert a gridded NetCDF variable to north-up rasters, a point series and a difference map.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to plain-text configuration file (key=value per line).",
    )
    parser.add_argument("--no-save", action="store_true", help="Skip writing GeoTIFF and CSV outputs.")
    parser.add_argument("--no-plots", action="store_true", help="Skip PNG plotting.")
    parser.add_argument("--show-plots", action="store_true", help="Display plots interactively.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    config = parse_config_file(args.config)
    results = run_pipeline(
        config,
        save_results=not args.no_save,
        make_plots=not args.no_plots,
        show_plots=args.show_plots,
    )

    stack = results["stack"]
    template = stack.template
    summary_lines = [
        f"Loaded '{config.variable}': {len(stack)} layer(s) of {template.height} x {template.width}",
        f"Bounds (xmin, xmax, ymin, ymax): {template.bounds}, crs={template.crs}",
    ]
    series = results.get("series")
    if series is not None:
        summary_lines.append(
            f"Point series at lon={config.point_lon}, lat={config.point_lat}: "
            f"{series.notna().sum()} valid of {len(series)}"
        )
    if results.get("difference") is not None:
        diff_to, diff_from = results["diff_keys"]
        summary_lines.append(f"Difference computed: {diff_to} minus {diff_from}")
    for label, key in (
        ("GeoTIFF", "geotiff"),
        ("Stack GeoTIFF", "stack_geotiff"),
        ("Difference GeoTIFF", "diff_geotiff"),
        ("Point series CSV", "series_csv"),
        ("Map plot", "map_plot"),
        ("Series plot", "series_plot"),
        ("Difference plot", "diff_plot"),
    ):
        if results.get(key):
            summary_lines.append(f"{label} saved to: {results[key]}")

    print("\n".join(summary_lines))
    return 0


if __name__ == "__main__":
    sys.exit(main())
