"""
Tests for the configuration parser, the end-to-end pipeline and the CLI.
"""

import numpy as np
import pytest

from ncraster.cli import main
from ncraster.config import PipelineConfig, parse_config_file
from ncraster.errors import KeyNotFound
from ncraster.io import load_grid_source
from ncraster.processing import run_pipeline, stack_from_source


def _write_config(path, **values):
    lines = ["# walkthrough config", ""] + [f"{key} = {value}" for key, value in values.items()]
    path.write_text("\n".join(lines))
    return path


class TestParseConfigFile:
    """parse_config_file"""

    def test_full(self, tmp_path) -> None:
        path = _write_config(
            tmp_path / "config.txt",
            netcdf_path="/data/tmax.nc",
            variable="tmax",
            output_dir="/data/out",
            time_key="year",
            point_lon="-72.18",
            point_lat="42.53",
            diff_from="2006",
            diff_to="2099",
            wrap_longitude="yes",
            workers="4",
        )
        config = parse_config_file(path)
        assert config.variable == "tmax"
        assert str(config.output_dir) == "/data/out"
        assert config.point_lon == pytest.approx(-72.18)
        assert config.has_point
        assert config.diff_to == "2099"
        assert config.wrap_longitude is True
        assert config.workers == 4

    def test_defaults(self, tmp_path) -> None:
        path = _write_config(tmp_path / "c.txt", netcdf_path="a.nc", variable="v", output_dir="out")
        config = parse_config_file(path)
        assert config.time_key == "date"
        assert config.crs is None
        assert not config.has_point
        assert config.workers == 1

    def test_missing_keys(self, tmp_path) -> None:
        path = _write_config(tmp_path / "c.txt", netcdf_path="a.nc")
        with pytest.raises(ValueError):
            parse_config_file(path)

    def test_half_point(self, tmp_path) -> None:
        path = _write_config(
            tmp_path / "c.txt", netcdf_path="a.nc", variable="v", output_dir="out", point_lon="1.0"
        )
        with pytest.raises(ValueError):
            parse_config_file(path)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            parse_config_file(tmp_path / "absent.txt")

    def test_trailing_comments(self, tmp_path) -> None:
        path = tmp_path / "c.txt"
        path.write_text(
            "netcdf_path = a.nc  # source grid\n"
            "  # indented comment\n"
            "variable = v\n"
            "output_dir = out\n"
            "crs = EPSG:4326 # geographic\n"
        )
        config = parse_config_file(path)
        assert config.netcdf_path.name == "a.nc"
        assert config.crs == "EPSG:4326"

    def test_line_without_separator(self, tmp_path) -> None:
        path = tmp_path / "c.txt"
        path.write_text("netcdf_path = a.nc\nvariable v\noutput_dir = out\n")
        with pytest.raises(ValueError, match=r"c\.txt:2"):
            parse_config_file(path)

    def test_unknown_key(self, tmp_path) -> None:
        path = _write_config(
            tmp_path / "c.txt", netcdf_path="a.nc", variable="v", output_dir="out", varible="w"
        )
        with pytest.raises(ValueError, match=r"c\.txt:6.*varible"):
            parse_config_file(path)

    def test_duplicate_key(self, tmp_path) -> None:
        path = tmp_path / "c.txt"
        path.write_text("netcdf_path = a.nc\nvariable = v\noutput_dir = out\nVariable = w\n")
        with pytest.raises(ValueError, match=r"c\.txt:4.*variable"):
            parse_config_file(path)


class TestStackFromSource:
    """stack_from_source"""

    def test_scenario_layers(self, tmax_path) -> None:
        stack = stack_from_source(load_grid_source(tmax_path, "tmax"), time_key="year")

        assert stack.keys == (2006, 2099)
        first = stack.layer(2006)
        np.testing.assert_array_equal(first.data[0], [4.0, 5.0, 6.0])
        np.testing.assert_array_equal(first.data[1], [1.0, np.nan, 3.0])
        assert "_FillValue" not in first.attrs
        assert first.attrs["units"] == "K"


class TestRunPipeline:
    """run_pipeline"""

    def _config(self, tmax_path, tmp_path, **overrides) -> PipelineConfig:
        values = dict(
            netcdf_path=tmax_path,
            variable="tmax",
            output_dir=tmp_path / "out",
            time_key="year",
            point_lon=20.0,
            point_lat=9.0,
        )
        values.update(overrides)
        return PipelineConfig(**values)

    def test_outputs(self, tmax_path, tmp_path) -> None:
        results = run_pipeline(self._config(tmax_path, tmp_path))

        series = results["series"]
        assert list(series.index) == [2006, 2099]
        np.testing.assert_array_equal(series.to_numpy(), [5.0, 9.0])

        difference = results["difference"]
        assert results["diff_keys"] == (2099, 2006)
        # 2099 minus 2006, north row first
        np.testing.assert_array_equal(difference.data[0], [np.nan, 4.0, 4.0])
        np.testing.assert_array_equal(difference.data[1], [1.0, np.nan, 2.0])

        for key in ("geotiff", "stack_geotiff", "diff_geotiff", "series_csv", "map_plot", "series_plot", "diff_plot"):
            assert results[key].exists(), key

    def test_explicit_diff_keys(self, tmax_path, tmp_path) -> None:
        config = self._config(tmax_path, tmp_path, diff_from="2099", diff_to="2006")
        results = run_pipeline(config, save_results=False, make_plots=False)
        assert results["diff_keys"] == (2006, 2099)
        assert results["difference"].data[0, 2] == -4.0
        assert results["geotiff"] is None
        assert results["map_plot"] is None

    def test_unknown_diff_key(self, tmax_path, tmp_path) -> None:
        config = self._config(tmax_path, tmp_path, diff_from="1999")
        with pytest.raises(KeyNotFound):
            run_pipeline(config, save_results=False, make_plots=False)

    def test_point_outside_grid(self, tmax_path, tmp_path) -> None:
        config = self._config(tmax_path, tmp_path, point_lat=15.0)
        results = run_pipeline(config, save_results=False, make_plots=False)
        assert results["series"].isna().all()


class TestCli:
    """ncraster console entry point"""

    def test_main(self, tmax_path, tmp_path, capsys) -> None:
        config = _write_config(
            tmp_path / "config.txt",
            netcdf_path=tmax_path,
            variable="tmax",
            output_dir=tmp_path / "cli_out",
            time_key="year",
            point_lon="10",
            point_lat="10",
        )
        assert main(["--config", str(config), "--no-plots"]) == 0

        output = capsys.readouterr().out
        assert "2 layer(s) of 2 x 3" in output
        assert "Difference computed: 2099 minus 2006" in output
        assert (tmp_path / "cli_out" / "tmax_stack.tif").exists()
        assert not (tmp_path / "cli_out" / "tmax_diff.png").exists()
