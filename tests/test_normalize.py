"""
Tests for fill-value normalization.
"""

import numpy as np

from ncraster.normalize import normalize_missing


class TestNormalizeMissing:
    """normalize_missing"""

    def test_fill_replaced_others_unchanged(self) -> None:
        grid = np.array([[1.0, -9999.0, 3.0], [4.0, 5.0, -9999.0]])
        result = normalize_missing(grid, -9999.0)

        fill_mask = grid == -9999.0
        assert np.isnan(result[fill_mask]).all()
        np.testing.assert_array_equal(result[~fill_mask], grid[~fill_mask])
        assert not (result == -9999.0).any()

    def test_input_not_modified(self) -> None:
        grid = np.array([1.0, -9999.0])
        normalize_missing(grid, -9999.0)
        assert grid[1] == -9999.0

    def test_exact_match_only(self) -> None:
        """Values close to the sentinel are kept"""
        grid = np.array([-9999.0, -9999.0001, -9998.9999])
        result = normalize_missing(grid, -9999.0)
        assert np.isnan(result[0])
        assert result[1] == -9999.0001
        assert result[2] == -9998.9999

    def test_integer_grid_promoted(self) -> None:
        grid = np.array([[1, -32768], [3, 4]], dtype=np.int16)
        result = normalize_missing(grid, -32768)
        assert result.dtype == np.float64
        assert np.isnan(result[0, 1])
        assert result[1, 1] == 4.0

    def test_float32_sentinel(self) -> None:
        fill = np.float32(9.96921e36)
        grid = np.array([1.5, fill, 2.5], dtype=np.float32)
        result = normalize_missing(grid, fill)
        assert np.isnan(result[1])
        assert result[0] == np.float32(1.5)

    def test_float32_sentinel_read_as_python_float(self) -> None:
        """A float32 _FillValue widened to float64 still round-trips"""
        fill = np.float32(9.96921e36)
        grid = np.array([fill, 2.5], dtype=np.float32)
        result = normalize_missing(grid, fill.item())
        assert np.isnan(result[0])
        assert result[1] == np.float32(2.5)

    def test_none_fill_only_promotes(self) -> None:
        grid = np.array([1, 2, 3], dtype=np.int32)
        result = normalize_missing(grid, None)
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_nan_sentinel_uses_bit_pattern(self) -> None:
        """A NaN sentinel with a payload only matches its own bits"""
        payload_nan = np.array([0x7FF8000000000001], dtype=np.uint64).view(np.float64)[0]
        grid = np.array([payload_nan, np.nan, 1.0])
        result = normalize_missing(grid, payload_nan)

        bits = result.view(np.uint64)
        assert bits[0] != np.array([payload_nan]).view(np.uint64)[0]
        assert np.isnan(result[0])
        assert np.isnan(result[1])
        assert result[2] == 1.0

    def test_nan_sentinel_on_integer_grid_is_noop(self) -> None:
        grid = np.array([1, 2], dtype=np.int64)
        np.testing.assert_array_equal(normalize_missing(grid, float("nan")), [1.0, 2.0])

    def test_fractional_fill_on_integer_grid_matches_nothing(self) -> None:
        """1.5 cannot occur in an int16 grid, so 1 must survive"""
        grid = np.array([1, 2, 3], dtype=np.int16)
        result = normalize_missing(grid, 1.5)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_out_of_range_fill_on_integer_grid_matches_nothing(self) -> None:
        """40000 wraps to -25536 in int16; that cell is valid data"""
        grid = np.array([-25536, 7], dtype=np.int16)
        result = normalize_missing(grid, 40000)
        np.testing.assert_array_equal(result, [-25536.0, 7.0])

    def test_fill_losing_float32_precision_matches_nothing(self) -> None:
        grid = np.array([0.1, 2.0], dtype=np.float32)
        result = normalize_missing(grid, 0.1000000001)
        assert not np.isnan(result).any()
        assert result[0] == np.float32(0.1)

    def test_integral_float_fill_on_integer_grid(self) -> None:
        grid = np.array([-9999, 5], dtype=np.int16)
        result = normalize_missing(grid, -9999.0)
        assert np.isnan(result[0])
        assert result[1] == 5.0
