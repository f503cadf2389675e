"""Tests del filtro ±2σ."""

import pytest

from ct_engine.calculation.outlier_filter import FilterResult, filter_outliers


class TestFilterOutliers:
    def test_empty(self):
        assert filter_outliers([]) == FilterResult()

    def test_fewer_than_three_samples_is_plain_mean(self):
        result = filter_outliers([10.0, 30.0])
        assert result.average == 20.0
        assert result.valid_count == 2
        assert result.outliers_removed == 0
        assert result.std_dev == 0.0

    def test_removes_spike(self):
        result = filter_outliers([10, 10, 10, 10, 500])
        assert result.average == 10.0
        assert result.valid_count == 4
        assert result.outliers_removed == 1
        assert result.std_dev == pytest.approx(196.0)

    def test_population_sigma_and_open_upper_bound(self):
        # media 5, σ poblacional 2: el 9 cae justo en mean + 2σ y se descarta
        result = filter_outliers([2, 4, 4, 4, 5, 5, 7, 9])
        assert result.std_dev == 2.0
        assert result.valid_count == 7
        assert result.outliers_removed == 1
        assert result.average == pytest.approx(31 / 7)

    def test_identical_samples_are_all_valid(self):
        result = filter_outliers([12.0, 12.0, 12.0])
        assert result.average == 12.0
        assert result.valid_count == 3
        assert result.outliers_removed == 0

    def test_regular_series_keeps_everything(self):
        result = filter_outliers([10, 11, 12, 11, 10])
        assert result.valid_count == 5
        assert result.average == pytest.approx(10.8)

    def test_tighter_threshold_removes_more(self):
        values = [10, 11, 12, 11, 10, 20]
        assert filter_outliers(values, sigma_threshold=1.0).outliers_removed >= 1
        assert filter_outliers(values, sigma_threshold=3.0).outliers_removed == 0

    def test_removed_plus_valid_is_input_size(self):
        values = [5, 6, 7, 8, 9, 100, 6, 7]
        result = filter_outliers(values)
        assert result.valid_count + result.outliers_removed == len(values)
