import pytest

from data_profiling.box_plot import calculate_quartiles, summarize_box_plot


class TestQuartiles:

    def test_truncating_index_quartiles(self):
        assert calculate_quartiles([8, 1, 7, 2, 6, 3, 5, 4]) == {'q1': 3, 'median': 5, 'q3': 7}

    def test_empty_input_rejected(self):
        with pytest.raises(ValueError):
            calculate_quartiles([])


class TestBoxPlotSummary:

    def test_high_outlier(self):
        summary = summarize_box_plot([1, 2, 3, 4, 5, 6, 7, 8, 100], column="revenue")
        assert summary.column == "revenue"
        assert (summary.q1, summary.median, summary.q3) == (3, 5, 7)
        assert summary.iqr == 4
        assert summary.outliers == (100,)
        assert summary.min == 1
        assert summary.max == 8

    def test_low_outlier(self):
        summary = summarize_box_plot([-100, 1, 2, 3, 4, 5, 6, 7, 8])
        assert summary.outliers == (-100,)
        assert summary.min == 1

    def test_no_outliers_uses_global_extremes(self):
        summary = summarize_box_plot([4, 1, 3, 2])
        assert summary.outliers == ()
        assert summary.min == 1
        assert summary.max == 4

    def test_single_value(self):
        summary = summarize_box_plot([5])
        assert (summary.min, summary.q1, summary.median, summary.q3, summary.max) == (5, 5, 5, 5, 5)
        assert summary.outliers == ()

    @pytest.mark.parametrize("values", [
        [1, 2, 3, 4, 5, 6, 7, 8, 100],
        [-50, 0, 0, 0, 1, 1, 2, 90],
        [3.5, 3.5, 3.5],
        [10, 20],
    ])
    def test_quartile_ordering(self, values):
        summary = summarize_box_plot(values)
        assert summary.min <= summary.q1 <= summary.median <= summary.q3 <= summary.max

    def test_empty_input_rejected(self):
        with pytest.raises(ValueError, match="at least one numeric value"):
            summarize_box_plot([], column="revenue")
