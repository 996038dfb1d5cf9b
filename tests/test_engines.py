"""
Tests for the engine registry, the rolling-mean engine and the
frame-level rolling mean.
"""

import numpy as np
import polars as pl
import pytest

from day2day.engines import get_engine, list_engines, InvalidArgument
from day2day.engines.frame import rolling_mean_frame
from day2day.engines.windowed import rolling_mean


# ─────────────────────────────────────────────────────────────────────
# Tests: Registry
# ─────────────────────────────────────────────────────────────────────

class TestRegistry:

    def test_rolling_mean_registered(self):
        assert 'rolling_mean' in list_engines()
        assert get_engine('rolling_mean') is rolling_mean.compute

    def test_unknown_engine(self):
        with pytest.raises(KeyError, match='rolling_mean'):
            get_engine('hurst')


# ─────────────────────────────────────────────────────────────────────
# Tests: Engine contract
# ─────────────────────────────────────────────────────────────────────

class TestRollingMeanEngine:

    def test_returns_dict_with_full_length_array(self):
        y = np.arange(10, dtype=float)
        result = rolling_mean.compute(y, window=4)
        assert set(result) == {'rolling_mean'}
        assert result['rolling_mean'].shape == y.shape

    def test_short_signal_is_shrunk_not_nan(self):
        result = rolling_mean.compute(np.array([1.0, 3.0]), window=50)
        np.testing.assert_array_equal(result['rolling_mean'], [1.0, 2.0])

    def test_nan_boundary(self):
        result = rolling_mean.compute(np.array([1.0, 2.0, 3.0]), window=2, boundary='nan')
        np.testing.assert_array_equal(result['rolling_mean'], [np.nan, 1.5, 2.5])


# ─────────────────────────────────────────────────────────────────────
# Tests: Frame-level rolling mean
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def observations():
    """Two interleaved signals, rows out of time order."""
    return pl.DataFrame({
        'signal_id': ['a', 'b', 'a', 'b', 'a', 'b'],
        'timestamp': [2, 0, 0, 1, 1, 2],
        'value': [3.0, 10.0, 1.0, 20.0, 2.0, None],
    })


class TestRollingMeanFrame:

    def test_per_signal_windows(self, observations):
        out = rolling_mean_frame(
            observations, width=2, group_cols=['signal_id'], order_col='timestamp',
        )
        assert out.columns == ['signal_id', 'timestamp', 'value', 'rolling_mean']
        a = out.filter(pl.col('signal_id') == 'a')
        b = out.filter(pl.col('signal_id') == 'b')
        assert a['timestamp'].to_list() == [0, 1, 2]
        np.testing.assert_array_equal(a['rolling_mean'].to_numpy(), [1.0, 1.5, 2.5])
        # null becomes NaN and only poisons its own window
        np.testing.assert_array_equal(b['rolling_mean'].to_numpy(), [10.0, 15.0, np.nan])

    def test_skipna_passed_through(self, observations):
        out = rolling_mean_frame(
            observations, width=2, group_cols=['signal_id'], order_col='timestamp', skipna=True,
        )
        b = out.filter(pl.col('signal_id') == 'b')
        np.testing.assert_array_equal(b['rolling_mean'].to_numpy(), [10.0, 15.0, 20.0])

    def test_whole_frame_without_groups(self):
        df = pl.DataFrame({'value': [1.0, 2.0, 3.0, 4.0, 5.0]})
        out = rolling_mean_frame(df, width=3, output_col='smooth')
        np.testing.assert_array_equal(out['smooth'].to_numpy(), [1.0, 1.5, 2.0, 3.0, 4.0])

    def test_integer_values(self):
        df = pl.DataFrame({'value': [2, 4, 6]})
        out = rolling_mean_frame(df, width=2)
        assert out['rolling_mean'].dtype == pl.Float64
        np.testing.assert_array_equal(out['rolling_mean'].to_numpy(), [2.0, 3.0, 5.0])

    def test_empty_frame(self):
        df = pl.DataFrame({'value': []}, schema={'value': pl.Float64})
        out = rolling_mean_frame(df, width=3)
        assert out.height == 0
        assert 'rolling_mean' in out.columns

    def test_missing_column(self, observations):
        with pytest.raises(InvalidArgument, match='sensor'):
            rolling_mean_frame(observations, width=2, group_cols=['sensor'])

    def test_invalid_width(self, observations):
        with pytest.raises(InvalidArgument):
            rolling_mean_frame(observations, width=0)
