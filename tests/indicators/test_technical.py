"""Unit tests for moving averages and momentum oscillators.

Tests cover mathematical accuracy, warm-up alignment and degenerate inputs.
"""

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ta_engine.core.exceptions import InvalidParameterError
from ta_engine.indicators.technical import (
    exponential_moving_average,
    macd,
    relative_strength_index,
    rolling_std,
    simple_moving_average,
    stochastic_oscillator,
    stochastic_rsi,
    williams_r,
)


class TestSimpleMovingAverage:
    """Test cases for Simple Moving Average (SMA)."""

    def test_sma_known_values(self):
        """SMA(5) of 10..20 is 12 at index 4 and 18 at index 10."""
        closes = [10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20]
        sma = simple_moving_average(closes, 5)

        assert np.all(np.isnan(sma[:4]))
        assert sma[4] == 12.0
        assert sma[10] == 18.0
        assert len(sma) == len(closes)

    def test_sma_single_period(self):
        """SMA(1) returns the input."""
        prices = [10.0, 20.0, 30.0]
        np.testing.assert_array_equal(simple_moving_average(prices, 1), prices)

    def test_sma_insufficient_data(self):
        """Input shorter than the window is all NaN."""
        sma = simple_moving_average([1.0, 2.0], 5)
        assert len(sma) == 2
        assert np.all(np.isnan(sma))

    def test_sma_empty_array(self):
        """Empty input gives empty output."""
        assert len(simple_moving_average([], 5)) == 0

    def test_sma_invalid_period(self):
        with pytest.raises(InvalidParameterError, match="Period must be greater than 0"):
            simple_moving_average([1.0, 2.0, 3.0], 0)

        with pytest.raises(ValueError, match="Period must be greater than 0"):
            simple_moving_average([1.0, 2.0, 3.0], -1)

    def test_sma_does_not_mutate_input(self):
        prices = np.array([1.0, 2.0, 3.0, 4.0])
        original = prices.copy()
        simple_moving_average(prices, 2)
        np.testing.assert_array_equal(prices, original)


class TestExponentialMovingAverage:
    """Test cases for Exponential Moving Average (EMA)."""

    def test_ema_seeded_with_sma(self):
        ema = exponential_moving_average([1, 2, 3, 4, 5], 3)

        assert np.all(np.isnan(ema[:2]))
        np.testing.assert_array_almost_equal(ema[2:], [2.0, 3.0, 4.0])

    def test_ema_skips_leading_nans(self):
        """EMA of an indicator with a warm-up starts once values exist."""
        values = [np.nan, np.nan, 1.0, 2.0, 3.0, 4.0]
        ema = exponential_moving_average(values, 3)

        assert np.all(np.isnan(ema[:4]))
        assert ema[4] == pytest.approx(2.0)
        assert ema[5] == pytest.approx(3.0)

    def test_ema_constant_series(self):
        ema = exponential_moving_average([7.0] * 10, 4)
        np.testing.assert_array_almost_equal(ema[3:], [7.0] * 7)

    def test_ema_all_nan(self):
        assert np.all(np.isnan(exponential_moving_average([np.nan] * 5, 2)))


class TestRollingStd:
    def test_population_standard_deviation(self):
        std = rolling_std([2, 4, 4, 4, 5, 5, 7, 9], 8)
        assert std[-1] == pytest.approx(2.0)


class TestRelativeStrengthIndex:
    """Test cases for RSI."""

    def test_rsi_insufficient_data(self):
        """Five flat closes with period 14 are entirely NaN."""
        rsi = relative_strength_index([5, 5, 5, 5, 5], 14)
        assert len(rsi) == 5
        assert np.all(np.isnan(rsi))

    def test_rsi_first_value_at_period(self):
        prices = np.linspace(10, 30, 30)
        rsi = relative_strength_index(prices, 14)

        assert np.all(np.isnan(rsi[:14]))
        assert not np.isnan(rsi[14])

    def test_rsi_only_gains_is_100(self):
        rsi = relative_strength_index(np.arange(1.0, 31.0), 14)
        np.testing.assert_array_equal(rsi[14:], 100.0)

    def test_rsi_only_losses_is_0(self):
        rsi = relative_strength_index(np.arange(30.0, 0.0, -1.0), 14)
        np.testing.assert_array_almost_equal(rsi[14:], 0.0)

    def test_rsi_flat_series_is_100(self):
        """No losses means RSI 100, never NaN."""
        rsi = relative_strength_index([5.0] * 20, 14)
        np.testing.assert_array_equal(rsi[14:], 100.0)

    @given(
        st.lists(
            st.floats(min_value=1.0, max_value=1000.0),
            min_size=20,
            max_size=120,
        )
    )
    @settings(max_examples=30, deadline=2000)
    def test_rsi_bounded(self, prices):
        """Every defined RSI value lies in [0, 100]."""
        rsi = relative_strength_index(prices, 14)
        defined = rsi[~np.isnan(rsi)]

        assert len(defined) == len(prices) - 14
        assert np.all(defined >= 0.0)
        assert np.all(defined <= 100.0)

    def test_rsi_is_deterministic(self, random_walk):
        np.testing.assert_array_equal(
            relative_strength_index(random_walk, 14),
            relative_strength_index(random_walk, 14),
        )


class TestMACD:
    """Test cases for MACD."""

    def test_macd_warmup(self, random_walk):
        result = macd(random_walk[:40], 12, 26, 9)

        for series in result:
            assert len(series) == 40
            assert np.all(np.isnan(series[:33]))
            assert np.all(~np.isnan(series[33:]))

    def test_macd_needs_slow_plus_signal_minus_one_points(self, random_walk):
        result = macd(random_walk[:33], 12, 26, 9)
        assert np.all(np.isnan(result.macd))
        assert np.all(np.isnan(result.signal))

    def test_histogram_is_macd_minus_signal(self, random_walk):
        result = macd(random_walk)
        defined = ~np.isnan(result.histogram)
        np.testing.assert_array_almost_equal(
            result.histogram[defined], (result.macd - result.signal)[defined]
        )

    def test_macd_fast_not_below_slow_rejected(self):
        with pytest.raises(InvalidParameterError, match="Fast period must be less than slow"):
            macd([1.0] * 50, 26, 12, 9)

    def test_macd_empty(self):
        result = macd([])
        assert all(len(series) == 0 for series in result)


class TestStochasticOscillator:
    """Test cases for Stochastic %K/%D."""

    def test_flat_range_is_neutral(self):
        """Constant highs, lows and closes give %K = 50 wherever defined."""
        values = [10.0] * 20
        k, d = stochastic_oscillator(values, values, values, 14, 3)

        assert np.all(np.isnan(k[:13]))
        np.testing.assert_array_equal(k[13:], 50.0)
        np.testing.assert_array_equal(d[15:], 50.0)

    def test_close_at_high_is_100(self):
        highs = np.arange(1.0, 21.0) + 1
        lows = np.arange(1.0, 21.0) - 1
        closes = highs.copy()
        k, _ = stochastic_oscillator(highs, lows, closes, 5, 3)
        np.testing.assert_array_almost_equal(k[4:], 100.0)

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError, match="same length"):
            stochastic_oscillator([1.0, 2.0], [1.0], [1.0, 2.0])

    @given(
        st.lists(
            st.floats(min_value=1.0, max_value=500.0),
            min_size=20,
            max_size=80,
        )
    )
    @settings(max_examples=30, deadline=2000)
    def test_k_bounded(self, closes):
        closes = np.array(closes)
        k, d = stochastic_oscillator(closes + 1.0, closes - 1.0, closes, 14, 3)

        for series in (k, d):
            defined = series[~np.isnan(series)]
            assert np.all((defined >= 0.0) & (defined <= 100.0))


class TestWilliamsR:
    def test_flat_range_is_midpoint(self):
        values = [3.0] * 16
        result = williams_r(values, values, values, 14)
        np.testing.assert_array_equal(result[13:], -50.0)

    def test_range(self, random_walk):
        result = williams_r(random_walk + 1, random_walk - 1, random_walk, 14)
        defined = result[~np.isnan(result)]
        assert np.all((defined >= -100.0) & (defined <= 0.0))


class TestStochasticRSI:
    def test_range_and_alignment(self, random_walk):
        k, d = stochastic_rsi(random_walk, 14, 14, 3, 3)

        assert len(k) == len(d) == len(random_walk)
        for series in (k, d):
            defined = series[~np.isnan(series)]
            assert len(defined) > 0
            assert np.all((defined >= 0.0) & (defined <= 100.0))

    def test_flat_rsi_is_neutral(self):
        """A strictly rising series pins RSI at 100, a zero RSI range."""
        k, _ = stochastic_rsi(np.arange(1.0, 60.0), 14, 14, 3, 3)
        defined = k[~np.isnan(k)]
        np.testing.assert_array_equal(defined, 50.0)
