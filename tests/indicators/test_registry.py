"""Tests for the indicator registry and the PriceData container."""

import numpy as np
import pandas as pd
import pytest

from ta_engine.core.config import IndicatorSettings
from ta_engine.core.exceptions import DataValidationError, InvalidParameterError
from ta_engine.indicators.registry import (
    INDICATOR_REGISTRY,
    IndicatorType,
    PriceData,
    calculate_indicators,
)
from ta_engine.indicators.technical import relative_strength_index

from conftest import to_price_points


@pytest.fixture
def price_data(random_walk) -> PriceData:
    return PriceData.from_points(to_price_points(random_walk[:120]))


class TestPriceData:
    def test_from_points(self, random_walk):
        points = to_price_points(random_walk[:10])
        data = PriceData.from_points(points)

        assert len(data) == 10
        assert data.dates[0] == points[0].date
        np.testing.assert_array_equal(data.closes, random_walk[:10])
        np.testing.assert_array_equal(data.highs - data.lows, 1.0)

    def test_from_frame_with_datetime_index(self):
        index = pd.date_range("2025-01-01", periods=3, freq="D")
        df = pd.DataFrame(
            {
                "Open": [1.0, 2.0, 3.0],
                "High": [1.5, 2.5, 3.5],
                "Low": [0.5, 1.5, 2.5],
                "Close": [1.2, 2.2, 3.2],
                "Volume": [100, 200, 300],
            },
            index=index,
        )
        data = PriceData.from_frame(df)

        assert len(data) == 3
        assert data.dates[-1] == pd.Timestamp("2025-01-03").to_pydatetime()
        np.testing.assert_array_equal(data.volumes, [100.0, 200.0, 300.0])

    def test_from_frame_missing_column(self):
        df = pd.DataFrame({"open": [1.0], "high": [1.0], "low": [1.0], "close": [1.0]})
        with pytest.raises(DataValidationError, match="volume"):
            PriceData.from_frame(df)

    def test_misaligned_arrays(self):
        with pytest.raises(DataValidationError):
            PriceData(
                opens=np.ones(3),
                highs=np.ones(3),
                lows=np.ones(2),
                closes=np.ones(3),
                volumes=np.ones(3),
            )

    def test_arrays_are_copies(self):
        closes = np.array([1.0, 2.0, 3.0])
        data = PriceData(closes, closes, closes, closes, closes)
        data.closes[0] = 99.0
        assert closes[0] == 1.0


class TestCalculateIndicators:
    """Test cases for registry-driven indicator calculation."""

    def test_every_type_registered(self):
        assert set(INDICATOR_REGISTRY) == set(IndicatorType)

    def test_all_series_aligned(self, price_data, test_settings):
        results = calculate_indicators(price_data, settings=test_settings)

        assert {"sma_20", "sma_50", "ema_12", "rsi", "macd_signal", "obv"} <= set(results)
        for name, series in results.items():
            assert len(series) == len(price_data), name

    def test_selected_types_only(self, price_data, test_settings):
        results = calculate_indicators(price_data, [IndicatorType.RSI], test_settings)

        assert list(results) == ["rsi"]
        np.testing.assert_array_equal(
            results["rsi"], relative_strength_index(price_data.closes, 14)
        )

    def test_settings_drive_parameters(self, price_data):
        settings = IndicatorSettings(sma_periods=[5])
        results = calculate_indicators(price_data, [IndicatorType.SMA], settings)
        assert list(results) == ["sma_5"]

    def test_parameter_errors_propagate(self, price_data):
        settings = IndicatorSettings(macd_fast=30, macd_slow=26)
        with pytest.raises(InvalidParameterError):
            calculate_indicators(price_data, [IndicatorType.MACD], settings)

    def test_empty_price_data(self, test_settings):
        empty = PriceData.from_points([])
        results = calculate_indicators(empty, settings=test_settings)
        assert all(len(series) == 0 for series in results.values())
