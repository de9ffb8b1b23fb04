"""Tests for the validated OHLCV bar schema."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from ta_engine.schemas import PricePoint


def _bar(**overrides) -> dict:
    bar = {
        "date": datetime(2025, 3, 3),
        "open": 100.0,
        "high": 102.0,
        "low": 99.0,
        "close": 101.0,
        "volume": 1_000,
    }
    bar.update(overrides)
    return bar


class TestPricePoint:
    def test_valid_bar(self):
        point = PricePoint(**_bar())
        assert point.close == 101.0

    def test_low_above_open_rejected(self):
        with pytest.raises(ValidationError, match="low"):
            PricePoint(**_bar(low=100.5))

    def test_high_below_close_rejected(self):
        with pytest.raises(ValidationError, match="high"):
            PricePoint(**_bar(high=100.5))

    def test_negative_volume_rejected(self):
        with pytest.raises(ValidationError):
            PricePoint(**_bar(volume=-1))

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            PricePoint(**_bar(symbol="AAPL"))

    def test_frozen(self):
        point = PricePoint(**_bar())
        with pytest.raises(ValidationError):
            point.close = 50.0
