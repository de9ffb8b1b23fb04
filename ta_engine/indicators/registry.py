"""Indicator registry for dynamic indicator calculation.

This module provides a registry pattern for indicator calculations, so the
aggregate analysis (and any caller) can request indicator series by type
instead of wiring each function by hand.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ta_engine.core.config import IndicatorSettings, get_settings
from ta_engine.core.exceptions import DataValidationError
from ta_engine.indicators.technical import (
    exponential_moving_average,
    macd,
    relative_strength_index,
    simple_moving_average,
    stochastic_oscillator,
    stochastic_rsi,
    williams_r,
)
from ta_engine.indicators.volatility import (
    average_true_range,
    bollinger_band_width,
    bollinger_bands,
    donchian_channels,
    keltner_channels,
)
from ta_engine.indicators.volume import accumulation_distribution, on_balance_volume, volume_sma
from ta_engine.schemas.price import PricePoint
from ta_engine.utils.validation import aligned_arrays

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ("open", "high", "low", "close", "volume")


class IndicatorType(str, Enum):
    """Available indicator series."""

    SMA = "sma"
    EMA = "ema"
    RSI = "rsi"
    MACD = "macd"
    STOCHASTIC = "stochastic"
    WILLIAMS_R = "williams_r"
    STOCH_RSI = "stoch_rsi"
    BOLLINGER = "bollinger"
    BOLLINGER_WIDTH = "bollinger_width"
    ATR = "atr"
    KELTNER = "keltner"
    DONCHIAN = "donchian"
    OBV = "obv"
    ACCUMULATION_DISTRIBUTION = "accumulation_distribution"
    VOLUME_SMA = "volume_sma"


@dataclass
class PriceData:
    """Container for aligned OHLCV price arrays.

    Arrays are float64 copies of the caller's data. ``dates`` may be empty
    when the source has no timestamps.
    """

    opens: NDArray[np.float64]
    highs: NDArray[np.float64]
    lows: NDArray[np.float64]
    closes: NDArray[np.float64]
    volumes: NDArray[np.float64]
    dates: list[datetime] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.opens, self.highs, self.lows, self.closes, self.volumes = aligned_arrays(
            self.opens, self.highs, self.lows, self.closes, self.volumes
        )
        if self.dates and len(self.dates) != len(self.closes):
            raise DataValidationError(
                f"Got {len(self.dates)} dates for {len(self.closes)} bars"
            )

    def __len__(self) -> int:
        return len(self.closes)

    @classmethod
    def from_points(cls, points: Sequence[PricePoint]) -> "PriceData":
        """Build from validated bars, in the order given."""
        return cls(
            opens=np.array([p.open for p in points], dtype=float),
            highs=np.array([p.high for p in points], dtype=float),
            lows=np.array([p.low for p in points], dtype=float),
            closes=np.array([p.close for p in points], dtype=float),
            volumes=np.array([p.volume for p in points], dtype=float),
            dates=[p.date for p in points],
        )

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "PriceData":
        """Build from a DataFrame with open/high/low/close/volume columns.

        Column names are matched case-insensitively. Dates come from a
        ``date`` column when present, otherwise from a DatetimeIndex.

        Raises:
            DataValidationError: If an OHLCV column is missing
        """
        columns = {str(c).lower(): c for c in df.columns}
        missing = [name for name in OHLCV_COLUMNS if name not in columns]
        if missing:
            raise DataValidationError(f"Missing OHLCV columns: {', '.join(missing)}")

        if "date" in columns:
            dates = list(pd.to_datetime(df[columns["date"]]).dt.to_pydatetime())
        elif isinstance(df.index, pd.DatetimeIndex):
            dates = list(df.index.to_pydatetime())
        else:
            dates = []

        return cls(
            opens=df[columns["open"]].to_numpy(dtype=float),
            highs=df[columns["high"]].to_numpy(dtype=float),
            lows=df[columns["low"]].to_numpy(dtype=float),
            closes=df[columns["close"]].to_numpy(dtype=float),
            volumes=df[columns["volume"]].to_numpy(dtype=float),
            dates=dates,
        )


IndicatorSeries = dict[str, NDArray[np.float64]]


def calculate_sma(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    """Calculate one SMA series per configured period."""
    return {
        f"sma_{period}": simple_moving_average(price_data.closes, period)
        for period in settings.sma_periods
    }


def calculate_ema(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    """Calculate one EMA series per configured period."""
    return {
        f"ema_{period}": exponential_moving_average(price_data.closes, period)
        for period in settings.ema_periods
    }


def calculate_rsi(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    return {"rsi": relative_strength_index(price_data.closes, settings.rsi_period)}


def calculate_macd(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    result = macd(
        price_data.closes, settings.macd_fast, settings.macd_slow, settings.macd_signal
    )
    return {
        "macd": result.macd,
        "macd_signal": result.signal,
        "macd_histogram": result.histogram,
    }


def calculate_stochastic(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    result = stochastic_oscillator(
        price_data.highs,
        price_data.lows,
        price_data.closes,
        settings.stochastic_k,
        settings.stochastic_d,
    )
    return {"stochastic_k": result.k, "stochastic_d": result.d}


def calculate_williams_r(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    return {
        "williams_r": williams_r(
            price_data.highs, price_data.lows, price_data.closes, settings.williams_period
        )
    }


def calculate_stoch_rsi(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    result = stochastic_rsi(
        price_data.closes,
        rsi_period=settings.rsi_period,
        stoch_period=settings.stoch_rsi_period,
        d_smooth=settings.stochastic_d,
    )
    return {"stoch_rsi_k": result.k, "stoch_rsi_d": result.d}


def calculate_bollinger(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    upper, middle, lower = bollinger_bands(
        price_data.closes, settings.bollinger_period, settings.bollinger_std_dev
    )
    return {"bollinger_upper": upper, "bollinger_middle": middle, "bollinger_lower": lower}


def calculate_bollinger_width(
    price_data: PriceData, settings: IndicatorSettings
) -> IndicatorSeries:
    return {
        "bollinger_width": bollinger_band_width(
            price_data.closes, settings.bollinger_period, settings.bollinger_std_dev
        )
    }


def calculate_atr(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    return {
        "atr": average_true_range(
            price_data.highs, price_data.lows, price_data.closes, settings.atr_period
        )
    }


def calculate_keltner(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    upper, middle, lower = keltner_channels(
        price_data.highs,
        price_data.lows,
        price_data.closes,
        settings.keltner_ema_period,
        settings.keltner_atr_period,
        settings.keltner_multiplier,
    )
    return {"keltner_upper": upper, "keltner_middle": middle, "keltner_lower": lower}


def calculate_donchian(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    upper, middle, lower = donchian_channels(
        price_data.highs, price_data.lows, settings.donchian_window
    )
    return {"donchian_upper": upper, "donchian_middle": middle, "donchian_lower": lower}


def calculate_obv(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    return {"obv": on_balance_volume(price_data.closes, price_data.volumes)}


def calculate_accumulation_distribution(
    price_data: PriceData, settings: IndicatorSettings
) -> IndicatorSeries:
    return {
        "accumulation_distribution": accumulation_distribution(
            price_data.highs, price_data.lows, price_data.closes, price_data.volumes
        )
    }


def calculate_volume_sma(price_data: PriceData, settings: IndicatorSettings) -> IndicatorSeries:
    return {"volume_sma": volume_sma(price_data.volumes, settings.volume_sma_period)}


# Registry mapping indicator types to calculation functions
INDICATOR_REGISTRY: dict[
    IndicatorType, Callable[[PriceData, IndicatorSettings], IndicatorSeries]
] = {
    IndicatorType.SMA: calculate_sma,
    IndicatorType.EMA: calculate_ema,
    IndicatorType.RSI: calculate_rsi,
    IndicatorType.MACD: calculate_macd,
    IndicatorType.STOCHASTIC: calculate_stochastic,
    IndicatorType.WILLIAMS_R: calculate_williams_r,
    IndicatorType.STOCH_RSI: calculate_stoch_rsi,
    IndicatorType.BOLLINGER: calculate_bollinger,
    IndicatorType.BOLLINGER_WIDTH: calculate_bollinger_width,
    IndicatorType.ATR: calculate_atr,
    IndicatorType.KELTNER: calculate_keltner,
    IndicatorType.DONCHIAN: calculate_donchian,
    IndicatorType.OBV: calculate_obv,
    IndicatorType.ACCUMULATION_DISTRIBUTION: calculate_accumulation_distribution,
    IndicatorType.VOLUME_SMA: calculate_volume_sma,
}


def calculate_indicators(
    price_data: PriceData,
    indicator_types: Sequence[IndicatorType] | None = None,
    settings: IndicatorSettings | None = None,
) -> IndicatorSeries:
    """Calculate multiple indicator series from price data.

    Args:
        price_data: OHLCV price data
        indicator_types: Indicators to calculate (default: all registered)
        settings: Parameter source (default: get_settings())

    Returns:
        Flat dictionary mapping series names (e.g. ``"sma_20"``,
        ``"macd_signal"``) to arrays aligned with ``price_data``

    Raises:
        InvalidParameterError: If a configured parameter is invalid
    """
    settings = settings or get_settings()
    if indicator_types is None:
        indicator_types = list(INDICATOR_REGISTRY)

    results: IndicatorSeries = {}
    for indicator_type in indicator_types:
        calculator = INDICATOR_REGISTRY[indicator_type]
        try:
            results.update(calculator(price_data, settings))
        except Exception:
            logger.error("Error calculating %s", indicator_type.value, exc_info=True)
            raise
    return results
