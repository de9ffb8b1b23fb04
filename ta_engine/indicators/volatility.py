"""Volatility bands and ranges.

Bollinger Bands, Average True Range, Keltner channels and Donchian channels.
Band functions return a ``Bands`` named tuple of (upper, middle, lower)
arrays aligned with the input; warm-up positions hold NaN.
"""

from typing import NamedTuple

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ta_engine.indicators.technical import (
    exponential_moving_average,
    rolling_std,
    simple_moving_average,
)
from ta_engine.utils.validation import aligned_arrays, validate_period, validate_positive


class Bands(NamedTuple):
    """Upper, middle and lower band series."""

    upper: NDArray[np.float64]
    middle: NDArray[np.float64]
    lower: NDArray[np.float64]


def bollinger_bands(
    prices: list[float] | NDArray[np.float64], period: int = 20, std_dev: float = 2.0
) -> Bands:
    """Calculate Bollinger Bands.

    Bollinger Bands consist of a middle band (SMA) and two outer bands
    that are standard deviations away from the middle band. The standard
    deviation is the population one (ddof=0).

    Args:
        prices: Price data as list or numpy array
        period: Moving average period (default 20, must be > 0)
        std_dev: Standard deviation multiplier (default 2.0, must be > 0)

    Returns:
        Bands of (upper, middle, lower) arrays

    Raises:
        InvalidParameterError: If period <= 0 or std_dev <= 0

    Example:
        >>> prices = [20, 21, 22, 23, 24, 25, 26, 27, 28, 29]
        >>> upper, middle, lower = bollinger_bands(prices, 5, 2.0)
    """
    validate_period(period)
    validate_positive(std_dev, "Standard deviation multiplier")

    middle_band = simple_moving_average(prices, period)
    std = rolling_std(prices, period)

    upper_band = middle_band + (std_dev * std)
    lower_band = middle_band - (std_dev * std)

    return Bands(upper_band, middle_band, lower_band)


def bollinger_band_width(
    prices: list[float] | NDArray[np.float64],
    period: int = 20,
    std_dev: float = 2.0,
) -> NDArray[np.float64]:
    """Calculate Bollinger Band Width (BBW).

    BBW measures the width of Bollinger Bands relative to the middle band.
    Formula: BBW = (Upper Band - Lower Band) / Middle Band

    Lower values indicate tighter consolidation (squeeze).
    Higher values indicate expanded volatility. A zero middle band gives a
    width of 0.

    Args:
        prices: Price data as list or numpy array
        period: Moving average period (default 20)
        std_dev: Standard deviation multiplier (default 2.0)

    Returns:
        Array of BBW values. NaN for insufficient data.
    """
    upper, middle, lower = bollinger_bands(prices, period, std_dev)

    with np.errstate(divide="ignore", invalid="ignore"):
        bbw = np.where(middle != 0, (upper - lower) / middle, 0.0)
    bbw[np.isnan(middle)] = np.nan

    return bbw


def true_range(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    close: list[float] | NDArray[np.float64],
) -> NDArray[np.float64]:
    """Calculate True Range.

    TR = max(high - low, |high - prev_close|, |low - prev_close|)

    The first bar has no previous close, so its TR is high - low.
    """
    high_array, low_array, close_array = aligned_arrays(high, low, close)

    tr = high_array - low_array
    if len(tr) > 1:
        prev_close = close_array[:-1]
        tr[1:] = np.maximum.reduce(
            [
                high_array[1:] - low_array[1:],
                np.abs(high_array[1:] - prev_close),
                np.abs(low_array[1:] - prev_close),
            ]
        )
    return tr


def average_true_range(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    close: list[float] | NDArray[np.float64],
    period: int = 14,
) -> NDArray[np.float64]:
    """Calculate Average True Range (ATR) with Wilder's smoothing.

    The first value (index ``period - 1``) is the mean of the first
    ``period`` true ranges; after that
    ``ATR_t = (ATR_{t-1} * (period - 1) + TR_t) / period``.

    Args:
        high: High prices as list or numpy array
        low: Low prices as list or numpy array
        close: Close prices as list or numpy array
        period: ATR period (default 14)

    Returns:
        Array of ATR values. NaN for insufficient data.
    """
    validate_period(period)

    tr = true_range(high, low, close)
    atr = np.full(len(tr), np.nan)

    if len(tr) < period:
        return atr

    atr[period - 1] = np.mean(tr[:period])
    for i in range(period, len(tr)):
        atr[i] = (atr[i - 1] * (period - 1) + tr[i]) / period

    return atr


def keltner_channels(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    close: list[float] | NDArray[np.float64],
    ema_period: int = 20,
    atr_period: int = 10,
    multiplier: float = 2.0,
) -> Bands:
    """Calculate Keltner Channels.

    Middle = EMA(close, ema_period)
    Upper/Lower = Middle ± multiplier * ATR(atr_period)

    Args:
        high: High prices as list or numpy array
        low: Low prices as list or numpy array
        close: Close prices as list or numpy array
        ema_period: Middle line EMA period (default 20)
        atr_period: ATR period (default 10)
        multiplier: ATR multiplier (default 2.0)

    Returns:
        Bands of (upper, middle, lower) arrays
    """
    validate_period(ema_period, "EMA period")
    validate_period(atr_period, "ATR period")
    validate_positive(multiplier, "ATR multiplier")

    high_array, low_array, close_array = aligned_arrays(high, low, close)

    middle = exponential_moving_average(close_array, ema_period)
    atr = average_true_range(high_array, low_array, close_array, atr_period)

    return Bands(middle + multiplier * atr, middle, middle - multiplier * atr)


def donchian_channels(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    window: int = 20,
) -> Bands:
    """Calculate Donchian Channels.

    Upper = highest high over ``window`` bars, Lower = lowest low over
    ``window`` bars, Middle = (Upper + Lower) / 2.

    Args:
        high: High prices as list or numpy array
        low: Low prices as list or numpy array
        window: Lookback window (default 20)

    Returns:
        Bands of (upper, middle, lower) arrays
    """
    validate_period(window, "Window")

    high_array, low_array = aligned_arrays(high, low)

    upper = pd.Series(high_array).rolling(window=window).max().to_numpy(dtype=float)
    lower = pd.Series(low_array).rolling(window=window).min().to_numpy(dtype=float)

    return Bands(upper, (upper + lower) / 2.0, lower)
