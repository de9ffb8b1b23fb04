"""Moving averages and momentum oscillators.

This module provides NumPy-based implementations of the rolling primitives
(SMA, EMA, rolling standard deviation) and the oscillators built on them
(RSI, MACD, Stochastic, Williams %R, StochRSI).

Every function returns arrays aligned index-for-index with its input. Leading
positions before a window is filled hold NaN ("no value"); a numeric 0 is
always a real reading. Empty input yields empty output. Degenerate ranges
resolve to a documented neutral value instead of NaN.
"""

from typing import NamedTuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from numpy.typing import NDArray

from ta_engine.core.exceptions import InvalidParameterError
from ta_engine.utils.validation import aligned_arrays, as_float_array, validate_period

# Neutral readings used when the lookback range is zero
STOCHASTIC_NEUTRAL = 50.0
WILLIAMS_R_NEUTRAL = -50.0


class MACDResult(NamedTuple):
    """MACD line, signal line and histogram."""

    macd: NDArray[np.float64]
    signal: NDArray[np.float64]
    histogram: NDArray[np.float64]


class StochasticResult(NamedTuple):
    """%K and %D lines."""

    k: NDArray[np.float64]
    d: NDArray[np.float64]


def _rolling_apply(
    values: NDArray[np.float64], period: int, reducer
) -> NDArray[np.float64]:
    """Apply a window reducer, leaving the first period - 1 entries as NaN."""
    result = np.full(len(values), np.nan)
    if len(values) < period:
        return result
    windows = sliding_window_view(values, period)
    result[period - 1 :] = reducer(windows, axis=1)
    return result


def rolling_max(
    values: list[float] | NDArray[np.float64], period: int
) -> NDArray[np.float64]:
    """Highest value over the trailing window."""
    validate_period(period)
    return _rolling_apply(as_float_array(values), period, np.max)


def rolling_min(
    values: list[float] | NDArray[np.float64], period: int
) -> NDArray[np.float64]:
    """Lowest value over the trailing window."""
    validate_period(period)
    return _rolling_apply(as_float_array(values), period, np.min)


def simple_moving_average(
    prices: list[float] | NDArray[np.float64], period: int
) -> NDArray[np.float64]:
    """Calculate Simple Moving Average (SMA).

    The SMA is calculated as the arithmetic mean of the last n periods.
    Formula: SMA = (P1 + P2 + ... + Pn) / n

    Args:
        prices: Price data as list or numpy array
        period: Number of periods for the average (must be > 0)

    Returns:
        Array of SMA values. NaN for insufficient data points.

    Raises:
        InvalidParameterError: If period <= 0

    Example:
        >>> prices = [1, 2, 3, 4, 5]
        >>> sma = simple_moving_average(prices, 3)
        >>> # Returns [NaN, NaN, 2.0, 3.0, 4.0]
    """
    validate_period(period)
    return _rolling_apply(as_float_array(prices), period, np.mean)


def rolling_std(
    prices: list[float] | NDArray[np.float64], period: int
) -> NDArray[np.float64]:
    """Calculate rolling population standard deviation (ddof=0).

    Bollinger Bands use this same convention.

    Args:
        prices: Price data as list or numpy array
        period: Window length (must be > 0)

    Returns:
        Array of standard deviations. NaN for insufficient data points.
    """
    validate_period(period)
    return _rolling_apply(as_float_array(prices), period, np.std)


def exponential_moving_average(
    prices: list[float] | NDArray[np.float64], period: int
) -> NDArray[np.float64]:
    """Calculate Exponential Moving Average (EMA).

    The EMA gives more weight to recent prices, making it more responsive
    to price changes than SMA.
    Formula: EMA = α * Price + (1 - α) * Previous_EMA
    where α = 2 / (period + 1)

    The seed value is the SMA of the first ``period`` values. Leading NaNs
    (for example the warm-up of another indicator) are skipped, so the EMA
    of a MACD line starts once that line is defined.

    Args:
        prices: Price data as list or numpy array
        period: Number of periods for the average (must be > 0)

    Returns:
        Array of EMA values. NaN before the seed window is filled.

    Raises:
        InvalidParameterError: If period <= 0

    Example:
        >>> prices = [1, 2, 3, 4, 5]
        >>> ema = exponential_moving_average(prices, 3)
        >>> # Returns [NaN, NaN, 2.0, 3.0, 4.0]
    """
    validate_period(period)

    prices_array = as_float_array(prices)
    ema = np.full(len(prices_array), np.nan)

    valid = np.flatnonzero(~np.isnan(prices_array))
    if len(valid) == 0:
        return ema

    seed_start = int(valid[0])
    seed_end = seed_start + period
    if seed_end > len(prices_array):
        return ema

    alpha = 2.0 / (period + 1)
    ema[seed_end - 1] = np.mean(prices_array[seed_start:seed_end])

    for i in range(seed_end, len(prices_array)):
        ema[i] = alpha * prices_array[i] + (1 - alpha) * ema[i - 1]

    return ema


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def relative_strength_index(
    prices: list[float] | NDArray[np.float64], period: int = 14
) -> NDArray[np.float64]:
    """Calculate Relative Strength Index (RSI) with Wilder's smoothing.

    RSI is a momentum oscillator that measures the speed and magnitude
    of price changes. Values range from 0 to 100.
    Formula: RSI = 100 - (100 / (1 + RS))
    where RS = Average Gain / Average Loss

    The first averages are plain means of the first ``period`` changes, so the
    first defined value sits at index ``period``. Later averages follow
    ``avg = (prev_avg * (period - 1) + current) / period``. When the average
    loss is zero the RSI is 100.

    Args:
        prices: Price data as list or numpy array
        period: RSI calculation period (default 14, must be > 0)

    Returns:
        Array of RSI values (0-100). NaN for insufficient data.

    Raises:
        InvalidParameterError: If period <= 0

    Example:
        >>> prices = [44, 44.34, 44.09, 44.15, 43.61, 44.33, 44.83]
        >>> rsi = relative_strength_index(prices, 6)
    """
    validate_period(period)

    prices_array = as_float_array(prices)
    rsi = np.full(len(prices_array), np.nan)

    if len(prices_array) <= period:
        return rsi

    delta = np.diff(prices_array)
    gains = np.where(delta > 0, delta, 0.0)
    losses = np.where(delta < 0, -delta, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    rsi[period] = _rsi_from_averages(avg_gain, avg_loss)

    for i in range(period + 1, len(prices_array)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        rsi[i] = _rsi_from_averages(avg_gain, avg_loss)

    return rsi


def macd(
    prices: list[float] | NDArray[np.float64],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """Calculate Moving Average Convergence Divergence (MACD).

    MACD Line = EMA(fast_period) - EMA(slow_period)
    Signal Line = EMA(MACD Line, signal_period)
    Histogram = MACD Line - Signal Line

    All three series share one warm-up: the first defined value sits at
    index ``slow_period + signal_period - 2``, so 34 prices are needed for
    the 12/26/9 defaults.

    Args:
        prices: Price data as list or numpy array
        fast_period: Fast EMA period (default 12)
        slow_period: Slow EMA period (default 26)
        signal_period: Signal line EMA period (default 9)

    Returns:
        MACDResult of (macd, signal, histogram) arrays

    Raises:
        InvalidParameterError: If any period <= 0 or fast_period >= slow_period
    """
    validate_period(fast_period, "Fast period")
    validate_period(slow_period, "Slow period")
    validate_period(signal_period, "Signal period")
    if fast_period >= slow_period:
        raise InvalidParameterError("Fast period must be less than slow period")

    prices_array = as_float_array(prices)

    fast_ema = exponential_moving_average(prices_array, fast_period)
    slow_ema = exponential_moving_average(prices_array, slow_period)

    macd_line = fast_ema - slow_ema
    signal_line = exponential_moving_average(macd_line, signal_period)

    warmup = slow_period + signal_period - 2
    macd_line[:warmup] = np.nan

    histogram = macd_line - signal_line

    return MACDResult(macd_line, signal_line, histogram)


def _range_position(
    values: NDArray[np.float64],
    lowest: NDArray[np.float64],
    highest: NDArray[np.float64],
    neutral: float,
) -> NDArray[np.float64]:
    """Position of each value inside its [lowest, highest] range, scaled to 0-100.

    Zero-width ranges map to ``neutral``; NaN ranges stay NaN.
    """
    span = highest - lowest
    with np.errstate(divide="ignore", invalid="ignore"):
        position = np.where(span > 0, (values - lowest) / span * 100.0, neutral)
    position[np.isnan(span) | np.isnan(values)] = np.nan
    return position


def stochastic_oscillator(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    close: list[float] | NDArray[np.float64],
    k_period: int = 14,
    d_period: int = 3,
) -> StochasticResult:
    """Calculate Stochastic Oscillator (%K and %D).

    %K = (Current Close - Lowest Low) / (Highest High - Lowest Low) * 100
    %D = SMA(%K, d_period)

    A flat lookback range (highest high == lowest low) gives %K = 50.

    Args:
        high: High prices as list or numpy array
        low: Low prices as list or numpy array
        close: Close prices as list or numpy array
        k_period: Lookback period for %K (default 14)
        d_period: Smoothing period for %D (default 3)

    Returns:
        StochasticResult of (k, d) arrays

    Raises:
        InvalidParameterError: If periods are invalid
        DataValidationError: If arrays have different lengths
    """
    validate_period(k_period, "K period")
    validate_period(d_period, "D period")

    high_array, low_array, close_array = aligned_arrays(high, low, close)

    highest_high = _rolling_apply(high_array, k_period, np.max)
    lowest_low = _rolling_apply(low_array, k_period, np.min)

    k_values = _range_position(close_array, lowest_low, highest_high, STOCHASTIC_NEUTRAL)
    d_values = simple_moving_average(k_values, d_period)

    return StochasticResult(k_values, d_values)


def williams_r(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    close: list[float] | NDArray[np.float64],
    period: int = 14,
) -> NDArray[np.float64]:
    """Calculate Williams %R.

    %R = (Highest High - Close) / (Highest High - Lowest Low) * -100

    Values range from -100 (close at the low) to 0 (close at the high).
    A flat lookback range gives the midpoint, -50.

    Args:
        high: High prices as list or numpy array
        low: Low prices as list or numpy array
        close: Close prices as list or numpy array
        period: Lookback period (default 14)

    Returns:
        Array of %R values. NaN for insufficient data.
    """
    validate_period(period)

    high_array, low_array, close_array = aligned_arrays(high, low, close)

    highest_high = _rolling_apply(high_array, period, np.max)
    lowest_low = _rolling_apply(low_array, period, np.min)

    # %R is the stochastic position shifted down by 100
    position = _range_position(
        close_array, lowest_low, highest_high, WILLIAMS_R_NEUTRAL + 100.0
    )
    return position - 100.0


def stochastic_rsi(
    prices: list[float] | NDArray[np.float64],
    rsi_period: int = 14,
    stoch_period: int = 14,
    k_smooth: int = 3,
    d_smooth: int = 3,
) -> StochasticResult:
    """Calculate Stochastic RSI.

    StochRSI = (RSI - lowest RSI) / (highest RSI - lowest RSI) * 100 over
    ``stoch_period`` RSI readings, then smoothed: %K = SMA(StochRSI, k_smooth),
    %D = SMA(%K, d_smooth). A flat RSI range gives 50.

    Args:
        prices: Price data as list or numpy array
        rsi_period: RSI period (default 14)
        stoch_period: Lookback over RSI values (default 14)
        k_smooth: %K smoothing period (default 3)
        d_smooth: %D smoothing period (default 3)

    Returns:
        StochasticResult of (k, d) arrays on a 0-100 scale
    """
    validate_period(rsi_period, "RSI period")
    validate_period(stoch_period, "Stochastic period")
    validate_period(k_smooth, "K smoothing period")
    validate_period(d_smooth, "D smoothing period")

    rsi = relative_strength_index(prices, rsi_period)

    highest = _rolling_apply(rsi, stoch_period, np.max)
    lowest = _rolling_apply(rsi, stoch_period, np.min)

    raw = _range_position(rsi, lowest, highest, STOCHASTIC_NEUTRAL)
    k_values = simple_moving_average(raw, k_smooth)
    d_values = simple_moving_average(k_values, d_smooth)

    return StochasticResult(k_values, d_values)
