"""Technical indicators package.

NumPy implementations of the indicator series consumed by the pattern
detectors and the aggregate analysis.

Available indicators:
- Simple and Exponential Moving Averages (SMA, EMA), rolling standard deviation
- Relative Strength Index (RSI), MACD, Stochastic, Williams %R, StochRSI
- Bollinger Bands and width, True Range, ATR, Keltner and Donchian channels
- On-Balance Volume, Accumulation/Distribution, volume SMA and anomalies
- Single-bar candlestick patterns
"""

from .technical import (
    MACDResult,
    StochasticResult,
    exponential_moving_average,
    macd,
    relative_strength_index,
    rolling_max,
    rolling_min,
    rolling_std,
    simple_moving_average,
    stochastic_oscillator,
    stochastic_rsi,
    williams_r,
)
from .volatility import (
    Bands,
    average_true_range,
    bollinger_band_width,
    bollinger_bands,
    donchian_channels,
    keltner_channels,
    true_range,
)
from .volume import (
    VolumeAnomaly,
    VolumeAnomalyType,
    accumulation_distribution,
    detect_volume_anomalies,
    on_balance_volume,
    volume_sma,
)
from .candlestick import (
    CandlePattern,
    CandlestickSignal,
    detect_candlestick_patterns,
)

__all__ = [
    "simple_moving_average",
    "exponential_moving_average",
    "rolling_std",
    "rolling_max",
    "rolling_min",
    "relative_strength_index",
    "macd",
    "MACDResult",
    "stochastic_oscillator",
    "StochasticResult",
    "williams_r",
    "stochastic_rsi",
    "bollinger_bands",
    "bollinger_band_width",
    "Bands",
    "true_range",
    "average_true_range",
    "keltner_channels",
    "donchian_channels",
    "on_balance_volume",
    "accumulation_distribution",
    "volume_sma",
    "detect_volume_anomalies",
    "VolumeAnomaly",
    "VolumeAnomalyType",
    "CandlePattern",
    "CandlestickSignal",
    "detect_candlestick_patterns",
]
