"""Single-bar candlestick pattern detection.

Scans every bar of a series for doji, hammer and shooting star shapes using
body and shadow proportions of the bar's high-low range.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from ta_engine.utils.validation import aligned_arrays


class CandlePattern(str, Enum):
    """Candlestick pattern types."""
    DOJI = "doji"
    HAMMER = "hammer"
    SHOOTING_STAR = "shooting_star"


@dataclass(frozen=True)
class CandleProportions:
    """Body and shadows of one bar as fractions of its range (0.0-1.0)."""
    body_pct: float
    upper_shadow_pct: float
    lower_shadow_pct: float


@dataclass(frozen=True)
class CandlestickSignal:
    """A bar matching a candlestick pattern."""
    index: int
    pattern: CandlePattern
    confidence: float  # 0-100


def candle_proportions(
    open_price: float, high: float, low: float, close: float
) -> CandleProportions | None:
    """Split a bar into body and shadow fractions of its range.

    Returns:
        CandleProportions, or None for a zero-range bar
    """
    total_range = high - low
    if total_range <= 0:
        return None

    body = abs(close - open_price)
    upper_shadow = high - max(open_price, close)
    lower_shadow = min(open_price, close) - low

    return CandleProportions(
        body_pct=body / total_range,
        upper_shadow_pct=upper_shadow / total_range,
        lower_shadow_pct=lower_shadow / total_range,
    )


def _classify(
    shape: CandleProportions, bullish: bool, bearish: bool
) -> tuple[CandlePattern, float] | None:
    # 1. Doji - tiny body with shadows on both sides
    if shape.body_pct < 0.1 and shape.upper_shadow_pct > 0.2 and shape.lower_shadow_pct > 0.2:
        return CandlePattern.DOJI, 1 - shape.body_pct

    # 2. Hammer - small body on top of a long lower shadow, closing up
    if (
        shape.body_pct < 0.3
        and shape.lower_shadow_pct > 0.5
        and shape.upper_shadow_pct < 0.2
        and bullish
    ):
        return CandlePattern.HAMMER, shape.lower_shadow_pct - shape.body_pct

    # 3. Shooting Star - small body under a long upper shadow, closing down
    if (
        shape.body_pct < 0.3
        and shape.upper_shadow_pct > 0.5
        and shape.lower_shadow_pct < 0.2
        and bearish
    ):
        return CandlePattern.SHOOTING_STAR, shape.upper_shadow_pct - shape.body_pct

    return None


def detect_candlestick_patterns(
    opens: list[float] | NDArray[np.float64],
    highs: list[float] | NDArray[np.float64],
    lows: list[float] | NDArray[np.float64],
    closes: list[float] | NDArray[np.float64],
) -> list[CandlestickSignal]:
    """Detect single-bar candlestick patterns across a series.

    Args:
        opens: Array of opening prices
        highs: Array of high prices
        lows: Array of low prices
        closes: Array of closing prices

    Returns:
        List of CandlestickSignal in index order. Zero-range bars are skipped.
    """
    opens_array, highs_array, lows_array, closes_array = aligned_arrays(
        opens, highs, lows, closes
    )

    signals: list[CandlestickSignal] = []
    for i in range(len(opens_array)):
        shape = candle_proportions(
            opens_array[i], highs_array[i], lows_array[i], closes_array[i]
        )
        if shape is None:
            continue

        match = _classify(
            shape,
            bullish=closes_array[i] > opens_array[i],
            bearish=closes_array[i] < opens_array[i],
        )
        if match is None:
            continue

        pattern, score = match
        signals.append(
            CandlestickSignal(
                index=i,
                pattern=pattern,
                confidence=round(float(np.clip(score, 0.0, 1.0)) * 100, 2),
            )
        )

    return signals
