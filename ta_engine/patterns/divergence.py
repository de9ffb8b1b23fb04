"""Price/oscillator divergence detection.

Compares consecutive price extrema against the oscillator extrema closest to
them in time:

- Bullish: price makes a lower low while the oscillator makes a higher low.
- Bearish: price makes a higher high while the oscillator makes a lower high.

Strength is the oscillator's counter-move as a fraction of its own range over
the divergence span plus a lookback, classified into weak/moderate/strong by
monotonic cutoffs.
"""

import math
from dataclasses import dataclass
from enum import Enum
from itertools import pairwise

import numpy as np
from numpy.typing import NDArray

from ta_engine.core.exceptions import InvalidParameterError
from ta_engine.patterns.extrema import ExtremumPoint, identify_peaks_lows, split_extrema
from ta_engine.utils.validation import aligned_arrays, validate_fraction, validate_period


class DivergenceType(str, Enum):
    """Divergence direction."""
    BULLISH = "bullish"
    BEARISH = "bearish"


class DivergenceStrength(str, Enum):
    """Divergence strength classification."""
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


@dataclass(frozen=True)
class DivergenceEvent:
    """A detected divergence between price and an oscillator.

    Attributes:
        divergence_type: BULLISH or BEARISH
        start_index: First price extremum of the pair
        end_index: Second price extremum of the pair
        strength: WEAK, MODERATE or STRONG
        price_start: Price at start_index
        price_end: Price at end_index
        indicator_start: Oscillator extremum matched to start_index
        indicator_end: Oscillator extremum matched to end_index
        magnitude: Oscillator counter-move / oscillator range (0.0-1.0)
    """
    divergence_type: DivergenceType
    start_index: int
    end_index: int
    strength: DivergenceStrength
    price_start: float
    price_end: float
    indicator_start: float
    indicator_end: float
    magnitude: float


def classify_strength(
    magnitude: float,
    moderate_threshold: float = 0.25,
    strong_threshold: float = 0.5,
) -> DivergenceStrength:
    """Map a counter-move magnitude to a strength bucket.

    Larger magnitudes never produce a weaker classification.
    """
    if magnitude >= strong_threshold:
        return DivergenceStrength.STRONG
    if magnitude >= moderate_threshold:
        return DivergenceStrength.MODERATE
    return DivergenceStrength.WEAK


def _closest(
    candidates: list[ExtremumPoint], target_index: int, max_lag: int | None
) -> ExtremumPoint | None:
    best: ExtremumPoint | None = None
    best_distance = math.inf if max_lag is None else max_lag + 1
    for candidate in candidates:
        distance = abs(candidate.index - target_index)
        if distance < best_distance:
            best = candidate
            best_distance = distance
    return best


def _magnitude(
    indicator: NDArray[np.float64],
    first: ExtremumPoint,
    second: ExtremumPoint,
    start: int,
    end: int,
) -> float:
    window = indicator[start : end + 1]
    window = window[~np.isnan(window)]
    span = float(window.max() - window.min()) if len(window) else 0.0
    if span <= 0:
        return 0.0
    return min(abs(second.value - first.value) / span, 1.0)


def detect_divergences(
    prices: list[float] | NDArray[np.float64],
    indicator: list[float] | NDArray[np.float64],
    window: int = 5,
    max_lag: int | None = None,
    range_lookback: int = 20,
    moderate_threshold: float = 0.25,
    strong_threshold: float = 0.5,
    price_extrema: list[ExtremumPoint] | None = None,
    indicator_extrema: list[ExtremumPoint] | None = None,
) -> list[DivergenceEvent]:
    """Detect bullish and bearish divergences.

    Each consecutive pair of price peaks (or lows) is matched to the
    oscillator peaks (or lows) nearest to them at any distance, unless
    ``max_lag`` limits it. A pair whose matches are missing, identical or
    out of order is ignored. Fewer than two extrema of a kind yields no
    events for that kind.

    Args:
        prices: Price series (typically closes)
        indicator: Oscillator series of the same length (e.g. RSI)
        window: Extremum window for both series (default 5)
        max_lag: Max bar distance between a price extremum and its
            oscillator match (default: unbounded)
        range_lookback: Bars before the span included in the oscillator range
        moderate_threshold: Magnitude from which strength is MODERATE
        strong_threshold: Magnitude from which strength is STRONG
        price_extrema: Precomputed extrema of ``prices``
        indicator_extrema: Precomputed extrema of ``indicator``

    Returns:
        List of DivergenceEvent sorted by (start_index, end_index)

    Raises:
        DataValidationError: If the series differ in length
        InvalidParameterError: If windows or thresholds are invalid
    """
    validate_period(window, "Window")
    validate_period(range_lookback, "Range lookback")
    validate_fraction(moderate_threshold, "Moderate threshold")
    validate_fraction(strong_threshold, "Strong threshold")
    if moderate_threshold > strong_threshold:
        raise InvalidParameterError("Moderate threshold must not exceed strong threshold")
    if max_lag is not None and max_lag < 0:
        raise InvalidParameterError("Max lag must not be negative")

    prices_array, indicator_array = aligned_arrays(prices, indicator)

    if price_extrema is None:
        price_extrema = identify_peaks_lows(prices_array, window)
    if indicator_extrema is None:
        indicator_extrema = identify_peaks_lows(indicator_array, window)

    price_peaks, price_lows = split_extrema(price_extrema)
    indicator_peaks, indicator_lows = split_extrema(indicator_extrema)

    events: list[DivergenceEvent] = []

    def check(
        price_points: list[ExtremumPoint],
        indicator_points: list[ExtremumPoint],
        divergence_type: DivergenceType,
    ) -> None:
        for first, second in pairwise(price_points):
            ind_first = _closest(indicator_points, first.index, max_lag)
            ind_second = _closest(indicator_points, second.index, max_lag)
            if ind_first is None or ind_second is None:
                continue
            if ind_first.index >= ind_second.index:
                continue

            if divergence_type == DivergenceType.BEARISH:
                diverges = second.value > first.value and ind_second.value < ind_first.value
            else:
                diverges = second.value < first.value and ind_second.value > ind_first.value
            if not diverges:
                continue

            span_start = max(0, min(first.index, ind_first.index) - range_lookback)
            span_end = max(second.index, ind_second.index)
            magnitude = _magnitude(indicator_array, ind_first, ind_second, span_start, span_end)

            events.append(
                DivergenceEvent(
                    divergence_type=divergence_type,
                    start_index=first.index,
                    end_index=second.index,
                    strength=classify_strength(magnitude, moderate_threshold, strong_threshold),
                    price_start=first.value,
                    price_end=second.value,
                    indicator_start=ind_first.value,
                    indicator_end=ind_second.value,
                    magnitude=round(magnitude, 4),
                )
            )

    check(price_peaks, indicator_peaks, DivergenceType.BEARISH)
    check(price_lows, indicator_lows, DivergenceType.BULLISH)

    events.sort(key=lambda e: (e.start_index, e.end_index))
    return events
