"""Trend line and continuation patterns.

Triangles, wedges and channels are found by fitting least-squares trend
lines through the peaks (upper line) and lows (lower line) of a run of
consecutive extrema, then classifying the pair of lines by slope and by how
the gap between them changes. Flags are found by scanning for an impulse
move (the pole) followed by a tight, shallow consolidation.

Slopes are compared relative to the mean close of the run, so
``flat_slope=0.001`` means a drift of at most 0.1% of price per bar.
"""

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ta_engine.core.exceptions import InvalidParameterError
from ta_engine.patterns.extrema import ExtremumPoint, identify_peaks_lows, split_extrema
from ta_engine.patterns.models import (
    BreakoutDirection,
    ChannelPattern,
    FlagPattern,
    PatternStatus,
    PatternType,
    TrendDirection,
    TriangleType,
    TrianglePattern,
    WedgePattern,
)
from ta_engine.utils.validation import as_float_array, validate_fraction, validate_period

logger = logging.getLogger(__name__)

MIN_VERTICES = 4


@dataclass(frozen=True)
class _LineFit:
    slope: float
    intercept: float
    r_squared: float

    def at(self, index: int) -> float:
        return self.slope * index + self.intercept


@dataclass(frozen=True)
class _Envelope:
    """Upper and lower trend lines fitted over one run of extrema."""
    start: int
    end: int
    upper: _LineFit
    lower: _LineFit
    upper_slope: float  # Relative to mean price
    lower_slope: float
    start_width: float
    end_width: float

    @property
    def fit_quality(self) -> float:
        return (self.upper.r_squared + self.lower.r_squared) / 2

    @property
    def convergence(self) -> float:
        return 1 - self.end_width / self.start_width


def _fit_line(points: list[ExtremumPoint]) -> _LineFit:
    x = np.array([p.index for p in points], dtype=float)
    y = np.array([p.value for p in points], dtype=float)
    slope, intercept = np.polyfit(x, y, 1)

    residual = y - (slope * x + intercept)
    total = float(np.sum((y - y.mean()) ** 2))
    r_squared = 1.0 if total == 0 else max(0.0, 1 - float(np.sum(residual**2)) / total)

    return _LineFit(slope=float(slope), intercept=float(intercept), r_squared=r_squared)


def _envelopes(
    closes: NDArray[np.float64], extrema: list[ExtremumPoint], vertices: int
) -> list[_Envelope]:
    """Fit trend line pairs over every run of ``vertices`` consecutive extrema.

    Runs without at least two peaks and two lows, or whose lines cross
    inside the run, are skipped.
    """
    ordered = sorted(extrema, key=lambda p: p.index)
    envelopes: list[_Envelope] = []

    for start in range(len(ordered) - vertices + 1):
        run = ordered[start : start + vertices]
        peaks, lows = split_extrema(run)
        if len(peaks) < 2 or len(lows) < 2:
            continue

        first, last = run[0].index, run[-1].index
        reference = float(np.nanmean(np.abs(closes[first : last + 1])))
        if reference == 0:
            continue

        upper = _fit_line(peaks)
        lower = _fit_line(lows)
        start_width = upper.at(first) - lower.at(first)
        end_width = upper.at(last) - lower.at(last)
        if start_width <= 0 or end_width <= 0:
            continue

        envelopes.append(
            _Envelope(
                start=first,
                end=last,
                upper=upper,
                lower=lower,
                upper_slope=upper.slope / reference,
                lower_slope=lower.slope / reference,
                start_width=start_width,
                end_width=end_width,
            )
        )

    return envelopes


def _breakout(closes: NDArray[np.float64], envelope: _Envelope) -> BreakoutDirection:
    last_index = len(closes) - 1
    if last_index <= envelope.end:
        return BreakoutDirection.NONE
    if closes[-1] > envelope.upper.at(last_index):
        return BreakoutDirection.UP
    if closes[-1] < envelope.lower.at(last_index):
        return BreakoutDirection.DOWN
    return BreakoutDirection.NONE


def _status(breakout: BreakoutDirection) -> PatternStatus:
    return PatternStatus.FORMING if breakout == BreakoutDirection.NONE else PatternStatus.COMPLETED


def _slope_direction(slope: float, flat_slope: float) -> TrendDirection:
    if slope > flat_slope:
        return TrendDirection.UP
    if slope < -flat_slope:
        return TrendDirection.DOWN
    return TrendDirection.SIDEWAYS


def _prepare(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None,
    window: int,
    vertices: int,
    flat_slope: float,
) -> tuple[NDArray[np.float64], list[_Envelope]]:
    validate_period(window, "Window")
    validate_fraction(flat_slope, "Flat slope")
    if vertices < MIN_VERTICES:
        raise InvalidParameterError(f"Vertices must be at least {MIN_VERTICES}")

    closes_array = as_float_array(closes)
    if extrema is None:
        extrema = identify_peaks_lows(closes_array, window)
    return closes_array, _envelopes(closes_array, extrema, vertices)


def detect_triangles(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    vertices: int = 4,
    flat_slope: float = 0.001,
    min_convergence: float = 0.25,
) -> list[TrianglePattern]:
    """Detect ascending, descending and symmetrical triangles.

    The lines must converge: the gap at the end of the run is at most
    ``1 - min_convergence`` of the gap at its start.

    - Ascending: flat upper line, rising lower line
    - Descending: falling upper line, flat lower line
    - Symmetrical: falling upper line, rising lower line

    Args:
        closes: Closing prices
        extrema: Precomputed extrema (default: identify_peaks_lows(closes, window))
        window: Extremum window
        vertices: Consecutive extrema per candidate run (>= 4)
        flat_slope: Max relative slope per bar still considered flat
        min_convergence: Min fractional narrowing of the gap

    Returns:
        List of TrianglePattern in index order. The target projects the
        opening width from the breakout side; it is None before a breakout.
    """
    validate_fraction(min_convergence, "Minimum convergence")
    closes_array, envelopes = _prepare(closes, extrema, window, vertices, flat_slope)
    patterns: list[TrianglePattern] = []

    for env in envelopes:
        if env.convergence < min_convergence:
            continue

        upper_dir = _slope_direction(env.upper_slope, flat_slope)
        lower_dir = _slope_direction(env.lower_slope, flat_slope)
        if upper_dir == TrendDirection.SIDEWAYS and lower_dir == TrendDirection.UP:
            triangle_type = TriangleType.ASCENDING
        elif upper_dir == TrendDirection.DOWN and lower_dir == TrendDirection.SIDEWAYS:
            triangle_type = TriangleType.DESCENDING
        elif upper_dir == TrendDirection.DOWN and lower_dir == TrendDirection.UP:
            triangle_type = TriangleType.SYMMETRICAL
        else:
            continue

        breakout = _breakout(closes_array, env)
        last_index = len(closes_array) - 1
        target = None
        if breakout == BreakoutDirection.UP:
            target = env.upper.at(last_index) + env.start_width
        elif breakout == BreakoutDirection.DOWN:
            target = env.lower.at(last_index) - env.start_width

        patterns.append(
            TrianglePattern(
                pattern_type=PatternType.TRIANGLE,
                start_index=env.start,
                end_index=env.end,
                confidence=round(100 * (0.6 * env.fit_quality + 0.4 * min(env.convergence, 1.0)), 2),
                status=_status(breakout),
                target=target,
                upper_slope=env.upper.slope,
                upper_intercept=env.upper.intercept,
                lower_slope=env.lower.slope,
                lower_intercept=env.lower.intercept,
                breakout_direction=breakout,
                triangle_type=triangle_type,
            )
        )

    return patterns


def detect_wedges(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    vertices: int = 4,
    flat_slope: float = 0.001,
    min_convergence: float = 0.25,
) -> list[WedgePattern]:
    """Detect rising and falling wedges.

    Both lines slope the same way (beyond ``flat_slope``) while converging.
    A rising wedge targets the lower line's level at the wedge start, a
    falling wedge the upper line's.
    """
    validate_fraction(min_convergence, "Minimum convergence")
    closes_array, envelopes = _prepare(closes, extrema, window, vertices, flat_slope)
    patterns: list[WedgePattern] = []

    for env in envelopes:
        if env.convergence < min_convergence:
            continue

        direction = _slope_direction(env.upper_slope, flat_slope)
        if direction == TrendDirection.SIDEWAYS:
            continue
        if _slope_direction(env.lower_slope, flat_slope) != direction:
            continue

        breakout = _breakout(closes_array, env)
        target = env.lower.at(env.start) if direction == TrendDirection.UP else env.upper.at(env.start)

        patterns.append(
            WedgePattern(
                pattern_type=PatternType.WEDGE,
                start_index=env.start,
                end_index=env.end,
                confidence=round(100 * (0.6 * env.fit_quality + 0.4 * min(env.convergence, 1.0)), 2),
                status=_status(breakout),
                target=target,
                upper_slope=env.upper.slope,
                upper_intercept=env.upper.intercept,
                lower_slope=env.lower.slope,
                lower_intercept=env.lower.intercept,
                breakout_direction=breakout,
                direction=direction,
            )
        )

    return patterns


def detect_channels(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    vertices: int = 4,
    flat_slope: float = 0.001,
    parallel_tolerance: float = 0.25,
) -> list[ChannelPattern]:
    """Detect ascending, descending and horizontal channels.

    Both lines share a slope direction and the gap between them changes by
    at most ``parallel_tolerance`` (relative) across the run. After a
    breakout the target projects the channel width beyond the broken line.
    """
    validate_fraction(parallel_tolerance, "Parallel tolerance")
    closes_array, envelopes = _prepare(closes, extrema, window, vertices, flat_slope)
    patterns: list[ChannelPattern] = []

    for env in envelopes:
        width_change = abs(env.end_width / env.start_width - 1)
        if width_change > parallel_tolerance:
            continue

        direction = _slope_direction(env.upper_slope, flat_slope)
        if _slope_direction(env.lower_slope, flat_slope) != direction:
            continue

        width = (env.start_width + env.end_width) / 2
        breakout = _breakout(closes_array, env)
        last_index = len(closes_array) - 1
        target = None
        if breakout == BreakoutDirection.UP:
            target = env.upper.at(last_index) + width
        elif breakout == BreakoutDirection.DOWN:
            target = env.lower.at(last_index) - width

        patterns.append(
            ChannelPattern(
                pattern_type=PatternType.CHANNEL,
                start_index=env.start,
                end_index=env.end,
                confidence=round(
                    100 * (0.6 * env.fit_quality + 0.4 * (1 - width_change / parallel_tolerance)), 2
                ),
                status=_status(breakout),
                target=target,
                upper_slope=env.upper.slope,
                upper_intercept=env.upper.intercept,
                lower_slope=env.lower.slope,
                lower_intercept=env.lower.intercept,
                breakout_direction=breakout,
                direction=direction,
                width=width,
            )
        )

    return patterns


def detect_flags(
    closes: list[float] | NDArray[np.float64],
    pole_bars: int = 15,
    flag_bars: int = 20,
    min_pole_return: float = 0.08,
    max_pullback: float = 0.35,
    max_volatility: float = 0.02,
) -> list[FlagPattern]:
    """Detect bull and bear flags.

    For every bar ``i`` the pole is the move from ``i - pole_bars`` to ``i``
    and the flag the next ``flag_bars`` bars. A candidate needs:

    - a pole return of at least ``min_pole_return`` in either direction
    - a flag retracement against the pole of at most ``max_pullback`` times
      the pole return
    - a mean absolute bar-to-bar return inside the flag of at most
      ``max_volatility``

    Confidence weighs pole strength (70%) against flag tightness (30%).
    The pattern completes when the last close breaks beyond the flag in the
    pole's direction; the target adds the pole height to the breakout level.

    Returns:
        List of FlagPattern in index order. Overlapping candidates are all
        reported.
    """
    validate_period(pole_bars, "Pole bars")
    validate_period(flag_bars, "Flag bars")
    validate_fraction(min_pole_return, "Minimum pole return")
    validate_fraction(max_pullback, "Maximum pullback")
    validate_fraction(max_volatility, "Maximum volatility")

    closes_array = as_float_array(closes)
    patterns: list[FlagPattern] = []
    last_index = len(closes_array) - 1

    for i in range(pole_bars, len(closes_array) - flag_bars):
        pole_start = i - pole_bars
        base = closes_array[pole_start]
        if base <= 0:
            continue

        pole_return = (closes_array[i] - base) / base
        if abs(pole_return) < min_pole_return:
            continue

        flag = closes_array[i : i + flag_bars]
        bullish = pole_return > 0
        extreme = flag.min() if bullish else flag.max()
        retracement = abs(extreme - closes_array[i]) / closes_array[i]
        if retracement > abs(pole_return) * max_pullback:
            continue

        volatility = float(np.mean(np.abs(np.diff(flag) / flag[:-1]))) if len(flag) > 1 else 0.0
        if volatility > max_volatility:
            continue

        flag_end = i + flag_bars - 1
        pole_height = abs(closes_array[i] - base)
        breakout_level = float(flag.max() if bullish else flag.min())
        if last_index > flag_end and (
            closes_array[-1] > breakout_level if bullish else closes_array[-1] < breakout_level
        ):
            status = PatternStatus.COMPLETED
        else:
            status = PatternStatus.FORMING

        flag_quality = 1 - volatility / max_volatility
        confidence = min(1.0, abs(pole_return) * 0.7 + flag_quality * 0.3)

        patterns.append(
            FlagPattern(
                pattern_type=PatternType.FLAG,
                start_index=pole_start,
                end_index=flag_end,
                confidence=round(confidence * 100, 2),
                status=status,
                target=breakout_level + pole_height if bullish else breakout_level - pole_height,
                direction=TrendDirection.UP if bullish else TrendDirection.DOWN,
                pole_start=pole_start,
                pole_end=i,
                pole_height=float(pole_height),
                flag_height=float(flag.max() - flag.min()),
                breakout_level=breakout_level,
            )
        )

    logger.debug("Flag scan over %d bars found %d candidates", len(closes_array), len(patterns))
    return patterns
