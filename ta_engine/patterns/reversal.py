"""Reversal chart patterns.

Double and triple tops/bottoms, head and shoulders (regular and inverse) and
cup and handle. Every detector scans the extrema of the close series in
index order, rejects candidates outside the shape tolerances and scores the
survivors by how closely they match the ideal shape.

Tops are detected on peaks and confirmed by a close below the neckline;
bottoms mirror this on lows with a close above the neckline.
"""

import logging
from itertools import pairwise

import numpy as np
from numpy.typing import NDArray

from ta_engine.patterns.extrema import (
    ExtremumKind,
    ExtremumPoint,
    identify_peaks_lows,
    split_extrema,
)
from ta_engine.patterns.models import (
    CupAndHandlePattern,
    DoublePattern,
    HeadAndShouldersPattern,
    PatternStatus,
    PatternType,
    TriplePattern,
)
from ta_engine.utils.validation import as_float_array, validate_fraction, validate_period

logger = logging.getLogger(__name__)


def _prepare(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None,
    window: int,
) -> tuple[NDArray[np.float64], list[ExtremumPoint], list[ExtremumPoint]]:
    validate_period(window, "Window")
    closes_array = as_float_array(closes)
    if extrema is None:
        extrema = identify_peaks_lows(closes_array, window)
    peaks, lows = split_extrema(extrema)
    return closes_array, peaks, lows


def _between(
    closes: NDArray[np.float64], start: int, end: int, kind: ExtremumKind
) -> ExtremumPoint | None:
    """Lowest (LOW) or highest (PEAK) close strictly between two bars."""
    segment = closes[start + 1 : end]
    if len(segment) == 0 or np.isnan(segment).all():
        return None
    offset = int(np.nanargmin(segment) if kind == ExtremumKind.LOW else np.nanargmax(segment))
    return ExtremumPoint(index=start + 1 + offset, kind=kind, value=float(segment[offset]))


def _status(
    closes: NDArray[np.float64], level: float, end_index: int, top: bool
) -> PatternStatus:
    last_index = len(closes) - 1
    if last_index <= end_index:
        return PatternStatus.FORMING
    crossed = closes[-1] < level if top else closes[-1] > level
    return PatternStatus.COMPLETED if crossed else PatternStatus.FORMING


def _relative_diff(a: float, b: float) -> float:
    reference = max(abs(a), abs(b))
    return abs(a - b) / reference if reference > 0 else 0.0


def _score(*components: float) -> float:
    """Average of 0-1 quality components as a 0-100 confidence."""
    return round(float(np.clip(np.mean(components), 0.0, 1.0)) * 100, 2)


def _detect_doubles(
    closes: NDArray[np.float64],
    candidates: list[ExtremumPoint],
    top: bool,
    tolerance: float,
    min_depth: float,
) -> list[DoublePattern]:
    sign = 1.0 if top else -1.0
    middle_kind = ExtremumKind.LOW if top else ExtremumKind.PEAK
    pattern_type = PatternType.DOUBLE_TOP if top else PatternType.DOUBLE_BOTTOM
    patterns: list[DoublePattern] = []

    for first, second in pairwise(candidates):
        similarity = _relative_diff(first.value, second.value)
        if similarity > tolerance:
            continue

        middle = _between(closes, first.index, second.index, middle_kind)
        if middle is None:
            continue

        level = (first.value + second.value) / 2
        if level == 0:
            continue
        depth = sign * (level - middle.value) / abs(level)
        if depth < min_depth:
            continue

        height = level - middle.value
        patterns.append(
            DoublePattern(
                pattern_type=pattern_type,
                start_index=first.index,
                end_index=second.index,
                confidence=_score(1 - similarity / tolerance, min(depth / (3 * min_depth), 1.0)),
                status=_status(closes, middle.value, second.index, top),
                target=middle.value - height,
                first=first,
                second=second,
                middle=middle,
                neckline=middle.value,
            )
        )

    return patterns


def detect_double_tops(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    tolerance: float = 0.02,
    min_depth: float = 0.03,
) -> list[DoublePattern]:
    """Detect double tops.

    Two consecutive peaks within ``tolerance`` (relative) of each other,
    separated by a trough at least ``min_depth`` below their mean. The
    pattern spans the two peak indices; the neckline is the trough close and
    the target projects the peak-to-trough height below it.

    Args:
        closes: Closing prices
        extrema: Precomputed extrema (default: identify_peaks_lows(closes, window))
        window: Extremum window
        tolerance: Max relative difference between the peaks (default 0.02)
        min_depth: Min trough depth relative to the peaks (default 0.03)

    Returns:
        List of DoublePattern in index order
    """
    validate_fraction(tolerance, "Tolerance")
    validate_fraction(min_depth, "Minimum depth")
    closes_array, peaks, _ = _prepare(closes, extrema, window)
    return _detect_doubles(closes_array, peaks, True, tolerance, min_depth)


def detect_double_bottoms(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    tolerance: float = 0.02,
    min_depth: float = 0.03,
) -> list[DoublePattern]:
    """Detect double bottoms: the mirror of detect_double_tops on lows."""
    validate_fraction(tolerance, "Tolerance")
    validate_fraction(min_depth, "Minimum depth")
    closes_array, _, lows = _prepare(closes, extrema, window)
    return _detect_doubles(closes_array, lows, False, tolerance, min_depth)


def _detect_triples(
    closes: NDArray[np.float64],
    candidates: list[ExtremumPoint],
    top: bool,
    tolerance: float,
    min_depth: float,
) -> list[TriplePattern]:
    sign = 1.0 if top else -1.0
    separator_kind = ExtremumKind.LOW if top else ExtremumKind.PEAK
    pattern_type = PatternType.TRIPLE_TOP if top else PatternType.TRIPLE_BOTTOM
    patterns: list[TriplePattern] = []

    for i in range(len(candidates) - 2):
        extremes = (candidates[i], candidates[i + 1], candidates[i + 2])
        values = np.array([p.value for p in extremes])
        level = float(values.mean())
        if level == 0:
            continue

        spread = float(np.abs(values - level).max()) / abs(level)
        if spread > tolerance:
            continue

        first_gap = _between(closes, extremes[0].index, extremes[1].index, separator_kind)
        second_gap = _between(closes, extremes[1].index, extremes[2].index, separator_kind)
        if first_gap is None or second_gap is None:
            continue

        depths = [sign * (level - gap.value) / abs(level) for gap in (first_gap, second_gap)]
        if min(depths) < min_depth:
            continue

        # Tops confirm below the lower separator, bottoms above the higher one
        neckline = min(first_gap.value, second_gap.value) if top else max(
            first_gap.value, second_gap.value
        )
        height = level - neckline

        patterns.append(
            TriplePattern(
                pattern_type=pattern_type,
                start_index=extremes[0].index,
                end_index=extremes[2].index,
                confidence=_score(
                    1 - spread / tolerance, min(min(depths) / (3 * min_depth), 1.0)
                ),
                status=_status(closes, neckline, extremes[2].index, top),
                target=neckline - height,
                extremes=extremes,
                separators=(first_gap, second_gap),
                neckline=neckline,
            )
        )

    return patterns


def detect_triple_tops(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    tolerance: float = 0.02,
    min_depth: float = 0.03,
) -> list[TriplePattern]:
    """Detect triple tops.

    Three consecutive peaks each within ``tolerance`` of their mean, with
    both separating troughs at least ``min_depth`` below it. The neckline is
    the lower of the two troughs.
    """
    validate_fraction(tolerance, "Tolerance")
    validate_fraction(min_depth, "Minimum depth")
    closes_array, peaks, _ = _prepare(closes, extrema, window)
    return _detect_triples(closes_array, peaks, True, tolerance, min_depth)


def detect_triple_bottoms(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    tolerance: float = 0.02,
    min_depth: float = 0.03,
) -> list[TriplePattern]:
    """Detect triple bottoms: the mirror of detect_triple_tops on lows."""
    validate_fraction(tolerance, "Tolerance")
    validate_fraction(min_depth, "Minimum depth")
    closes_array, _, lows = _prepare(closes, extrema, window)
    return _detect_triples(closes_array, lows, False, tolerance, min_depth)


def _detect_head_and_shoulders(
    closes: NDArray[np.float64],
    candidates: list[ExtremumPoint],
    top: bool,
    shoulder_tolerance: float,
    neckline_tolerance: float,
    head_excess: float,
) -> list[HeadAndShouldersPattern]:
    sign = 1.0 if top else -1.0
    trough_kind = ExtremumKind.LOW if top else ExtremumKind.PEAK
    pattern_type = (
        PatternType.HEAD_AND_SHOULDERS if top else PatternType.INVERSE_HEAD_AND_SHOULDERS
    )
    patterns: list[HeadAndShouldersPattern] = []

    for i in range(len(candidates) - 2):
        left, head, right = candidates[i], candidates[i + 1], candidates[i + 2]

        # Head must stand out beyond both shoulders
        outer_shoulder = max(sign * left.value, sign * right.value)
        if sign * head.value <= outer_shoulder + head_excess * abs(outer_shoulder):
            continue

        shoulder_diff = _relative_diff(left.value, right.value)
        if shoulder_diff > shoulder_tolerance:
            continue

        left_trough = _between(closes, left.index, head.index, trough_kind)
        right_trough = _between(closes, head.index, right.index, trough_kind)
        if left_trough is None or right_trough is None:
            continue

        neckline_diff = _relative_diff(left_trough.value, right_trough.value)
        if neckline_diff > neckline_tolerance:
            continue

        slope = (right_trough.value - left_trough.value) / (right_trough.index - left_trough.index)

        def neckline_at(index: int) -> float:
            return left_trough.value + slope * (index - left_trough.index)

        height = head.value - neckline_at(head.index)
        last_index = len(closes) - 1
        span = right.index - left.index
        time_symmetry = 1 - abs((head.index - left.index) - (right.index - head.index)) / span

        patterns.append(
            HeadAndShouldersPattern(
                pattern_type=pattern_type,
                start_index=left.index,
                end_index=right.index,
                confidence=_score(
                    1 - shoulder_diff / shoulder_tolerance,
                    1 - neckline_diff / neckline_tolerance,
                    time_symmetry,
                ),
                status=_status(closes, neckline_at(last_index), right.index, top),
                target=neckline_at(right.index) - height,
                left_shoulder=left,
                head=head,
                right_shoulder=right,
                left_trough=left_trough,
                right_trough=right_trough,
                neckline_slope=slope,
                neckline_level=neckline_at(right.index),
            )
        )

    return patterns


def detect_head_and_shoulders(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    shoulder_tolerance: float = 0.05,
    neckline_tolerance: float = 0.05,
    head_excess: float = 0.02,
) -> list[HeadAndShouldersPattern]:
    """Detect head and shoulders tops.

    Three consecutive peaks where the middle one (head) exceeds both
    shoulders by at least ``head_excess`` and the shoulders are within
    ``shoulder_tolerance`` of each other. The neckline joins the lowest
    closes between shoulder and head on each side; their levels must be
    within ``neckline_tolerance``. The target projects the head's height
    above the neckline below the neckline at the right shoulder.

    Args:
        closes: Closing prices
        extrema: Precomputed extrema (default: identify_peaks_lows(closes, window))
        window: Extremum window
        shoulder_tolerance: Max relative shoulder height difference (default 0.05)
        neckline_tolerance: Max relative neckline trough difference (default 0.05)
        head_excess: Min relative amount the head exceeds the shoulders (default 0.02)

    Returns:
        List of HeadAndShouldersPattern in index order
    """
    validate_fraction(shoulder_tolerance, "Shoulder tolerance")
    validate_fraction(neckline_tolerance, "Neckline tolerance")
    validate_fraction(head_excess, "Head excess")
    closes_array, peaks, _ = _prepare(closes, extrema, window)
    return _detect_head_and_shoulders(
        closes_array, peaks, True, shoulder_tolerance, neckline_tolerance, head_excess
    )


def detect_inverse_head_and_shoulders(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    shoulder_tolerance: float = 0.05,
    neckline_tolerance: float = 0.05,
    head_excess: float = 0.02,
) -> list[HeadAndShouldersPattern]:
    """Detect inverse head and shoulders on lows, confirmed above the neckline."""
    validate_fraction(shoulder_tolerance, "Shoulder tolerance")
    validate_fraction(neckline_tolerance, "Neckline tolerance")
    validate_fraction(head_excess, "Head excess")
    closes_array, _, lows = _prepare(closes, extrema, window)
    return _detect_head_and_shoulders(
        closes_array, lows, False, shoulder_tolerance, neckline_tolerance, head_excess
    )


def detect_cup_and_handle(
    closes: list[float] | NDArray[np.float64],
    extrema: list[ExtremumPoint] | None = None,
    window: int = 5,
    rim_tolerance: float = 0.05,
    min_cup_depth: float = 0.10,
    max_cup_depth: float = 0.50,
    max_handle_retrace: float = 0.5,
    max_handle_bars: int = 20,
) -> list[CupAndHandlePattern]:
    """Detect cup and handle patterns.

    A left rim peak is paired with the next peak within ``rim_tolerance`` of
    it; a peak rising beyond the left rim's tolerance band ends the search.
    The cup bottom is the lowest close between the rims and its depth below
    the rims must lie in ``[min_cup_depth, max_cup_depth]``. The handle is
    the pullback after the right rim, at most ``max_handle_bars`` long and
    ending before any close above the breakout level; it must retrace more
    than zero and at most ``max_handle_retrace`` of the cup height.

    Returns:
        List of CupAndHandlePattern in index order
    """
    validate_fraction(rim_tolerance, "Rim tolerance")
    validate_fraction(min_cup_depth, "Minimum cup depth")
    validate_fraction(max_cup_depth, "Maximum cup depth")
    validate_fraction(max_handle_retrace, "Maximum handle retrace")
    validate_period(max_handle_bars, "Maximum handle bars")
    closes_array, peaks, _ = _prepare(closes, extrema, window)

    patterns: list[CupAndHandlePattern] = []
    last_index = len(closes_array) - 1

    for i, left in enumerate(peaks):
        if left.value <= 0:
            continue
        for right in peaks[i + 1 :]:
            rim_diff = _relative_diff(left.value, right.value)
            if rim_diff > rim_tolerance:
                if right.value > left.value:
                    break
                continue

            bottom = _between(closes_array, left.index, right.index, ExtremumKind.LOW)
            if bottom is None:
                break

            breakout_level = max(left.value, right.value)
            cup_height = breakout_level - bottom.value
            cup_depth = cup_height / breakout_level
            if not min_cup_depth <= cup_depth <= max_cup_depth:
                break

            handle_end = min(last_index, right.index + max_handle_bars)
            handle = closes_array[right.index + 1 : handle_end + 1]
            breakouts = np.flatnonzero(handle > breakout_level)
            if len(breakouts):
                handle = handle[: breakouts[0]]
            if len(handle) == 0:
                break

            offset = int(np.argmin(handle))
            handle_low = ExtremumPoint(
                index=right.index + 1 + offset,
                kind=ExtremumKind.LOW,
                value=float(handle[offset]),
            )
            handle_depth = (right.value - handle_low.value) / cup_height
            if handle_depth <= 0 or handle_depth > max_handle_retrace:
                break

            span = right.index - left.index
            roundness = 1 - abs((bottom.index - left.index) - (right.index - bottom.index)) / span

            patterns.append(
                CupAndHandlePattern(
                    pattern_type=PatternType.CUP_AND_HANDLE,
                    start_index=left.index,
                    end_index=right.index + len(handle),
                    confidence=_score(
                        1 - rim_diff / rim_tolerance,
                        roundness,
                        1 - handle_depth / max_handle_retrace,
                    ),
                    status=_status(closes_array, breakout_level, right.index, top=False),
                    target=breakout_level + cup_height,
                    left_rim=left,
                    cup_bottom=bottom,
                    right_rim=right,
                    handle_low=handle_low,
                    breakout_level=breakout_level,
                    cup_depth=cup_depth,
                    handle_depth=handle_depth,
                )
            )
            break

    logger.debug("Cup and handle scan found %d patterns", len(patterns))
    return patterns
