"""Local extremum identification and support/resistance levels.

Peaks and lows found here feed the divergence detector, the support and
resistance clustering and every geometric pattern detector.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from ta_engine.utils.validation import as_float_array, validate_fraction, validate_period


class ExtremumKind(str, Enum):
    """Local extremum classification."""
    PEAK = "peak"
    LOW = "low"


class LevelType(str, Enum):
    """Support/resistance classification."""
    SUPPORT = "support"        # Clustered from lows
    RESISTANCE = "resistance"  # Clustered from peaks


@dataclass(frozen=True)
class ExtremumPoint:
    """A local peak or low."""
    index: int
    kind: ExtremumKind
    value: float


@dataclass(frozen=True)
class SupportResistanceLevel:
    """A price level touched by several extrema.

    Attributes:
        level: Mean value of the clustered extrema
        touches: Number of extrema in the cluster
        level_type: SUPPORT (from lows) or RESISTANCE (from peaks)
        indices: Bar indices of the touches, ascending
        last_touch_index: Most recent touch
    """
    level: float
    touches: int
    level_type: LevelType
    indices: tuple[int, ...] = field(default_factory=tuple)
    last_touch_index: int = -1


def identify_peaks_lows(
    values: list[float] | NDArray[np.float64], window: int = 5
) -> list[ExtremumPoint]:
    """Identify local peaks and lows.

    Index ``i`` is a peak when ``values[i]`` is strictly greater than every
    other value in ``[i - window, i + window]``, and a low when strictly
    smaller. Indices closer than ``window`` bars to either end of the array
    are never evaluated, and windows containing NaN (an indicator warm-up)
    are skipped.

    Args:
        values: Series to scan (closes or an oscillator)
        window: Bars on each side that must be dominated (default 5)

    Returns:
        List of ExtremumPoint sorted by index

    Raises:
        InvalidParameterError: If window <= 0

    Example:
        >>> identify_peaks_lows([1, 3, 1, 0, 1], window=1)
        >>> # [ExtremumPoint(1, PEAK, 3.0), ExtremumPoint(3, LOW, 0.0)]
    """
    validate_period(window, "Window")

    values_array = as_float_array(values)
    extrema: list[ExtremumPoint] = []

    for i in range(window, len(values_array) - window):
        center = values_array[i]
        neighbours = np.concatenate(
            [values_array[i - window : i], values_array[i + 1 : i + window + 1]]
        )
        if np.isnan(center) or np.isnan(neighbours).any():
            continue

        if center > neighbours.max():
            extrema.append(ExtremumPoint(index=i, kind=ExtremumKind.PEAK, value=float(center)))
        elif center < neighbours.min():
            extrema.append(ExtremumPoint(index=i, kind=ExtremumKind.LOW, value=float(center)))

    return extrema


def split_extrema(
    extrema: list[ExtremumPoint],
) -> tuple[list[ExtremumPoint], list[ExtremumPoint]]:
    """Separate extrema into (peaks, lows), each in index order."""
    ordered = sorted(extrema, key=lambda p: p.index)
    peaks = [p for p in ordered if p.kind == ExtremumKind.PEAK]
    lows = [p for p in ordered if p.kind == ExtremumKind.LOW]
    return peaks, lows


def _cluster(
    points: list[ExtremumPoint], tolerance: float, level_type: LevelType
) -> list[SupportResistanceLevel]:
    clusters: list[list[ExtremumPoint]] = []

    for point in points:
        for members in clusters:
            center = float(np.mean([m.value for m in members]))
            reference = abs(center) if center != 0 else 1.0
            if abs(point.value - center) / reference <= tolerance:
                members.append(point)
                break
        else:
            clusters.append([point])

    return [
        SupportResistanceLevel(
            level=float(np.mean([m.value for m in members])),
            touches=len(members),
            level_type=level_type,
            indices=tuple(m.index for m in members),
            last_touch_index=max(m.index for m in members),
        )
        for members in clusters
    ]


def detect_support_resistance(
    closes: list[float] | NDArray[np.float64],
    window: int = 5,
    tolerance: float = 0.02,
    min_touches: int = 1,
    extrema: list[ExtremumPoint] | None = None,
) -> list[SupportResistanceLevel]:
    """Cluster extrema into support and resistance levels.

    Peaks are clustered into resistance levels and lows into support levels.
    An extremum joins the first cluster whose running mean lies within
    ``tolerance`` (relative) of its value, otherwise it starts a new cluster.

    Args:
        closes: Closing prices
        window: Extremum window used when ``extrema`` is not supplied
        tolerance: Relative clustering band (default 0.02 = 2%)
        min_touches: Drop levels with fewer touches (default 1)
        extrema: Precomputed extrema for ``closes``

    Returns:
        Levels sorted by touch count descending, then most recent touch first
    """
    validate_period(window, "Window")
    validate_fraction(tolerance, "Tolerance")
    validate_period(min_touches, "Minimum touches")

    if extrema is None:
        extrema = identify_peaks_lows(closes, window)

    peaks, lows = split_extrema(extrema)
    levels = _cluster(peaks, tolerance, LevelType.RESISTANCE) + _cluster(
        lows, tolerance, LevelType.SUPPORT
    )

    levels = [level for level in levels if level.touches >= min_touches]
    levels.sort(key=lambda level: (-level.touches, -level.last_touch_index))

    return levels
