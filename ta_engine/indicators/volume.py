"""Volume indicators.

On-Balance Volume, the Accumulation/Distribution line and volume anomaly
detection against a trailing average.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from ta_engine.indicators.technical import simple_moving_average
from ta_engine.utils.validation import (
    aligned_arrays,
    as_float_array,
    validate_period,
    validate_positive,
)


class VolumeAnomalyType(str, Enum):
    """Volume anomaly classification."""
    SPIKE = "spike"
    DIP = "dip"


@dataclass(frozen=True)
class VolumeAnomaly:
    """A bar whose volume departs from its trailing average."""
    index: int
    volume: float
    baseline: float  # Mean volume of the preceding lookback bars
    ratio: float     # volume / baseline
    anomaly_type: VolumeAnomalyType


def on_balance_volume(
    closes: list[float] | NDArray[np.float64],
    volumes: list[float] | NDArray[np.float64],
) -> NDArray[np.float64]:
    """Calculate On-Balance Volume (OBV).

    OBV starts at 0 on the first bar. Each later bar adds its volume when the
    close rises, subtracts it when the close falls and carries the previous
    total when the close is unchanged.

    Args:
        closes: Closing prices
        volumes: Volume per bar

    Returns:
        Array of cumulative OBV values (no warm-up)
    """
    closes_array, volumes_array = aligned_arrays(closes, volumes)

    if len(closes_array) == 0:
        return np.array([], dtype=float)

    direction = np.sign(np.diff(closes_array))
    obv = np.zeros(len(closes_array))
    obv[1:] = np.cumsum(direction * volumes_array[1:])

    return obv


def accumulation_distribution(
    high: list[float] | NDArray[np.float64],
    low: list[float] | NDArray[np.float64],
    close: list[float] | NDArray[np.float64],
    volume: list[float] | NDArray[np.float64],
) -> NDArray[np.float64]:
    """Calculate the Accumulation/Distribution line.

    Money Flow Multiplier = ((Close - Low) - (High - Close)) / (High - Low)
    A/D = cumulative sum of Multiplier * Volume

    A zero-range bar contributes nothing (multiplier 0).
    """
    high_array, low_array, close_array, volume_array = aligned_arrays(
        high, low, close, volume
    )

    bar_range = high_array - low_array
    with np.errstate(divide="ignore", invalid="ignore"):
        multiplier = np.where(
            bar_range != 0,
            ((close_array - low_array) - (high_array - close_array)) / bar_range,
            0.0,
        )

    return np.cumsum(multiplier * volume_array)


def volume_sma(
    volumes: list[float] | NDArray[np.float64], period: int = 20
) -> NDArray[np.float64]:
    """Simple moving average of volume. NaN for the first ``period - 1`` bars."""
    return simple_moving_average(volumes, period)


def detect_volume_anomalies(
    volumes: list[float] | NDArray[np.float64],
    threshold: float = 2.0,
    lookback: int = 20,
    include_dips: bool = False,
) -> list[VolumeAnomaly]:
    """Flag bars whose volume departs from the trailing mean.

    Bar ``t`` is a spike when ``volume_t > threshold * mean(volumes[t - lookback:t])``.
    With ``include_dips`` it is a dip when the ratio falls below
    ``1 / threshold``. The first ``lookback`` bars have no baseline. Any
    volume after an all-zero window is a spike with an infinite ratio;
    such a window never yields a dip.

    Args:
        volumes: Volume per bar
        threshold: Multiplier over the trailing mean (default 2.0)
        lookback: Trailing window length (default 20)
        include_dips: Also report unusually low volume

    Returns:
        List of VolumeAnomaly in index order
    """
    validate_positive(threshold, "Threshold")
    validate_period(lookback, "Lookback")

    volumes_array = as_float_array(volumes)
    anomalies: list[VolumeAnomaly] = []

    if len(volumes_array) <= lookback:
        return anomalies

    for i in range(lookback, len(volumes_array)):
        baseline = float(np.mean(volumes_array[i - lookback : i]))
        volume = volumes_array[i]
        ratio = volume / baseline if baseline > 0 else float("inf")

        if volume > threshold * baseline:
            anomaly_type = VolumeAnomalyType.SPIKE
        elif include_dips and baseline > 0 and ratio < 1 / threshold:
            anomaly_type = VolumeAnomalyType.DIP
        else:
            continue

        anomalies.append(
            VolumeAnomaly(
                index=i,
                volume=float(volume),
                baseline=float(baseline),
                ratio=float(ratio),
                anomaly_type=anomaly_type,
            )
        )

    return anomalies
