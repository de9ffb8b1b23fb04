"""Chart pattern result types.

Every detector returns instances of a ``ChartPattern`` subclass. The base
class carries the fields shared by all patterns; each subclass adds the
levels that describe its own geometry.
"""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from ta_engine.patterns.extrema import ExtremumPoint


class PatternType(str, Enum):
    """Chart pattern tags."""
    DOUBLE_TOP = "double_top"
    DOUBLE_BOTTOM = "double_bottom"
    TRIPLE_TOP = "triple_top"
    TRIPLE_BOTTOM = "triple_bottom"
    HEAD_AND_SHOULDERS = "head_and_shoulders"
    INVERSE_HEAD_AND_SHOULDERS = "inverse_head_and_shoulders"
    CUP_AND_HANDLE = "cup_and_handle"
    TRIANGLE = "triangle"
    FLAG = "flag"
    WEDGE = "wedge"
    CHANNEL = "channel"


class PatternStatus(str, Enum):
    """Whether the confirming level has been crossed at the last close."""
    FORMING = "forming"
    COMPLETED = "completed"


class TriangleType(str, Enum):
    """Triangle classification by trend line slopes."""
    ASCENDING = "ascending"    # Flat top, rising bottom
    DESCENDING = "descending"  # Falling top, flat bottom
    SYMMETRICAL = "symmetrical"


class TrendDirection(str, Enum):
    """Direction of a flag pole, wedge or channel."""
    UP = "up"
    DOWN = "down"
    SIDEWAYS = "sideways"


class BreakoutDirection(str, Enum):
    """Side of a trend line structure the last close sits on."""
    UP = "up"
    DOWN = "down"
    NONE = "none"


def to_serializable(value: Any) -> Any:
    """Recursively convert enums to values and round floats for output.

    Non-finite floats, such as the ratio of a spike over a zero baseline,
    become None.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_serializable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(item) for item in value]
    if isinstance(value, float):
        return round(value, 6) if math.isfinite(value) else None
    return value


@dataclass(frozen=True, kw_only=True)
class ChartPattern:
    """Fields shared by every chart pattern.

    Attributes:
        pattern_type: Pattern tag
        start_index: First bar of the pattern
        end_index: Last bar of the pattern
        confidence: Quality score (0-100), higher means closer to the ideal shape
        status: FORMING or COMPLETED
        target: Measured-move price target, None when not defined
    """
    pattern_type: PatternType
    start_index: int
    end_index: int
    confidence: float
    status: PatternStatus
    target: float | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == PatternStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return to_serializable(asdict(self))


@dataclass(frozen=True, kw_only=True)
class DoublePattern(ChartPattern):
    """Double top or double bottom.

    ``first`` and ``second`` are the two matching extremes, ``middle`` the
    opposite extremum between them. The neckline is the middle's value.
    """
    first: ExtremumPoint
    second: ExtremumPoint
    middle: ExtremumPoint
    neckline: float


@dataclass(frozen=True, kw_only=True)
class TriplePattern(ChartPattern):
    """Triple top or triple bottom."""
    extremes: tuple[ExtremumPoint, ExtremumPoint, ExtremumPoint]
    separators: tuple[ExtremumPoint, ExtremumPoint]
    neckline: float


@dataclass(frozen=True, kw_only=True)
class HeadAndShouldersPattern(ChartPattern):
    """Head and shoulders, regular or inverse.

    The neckline runs through ``left_trough`` and ``right_trough``;
    ``neckline_level`` is its projection at ``end_index``.
    """
    left_shoulder: ExtremumPoint
    head: ExtremumPoint
    right_shoulder: ExtremumPoint
    left_trough: ExtremumPoint
    right_trough: ExtremumPoint
    neckline_slope: float
    neckline_level: float

    def neckline_at(self, index: int) -> float:
        """Neckline value at ``index``."""
        return self.left_trough.value + self.neckline_slope * (index - self.left_trough.index)


@dataclass(frozen=True, kw_only=True)
class CupAndHandlePattern(ChartPattern):
    """Cup and handle.

    Attributes:
        left_rim: Peak opening the cup
        cup_bottom: Lowest low inside the cup
        right_rim: Peak closing the cup
        handle_low: Lowest close after the right rim
        breakout_level: Higher of the two rims
        cup_depth: (rim - bottom) / rim
        handle_depth: Handle retracement as a fraction of the cup height
    """
    left_rim: ExtremumPoint
    cup_bottom: ExtremumPoint
    right_rim: ExtremumPoint
    handle_low: ExtremumPoint
    breakout_level: float
    cup_depth: float
    handle_depth: float


@dataclass(frozen=True, kw_only=True)
class TrendlinePattern(ChartPattern):
    """Pattern bounded by an upper and a lower fitted trend line.

    Lines are ``value = slope * index + intercept``.
    """
    upper_slope: float
    upper_intercept: float
    lower_slope: float
    lower_intercept: float
    breakout_direction: BreakoutDirection = BreakoutDirection.NONE

    def upper_at(self, index: int) -> float:
        return self.upper_slope * index + self.upper_intercept

    def lower_at(self, index: int) -> float:
        return self.lower_slope * index + self.lower_intercept


@dataclass(frozen=True, kw_only=True)
class TrianglePattern(TrendlinePattern):
    triangle_type: TriangleType


@dataclass(frozen=True, kw_only=True)
class WedgePattern(TrendlinePattern):
    direction: TrendDirection  # UP = rising wedge, DOWN = falling wedge


@dataclass(frozen=True, kw_only=True)
class ChannelPattern(TrendlinePattern):
    direction: TrendDirection
    width: float  # Mean vertical distance between the lines


@dataclass(frozen=True, kw_only=True)
class FlagPattern(ChartPattern):
    """Bull or bear flag.

    Attributes:
        direction: UP for a bull flag, DOWN for a bear flag
        pole_start: First bar of the impulse move
        pole_end: Last bar of the impulse move (flag starts here)
        pole_height: Absolute price move of the pole
        flag_height: High-low range of the consolidation
        breakout_level: Flag high (bull) or flag low (bear)
    """
    direction: TrendDirection
    pole_start: int
    pole_end: int
    pole_height: float
    flag_height: float
    breakout_level: float
