"""Extremum, divergence and chart pattern detection."""

from .extrema import (
    ExtremumKind,
    ExtremumPoint,
    LevelType,
    SupportResistanceLevel,
    detect_support_resistance,
    identify_peaks_lows,
    split_extrema,
)
from .divergence import (
    DivergenceEvent,
    DivergenceStrength,
    DivergenceType,
    classify_strength,
    detect_divergences,
)
from .models import (
    BreakoutDirection,
    ChannelPattern,
    ChartPattern,
    CupAndHandlePattern,
    DoublePattern,
    FlagPattern,
    HeadAndShouldersPattern,
    PatternStatus,
    PatternType,
    TrendDirection,
    TriangleType,
    TrianglePattern,
    TriplePattern,
    WedgePattern,
)
from .reversal import (
    detect_cup_and_handle,
    detect_double_bottoms,
    detect_double_tops,
    detect_head_and_shoulders,
    detect_inverse_head_and_shoulders,
    detect_triple_bottoms,
    detect_triple_tops,
)
from .continuation import (
    detect_channels,
    detect_flags,
    detect_triangles,
    detect_wedges,
)

__all__ = [
    "ExtremumKind",
    "ExtremumPoint",
    "LevelType",
    "SupportResistanceLevel",
    "identify_peaks_lows",
    "split_extrema",
    "detect_support_resistance",
    "DivergenceType",
    "DivergenceStrength",
    "DivergenceEvent",
    "classify_strength",
    "detect_divergences",
    "PatternType",
    "PatternStatus",
    "TriangleType",
    "TrendDirection",
    "BreakoutDirection",
    "ChartPattern",
    "DoublePattern",
    "TriplePattern",
    "HeadAndShouldersPattern",
    "CupAndHandlePattern",
    "TrianglePattern",
    "WedgePattern",
    "ChannelPattern",
    "FlagPattern",
    "detect_double_tops",
    "detect_double_bottoms",
    "detect_triple_tops",
    "detect_triple_bottoms",
    "detect_head_and_shoulders",
    "detect_inverse_head_and_shoulders",
    "detect_cup_and_handle",
    "detect_triangles",
    "detect_wedges",
    "detect_channels",
    "detect_flags",
]
