"""Aggregate technical analysis over one or many price series.

``AnalysisService`` runs every indicator in the registry plus the extremum,
level, divergence, volume, candlestick and chart pattern detectors over a
price series and bundles the results for downstream presentation.
"""

import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ta_engine.core.config import IndicatorSettings, get_settings
from ta_engine.indicators.candlestick import CandlestickSignal, detect_candlestick_patterns
from ta_engine.indicators.registry import PriceData, calculate_indicators
from ta_engine.indicators.volume import VolumeAnomaly, detect_volume_anomalies
from ta_engine.patterns.continuation import (
    detect_channels,
    detect_flags,
    detect_triangles,
    detect_wedges,
)
from ta_engine.patterns.divergence import DivergenceEvent, detect_divergences
from ta_engine.patterns.extrema import (
    ExtremumPoint,
    SupportResistanceLevel,
    detect_support_resistance,
    identify_peaks_lows,
)
from ta_engine.patterns.models import ChartPattern, to_serializable
from ta_engine.patterns.reversal import (
    detect_cup_and_handle,
    detect_double_bottoms,
    detect_double_tops,
    detect_head_and_shoulders,
    detect_inverse_head_and_shoulders,
    detect_triple_bottoms,
    detect_triple_tops,
)
from ta_engine.schemas.price import PricePoint
from ta_engine.utils.structured_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PriceStatistics:
    """Where the last close sits within the period's range.

    Distances are measured from the last close; percentages are relative to
    the high or low itself (0 when that level is 0).
    """

    current_price: float
    period_high: float
    period_low: float
    distance_from_high: float
    distance_from_high_pct: float
    distance_from_low: float
    distance_from_low_pct: float


def calculate_price_statistics(
    closes: list[float] | NDArray[np.float64],
) -> PriceStatistics | None:
    """Summarize the close series. Returns None for an empty series."""
    closes_array = np.asarray(closes, dtype=float)
    if len(closes_array) == 0:
        return None

    current = float(closes_array[-1])
    high = float(np.nanmax(closes_array))
    low = float(np.nanmin(closes_array))

    return PriceStatistics(
        current_price=current,
        period_high=high,
        period_low=low,
        distance_from_high=high - current,
        distance_from_high_pct=(high - current) / high * 100 if high else 0.0,
        distance_from_low=current - low,
        distance_from_low_pct=(current - low) / low * 100 if low else 0.0,
    )


@dataclass
class AnalysisResult:
    """Everything computed for one price series.

    Attributes:
        symbol: Optional identifier of the series
        bar_count: Number of bars analyzed
        indicators: Indicator series keyed by name, aligned with the input
        extrema: Local peaks and lows of the closes
        support_resistance: Clustered levels, most touched first
        divergences: Price vs RSI divergences
        volume_anomalies: Volume spikes (and dips)
        candlesticks: Single-bar candlestick signals
        patterns: Chart patterns from every detector, ordered by start index
        statistics: Last close relative to the period range
    """

    symbol: str | None
    bar_count: int
    indicators: dict[str, NDArray[np.float64]] = field(default_factory=dict)
    extrema: list[ExtremumPoint] = field(default_factory=list)
    support_resistance: list[SupportResistanceLevel] = field(default_factory=list)
    divergences: list[DivergenceEvent] = field(default_factory=list)
    volume_anomalies: list[VolumeAnomaly] = field(default_factory=list)
    candlesticks: list[CandlestickSignal] = field(default_factory=list)
    patterns: list[ChartPattern] = field(default_factory=list)
    statistics: PriceStatistics | None = None

    def pattern_counts(self) -> dict[str, int]:
        """Number of detected patterns per pattern type."""
        counts: dict[str, int] = {}
        for pattern in self.patterns:
            counts[pattern.pattern_type.value] = counts.get(pattern.pattern_type.value, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary; NaN warm-up values become None."""
        return {
            "symbol": self.symbol,
            "bar_count": self.bar_count,
            "indicators": {
                name: [None if np.isnan(v) else round(float(v), 6) for v in series]
                for name, series in self.indicators.items()
            },
            "extrema": [to_serializable(asdict(p)) for p in self.extrema],
            "support_resistance": [to_serializable(asdict(lvl)) for lvl in self.support_resistance],
            "divergences": [to_serializable(asdict(d)) for d in self.divergences],
            "volume_anomalies": [to_serializable(asdict(a)) for a in self.volume_anomalies],
            "candlesticks": [to_serializable(asdict(c)) for c in self.candlesticks],
            "patterns": [p.to_dict() for p in self.patterns],
            "statistics": to_serializable(asdict(self.statistics)) if self.statistics else None,
        }


class AnalysisService:
    """Runs the full indicator and pattern suite with one set of parameters.

    Each call works on its own copy of the input, so one service instance
    can analyze many series concurrently.
    """

    def __init__(self, settings: IndicatorSettings | None = None) -> None:
        """Initialize with analysis parameters.

        Args:
            settings: Parameter source (default: get_settings())
        """
        self.settings = settings or get_settings()

    def _detect_patterns(
        self, closes: NDArray[np.float64], extrema: list[ExtremumPoint]
    ) -> list[ChartPattern]:
        s = self.settings
        patterns: list[ChartPattern] = []

        patterns.extend(
            detect_double_tops(closes, extrema, s.extrema_window, s.double_tolerance, s.double_min_depth)
        )
        patterns.extend(
            detect_double_bottoms(closes, extrema, s.extrema_window, s.double_tolerance, s.double_min_depth)
        )
        patterns.extend(
            detect_triple_tops(closes, extrema, s.extrema_window, s.double_tolerance, s.double_min_depth)
        )
        patterns.extend(
            detect_triple_bottoms(closes, extrema, s.extrema_window, s.double_tolerance, s.double_min_depth)
        )
        for detector in (detect_head_and_shoulders, detect_inverse_head_and_shoulders):
            patterns.extend(
                detector(
                    closes,
                    extrema,
                    s.extrema_window,
                    shoulder_tolerance=s.shoulder_tolerance,
                    neckline_tolerance=s.neckline_tolerance,
                    head_excess=s.head_excess,
                )
            )
        patterns.extend(
            detect_cup_and_handle(
                closes,
                extrema,
                s.extrema_window,
                rim_tolerance=s.cup_rim_tolerance,
                min_cup_depth=s.cup_min_depth,
                max_cup_depth=s.cup_max_depth,
                max_handle_retrace=s.handle_max_retrace,
            )
        )
        for detector in (detect_triangles, detect_wedges):
            patterns.extend(
                detector(
                    closes,
                    extrema,
                    s.extrema_window,
                    vertices=s.trendline_vertices,
                    flat_slope=s.flat_slope,
                    min_convergence=s.min_convergence,
                )
            )
        patterns.extend(
            detect_channels(
                closes,
                extrema,
                s.extrema_window,
                vertices=s.trendline_vertices,
                flat_slope=s.flat_slope,
                parallel_tolerance=s.parallel_tolerance,
            )
        )
        patterns.extend(
            detect_flags(
                closes,
                pole_bars=s.flag_pole_bars,
                flag_bars=s.flag_bars,
                min_pole_return=s.flag_pole_return,
                max_pullback=s.flag_max_pullback,
                max_volatility=s.flag_max_volatility,
            )
        )

        patterns.sort(key=lambda p: (p.start_index, p.end_index))
        return patterns

    def analyze(
        self,
        data: PriceData | Sequence[PricePoint],
        symbol: str | None = None,
    ) -> AnalysisResult:
        """Analyze one price series.

        Args:
            data: PriceData or validated bars in chronological order
            symbol: Optional identifier carried into the result and logs

        Returns:
            AnalysisResult. An empty series yields empty collections and
            no statistics.

        Raises:
            InvalidParameterError: If the settings hold invalid parameters
        """
        start_time = time.perf_counter()
        price_data = data if isinstance(data, PriceData) else PriceData.from_points(data)
        s = self.settings

        indicators = calculate_indicators(price_data, settings=s)
        extrema = identify_peaks_lows(price_data.closes, s.extrema_window)

        result = AnalysisResult(
            symbol=symbol,
            bar_count=len(price_data),
            indicators=indicators,
            extrema=extrema,
            support_resistance=detect_support_resistance(
                price_data.closes,
                s.extrema_window,
                s.level_tolerance,
                extrema=extrema,
            ),
            divergences=detect_divergences(
                price_data.closes,
                indicators["rsi"],
                window=s.divergence_window,
                moderate_threshold=s.divergence_moderate,
                strong_threshold=s.divergence_strong,
                price_extrema=extrema if s.divergence_window == s.extrema_window else None,
            ),
            volume_anomalies=detect_volume_anomalies(
                price_data.volumes, s.volume_threshold, s.volume_lookback, include_dips=True
            ),
            candlesticks=detect_candlestick_patterns(
                price_data.opens, price_data.highs, price_data.lows, price_data.closes
            ),
            patterns=self._detect_patterns(price_data.closes, extrema),
            statistics=calculate_price_statistics(price_data.closes),
        )

        logger.info(
            "analysis_completed",
            symbol=symbol,
            bar_count=result.bar_count,
            extrema=len(extrema),
            levels=len(result.support_resistance),
            divergences=len(result.divergences),
            pattern_counts=result.pattern_counts(),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return result

    def analyze_batch(
        self, series: Mapping[str, PriceData | Sequence[PricePoint]]
    ) -> dict[str, AnalysisResult]:
        """Analyze several independent series concurrently.

        Series are analyzed on a thread pool of ``settings.batch_workers``
        threads. The first failure is logged and re-raised.

        Returns:
            Results keyed by symbol, in the mapping's order
        """
        start_time = time.perf_counter()
        results: dict[str, AnalysisResult] = {}

        with ThreadPoolExecutor(max_workers=self.settings.batch_workers) as executor:
            futures = {
                symbol: executor.submit(self.analyze, data, symbol)
                for symbol, data in series.items()
            }
            for symbol, future in futures.items():
                try:
                    results[symbol] = future.result()
                except Exception as e:
                    logger.error("batch_symbol_failed", symbol=symbol, error=str(e))
                    raise

        logger.info(
            "batch_analysis_completed",
            symbols=len(results),
            workers=self.settings.batch_workers,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return results
