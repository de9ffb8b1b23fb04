"""Tests for the aggregate analysis service."""

import json

import numpy as np
import pytest

from ta_engine.core.config import IndicatorSettings
from ta_engine.core.exceptions import InvalidParameterError
from ta_engine.indicators.registry import PriceData
from ta_engine.patterns.models import PatternType
from ta_engine.services.analysis_service import (
    AnalysisService,
    calculate_price_statistics,
)

from conftest import to_price_points


class TestPriceStatistics:
    def test_distances(self):
        stats = calculate_price_statistics([80.0, 100.0, 90.0])

        assert stats.current_price == 90.0
        assert stats.period_high == 100.0
        assert stats.period_low == 80.0
        assert stats.distance_from_high == pytest.approx(10.0)
        assert stats.distance_from_high_pct == pytest.approx(10.0)
        assert stats.distance_from_low_pct == pytest.approx(12.5)

    def test_empty(self):
        assert calculate_price_statistics([]) is None


class TestAnalysisService:
    """Test cases for AnalysisService.analyze and analyze_batch."""

    @pytest.fixture
    def service(self, test_settings) -> AnalysisService:
        return AnalysisService(test_settings)

    def test_analyze_double_top(self, service, double_top_closes):
        result = service.analyze(to_price_points(double_top_closes), symbol="TEST")

        assert result.symbol == "TEST"
        assert result.bar_count == len(double_top_closes)
        assert result.pattern_counts()[PatternType.DOUBLE_TOP.value] == 1
        assert result.statistics.current_price == pytest.approx(90.0)
        assert all(len(s) == len(double_top_closes) for s in result.indicators.values())
        assert [p.start_index for p in result.patterns] == sorted(
            p.start_index for p in result.patterns
        )

    def test_analyze_accepts_price_data(self, service, random_walk):
        data = PriceData.from_points(to_price_points(random_walk))
        result = service.analyze(data)

        assert result.bar_count == 300
        assert "rsi" in result.indicators
        assert len(result.extrema) > 0

    def test_to_dict_is_json_serializable(self, service, random_walk):
        data = service.analyze(to_price_points(random_walk)).to_dict()

        assert data["indicators"]["sma_200"][0] is None
        assert data["indicators"]["sma_200"][-1] is not None
        json.dumps(data)

    def test_to_dict_spike_over_zero_volume(self, service, random_walk):
        points = to_price_points(random_walk[:40], volume=0)
        points[-1] = points[-1].model_copy(update={"volume": 5_000})
        data = service.analyze(points).to_dict()

        assert data["volume_anomalies"][-1]["index"] == 39
        assert data["volume_anomalies"][-1]["ratio"] is None
        json.dumps(data, allow_nan=False)

    def test_empty_input(self, service):
        result = service.analyze([])

        assert result.bar_count == 0
        assert result.patterns == []
        assert result.divergences == []
        assert result.statistics is None

    def test_deterministic(self, service, random_walk):
        points = to_price_points(random_walk)
        first = service.analyze(points)
        second = service.analyze(points)

        assert first.patterns == second.patterns
        assert first.divergences == second.divergences
        for name, series in first.indicators.items():
            np.testing.assert_array_equal(series, second.indicators[name])

    def test_analyze_batch(self, service, random_walk, double_top_closes):
        results = service.analyze_batch(
            {
                "WALK": to_price_points(random_walk),
                "DTOP": to_price_points(double_top_closes),
            }
        )

        assert list(results) == ["WALK", "DTOP"]
        assert results["DTOP"].symbol == "DTOP"
        assert results["WALK"].bar_count == 300

    def test_batch_matches_sequential(self, service, random_walk):
        series = {f"S{i}": to_price_points(random_walk[i * 10 :]) for i in range(4)}
        batch = service.analyze_batch(series)

        for symbol, points in series.items():
            assert batch[symbol].patterns == service.analyze(points).patterns

    def test_batch_propagates_parameter_errors(self, double_top_closes):
        service = AnalysisService(IndicatorSettings(double_tolerance=1.5))

        with pytest.raises(InvalidParameterError):
            service.analyze_batch({"BAD": to_price_points(double_top_closes)})
