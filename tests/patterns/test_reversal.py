"""Unit tests for reversal chart pattern detectors."""

import json

import numpy as np
import pytest

from ta_engine.core.exceptions import InvalidParameterError
from ta_engine.patterns.extrema import identify_peaks_lows
from ta_engine.patterns.models import PatternStatus, PatternType
from ta_engine.patterns.reversal import (
    detect_cup_and_handle,
    detect_double_bottoms,
    detect_double_tops,
    detect_head_and_shoulders,
    detect_inverse_head_and_shoulders,
    detect_triple_bottoms,
    detect_triple_tops,
)

from conftest import mirror, zigzag


@pytest.fixture
def triple_top_closes():
    return zigzag(
        [(0, 90.0), (10, 100.0), (20, 94.0), (30, 100.5), (40, 94.5), (50, 99.8), (60, 92.0)]
    )


@pytest.fixture
def head_and_shoulders_closes():
    return zigzag(
        [(0, 90.0), (10, 100.0), (20, 92.0), (30, 110.0), (40, 92.5), (50, 100.5), (60, 85.0)]
    )


@pytest.fixture
def cup_and_handle_closes():
    return zigzag([(0, 90.0), (10, 100.0), (25, 75.0), (40, 99.0), (45, 93.0), (52, 98.0)])


class TestDoubleTop:
    """Test cases for double top/bottom detection."""

    def test_single_double_top(self, double_top_closes):
        patterns = detect_double_tops(double_top_closes)

        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.pattern_type == PatternType.DOUBLE_TOP
        assert (pattern.start_index, pattern.end_index) == (10, 30)
        assert pattern.middle.index == 20
        assert pattern.neckline == pytest.approx(94.0)
        assert pattern.target == pytest.approx(94.0 - (100.25 - 94.0))
        assert 0 < pattern.confidence <= 100

    def test_completed_after_neckline_break(self, double_top_closes):
        assert detect_double_tops(double_top_closes)[0].status == PatternStatus.COMPLETED
        # Cut the series before the close drops under the neckline
        assert detect_double_tops(double_top_closes[:36])[0].status == PatternStatus.FORMING

    def test_unequal_peaks_rejected(self, make_zigzag):
        closes = make_zigzag([(0, 90.0), (10, 100.0), (20, 94.0), (30, 104.0), (40, 90.0)])
        assert detect_double_tops(closes) == []

    def test_shallow_trough_rejected(self, make_zigzag):
        closes = make_zigzag([(0, 90.0), (10, 100.0), (20, 99.0), (30, 100.5), (40, 90.0)])
        assert detect_double_tops(closes) == []

    def test_precomputed_extrema_match(self, double_top_closes):
        extrema = identify_peaks_lows(double_top_closes, 5)
        assert detect_double_tops(double_top_closes, extrema) == detect_double_tops(
            double_top_closes
        )

    def test_double_bottom_mirror(self, double_top_closes):
        patterns = detect_double_bottoms(mirror(double_top_closes))

        assert len(patterns) == 1
        assert patterns[0].pattern_type == PatternType.DOUBLE_BOTTOM
        assert (patterns[0].start_index, patterns[0].end_index) == (10, 30)
        assert patterns[0].neckline == pytest.approx(106.0)
        assert patterns[0].target > patterns[0].neckline
        assert patterns[0].status == PatternStatus.COMPLETED

    def test_insufficient_extrema(self):
        assert detect_double_tops([1.0, 2.0, 3.0]) == []
        assert detect_double_bottoms([]) == []

    def test_invalid_tolerance(self, double_top_closes):
        with pytest.raises(InvalidParameterError):
            detect_double_tops(double_top_closes, tolerance=0.0)

    def test_to_dict_is_json_serializable(self, double_top_closes):
        data = detect_double_tops(double_top_closes)[0].to_dict()

        assert data["pattern_type"] == "double_top"
        assert data["status"] == "completed"
        assert data["first"]["kind"] == "peak"
        json.dumps(data)


class TestTripleTop:
    def test_single_triple_top(self, triple_top_closes):
        patterns = detect_triple_tops(triple_top_closes)

        assert len(patterns) == 1
        pattern = patterns[0]
        assert [p.index for p in pattern.extremes] == [10, 30, 50]
        assert pattern.neckline == pytest.approx(94.0)
        assert pattern.status == PatternStatus.COMPLETED

    def test_triple_bottom_mirror(self, triple_top_closes):
        patterns = detect_triple_bottoms(mirror(triple_top_closes))

        assert len(patterns) == 1
        assert patterns[0].pattern_type == PatternType.TRIPLE_BOTTOM
        assert patterns[0].neckline == pytest.approx(106.0)

    def test_needs_three_extremes(self, double_top_closes):
        assert detect_triple_tops(double_top_closes) == []


class TestHeadAndShoulders:
    """Test cases for head and shoulders detection."""

    def test_head_and_shoulders(self, head_and_shoulders_closes):
        patterns = detect_head_and_shoulders(head_and_shoulders_closes)

        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.head.index == 30
        assert (pattern.left_shoulder.index, pattern.right_shoulder.index) == (10, 50)
        assert (pattern.left_trough.index, pattern.right_trough.index) == (20, 40)
        assert pattern.neckline_slope == pytest.approx(0.025)
        assert pattern.neckline_level == pytest.approx(92.75)
        assert pattern.target == pytest.approx(92.75 - (110.0 - 92.25))
        assert pattern.status == PatternStatus.COMPLETED

    def test_head_not_above_shoulders_rejected(self, make_zigzag):
        closes = make_zigzag(
            [(0, 90.0), (10, 100.0), (20, 92.0), (30, 101.0), (40, 92.5), (50, 100.5), (60, 85.0)]
        )
        assert detect_head_and_shoulders(closes) == []

    def test_lopsided_shoulders_rejected(self, make_zigzag):
        closes = make_zigzag(
            [(0, 90.0), (10, 100.0), (20, 92.0), (30, 120.0), (40, 92.5), (50, 110.0), (60, 85.0)]
        )
        assert detect_head_and_shoulders(closes) == []

    def test_inverse_head_and_shoulders(self, head_and_shoulders_closes):
        patterns = detect_inverse_head_and_shoulders(mirror(head_and_shoulders_closes))

        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.pattern_type == PatternType.INVERSE_HEAD_AND_SHOULDERS
        assert pattern.head.value == pytest.approx(90.0)
        assert pattern.target == pytest.approx(125.0)
        assert pattern.status == PatternStatus.COMPLETED

    def test_regular_detector_ignores_inverse_shape(self, head_and_shoulders_closes):
        assert detect_head_and_shoulders(mirror(head_and_shoulders_closes)) == []


class TestCupAndHandle:
    def test_cup_and_handle(self, cup_and_handle_closes):
        patterns = detect_cup_and_handle(cup_and_handle_closes)

        assert len(patterns) == 1
        pattern = patterns[0]
        assert (pattern.left_rim.index, pattern.right_rim.index) == (10, 40)
        assert pattern.cup_bottom.index == 25
        assert pattern.handle_low.index == 45
        assert pattern.breakout_level == pytest.approx(100.0)
        assert pattern.cup_depth == pytest.approx(0.25)
        assert pattern.handle_depth == pytest.approx(0.24)
        assert pattern.target == pytest.approx(125.0)
        assert pattern.status == PatternStatus.FORMING

    def test_completed_on_breakout(self, cup_and_handle_closes):
        closes = np.append(cup_and_handle_closes, [99.5, 101.0])
        pattern = detect_cup_and_handle(closes)[0]

        assert pattern.status == PatternStatus.COMPLETED
        # The handle ends before the first close above the rim
        assert pattern.end_index == 53

    def test_shallow_cup_rejected(self, make_zigzag):
        closes = make_zigzag([(0, 90.0), (10, 100.0), (25, 95.0), (40, 99.0), (45, 97.0), (52, 98.0)])
        assert detect_cup_and_handle(closes) == []

    def test_deep_handle_rejected(self, make_zigzag):
        closes = make_zigzag([(0, 90.0), (10, 100.0), (25, 75.0), (40, 99.0), (45, 80.0), (52, 98.0)])
        assert detect_cup_and_handle(closes) == []
