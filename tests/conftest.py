"""Shared pytest fixtures for the indicator and pattern test suite.

Pattern fixtures are piecewise-linear price paths built from a handful of
(index, price) vertices, so every vertex is a strict local extremum and every
bar between two vertices is not.
"""
import os

# Keep developer TA_* overrides out of the test run
for key in [k for k in os.environ if k.startswith("TA_")]:
    del os.environ[key]

from collections.abc import Callable
from datetime import datetime, timedelta

import numpy as np
import pytest
from numpy.typing import NDArray

from ta_engine.core.config import IndicatorSettings, get_settings
from ta_engine.schemas.price import PricePoint
from ta_engine.utils.structured_logging import configure_structured_logging


def zigzag(vertices: list[tuple[int, float]]) -> NDArray[np.float64]:
    """Linearly interpolate a close series through (index, price) vertices."""
    xs = [x for x, _ in vertices]
    ys = [y for _, y in vertices]
    return np.interp(np.arange(xs[-1] + 1), xs, ys)


def mirror(values: NDArray[np.float64], axis: float = 200.0) -> NDArray[np.float64]:
    """Flip a series upside down around ``axis / 2``."""
    return axis - values


def to_price_points(closes: NDArray[np.float64], volume: int = 1_000) -> list[PricePoint]:
    """Wrap closes in bars whose open equals the close and range is ±0.5."""
    start = datetime(2025, 1, 2)
    return [
        PricePoint(
            date=start + timedelta(days=i),
            open=float(c),
            high=float(c) + 0.5,
            low=float(c) - 0.5,
            close=float(c),
            volume=volume,
        )
        for i, c in enumerate(closes)
    ]


@pytest.fixture(scope="session", autouse=True)
def configure_logging() -> None:
    """Quiet structured logging for the whole session."""
    configure_structured_logging(log_level="WARNING")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reset the cached settings so environment overrides take effect per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> IndicatorSettings:
    """Default analysis settings."""
    return IndicatorSettings()


@pytest.fixture
def make_zigzag() -> Callable[[list[tuple[int, float]]], NDArray[np.float64]]:
    return zigzag


@pytest.fixture
def double_top_closes() -> NDArray[np.float64]:
    """Peaks of 100 and 100.5 at bars 10 and 30, trough of 94 at bar 20,
    then a close of 90 below the neckline."""
    return zigzag([(0, 90.0), (10, 100.0), (20, 94.0), (30, 100.5), (40, 90.0)])


@pytest.fixture
def bearish_divergence_series() -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Price makes a higher high (110 -> 115) while the oscillator makes a
    lower high (80 -> 60) at the same bars."""
    prices = zigzag([(0, 100.0), (10, 110.0), (20, 104.0), (30, 115.0), (40, 106.0)])
    oscillator = zigzag([(0, 50.0), (10, 80.0), (20, 40.0), (30, 60.0), (40, 30.0)])
    return prices, oscillator


@pytest.fixture
def random_walk() -> NDArray[np.float64]:
    """Seeded 300-bar positive random walk."""
    rng = np.random.default_rng(42)
    return 100.0 + np.cumsum(rng.normal(0.0, 1.0, 300))
