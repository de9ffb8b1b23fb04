"""Configuration management using Pydantic v2 settings.

Every indicator and detector takes explicit keyword parameters; the values
here are the defaults the aggregate analysis uses, overridable through
``TA_``-prefixed environment variables or a ``.env`` file.
"""
from functools import lru_cache

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class IndicatorSettings(BaseSettings):
    """Indicator and pattern detection defaults with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="TA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    # Moving averages
    sma_periods: list[int] = Field(default=[20, 50, 200], description="SMA periods to compute")
    ema_periods: list[int] = Field(default=[12, 26, 50], description="EMA periods to compute")

    # Oscillators
    rsi_period: int = Field(default=14, description="RSI period")
    macd_fast: int = Field(default=12, description="MACD fast EMA period")
    macd_slow: int = Field(default=26, description="MACD slow EMA period")
    macd_signal: int = Field(default=9, description="MACD signal EMA period")
    stochastic_k: int = Field(default=14, description="Stochastic %K lookback")
    stochastic_d: int = Field(default=3, description="Stochastic %D smoothing")
    williams_period: int = Field(default=14, description="Williams %R lookback")
    stoch_rsi_period: int = Field(default=14, description="StochRSI lookback over RSI")

    # Volatility
    bollinger_period: int = Field(default=20, description="Bollinger Bands period")
    bollinger_std_dev: float = Field(default=2.0, description="Bollinger Bands multiplier")
    atr_period: int = Field(default=14, description="ATR period")
    keltner_ema_period: int = Field(default=20, description="Keltner channel EMA period")
    keltner_atr_period: int = Field(default=10, description="Keltner channel ATR period")
    keltner_multiplier: float = Field(default=2.0, description="Keltner channel ATR multiplier")
    donchian_window: int = Field(default=20, description="Donchian channel window")

    # Volume
    volume_sma_period: int = Field(default=20, description="Volume SMA period")
    volume_threshold: float = Field(
        default=2.0, description="Volume anomaly multiplier over the trailing mean"
    )
    volume_lookback: int = Field(default=20, description="Volume anomaly trailing window")

    # Extrema and levels
    extrema_window: int = Field(
        default=5, description="Bars on each side a peak/low must dominate"
    )
    level_tolerance: float = Field(
        default=0.02, description="Relative tolerance for clustering support/resistance"
    )

    # Patterns
    double_tolerance: float = Field(
        default=0.02, description="Max relative difference between double/triple extremes"
    )
    double_min_depth: float = Field(
        default=0.03, description="Min relative depth of the trough/peak between extremes"
    )
    shoulder_tolerance: float = Field(
        default=0.05, description="Max relative difference between H&S shoulders"
    )
    neckline_tolerance: float = Field(
        default=0.05, description="Max relative tilt of the H&S neckline"
    )
    head_excess: float = Field(
        default=0.02, description="Min relative amount an H&S head exceeds the shoulders"
    )
    cup_rim_tolerance: float = Field(default=0.05, description="Max relative cup rim difference")
    cup_min_depth: float = Field(default=0.10, description="Min cup depth below the rims")
    cup_max_depth: float = Field(default=0.50, description="Max cup depth below the rims")
    handle_max_retrace: float = Field(
        default=0.5, description="Max handle retracement as a fraction of cup height"
    )
    flag_pole_return: float = Field(default=0.08, description="Min flag pole return")
    flag_pole_bars: int = Field(default=15, description="Flag pole length in bars")
    flag_bars: int = Field(default=20, description="Flag consolidation length in bars")
    flag_max_pullback: float = Field(
        default=0.35, description="Max flag retracement as a fraction of the pole return"
    )
    flag_max_volatility: float = Field(
        default=0.02, description="Max mean absolute bar return inside a flag"
    )
    trendline_vertices: int = Field(
        default=4, description="Consecutive extrema per triangle/wedge/channel candidate"
    )
    flat_slope: float = Field(
        default=0.001, description="Max relative slope per bar treated as flat"
    )
    min_convergence: float = Field(
        default=0.25, description="Min narrowing of triangle and wedge trend lines"
    )
    parallel_tolerance: float = Field(
        default=0.25, description="Max relative width change of a channel"
    )

    # Divergence
    divergence_window: int = Field(
        default=5, description="Extremum window used for divergence detection"
    )
    divergence_moderate: float = Field(
        default=0.25, description="Counter-move fraction of range for moderate divergence"
    )
    divergence_strong: float = Field(
        default=0.5, description="Counter-move fraction of range for strong divergence"
    )

    # Execution
    batch_workers: int = Field(
        default=4, description="Thread pool size for multi-symbol batch analysis"
    )

    @field_validator(
        "rsi_period",
        "macd_fast",
        "macd_slow",
        "macd_signal",
        "stochastic_k",
        "stochastic_d",
        "williams_period",
        "stoch_rsi_period",
        "bollinger_period",
        "atr_period",
        "keltner_ema_period",
        "keltner_atr_period",
        "donchian_window",
        "volume_sma_period",
        "volume_lookback",
        "extrema_window",
        "flag_pole_bars",
        "flag_bars",
        "trendline_vertices",
        "divergence_window",
        "batch_workers",
    )
    @classmethod
    def validate_positive_window(cls, v: int) -> int:
        """Reject non-positive windows at load time."""
        if v <= 0:
            raise ValueError("Window must be greater than 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to an upper-case standard level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("sma_periods", "ema_periods")
    @classmethod
    def validate_periods(cls, v: list[int]) -> list[int]:
        """Reject non-positive moving average periods."""
        if any(p <= 0 for p in v):
            raise ValueError("Moving average periods must be greater than 0")
        return v


@lru_cache
def get_settings() -> IndicatorSettings:
    """Get cached settings instance.

    Returns:
        IndicatorSettings: Analysis defaults
    """
    return IndicatorSettings()
