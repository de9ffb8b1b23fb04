"""Schema for a single OHLCV bar."""

from datetime import datetime

from pydantic import Field, model_validator

from ta_engine.schemas.base import StrictBaseModel


class PricePoint(StrictBaseModel):
    """One OHLCV bar.

    Enforces ``low <= min(open, close) <= max(open, close) <= high`` and a
    non-negative volume.
    """

    date: datetime = Field(..., description="Bar timestamp")
    open: float = Field(..., description="Opening price")
    high: float = Field(..., description="Highest traded price")
    low: float = Field(..., description="Lowest traded price")
    close: float = Field(..., description="Closing price")
    volume: int = Field(..., ge=0, description="Traded volume")

    @model_validator(mode="after")
    def validate_price_range(self) -> "PricePoint":
        """Check that open and close sit inside the bar's high/low range."""
        if self.low > min(self.open, self.close):
            raise ValueError(
                f"low ({self.low}) must not exceed min(open, close) "
                f"({min(self.open, self.close)})"
            )
        if max(self.open, self.close) > self.high:
            raise ValueError(
                f"high ({self.high}) must not be below max(open, close) "
                f"({max(self.open, self.close)})"
            )
        return self

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "date": "2025-12-05T00:00:00",
                    "open": 174.2,
                    "high": 176.8,
                    "low": 173.9,
                    "close": 175.4,
                    "volume": 51234000,
                }
            ]
        }
    }
