"""Core exception classes for the ta_engine package."""


class AnalysisError(Exception):
    """Base exception for indicator and pattern computations."""

    pass


class InvalidParameterError(AnalysisError, ValueError):
    """Raised when a window, multiplier or tolerance is out of range."""

    pass


class DataValidationError(AnalysisError, ValueError):
    """Raised when OHLCV arrays are misaligned or malformed."""

    pass
