"""Parameter and array validation helpers shared by indicators and detectors."""

import numpy as np
from numpy.typing import NDArray

from ta_engine.core.exceptions import DataValidationError, InvalidParameterError


def validate_period(value: int, name: str = "Period") -> None:
    """Reject non-positive window sizes.

    Args:
        value: Window length to check
        name: Parameter name used in the error message

    Raises:
        InvalidParameterError: If value <= 0
    """
    if value <= 0:
        raise InvalidParameterError(f"{name} must be greater than 0")


def validate_positive(value: float, name: str) -> None:
    """Reject non-positive multipliers and thresholds."""
    if not value > 0:
        raise InvalidParameterError(f"{name} must be greater than 0")


def validate_fraction(value: float, name: str) -> None:
    """Reject relative tolerances outside the open interval (0, 1)."""
    if not 0 < value < 1:
        raise InvalidParameterError(f"{name} must be between 0 and 1 (exclusive)")


def as_float_array(values: list[float] | NDArray[np.float64]) -> NDArray[np.float64]:
    """Copy input values into a new float64 array.

    The copy keeps callers' arrays untouched by every downstream computation.
    """
    return np.array(values, dtype=float)


def aligned_arrays(
    *series: list[float] | NDArray[np.float64],
) -> tuple[NDArray[np.float64], ...]:
    """Convert several series to float arrays and check they are the same length.

    Raises:
        DataValidationError: If the series differ in length
    """
    arrays = tuple(as_float_array(s) for s in series)
    lengths = {len(a) for a in arrays}
    if len(lengths) > 1:
        raise DataValidationError(
            f"Input arrays must have same length, got lengths {sorted(lengths)}"
        )
    return arrays
