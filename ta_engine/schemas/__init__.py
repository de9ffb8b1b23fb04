"""Pydantic schemas for validated input data."""

from .base import StrictBaseModel
from .price import PricePoint

__all__ = [
    "StrictBaseModel",
    "PricePoint",
]
