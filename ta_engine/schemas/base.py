"""Base Pydantic schemas with strict validation."""
from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Base model that forbids extra fields and mutation.

    Input bars are snapshots: once validated they are never changed by the
    computations that read them.

    Usage:
        class MyBar(StrictBaseModel):
            field: str
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
