"""
Pydantic base classes for strata models.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StrataBaseModel(BaseModel):
    """Strict model: no type coercion, no unknown fields, enums stored as their values."""

    model_config = ConfigDict(
        strict=True,
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
        use_enum_values=True,
        revalidate_instances="never",
    )


class ImmutableModel(StrataBaseModel):
    """
    Frozen variant for stages, artifacts and build results.

    Instances are shared between stage worker threads and must never change.
    """

    model_config = ConfigDict(frozen=True)
