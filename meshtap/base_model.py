"""
Shared Pydantic base models.

Two families of models live in this package:

- WireModel: decoded tap events as they arrive from the proxy. Keys are
  camelCase (protobuf JSON mapping), unknown keys are ignored, and values
  are coerced (uint64 fields arrive as JSON strings).
- StrictModel: everything we build ourselves (display records, results).
  Nothing unexpected is allowed in.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class StrictModel(BaseModel):
    """Base model with strict validation settings."""

    model_config = ConfigDict(
        extra='forbid',  # Raise error on unexpected fields
        strict=True,  # Strict type validation
        frozen=True,  # Immutable (cannot modify after creation)
    )


class DisplayModel(StrictModel):
    """Strict model serialized with camelCase keys."""

    model_config = ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WireModel(BaseModel):
    """
    Lenient model for decoded proxy messages.

    A newer proxy may add fields; those are dropped rather than failing
    the whole tap session.
    """

    model_config = ConfigDict(
        extra='ignore',
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @model_validator(mode='before')
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        """A null member means "not set": the field keeps its default."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class PermissiveWireModel(WireModel):
    """
    Wire model that keeps unknown fields.

    Used as the fallback member of tagged unions so an unrecognised
    payload is still carried (and visible in JSON output).
    """

    model_config = ConfigDict(
        extra='allow',
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def get_extra_fields(self) -> dict[str, object]:
        """Return only the unknown fields captured by this model."""
        return dict(self.__pydantic_extra__ or {})
