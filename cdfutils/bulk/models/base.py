"""Shared pydantic base for wire models and update patches."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CogniteModel(BaseModel):
    """Base model with camelCase wire aliases.

    Write models stay mutable so sanitation can repair them in place.
    Fields accept either the snake_case name or the wire alias.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def dump(self) -> dict[str, Any]:
        """Serialize to the request body representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Label(CogniteModel):
    """Reference to a label by external id."""

    external_id: str


class SetPatch(CogniteModel, Generic[T]):
    """Set a single field or clear it."""

    set: T | None = None
    set_null: bool | None = None

    @classmethod
    def of(cls, value: T | None) -> SetPatch[T]:
        """Patch setting ``value``, or clearing the field when it is None."""
        if value is None:
            return cls(set_null=True)
        return cls(set=value)


class DictPatch(CogniteModel):
    """Patch for a string map field."""

    set: dict[str, str | None] | None = None
    add: dict[str, str | None] | None = None
    remove: list[str] | None = None


class ListPatch(CogniteModel, Generic[T]):
    """Patch for a list field."""

    set: list[T] | None = None
    add: list[T] | None = None
    remove: list[T] | None = None
