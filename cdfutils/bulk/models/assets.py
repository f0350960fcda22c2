"""Asset write, read and update models."""

from __future__ import annotations

from ..core.identity import Identity
from .base import CogniteModel, DictPatch, Label, ListPatch, SetPatch


class AssetCreate(CogniteModel):
    """Asset create payload."""

    external_id: str | None = None
    name: str | None = None
    parent_id: int | None = None
    parent_external_id: str | None = None
    description: str | None = None
    data_set_id: int | None = None
    metadata: dict[str, str | None] | None = None
    source: str | None = None
    labels: list[Label] | None = None


class Asset(CogniteModel):
    """Asset as returned by the API."""

    id: int
    external_id: str | None = None
    name: str | None = None
    parent_id: int | None = None
    parent_external_id: str | None = None
    root_id: int | None = None
    description: str | None = None
    data_set_id: int | None = None
    metadata: dict[str, str] | None = None
    source: str | None = None
    labels: list[Label] | None = None
    created_time: int | None = None
    last_updated_time: int | None = None


class AssetUpdate(CogniteModel):
    """Field patches applied to one asset."""

    external_id: SetPatch[str] | None = None
    name: SetPatch[str] | None = None
    description: SetPatch[str] | None = None
    data_set_id: SetPatch[int] | None = None
    metadata: DictPatch | None = None
    source: SetPatch[str] | None = None
    parent_id: SetPatch[int] | None = None
    parent_external_id: SetPatch[str] | None = None
    labels: ListPatch[Label] | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


class AssetUpdateItem(CogniteModel):
    """Update targeting one asset by id or external id."""

    id: int | None = None
    external_id: str | None = None
    update: AssetUpdate

    @property
    def identity(self) -> Identity | None:
        return Identity.from_item(self.id, self.external_id)
