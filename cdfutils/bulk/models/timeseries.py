"""Time series models."""

from __future__ import annotations

from ..core.identity import Identity
from .base import CogniteModel, DictPatch, ListPatch, SetPatch


class TimeSeriesCreate(CogniteModel):
    """Time series create payload."""

    external_id: str | None = None
    name: str | None = None
    legacy_name: str | None = None
    is_string: bool = False
    metadata: dict[str, str | None] | None = None
    unit: str | None = None
    asset_id: int | None = None
    is_step: bool = False
    description: str | None = None
    security_categories: list[int] | None = None
    data_set_id: int | None = None


class TimeSeries(CogniteModel):
    """Time series as returned by the API."""

    id: int
    external_id: str | None = None
    name: str | None = None
    is_string: bool = False
    metadata: dict[str, str] | None = None
    unit: str | None = None
    asset_id: int | None = None
    is_step: bool = False
    description: str | None = None
    security_categories: list[int] | None = None
    data_set_id: int | None = None
    created_time: int | None = None
    last_updated_time: int | None = None


class TimeSeriesUpdate(CogniteModel):
    external_id: SetPatch[str] | None = None
    name: SetPatch[str] | None = None
    metadata: DictPatch | None = None
    unit: SetPatch[str] | None = None
    asset_id: SetPatch[int] | None = None
    description: SetPatch[str] | None = None
    security_categories: ListPatch[int] | None = None
    data_set_id: SetPatch[int] | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


class TimeSeriesUpdateItem(CogniteModel):
    id: int | None = None
    external_id: str | None = None
    update: TimeSeriesUpdate

    @property
    def identity(self) -> Identity | None:
        return Identity.from_item(self.id, self.external_id)
