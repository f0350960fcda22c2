"""Event models."""

from __future__ import annotations

from .base import CogniteModel


class EventCreate(CogniteModel):
    """Event create payload. Times are epoch milliseconds."""

    external_id: str | None = None
    start_time: int | None = None
    end_time: int | None = None
    type: str | None = None
    subtype: str | None = None
    description: str | None = None
    metadata: dict[str, str | None] | None = None
    asset_ids: list[int] | None = None
    source: str | None = None
    data_set_id: int | None = None


class Event(CogniteModel):
    id: int
    external_id: str | None = None
    start_time: int | None = None
    end_time: int | None = None
    type: str | None = None
    subtype: str | None = None
    description: str | None = None
    metadata: dict[str, str] | None = None
    asset_ids: list[int] | None = None
    source: str | None = None
    data_set_id: int | None = None
    created_time: int | None = None
    last_updated_time: int | None = None
