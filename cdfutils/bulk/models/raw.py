"""Raw table row models."""

from __future__ import annotations

from typing import Any

from .base import CogniteModel


class RawRowCreate(CogniteModel):
    key: str
    columns: dict[str, Any]


class RawRow(CogniteModel):
    key: str
    columns: dict[str, Any]
    last_updated_time: int | None = None
