"""Sequence and sequence row models."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..core.identity import Identity
from .base import CogniteModel

RowValue = int | float | str | None


class SequenceColumnWrite(CogniteModel):
    external_id: str | None = None
    name: str | None = None
    description: str | None = None
    value_type: str = "DOUBLE"
    metadata: dict[str, str | None] | None = None


class SequenceCreate(CogniteModel):
    """Sequence create payload. At least one column is required."""

    external_id: str | None = None
    name: str | None = None
    description: str | None = None
    asset_id: int | None = None
    data_set_id: int | None = None
    metadata: dict[str, str | None] | None = None
    columns: list[SequenceColumnWrite] | None = None


class SequenceColumn(CogniteModel):
    external_id: str
    name: str | None = None
    description: str | None = None
    value_type: str = "DOUBLE"
    metadata: dict[str, str] | None = None


class Sequence(CogniteModel):
    """Sequence as returned by the API."""

    id: int
    external_id: str | None = None
    name: str | None = None
    description: str | None = None
    asset_id: int | None = None
    data_set_id: int | None = None
    metadata: dict[str, str] | None = None
    columns: list[SequenceColumn] | None = None
    created_time: int | None = None
    last_updated_time: int | None = None


class SequenceRow(CogniteModel):
    row_number: int
    values: list[RowValue] | None = None


class SequenceDataCreate(CogniteModel):
    """Rows to insert into one sequence, addressed by id or external id."""

    id: int | None = None
    external_id: str | None = None
    columns: list[str | None] | None = None
    rows: list[SequenceRow] | None = None

    @property
    def identity(self) -> Identity | None:
        return Identity.from_item(self.id, self.external_id)


@dataclass
class SequenceRowError:
    """Rows of one sequence that were not written.

    Attributes:
        identity: Sequence the rows belong to
        rows: Skipped rows
        columns: Offending column external ids, when the error is column related
    """

    identity: Identity | None
    rows: list[SequenceRow] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
