"""Data point models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import ConfigDict, model_validator

from ..core.identity import Identity
from .base import CogniteModel


class Datapoint(CogniteModel):
    """Single value at an epoch millisecond timestamp.

    Exactly one of ``numeric_value`` and ``string_value`` is set. Data points
    are immutable; sanitation returns replacements instead of editing them.
    """

    timestamp: int
    numeric_value: float | None = None
    string_value: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_single_value(self) -> Datapoint:
        if (self.numeric_value is None) == (self.string_value is None):
            raise ValueError("Datapoint must have exactly one of numeric_value or string_value")
        return self

    @classmethod
    def numeric(cls, timestamp: int, value: float) -> Datapoint:
        return cls(timestamp=timestamp, numeric_value=value)

    @classmethod
    def string(cls, timestamp: int, value: str) -> Datapoint:
        return cls(timestamp=timestamp, string_value=value)

    @property
    def is_string(self) -> bool:
        return self.string_value is not None

    @property
    def value(self) -> float | str:
        return self.string_value if self.string_value is not None else self.numeric_value  # type: ignore[return-value]

    def to_wire(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "value": self.value}


@dataclass
class DatapointInsertError:
    """Data points of one time series that were not written."""

    identity: Identity
    datapoints: list[Datapoint] = field(default_factory=list)
