"""Record identity used as a dictionary and set key."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InstanceId:
    """Composite identifier of a data modeling instance."""

    space: str
    external_id: str

    def __str__(self) -> str:
        return f"{self.space}:{self.external_id}"


@dataclass(frozen=True)
class Identity:
    """Exactly one of an internal id, an external id or an instance id.

    Equality and hashing are by tag and value, so ``Identity.of(5)`` and
    ``Identity(id=5)`` are interchangeable keys while ``Identity.of("5")``
    is a different one.

    Examples:
        Identity.of(123)
        Identity.of("pump-1")
        Identity.of(InstanceId("space", "node"))
    """

    id: int | None = None
    external_id: str | None = None
    instance_id: InstanceId | None = None

    def __post_init__(self) -> None:
        set_count = sum(
            value is not None for value in (self.id, self.external_id, self.instance_id)
        )
        if set_count != 1:
            raise ValueError("Identity must have exactly one of id, external_id or instance_id")
        # bool is an int subclass, reject it explicitly
        if self.id is not None and (isinstance(self.id, bool) or not isinstance(self.id, int)):
            raise TypeError(f"Identity id must be int, got {type(self.id).__name__}")

    @classmethod
    def of(cls, value: Any) -> Identity:
        """Create an identity from an int, str or InstanceId."""
        if isinstance(value, Identity):
            return value
        if isinstance(value, InstanceId):
            return cls(instance_id=value)
        if isinstance(value, str):
            return cls(external_id=value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(id=value)
        raise TypeError(f"Cannot create Identity from {type(value).__name__}")

    @classmethod
    def from_item(cls, id: int | None, external_id: str | None) -> Identity | None:
        """Identity of an item carrying optional id and external id fields.

        The internal id wins when both are set. Returns None when neither is.
        """
        if id is not None:
            return cls(id=id)
        if external_id is not None:
            return cls(external_id=external_id)
        return None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation used in by-ids requests."""
        if self.id is not None:
            return {"id": self.id}
        if self.instance_id is not None:
            return {
                "instanceId": {
                    "space": self.instance_id.space,
                    "externalId": self.instance_id.external_id,
                }
            }
        return {"externalId": self.external_id}

    def __str__(self) -> str:
        if self.id is not None:
            return f"id={self.id}"
        if self.external_id is not None:
            return f"externalId={self.external_id}"
        return f"instanceId={self.instance_id}"
