"""Typed description of one class of write failure."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..core.enums import ErrorType, ResourceType
from ..core.identity import Identity


@dataclass(eq=False)
class CogniteError:
    """One class of failure and the records it removed from a request.

    Attributes:
        type: What went wrong
        resource: Which field or subsystem caused it
        values: Offending identities, when known
        skipped: Records removed from the request because of this error
        complete: False while the affected records still need a follow-up
            lookup to be determined
        message: Human readable message, usually from the server
        status: HTTP status of the failed call, when there was one
        exception: Exception the error was classified from
    """

    type: ErrorType = ErrorType.FATAL_FAILURE
    resource: ResourceType = ResourceType.NONE
    values: list[Identity] | None = None
    skipped: list[Any] | None = None
    complete: bool = True
    message: str | None = None
    status: int | None = None
    exception: BaseException | None = None

    @property
    def is_fatal(self) -> bool:
        return self.type.is_fatal

    @property
    def skipped_count(self) -> int:
        return len(self.skipped) if self.skipped else 0

    def replace_skipped(self, mapper: Callable[[Any], Any]) -> CogniteError:
        """Copy of this error with every skipped record passed through ``mapper``."""
        skipped = None if self.skipped is None else [mapper(item) for item in self.skipped]
        return replace(self, values=None if self.values is None else list(self.values), skipped=skipped)

    def __repr__(self) -> str:
        return (
            f"CogniteError(type={self.type.value}, resource={self.resource.value}, "
            f"values={len(self.values or [])}, skipped={self.skipped_count}, "
            f"complete={self.complete}, status={self.status}, message={self.message!r})"
        )


def unique_identities(values: Iterable[Identity]) -> list[Identity]:
    """De-duplicate identities keeping first-seen order."""
    return list(dict.fromkeys(values))


def log_cognite_error(
    logger: logging.Logger,
    error: CogniteError,
    *,
    operation: str,
    level: int = logging.WARNING,
) -> None:
    """Emit one structured record describing ``error``.

    Args:
        logger: Logger to write to
        error: Error to describe
        operation: Operation that produced it, e.g. ``"assets.create"``
        level: Logging level
    """
    values = error.values or []
    logger.log(
        level,
        "bulk_write_error",
        extra={
            "operation": operation,
            "error_type": error.type.value,
            "resource": error.resource.value,
            "values": [str(value) for value in values[:100]],
            "value_count": len(values),
            "skipped_count": error.skipped_count,
            "status": error.status,
            "error_message": error.message,
        },
    )
