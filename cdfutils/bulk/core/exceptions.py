"""Custom exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..results.error import CogniteError


class BulkWriteError(Exception):
    """Base exception for all library errors."""

    pass


class ResponseError(BulkWriteError):
    """Structured failure returned by the remote API.

    Carries the status code and the machine-readable lists of missing and
    duplicated keys from the error body. Each key is a dict such as
    ``{"externalId": "abc"}`` or ``{"id": 123}``.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        missing: list[dict[str, Any]] | None = None,
        duplicated: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.missing = missing or []
        self.duplicated = duplicated or []
        self.request_id = request_id


class TransportError(BulkWriteError):
    """Network failure or timeout before a response was received."""

    pass


class ResultError(BulkWriteError):
    """Raised on request when a result carries errors."""

    def __init__(self, message: str, errors: list[CogniteError]) -> None:
        super().__init__(message)
        self.errors = errors

    @property
    def error(self) -> CogniteError:
        """First wrapped error."""
        return self.errors[0]
