"""Precise unit tests for exception hierarchy.

Tests focus on meaningful behavior, not just field access.
"""

from cdfutils.bulk import (
    BulkWriteError,
    CogniteError,
    ErrorType,
    ResponseError,
    ResultError,
    TransportError,
)


def test_response_error_with_missing_and_duplicated():
    """Test ResponseError keeps the structured key lists."""
    error = ResponseError(
        "Duplicated externalIds",
        409,
        duplicated=[{"externalId": "a"}],
        request_id="req-1",
    )
    assert str(error) == "Duplicated externalIds"
    assert error.status_code == 409
    assert error.duplicated == [{"externalId": "a"}]
    assert error.missing == []
    assert error.request_id == "req-1"
    assert isinstance(error, BulkWriteError)


def test_transport_error_is_bulk_write_error():
    """Test TransportError belongs to the hierarchy."""
    error = TransportError("timeout")
    assert str(error) == "timeout"
    assert isinstance(error, BulkWriteError)


def test_result_error_exposes_first_error():
    """Test ResultError wraps the errors of a result."""
    first = CogniteError(type=ErrorType.ITEM_EXISTS)
    second = CogniteError()
    error = ResultError("2 errors", [first, second])
    assert error.error is first
    assert error.errors == [first, second]
    assert isinstance(error, BulkWriteError)
