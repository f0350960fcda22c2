"""Turn a failed remote call into a typed CogniteError.

Architecture:
    ``classify`` first separates fatal failures (anything that is not a
    structured API response, server errors, unexpected statuses) from
    item-level failures. Item-level failures are handed to a parser chosen
    by RequestType. Parsers look at the structured ``missing`` and
    ``duplicated`` lists first and only fall back to message text through
    the ``messages`` adapter.

Design Decisions:
    - Classification never raises for remote failures
    - An item-level failure the parsers do not recognize stays non-fatal
      with no values, so the retry loop implicates the whole working set
      instead of resending it forever
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..core.enums import ErrorType, RequestType, ResourceType
from ..core.exceptions import ResponseError
from ..core.identity import Identity, InstanceId
from . import messages
from .error import CogniteError, unique_identities

ITEM_LEVEL_STATUSES = frozenset({400, 409, 422})


def classify(exc: BaseException, request_type: RequestType) -> CogniteError:
    """Classify ``exc`` raised by a request of kind ``request_type``.

    Args:
        exc: Exception raised by the transport
        request_type: Kind of request that failed

    Returns:
        A new CogniteError with no skipped records

    Raises:
        TypeError: If exc is None
    """
    error = classify_failure(exc)
    if not error.is_fatal:
        _PARSERS[request_type](exc, error)  # type: ignore[arg-type]
    return error


def classify_failure(exc: BaseException) -> CogniteError:
    """Apply only the rules shared by every request kind.

    Used directly for requests without item-level parsing, such as raw
    row writes. Item-level failures come back as an IllegalItem error
    with no values.

    Raises:
        TypeError: If exc is None
    """
    if exc is None:
        raise TypeError("exc cannot be None")
    if not isinstance(exc, ResponseError):
        return CogniteError(message=str(exc) or type(exc).__name__, exception=exc)

    error = CogniteError(message=exc.message, status=exc.status_code, exception=exc)
    if exc.status_code in ITEM_LEVEL_STATUSES:
        error.type = ErrorType.ILLEGAL_ITEM
    return error


def _identity_of(key: Mapping[str, Any], fields: Iterable[str]) -> Identity | None:
    for name in fields:
        value = key.get(name)
        if value is None or isinstance(value, bool):
            continue
        if name == "id" and isinstance(value, int):
            return Identity(id=value)
        if name == "instanceId" and isinstance(value, Mapping):
            return Identity(instance_id=InstanceId(value["space"], value["externalId"]))
        if isinstance(value, str):
            return Identity(external_id=value)
    return None


def _extract(keys: list[dict[str, Any]] | None, *fields: str) -> list[Identity]:
    """Identities found in a ``missing`` or ``duplicated`` list, in order."""
    found = (_identity_of(key, fields) for key in keys or [])
    return unique_identities(idt for idt in found if idt is not None)


def _first_key(keys: list[dict[str, Any]]) -> str | None:
    return next(iter(keys[0]), None) if keys and keys[0] else None


def _set(error: CogniteError, type_: ErrorType, resource: ResourceType, values: list[Identity] | None = None) -> None:
    error.type = type_
    error.resource = resource
    error.values = values


def _parse_create_assets(exc: ResponseError, error: CogniteError) -> None:
    if exc.missing:
        # Only labels are reported through the missing list on create
        _set(error, ErrorType.ITEM_MISSING, ResourceType.LABELS, _extract(exc.missing, "externalId"))
    elif exc.duplicated:
        _set(error, ErrorType.ITEM_EXISTS, ResourceType.EXTERNAL_ID, _extract(exc.duplicated, "externalId"))
    elif exc.status_code == 400:
        message = exc.message
        if messages.starts_with(message, messages.UNKNOWN_PARENT_EXTERNAL_ID):
            _set(
                error,
                ErrorType.ITEM_MISSING,
                ResourceType.PARENT_EXTERNAL_ID,
                [messages.unknown_parent_external_id(message)],
            )
            error.complete = False
        elif messages.starts_with(message, messages.PARENT_IDS_NOT_FOUND):
            ids = messages.parse_id_list(messages.message_tail(message, messages.PARENT_IDS_NOT_FOUND))
            _set(error, ErrorType.ITEM_MISSING, ResourceType.PARENT_ID, ids)
        elif messages.starts_with(message, messages.INVALID_DATA_SET_IDS):
            ids = messages.parse_id_list(messages.message_tail(message, messages.INVALID_DATA_SET_IDS))
            _set(error, ErrorType.ITEM_MISSING, ResourceType.DATA_SET_ID, ids)


def _parse_update_assets(exc: ResponseError, error: CogniteError) -> None:
    message = exc.message
    if exc.missing:
        if messages.starts_with(message, messages.LABEL_IDS_NOT_FOUND):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.LABELS, _extract(exc.missing, "externalId"))
        else:
            values = _extract(exc.missing, "id", "externalId")
            resource = ResourceType.ID if values and values[0].id is not None else ResourceType.EXTERNAL_ID
            _set(error, ErrorType.ITEM_MISSING, resource, values)
    elif exc.duplicated:
        _set(error, ErrorType.ITEM_EXISTS, ResourceType.EXTERNAL_ID, _extract(exc.duplicated, "externalId"))
    elif exc.status_code == 400:
        if messages.is_hierarchy_violation(message):
            _set(error, ErrorType.ILLEGAL_ITEM, ResourceType.PARENT_ID)
            error.complete = False
        elif messages.starts_with(message, messages.BAD_PARENT):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.PARENT_ID)
            error.complete = False
        elif messages.starts_with(message, messages.INVALID_DATA_SET_IDS):
            ids = messages.parse_id_list(messages.message_tail(message, messages.INVALID_DATA_SET_IDS))
            _set(error, ErrorType.ITEM_MISSING, ResourceType.DATA_SET_ID, ids)
        elif messages.starts_with(message, messages.ASSET_IDS_NOT_FOUND):
            ids = messages.parse_id_list(messages.message_tail(message, messages.ASSET_IDS_NOT_FOUND))
            _set(error, ErrorType.ITEM_MISSING, ResourceType.ID, ids)


def _parse_create_referencing(exc: ResponseError, error: CogniteError) -> None:
    """Events, time series and sequences reference assets and data sets the same way."""
    message = exc.message
    if exc.missing:
        if messages.starts_with(message, messages.ASSET_PREFIX, ignore_case=True):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.ASSET_ID, _extract(exc.missing, "id"))
        elif messages.starts_with(message, *messages.DATA_SET_PREFIXES, ignore_case=True):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.DATA_SET_ID, _extract(exc.missing, "id"))
    elif exc.duplicated:
        if _first_key(exc.duplicated) == "legacyName":
            _set(error, ErrorType.ITEM_EXISTS, ResourceType.LEGACY_NAME, _extract(exc.duplicated, "legacyName"))
        else:
            _set(error, ErrorType.ITEM_EXISTS, ResourceType.EXTERNAL_ID, _extract(exc.duplicated, "externalId"))
    elif exc.status_code == 400 and messages.starts_with(message, messages.INVALID_DATA_SET_IDS):
        ids = messages.parse_id_list(messages.message_tail(message, messages.INVALID_DATA_SET_IDS))
        _set(error, ErrorType.ITEM_MISSING, ResourceType.DATA_SET_ID, ids)


def _parse_update_time_series(exc: ResponseError, error: CogniteError) -> None:
    message = exc.message
    if exc.missing:
        if messages.starts_with(message, messages.TIME_SERIES_IDS_NOT_FOUND, ignore_case=True):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.ID, _extract(exc.missing, "id", "externalId"))
        elif messages.starts_with(message, messages.ASSET_PREFIX, ignore_case=True):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.ASSET_ID, _extract(exc.missing, "id"))
        elif messages.starts_with(message, *messages.DATA_SET_PREFIXES, ignore_case=True):
            _set(error, ErrorType.ITEM_MISSING, ResourceType.DATA_SET_ID, _extract(exc.missing, "id"))
    elif exc.duplicated:
        _set(error, ErrorType.ITEM_EXISTS, ResourceType.EXTERNAL_ID, _extract(exc.duplicated, "externalId"))


def _parse_sequence_rows(exc: ResponseError, error: CogniteError) -> None:
    if exc.missing:
        _set(error, ErrorType.ITEM_MISSING, ResourceType.ID, _extract(exc.missing, "id", "externalId"))
    elif messages.is_sequence_row_mismatch(exc.message):
        _set(error, ErrorType.MISMATCHED_TYPE, ResourceType.SEQUENCE_ROW_VALUES)
        error.complete = False


def _parse_datapoints(exc: ResponseError, error: CogniteError) -> None:
    if exc.missing:
        _set(
            error,
            ErrorType.ITEM_MISSING,
            ResourceType.ID,
            _extract(exc.missing, "id", "externalId", "instanceId"),
        )
    elif messages.is_datapoint_type_mismatch(exc.message):
        _set(error, ErrorType.MISMATCHED_TYPE, ResourceType.DATA_POINT_VALUE)
        error.complete = False


_PARSERS: dict[RequestType, Callable[[ResponseError, CogniteError], None]] = {
    RequestType.CREATE_ASSETS: _parse_create_assets,
    RequestType.UPDATE_ASSETS: _parse_update_assets,
    RequestType.CREATE_EVENTS: _parse_create_referencing,
    RequestType.CREATE_TIME_SERIES: _parse_create_referencing,
    RequestType.CREATE_SEQUENCES: _parse_create_referencing,
    RequestType.UPDATE_TIME_SERIES: _parse_update_time_series,
    RequestType.CREATE_SEQUENCE_ROWS: _parse_sequence_rows,
    RequestType.CREATE_DATAPOINTS: _parse_datapoints,
}
