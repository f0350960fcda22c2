"""Shared sanitation helpers and the generic clean-request pipeline.

Architecture:
    Each record kind supplies a ``sanitize`` function that repairs a record
    in place and a ``verify`` function that reports the first field breaking
    a server limit. ``clean_request`` runs them over a request and then
    removes records whose distinctness keys were already used by an
    earlier accepted record.

Design Decisions:
    - Byte limits are measured in UTF-8 and truncation never splits a code point
    - Only accepted records reserve identities; a rejected record does not
      push out a later valid record with the same key
    - Errors are grouped by failed field so each group carries all of its
      skipped records
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from ..core.enums import ErrorType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..results.error import CogniteError, unique_identities

T = TypeVar("T")

EXTERNAL_ID_MAX = 255
STRING_LENGTH_MAX = 255
NUMERIC_VALUE_MAX = 1e100
NUMERIC_VALUE_MIN = -1e100
# 1900-01-01T00:00:00Z to 2099-12-31T23:59:59.999Z
TIMESTAMP_MIN = -2208988800000
TIMESTAMP_MAX = 4102444799999


def truncate(value: str | None, max_length: int) -> str | None:
    """Keep at most ``max_length`` characters of ``value``."""
    if not value or len(value) <= max_length:
        return value
    return value[:max_length]


def check_length(value: str | None, max_length: int) -> bool:
    """True if ``value`` is None, empty or at most ``max_length`` characters."""
    return not value or len(value) <= max_length


def utf8_byte_count(value: str | None) -> int:
    if not value:
        return 0
    return len(value.encode("utf-8"))


def limit_utf8_byte_count(value: str | None, n: int) -> str | None:
    """Truncate ``value`` to at most ``n`` UTF-8 bytes.

    When the cut falls inside a multi-byte sequence the whole sequence is
    dropped, so the result is always valid UTF-8.

    Args:
        value: String to truncate
        n: Maximum number of bytes

    Returns:
        The truncated string, or ``value`` itself if it already fits
    """
    if value is None or utf8_byte_count(value) <= n:
        return value
    if n <= 0:
        return ""
    data = value.encode("utf-8")
    if data[n] & 0xC0 == 0x80:
        # Back up over continuation bytes (10xxxxxx) to the lead byte
        n -= 1
        while n > 0 and data[n] & 0xC0 == 0x80:
            n -= 1
    return data[:n].decode("utf-8")


def clamp(value: float, low: float = NUMERIC_VALUE_MIN, high: float = NUMERIC_VALUE_MAX) -> float:
    return min(high, max(low, value))


def sanitize_metadata(
    data: Mapping[str, str | None] | None,
    max_per_key: int,
    max_keys: int,
    max_per_value: int,
    max_bytes: int,
) -> tuple[dict[str, str | None] | None, int]:
    """Limit metadata to the given key, value, pair and byte budgets.

    Keys and values are truncated by bytes first. Pairs are then taken in
    order until either the pair count or the byte budget would be exceeded.
    A None value becomes the empty string.

    Args:
        data: Metadata to limit
        max_per_key: Maximum bytes per key
        max_keys: Maximum number of pairs
        max_per_value: Maximum bytes per value
        max_bytes: Maximum total bytes of keys and values

    Returns:
        Tuple of (sanitized metadata, total bytes used)
    """
    if not data:
        return (None if data is None else dict(data)), 0

    result: dict[str, str | None] = {}
    count = 0
    total = 0
    for key, value in data.items():
        if key is None:
            continue
        key = limit_utf8_byte_count(key, max_per_key) or ""
        value = limit_utf8_byte_count(value, max_per_value) or ""
        count += 1
        size = utf8_byte_count(key) + utf8_byte_count(value)
        if count > max_keys or total + size > max_bytes:
            break
        total += size
        result[key] = value
    return result, total


def verify_metadata(
    data: Mapping[str, str | None] | None,
    max_per_key: int,
    max_keys: int,
    max_per_value: int,
    max_bytes: int,
) -> tuple[bool, int]:
    """Check metadata against the given budgets.

    Returns:
        Tuple of (within limits, total bytes counted before stopping)
    """
    if not data:
        return True, 0
    count = 0
    total = 0
    for key, value in data.items():
        if value is None:
            return False, total
        value_size = utf8_byte_count(value)
        if value_size > max_per_value:
            return False, total
        key_size = utf8_byte_count(key)
        if key_size > max_per_key:
            return False, total
        count += 1
        if total + key_size + value_size > max_bytes or count > max_keys:
            return False, total
        total += key_size + value_size
    return True, total


def positive_or_none(value: int | None) -> int | None:
    """Reference ids below 1 are unset rather than rejected."""
    if value is not None and value < 1:
        return None
    return value


@dataclass(frozen=True)
class DistinctResource(Generic[T]):
    """A key that must be unique within one request.

    Attributes:
        message: Message attached to the duplicate error
        resource: Resource tag of the duplicate error
        get_identity: Extracts the key; records returning None are not checked
    """

    message: str
    resource: ResourceType
    get_identity: Callable[[T], Identity | None]


def clean_request(
    distinct: Iterable[DistinctResource[T]],
    items: Iterable[T],
    verify: Callable[[T], ResourceType | None],
    sanitize: Callable[[T], None],
    mode: SanitationMode,
) -> tuple[list[T], list[CogniteError]]:
    """Sanitize or verify every record and remove in-request duplicates.

    Args:
        distinct: Keys that must be unique within the request
        items: Records to clean
        verify: Returns the first failing field of a record, or None
        sanitize: Repairs a record in place
        mode: Sanitation mode

    Returns:
        Tuple of (accepted records in input order, errors)

    Raises:
        TypeError: If items is None
    """
    if items is None:
        raise TypeError("items cannot be None")
    records = list(items)
    if mode is SanitationMode.NONE:
        return records, []

    keys = list(distinct)
    seen: list[set[Identity]] = [set() for _ in keys]
    duplicated: list[list[Identity]] = [[] for _ in keys]
    duplicate_items: list[list[T]] = [[] for _ in keys]
    bad: dict[ResourceType, list[T]] = {}
    accepted: list[T] = []

    for item in records:
        if mode is SanitationMode.CLEAN:
            sanitize(item)
        failed = verify(item)
        if failed is not None:
            bad.setdefault(failed, []).append(item)
            continue

        identities = [key.get_identity(item) for key in keys]
        clash = next(
            (idx for idx, idt in enumerate(identities) if idt is not None and idt in seen[idx]),
            None,
        )
        if clash is not None:
            duplicated[clash].append(identities[clash])  # type: ignore[arg-type]
            duplicate_items[clash].append(item)
            continue
        for idx, idt in enumerate(identities):
            if idt is not None:
                seen[idx].add(idt)
        accepted.append(item)

    errors: list[CogniteError] = []
    for key, values, skipped in zip(keys, duplicated, duplicate_items):
        if not skipped:
            continue
        errors.append(
            CogniteError(
                type=ErrorType.ITEM_DUPLICATED,
                resource=key.resource,
                values=unique_identities(values),
                skipped=skipped,
                message=key.message,
                status=409,
            )
        )
    for resource, skipped in bad.items():
        errors.append(
            CogniteError(
                type=ErrorType.SANITATION_FAILED,
                resource=resource,
                skipped=skipped,
                message="Sanitation failed",
                status=400,
            )
        )
    return accepted, errors
