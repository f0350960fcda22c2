"""Adapter over the human readable messages of API error responses.

Some failures are only distinguishable by the wording of the error message,
for example a missing parent versus a forbidden hierarchy change. All
matching on message text lives in this module so that a change in upstream
wording has a single place to be fixed. Anything not recognized here is
left unclassified by the caller rather than guessed.
"""

from __future__ import annotations

from ..core.identity import Identity

UNKNOWN_PARENT_EXTERNAL_ID = "Reference to unknown parent with externalId"
PARENT_IDS_NOT_FOUND = "The given parent ids do not exist"
INVALID_DATA_SET_IDS = "Invalid dataSetIds"
ROOT_CHANGE = "Changing from/to being root"
HIERARCHY_CHANGE = "Asset must stay within same asset hierarchy"
BAD_PARENT = "Bad parent"
ASSET_IDS_NOT_FOUND = "Asset ids not found"
LABEL_IDS_NOT_FOUND = "Label ids not found"
TIME_SERIES_IDS_NOT_FOUND = "Time series ids not found"
DATA_SET_IDS_NOT_FOUND = ("Datasets ids not found", "Data set ids not found")
EXPECTED_STRING_VALUE = "Expected string value for datapoint"
EXPECTED_NUMERIC_VALUE = "Expected numeric value for datapoint"
# Prefixes used by sequence endpoints
ASSET_PREFIX = "asset"
DATA_SET_PREFIXES = ("dataset", "data set")
COLUMN_MISMATCH_MARKERS = ("column", "expected")


def starts_with(message: str | None, *prefixes: str, ignore_case: bool = False) -> bool:
    if not message:
        return False
    text = message.lower() if ignore_case else message
    for prefix in prefixes:
        if text.startswith(prefix.lower() if ignore_case else prefix):
            return True
    return False


def message_tail(message: str, prefix: str) -> str:
    """Text after ``prefix`` and an optional colon."""
    tail = message[len(prefix) :] if message.startswith(prefix) else message
    return tail.lstrip(":").strip()


def parse_id_list(text: str) -> list[Identity]:
    """Parse a comma separated list of internal ids. Non-numeric entries are ignored."""
    ids: list[Identity] = []
    for part in text.split(","):
        part = part.strip().strip("[]").strip()
        try:
            ids.append(Identity(id=int(part)))
        except ValueError:
            continue
    return ids


def unknown_parent_external_id(message: str) -> Identity:
    """The single missing parent external id named by the message."""
    return Identity(external_id=message_tail(message, UNKNOWN_PARENT_EXTERNAL_ID))


def is_hierarchy_violation(message: str | None) -> bool:
    return starts_with(message, ROOT_CHANGE, HIERARCHY_CHANGE)


def is_datapoint_type_mismatch(message: str | None) -> bool:
    return message in (EXPECTED_STRING_VALUE, EXPECTED_NUMERIC_VALUE)


def is_sequence_row_mismatch(message: str | None) -> bool:
    if not message:
        return False
    text = message.lower()
    return any(marker in text for marker in COLUMN_MISMATCH_MARKERS)
