"""Sanitation rules for sequences and sequence rows.

Sequence metadata shares one byte budget with the metadata of all of its
columns, so column metadata is sanitized against whatever the sequence
itself left over.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from ..core.enums import ErrorType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..models.sequences import (
    RowValue,
    SequenceCreate,
    SequenceDataCreate,
    SequenceRow,
    SequenceRowError,
)
from ..results.error import CogniteError
from .common import (
    EXTERNAL_ID_MAX,
    NUMERIC_VALUE_MAX,
    NUMERIC_VALUE_MIN,
    STRING_LENGTH_MAX,
    DistinctResource,
    check_length,
    clamp,
    clean_request,
    positive_or_none,
    sanitize_metadata,
    truncate,
    verify_metadata,
)

SEQUENCE_NAME_MAX = 255
SEQUENCE_DESCRIPTION_MAX = 1000
SEQUENCE_METADATA_MAX_PER_KEY = 32
SEQUENCE_METADATA_MAX_BYTES = 10_000
SEQUENCE_METADATA_MAX_BYTES_TOTAL = 100_000
SEQUENCE_COLUMN_METADATA_MAX_PER_KEY = 32
SEQUENCE_COLUMN_METADATA_MAX_BYTES = 10_000
SEQUENCE_COLUMN_DESCRIPTION_MAX = 1000
SEQUENCE_COLUMN_NAME_MAX = 64


def sanitize_sequence(seq: SequenceCreate) -> None:
    """Repair a sequence create in place so it passes ``verify_sequence``."""
    seq.external_id = truncate(seq.external_id, EXTERNAL_ID_MAX)
    seq.name = truncate(seq.name, SEQUENCE_NAME_MAX)
    seq.asset_id = positive_or_none(seq.asset_id)
    seq.description = truncate(seq.description, SEQUENCE_DESCRIPTION_MAX)
    seq.data_set_id = positive_or_none(seq.data_set_id)
    seq.metadata, total = sanitize_metadata(
        seq.metadata,
        SEQUENCE_METADATA_MAX_PER_KEY,
        SEQUENCE_METADATA_MAX_BYTES,
        SEQUENCE_METADATA_MAX_BYTES,
        SEQUENCE_METADATA_MAX_BYTES,
    )
    for col in seq.columns or []:
        col.external_id = truncate(col.external_id, EXTERNAL_ID_MAX)
        col.name = truncate(col.name, SEQUENCE_COLUMN_NAME_MAX)
        col.description = truncate(col.description, SEQUENCE_COLUMN_DESCRIPTION_MAX)
        col.metadata, col_bytes = sanitize_metadata(
            col.metadata,
            SEQUENCE_COLUMN_METADATA_MAX_PER_KEY,
            SEQUENCE_COLUMN_METADATA_MAX_BYTES,
            SEQUENCE_COLUMN_METADATA_MAX_BYTES,
            min(SEQUENCE_COLUMN_METADATA_MAX_BYTES, SEQUENCE_METADATA_MAX_BYTES_TOTAL - total),
        )
        total += col_bytes


def verify_sequence(seq: SequenceCreate) -> ResourceType | None:
    """Return the first field of ``seq`` breaking a limit, or None."""
    if not check_length(seq.external_id, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if not check_length(seq.name, SEQUENCE_NAME_MAX):
        return ResourceType.NAME
    if seq.asset_id is not None and seq.asset_id < 1:
        return ResourceType.ASSET_ID
    if not check_length(seq.description, SEQUENCE_DESCRIPTION_MAX):
        return ResourceType.DESCRIPTION
    if seq.data_set_id is not None and seq.data_set_id < 1:
        return ResourceType.DATA_SET_ID
    ok, total = verify_metadata(
        seq.metadata,
        SEQUENCE_METADATA_MAX_PER_KEY,
        SEQUENCE_METADATA_MAX_BYTES,
        SEQUENCE_METADATA_MAX_BYTES,
        SEQUENCE_METADATA_MAX_BYTES,
    )
    if not ok:
        return ResourceType.METADATA
    if not seq.columns:
        return ResourceType.SEQUENCE_COLUMNS
    for col in seq.columns:
        if col.external_id is None or not check_length(col.external_id, EXTERNAL_ID_MAX):
            return ResourceType.COLUMN_EXTERNAL_ID
        if not check_length(col.name, SEQUENCE_COLUMN_NAME_MAX):
            return ResourceType.COLUMN_NAME
        if not check_length(col.description, SEQUENCE_COLUMN_DESCRIPTION_MAX):
            return ResourceType.COLUMN_DESCRIPTION
        ok, col_bytes = verify_metadata(
            col.metadata,
            SEQUENCE_COLUMN_METADATA_MAX_PER_KEY,
            SEQUENCE_COLUMN_METADATA_MAX_BYTES,
            SEQUENCE_COLUMN_METADATA_MAX_BYTES,
            min(SEQUENCE_COLUMN_METADATA_MAX_BYTES, SEQUENCE_METADATA_MAX_BYTES_TOTAL - total),
        )
        if not ok:
            return ResourceType.COLUMN_METADATA
        total += col_bytes
    if total > SEQUENCE_METADATA_MAX_BYTES_TOTAL:
        return ResourceType.METADATA
    return None


_SEQUENCE_DISTINCT = [
    DistinctResource[SequenceCreate](
        "Duplicate external ids",
        ResourceType.EXTERNAL_ID,
        lambda seq: Identity.of(seq.external_id) if seq.external_id is not None else None,
    )
]


def clean_sequence_request(
    sequences: Iterable[SequenceCreate], mode: SanitationMode
) -> tuple[list[SequenceCreate], list[CogniteError]]:
    """Clean sequence creates, also removing sequences with repeated column ids."""
    result, errors = clean_request(
        _SEQUENCE_DISTINCT, sequences, verify_sequence, sanitize_sequence, mode
    )
    if mode is SanitationMode.NONE:
        return result, errors

    with_duplicate_columns = []
    for seq in result:
        column_ids = [col.external_id for col in seq.columns or []]
        if len(set(column_ids)) != len(column_ids):
            with_duplicate_columns.append(seq)

    if with_duplicate_columns:
        result = [seq for seq in result if not any(seq is dup for dup in with_duplicate_columns)]
        errors.append(
            CogniteError(
                type=ErrorType.ITEM_DUPLICATED,
                resource=ResourceType.COLUMN_EXTERNAL_ID,
                skipped=with_duplicate_columns,
                message="Duplicate column externalId",
                status=409,
            )
        )
    return result, errors


def _sanitize_row_value(value: RowValue) -> RowValue:
    if isinstance(value, str):
        return truncate(value, STRING_LENGTH_MAX)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return clamp(value)
    return value


def sanitize_sequence_row(row: SequenceRow) -> None:
    if row.values is not None:
        row.values = [_sanitize_row_value(value) for value in row.values]


def sanitize_sequence_data(seq: SequenceDataCreate) -> None:
    """Repair a row insert in place."""
    seq.external_id = truncate(seq.external_id, EXTERNAL_ID_MAX)
    for row in seq.rows or []:
        sanitize_sequence_row(row)


def verify_sequence_data(seq: SequenceDataCreate) -> ResourceType | None:
    if (seq.external_id is None and seq.id is None) or not check_length(
        seq.external_id, EXTERNAL_ID_MAX
    ):
        return ResourceType.EXTERNAL_ID
    if not seq.columns:
        return ResourceType.SEQUENCE_COLUMNS
    if not seq.rows:
        return ResourceType.SEQUENCE_ROWS
    return None


def verify_sequence_row(row: SequenceRow, seq: SequenceDataCreate) -> ResourceType | None:
    """Check one row against the column list of its insert."""
    if row.values is None or len(row.values) != len(seq.columns or []):
        return ResourceType.SEQUENCE_ROW_VALUES
    if row.row_number < 0:
        return ResourceType.SEQUENCE_ROW_NUMBER
    for value in row.values:
        if isinstance(value, float) and (
            not math.isfinite(value) or value > NUMERIC_VALUE_MAX or value < NUMERIC_VALUE_MIN
        ):
            return ResourceType.SEQUENCE_ROW_VALUES
        if isinstance(value, str) and not check_length(value, STRING_LENGTH_MAX):
            return ResourceType.SEQUENCE_ROW_VALUES
    return None


_SEQUENCE_DATA_DISTINCT = [
    DistinctResource[SequenceDataCreate](
        "Duplicate internal or external ids", ResourceType.ID, lambda seq: seq.identity
    )
]


def clean_sequence_data_request(
    sequences: Iterable[SequenceDataCreate], mode: SanitationMode
) -> tuple[list[SequenceDataCreate], list[CogniteError]]:
    """Clean row inserts.

    On top of the per-insert checks, every row is verified against its
    insert's columns. Bad rows and rows repeating a row number are removed
    individually; an insert left without rows, or with repeated or missing
    column ids, is removed as a whole. Skipped entries are
    ``SequenceRowError`` instances.

    Args:
        sequences: Row inserts to clean
        mode: Sanitation mode

    Returns:
        Tuple of (accepted inserts, errors)
    """
    result, errors = clean_request(
        _SEQUENCE_DATA_DISTINCT, sequences, verify_sequence_data, sanitize_sequence_data, mode
    )
    errors = [
        error.replace_skipped(lambda seq: SequenceRowError(seq.identity, list(seq.rows or [])))
        for error in errors
    ]
    if mode is SanitationMode.NONE:
        return result, errors

    accepted: list[SequenceDataCreate] = []
    bad_sequences: dict[ResourceType, list[SequenceRowError]] = {}
    bad_rows: dict[ResourceType, list[SequenceRowError]] = {}
    duplicate_rows: list[SequenceRowError] = []
    duplicate_columns: list[SequenceRowError] = []

    for seq in result:
        idt = seq.identity
        to_add = True

        rows_by_failure: dict[ResourceType, list[SequenceRow]] = {}
        repeated: list[SequenceRow] = []
        row_numbers: set[int] = set()
        good_rows: list[SequenceRow] = []
        for row in seq.rows or []:
            keep = True
            failed = verify_sequence_row(row, seq)
            if failed is not None:
                rows_by_failure.setdefault(failed, []).append(row)
                keep = False
            if row.row_number in row_numbers:
                repeated.append(row)
                keep = False
            row_numbers.add(row.row_number)
            if keep:
                good_rows.append(row)
        seq.rows = good_rows
        if not good_rows:
            bad_sequences.setdefault(ResourceType.SEQUENCE_ROWS, []).append(
                SequenceRowError(idt, [])
            )
            to_add = False

        seen_columns: set[str] = set()
        repeated_columns: list[str] = []
        for col in seq.columns or []:
            if col is None:
                bad_sequences.setdefault(ResourceType.COLUMN_EXTERNAL_ID, []).append(
                    SequenceRowError(idt, list(seq.rows))
                )
                to_add = False
                break
            if col in seen_columns:
                repeated_columns.append(col)
                to_add = False
            seen_columns.add(col)

        if repeated_columns:
            duplicate_columns.append(SequenceRowError(idt, list(seq.rows), repeated_columns))
        if repeated:
            duplicate_rows.append(SequenceRowError(idt, repeated))
        for failed, rows in rows_by_failure.items():
            bad_rows.setdefault(failed, []).append(SequenceRowError(idt, rows))
        if to_add:
            accepted.append(seq)

    if duplicate_columns:
        errors.append(
            CogniteError(
                type=ErrorType.ITEM_DUPLICATED,
                resource=ResourceType.COLUMN_EXTERNAL_ID,
                skipped=duplicate_columns,
                message="Duplicate columns in request",
                status=409,
            )
        )
    if duplicate_rows:
        errors.append(
            CogniteError(
                type=ErrorType.ITEM_DUPLICATED,
                resource=ResourceType.SEQUENCE_ROW_NUMBER,
                skipped=duplicate_rows,
                message="Duplicate row numbers",
                status=409,
            )
        )
    for failures in (bad_sequences, bad_rows):
        for resource, skipped in failures.items():
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
