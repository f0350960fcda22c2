"""Core enumerations shared by sanitation, classification and results.

Architecture:
    Every error the engine reports is tagged with an ErrorType (what went
    wrong) and a ResourceType (which field or subsystem it went wrong in).
    The pair is the grouping key used when results are merged, so both
    enums must be stable and hashable.

Design Decisions:
    - String enums: values serialize cleanly in logs and snapshots
    - RequestType: selects the classifier branch for a failed call
    - SanitationMode: one switch controlling repair vs. removal

Key Types:
    - ErrorType: Failure taxonomy
    - ResourceType: Field tag attached to an error
    - RequestType: Kind of remote call that failed
    - SanitationMode: How records are checked before sending
"""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    """Failure taxonomy for bulk writes."""

    ITEM_EXISTS = "item_exists"
    ITEM_MISSING = "item_missing"
    # Detected client side, inside the caller's own request
    ITEM_DUPLICATED = "item_duplicated"
    MISMATCHED_TYPE = "mismatched_type"
    # Valid payload that breaks a server rule, e.g. a hierarchy change
    ILLEGAL_ITEM = "illegal_item"
    SANITATION_FAILED = "sanitation_failed"
    FATAL_FAILURE = "fatal_failure"

    @property
    def is_fatal(self) -> bool:
        return self is ErrorType.FATAL_FAILURE


class ResourceType(str, Enum):
    """Field or subsystem that caused an error."""

    ID = "id"
    EXTERNAL_ID = "external_id"
    ASSET_ID = "asset_id"
    PARENT_ID = "parent_id"
    PARENT_EXTERNAL_ID = "parent_external_id"
    DATA_SET_ID = "data_set_id"
    LEGACY_NAME = "legacy_name"
    NAME = "name"
    TYPE = "type"
    SUB_TYPE = "sub_type"
    SOURCE = "source"
    METADATA = "metadata"
    LABELS = "labels"
    DESCRIPTION = "description"
    TIME_RANGE = "time_range"
    UNIT = "unit"
    SEQUENCE_COLUMNS = "sequence_columns"
    COLUMN_NAME = "column_name"
    COLUMN_DESCRIPTION = "column_description"
    COLUMN_EXTERNAL_ID = "column_external_id"
    COLUMN_METADATA = "column_metadata"
    SEQUENCE_ROWS = "sequence_rows"
    SEQUENCE_ROW = "sequence_row"
    SEQUENCE_ROW_VALUES = "sequence_row_values"
    SEQUENCE_ROW_NUMBER = "sequence_row_number"
    DATA_POINT_VALUE = "data_point_value"
    DATA_POINT_TIMESTAMP = "data_point_timestamp"
    UPDATE = "update"
    INSTANCE_ID = "instance_id"
    NONE = "none"


class RequestType(str, Enum):
    """Remote call kinds understood by the error classifier."""

    CREATE_ASSETS = "create_assets"
    UPDATE_ASSETS = "update_assets"
    CREATE_TIME_SERIES = "create_time_series"
    UPDATE_TIME_SERIES = "update_time_series"
    CREATE_EVENTS = "create_events"
    CREATE_SEQUENCES = "create_sequences"
    CREATE_SEQUENCE_ROWS = "create_sequence_rows"
    CREATE_DATAPOINTS = "create_datapoints"


class SanitationMode(str, Enum):
    """How records are checked against server limits before sending.

    NONE leaves records untouched. CLEAN repairs fields in place and then
    verifies. REMOVE verifies only and drops records that fail.
    """

    NONE = "none"
    CLEAN = "clean"
    REMOVE = "remove"
