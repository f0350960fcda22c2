"""Sanitation rules for time series creates and updates."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.enums import ResourceType, SanitationMode
from ..core.identity import Identity
from ..models.timeseries import TimeSeriesCreate, TimeSeriesUpdateItem
from ..results.error import CogniteError
from .common import (
    EXTERNAL_ID_MAX,
    DistinctResource,
    check_length,
    clean_request,
    positive_or_none,
    sanitize_metadata,
    truncate,
    verify_metadata,
)

TIME_SERIES_NAME_MAX = 255
TIME_SERIES_DESCRIPTION_MAX = 1000
TIME_SERIES_UNIT_MAX = 32
TIME_SERIES_METADATA_MAX_PER_KEY = 128
TIME_SERIES_METADATA_MAX_PER_VALUE = 10_000
TIME_SERIES_METADATA_MAX_BYTES = 10_000
TIME_SERIES_METADATA_MAX_PAIRS = 256
LEGACY_NAME_MAX = 255


def _sanitize_ts_metadata(metadata):
    result, _ = sanitize_metadata(
        metadata,
        TIME_SERIES_METADATA_MAX_PER_KEY,
        TIME_SERIES_METADATA_MAX_PAIRS,
        TIME_SERIES_METADATA_MAX_PER_VALUE,
        TIME_SERIES_METADATA_MAX_BYTES,
    )
    return result


def _verify_ts_metadata(metadata) -> bool:
    ok, _ = verify_metadata(
        metadata,
        TIME_SERIES_METADATA_MAX_PER_KEY,
        TIME_SERIES_METADATA_MAX_PAIRS,
        TIME_SERIES_METADATA_MAX_PER_VALUE,
        TIME_SERIES_METADATA_MAX_BYTES,
    )
    return ok


def sanitize_time_series(ts: TimeSeriesCreate) -> None:
    """Repair a time series create in place so it passes ``verify_time_series``."""
    ts.external_id = truncate(ts.external_id, EXTERNAL_ID_MAX)
    ts.name = truncate(ts.name, TIME_SERIES_NAME_MAX)
    ts.asset_id = positive_or_none(ts.asset_id)
    ts.description = truncate(ts.description, TIME_SERIES_DESCRIPTION_MAX)
    ts.data_set_id = positive_or_none(ts.data_set_id)
    ts.metadata = _sanitize_ts_metadata(ts.metadata)
    ts.unit = truncate(ts.unit, TIME_SERIES_UNIT_MAX)
    ts.legacy_name = truncate(ts.legacy_name, LEGACY_NAME_MAX)


def verify_time_series(ts: TimeSeriesCreate) -> ResourceType | None:
    """Return the first field of ``ts`` breaking a limit, or None."""
    if not check_length(ts.external_id, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if not check_length(ts.name, TIME_SERIES_NAME_MAX):
        return ResourceType.NAME
    if ts.asset_id is not None and ts.asset_id < 1:
        return ResourceType.ASSET_ID
    if not check_length(ts.description, TIME_SERIES_DESCRIPTION_MAX):
        return ResourceType.DESCRIPTION
    if ts.data_set_id is not None and ts.data_set_id < 1:
        return ResourceType.DATA_SET_ID
    if not _verify_ts_metadata(ts.metadata):
        return ResourceType.METADATA
    if not check_length(ts.unit, TIME_SERIES_UNIT_MAX):
        return ResourceType.UNIT
    if not check_length(ts.legacy_name, LEGACY_NAME_MAX):
        return ResourceType.LEGACY_NAME
    return None


_TIME_SERIES_DISTINCT = [
    DistinctResource[TimeSeriesCreate](
        "Duplicate external ids",
        ResourceType.EXTERNAL_ID,
        lambda ts: Identity.of(ts.external_id) if ts.external_id is not None else None,
    ),
    DistinctResource[TimeSeriesCreate](
        "Duplicate legacy names",
        ResourceType.LEGACY_NAME,
        lambda ts: Identity.of(ts.legacy_name) if ts.legacy_name is not None else None,
    ),
]


def clean_time_series_request(
    items: Iterable[TimeSeriesCreate], mode: SanitationMode
) -> tuple[list[TimeSeriesCreate], list[CogniteError]]:
    """Clean a list of time series creates. See ``clean_request``."""
    return clean_request(
        _TIME_SERIES_DISTINCT, items, verify_time_series, sanitize_time_series, mode
    )


def sanitize_time_series_update(item: TimeSeriesUpdateItem) -> None:
    """Repair a time series update in place."""
    if item.id is None:
        item.external_id = truncate(item.external_id, EXTERNAL_ID_MAX)
    update = item.update
    if update.external_id is not None:
        update.external_id.set = truncate(update.external_id.set, EXTERNAL_ID_MAX)
    if update.name is not None:
        update.name.set = truncate(update.name.set, TIME_SERIES_NAME_MAX)
    if update.asset_id is not None and update.asset_id.set is not None and update.asset_id.set < 1:
        update.asset_id = None
    if update.description is not None:
        update.description.set = truncate(update.description.set, TIME_SERIES_DESCRIPTION_MAX)
    if update.data_set_id is not None and update.data_set_id.set is not None and update.data_set_id.set < 1:
        update.data_set_id = None
    if update.metadata is not None:
        update.metadata.add = _sanitize_ts_metadata(update.metadata.add)
        update.metadata.set = _sanitize_ts_metadata(update.metadata.set)
    if update.unit is not None:
        update.unit.set = truncate(update.unit.set, TIME_SERIES_UNIT_MAX)


def verify_time_series_update(item: TimeSeriesUpdateItem) -> ResourceType | None:
    """Return the first field of a time series update breaking a limit, or None."""
    if not check_length(item.external_id, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if item.id is not None and item.id < 1:
        return ResourceType.ID
    if (item.id is None) == (item.external_id is None):
        return ResourceType.ID

    update = item.update
    if update.is_empty():
        return ResourceType.UPDATE
    if update.external_id is not None and not check_length(update.external_id.set, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if update.name is not None and not check_length(update.name.set, TIME_SERIES_NAME_MAX):
        return ResourceType.NAME
    if update.asset_id is not None and update.asset_id.set is not None and update.asset_id.set < 1:
        return ResourceType.ASSET_ID
    if update.description is not None and not check_length(
        update.description.set, TIME_SERIES_DESCRIPTION_MAX
    ):
        return ResourceType.DESCRIPTION
    if update.data_set_id is not None and update.data_set_id.set is not None and update.data_set_id.set < 1:
        return ResourceType.DATA_SET_ID
    if update.metadata is not None and not (
        _verify_ts_metadata(update.metadata.set) and _verify_ts_metadata(update.metadata.add)
    ):
        return ResourceType.METADATA
    if update.unit is not None and not check_length(update.unit.set, TIME_SERIES_UNIT_MAX):
        return ResourceType.UNIT
    return None


_TIME_SERIES_UPDATE_DISTINCT = [
    DistinctResource[TimeSeriesUpdateItem]("Duplicate ids", ResourceType.ID, lambda item: item.identity)
]


def clean_time_series_update_request(
    items: Iterable[TimeSeriesUpdateItem], mode: SanitationMode
) -> tuple[list[TimeSeriesUpdateItem], list[CogniteError]]:
    """Clean a list of time series updates. See ``clean_request``."""
    return clean_request(
        _TIME_SERIES_UPDATE_DISTINCT,
        items,
        verify_time_series_update,
        sanitize_time_series_update,
        mode,
    )
