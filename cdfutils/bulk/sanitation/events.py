"""Sanitation rules for events."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.enums import ResourceType, SanitationMode
from ..core.identity import Identity
from ..models.events import EventCreate
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

EVENT_TYPE_MAX = 64
EVENT_DESCRIPTION_MAX = 500
EVENT_SOURCE_MAX = 128
EVENT_METADATA_MAX_PER_KEY = 128
EVENT_METADATA_MAX_PER_VALUE = 128_000
EVENT_METADATA_MAX_PAIRS = 256
EVENT_METADATA_MAX_BYTES = 200_000
EVENT_ASSET_IDS_MAX = 10_000


def sanitize_event(event: EventCreate) -> None:
    """Repair an event in place so it passes ``verify_event``."""
    event.external_id = truncate(event.external_id, EXTERNAL_ID_MAX)
    event.type = truncate(event.type, EVENT_TYPE_MAX)
    event.subtype = truncate(event.subtype, EVENT_TYPE_MAX)
    event.source = truncate(event.source, EVENT_SOURCE_MAX)
    event.description = truncate(event.description, EVENT_DESCRIPTION_MAX)
    event.metadata, _ = sanitize_metadata(
        event.metadata,
        EVENT_METADATA_MAX_PER_KEY,
        EVENT_METADATA_MAX_PAIRS,
        EVENT_METADATA_MAX_PER_VALUE,
        EVENT_METADATA_MAX_BYTES,
    )
    if event.asset_ids is not None:
        event.asset_ids = [aid for aid in event.asset_ids if aid > 0][:EVENT_ASSET_IDS_MAX]
    event.data_set_id = positive_or_none(event.data_set_id)
    if event.start_time is not None and event.start_time < 0:
        event.start_time = 0
    if event.end_time is not None and event.end_time < 0:
        event.end_time = 0
    if (
        event.start_time is not None
        and event.end_time is not None
        and event.start_time > event.end_time
    ):
        event.end_time = event.start_time


def verify_event(event: EventCreate) -> ResourceType | None:
    """Return the first field of ``event`` breaking a limit, or None."""
    if not check_length(event.external_id, EXTERNAL_ID_MAX):
        return ResourceType.EXTERNAL_ID
    if not check_length(event.type, EVENT_TYPE_MAX):
        return ResourceType.TYPE
    if not check_length(event.subtype, EVENT_TYPE_MAX):
        return ResourceType.SUB_TYPE
    if not check_length(event.source, EVENT_SOURCE_MAX):
        return ResourceType.SOURCE
    if not check_length(event.description, EVENT_DESCRIPTION_MAX):
        return ResourceType.DESCRIPTION
    ok, _ = verify_metadata(
        event.metadata,
        EVENT_METADATA_MAX_PER_KEY,
        EVENT_METADATA_MAX_PAIRS,
        EVENT_METADATA_MAX_PER_VALUE,
        EVENT_METADATA_MAX_BYTES,
    )
    if not ok:
        return ResourceType.METADATA
    if event.asset_ids is not None and (
        len(event.asset_ids) > EVENT_ASSET_IDS_MAX or any(aid < 1 for aid in event.asset_ids)
    ):
        return ResourceType.ASSET_ID
    if event.data_set_id is not None and event.data_set_id < 1:
        return ResourceType.DATA_SET_ID
    if event.start_time is not None and event.start_time < 0:
        return ResourceType.TIME_RANGE
    if event.end_time is not None and event.end_time < 0:
        return ResourceType.TIME_RANGE
    if (
        event.start_time is not None
        and event.end_time is not None
        and event.start_time > event.end_time
    ):
        return ResourceType.TIME_RANGE
    return None


_EVENT_DISTINCT = [
    DistinctResource[EventCreate](
        "Duplicate external ids",
        ResourceType.EXTERNAL_ID,
        lambda event: Identity.of(event.external_id) if event.external_id is not None else None,
    )
]


def clean_event_request(
    events: Iterable[EventCreate], mode: SanitationMode
) -> tuple[list[EventCreate], list[CogniteError]]:
    """Clean a list of event creates. See ``clean_request``."""
    return clean_request(_EVENT_DISTINCT, events, verify_event, sanitize_event, mode)
