"""Client-side validation and repair of records against server limits.

Architecture:
    - common.py: byte-safe truncation, metadata budgets, generic clean_request
    - assets.py, events.py, timeseries.py, sequences.py, datapoints.py:
      per-kind sanitize/verify rules and clean_*_request entry points

Usage:
    Every write operation calls the matching clean_*_request once, before
    the first request is sent. Records rejected here never reach the server.
"""

from .assets import clean_asset_request, clean_asset_update_request
from .common import (
    DistinctResource,
    clean_request,
    limit_utf8_byte_count,
    sanitize_metadata,
    truncate,
    verify_metadata,
)
from .datapoints import clean_datapoints_request
from .events import clean_event_request
from .sequences import clean_sequence_data_request, clean_sequence_request
from .timeseries import clean_time_series_request, clean_time_series_update_request

__all__ = [
    "DistinctResource",
    "clean_request",
    "limit_utf8_byte_count",
    "sanitize_metadata",
    "truncate",
    "verify_metadata",
    "clean_asset_request",
    "clean_asset_update_request",
    "clean_event_request",
    "clean_time_series_request",
    "clean_time_series_update_request",
    "clean_sequence_request",
    "clean_sequence_data_request",
    "clean_datapoints_request",
]
