"""Execution machinery: partitioning, dispatch, cancellation, retry and metrics."""

from .cancellation import CancellationToken
from .chunking import (
    chunk_by,
    chunk_by_hierarchy,
    chunk_by_keys,
    hierarchy_levels,
    partition_hierarchy,
    run_throttled,
)
from .metrics import ResourceCounters, WriteMetrics
from .retry import RetryController

__all__ = [
    "CancellationToken",
    "RetryController",
    "ResourceCounters",
    "WriteMetrics",
    "chunk_by",
    "chunk_by_hierarchy",
    "chunk_by_keys",
    "hierarchy_levels",
    "partition_hierarchy",
    "run_throttled",
]
