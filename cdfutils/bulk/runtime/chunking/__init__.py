"""Partitioning and throttled dispatch of bulk requests.

Architecture:
    The chunking layer consists of:
    - partitioner.py: Splits inputs into request-sized groups
    - dispatcher.py: Runs one unit per group with bounded parallelism
    - telemetry.py: Structured logging

Usage:
    Resource operations partition their input once, build one unit per
    group and hand the units to ``run_throttled``.
"""

from __future__ import annotations

from .dispatcher import run_throttled
from .partitioner import (
    chunk_by,
    chunk_by_hierarchy,
    chunk_by_keys,
    hierarchy_levels,
    partition_hierarchy,
)

__all__ = [
    "chunk_by",
    "chunk_by_keys",
    "chunk_by_hierarchy",
    "hierarchy_levels",
    "partition_hierarchy",
    "run_throttled",
]
