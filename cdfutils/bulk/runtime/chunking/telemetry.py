"""Structured logging for partitioning and dispatch.

This module provides telemetry hooks for the chunking layer, emitting one
structured record per plan, per failed unit and per completed dispatch.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_chunk_plan(
    *,
    operation: str,
    total_items: int,
    total_chunks: int,
    chunk_size: int,
) -> None:
    """Log creation of a chunk plan.

    Args:
        operation: Operation being partitioned, e.g. ``"assets.create"``
        total_items: Number of items or values partitioned
        total_chunks: Number of chunks produced
        chunk_size: Maximum size of each chunk
    """
    logger.debug(
        "chunk_plan_created",
        extra={
            "operation": operation,
            "total_items": total_items,
            "total_chunks": total_chunks,
            "chunk_size": chunk_size,
        },
    )


def log_unit_error(*, unit_index: int, error_type: str, error_message: str) -> None:
    """Log a unit that raised instead of returning.

    Args:
        unit_index: Zero-based index of the unit
        error_type: Exception class name
        error_message: Exception message
    """
    logger.error(
        "dispatch_unit_error",
        extra={
            "unit_index": unit_index,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_dispatch_complete(
    *,
    total_units: int,
    completed_units: int,
    parallelism: int,
    cancelled: bool,
    total_latency_ms: float | None = None,
) -> None:
    """Log the end of a throttled dispatch.

    Args:
        total_units: Units handed to the dispatcher
        completed_units: Units that ran to completion
        parallelism: Maximum units in flight
        cancelled: Whether cancellation stopped new units from starting
        total_latency_ms: Wall time of the dispatch in milliseconds
    """
    logger.debug(
        "dispatch_complete",
        extra={
            "total_units": total_units,
            "completed_units": completed_units,
            "parallelism": parallelism,
            "cancelled": cancelled,
            "total_latency_ms": total_latency_ms,
        },
    )
