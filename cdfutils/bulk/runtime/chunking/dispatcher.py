"""Bounded-parallelism execution of independent units of work.

This module provides ``run_throttled``, which keeps at most a fixed number
of units in flight and starts the next one as soon as any finishes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from time import perf_counter
from typing import TYPE_CHECKING, TypeVar

from .telemetry import log_dispatch_complete, log_unit_error

if TYPE_CHECKING:
    from ..cancellation import CancellationToken

T = TypeVar("T")


async def run_throttled(
    units: Sequence[Callable[[], Awaitable[T]]],
    parallelism: int,
    *,
    progress: Callable[[int], None] | None = None,
    token: CancellationToken | None = None,
) -> list[T]:
    """Run ``units`` with at most ``parallelism`` in flight.

    Once ``token`` is cancelled, or once any unit has raised, no further
    unit is started; units already running are awaited. No task is left
    running when this coroutine returns or raises.

    Args:
        units: Zero-argument callables returning awaitables
        parallelism: Maximum number of units in flight
        progress: Called with the running count after each successful unit
        token: Optional cancellation token

    Returns:
        Results of the units that completed, in unit order

    Raises:
        ValueError: If parallelism is less than 1
        Exception: The first exception raised by a unit, after all started
            units have finished
    """
    if parallelism < 1:
        raise ValueError(f"parallelism must be at least 1, got {parallelism}")

    start = perf_counter()
    pending: dict[asyncio.Future[T], int] = {}
    results: dict[int, T] = {}
    first_error: BaseException | None = None
    next_index = 0
    completed = 0

    def can_start() -> bool:
        return (
            next_index < len(units)
            and first_error is None
            and not (token is not None and token.is_cancelled)
        )

    try:
        while True:
            while len(pending) < parallelism and can_start():
                pending[asyncio.ensure_future(units[next_index]())] = next_index
                next_index += 1
            if not pending:
                break

            done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                index = pending.pop(task)
                if task.cancelled():
                    continue
                error = task.exception()
                if error is not None:
                    log_unit_error(
                        unit_index=index,
                        error_type=type(error).__name__,
                        error_message=str(error),
                    )
                    if first_error is None:
                        first_error = error
                    continue
                results[index] = task.result()
                completed += 1
                if progress is not None:
                    progress(completed)
    except asyncio.CancelledError:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise

    log_dispatch_complete(
        total_units=len(units),
        completed_units=completed,
        parallelism=parallelism,
        cancelled=token is not None and token.is_cancelled,
        total_latency_ms=(perf_counter() - start) * 1000.0,
    )
    if first_error is not None:
        raise first_error
    return [results[index] for index in sorted(results)]
