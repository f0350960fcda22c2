"""Cooperative cancellation shared by dispatch, retry and backoff waits."""

from __future__ import annotations

import asyncio
import contextlib


class CancellationToken:
    """Signal that no further remote calls should be started.

    Cancellation is cooperative: calls already in flight finish normally
    and their results are kept. Backoff waits return early.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep ``delay`` seconds or until cancelled.

        Returns:
            True if the sleep ended because of cancellation
        """
        if delay <= 0:
            return self.is_cancelled
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        return self.is_cancelled
