"""Unit tests for CancellationToken."""

from __future__ import annotations

import asyncio
import time

import pytest

from cdfutils.bulk import CancellationToken


class TestCancellationToken:
    """Test cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_sleep_returns_early(self):
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        start = time.perf_counter()
        cancelled = await token.sleep(5.0)

        assert cancelled
        assert time.perf_counter() - start < 1.0

    @pytest.mark.asyncio
    async def test_sleep_full_delay(self):
        token = CancellationToken()

        assert not await token.sleep(0.01)
        assert not token.is_cancelled

    @pytest.mark.asyncio
    async def test_zero_delay(self):
        token = CancellationToken()
        token.cancel()

        assert await token.sleep(0)
        await token.wait()
