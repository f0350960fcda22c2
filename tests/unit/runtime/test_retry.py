"""Unit tests for RetryController."""

from __future__ import annotations

import pytest

from cdfutils.bulk import (
    AssetCreate,
    CancellationToken,
    ErrorType,
    EventCreate,
    RequestType,
    ResourceType,
    ResponseError,
    RetryPolicy,
    TransportError,
)
from cdfutils.bulk.results.handlers import (
    asset_create_affected,
    clean_from_error,
    event_affected,
    external_identity,
)
from cdfutils.bulk.runtime.retry import RetryController


def _events(*xids: str) -> list[EventCreate]:
    return [EventCreate(external_id=xid) for xid in xids]


def _clean(error, working):
    return clean_from_error(error, working, event_affected, external_identity)


def _controller(send, policy=None, **kwargs) -> RetryController:
    return RetryController(
        operation="events.create",
        request_type=RequestType.CREATE_EVENTS,
        send=send,
        clean=_clean,
        policy=policy or RetryPolicy.on_error(),
        fatal_retry_delay=0.0,
        **kwargs,
    )


def _duplicated(*xids: str) -> ResponseError:
    return ResponseError("Duplicated", 409, duplicated=[{"externalId": xid} for xid in xids])


class TestRetryController:
    """Test the strip-and-resend loop."""

    @pytest.mark.asyncio
    async def test_success(self):
        async def send(batch):
            return [event.external_id for event in batch]

        result = await _controller(send).run(_events("a", "b"))

        assert result.results == ["a", "b"]
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_strips_offending_record(self):
        sent: list[list[str]] = []

        async def send(batch):
            sent.append([event.external_id for event in batch])
            if len(sent) == 1:
                raise _duplicated("b")
            return sent[-1]

        events = _events("a", "b", "c")
        result = await _controller(send).run(events)

        assert sent == [["a", "b", "c"], ["a", "c"]]
        assert result.results == ["a", "c"]
        [error] = result.errors
        assert error.type is ErrorType.ITEM_EXISTS
        assert error.skipped == [events[1]]

    @pytest.mark.asyncio
    async def test_terminates_when_every_round_fails(self):
        """Test that the loop runs at most once per record."""
        calls = 0

        async def send(batch):
            nonlocal calls
            calls += 1
            raise _duplicated(batch[0].external_id)

        result = await _controller(send).run(_events(*"abcde"))

        assert calls == 5
        assert result.results is None
        assert sum(error.skipped_count for error in result.errors) == 5

    @pytest.mark.asyncio
    async def test_unrecognized_error_implicates_all(self):
        calls = 0

        async def send(batch):
            nonlocal calls
            calls += 1
            raise ResponseError("Something odd", 400)

        events = _events("a", "b")
        result = await _controller(send).run(events)

        assert calls == 1
        [error] = result.errors
        assert error.skipped == events

    @pytest.mark.asyncio
    async def test_no_retry_skips_whole_set(self):
        async def send(batch):
            raise _duplicated("a")

        events = _events("a", "b")
        result = await _controller(send, RetryPolicy.none()).run(events)

        [error] = result.errors
        assert error.skipped == events

    @pytest.mark.asyncio
    async def test_fatal_without_wait_drops_batch(self):
        async def send(batch):
            raise TransportError("reset")

        events = _events("a")
        result = await _controller(send).run(events)

        [error] = result.errors
        assert error.is_fatal
        assert error.skipped == events

    @pytest.mark.asyncio
    async def test_wait_on_fatal_stops_on_cancel(self):
        token = CancellationToken()
        calls = 0

        async def send(batch):
            nonlocal calls
            calls += 1
            if calls == 3:
                token.cancel()
            raise TransportError("reset")

        result = await _controller(send, RetryPolicy.on_fatal(), token=token).run(_events("a"))

        assert calls == 3
        assert len(result.errors) == 3
        assert all(error.skipped_count == 0 for error in result.errors)

    @pytest.mark.asyncio
    async def test_missing_reference_is_stripped(self):
        calls = 0

        async def send(batch):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ResponseError("Asset ids not found", 400, missing=[{"id": 1}])
            return [event.external_id for event in batch]

        events = [EventCreate(external_id="a", asset_ids=[1]), EventCreate(external_id="b")]
        result = await _controller(send).run(events)

        assert result.results == ["b"]
        [error] = result.errors
        assert error.resource is ResourceType.ASSET_ID
        assert error.skipped == [events[0]]

    @pytest.mark.asyncio
    async def test_empty_working_set_sends_nothing(self):
        async def send(batch):
            raise AssertionError("not called")

        result = await _controller(send).run([])

        assert result.results is None
        assert result.errors == []


class TestCompletion:
    """Test follow-up lookups for incomplete errors."""

    @staticmethod
    def _asset_controller(send, complete) -> RetryController:
        return RetryController(
            operation="assets.create",
            request_type=RequestType.CREATE_ASSETS,
            send=send,
            clean=lambda error, working: clean_from_error(error, working, asset_create_affected, external_identity),
            complete=complete,
            policy=RetryPolicy.on_error(),
        )

    @pytest.mark.asyncio
    async def test_failed_completion_implicates_all(self):
        async def send(batch):
            raise ResponseError("Reference to unknown parent with externalId p", 400)

        async def complete(error, working):
            raise TransportError("lookup failed")

        assets = [AssetCreate(external_id="a", name="a", parent_external_id="x")]
        result = await self._asset_controller(send, complete).run(assets)

        [error] = result.errors
        assert error.skipped == assets
        assert error.complete

    @pytest.mark.asyncio
    async def test_empty_completion_implicates_all(self):
        async def send(batch):
            raise ResponseError("Reference to unknown parent with externalId p", 400)

        async def complete(error, working):
            return [], working

        assets = [AssetCreate(external_id="a", name="a"), AssetCreate(external_id="b", name="b")]
        result = await self._asset_controller(send, complete).run(assets)

        [error] = result.errors
        assert error.skipped == assets
