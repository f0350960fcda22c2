"""Unit tests for event operations, dispatch limits, duplicates and cancellation."""

from __future__ import annotations

import pytest

from cdfutils.bulk import (
    CancellationToken,
    ErrorType,
    EventCreate,
    ResponseError,
    RetryPolicy,
    TransportError,
)


def _events(count: int) -> list[EventCreate]:
    return [EventCreate(external_id=f"e{i}", start_time=1000, end_time=2000) for i in range(count)]


class TestEventsDispatch:
    """Test chunking and parallelism of event writes."""

    @pytest.mark.asyncio
    async def test_250_events_in_3_batches_with_bounded_parallelism(self, writer, transport):
        """Test 250 records, chunk size 100, parallelism 4."""
        transport.delay = 0.01

        result = await writer.events.ensure_exists(_events(250), chunk_size=100, parallelism=4)

        assert result.errors == []
        assert len(result.results) == 250
        creates = transport.calls_to("events/create")
        assert sorted(len(payload["items"]) for payload in creates) == [50, 100, 100]
        assert transport.max_in_flight <= 4

    @pytest.mark.asyncio
    async def test_cancellation_after_first_batch(self, writer, transport):
        """Test that batches after cancellation contribute nothing."""
        token = CancellationToken()

        def cancel_after_create(endpoint, payload):
            if endpoint == "events/create":
                token.cancel()

        transport.hooks.append(cancel_after_create)

        result = await writer.events.ensure_exists(_events(300), chunk_size=100, parallelism=1, token=token)

        assert len(result.results) == 100
        assert result.errors == []
        assert len(transport.calls_to("events/create")) == 1
        assert len(transport.external_ids("events")) == 100


class TestEventsDuplicates:
    """Test handling of external ids that already exist."""

    @pytest.mark.asyncio
    async def test_keep_duplicates_resolves_existing(self, writer, transport):
        """Test 2 of 10 reported as existing are looked up and returned."""
        raced = {"e3", "e7"}

        def concurrent_writer(endpoint, payload):
            # Another writer creates two of the events between lookup and create
            if endpoint == "events/create" and not raced & transport.external_ids("events"):
                for xid in sorted(raced):
                    transport.seed("events", externalId=xid)

        transport.hooks.append(concurrent_writer)

        result = await writer.events.ensure_exists(
            _events(10), retry_policy=RetryPolicy.on_error_keep_duplicates()
        )

        assert result.errors == []
        assert {event.external_id for event in result.results} == {f"e{i}" for i in range(10)}
        assert len(transport.calls_to("events/byids")) == 2

    @pytest.mark.asyncio
    async def test_without_keep_duplicates_existing_are_errors(self, writer, transport):
        """Test that ItemExists errors are kept under the plain on_error policy."""
        events = _events(10)

        def concurrent_writer(endpoint, payload):
            if endpoint == "events/create" and "e3" not in transport.external_ids("events"):
                transport.seed("events", externalId="e3")

        transport.hooks.append(concurrent_writer)

        result = await writer.events.ensure_exists(events)

        assert len(result.results) == 9
        [error] = result.errors
        assert error.type is ErrorType.ITEM_EXISTS
        assert error.skipped == [events[3]]


class TestEventsRetryPolicy:
    """Test retry policies on fatal failures."""

    @pytest.mark.asyncio
    async def test_no_retry_skips_whole_batch(self, writer, transport):
        """Test that RetryPolicy.none reports the failed batch as skipped."""
        events = _events(3)
        transport.fail("events/create", TransportError("connection reset"))

        result = await writer.events.ensure_exists(events, retry_policy=RetryPolicy.none())

        assert result.results == []
        [error] = result.errors
        assert error.is_fatal
        assert error.skipped == events
        assert len(transport.calls_to("events/create")) == 1

    @pytest.mark.asyncio
    async def test_wait_on_fatal_resends(self, writer, transport):
        """Test that RetryPolicy.on_fatal resends after a fatal failure."""
        transport.fail("events/create", ResponseError("Internal error", 500))

        result = await writer.events.ensure_exists(_events(3), retry_policy=RetryPolicy.on_fatal())

        assert len(result.results) == 3
        [error] = result.errors
        assert error.is_fatal
        assert error.skipped_count == 0
        assert len(transport.calls_to("events/create")) == 2

    @pytest.mark.asyncio
    async def test_lookup_failure_is_reported(self, writer, transport):
        """Test that a failed lookup skips the chunk instead of raising."""
        events = _events(2)
        transport.fail("events/byids", TransportError("timeout"))

        result = await writer.events.ensure_exists(events)

        assert result.results == []
        [error] = result.errors
        assert error.is_fatal
        assert error.skipped == events
        assert transport.calls_to("events/create") == []

    @pytest.mark.asyncio
    async def test_bad_chunk_size_raises(self, writer):
        """Test that a non-positive chunk size is a programmer error."""
        with pytest.raises(ValueError):
            await writer.events.ensure_exists(_events(1), chunk_size=0)
