"""Unit tests for data point inserts."""

from __future__ import annotations

import math

import pytest

from cdfutils.bulk import Datapoint, ErrorType, Identity, ResourceType

TS = 1_700_000_000_000


class TestDatapointsInsert:
    """Test data point inserts against numeric and string time series."""

    @pytest.mark.asyncio
    async def test_numeric_points(self, writer, transport):
        """Test that points are written and counted."""
        stored = transport.seed("timeseries", externalId="t1")
        points = [Datapoint.numeric(TS + i, float(i)) for i in range(4)]

        result = await writer.datapoints.insert({Identity(external_id="t1"): points})

        assert result.errors == []
        assert result.results == [Identity(external_id="t1")]
        assert [dp["value"] for dp in transport.datapoints[stored["id"]]] == [0.0, 1.0, 2.0, 3.0]
        assert writer.metrics.counters("datapoints").created == 4

    @pytest.mark.asyncio
    async def test_mismatched_values_are_split_out(self, writer, transport):
        """Test that only points of the wrong kind are skipped."""
        numeric = transport.seed("timeseries", externalId="t1")
        text = transport.seed("timeseries", externalId="s1", isString=True)
        wrong = Datapoint.string(TS + 1, "bad")

        result = await writer.datapoints.insert(
            {
                Identity(external_id="t1"): [Datapoint.numeric(TS, 1.0), wrong],
                Identity(external_id="s1"): [Datapoint.string(TS, "ok")],
            }
        )

        assert result.results == [Identity(external_id="t1"), Identity(external_id="s1")]
        [error] = result.errors
        assert error.type is ErrorType.MISMATCHED_TYPE
        assert error.resource is ResourceType.DATA_POINT_VALUE
        [entry] = error.skipped
        assert entry.identity == Identity(external_id="t1")
        assert entry.datapoints == [wrong]
        assert len(transport.datapoints[numeric["id"]]) == 1
        assert len(transport.datapoints[text["id"]]) == 1

    @pytest.mark.asyncio
    async def test_missing_time_series(self, writer, transport):
        """Test that points for an unknown time series are skipped."""
        transport.seed("timeseries", externalId="t1")

        result = await writer.datapoints.insert(
            [
                (Identity(external_id="t1"), [Datapoint.numeric(TS, 1.0)]),
                (Identity(external_id="nope"), [Datapoint.numeric(TS, 1.0)]),
            ]
        )

        assert result.results == [Identity(external_id="t1")]
        [error] = result.errors
        assert error.type is ErrorType.ITEM_MISSING
        assert error.values == [Identity(external_id="nope")]
        assert writer.metrics.counters("datapoints").skipped == 1

    @pytest.mark.asyncio
    async def test_non_finite_replacement(self, writer, transport):
        """Test that NaN is replaced when a replacement is given."""
        stored = transport.seed("timeseries", externalId="t1")

        result = await writer.datapoints.insert(
            {Identity(external_id="t1"): [Datapoint.numeric(TS, math.nan), Datapoint.numeric(TS + 1, 2.0)]},
            non_finite_replacement=0.0,
        )

        assert result.errors == []
        assert [dp["value"] for dp in transport.datapoints[stored["id"]]] == [0.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_finite_removed_without_replacement(self, writer, transport):
        """Test that NaN is reported as a sanitation failure."""
        stored = transport.seed("timeseries", externalId="t1")

        result = await writer.datapoints.insert(
            {Identity(external_id="t1"): [Datapoint.numeric(TS, math.inf), Datapoint.numeric(TS + 1, 2.0)]}
        )

        [error] = result.errors
        assert error.type is ErrorType.SANITATION_FAILED
        assert error.resource is ResourceType.DATA_POINT_VALUE
        assert [dp["value"] for dp in transport.datapoints[stored["id"]]] == [2.0]

    @pytest.mark.asyncio
    async def test_chunked_by_keys_and_values(self, writer, transport):
        """Test that requests respect both the series and the point limits."""
        for xid in ("a", "b", "c"):
            transport.seed("timeseries", externalId=xid)
        points = {Identity(external_id=xid): [Datapoint.numeric(TS + i, 1.0) for i in range(3)] for xid in "abc"}

        result = await writer.datapoints.insert(points, key_chunk_size=2, value_chunk_size=4)

        assert result.errors == []
        for payload in transport.calls_to("datapoints/insert"):
            assert len(payload["items"]) <= 2
            assert sum(len(item["datapoints"]) for item in payload["items"]) <= 4
        assert writer.metrics.counters("datapoints").created == 9
