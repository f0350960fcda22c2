"""Unit tests for sequences and sequence row inserts."""

from __future__ import annotations

import pytest

from cdfutils.bulk import (
    ErrorType,
    Identity,
    ResourceType,
    SequenceColumnWrite,
    SequenceCreate,
    SequenceDataCreate,
    SequenceRow,
)


def _seed_sequence(transport, xid: str = "s1") -> dict:
    return transport.seed(
        "sequences",
        externalId=xid,
        columns=[{"externalId": "a", "valueType": "DOUBLE"}, {"externalId": "b", "valueType": "STRING"}],
    )


class TestSequencesEnsureExists:
    """Test creation of sequences."""

    @pytest.mark.asyncio
    async def test_creates_missing(self, writer, transport):
        """Test that sequences are created with their columns."""
        seq = SequenceCreate(external_id="s1", columns=[SequenceColumnWrite(external_id="a")])

        result = await writer.sequences.ensure_exists([seq])

        assert result.errors == []
        assert result.results[0].columns[0].external_id == "a"
        assert transport.external_ids("sequences") == {"s1"}


class TestSequenceRows:
    """Test row inserts."""

    @pytest.mark.asyncio
    async def test_insert_rows(self, writer, transport):
        """Test that rows are written to the existing sequence."""
        stored = _seed_sequence(transport)
        rows = [SequenceRow(row_number=i, values=[float(i), f"v{i}"]) for i in range(3)]

        result = await writer.sequences.insert_rows(
            [SequenceDataCreate(external_id="s1", columns=["a", "b"], rows=rows)]
        )

        assert result.errors == []
        assert len(transport.sequence_rows[stored["id"]]) == 3
        assert writer.metrics.counters("sequence_rows").created == 3

    @pytest.mark.asyncio
    async def test_rows_split_by_row_chunk_size(self, writer, transport):
        """Test that rows of one sequence are split when they exceed the row limit."""
        stored = _seed_sequence(transport)
        rows = [SequenceRow(row_number=i, values=[1.0, "x"]) for i in range(5)]

        result = await writer.sequences.insert_rows(
            [SequenceDataCreate(external_id="s1", columns=["a", "b"], rows=rows)],
            row_chunk_size=2,
        )

        assert result.errors == []
        assert len(transport.calls_to("sequences/rows/insert")) == 3
        assert [row["rowNumber"] for row in transport.sequence_rows[stored["id"]]] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_mismatched_row_is_removed(self, writer, transport):
        """Test that only the row with a wrongly typed value is skipped."""
        stored = _seed_sequence(transport)
        bad_row = SequenceRow(row_number=1, values=[2.0, 3.0])
        rows = [SequenceRow(row_number=0, values=[1.0, "x"]), bad_row, SequenceRow(row_number=2, values=[3.0, "z"])]

        result = await writer.sequences.insert_rows(
            [SequenceDataCreate(external_id="s1", columns=["a", "b"], rows=rows)]
        )

        [error] = result.errors
        assert error.type is ErrorType.MISMATCHED_TYPE
        assert error.resource is ResourceType.SEQUENCE_ROW_VALUES
        [entry] = error.skipped
        assert entry.identity == Identity(external_id="s1")
        assert entry.rows == [bad_row]
        assert [row["rowNumber"] for row in transport.sequence_rows[stored["id"]]] == [0, 2]
        assert writer.metrics.counters("sequence_rows").skipped == 1

    @pytest.mark.asyncio
    async def test_missing_sequence_is_skipped(self, writer, transport):
        """Test that rows for an unknown sequence are reported and the rest written."""
        stored = _seed_sequence(transport)
        row = SequenceRow(row_number=0, values=[1.0, "x"])

        result = await writer.sequences.insert_rows(
            [
                SequenceDataCreate(external_id="s1", columns=["a", "b"], rows=[row]),
                SequenceDataCreate(external_id="nope", columns=["a", "b"], rows=[row]),
            ]
        )

        [error] = result.errors
        assert error.type is ErrorType.ITEM_MISSING
        assert [entry.identity for entry in error.skipped] == [Identity(external_id="nope")]
        assert len(transport.sequence_rows[stored["id"]]) == 1

    @pytest.mark.asyncio
    async def test_repeated_row_numbers_fail_sanitation(self, writer, transport):
        """Test that a repeated row number is removed before sending."""
        _seed_sequence(transport)
        rows = [SequenceRow(row_number=0, values=[1.0, "x"]), SequenceRow(row_number=0, values=[2.0, "y"])]

        result = await writer.sequences.insert_rows(
            [SequenceDataCreate(external_id="s1", columns=["a", "b"], rows=rows)]
        )

        [error] = result.errors
        assert error.type is ErrorType.ITEM_DUPLICATED
        assert error.resource is ResourceType.SEQUENCE_ROW_NUMBER
        [payload] = transport.calls_to("sequences/rows/insert")
        assert len(payload["items"][0]["rows"]) == 1
