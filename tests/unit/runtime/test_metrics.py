"""Unit tests for WriteMetrics."""

from __future__ import annotations

import pytest

from cdfutils.bulk import WriteMetrics


class TestWriteMetrics:
    """Test counters and request timing."""

    def test_counters(self):
        metrics = WriteMetrics()

        metrics.add_created("assets", 3)
        metrics.add_updated("assets", 1)
        metrics.add_skipped("assets", 0)
        metrics.add_skipped("events", 2)

        assert metrics.counters("assets").created == 3
        assert metrics.counters("assets").updated == 1
        assert metrics.counters("assets").skipped == 0
        assert metrics.snapshot()["resources"]["events"]["skipped"] == 2

    def test_record_request_counts_failures(self):
        metrics = WriteMetrics()

        with metrics.record_request("assets/create"):
            pass
        with pytest.raises(RuntimeError):
            with metrics.record_request("assets/create"):
                raise RuntimeError("boom")

        assert metrics.requests == {"assets/create": 2}
        assert metrics.request_failures == {"assets/create": 1}
        assert metrics.request_seconds["assets/create"] >= 0.0
