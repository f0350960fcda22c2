"""In-memory counters for bulk write operations."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from time import perf_counter
from typing import Any


@dataclass
class ResourceCounters:
    """Record counts for one resource kind."""

    created: int = 0
    updated: int = 0
    retrieved: int = 0
    skipped: int = 0


@dataclass
class WriteMetrics:
    """Metrics for bulk write throughput and failures.

    Counters are keyed by resource kind (``"assets"``, ``"datapoints"``,
    ...) and request timings by logical endpoint (``"assets/create"``).
    All updates happen on the event loop thread, so no locking is needed.
    """

    resources: dict[str, ResourceCounters] = field(default_factory=dict)
    requests: dict[str, int] = field(default_factory=dict)
    request_failures: dict[str, int] = field(default_factory=dict)
    request_seconds: dict[str, float] = field(default_factory=dict)

    def counters(self, kind: str) -> ResourceCounters:
        return self.resources.setdefault(kind, ResourceCounters())

    def add_created(self, kind: str, count: int) -> None:
        self.counters(kind).created += count

    def add_updated(self, kind: str, count: int) -> None:
        self.counters(kind).updated += count

    def add_retrieved(self, kind: str, count: int) -> None:
        self.counters(kind).retrieved += count

    def add_skipped(self, kind: str, count: int) -> None:
        if count:
            self.counters(kind).skipped += count

    @contextmanager
    def record_request(self, endpoint: str) -> Iterator[None]:
        """Time one remote call to ``endpoint``.

        The call is counted whether it succeeds or raises; raising calls
        are also counted as failures.
        """
        start = perf_counter()
        self.requests[endpoint] = self.requests.get(endpoint, 0) + 1
        try:
            yield
        except Exception:
            self.request_failures[endpoint] = self.request_failures.get(endpoint, 0) + 1
            raise
        finally:
            elapsed = perf_counter() - start
            self.request_seconds[endpoint] = self.request_seconds.get(endpoint, 0.0) + elapsed

    def snapshot(self) -> dict[str, Any]:
        """Plain-dict copy of all counters."""
        return {
            "resources": {kind: asdict(counters) for kind, counters in self.resources.items()},
            "requests": dict(self.requests),
            "request_failures": dict(self.request_failures),
            "request_seconds": dict(self.request_seconds),
        }
