"""BulkWriter facade bundling one client per resource kind.

Architecture:
    BulkWriter owns nothing but wiring: it builds each resource client with
    the same transport, config, logger and metrics so that counters and
    log records from every kind end up in one place.

Design Decisions:
    - Transport injection allows testing with an in-memory transport
    - The logger is injected, never read from or written to global state
    - Context manager pattern closes the transport
"""

from __future__ import annotations

import logging
from typing import Any

from .core.config import BulkConfig
from .io.transport import WriteTransport
from .resources import (
    AssetsResource,
    DatapointsResource,
    EventsResource,
    RawResource,
    SequencesResource,
    TimeSeriesResource,
)
from .runtime.metrics import WriteMetrics


class BulkWriter:
    """Entry point for bulk writes against one project.

    Example:
        >>> async with CDFTransport("my-project", base_url, token) as transport:
        ...     writer = BulkWriter(transport, BulkConfig(parallelism=4))
        ...     result = await writer.time_series.ensure_exists(series)
        ...     for error in result.errors:
        ...         print(error)
    """

    def __init__(
        self,
        transport: WriteTransport,
        config: BulkConfig | None = None,
        *,
        logger: logging.Logger | None = None,
        metrics: WriteMetrics | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            transport: Remote side of every call
            config: Defaults for chunking, parallelism and retries
            logger: Logger for error and summary records
                (default: ``cdfutils.bulk``)
            metrics: Shared counters (a new WriteMetrics if not provided)
        """
        self._transport = transport
        self.config = config or BulkConfig()
        self.logger = logger or logging.getLogger("cdfutils.bulk")
        self.metrics = metrics or WriteMetrics()
        self._closed = False

        args = (transport, self.config, self.logger, self.metrics)
        self.assets = AssetsResource(*args)
        self.events = EventsResource(*args)
        self.time_series = TimeSeriesResource(*args)
        self.sequences = SequencesResource(*args)
        self.datapoints = DatapointsResource(*args)
        self.raw = RawResource(*args)

    async def close(self) -> None:
        """Close the transport."""
        if self._closed:
            return
        self._closed = True
        self.logger.debug("bulk_writer_closed", extra={"metrics": self.metrics.snapshot()})
        await self._transport.close()

    async def __aenter__(self) -> BulkWriter:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
