"""Data point inserts.

Architecture:
    Points are keyed by time series identity. The caller's mapping is
    split twice, by number of time series and by total number of points,
    and each chunk runs its own retry loop over a mapping working set.

Design Decisions:
    - Points whose value kind does not match their time series are found
      by fetching the time series after the server reports a mismatch
    - Results are the identities of time series that received points
"""

from __future__ import annotations

from functools import partial

from ..core.enums import RequestType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..core.policy import RetryPolicy
from ..models.timeseries import TimeSeries
from ..results.error import CogniteError, unique_identities
from ..results.handlers import DatapointSet, clean_datapoints_from_error, find_mismatched_datapoints
from ..results.result import CogniteResult
from ..runtime.cancellation import CancellationToken
from ..runtime.chunking import chunk_by_keys, run_throttled
from ..runtime.chunking.telemetry import log_chunk_plan
from ..runtime.retry import RetryController
from ..sanitation.datapoints import DatapointInput, clean_datapoints_request
from .base import BaseResource


class DatapointsResource(BaseResource):
    """Bulk inserts of numeric and string data points."""

    kind = "datapoints"

    def _count_skipped_points(self, error: CogniteError) -> None:
        self._metrics.add_skipped(self.kind, sum(len(entry.datapoints) for entry in error.skipped or []))

    async def _verify_datapoints(
        self, error: CogniteError, points: DatapointSet, token: CancellationToken | None
    ) -> tuple[list[CogniteError], DatapointSet]:
        if error.resource is not ResourceType.DATA_POINT_VALUE:
            return [error], points
        time_series = await self._retrieve(
            "timeseries/byids", list(points), TimeSeries.model_validate, token=token
        )
        error, remaining = find_mismatched_datapoints(error, points, time_series)
        if not error.skipped:
            return [], points
        return [error], remaining

    def _controller(
        self, policy: RetryPolicy, token: CancellationToken | None
    ) -> RetryController[DatapointSet, Identity]:
        async def send(points: DatapointSet) -> list[Identity]:
            items = [
                {**identity.to_dict(), "datapoints": [dp.to_wire() for dp in dps]}
                for identity, dps in points.items()
            ]
            await self._invoke("datapoints/insert", {"items": items})
            self._metrics.add_created(self.kind, _point_count(points))
            return list(points)

        return RetryController(
            operation="datapoints.insert",
            request_type=RequestType.CREATE_DATAPOINTS,
            send=send,
            clean=clean_datapoints_from_error,
            complete=partial(self._verify_datapoints, token=token),
            policy=policy,
            fatal_retry_delay=self._config.fatal_retry_delay,
            token=token,
            logger=self._logger,
            on_skipped=self._count_skipped_points,
        )

    async def insert(
        self,
        points: DatapointInput,
        *,
        key_chunk_size: int | None = None,
        value_chunk_size: int | None = None,
        non_finite_replacement: float | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[Identity]:
        """Insert data points into existing time series.

        Args:
            points: Data points per time series, as a mapping or as
                ``(identity, points)`` pairs
            key_chunk_size: Time series per request
            value_chunk_size: Data points per request
            non_finite_replacement: Replacement for NaN and infinite values
                when sanitizing; without one such points are removed
            parallelism: Requests in flight
            retry_policy: Retry policy
            sanitation_mode: Sanitation applied before sending
            token: Optional cancellation token

        Returns:
            Identities of time series that received points, plus errors.
            Skipped entries are DatapointInsertError.

        Example:
            result = await writer.datapoints.insert(
                {Identity.of("pump-temp"): [Datapoint.numeric(1_700_000_000_000, 21.5)]}
            )
        """
        opts = self._options(None, parallelism, retry_policy, sanitation_mode)
        key_chunk_size = key_chunk_size or self._config.datapoint_key_chunk_size
        value_chunk_size = value_chunk_size or self._config.datapoint_value_chunk_size

        cleaned, errors = clean_datapoints_request(points, opts.sanitation_mode, non_finite_replacement)
        self._record_sanitation("datapoints.insert", errors, self._count_skipped_points)

        chunks = chunk_by_keys(cleaned, value_chunk_size, key_chunk_size)
        log_chunk_plan(
            operation="datapoints.insert",
            total_items=sum(len(dps) for dps in cleaned.values()),
            total_chunks=len(chunks),
            chunk_size=value_chunk_size,
        )
        units = [partial(self._controller(opts.retry_policy, token).run, chunk) for chunk in chunks]
        results = await run_throttled(units, opts.parallelism, token=token)

        result = CogniteResult.merge_all([CogniteResult(results=[], errors=errors), *results])
        result = CogniteResult(results=unique_identities(result.results or []), errors=result.errors)
        self._log_result("datapoints.insert", result)
        return result


def _point_count(points: DatapointSet) -> int:
    return sum(len(dps) for dps in points.values())
