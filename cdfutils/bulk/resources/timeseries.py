"""Time series operations."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.enums import RequestType, SanitationMode
from ..core.policy import RetryPolicy, UpsertOptions
from ..models.timeseries import TimeSeries, TimeSeriesCreate, TimeSeriesUpdate, TimeSeriesUpdateItem
from ..results.handlers import (
    time_series_create_affected,
    time_series_update_affected,
    time_series_update_identity,
)
from ..results.result import CogniteResult
from ..runtime.cancellation import CancellationToken
from ..sanitation import clean_time_series_request, clean_time_series_update_request
from .base import CreatableResource
from .patches import list_patch, metadata_patch, scalar_patches

_SCALAR_FIELDS = {
    "name": str,
    "unit": str,
    "asset_id": int,
    "description": str,
    "data_set_id": int,
}


class TimeSeriesResource(CreatableResource[TimeSeriesCreate, TimeSeries, TimeSeriesUpdateItem]):
    """Bulk writes for time series.

    ``is_string`` and ``is_step`` cannot be changed after creation; upsert
    leaves them alone.
    """

    kind = "timeseries"
    create_endpoint = "timeseries/create"
    byids_endpoint = "timeseries/byids"
    create_request_type = RequestType.CREATE_TIME_SERIES
    read_model = TimeSeries
    clean_request = staticmethod(clean_time_series_request)
    is_affected = staticmethod(time_series_create_affected)

    update_endpoint = "timeseries/update"
    update_request_type = RequestType.UPDATE_TIME_SERIES
    clean_update_request = staticmethod(clean_time_series_update_request)
    update_affected = staticmethod(time_series_update_affected)
    update_identity = staticmethod(time_series_update_identity)

    def to_update(
        self, record: TimeSeriesCreate, existing: TimeSeries, options: UpsertOptions
    ) -> TimeSeriesUpdateItem | None:
        patches: dict[str, object] = dict(scalar_patches(record, existing, _SCALAR_FIELDS, options.set_null))
        metadata = metadata_patch(record.metadata, existing.metadata, options.replace_metadata, options.set_null)
        if metadata is not None:
            patches["metadata"] = metadata
        categories = list_patch(
            int,
            record.security_categories,
            existing.security_categories,
            options.replace_security_categories,
            options.set_null,
        )
        if categories is not None:
            patches["security_categories"] = categories

        if not patches:
            return None
        return TimeSeriesUpdateItem(id=existing.id, update=TimeSeriesUpdate.model_validate(patches))

    async def update(
        self,
        items: Iterable[TimeSeriesUpdateItem],
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[TimeSeries]:
        """Apply field patches to existing time series."""
        opts = self._options(chunk_size, parallelism, retry_policy, sanitation_mode)
        result = await self._update(items, opts, token)
        self._log_result("timeseries.update", result)
        return result

    async def upsert(
        self,
        items: Iterable[TimeSeriesCreate],
        options: UpsertOptions | None = None,
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[TimeSeries]:
        """Create missing time series and update the ones that differ.

        Returns:
            Written time series in input order, plus errors
        """
        opts = self._options(chunk_size, parallelism, retry_policy, sanitation_mode)
        result = await self._upsert(items, options or UpsertOptions(), opts, token)
        self._log_result("timeseries.upsert", result)
        return result
