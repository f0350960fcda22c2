"""Raw table row operations.

Raw rows have no item-level error reporting worth parsing: a failed
request is recorded with the whole chunk skipped and the other chunks
carry on.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any

from ..core.exceptions import ResponseError
from ..models.raw import RawRow, RawRowCreate
from ..results.classifier import classify_failure
from ..results.error import log_cognite_error
from ..results.result import CogniteResult
from ..runtime.cancellation import CancellationToken
from ..runtime.chunking import chunk_by, run_throttled
from ..runtime.chunking.telemetry import log_chunk_plan
from .base import BaseResource

RawRowsInput = Mapping[str, Mapping[str, Any]] | Iterable[RawRowCreate]


def _as_rows(rows: RawRowsInput) -> list[RawRowCreate]:
    if isinstance(rows, Mapping):
        return [RawRowCreate(key=key, columns=dict(columns)) for key, columns in rows.items()]
    return list(rows)


class RawResource(BaseResource):
    """Insert, list and delete rows of raw tables."""

    kind = "raw"

    async def _insert_chunk(
        self,
        chunk: list[RawRowCreate],
        path: dict[str, str],
        ensure_parent: bool,
    ) -> CogniteResult[RawRowCreate]:
        try:
            await self._invoke(
                "raw/rows/insert",
                {"items": [row.dump() for row in chunk]},
                path=path,
                query={"ensureParent": str(ensure_parent).lower()},
            )
        except Exception as e:  # noqa: BLE001
            error = classify_failure(e)
            error.skipped = list(chunk)
            log_cognite_error(self._logger, error, operation="raw.insert_rows")
            self._count_skipped(error)
            return CogniteResult(results=None, errors=[error])
        self._metrics.add_created(self.kind, len(chunk))
        return CogniteResult(results=list(chunk), errors=[])

    async def insert_rows(
        self,
        db: str,
        table: str,
        rows: RawRowsInput,
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        ensure_parent: bool = True,
        token: CancellationToken | None = None,
    ) -> CogniteResult[RawRowCreate]:
        """Insert rows into a raw table.

        Args:
            db: Database name
            table: Table name
            rows: Columns per row key, or RawRowCreate records
            chunk_size: Rows per request
            parallelism: Requests in flight
            ensure_parent: Create the database and table if missing
            token: Optional cancellation token

        Returns:
            Inserted rows plus one error per failed request
        """
        opts = self._options(chunk_size or self._config.raw_chunk_size, parallelism)
        records = _as_rows(rows)
        chunks = chunk_by(records, opts.chunk_size)
        log_chunk_plan(
            operation="raw.insert_rows",
            total_items=len(records),
            total_chunks=len(chunks),
            chunk_size=opts.chunk_size,
        )
        path = {"db": db, "table": table}
        units = [partial(self._insert_chunk, chunk, path, ensure_parent) for chunk in chunks]
        results = await run_throttled(units, opts.parallelism, token=token)
        result = CogniteResult.merge_all([CogniteResult(results=[], errors=[]), *results])
        self._log_result("raw.insert_rows", result)
        return result

    async def get_rows(
        self,
        db: str,
        table: str,
        *,
        chunk_size: int | None = None,
        token: CancellationToken | None = None,
    ) -> dict[str, dict[str, Any]]:
        """Read every row of a table, following cursors.

        Returns:
            Columns per row key

        Raises:
            ResponseError: The server rejected a page request
            TransportError: A page request got no response
        """
        limit = chunk_size or self._config.raw_chunk_size
        path = {"db": db, "table": table}
        rows: dict[str, dict[str, Any]] = {}
        cursor: str | None = None
        while not (token is not None and token.is_cancelled):
            query: dict[str, Any] = {"limit": limit}
            if cursor is not None:
                query["cursor"] = cursor
            with self._metrics.record_request("raw/rows/list"):
                items, cursor = await self._transport.fetch_page("raw/rows/list", path=path, query=query)
            for item in items:
                row = RawRow.model_validate(item)
                rows[row.key] = row.columns
            self._metrics.add_retrieved(self.kind, len(items))
            self._logger.debug("raw_rows_read", extra={"db": db, "table": table, "count": len(items)})
            if cursor is None:
                break
        return rows

    async def _delete_chunk(self, keys: list[str], path: dict[str, str]) -> CogniteResult[str]:
        try:
            await self._invoke("raw/rows/delete", {"items": [{"key": key} for key in keys]}, path=path)
        except ResponseError as e:
            # Missing database or table, nothing to delete
            if e.status_code == 404:
                self._logger.debug("raw_delete_missing_table", extra={**path, "error_message": e.message})
                return CogniteResult(results=list(keys), errors=[])
            return self._delete_failed(e, keys)
        except Exception as e:  # noqa: BLE001
            return self._delete_failed(e, keys)
        return CogniteResult(results=list(keys), errors=[])

    def _delete_failed(self, exc: Exception, keys: list[str]) -> CogniteResult[str]:
        error = classify_failure(exc)
        error.skipped = list(keys)
        log_cognite_error(self._logger, error, operation="raw.delete_rows")
        self._count_skipped(error)
        return CogniteResult(results=None, errors=[error])

    async def delete_rows(
        self,
        db: str,
        table: str,
        keys: Iterable[str],
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[str]:
        """Delete rows by key. A missing database or table counts as success.

        Returns:
            Deleted keys plus one error per failed request
        """
        opts = self._options(chunk_size or self._config.raw_chunk_size, parallelism)
        path = {"db": db, "table": table}
        units = [partial(self._delete_chunk, chunk, path) for chunk in chunk_by(keys, opts.chunk_size)]
        results = await run_throttled(units, opts.parallelism, token=token)
        result = CogniteResult.merge_all([CogniteResult(results=[], errors=[]), *results])
        self._log_result("raw.delete_rows", result)
        return result
