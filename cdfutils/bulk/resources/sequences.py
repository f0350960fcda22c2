"""Sequence and sequence row operations."""

from __future__ import annotations

from collections.abc import Iterable
from functools import partial

from ..core.enums import RequestType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..core.policy import RetryPolicy
from ..models.sequences import Sequence, SequenceCreate, SequenceDataCreate, SequenceRow
from ..results.error import CogniteError
from ..results.handlers import clean_sequence_rows_from_error, find_mismatched_rows, sequence_affected
from ..results.result import CogniteResult
from ..runtime.cancellation import CancellationToken
from ..runtime.chunking import chunk_by_keys, run_throttled
from ..runtime.chunking.telemetry import log_chunk_plan
from ..runtime.retry import Completion, RetryController
from ..sanitation import clean_sequence_data_request, clean_sequence_request
from .base import CreatableResource

ROWS_KIND = "sequence_rows"


class SequencesResource(CreatableResource[SequenceCreate, Sequence, None]):
    """Bulk writes for sequences and their rows."""

    kind = "sequences"
    create_endpoint = "sequences/create"
    byids_endpoint = "sequences/byids"
    create_request_type = RequestType.CREATE_SEQUENCES
    read_model = Sequence
    clean_request = staticmethod(clean_sequence_request)
    is_affected = staticmethod(sequence_affected)

    def _count_skipped_rows(self, error: CogniteError) -> None:
        rows = sum(len(entry.rows) for entry in error.skipped or [])
        self._metrics.add_skipped(ROWS_KIND, rows)

    def _rows_completion(self, token: CancellationToken | None) -> Completion[list[SequenceDataCreate]]:
        async def verify_rows(
            error: CogniteError, working: list[SequenceDataCreate]
        ) -> tuple[list[CogniteError], list[SequenceDataCreate]]:
            if error.resource is not ResourceType.SEQUENCE_ROW_VALUES:
                return [error], working
            identities = [item.identity for item in working if item.identity is not None]
            sequences = await self._retrieve(self.byids_endpoint, identities, self._parse, token=token)
            error, remaining = find_mismatched_rows(error, working, sequences)
            if not error.skipped:
                return [], working
            return [error], remaining

        return verify_rows

    def _rows_controller(
        self, policy: RetryPolicy, token: CancellationToken | None
    ) -> RetryController[list[SequenceDataCreate], SequenceDataCreate]:
        async def send(batch: list[SequenceDataCreate]) -> list[SequenceDataCreate]:
            await self._invoke("sequences/rows/insert", {"items": [item.dump() for item in batch]})
            return list(batch)

        return RetryController(
            operation="sequences.insert_rows",
            request_type=RequestType.CREATE_SEQUENCE_ROWS,
            send=send,
            clean=clean_sequence_rows_from_error,
            complete=self._rows_completion(token),
            policy=policy,
            fatal_retry_delay=self._config.fatal_retry_delay,
            token=token,
            logger=self._logger,
            on_skipped=self._count_skipped_rows,
        )

    async def insert_rows(
        self,
        rows: Iterable[SequenceDataCreate],
        *,
        key_chunk_size: int | None = None,
        row_chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[SequenceDataCreate]:
        """Insert rows into existing sequences.

        Requests are bounded both by the number of sequences and by the
        total number of rows. Rows of one sequence are only split across
        requests when they alone exceed ``row_chunk_size``.

        Args:
            rows: Rows per sequence
            key_chunk_size: Sequences per request
            row_chunk_size: Rows per request
            parallelism: Requests in flight
            retry_policy: Retry policy
            sanitation_mode: Sanitation applied before sending
            token: Optional cancellation token

        Returns:
            The inserts that were written, plus errors. Skipped entries are
            SequenceRowError.
        """
        opts = self._options(None, parallelism, retry_policy, sanitation_mode)
        key_chunk_size = key_chunk_size or self._config.sequence_key_chunk_size
        row_chunk_size = row_chunk_size or self._config.sequence_row_chunk_size

        cleaned, errors = clean_sequence_data_request(rows, opts.sanitation_mode)
        self._record_sanitation("sequences.insert_rows", errors, self._count_skipped_rows)

        # Later inserts for the same sequence are merged into the first one
        first: dict[Identity | None, SequenceDataCreate] = {}
        grouped: dict[Identity | None, list[SequenceRow]] = {}
        for item in cleaned:
            first.setdefault(item.identity, item)
            grouped.setdefault(item.identity, []).extend(item.rows or [])

        chunks = chunk_by_keys(grouped, row_chunk_size, key_chunk_size)
        log_chunk_plan(
            operation="sequences.insert_rows",
            total_items=sum(len(values) for values in grouped.values()),
            total_chunks=len(chunks),
            chunk_size=row_chunk_size,
        )
        batches = [
            [first[identity].model_copy(update={"rows": part}) for identity, part in chunk.items()]
            for chunk in chunks
        ]
        units = [partial(self._rows_controller(opts.retry_policy, token).run, batch) for batch in batches]
        results = await run_throttled(units, opts.parallelism, token=token)

        result = CogniteResult.merge_all([CogniteResult(results=[], errors=errors), *results])
        self._metrics.add_created(ROWS_KIND, sum(len(item.rows or []) for item in result.results or []))
        self._log_result("sequences.insert_rows", result)
        return result
