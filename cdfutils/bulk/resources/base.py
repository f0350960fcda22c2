"""Shared machinery for resource operations.

Architecture:
    BaseResource holds the injected collaborators (transport, config,
    logger, metrics) and the helpers every operation needs: option
    resolution, timed remote calls, chunked by-ids lookups and batch
    dispatch through RetryController and ``run_throttled``.

    CreatableResource adds the create path shared by assets, events, time
    series and sequences: sanitation, retrying creates, get-or-create with
    duplicate resolution, ensure-exists, and the update and upsert paths
    used by the kinds that support them.

Design Decisions:
    - Each record kind is described by class attributes (endpoints,
      request types, read model, sanitation and error predicates), not by
      overriding the algorithms
    - Create batches come in waves: waves run in order so that a
      hierarchy level sees its parents, batches within a wave run
      through ``run_throttled``
    - Records that cannot be sent at all (repeated external ids, parent
      cycles) are reported as errors before anything is sent
    - Every public operation returns a merged CogniteResult; remote
      failures never raise
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any, ClassVar, Generic, TypeVar

from ..core.config import BulkConfig
from ..core.enums import ErrorType, RequestType, ResourceType, SanitationMode
from ..core.identity import Identity
from ..core.policy import RetryPolicy, UpsertOptions
from ..io.transport import WriteTransport
from ..results.classifier import classify_failure
from ..results.error import CogniteError, log_cognite_error, unique_identities
from ..results.handlers import IsAffected, clean_from_error, external_identity
from ..results.result import CogniteResult
from ..runtime.cancellation import CancellationToken
from ..runtime.chunking import chunk_by, run_throttled
from ..runtime.chunking.telemetry import log_chunk_plan
from ..runtime.metrics import WriteMetrics
from ..runtime.retry import Completion, RetryController

C = TypeVar("C")  # write model
R = TypeVar("R")  # read model
U = TypeVar("U")  # update item


@dataclass(frozen=True)
class WriteOptions:
    """Per-call settings resolved against BulkConfig defaults."""

    chunk_size: int
    parallelism: int
    retry_policy: RetryPolicy
    sanitation_mode: SanitationMode


class BaseResource:
    """Collaborators and helpers shared by all resource clients."""

    kind: ClassVar[str] = ""

    def __init__(
        self,
        transport: WriteTransport,
        config: BulkConfig | None = None,
        logger: logging.Logger | None = None,
        metrics: WriteMetrics | None = None,
    ) -> None:
        """Initialize resource client.

        Args:
            transport: Remote side of every call
            config: Defaults for chunking, parallelism and retries
            logger: Logger for error and summary records
            metrics: Counter sink shared with other resource clients
        """
        self._transport = transport
        self._config = config or BulkConfig()
        self._logger = logger or logging.getLogger("cdfutils.bulk")
        self._metrics = metrics or WriteMetrics()

    @property
    def metrics(self) -> WriteMetrics:
        return self._metrics

    def _options(
        self,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
    ) -> WriteOptions:
        opts = WriteOptions(
            chunk_size=self._config.chunk_size if chunk_size is None else chunk_size,
            parallelism=self._config.parallelism if parallelism is None else parallelism,
            retry_policy=retry_policy or self._config.retry_policy,
            sanitation_mode=sanitation_mode or self._config.sanitation_mode,
        )
        if opts.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {opts.chunk_size}")
        if opts.parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {opts.parallelism}")
        return opts

    async def _invoke(self, endpoint: str, payload: dict[str, Any], **kwargs: Any) -> list[dict[str, Any]]:
        with self._metrics.record_request(endpoint):
            return await self._transport.invoke(endpoint, payload, **kwargs)

    async def _retrieve(
        self,
        endpoint: str,
        identities: Iterable[Identity],
        parse: Callable[[dict[str, Any]], R],
        *,
        ignore_unknown: bool = True,
        token: CancellationToken | None = None,
    ) -> list[R]:
        """Fetch records by identity in chunks of ``lookup_chunk_size``.

        Raises:
            ResponseError: The server rejected a lookup
            TransportError: A lookup got no response
        """
        groups = chunk_by(unique_identities(identities), self._config.lookup_chunk_size)

        async def fetch(group: list[Identity]) -> list[R]:
            payload = {"items": [idt.to_dict() for idt in group], "ignoreUnknownIds": ignore_unknown}
            return [parse(item) for item in await self._invoke(endpoint, payload)]

        pages = await run_throttled(
            [partial(fetch, group) for group in groups],
            self._config.lookup_parallelism,
            token=token,
        )
        found = [record for page in pages for record in page]
        self._metrics.add_retrieved(self.kind, len(found))
        return found

    def _count_skipped(self, error: CogniteError) -> None:
        self._metrics.add_skipped(self.kind, error.skipped_count)

    def _record_sanitation(
        self,
        operation: str,
        errors: list[CogniteError],
        count: Callable[[CogniteError], None] | None = None,
    ) -> None:
        for error in errors:
            (count or self._count_skipped)(error)
            log_cognite_error(self._logger, error, operation=operation, level=logging.DEBUG)

    async def _sleep(self, delay: float, token: CancellationToken | None) -> None:
        if token is not None:
            await token.sleep(delay)
        else:
            await asyncio.sleep(delay)

    def _log_result(self, operation: str, result: CogniteResult[Any]) -> None:
        self._logger.info(
            "bulk_operation_complete",
            extra={
                "operation": operation,
                "results": len(result.results or []),
                "errors": len(result.errors),
                "skipped": sum(error.skipped_count for error in result.errors),
                "fatal": sum(1 for error in result.errors if error.is_fatal),
            },
        )


@dataclass
class _GetOrCreateOutcome(Generic[R]):
    result: CogniteResult[R]
    found: list[R] = field(default_factory=list)


def _drop_duplicate_errors(result: CogniteResult[Any], retried: set[str]) -> CogniteResult[Any]:
    """Remove ItemExists/ExternalId entries for external ids that are being retried."""
    if not retried:
        return result
    errors: list[CogniteError] = []
    for error in result.errors:
        if error.type is not ErrorType.ITEM_EXISTS or error.resource is not ResourceType.EXTERNAL_ID:
            errors.append(error)
            continue
        values = [idt for idt in error.values or [] if idt.external_id not in retried]
        skipped = [item for item in error.skipped or [] if getattr(item, "external_id", None) not in retried]
        if skipped:
            errors.append(replace(error, values=values, skipped=skipped))
    return CogniteResult(results=result.results, errors=errors)


def _split_repeated_external_ids(records: list[C]) -> tuple[list[C], list[CogniteError]]:
    """Keep the first record per external id and report the later ones as duplicated."""
    seen: set[str] = set()
    unique: list[C] = []
    repeated: list[C] = []
    for record in records:
        xid = record.external_id  # type: ignore[attr-defined]
        (repeated if xid in seen else unique).append(record)
        seen.add(xid)
    if not repeated:
        return unique, []
    error = CogniteError(
        type=ErrorType.ITEM_DUPLICATED,
        resource=ResourceType.EXTERNAL_ID,
        values=unique_identities(Identity(external_id=record.external_id) for record in repeated),  # type: ignore[attr-defined]
        skipped=repeated,
        message="Duplicated external ids in request",
        status=409,
    )
    return unique, [error]


class CreatableResource(BaseResource, Generic[C, R, U]):
    """Create, get-or-create and ensure-exists for one record kind.

    Subclasses set the class attributes below. Kinds that support updates
    also set the ``update_*`` attributes and ``to_update``.
    """

    create_endpoint: ClassVar[str]
    byids_endpoint: ClassVar[str]
    create_request_type: ClassVar[RequestType]
    read_model: ClassVar[type]
    clean_request: Callable[[Iterable[C], SanitationMode], tuple[list[C], list[CogniteError]]]
    is_affected: IsAffected[C]

    update_endpoint: ClassVar[str] = ""
    update_request_type: ClassVar[RequestType | None] = None
    clean_update_request: Callable[[Iterable[U], SanitationMode], tuple[list[U], list[CogniteError]]]
    update_affected: IsAffected[U]
    update_identity: Callable[[U], Identity | None]

    def _parse(self, item: dict[str, Any]) -> R:
        return self.read_model.model_validate(item)  # type: ignore[no-any-return]

    # Hooks

    def _create_batches(self, records: list[C], chunk_size: int) -> list[list[list[C]]]:
        """Waves of batches. Waves run one after the other."""
        return [chunk_by(records, chunk_size)]

    def _place(self, records: list[C]) -> tuple[list[C], list[CogniteError]]:
        """Records that can be sent, and errors for the ones that cannot."""
        return records, []

    def _ensure_groups(self, records: list[C]) -> list[list[C]]:
        """Groups of records that must be ensured one after the other."""
        return [records]

    def _create_completion(self, token: CancellationToken | None) -> Completion[list[C]] | None:
        return None

    def _update_completion(self, token: CancellationToken | None) -> Completion[list[U]] | None:
        return None

    def to_update(self, record: C, existing: R, options: UpsertOptions) -> U | None:
        """Patch turning ``existing`` into ``record``, or None when nothing differs."""
        raise NotImplementedError

    # Retrieval

    async def retrieve_by_ids(
        self,
        ids: Iterable[Identity | int | str],
        ignore_unknown: bool = True,
        *,
        token: CancellationToken | None = None,
    ) -> list[R]:
        """Retrieve records by id or external id.

        Args:
            ids: Identities, internal ids or external ids
            ignore_unknown: Leave out unknown ids instead of failing

        Raises:
            ResponseError: The server rejected the lookup
            TransportError: The lookup got no response
        """
        return await self._retrieve(
            self.byids_endpoint,
            [Identity.of(value) for value in ids],
            self._parse,
            ignore_unknown=ignore_unknown,
            token=token,
        )

    # Create

    def _create_controller(
        self, opts: WriteOptions, token: CancellationToken | None
    ) -> RetryController[list[C], R]:
        async def send(batch: list[C]) -> list[R]:
            items = await self._invoke(self.create_endpoint, {"items": [record.dump() for record in batch]})  # type: ignore[attr-defined]
            return [self._parse(item) for item in items]

        return RetryController(
            operation=f"{self.kind}.create",
            request_type=self.create_request_type,
            send=send,
            clean=lambda error, working: clean_from_error(error, working, self.is_affected, external_identity),
            complete=self._create_completion(token),
            policy=opts.retry_policy,
            fatal_retry_delay=self._config.fatal_retry_delay,
            token=token,
            logger=self._logger,
            on_skipped=self._count_skipped,
        )

    async def _create(
        self,
        records: Iterable[C],
        opts: WriteOptions,
        token: CancellationToken | None,
        *,
        sanitize: bool,
    ) -> CogniteResult[R]:
        """Create ``records`` wave by wave, with bounded parallelism inside a wave."""
        records = list(records)
        errors: list[CogniteError] = []
        if sanitize:
            records, errors = self.clean_request(records, opts.sanitation_mode)
            self._record_sanitation(f"{self.kind}.create", errors)
        records, rejected = self._place(records)
        self._record_sanitation(f"{self.kind}.create", rejected)

        results: list[CogniteResult[R]] = [CogniteResult(results=[], errors=[*errors, *rejected])]
        waves = self._create_batches(records, opts.chunk_size)
        log_chunk_plan(
            operation=f"{self.kind}.create",
            total_items=len(records),
            total_chunks=sum(len(wave) for wave in waves),
            chunk_size=opts.chunk_size,
        )
        for wave in waves:
            if token is not None and token.is_cancelled:
                break
            units = [partial(self._create_controller(opts, token).run, batch) for batch in wave]
            results.extend(await run_throttled(units, opts.parallelism, token=token))
        merged = CogniteResult.merge_all(results)
        self._metrics.add_created(self.kind, len(merged.results or []))
        return merged

    async def _lookup_external_ids(
        self, external_ids: Sequence[str], token: CancellationToken | None
    ) -> list[R]:
        return await self._retrieve(
            self.byids_endpoint,
            [Identity(external_id=xid) for xid in external_ids],
            self._parse,
            token=token,
        )

    async def _get_or_create_chunk(
        self,
        external_ids: list[str],
        build: Callable[[list[str]], Iterable[C]],
        opts: WriteOptions,
        token: CancellationToken | None,
    ) -> _GetOrCreateOutcome[R]:
        """Look up, create what is missing and, if asked, resolve duplicates.

        With ``keep_duplicates``, ids the server reported as already
        existing are looked up again after a backoff; once found they are
        dropped from the ItemExists error.
        """
        result: CogniteResult[R] = CogniteResult(results=[], errors=[])
        found_all: list[R] = []
        pending = external_ids
        attempt = 0
        while pending and not (token is not None and token.is_cancelled):
            if attempt:
                # The new round reports these again if they are still unresolved
                result = _drop_duplicate_errors(result, set(pending))
            try:
                found = await self._lookup_external_ids(pending, token)
            except Exception as exc:  # noqa: BLE001
                error = classify_failure(exc)
                error.values = [Identity(external_id=xid) for xid in pending]
                error.skipped = list(build(pending))
                log_cognite_error(self._logger, error, operation=f"{self.kind}.lookup")
                self._count_skipped(error)
                result = result.merge(CogniteResult(results=None, errors=[error]))
                break

            found_xids = {getattr(record, "external_id", None) for record in found}
            missing = [xid for xid in pending if xid not in found_xids]
            round_result: CogniteResult[R] = CogniteResult(results=list(found), errors=[])
            created: CogniteResult[R] = CogniteResult(results=[], errors=[])
            if missing:
                created = await self._create(build(missing), opts, token, sanitize=True)
                round_result = round_result.merge(created)

            result = result.merge(round_result)
            found_all.extend(found)

            if not opts.retry_policy.keep_duplicates:
                break
            missing_set = set(missing)
            pending = list(
                dict.fromkeys(
                    idt.external_id
                    for error in created.errors
                    if error.type is ErrorType.ITEM_EXISTS and error.resource is ResourceType.EXTERNAL_ID
                    for idt in error.values or []
                    if idt.external_id in missing_set
                )
            )
            if not pending or attempt + 1 >= self._config.max_duplicate_attempts:
                break
            await self._sleep(self._config.duplicate_backoff_base * 2**attempt, token)
            attempt += 1

        return _GetOrCreateOutcome(result=result, found=found_all)

    async def _get_or_create_all(
        self,
        external_ids: Iterable[str],
        build: Callable[[list[str]], Iterable[C]],
        opts: WriteOptions,
        token: CancellationToken | None,
    ) -> list[_GetOrCreateOutcome[R]]:
        ids = list(dict.fromkeys(external_ids))
        units = [
            partial(self._get_or_create_chunk, chunk, build, opts, token)
            for chunk in chunk_by(ids, opts.chunk_size)
        ]
        return await run_throttled(units, opts.parallelism, token=token)

    async def get_or_create(
        self,
        external_ids: Iterable[str],
        build: Callable[[list[str]], Iterable[C]],
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[R]:
        """Return the records with the given external ids, creating missing ones.

        Args:
            external_ids: External ids to look up
            build: Called with the external ids that were not found; returns
                the records to create for them
            chunk_size: External ids per lookup and create request
            parallelism: Chunks in flight
            retry_policy: Retry policy for the creates
            sanitation_mode: Sanitation applied to the built records
            token: Optional cancellation token

        Returns:
            Found and created records plus errors
        """
        opts = self._options(chunk_size, parallelism, retry_policy, sanitation_mode)
        outcomes = await self._get_or_create_all(external_ids, build, opts, token)
        result = CogniteResult.merge_all(outcome.result for outcome in outcomes)
        self._log_result(f"{self.kind}.get_or_create", result)
        return result

    async def _ensure(
        self,
        records: Iterable[C],
        opts: WriteOptions,
        token: CancellationToken | None,
    ) -> tuple[CogniteResult[R], list[R]]:
        """Ensure-exists returning the merged result and the records that already existed."""
        cleaned, errors = self.clean_request(list(records), opts.sanitation_mode)
        anonymous = [record for record in cleaned if getattr(record, "external_id", None) is None]
        named, repeated = _split_repeated_external_ids(
            [record for record in cleaned if getattr(record, "external_id", None) is not None]
        )
        named, rejected = self._place(named)
        errors = [*errors, *repeated, *rejected]
        self._record_sanitation(f"{self.kind}.create", errors)
        inner = replace(opts, sanitation_mode=SanitationMode.NONE)

        results: list[CogniteResult[R]] = [CogniteResult(results=[], errors=errors)]
        found: list[R] = []
        if anonymous:
            results.append(await self._create(anonymous, inner, token, sanitize=False))

        for group in self._ensure_groups(named):
            if token is not None and token.is_cancelled:
                break
            by_xid = {record.external_id: record for record in group}  # type: ignore[attr-defined]
            outcomes = await self._get_or_create_all(
                list(by_xid),
                lambda missing, by_xid=by_xid: [by_xid[xid] for xid in missing],
                inner,
                token,
            )
            for outcome in outcomes:
                results.append(outcome.result)
                found.extend(outcome.found)
        return CogniteResult.merge_all(results), found

    async def ensure_exists(
        self,
        records: Iterable[C],
        *,
        chunk_size: int | None = None,
        parallelism: int | None = None,
        retry_policy: RetryPolicy | None = None,
        sanitation_mode: SanitationMode | None = None,
        token: CancellationToken | None = None,
    ) -> CogniteResult[R]:
        """Create the records whose external ids do not exist yet.

        Records are sanitized once up front. Records without an external
        id cannot be looked up and are always created.

        Returns:
            Existing and created records plus errors
        """
        opts = self._options(chunk_size, parallelism, retry_policy, sanitation_mode)
        result, _ = await self._ensure(records, opts, token)
        self._log_result(f"{self.kind}.ensure_exists", result)
        return result

    # Update and upsert

    def _update_controller(
        self, opts: WriteOptions, token: CancellationToken | None
    ) -> RetryController[list[U], R]:
        if self.update_request_type is None:
            raise TypeError(f"{type(self).__name__} does not support updates")

        async def send(batch: list[U]) -> list[R]:
            items = await self._invoke(self.update_endpoint, {"items": [item.dump() for item in batch]})  # type: ignore[attr-defined]
            return [self._parse(item) for item in items]

        return RetryController(
            operation=f"{self.kind}.update",
            request_type=self.update_request_type,
            send=send,
            clean=lambda error, working: clean_from_error(
                error, working, self.update_affected, self.update_identity
            ),
            complete=self._update_completion(token),
            policy=opts.retry_policy,
            fatal_retry_delay=self._config.fatal_retry_delay,
            token=token,
            logger=self._logger,
            on_skipped=self._count_skipped,
        )

    async def _update(
        self,
        items: Iterable[U],
        opts: WriteOptions,
        token: CancellationToken | None,
    ) -> CogniteResult[R]:
        cleaned, errors = self.clean_update_request(list(items), opts.sanitation_mode)
        self._record_sanitation(f"{self.kind}.update", errors)
        units = [
            partial(self._update_controller(opts, token).run, batch)
            for batch in chunk_by(cleaned, opts.chunk_size)
        ]
        results = await run_throttled(units, opts.parallelism, token=token)
        merged = CogniteResult.merge_all([CogniteResult(results=[], errors=errors), *results])
        self._metrics.add_updated(self.kind, len(merged.results or []))
        return merged

    async def _upsert(
        self,
        records: Iterable[C],
        options: UpsertOptions,
        opts: WriteOptions,
        token: CancellationToken | None,
    ) -> CogniteResult[R]:
        """Create missing records and patch existing ones.

        Output order follows input order for records that succeeded.
        """
        records = list(records)
        order = [Identity.from_item(None, getattr(record, "external_id", None)) for record in records]
        created, found = await self._ensure(records, opts, token)

        # Records skipped up front never patch anything; the first accepted one wins
        skipped = {id(record) for error in created.errors for record in error.skipped or []}
        by_xid: dict[str | None, C] = {}
        for record in records:
            if id(record) not in skipped:
                by_xid.setdefault(getattr(record, "external_id", None), record)
        found_ids = {id(record) for record in found}
        unchanged: list[R] = []
        updates: list[U] = []
        # Skipped patches are reported as the caller's record
        origin: dict[int, C] = {}
        for existing in found:
            record = by_xid.get(getattr(existing, "external_id", None))
            if record is None:
                continue
            patch = self.to_update(record, existing, options)
            if patch is None:
                unchanged.append(existing)
            else:
                updates.append(patch)
                origin[id(patch)] = record

        # Found records are replaced by their updated version or kept as is
        kept = [record for record in created.results or [] if id(record) not in found_ids]
        base = CogniteResult(results=kept + unchanged, errors=created.errors)
        if updates:
            updated = await self._update(updates, replace(opts, sanitation_mode=SanitationMode.NONE), token)
            updated = updated.replace(lambda item: origin.get(id(item), item))
            base = base.merge(updated)
        return base.order_by(order, lambda record: Identity.from_item(None, getattr(record, "external_id", None)))
