"""Retry loop that strips offending records from a failed batch.

Architecture:
    A RetryController runs one batch against one endpoint. Each failed
    attempt is classified; the offending records are removed from the
    working set and the rest is resent. The record kind plugs in through
    three callables: ``send`` performs the request, ``clean`` removes the
    records implicated by an error, and the optional ``complete`` performs
    a follow-up read when the server response alone does not name the
    offending records.

Design Decisions:
    - Remote failures never escape ``run``; they are returned as errors
    - Every non-fatal round strictly shrinks the working set, so the loop
      ends after at most one round per record plus fatal waits
    - A failed completion lookup implicates the whole working set
    - Cancellation stops the loop between attempts; records left in the
      working set are reported nowhere
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sized
from typing import Generic, TypeVar

from ..core.enums import RequestType
from ..core.policy import RetryPolicy
from ..results.classifier import classify
from ..results.error import CogniteError, log_cognite_error
from ..results.result import CogniteResult
from .cancellation import CancellationToken

W = TypeVar("W", bound=Sized)
R = TypeVar("R")

Completion = Callable[[CogniteError, W], Awaitable[tuple[list[CogniteError], W]]]


class RetryController(Generic[W, R]):
    """Runs one batch until it succeeds, empties, aborts or is cancelled.

    Terminal states:
        - success: the request returned; its results are kept
        - exhausted: every record was removed by errors
        - aborted: retries are disabled and the request failed; the whole
          working set is reported as skipped
        - cancelled: the token was cancelled between attempts
    """

    def __init__(
        self,
        *,
        operation: str,
        request_type: RequestType,
        send: Callable[[W], Awaitable[list[R]]],
        clean: Callable[[CogniteError, W], W],
        complete: Completion[W] | None = None,
        policy: RetryPolicy,
        fatal_retry_delay: float = 1.0,
        token: CancellationToken | None = None,
        logger: logging.Logger | None = None,
        on_skipped: Callable[[CogniteError], None] | None = None,
    ) -> None:
        """Initialize retry controller.

        Args:
            operation: Operation name used in logs, e.g. ``"assets.create"``
            request_type: Selects the classifier branch
            send: Sends the working set and returns the created records
            clean: Removes records implicated by an error, setting its
                skipped list, and returns the new working set
            complete: Follow-up lookup for incomplete errors. Returns the
                errors to clean with and the possibly reduced working set
            policy: Retry policy
            fatal_retry_delay: Seconds to wait before resending after a
                fatal error when the policy waits on fatal errors
            token: Optional cancellation token
            logger: Logger for error records
            on_skipped: Called once per error after it skipped records
        """
        self._operation = operation
        self._request_type = request_type
        self._send = send
        self._clean = clean
        self._complete = complete
        self._policy = policy
        self._fatal_retry_delay = fatal_retry_delay
        self._token = token
        self._logger = logger or logging.getLogger("cdfutils.bulk")
        self._on_skipped = on_skipped

    def _cancelled(self) -> bool:
        return self._token is not None and self._token.is_cancelled

    async def run(self, working: W) -> CogniteResult[R]:
        """Send ``working`` and retry on failure according to the policy.

        Args:
            working: Records of one batch

        Returns:
            Created records on success plus every error met on the way
        """
        errors: list[CogniteError] = []
        while len(working) and not self._cancelled():
            try:
                results = await self._send(working)
            except Exception as exc:  # noqa: BLE001
                error = classify(exc, self._request_type)
                errors.append(error)
                log_cognite_error(self._logger, error, operation=self._operation)
            else:
                return CogniteResult(results=list(results), errors=errors)

            if error.is_fatal and self._policy.wait_on_fatal:
                await self._wait(self._fatal_retry_delay)
                continue

            if not self._policy.retry_on_error:
                error.values = None
                self._apply(error, working)
                break

            attributed, working = await self._attribute(error, working)
            for item in attributed:
                if item is not error:
                    errors.append(item)
                working = self._apply(item, working)

        return CogniteResult(results=None, errors=errors)

    async def _wait(self, delay: float) -> None:
        if self._token is not None:
            await self._token.sleep(delay)
        else:
            await asyncio.sleep(delay)

    async def _attribute(self, error: CogniteError, working: W) -> tuple[list[CogniteError], W]:
        """Errors to clean the working set with after ``error``, and the set to clean."""
        if error.complete or self._complete is None:
            return [error], working
        try:
            completed, reduced = await self._complete(error, working)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "bulk_completion_failed",
                extra={
                    "operation": self._operation,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            error.values = None
            error.complete = True
            return [error], working
        error.complete = True
        if not completed:
            # Nothing attributable was found, fall back to the whole set
            error.values = None
            return [error], working
        return completed, reduced

    def _apply(self, error: CogniteError, working: W) -> W:
        remaining = self._clean(error, working)
        if self._on_skipped is not None and error.skipped:
            self._on_skipped(error)
        return remaining
