"""Retry and upsert policies."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """How the retry loop reacts to failed requests.

    Attributes:
        retry_on_error: Strip offending records and resend after a
            structural failure. When False the first failure ends the batch.
        wait_on_fatal: Sleep and resend the same records after a fatal
            failure instead of giving up on them.
        keep_duplicates: Look up records reported as already existing and
            return them as results instead of dropping them.

    Examples:
        RetryPolicy.none()
        RetryPolicy.on_fatal_keep_duplicates()
        RetryPolicy(retry_on_error=True, wait_on_fatal=True)
    """

    retry_on_error: bool = True
    wait_on_fatal: bool = False
    keep_duplicates: bool = False

    def __post_init__(self) -> None:
        """Reject combinations the retry loop cannot honor."""
        if not self.retry_on_error and (self.wait_on_fatal or self.keep_duplicates):
            raise ValueError(
                "wait_on_fatal and keep_duplicates require retry_on_error to be enabled"
            )

    @classmethod
    def none(cls) -> RetryPolicy:
        return cls(retry_on_error=False)

    @classmethod
    def on_error(cls) -> RetryPolicy:
        return cls()

    @classmethod
    def on_error_keep_duplicates(cls) -> RetryPolicy:
        return cls(keep_duplicates=True)

    @classmethod
    def on_fatal(cls) -> RetryPolicy:
        return cls(wait_on_fatal=True)

    @classmethod
    def on_fatal_keep_duplicates(cls) -> RetryPolicy:
        return cls(wait_on_fatal=True, keep_duplicates=True)


@dataclass(frozen=True)
class UpsertOptions:
    """Controls how existing records are patched during upsert.

    Attributes:
        replace_metadata: Replace the whole metadata map instead of adding keys
        replace_labels: Replace labels instead of adding missing ones
        replace_security_categories: Replace security categories instead of adding
        set_null: Clear fields on the server that are None in the new record
    """

    replace_metadata: bool = False
    replace_labels: bool = False
    replace_security_categories: bool = False
    set_null: bool = True
