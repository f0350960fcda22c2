"""Engine-wide defaults for chunking, parallelism and retry timing."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace

from .enums import SanitationMode
from .policy import RetryPolicy

_POSITIVE_INTS = (
    "chunk_size",
    "parallelism",
    "max_duplicate_attempts",
    "lookup_chunk_size",
    "lookup_parallelism",
    "datapoint_key_chunk_size",
    "datapoint_value_chunk_size",
    "sequence_key_chunk_size",
    "sequence_row_chunk_size",
    "raw_chunk_size",
)


@dataclass(frozen=True)
class BulkConfig:
    """Defaults applied when an operation is called without explicit limits.

    Attributes:
        chunk_size: Records per create/update request
        parallelism: Requests in flight per operation
        retry_policy: Default retry policy
        sanitation_mode: Default sanitation mode
        fatal_retry_delay: Seconds to wait before resending after a fatal failure
        duplicate_backoff_base: Base seconds for duplicate resolution backoff
        max_duplicate_attempts: Upper bound on duplicate resolution rounds
        lookup_chunk_size: Identities per follow-up retrieve request
        lookup_parallelism: Follow-up retrieve requests in flight
        datapoint_key_chunk_size: Time series per data point request
        datapoint_value_chunk_size: Data points per request
        sequence_key_chunk_size: Sequences per row insert request
        sequence_row_chunk_size: Rows per row insert request
        raw_chunk_size: Raw rows per insert request
    """

    chunk_size: int = 1000
    parallelism: int = 1
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy.on_error)
    sanitation_mode: SanitationMode = SanitationMode.CLEAN
    fatal_retry_delay: float = 1.0
    duplicate_backoff_base: float = 0.1
    max_duplicate_attempts: int = 5
    lookup_chunk_size: int = 1000
    lookup_parallelism: int = 1
    datapoint_key_chunk_size: int = 10_000
    datapoint_value_chunk_size: int = 100_000
    sequence_key_chunk_size: int = 10
    sequence_row_chunk_size: int = 10_000
    raw_chunk_size: int = 10_000

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for name in _POSITIVE_INTS:
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.fatal_retry_delay < 0:
            raise ValueError("fatal_retry_delay cannot be negative")
        if self.duplicate_backoff_base < 0:
            raise ValueError("duplicate_backoff_base cannot be negative")

    @classmethod
    def from_env(
        cls,
        prefix: str = "CDFUTILS_BULK_",
        environ: Mapping[str, str] | None = None,
    ) -> BulkConfig:
        """Build a config from environment variables.

        Each field can be overridden by ``<prefix><FIELD_NAME>``, e.g.
        ``CDFUTILS_BULK_CHUNK_SIZE=500``. The retry policy is read from
        ``<prefix>RETRY_POLICY`` as one of the preset names
        (``none``, ``on_error``, ``on_fatal_keep_duplicates``, ...).

        Args:
            prefix: Environment variable prefix
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            BulkConfig with overrides applied

        Raises:
            ValueError: If a value cannot be parsed
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            if f.name == "retry_policy":
                preset = getattr(RetryPolicy, raw.strip().lower(), None)
                if preset is None or not callable(preset):
                    raise ValueError(f"Unknown retry policy: {raw!r}")
                overrides[f.name] = preset()
            elif f.name == "sanitation_mode":
                overrides[f.name] = SanitationMode(raw.strip().lower())
            elif f.name in ("fatal_retry_delay", "duplicate_backoff_base"):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = int(raw)
        return replace(cls(), **overrides)
