"""Core types: enums, identity, exceptions, policies and configuration."""

from .config import BulkConfig
from .enums import ErrorType, RequestType, ResourceType, SanitationMode
from .exceptions import BulkWriteError, ResponseError, ResultError, TransportError
from .identity import Identity, InstanceId
from .policy import RetryPolicy, UpsertOptions

__all__ = [
    # Configuration
    "BulkConfig",
    "RetryPolicy",
    "UpsertOptions",
    # Enums
    "ErrorType",
    "RequestType",
    "ResourceType",
    "SanitationMode",
    # Identity
    "Identity",
    "InstanceId",
    # Exceptions
    "BulkWriteError",
    "ResponseError",
    "ResultError",
    "TransportError",
]
