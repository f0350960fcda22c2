"""cdfutils.bulk - chunked, sanitized and self-healing bulk writes.

Large collections of assets, events, time series, sequences, sequence
rows, data points and raw rows are split into API-legal requests, checked
against server limits, sent with bounded parallelism and retried with the
offending records stripped out. Every operation returns one CogniteResult.
"""

from .client import BulkWriter
from .core import (
    BulkConfig,
    BulkWriteError,
    ErrorType,
    Identity,
    InstanceId,
    RequestType,
    ResourceType,
    ResponseError,
    ResultError,
    RetryPolicy,
    SanitationMode,
    TransportError,
    UpsertOptions,
)
from .io import CDFTransport, WriteTransport
from .models import (
    Asset,
    AssetCreate,
    AssetUpdate,
    AssetUpdateItem,
    Datapoint,
    DatapointInsertError,
    DictPatch,
    Event,
    EventCreate,
    Label,
    ListPatch,
    RawRow,
    RawRowCreate,
    Sequence,
    SequenceColumn,
    SequenceColumnWrite,
    SequenceCreate,
    SequenceDataCreate,
    SequenceRow,
    SequenceRowError,
    SetPatch,
    TimeSeries,
    TimeSeriesCreate,
    TimeSeriesUpdate,
    TimeSeriesUpdateItem,
)
from .resources import (
    AssetsResource,
    DatapointsResource,
    EventsResource,
    RawResource,
    SequencesResource,
    TimeSeriesResource,
)
from .results import CogniteError, CogniteResult
from .runtime import CancellationToken, WriteMetrics

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "BulkWriter",
    "CDFTransport",
    "WriteTransport",
    # Configuration
    "BulkConfig",
    "RetryPolicy",
    "UpsertOptions",
    "SanitationMode",
    "CancellationToken",
    "WriteMetrics",
    # Results and errors
    "CogniteResult",
    "CogniteError",
    "ErrorType",
    "ResourceType",
    "RequestType",
    "BulkWriteError",
    "ResponseError",
    "ResultError",
    "TransportError",
    # Identity
    "Identity",
    "InstanceId",
    # Resources
    "AssetsResource",
    "EventsResource",
    "TimeSeriesResource",
    "SequencesResource",
    "DatapointsResource",
    "RawResource",
    # Models
    "Asset",
    "AssetCreate",
    "AssetUpdate",
    "AssetUpdateItem",
    "Event",
    "EventCreate",
    "TimeSeries",
    "TimeSeriesCreate",
    "TimeSeriesUpdate",
    "TimeSeriesUpdateItem",
    "Sequence",
    "SequenceColumn",
    "SequenceColumnWrite",
    "SequenceCreate",
    "SequenceDataCreate",
    "SequenceRow",
    "SequenceRowError",
    "Datapoint",
    "DatapointInsertError",
    "RawRow",
    "RawRowCreate",
    "Label",
    "SetPatch",
    "DictPatch",
    "ListPatch",
]
