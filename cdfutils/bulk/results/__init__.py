"""Error and result types, failure classification and error cleaning."""

from .classifier import classify
from .error import CogniteError, log_cognite_error, unique_identities
from .handlers import clean_datapoints_from_error, clean_from_error, clean_sequence_rows_from_error
from .result import CogniteResult

__all__ = [
    "CogniteError",
    "CogniteResult",
    "classify",
    "clean_datapoints_from_error",
    "clean_from_error",
    "clean_sequence_rows_from_error",
    "log_cognite_error",
    "unique_identities",
]
