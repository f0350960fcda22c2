"""Wire models for every supported resource kind."""

from .assets import Asset, AssetCreate, AssetUpdate, AssetUpdateItem
from .base import CogniteModel, DictPatch, Label, ListPatch, SetPatch
from .datapoints import Datapoint, DatapointInsertError
from .events import Event, EventCreate
from .raw import RawRow, RawRowCreate
from .sequences import (
    Sequence,
    SequenceColumn,
    SequenceColumnWrite,
    SequenceCreate,
    SequenceDataCreate,
    SequenceRow,
    SequenceRowError,
)
from .timeseries import TimeSeries, TimeSeriesCreate, TimeSeriesUpdate, TimeSeriesUpdateItem

__all__ = [
    "CogniteModel",
    "Label",
    "SetPatch",
    "DictPatch",
    "ListPatch",
    # Assets
    "Asset",
    "AssetCreate",
    "AssetUpdate",
    "AssetUpdateItem",
    # Events
    "Event",
    "EventCreate",
    # Time series
    "TimeSeries",
    "TimeSeriesCreate",
    "TimeSeriesUpdate",
    "TimeSeriesUpdateItem",
    # Sequences
    "Sequence",
    "SequenceColumn",
    "SequenceColumnWrite",
    "SequenceCreate",
    "SequenceDataCreate",
    "SequenceRow",
    "SequenceRowError",
    # Data points
    "Datapoint",
    "DatapointInsertError",
    # Raw
    "RawRow",
    "RawRowCreate",
]
