"""Resource clients: one per record kind, sharing the retry and dispatch machinery."""

from .assets import AssetsResource
from .base import BaseResource, CreatableResource, WriteOptions
from .datapoints import DatapointsResource
from .events import EventsResource
from .raw import RawResource
from .sequences import SequencesResource
from .timeseries import TimeSeriesResource

__all__ = [
    "BaseResource",
    "CreatableResource",
    "WriteOptions",
    "AssetsResource",
    "EventsResource",
    "TimeSeriesResource",
    "SequencesResource",
    "DatapointsResource",
    "RawResource",
]
