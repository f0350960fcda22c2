"""Event operations."""

from __future__ import annotations

from ..core.enums import RequestType
from ..models.events import Event, EventCreate
from ..results.handlers import event_affected
from ..sanitation import clean_event_request
from .base import CreatableResource


class EventsResource(CreatableResource[EventCreate, Event, None]):
    """Bulk writes for events: get-or-create and ensure-exists."""

    kind = "events"
    create_endpoint = "events/create"
    byids_endpoint = "events/byids"
    create_request_type = RequestType.CREATE_EVENTS
    read_model = Event
    clean_request = staticmethod(clean_event_request)
    is_affected = staticmethod(event_affected)
