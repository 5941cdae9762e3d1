from match_alerts.feed.base import BaseEventFeed, Event, make_event_id
from match_alerts.feed.http import HttpEventFeed

__all__ = [
    "BaseEventFeed",
    "Event",
    "HttpEventFeed",
    "make_event_id",
]
