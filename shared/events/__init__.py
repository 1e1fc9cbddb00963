from .events import (
    ActivityRecorded,
    ConfirmationEmailRequested,
    NotificationRequested,
)
from .dispatcher import EventDispatcher, get_dispatcher

__all__ = [
    "ActivityRecorded",
    "ConfirmationEmailRequested",
    "NotificationRequested",
    "EventDispatcher",
    "get_dispatcher",
]
