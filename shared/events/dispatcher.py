import structlog

from shared.integrations.activity import ActivityLogger
from shared.integrations.mailer import EmailClient
from shared.integrations.notifications import NotificationClient
from shared.observability import ecomm_side_effect_failures_total

from .events import ActivityRecorded, ConfirmationEmailRequested, NotificationRequested

logger = structlog.get_logger(__name__)


class EventDispatcher:
    """Delivers post-commit events. Every failure is logged and dropped."""

    def __init__(self, notifications=None, email=None, activity=None):
        self.notifications = notifications or NotificationClient()
        self.email = email or EmailClient()
        self.activity = activity or ActivityLogger()

    async def dispatch(self, events: list):
        for event in events:
            await self._deliver(event)

    async def _deliver(self, event):
        if isinstance(event, NotificationRequested):
            channel, send = "notification", self.notifications.send
        elif isinstance(event, ConfirmationEmailRequested):
            channel, send = "email", self.email.send_order_confirmation
        elif isinstance(event, ActivityRecorded):
            channel, send = "activity", self.activity.log
        else:
            logger.warning("unknown_event_dropped", event_type=type(event).__name__)
            return

        try:
            await send(event)
        except Exception as exc:
            # A side channel must never surface as the operation's result
            ecomm_side_effect_failures_total.labels(channel=channel).inc()
            logger.error("side_effect_failed", channel=channel, error=str(exc))


_dispatcher = None


def get_dispatcher() -> EventDispatcher:
    """FastAPI dependency; overridden in tests with recording collaborators."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher()
    return _dispatcher
