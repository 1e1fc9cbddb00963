import httpx
import structlog

from shared.config import settings
from shared.security.api_key import internal_headers

logger = structlog.get_logger(__name__)


class NotificationClient:
    """Posts customer and staff notifications to the notification service."""

    def __init__(self, base_url: str = None, timeout: float = 5.0):
        self.base_url = base_url if base_url is not None else settings.NOTIFICATION_URL
        self.timeout = timeout

    async def send(self, event):
        payload = {
            "user_id": event.recipient_id,
            "type": event.type,
            "title": event.title,
            "message": event.message,
            "link": event.link,
        }
        if not self.base_url:
            logger.info("notification_mock", **payload)
            return

        async with httpx.AsyncClient(headers=internal_headers(), timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/notifications", json=payload)
            resp.raise_for_status()
