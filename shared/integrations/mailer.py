import httpx
import structlog

from shared.config import settings

logger = structlog.get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"


def _format_vnd(amount) -> str:
    return f"{int(amount):,}".replace(",", ".") + " ₫"


def render_order_confirmation(order_code: str, amount) -> tuple[str, str]:
    subject = f"Order confirmation #{order_code} - Fashion Store"
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #10B981;">Thank you for your order!</h2>
      <p>Your order <strong>#{order_code}</strong> has been received.</p>
      <p>Total: <strong>{_format_vnd(amount)}</strong></p>
      <p>We will contact you shortly to confirm delivery.</p>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{settings.FRONTEND_URL}/orders" style="background-color: #10B981; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; font-weight: bold;">View orders</a>
      </div>
    </div>
    """
    return subject, html


class EmailClient:
    """Sends transactional email through Resend. Logs only when no API key is set."""

    def __init__(self, api_key: str = None, sender: str = None, timeout: float = 30.0):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender or settings.EMAIL_FROM
        self.timeout = timeout

    async def send_order_confirmation(self, event):
        subject, html = render_order_confirmation(event.order_code, event.amount)
        await self.send(event.email, subject, html)

    async def send(self, to: str, subject: str, html: str):
        if not self.api_key:
            logger.info("email_mock", to=to, subject=subject)
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                RESEND_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            )
            resp.raise_for_status()
