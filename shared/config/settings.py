import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Shipping rule: cheaper fixed fee for the metro region, standard fee elsewhere
SHIPPING_FEE_METRO = Decimal(os.getenv("SHIPPING_FEE_METRO", "25000"))
SHIPPING_FEE_STANDARD = Decimal(os.getenv("SHIPPING_FEE_STANDARD", "35000"))
METRO_CITY_KEYWORDS = tuple(
    k.strip().lower() for k in os.getenv("METRO_CITY_KEYWORDS", "hcm").split(",") if k.strip()
)

ORDER_CODE_PREFIX = os.getenv("ORDER_CODE_PREFIX", "FS")
ORDER_CODE_ATTEMPTS = int(os.getenv("ORDER_CODE_ATTEMPTS", "5"))

LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))

# Accounts with these roles cannot place customer orders
RESTRICTED_ROLES = frozenset(
    r.strip() for r in os.getenv("RESTRICTED_ROLES", "admin,manager,staff").split(",") if r.strip()
)
STAFF_ROLES = RESTRICTED_ROLES

# External collaborators
NOTIFICATION_URL = os.getenv("NOTIFICATION_URL", "")
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Fashion Store <orders@fashionstore.local>")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

TRACING_ENABLED = _flag("TRACING_ENABLED", "true")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")

CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "10/minute")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
