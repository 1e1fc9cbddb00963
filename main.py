from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import create_tables
from shared.errors import register_error_handlers
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.inventory_service import models as inventory_models
from services.cart_service import models as cart_models
from services.coupon_service import models as coupon_models
from services.order_service import models as order_models
from services.payment_service import models as payment_models
from services.shipping_service import models as shipping_models

from services.inventory_service.main import inventory_app
from services.cart_service.main import cart_app
from services.coupon_service.main import coupon_app
from services.pricing_service.main import pricing_app
from services.order_service.main import order_app
from services.payment_service.main import payment_app
from services.shipping_service.main import shipping_app

app = FastAPI(title="Storefront")
register_error_handlers(app)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "storefront")

# --- SECURITY SETUP ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.on_event("startup")
async def startup_event():
    # One schema: checkout writes orders, stock and coupons in a single transaction
    await create_tables()


@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "storefront", "status": "running"}


app.mount("/inventory", inventory_app)
app.mount("/carts", cart_app)
app.mount("/coupons", coupon_app)
app.mount("/pricing", pricing_app)
app.mount("/orders", order_app)
app.mount("/payments", payment_app)
app.mount("/shipping", shipping_app)
