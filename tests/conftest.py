"""
Shared fixtures: an in-memory SQLite database per test, seed helpers and a
recording event dispatcher.
"""
import os

# Settings are read at import time, so the environment comes first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["TRACING_ENABLED"] = "false"
os.environ["CHECKOUT_RATE_LIMIT"] = "1000/minute"
os.environ["NOTIFICATION_URL"] = ""
os.environ["RESEND_API_KEY"] = ""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import main
from services.cart_service.schemas import CartItemCreate
from services.cart_service.service import CartService
from services.coupon_service.schemas import CouponCreate
from services.coupon_service.service import CouponService
from services.inventory_service.schemas import ProductCreate, VariantCreate
from services.inventory_service.service import InventoryService
from services.order_service.schemas import CheckoutRequest
from services.order_service.service import OrderService
from shared.config.database import create_tables, get_db
from shared.events import get_dispatcher
from shared.security import Identity
from shared.security.jwt_handler import ALGORITHM, SECRET_KEY

CUSTOMER = Identity(user_id=1, role="customer")
OTHER_CUSTOMER = Identity(user_id=2, role="customer")
STAFF = Identity(user_id=90, role="admin")
GUEST = Identity(session_id="guest-session-1")

SUB_APPS = (
    main.inventory_app,
    main.cart_app,
    main.coupon_app,
    main.pricing_app,
    main.order_app,
    main.payment_app,
    main.shipping_app,
)


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    async def dispatch(self, events):
        self.events.extend(events)

    def of_type(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessions(engine):
    """Session factory. Open one session per operation, as a request would."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
async def client(sessions, dispatcher):
    async def override_get_db():
        async with sessions() as session:
            yield session

    for sub_app in SUB_APPS:
        sub_app.dependency_overrides[get_db] = override_get_db
        sub_app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    for sub_app in SUB_APPS:
        sub_app.dependency_overrides.clear()


def create_access_token(data: dict, expires_delta: timedelta = timedelta(minutes=60)) -> str:
    """Signs a token the way the external auth service does."""
    claims = {**data, "exp": datetime.now(timezone.utc) + expires_delta}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def auth_headers(identity: Identity) -> dict:
    token = create_access_token({"sub": str(identity.user_id), "role": identity.role})
    return {"Authorization": f"Bearer {token}"}


# --- Seed helpers ---

async def seed_variant(sessions, sku="SHIRT-M", price="100000", stock=5, name="Linen Shirt", **options):
    async with sessions() as db:
        outcome = await InventoryService.create_product(
            db,
            ProductCreate(
                name=name,
                variants=[
                    VariantCreate(sku=sku, price=Decimal(price), stock_qty=stock, options=options or {"Size": "M"})
                ],
            ),
        )
    assert outcome.ok, outcome.failure
    return outcome.value.variants[0]


async def add_to_cart(sessions, identity, variant_id, quantity):
    async with sessions() as db:
        outcome = await CartService.add_item(db, identity, CartItemCreate(variant_id=variant_id, quantity=quantity))
    assert outcome.ok, outcome.failure
    return outcome.value


async def seed_coupon(sessions, code="SAVE10", type="percent", value="10", **fields):
    async with sessions() as db:
        outcome = await CouponService.create_coupon(
            db, CouponCreate(code=code, type=type, value=Decimal(value), **fields)
        )
    assert outcome.ok, outcome.failure
    return outcome.value


def checkout_request(**overrides) -> CheckoutRequest:
    data = {
        "customer_name": "Lan Nguyen",
        "customer_phone": "0901234567",
        "email": "lan@example.com",
        "ship_address_line1": "12 Nguyen Hue",
        "ship_city": "HCM",
        "ship_province": "Ho Chi Minh",
    }
    data.update(overrides)
    return CheckoutRequest(**data)


async def place_order(sessions, identity=CUSTOMER, **overrides):
    async with sessions() as db:
        return await OrderService.checkout(db, identity, checkout_request(**overrides))


async def stock_of(sessions, variant_id):
    async with sessions() as db:
        variant = await InventoryService.get_variant(db, variant_id)
        return variant.stock_qty
