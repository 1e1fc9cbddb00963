"""
Checkout: turns a cart into an order in a single transaction.

Each step below is a named stage of a TransactionalPipeline. Steps read
and write through the same AsyncSession; a raise anywhere rolls back
every debit, insert and cart deletion made by earlier steps.
"""
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from services.cart_service.models import Cart
from services.cart_service.repository import CartRepository
from services.coupon_service.service import CouponService
from services.inventory_service.models import ProductVariant
from services.inventory_service.service import InventoryLedger
from services.payment_service.models import PAYMENT_PENDING, Payment
from services.payment_service.repository import PaymentRepository
from services.pricing_service import service as pricing
from services.shipping_service.models import SHIPMENT_PENDING, Shipment
from services.shipping_service.repository import ShipmentRepository
from shared.config import settings
from shared.errors import BusinessRuleViolation, CartEmpty, Conflict, InsufficientStock, ValidationError
from shared.security import Identity

from .models import PENDING, Order, OrderItem
from .pipeline import TransactionalPipeline
from .repository import OrderRepository
from .schemas import CheckoutRequest

logger = structlog.get_logger(__name__)

# No 0/O or 1/I so codes can be read over the phone
ORDER_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ORDER_CODE_SUFFIX_LENGTH = 6


def generate_order_code(now: datetime) -> str:
    suffix = "".join(secrets.choice(ORDER_CODE_ALPHABET) for _ in range(ORDER_CODE_SUFFIX_LENGTH))
    return f"{settings.ORDER_CODE_PREFIX}{now:%Y%m%d}-{suffix}"


@dataclass
class CheckoutContext:
    identity: Identity
    data: CheckoutRequest
    now: datetime
    cart: Optional[Cart] = None
    variants: Dict[int, ProductVariant] = field(default_factory=dict)
    quote: Optional[pricing.Quote] = None
    coupon_code: Optional[str] = None
    order: Optional[Order] = None
    low_stock: List[dict] = field(default_factory=list)


async def load_cart(db, ctx: CheckoutContext):
    identity = ctx.identity
    if identity.user_id is None and not identity.session_id:
        raise ValidationError("User or session required", field="session_id")

    if identity.user_id is not None:
        ctx.cart = await CartRepository.find_cart(db, user_id=identity.user_id)
    else:
        ctx.cart = await CartRepository.find_cart(db, session_id=identity.session_id)

    if ctx.cart is None or not ctx.cart.items:
        raise CartEmpty()


async def lock_and_check_stock(db, ctx: CheckoutContext):
    ctx.variants = await InventoryLedger.lock_variants(db, [item.variant_id for item in ctx.cart.items])

    for item in ctx.cart.items:
        variant = ctx.variants.get(item.variant_id)
        # Either the variant or its whole product may have been withdrawn since add-to-cart
        if variant is None or not variant.is_active or not variant.product.is_active:
            raise BusinessRuleViolation(
                "A product in your cart is no longer available",
                code="variant_unavailable",
                variant_id=item.variant_id,
            )
        if item.qty > variant.stock_qty:
            raise InsufficientStock(
                f"{variant.product.name} is out of stock. Only {variant.stock_qty} available.",
                variant_id=variant.id,
                sku=variant.sku,
                requested=item.qty,
                available=variant.stock_qty,
            )


async def price_cart(db, ctx: CheckoutContext):
    coupon, redemption_count = None, 0
    if ctx.data.coupon_code:
        # Row lock held until commit, so the usage count cannot move under us
        coupon, redemption_count = await CouponService.lock_for_redemption(db, ctx.data.coupon_code)

    lines = [(ctx.variants[item.variant_id].price, item.qty) for item in ctx.cart.items]
    ctx.quote = pricing.quote(lines, ctx.data.ship_city, coupon, redemption_count, ctx.now)

    if ctx.quote.coupon_id is not None:
        ctx.coupon_code = coupon.code
    elif coupon is not None or ctx.data.coupon_code:
        logger.info(
            "coupon_forfeited",
            code=ctx.data.coupon_code,
            reason=ctx.quote.coupon_rejection or "not_found",
        )


async def insert_order(db, ctx: CheckoutContext):
    data, quote = ctx.data, ctx.quote
    for attempt in range(1, settings.ORDER_CODE_ATTEMPTS + 1):
        code = generate_order_code(ctx.now)
        if await OrderRepository.code_exists(db, code):
            logger.info("order_code_collision", attempt=attempt)
            continue

        order = Order(
            order_code=code,
            user_id=ctx.identity.user_id,
            status=PENDING,
            subtotal=quote.subtotal,
            discount_total=quote.discount_total,
            shipping_fee=quote.shipping_fee,
            grand_total=quote.grand_total,
            coupon_code=ctx.coupon_code,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            email=data.email,
            ship_address_line1=data.ship_address_line1,
            ship_address_line2=data.ship_address_line2,
            ship_city=data.ship_city,
            ship_province=data.ship_province,
            ship_postal_code=data.ship_postal_code,
            ship_country=data.ship_country,
            note=data.note,
            created_at=ctx.now,
            updated_at=ctx.now,
        )
        try:
            # SAVEPOINT: a concurrent insert of the same code only costs this attempt
            async with db.begin_nested():
                ctx.order = await OrderRepository.create_order(db, order)
            return
        except IntegrityError:
            logger.info("order_code_collision", attempt=attempt)

    raise Conflict("Could not allocate a unique order code", code="order_code_exhausted")


async def snapshot_items_and_debit(db, ctx: CheckoutContext):
    order = ctx.order
    for item in ctx.cart.items:
        variant = ctx.variants[item.variant_id]
        await OrderRepository.add_item(
            db,
            OrderItem(
                order_id=order.id,
                product_id=variant.product_id,
                variant_id=variant.id,
                sku=variant.sku,
                name=variant.product.name,
                options_text=variant.options_text,
                unit_price=variant.price,
                qty=item.qty,
                line_total=pricing.line_total(variant.price, item.qty),
            ),
        )
        await InventoryLedger.debit(db, variant.id, item.qty, f"Order {order.order_code}", label=variant.product.name)

        remaining = variant.stock_qty - item.qty
        if remaining <= settings.LOW_STOCK_THRESHOLD:
            ctx.low_stock.append({"variant_id": variant.id, "sku": variant.sku, "stock_qty": remaining})


async def open_payment_and_shipment(db, ctx: CheckoutContext):
    await PaymentRepository.create_payment(
        db,
        Payment(
            order_id=ctx.order.id,
            method=ctx.data.payment_method,
            status=PAYMENT_PENDING,
            amount=ctx.quote.grand_total,
        ),
    )
    await ShipmentRepository.create_shipment(db, Shipment(order_id=ctx.order.id, status=SHIPMENT_PENDING))


async def redeem_coupon(db, ctx: CheckoutContext):
    quote = ctx.quote
    if quote.coupon_id is None or quote.discount_total <= 0:
        return
    await CouponService.record_redemption(
        db, quote.coupon_id, ctx.order.id, ctx.identity.user_id, quote.discount_total
    )


async def clear_cart(db, ctx: CheckoutContext):
    await CartRepository.clear_cart(db, ctx.cart.id)


def build_checkout_pipeline() -> TransactionalPipeline:
    pipeline = TransactionalPipeline()
    pipeline.add_step("load_cart", load_cart)
    pipeline.add_step("lock_and_check_stock", lock_and_check_stock)
    pipeline.add_step("price_cart", price_cart)
    pipeline.add_step("insert_order", insert_order)
    pipeline.add_step("snapshot_items_and_debit", snapshot_items_and_debit)
    pipeline.add_step("open_payment_and_shipment", open_payment_and_shipment)
    pipeline.add_step("redeem_coupon", redeem_coupon)
    pipeline.add_step("clear_cart", clear_cart)
    return pipeline
