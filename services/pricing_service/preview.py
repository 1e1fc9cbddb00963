from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from services.cart_service.service import CartService
from services.coupon_service.repository import CouponRepository
from shared.errors import CartEmpty, Outcome

from . import service as pricing
from .schemas import QuoteRequest, QuoteResponse


class QuoteService:
    """Read-only totals for the caller's cart, computed the way checkout computes them."""

    @staticmethod
    async def quote_cart(db: AsyncSession, identity, data: QuoteRequest, now: datetime = None) -> Outcome:
        now = now or datetime.now(timezone.utc)
        cart = await CartService.find_cart(db, identity)
        if cart is None or not cart.items:
            return Outcome.fail(CartEmpty().failure)

        coupon, count = None, 0
        if data.coupon_code:
            coupon = await CouponRepository.get_by_code(db, data.coupon_code)
            if coupon is not None:
                count = await CouponRepository.redemption_count(db, coupon.id)

        lines = [(item.variant.price, item.qty) for item in cart.items]
        result = pricing.quote(lines, data.ship_city, coupon, count, now)

        rejection = result.coupon_rejection
        if data.coupon_code and coupon is None:
            rejection = "not_found"
        return Outcome.success(
            QuoteResponse(
                subtotal=result.subtotal,
                discount_total=result.discount_total,
                shipping_fee=result.shipping_fee,
                grand_total=result.grand_total,
                coupon_code=coupon.code if result.coupon_id is not None else None,
                coupon_rejection=rejection,
            )
        )
