"""
Pricing & discount engine.

Everything here is a pure function of its arguments: no database access,
no clock reads (callers pass ``now``), no network. The checkout pipeline
and the coupon pre-check both build on these functions so they can never
disagree about a total.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from shared.config import settings

CENT = Decimal("0.01")
ZERO = Decimal("0")

PERCENT = "percent"
FIXED = "fixed"

# Coupon rejection reasons
INACTIVE = "inactive"
NOT_STARTED = "not_started"
EXPIRED = "expired"
EXHAUSTED = "exhausted"
BELOW_MINIMUM = "below_minimum"


@dataclass(frozen=True)
class Quote:
    subtotal: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    grand_total: Decimal
    coupon_id: Optional[int] = None
    coupon_rejection: Optional[str] = None


def _money(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _aware(moment: Optional[datetime], like: datetime) -> Optional[datetime]:
    # SQLite hands back naive datetimes; treat them as UTC
    if moment is None or moment.tzinfo is not None or like.tzinfo is None:
        return moment
    return moment.replace(tzinfo=like.tzinfo)


def line_total(unit_price, qty: int) -> Decimal:
    return _money(unit_price) * qty


def subtotal(lines: Iterable[Tuple[Decimal, int]]) -> Decimal:
    """Sum of unit_price * qty over (unit_price, qty) pairs."""
    return sum((line_total(price, qty) for price, qty in lines), ZERO)


def shipping_fee(city: str) -> Decimal:
    normalized = (city or "").strip().lower()
    if any(keyword in normalized for keyword in settings.METRO_CITY_KEYWORDS):
        return settings.SHIPPING_FEE_METRO
    return settings.SHIPPING_FEE_STANDARD


def coupon_rejection(coupon, order_subtotal: Decimal, redemption_count: int, now: datetime) -> Optional[str]:
    """Returns None when the coupon applies, otherwise the reason it does not."""
    if not coupon.is_active:
        return INACTIVE
    start_at = _aware(coupon.start_at, now)
    end_at = _aware(coupon.end_at, now)
    if start_at is not None and now < start_at:
        return NOT_STARTED
    if end_at is not None and now > end_at:
        return EXPIRED
    if coupon.usage_limit is not None and redemption_count >= coupon.usage_limit:
        return EXHAUSTED
    if order_subtotal < _money(coupon.min_subtotal or ZERO):
        return BELOW_MINIMUM
    return None


def discount_amount(coupon, order_subtotal: Decimal) -> Decimal:
    value = _money(coupon.value)
    if coupon.type == PERCENT:
        amount = order_subtotal * value / 100
        if coupon.max_discount is not None:
            amount = min(amount, _money(coupon.max_discount))
    else:
        amount = value
    amount = max(ZERO, min(amount, order_subtotal))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def quote(lines, city: str, coupon=None, redemption_count: int = 0, now: datetime = None) -> Quote:
    """
    Totals for a cart. An unusable coupon forfeits the discount instead of
    failing; the reason is reported in ``coupon_rejection``.
    """
    order_subtotal = subtotal(lines)
    fee = shipping_fee(city)
    discount = ZERO
    coupon_id = None
    rejection = None

    if coupon is not None:
        rejection = coupon_rejection(coupon, order_subtotal, redemption_count, now)
        if rejection is None:
            discount = discount_amount(coupon, order_subtotal)
            if discount > ZERO:
                coupon_id = coupon.id

    return Quote(
        subtotal=order_subtotal,
        discount_total=discount,
        shipping_fee=fee,
        grand_total=order_subtotal - discount + fee,
        coupon_id=coupon_id,
        coupon_rejection=rejection,
    )
