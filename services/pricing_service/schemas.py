from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class QuoteRequest(BaseModel):
    ship_city: str = Field(min_length=1, max_length=120)
    coupon_code: Optional[str] = Field(default=None, max_length=50)


class QuoteResponse(BaseModel):
    success: bool = True
    subtotal: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    grand_total: Decimal
    coupon_code: Optional[str] = None
    # Why the coupon was not applied; checkout would forfeit it the same way
    coupon_rejection: Optional[str] = None
