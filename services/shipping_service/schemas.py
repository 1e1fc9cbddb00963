from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ShipmentResponse(BaseModel):
    id: int
    order_id: int
    status: str
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]

    class Config:
        from_attributes = True


class ShippingFeeResponse(BaseModel):
    city: str
    shipping_fee: Decimal
