from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from services.payment_service.schemas import PaymentResponse
from services.shipping_service.schemas import ShipmentResponse


class CheckoutRequest(BaseModel):
    customer_name: str = Field(min_length=1, max_length=200)
    customer_phone: str = Field(min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    ship_address_line1: str = Field(min_length=1, max_length=255)
    ship_address_line2: Optional[str] = Field(default=None, max_length=255)
    ship_city: str = Field(min_length=1, max_length=120)
    ship_province: str = Field(min_length=1, max_length=120)
    ship_postal_code: Optional[str] = Field(default=None, max_length=20)
    ship_country: str = Field(default="VN", max_length=80)
    note: Optional[str] = Field(default=None, max_length=500)
    payment_method: Literal["cod", "bank_transfer", "momo", "zalopay", "vnpay"] = "cod"
    coupon_code: Optional[str] = Field(default=None, max_length=50)

    @field_validator("email", "coupon_code", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class OrderStatusUpdate(BaseModel):
    # Checked against the lifecycle in the service so unknown values get a domain error
    status: str
    force: bool = False


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[int]
    variant_id: Optional[int]
    sku: str
    name: str
    options_text: Optional[str]
    unit_price: Decimal
    qty: int
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_code: str
    user_id: Optional[int]
    status: str
    subtotal: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    grand_total: Decimal
    coupon_code: Optional[str]
    customer_name: str
    customer_phone: str
    email: Optional[str]
    ship_address_line1: str
    ship_address_line2: Optional[str]
    ship_city: str
    ship_province: str
    ship_postal_code: Optional[str]
    ship_country: str
    note: Optional[str]
    created_at: datetime
    items: List[OrderItemResponse] = []
    payment: Optional[PaymentResponse] = None
    shipment: Optional[ShipmentResponse] = None

    class Config:
        from_attributes = True


class OrderEnvelope(BaseModel):
    success: bool = True
    data: OrderResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderPage(BaseModel):
    success: bool = True
    orders: List[OrderResponse]
    pagination: Pagination
