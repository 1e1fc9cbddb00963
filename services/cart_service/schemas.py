from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CartItemCreate(BaseModel):
    variant_id: int = Field(gt=0)
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(BaseModel):
    quantity: int = Field(gt=0)


class CartMerge(BaseModel):
    session_id: str = Field(min_length=1)


class CartLine(BaseModel):
    id: int
    variant_id: int
    sku: str
    name: str
    options: str
    qty: int
    price: Decimal
    stock_qty: int
    line_total: Decimal


class CartResponse(BaseModel):
    id: Optional[int] = None
    items: List[CartLine] = []
    subtotal: Decimal = Decimal("0")
