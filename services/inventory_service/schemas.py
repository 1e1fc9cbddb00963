from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class VariantCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(ge=0)
    stock_qty: int = Field(default=0, ge=0)
    options: Dict[str, str] = {}
    is_active: bool = True


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    is_active: bool = True
    variants: List[VariantCreate] = Field(min_length=1)


class VariantResponse(BaseModel):
    id: int
    product_id: int
    sku: str
    price: Decimal
    stock_qty: int
    options: Dict[str, str]
    is_active: bool

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: int
    name: str
    is_active: bool
    variants: List[VariantResponse] = []

    class Config:
        from_attributes = True


class StockUpdate(BaseModel):
    quantity: int = Field(gt=0)
    note: Optional[str] = Field(default=None, max_length=255)


class MovementResponse(BaseModel):
    id: int
    variant_id: int
    direction: str
    qty: int
    note: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerCheck(BaseModel):
    variant_id: int
    stock_qty: int
    ledger_in: int
    ledger_out: int
    consistent: bool
