from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class CouponBase(BaseModel):
    type: Literal["percent", "fixed"]
    value: Decimal = Field(ge=0)
    min_subtotal: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, gt=0)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_window(self):
        if self.type == "percent" and self.value > 100:
            raise ValueError("Percent coupons cannot exceed 100")
        if self.start_at and self.end_at and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class CouponCreate(CouponBase):
    code: str = Field(min_length=1, max_length=50)


class CouponUpdate(CouponBase):
    code: str = Field(min_length=1, max_length=50)


class CouponResponse(BaseModel):
    id: int
    code: str
    type: str
    value: Decimal
    min_subtotal: Decimal
    max_discount: Optional[Decimal]
    usage_limit: Optional[int]
    start_at: Optional[datetime]
    end_at: Optional[datetime]
    is_active: bool

    class Config:
        from_attributes = True


class CouponPage(BaseModel):
    data: List[CouponResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ApplyCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    subtotal: Decimal = Field(ge=0)


class ApplyCouponResponse(BaseModel):
    success: bool = True
    code: str
    type: str
    value: Decimal
    discount_amount: Decimal
