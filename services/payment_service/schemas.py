from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PaymentConfirmation(BaseModel):
    """Sent by the payment gateway collaborator once a transaction settles."""

    transaction_ref: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(ge=0)


class PaymentFailure(BaseModel):
    transaction_ref: Optional[str] = Field(default=None, max_length=100)
    reason: Optional[str] = Field(default=None, max_length=255)


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    method: str
    amount: Decimal
    status: str
    paid_at: Optional[datetime]
    transaction_ref: Optional[str]

    class Config:
        from_attributes = True
