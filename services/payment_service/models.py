from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String

from shared.config.database import Base

PAYMENT_METHODS = ("cod", "bank_transfer", "momo", "zalopay", "vnpay")

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'paid', 'failed')", name="ck_payment_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    method = Column(String(20), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    status = Column(String(10), nullable=False, default=PAYMENT_PENDING) # pending, paid, failed
    paid_at = Column(DateTime(timezone=True), nullable=True)
    transaction_ref = Column(String(100), nullable=True)
