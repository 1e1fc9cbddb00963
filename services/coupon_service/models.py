from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)

from shared.config.database import Base, utcnow


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("type IN ('percent', 'fixed')", name="ck_coupon_type"),
        CheckConstraint("value >= 0", name="ck_coupon_value_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    type = Column(String(10), nullable=False) # percent, fixed
    value = Column(Numeric(14, 2), nullable=False)
    min_subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    max_discount = Column(Numeric(14, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class CouponRedemption(Base):
    """Written once per order that used a coupon; never updated or deleted."""

    __tablename__ = "coupon_redemptions"

    id = Column(Integer, primary_key=True, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    user_id = Column(Integer, nullable=True)
    discount_amount = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
