from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from shared.config.database import Base, utcnow
from services.payment_service.models import Payment # noqa: F401  (mapper registration)
from services.shipping_service.models import Shipment # noqa: F401

PENDING = "pending"
CONFIRMED = "confirmed"
PAID = "paid"
PROCESSING = "processing"
SHIPPED = "shipped"
COMPLETED = "completed"
CANCELLED = "cancelled"
RETURNED = "returned"

ORDER_STATUSES = (PENDING, CONFIRMED, PAID, PROCESSING, SHIPPED, COMPLETED, CANCELLED, RETURNED)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("discount_total >= 0", name="ck_order_discount_non_negative"),
        CheckConstraint("discount_total <= subtotal", name="ck_order_discount_within_subtotal"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_code = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(Integer, nullable=True, index=True) # NULL for guest checkout
    status = Column(String(20), nullable=False, default=PENDING, index=True)

    # Fixed at checkout; never re-priced
    subtotal = Column(Numeric(14, 2), nullable=False)
    discount_total = Column(Numeric(14, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(14, 2), nullable=False)
    grand_total = Column(Numeric(14, 2), nullable=False)
    coupon_code = Column(String(50), nullable=True)

    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=True)
    ship_address_line1 = Column(String(255), nullable=False)
    ship_address_line2 = Column(String(255), nullable=True)
    ship_city = Column(String(120), nullable=False)
    ship_province = Column(String(120), nullable=False)
    ship_postal_code = Column(String(20), nullable=True)
    ship_country = Column(String(80), nullable=False, default="VN")
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship("OrderItem", back_populates="order", lazy="selectin", order_by="OrderItem.id")
    payment = relationship("Payment", uselist=False, lazy="selectin")
    shipment = relationship("Shipment", uselist=False, lazy="selectin")


class OrderItem(Base):
    """Snapshot of a cart line at checkout time."""

    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("qty > 0", name="ck_order_item_qty_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)
    sku = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    options_text = Column(String(255), nullable=True)
    unit_price = Column(Numeric(14, 2), nullable=False)
    qty = Column(Integer, nullable=False)
    line_total = Column(Numeric(14, 2), nullable=False)

    order = relationship("Order", back_populates="items")
