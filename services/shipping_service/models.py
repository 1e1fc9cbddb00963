from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String

from shared.config.database import Base

SHIPMENT_PENDING = "pending"
SHIPMENT_SHIPPING = "shipping"
SHIPMENT_DELIVERED = "delivered"


class Shipment(Base):
    __tablename__ = "shipments"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'shipping', 'delivered')", name="ck_shipment_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)
    status = Column(String(10), nullable=False, default=SHIPMENT_PENDING) # pending, shipping, delivered
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
