from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from shared.config.database import Base, utcnow

MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    variants = relationship("ProductVariant", back_populates="product", lazy="selectin")


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("stock_qty >= 0", name="ck_variant_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    sku = Column(String(100), unique=True, nullable=False, index=True)
    price = Column(Numeric(14, 2), nullable=False)
    # Changed only through InventoryLedger.debit / credit
    stock_qty = Column(Integer, nullable=False, default=0)
    options = Column(JSON, nullable=False, default=dict) # {"Color": "Red", "Size": "M"}
    is_active = Column(Boolean, default=True, nullable=False)

    product = relationship("Product", back_populates="variants", lazy="selectin")

    @property
    def options_text(self) -> str:
        return ", ".join(f"{name}: {value}" for name, value in (self.options or {}).items())


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    __table_args__ = (
        CheckConstraint("qty > 0", name="ck_movement_qty_positive"),
        CheckConstraint("direction IN ('in', 'out')", name="ck_movement_direction"),
    )

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False, index=True)
    direction = Column(String(3), nullable=False)
    qty = Column(Integer, nullable=False)
    note = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
