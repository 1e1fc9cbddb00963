from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from shared.config.database import Base, utcnow


class Cart(Base):
    __tablename__ = "carts"
    __table_args__ = (
        # Exactly one owner key: a signed-in user or a guest session
        CheckConstraint(
            "(user_id IS NULL) <> (session_id IS NULL)",
            name="ck_cart_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, unique=True, index=True)
    session_id = Column(String(64), nullable=True, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    items = relationship(
        "CartItem",
        back_populates="cart",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "variant_id", name="uq_cart_item_variant"),
        CheckConstraint("qty > 0", name="ck_cart_item_qty_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False)
    qty = Column(Integer, nullable=False, default=1)
    # Display only; checkout reprices from the variant
    price_at_add = Column(Numeric(14, 2), nullable=False)

    cart = relationship("Cart", back_populates="items", lazy="selectin")
    variant = relationship("ProductVariant", lazy="selectin")
