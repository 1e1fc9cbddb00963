import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.inventory_service.repository import InventoryRepository
from services.pricing_service import service as pricing
from shared.errors import (
    BusinessRuleViolation,
    DomainError,
    Forbidden,
    InsufficientStock,
    NotFound,
    Outcome,
    ValidationError,
    internal_failure,
)

from .models import Cart, CartItem
from .repository import CartRepository
from .schemas import CartItemCreate, CartLine, CartResponse

logger = structlog.get_logger(__name__)


def _owner(identity):
    """(user_id, session_id) for the cart lookup; a signed-in user wins over the session."""
    if identity.user_id is not None:
        return identity.user_id, None
    return None, identity.session_id


def _owns(cart: Cart, identity) -> bool:
    user_id, session_id = _owner(identity)
    if user_id is not None:
        return cart.user_id == user_id
    return session_id is not None and cart.session_id == session_id


def to_lines(cart: Cart):
    lines = []
    for item in cart.items:
        variant = item.variant
        lines.append(
            CartLine(
                id=item.id,
                variant_id=item.variant_id,
                sku=variant.sku,
                name=variant.product.name,
                options=variant.options_text,
                qty=item.qty,
                price=variant.price,
                stock_qty=variant.stock_qty,
                line_total=pricing.line_total(variant.price, item.qty),
            )
        )
    return lines


class CartService:

    @staticmethod
    async def find_cart(db: AsyncSession, identity):
        user_id, session_id = _owner(identity)
        return await CartRepository.find_cart(db, user_id=user_id, session_id=session_id)

    @staticmethod
    async def get_cart(db: AsyncSession, identity) -> CartResponse:
        cart = await CartService.find_cart(db, identity)
        if cart is None:
            return CartResponse()
        lines = to_lines(cart)
        return CartResponse(
            id=cart.id,
            items=lines,
            subtotal=pricing.subtotal((line.price, line.qty) for line in lines),
        )

    @staticmethod
    async def _get_or_create(db: AsyncSession, identity) -> Cart:
        user_id, session_id = _owner(identity)
        if user_id is None and not session_id:
            raise ValidationError("User or session required", field="session_id")
        cart = await CartRepository.find_cart(db, user_id=user_id, session_id=session_id)
        if cart is None:
            cart = await CartRepository.create_cart(db, Cart(user_id=user_id, session_id=session_id))
        return cart

    @staticmethod
    async def _run(db: AsyncSession, action, identity, *args) -> Outcome:
        try:
            async with db.begin():
                await action(db, identity, *args)
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("cart_update_failed", action=action.__name__)
            return Outcome.fail(internal_failure())
        return Outcome.success(await CartService.get_cart(db, identity))

    @staticmethod
    async def add_item(db: AsyncSession, identity, data: CartItemCreate) -> Outcome:
        return await CartService._run(db, CartService._add_item, identity, data)

    @staticmethod
    async def _add_item(db: AsyncSession, identity, data: CartItemCreate):
        variant = await InventoryRepository.get_variant(db, data.variant_id)
        if variant is None:
            raise NotFound("Product variant not found", variant_id=data.variant_id)
        if not variant.is_active or not variant.product.is_active:
            raise BusinessRuleViolation("Product variant is not available", code="variant_unavailable")

        cart = await CartService._get_or_create(db, identity)
        existing = await CartRepository.find_item(db, cart.id, variant.id)
        new_qty = (existing.qty if existing else 0) + data.quantity

        if new_qty > variant.stock_qty:
            message = (
                "This product is out of stock."
                if variant.stock_qty == 0
                else f"Only {variant.stock_qty} left in stock."
            )
            raise InsufficientStock(message, variant_id=variant.id, requested=new_qty, available=variant.stock_qty)

        if existing:
            existing.qty = new_qty
        else:
            await CartRepository.add_item(
                db, CartItem(cart_id=cart.id, variant_id=variant.id, qty=data.quantity, price_at_add=variant.price)
            )

    @staticmethod
    async def update_item(db: AsyncSession, identity, item_id: int, quantity: int) -> Outcome:
        return await CartService._run(db, CartService._update_item, identity, item_id, quantity)

    @staticmethod
    async def _owned_item(db: AsyncSession, identity, item_id: int) -> CartItem:
        item = await CartRepository.get_item(db, item_id)
        if item is None:
            raise NotFound("Cart item not found", item_id=item_id)
        if not _owns(item.cart, identity):
            raise Forbidden("Unauthorized")
        return item

    @staticmethod
    async def _update_item(db: AsyncSession, identity, item_id: int, quantity: int):
        item = await CartService._owned_item(db, identity, item_id)
        stock = await InventoryRepository.current_stock(db, item.variant_id)
        if quantity > stock:
            raise InsufficientStock(
                f"Out of stock. Only {stock} items available.",
                variant_id=item.variant_id,
                requested=quantity,
                available=stock,
            )
        item.qty = quantity

    @staticmethod
    async def remove_item(db: AsyncSession, identity, item_id: int) -> Outcome:
        return await CartService._run(db, CartService._remove_item, identity, item_id)

    @staticmethod
    async def _remove_item(db: AsyncSession, identity, item_id: int):
        item = await CartService._owned_item(db, identity, item_id)
        await CartRepository.remove_item(db, item.id)

    @staticmethod
    async def clear_cart(db: AsyncSession, identity) -> Outcome:
        return await CartService._run(db, CartService._clear_cart, identity)

    @staticmethod
    async def _clear_cart(db: AsyncSession, identity):
        cart = await CartService.find_cart(db, identity)
        if cart is not None:
            await CartRepository.clear_cart(db, cart.id)

    @staticmethod
    async def merge_guest_cart(db: AsyncSession, identity, session_id: str) -> Outcome:
        """Moves a guest cart's items into the signed-in user's cart after login."""
        return await CartService._run(db, CartService._merge, identity, session_id)

    @staticmethod
    async def _merge(db: AsyncSession, identity, session_id: str):
        if identity.user_id is None:
            raise ValidationError("Sign in to merge a guest cart", field="user")
        guest = await CartRepository.find_cart(db, session_id=session_id)
        if guest is None or not guest.items:
            return

        user_cart = await CartRepository.find_cart(db, user_id=identity.user_id)
        if user_cart is None:
            user_cart = await CartRepository.create_cart(db, Cart(user_id=identity.user_id))

        for item in guest.items:
            existing = await CartRepository.find_item(db, user_cart.id, item.variant_id)
            if existing:
                existing.qty += item.qty
            else:
                await CartRepository.add_item(
                    db,
                    CartItem(
                        cart_id=user_cart.id,
                        variant_id=item.variant_id,
                        qty=item.qty,
                        price_at_add=item.price_at_add,
                    ),
                )
        await CartRepository.delete_cart(db, guest.id)
