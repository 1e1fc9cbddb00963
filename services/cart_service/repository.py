from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Cart, CartItem


class CartRepository:

    @staticmethod
    async def find_cart(db: AsyncSession, user_id: int = None, session_id: str = None):
        if user_id is not None:
            clause = Cart.user_id == user_id
        elif session_id:
            clause = Cart.session_id == session_id
        else:
            return None
        result = await db.execute(
            select(Cart).where(clause).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def create_cart(db: AsyncSession, cart: Cart):
        db.add(cart)
        await db.flush()
        return cart

    @staticmethod
    async def get_item(db: AsyncSession, item_id: int):
        result = await db.execute(
            select(CartItem).where(CartItem.id == item_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def find_item(db: AsyncSession, cart_id: int, variant_id: int):
        result = await db.execute(
            select(CartItem).where(CartItem.cart_id == cart_id, CartItem.variant_id == variant_id)
        )
        return result.scalars().first()

    @staticmethod
    async def add_item(db: AsyncSession, item: CartItem):
        db.add(item)
        await db.flush()
        return item

    @staticmethod
    async def remove_item(db: AsyncSession, item_id: int):
        await db.execute(delete(CartItem).where(CartItem.id == item_id))

    @staticmethod
    async def clear_cart(db: AsyncSession, cart_id: int):
        """Deletes all items of the cart. The caller commits."""
        await db.execute(delete(CartItem).where(CartItem.cart_id == cart_id))

    @staticmethod
    async def delete_cart(db: AsyncSession, cart_id: int):
        await db.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
        await db.execute(delete(Cart).where(Cart.id == cart_id))
