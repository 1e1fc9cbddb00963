from typing import Iterable

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import MOVEMENT_IN, MOVEMENT_OUT, InventoryMovement, Product, ProductVariant


class InventoryRepository:
    """Raw reads and writes. Callers own the transaction."""

    @staticmethod
    async def add_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.flush()
        return product

    @staticmethod
    async def get_variant(db: AsyncSession, variant_id: int):
        result = await db.execute(
            select(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_product(db: AsyncSession, product_id: int):
        result = await db.execute(
            select(Product)
            .options(selectinload(Product.variants))
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def lock_variants(db: AsyncSession, variant_ids: Iterable[int]):
        # Fixed lock order avoids deadlocks between concurrent checkouts
        ids = sorted(set(variant_ids))
        result = await db.execute(
            select(ProductVariant)
            .where(ProductVariant.id.in_(ids))
            .order_by(ProductVariant.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {variant.id: variant for variant in result.scalars().all()}

    @staticmethod
    async def current_stock(db: AsyncSession, variant_id: int):
        result = await db.execute(
            select(ProductVariant.stock_qty).where(ProductVariant.id == variant_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def decrement_if_available(db: AsyncSession, variant_id: int, qty: int) -> bool:
        """Conditional debit. False means another writer got there first."""
        result = await db.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id, ProductVariant.stock_qty >= qty)
            .values(stock_qty=ProductVariant.stock_qty - qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def increment(db: AsyncSession, variant_id: int, qty: int) -> bool:
        result = await db.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(stock_qty=ProductVariant.stock_qty + qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def add_movement(db: AsyncSession, movement: InventoryMovement):
        db.add(movement)
        await db.flush()
        return movement

    @staticmethod
    async def list_movements(db: AsyncSession, variant_id: int):
        result = await db.execute(
            select(InventoryMovement)
            .where(InventoryMovement.variant_id == variant_id)
            .order_by(InventoryMovement.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def movement_totals(db: AsyncSession, variant_id: int):
        result = await db.execute(
            select(
                func.coalesce(
                    func.sum(case((InventoryMovement.direction == MOVEMENT_IN, InventoryMovement.qty), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((InventoryMovement.direction == MOVEMENT_OUT, InventoryMovement.qty), else_=0)), 0
                ),
            ).where(InventoryMovement.variant_id == variant_id)
        )
        total_in, total_out = result.one()
        return int(total_in), int(total_out)
