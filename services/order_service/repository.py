from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import utcnow

from .models import Order, OrderItem


class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order):
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def add_item(db: AsyncSession, item: OrderItem):
        db.add(item)
        await db.flush()
        return item

    @staticmethod
    async def code_exists(db: AsyncSession, order_code: str) -> bool:
        result = await db.execute(select(Order.id).where(Order.order_code == order_code))
        return result.first() is not None

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, lock: bool = False):
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        if lock:
            stmt = stmt.with_for_update(of=Order)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_code(db: AsyncSession, order_code: str):
        result = await db.execute(
            select(Order).where(Order.order_code == order_code).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def set_status(db: AsyncSession, order_id: int, status: str):
        await db.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(status=status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def list_orders(db: AsyncSession, user_id: int = None, status: str = None, offset: int = 0, limit: int = 10):
        stmt = select(Order)
        count_stmt = select(func.count(Order.id))
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
            count_stmt = count_stmt.where(Order.user_id == user_id)
        if status:
            stmt = stmt.where(Order.status == status)
            count_stmt = count_stmt.where(Order.status == status)
        result = await db.execute(
            stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit)
            .execution_options(populate_existing=True)
        )
        total = (await db.execute(count_stmt)).scalar_one()
        return result.scalars().all(), total
