from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Coupon, CouponRedemption


class CouponRepository:

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str, lock: bool = False):
        stmt = select(Coupon).where(Coupon.code == code).execution_options(populate_existing=True)
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_id(db: AsyncSession, coupon_id: int):
        result = await db.execute(
            select(Coupon).where(Coupon.id == coupon_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_coupons(db: AsyncSession, query: str = None, offset: int = 0, limit: int = 10):
        stmt = select(Coupon)
        count_stmt = select(func.count(Coupon.id))
        if query:
            stmt = stmt.where(Coupon.code.contains(query))
            count_stmt = count_stmt.where(Coupon.code.contains(query))
        result = await db.execute(stmt.order_by(Coupon.created_at.desc(), Coupon.id.desc()).offset(offset).limit(limit))
        total = (await db.execute(count_stmt)).scalar_one()
        return result.scalars().all(), total

    @staticmethod
    async def redemption_count(db: AsyncSession, coupon_id: int) -> int:
        result = await db.execute(
            select(func.count(CouponRedemption.id)).where(CouponRedemption.coupon_id == coupon_id)
        )
        return result.scalar_one()

    @staticmethod
    async def add(db: AsyncSession, obj):
        db.add(obj)
        await db.flush()
        return obj

    @staticmethod
    async def delete(db: AsyncSession, coupon: Coupon):
        await db.delete(coupon)
