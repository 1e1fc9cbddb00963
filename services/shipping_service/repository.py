from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import utcnow

from .models import SHIPMENT_DELIVERED, SHIPMENT_SHIPPING, Shipment


class ShipmentRepository:
    @staticmethod
    async def create_shipment(db: AsyncSession, shipment: Shipment):
        db.add(shipment)
        await db.flush()
        return shipment

    @staticmethod
    async def get_for_order(db: AsyncSession, order_id: int):
        result = await db.execute(
            select(Shipment).where(Shipment.order_id == order_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def mark_shipping(db: AsyncSession, order_id: int):
        await db.execute(
            update(Shipment)
            .where(Shipment.order_id == order_id)
            .values(status=SHIPMENT_SHIPPING, shipped_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def mark_delivered(db: AsyncSession, order_id: int):
        await db.execute(
            update(Shipment)
            .where(Shipment.order_id == order_id)
            .values(status=SHIPMENT_DELIVERED, delivered_at=utcnow())
            .execution_options(synchronize_session=False)
        )
