from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import utcnow

from .models import PAYMENT_FAILED, PAYMENT_PAID, Payment


class PaymentRepository:
    @staticmethod
    async def create_payment(db: AsyncSession, payment: Payment):
        db.add(payment)
        await db.flush()
        return payment

    @staticmethod
    async def get_for_order(db: AsyncSession, order_id: int):
        result = await db.execute(
            select(Payment).where(Payment.order_id == order_id).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def mark_paid(db: AsyncSession, order_id: int, transaction_ref: str = None):
        values = {"status": PAYMENT_PAID, "paid_at": utcnow()}
        if transaction_ref:
            values["transaction_ref"] = transaction_ref
        await db.execute(
            update(Payment).where(Payment.order_id == order_id).values(**values)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def mark_failed(db: AsyncSession, order_id: int, transaction_ref: str = None):
        await db.execute(
            update(Payment)
            .where(Payment.order_id == order_id)
            .values(status=PAYMENT_FAILED, transaction_ref=transaction_ref)
            .execution_options(synchronize_session=False)
        )
