import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import PAID
from services.order_service.service import OrderService
from shared.errors import BusinessRuleViolation, DomainError, NotFound, Outcome, internal_failure
from shared.events import ActivityRecorded

from .models import PAYMENT_PAID
from .repository import PaymentRepository
from .schemas import PaymentConfirmation, PaymentFailure

logger = structlog.get_logger(__name__)


class PaymentService:
    """Callbacks from the payment gateway. The order row is only ever moved through the lifecycle."""

    @staticmethod
    async def get_payment(db: AsyncSession, order_id: int):
        return await PaymentRepository.get_for_order(db, order_id)

    @staticmethod
    async def confirm(db: AsyncSession, order_id: int, data: PaymentConfirmation) -> Outcome:
        outcome = await OrderService.update_status(
            db,
            order_id,
            PAID,
            transaction_ref=data.transaction_ref,
            paid_amount=data.amount,
        )
        if outcome.ok:
            logger.info("payment_confirmed", order_id=order_id, transaction_ref=data.transaction_ref)
        else:
            logger.warning("payment_confirmation_rejected", order_id=order_id, code=outcome.failure.code)
        return outcome

    @staticmethod
    async def fail(db: AsyncSession, order_id: int, data: PaymentFailure) -> Outcome:
        try:
            async with db.begin():
                payment = await PaymentRepository.get_for_order(db, order_id)
                if payment is None:
                    raise NotFound("Payment not found", order_id=order_id)
                if payment.status == PAYMENT_PAID:
                    raise BusinessRuleViolation(
                        "Payment was already settled",
                        code="payment_already_paid",
                        order_id=order_id,
                    )
                await PaymentRepository.mark_failed(db, order_id, data.transaction_ref)
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("payment_fail_update_failed", order_id=order_id)
            return Outcome.fail(internal_failure())

        logger.info("payment_failed", order_id=order_id, reason=data.reason)
        payment = await PaymentRepository.get_for_order(db, order_id)
        event = ActivityRecorded(
            action="payment_failed",
            entity_type="payment",
            entity_id=str(payment.id),
            details={"order_id": order_id, "reason": data.reason},
        )
        return Outcome.success(payment, [event])
