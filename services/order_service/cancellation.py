import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.inventory_service.service import InventoryLedger
from shared.errors import Forbidden, NotCancellable, NotFound, Unauthenticated
from shared.observability import ecomm_compensation_total

from .models import CANCELLED, CONFIRMED, PENDING, Order
from .repository import OrderRepository

logger = structlog.get_logger(__name__)

CUSTOMER_CANCELLABLE = (PENDING, CONFIRMED)


class CancellationCompensator:
    """Reverses the inventory effects of a checkout."""

    @staticmethod
    async def restock(db: AsyncSession, order: Order, reason: str):
        """Credits back every debited line. Joins the caller's transaction."""
        for item in order.items:
            # Lines whose variant was since deleted have nothing to restore
            if item.variant_id is None:
                continue
            await InventoryLedger.credit(db, item.variant_id, item.qty, f"Cancelled order {order.order_code}")
        ecomm_compensation_total.labels(reason=reason).inc()
        logger.info("order_restocked", order_code=order.order_code, reason=reason, lines=len(order.items))

    @staticmethod
    async def cancel_for_customer(db: AsyncSession, order_id: int, identity):
        """
        Customer cancellation. Runs inside the caller's transaction and holds
        the order row lock, so a concurrent status update waits for it.
        Returns (order, previous_status).
        """
        if not identity.is_authenticated:
            raise Unauthenticated("Sign in to cancel an order")

        order = await OrderRepository.get_order(db, order_id, lock=True)
        if order is None:
            raise NotFound("Order not found", order_id=order_id)
        if order.user_id != identity.user_id:
            raise Forbidden("This order does not belong to you", order_id=order_id)
        if order.status not in CUSTOMER_CANCELLABLE:
            raise NotCancellable(
                "Only pending or confirmed orders can be cancelled",
                order_id=order_id,
                status=order.status,
            )

        previous = order.status
        await CancellationCompensator.restock(db, order, reason="customer_cancel")
        await OrderRepository.set_status(db, order.id, CANCELLED)
        return order, previous
