"""
Order lifecycle state machine.

    pending    -> confirmed | paid | processing | cancelled
    confirmed  -> paid | processing | cancelled
    paid       -> processing | cancelled
    processing -> shipped | cancelled
    shipped    -> completed | returned

completed, cancelled and returned are terminal. Staff may force a move
out of any non-terminal state.
"""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.repository import PaymentRepository
from services.shipping_service.repository import ShipmentRepository
from shared.errors import BusinessRuleViolation, InvalidTransition, NotFound, ValidationError
from shared.events import ActivityRecorded, ConfirmationEmailRequested, NotificationRequested

from .cancellation import CancellationCompensator
from .models import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    ORDER_STATUSES,
    PAID,
    PENDING,
    PROCESSING,
    RETURNED,
    SHIPPED,
    Order,
)
from .repository import OrderRepository

logger = structlog.get_logger(__name__)

TRANSITIONS = {
    PENDING: {CONFIRMED, PAID, PROCESSING, CANCELLED},
    CONFIRMED: {PAID, PROCESSING, CANCELLED},
    PAID: {PROCESSING, CANCELLED},
    PROCESSING: {SHIPPED, CANCELLED},
    SHIPPED: {COMPLETED, RETURNED},
    COMPLETED: set(),
    CANCELLED: set(),
    RETURNED: set(),
}

TERMINAL = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Goods are still in the warehouse; cancelling returns them to stock
UNSHIPPED = frozenset({PENDING, CONFIRMED, PAID, PROCESSING})


def validate_status(status: str):
    if status not in ORDER_STATUSES:
        raise ValidationError(
            f"Unknown order status '{status}'",
            field="status",
            allowed=list(ORDER_STATUSES),
        )


def can_transition(current: str, target: str, force: bool = False) -> bool:
    if current in TERMINAL or current == target:
        return False
    return force or target in TRANSITIONS[current]


async def apply_transition(
    db: AsyncSession,
    order_id: int,
    status: str,
    force: bool = False,
    transaction_ref: str = None,
    paid_amount=None,
):
    """
    Moves an order to ``status`` and updates its payment/shipment rows.
    Runs inside the caller's transaction with the order row locked.
    Returns (order, previous_status).
    """
    validate_status(status)

    order = await OrderRepository.get_order(db, order_id, lock=True)
    if order is None:
        raise NotFound("Order not found", order_id=order_id)

    previous = order.status
    if not can_transition(previous, status, force):
        raise InvalidTransition(
            f"Cannot change order status from {previous} to {status}",
            order_id=order_id,
            current=previous,
            target=status,
        )

    if status == PAID:
        if paid_amount is not None and paid_amount < order.grand_total:
            raise BusinessRuleViolation(
                "Paid amount is less than the order total",
                code="payment_amount_mismatch",
                paid=str(paid_amount),
                expected=str(order.grand_total),
            )
        await PaymentRepository.mark_paid(db, order.id, transaction_ref)
    elif status == SHIPPED:
        await ShipmentRepository.mark_shipping(db, order.id)
    elif status == COMPLETED:
        await ShipmentRepository.mark_delivered(db, order.id)
    elif status == CANCELLED and previous in UNSHIPPED:
        await CancellationCompensator.restock(db, order, reason="staff_cancel")

    await OrderRepository.set_status(db, order.id, status)
    if force and status not in TRANSITIONS[previous]:
        logger.warning("order_status_forced", order_id=order.id, previous=previous, status=status)
    return order, previous


_CUSTOMER_MESSAGES = {
    PROCESSING: ("Order confirmed", "Your order {code} has been confirmed and is being processed."),
    SHIPPED: ("Order on its way", "Your order {code} has been handed to the carrier."),
    COMPLETED: ("Order delivered", "Your order {code} was delivered. Thank you for shopping with us!"),
    CANCELLED: ("Order cancelled", "Your order {code} has been cancelled."),
}


def status_notification(order: Order, status: str):
    title, template = _CUSTOMER_MESSAGES.get(
        status, ("Order updated", "Your order {code} status changed to: {status}")
    )
    return NotificationRequested(
        type="order_status",
        title=title,
        message=template.format(code=order.order_code, status=status),
        link=f"/orders/{order.id}",
        recipient_id=order.user_id,
    )


def new_order_events(order: Order) -> list:
    """Staff broadcast and customer confirmation for an order that is now live."""
    events = [
        NotificationRequested(
            type="order_new",
            title="New order",
            message=f"Order {order.order_code} was placed by {order.customer_name}.",
            link=f"/admin/orders/{order.id}",
        )
    ]
    if order.email:
        events.append(ConfirmationEmailRequested(order.email, order.order_code, order.grand_total))
    return events


def transition_events(order: Order, previous: str, actor_id=None, forced: bool = False) -> list:
    events = []
    if order.user_id is not None:
        events.append(status_notification(order, order.status))
    # Online payments go live only once paid; COD orders were announced at checkout
    if order.status == PAID and order.payment is not None and order.payment.method != "cod":
        events.extend(new_order_events(order))
    events.append(
        ActivityRecorded(
            action="update_order_status",
            entity_type="order",
            entity_id=str(order.id),
            user_id=actor_id,
            details={"from": previous, "to": order.status, "forced": forced},
        )
    )
    return events
