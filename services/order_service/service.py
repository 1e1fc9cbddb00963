import math
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.errors import DomainError, Forbidden, NotFound, Outcome, internal_failure
from shared.events import ActivityRecorded, NotificationRequested
from shared.observability import (
    ecomm_checkout_duration_seconds,
    ecomm_checkout_total,
    ecomm_order_transitions_total,
)
from shared.security import Identity

from .cancellation import CancellationCompensator
from .checkout import CheckoutContext, build_checkout_pipeline
from .lifecycle import apply_transition, new_order_events, status_notification, transition_events, validate_status
from .models import Order
from .repository import OrderRepository
from .schemas import CheckoutRequest, OrderPage, OrderResponse, Pagination

logger = structlog.get_logger(__name__)


def checkout_events(order: Order, low_stock: list) -> list:
    events = [
        ActivityRecorded(
            action="create_order",
            entity_type="order",
            entity_id=str(order.id),
            user_id=order.user_id,
            details={"order_code": order.order_code, "grand_total": str(order.grand_total)},
        )
    ]
    # Online payment methods are announced once the gateway confirms payment
    if order.payment.method == "cod":
        if order.user_id is not None:
            events.append(
                NotificationRequested(
                    type="order_new",
                    title="Order placed",
                    message=f"Order {order.order_code} was placed successfully.",
                    link=f"/orders/{order.id}",
                    recipient_id=order.user_id,
                )
            )
        events.extend(new_order_events(order))
    for line in low_stock:
        events.append(
            NotificationRequested(
                type="low_stock",
                title="Low stock",
                message=f"Variant {line['sku']} has {line['stock_qty']} unit(s) left.",
                link=f"/admin/inventory/variants/{line['variant_id']}",
            )
        )
    return events


class OrderService:

    @staticmethod
    async def checkout(db: AsyncSession, identity: Identity, data: CheckoutRequest, now: datetime = None) -> Outcome:
        if identity.role in settings.RESTRICTED_ROLES:
            ecomm_checkout_total.labels(status="forbidden").inc()
            return Outcome.fail(
                Forbidden("Staff accounts cannot place orders. Please use a customer account.").failure
            )

        ctx = CheckoutContext(identity=identity, data=data, now=now or datetime.now(timezone.utc))
        with ecomm_checkout_duration_seconds.time():
            try:
                await build_checkout_pipeline().execute(db, ctx)
            except DomainError as exc:
                ecomm_checkout_total.labels(status=exc.code).inc()
                logger.info("checkout_rejected", code=exc.code, message=exc.message, **exc.details)
                return Outcome.fail(exc.failure)
            except SQLAlchemyError:
                ecomm_checkout_total.labels(status="internal").inc()
                logger.exception("checkout_failed")
                return Outcome.fail(internal_failure("Checkout failed. Please try again."))

        ecomm_checkout_total.labels(status="success").inc()
        order = await OrderRepository.get_order(db, ctx.order.id)
        logger.info(
            "order_created",
            order_id=order.id,
            order_code=order.order_code,
            grand_total=str(order.grand_total),
            discount_total=str(order.discount_total),
        )
        return Outcome.success(order, checkout_events(order, ctx.low_stock))

    @staticmethod
    async def update_status(
        db: AsyncSession,
        order_id: int,
        status: str,
        actor: Identity = None,
        force: bool = False,
        transaction_ref: str = None,
        paid_amount=None,
    ) -> Outcome:
        try:
            # Rejected before the transaction opens
            validate_status(status)
            async with db.begin():
                _, previous = await apply_transition(
                    db, order_id, status, force=force, transaction_ref=transaction_ref, paid_amount=paid_amount
                )
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("order_status_update_failed", order_id=order_id, status=status)
            return Outcome.fail(internal_failure())

        ecomm_order_transitions_total.labels(status=status).inc()
        order = await OrderRepository.get_order(db, order_id)
        logger.info("order_status_changed", order_id=order_id, previous=previous, status=status)
        actor_id = actor.user_id if actor else None
        return Outcome.success(order, transition_events(order, previous, actor_id, forced=force))

    @staticmethod
    async def cancel_order(db: AsyncSession, order_id: int, identity: Identity) -> Outcome:
        try:
            async with db.begin():
                _, previous = await CancellationCompensator.cancel_for_customer(db, order_id, identity)
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("order_cancel_failed", order_id=order_id)
            return Outcome.fail(internal_failure())

        ecomm_order_transitions_total.labels(status="cancelled").inc()
        order = await OrderRepository.get_order(db, order_id)
        events = [
            status_notification(order, order.status),
            NotificationRequested(
                type="order_cancelled",
                title="Order cancelled",
                message=f"Order {order.order_code} was cancelled by the customer.",
                link=f"/admin/orders/{order.id}",
            ),
            ActivityRecorded(
                action="cancel_order",
                entity_type="order",
                entity_id=str(order.id),
                user_id=identity.user_id,
                details={"order_code": order.order_code, "from": previous, "restocked": True},
            ),
        ]
        return Outcome.success(order, events)

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int, identity: Identity) -> Outcome:
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            return Outcome.fail(NotFound("Order not found", order_id=order_id).failure)
        if not identity.is_staff and (order.user_id is None or order.user_id != identity.user_id):
            return Outcome.fail(Forbidden("Unauthorized", order_id=order_id).failure)
        return Outcome.success(order)

    @staticmethod
    async def get_by_code(db: AsyncSession, order_code: str) -> Outcome:
        order = await OrderRepository.get_by_code(db, order_code)
        if order is None:
            return Outcome.fail(NotFound("Order not found", order_code=order_code).failure)
        return Outcome.success(order)

    @staticmethod
    async def list_orders(
        db: AsyncSession, user_id: int = None, status: str = None, page: int = 1, limit: int = 10, max_limit: int = 50
    ) -> OrderPage:
        page = max(1, page)
        limit = min(max_limit, max(1, limit))
        orders, total = await OrderRepository.list_orders(db, user_id, status, (page - 1) * limit, limit)
        return OrderPage(
            orders=[OrderResponse.model_validate(o) for o in orders],
            pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
        )
