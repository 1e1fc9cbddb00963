from decimal import Decimal

import pytest

from services.inventory_service.service import InventoryService
from services.order_service.lifecycle import TERMINAL, can_transition
from services.order_service.models import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    PAID,
    PENDING,
    PROCESSING,
    RETURNED,
    SHIPPED,
)
from services.order_service.service import OrderService
from shared.errors import ErrorKind
from shared.events import ActivityRecorded, ConfirmationEmailRequested, NotificationRequested

from conftest import CUSTOMER, STAFF, add_to_cart, place_order, seed_variant, stock_of


async def new_order(sessions, qty=2, stock=5, **overrides):
    variant = await seed_variant(sessions, stock=stock)
    await add_to_cart(sessions, CUSTOMER, variant.id, qty)
    outcome = await place_order(sessions, **overrides)
    assert outcome.ok, outcome.failure
    return outcome.value, variant


async def move(sessions, order_id, status, **kwargs):
    async with sessions() as db:
        return await OrderService.update_status(db, order_id, status, actor=STAFF, **kwargs)


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current,target",
        [
            (PENDING, CONFIRMED),
            (PENDING, PAID),
            (PENDING, PROCESSING),
            (CONFIRMED, PAID),
            (PAID, PROCESSING),
            (PROCESSING, SHIPPED),
            (PROCESSING, CANCELLED),
            (SHIPPED, COMPLETED),
            (SHIPPED, RETURNED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [(PENDING, SHIPPED), (CONFIRMED, COMPLETED), (SHIPPED, CANCELLED), (PAID, PENDING), (PENDING, PENDING)],
    )
    def test_refused(self, current, target):
        assert not can_transition(current, target)

    def test_force_skips_edges_but_not_terminal_states(self):
        assert can_transition(PENDING, SHIPPED, force=True)
        for status in TERMINAL:
            assert not can_transition(status, PROCESSING, force=True)

    def test_terminal_states(self):
        assert TERMINAL == {COMPLETED, CANCELLED, RETURNED}


class TestUpdateStatus:
    async def test_allowed_move(self, sessions):
        order, _ = await new_order(sessions)

        outcome = await move(sessions, order.id, PROCESSING)

        assert outcome.ok
        assert outcome.value.status == PROCESSING
        notification = next(e for e in outcome.events if isinstance(e, NotificationRequested))
        assert notification.recipient_id == CUSTOMER.user_id
        assert notification.title == "Order confirmed"
        activity = next(e for e in outcome.events if isinstance(e, ActivityRecorded))
        assert activity.details == {"from": PENDING, "to": PROCESSING, "forced": False}

    async def test_disallowed_move(self, sessions):
        order, _ = await new_order(sessions)

        outcome = await move(sessions, order.id, SHIPPED)

        assert outcome.failure.code == "invalid_transition"
        assert outcome.failure.kind == ErrorKind.BUSINESS_RULE
        async with sessions() as db:
            assert (await OrderService.get_order(db, order.id, STAFF)).value.status == PENDING

    async def test_forced_move(self, sessions):
        order, _ = await new_order(sessions)

        outcome = await move(sessions, order.id, SHIPPED, force=True)

        assert outcome.value.status == SHIPPED
        assert outcome.value.shipment.status == "shipping"

    async def test_unknown_status(self, sessions):
        order, _ = await new_order(sessions)
        outcome = await move(sessions, order.id, "teleported")
        assert outcome.failure.kind == ErrorKind.VALIDATION

    async def test_missing_order(self, sessions):
        outcome = await move(sessions, 31337, PROCESSING)
        assert outcome.failure.kind == ErrorKind.NOT_FOUND

    async def test_terminal_order_cannot_move(self, sessions):
        order, _ = await new_order(sessions)
        await move(sessions, order.id, CANCELLED)

        outcome = await move(sessions, order.id, PROCESSING, force=True)

        assert outcome.failure.code == "invalid_transition"


class TestSideEffects:
    async def test_paid_settles_payment(self, sessions):
        order, _ = await new_order(sessions)

        outcome = await move(sessions, order.id, PAID, transaction_ref="TX-1", paid_amount=order.grand_total)

        payment = outcome.value.payment
        assert payment.status == "paid"
        assert payment.paid_at is not None
        assert payment.transaction_ref == "TX-1"

    async def test_short_payment_is_refused(self, sessions):
        order, _ = await new_order(sessions)

        outcome = await move(sessions, order.id, PAID, paid_amount=order.grand_total - Decimal("1"))

        assert outcome.failure.code == "payment_amount_mismatch"
        async with sessions() as db:
            current = (await OrderService.get_order(db, order.id, STAFF)).value
        assert current.status == PENDING
        assert current.payment.status == "pending"

    async def test_online_payment_goes_live_when_paid(self, sessions):
        order, _ = await new_order(sessions, payment_method="vnpay")

        outcome = await move(sessions, order.id, PAID)

        assert any(isinstance(e, ConfirmationEmailRequested) for e in outcome.events)
        assert any(isinstance(e, NotificationRequested) and e.is_broadcast for e in outcome.events)

    async def test_shipping_and_delivery_timestamps(self, sessions):
        order, _ = await new_order(sessions)
        await move(sessions, order.id, PROCESSING)

        shipped = await move(sessions, order.id, SHIPPED)
        completed = await move(sessions, order.id, COMPLETED)

        assert shipped.value.shipment.shipped_at is not None
        assert completed.value.shipment.status == "delivered"
        assert completed.value.shipment.delivered_at is not None

    async def test_staff_cancel_before_shipping_restocks(self, sessions):
        order, variant = await new_order(sessions, qty=2, stock=5)
        await move(sessions, order.id, PROCESSING)
        assert await stock_of(sessions, variant.id) == 3

        outcome = await move(sessions, order.id, CANCELLED)

        assert outcome.value.status == CANCELLED
        assert await stock_of(sessions, variant.id) == 5
        async with sessions() as db:
            assert (await InventoryService.reconcile(db, variant.id)).consistent

    async def test_forced_cancel_after_shipping_keeps_stock(self, sessions):
        order, variant = await new_order(sessions, qty=2, stock=5)
        await move(sessions, order.id, PROCESSING)
        await move(sessions, order.id, SHIPPED)

        outcome = await move(sessions, order.id, CANCELLED, force=True)

        assert outcome.value.status == CANCELLED
        assert await stock_of(sessions, variant.id) == 3
