from datetime import datetime, timedelta, timezone
from decimal import Decimal

from services.coupon_service.schemas import CouponCreate, CouponUpdate
from services.coupon_service.service import CouponService
from shared.errors import ErrorKind

from conftest import CUSTOMER, add_to_cart, place_order, seed_coupon, seed_variant


async def apply(sessions, code, subtotal):
    async with sessions() as db:
        return await CouponService.apply_coupon(db, code, Decimal(subtotal))


class TestApplyCoupon:
    async def test_valid_coupon(self, sessions):
        await seed_coupon(sessions, code="SAVE10", value="10", max_discount=Decimal("15000"))

        outcome = await apply(sessions, "SAVE10", "200000")

        assert outcome.ok
        assert outcome.value.discount_amount == Decimal("15000.00")
        assert outcome.value.type == "percent"

    async def test_unknown_code(self, sessions):
        outcome = await apply(sessions, "GHOST", "1000")
        assert outcome.failure.kind == ErrorKind.NOT_FOUND
        assert outcome.failure.message == "Coupon code does not exist"

    async def test_below_minimum(self, sessions):
        await seed_coupon(sessions, code="BIG", type="fixed", value="50000", min_subtotal=Decimal("500000"))

        outcome = await apply(sessions, "BIG", "100000")

        assert outcome.failure.code == "coupon_below_minimum"
        assert outcome.failure.message == "Minimum order subtotal for this coupon is 500,000"

    async def test_disabled(self, sessions):
        await seed_coupon(sessions, code="OFF", is_active=False)
        outcome = await apply(sessions, "OFF", "100000")
        assert outcome.failure.code == "coupon_invalid"

    async def test_not_started(self, sessions):
        await seed_coupon(sessions, code="SOON", start_at=datetime.now(timezone.utc) + timedelta(days=2))
        outcome = await apply(sessions, "SOON", "100000")
        assert outcome.failure.details["reason"] == "not_started"

    async def test_exhausted_after_checkout(self, sessions):
        variant = await seed_variant(sessions, price="100000")
        await seed_coupon(sessions, code="ONCE", usage_limit=1)
        await add_to_cart(sessions, CUSTOMER, variant.id, 1)
        await place_order(sessions, coupon_code="ONCE")

        outcome = await apply(sessions, "ONCE", "100000")

        assert outcome.failure.code == "coupon_exhausted"


class TestCouponAdmin:
    async def test_duplicate_code(self, sessions):
        await seed_coupon(sessions, code="DUP")
        async with sessions() as db:
            outcome = await CouponService.create_coupon(db, CouponCreate(code="DUP", type="fixed", value=Decimal("1")))
        assert outcome.failure.kind == ErrorKind.CONFLICT

    async def test_update(self, sessions):
        coupon = await seed_coupon(sessions, code="SPRING")
        async with sessions() as db:
            outcome = await CouponService.update_coupon(
                db, coupon.id, CouponUpdate(code="SPRING26", type="fixed", value=Decimal("20000"))
            )
        assert outcome.ok
        assert outcome.value.code == "SPRING26"

    async def test_list_with_search(self, sessions):
        await seed_coupon(sessions, code="SUMMER5")
        await seed_coupon(sessions, code="SUMMER10")
        await seed_coupon(sessions, code="WINTER")

        async with sessions() as db:
            page = await CouponService.list_coupons(db, query="SUMMER", page=1, limit=1)

        assert page.total == 2
        assert page.total_pages == 2
        assert len(page.data) == 1

    async def test_unused_coupon_can_be_deleted(self, sessions):
        coupon = await seed_coupon(sessions, code="TEMP")
        async with sessions() as db:
            outcome = await CouponService.delete_coupon(db, coupon.id)
        assert outcome.ok
        async with sessions() as db:
            assert await CouponService.get_coupon(db, coupon.id) is None

    async def test_used_coupon_cannot_be_deleted(self, sessions):
        variant = await seed_variant(sessions, price="100000")
        coupon = await seed_coupon(sessions, code="USED")
        await add_to_cart(sessions, CUSTOMER, variant.id, 1)
        await place_order(sessions, coupon_code="USED")

        async with sessions() as db:
            outcome = await CouponService.delete_coupon(db, coupon.id)

        assert outcome.failure.code == "coupon_in_use"
