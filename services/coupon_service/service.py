import math
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.pricing_service import service as pricing
from shared.errors import Conflict, CouponRejected, DomainError, NotFound, Outcome, internal_failure
from shared.events import ActivityRecorded

from .models import Coupon, CouponRedemption
from .repository import CouponRepository
from .schemas import ApplyCouponResponse, CouponCreate, CouponPage, CouponResponse, CouponUpdate

logger = structlog.get_logger(__name__)

REJECTION_MESSAGES = {
    pricing.INACTIVE: "Coupon is expired or disabled",
    pricing.NOT_STARTED: "Coupon is not active yet",
    pricing.EXPIRED: "Coupon has expired",
    pricing.EXHAUSTED: "Coupon usage limit has been reached",
}


def rejection_error(coupon: Coupon, reason: str) -> CouponRejected:
    if reason == pricing.BELOW_MINIMUM:
        message = f"Minimum order subtotal for this coupon is {int(coupon.min_subtotal):,}"
        return CouponRejected(message, code="coupon_below_minimum", min_subtotal=str(coupon.min_subtotal))
    code = "coupon_exhausted" if reason == pricing.EXHAUSTED else "coupon_invalid"
    return CouponRejected(REJECTION_MESSAGES[reason], code=code, reason=reason)


class CouponService:

    @staticmethod
    async def apply_coupon(db: AsyncSession, code: str, subtotal, now: datetime = None) -> Outcome:
        """Pre-check used by the UI before checkout. Unlike checkout, it reports why a coupon fails."""
        now = now or datetime.now(timezone.utc)
        coupon = await CouponRepository.get_by_code(db, code)
        if coupon is None:
            return Outcome.fail(NotFound("Coupon code does not exist", code=code).failure)

        count = await CouponRepository.redemption_count(db, coupon.id)
        reason = pricing.coupon_rejection(coupon, subtotal, count, now)
        if reason is not None:
            return Outcome.fail(rejection_error(coupon, reason).failure)

        return Outcome.success(
            ApplyCouponResponse(
                code=coupon.code,
                type=coupon.type,
                value=coupon.value,
                discount_amount=pricing.discount_amount(coupon, subtotal),
            )
        )

    @staticmethod
    async def lock_for_redemption(db: AsyncSession, code: str):
        """
        Locks the coupon row and counts its redemptions. Must run inside the
        checkout transaction so the count cannot change before the
        redemption row is inserted.
        """
        coupon = await CouponRepository.get_by_code(db, code, lock=True)
        if coupon is None:
            return None, 0
        return coupon, await CouponRepository.redemption_count(db, coupon.id)

    @staticmethod
    async def record_redemption(db: AsyncSession, coupon_id: int, order_id: int, user_id, amount):
        return await CouponRepository.add(
            db,
            CouponRedemption(coupon_id=coupon_id, order_id=order_id, user_id=user_id, discount_amount=amount),
        )

    # --- Staff management ---

    @staticmethod
    async def list_coupons(db: AsyncSession, query: str = None, page: int = 1, limit: int = 10) -> CouponPage:
        page = max(1, page)
        limit = min(100, max(1, limit))
        coupons, total = await CouponRepository.list_coupons(db, query, (page - 1) * limit, limit)
        return CouponPage(
            data=[CouponResponse.model_validate(c) for c in coupons],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    @staticmethod
    async def get_coupon(db: AsyncSession, coupon_id: int):
        return await CouponRepository.get_by_id(db, coupon_id)

    @staticmethod
    async def create_coupon(db: AsyncSession, data: CouponCreate, actor_id: int = None) -> Outcome:
        try:
            async with db.begin():
                if await CouponRepository.get_by_code(db, data.code):
                    raise Conflict("Coupon code already exists", code=data.code)
                coupon = await CouponRepository.add(db, Coupon(**data.model_dump()))
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except IntegrityError:
            return Outcome.fail(Conflict("Coupon code already exists", code=data.code).failure)
        except SQLAlchemyError:
            logger.exception("create_coupon_failed", code=data.code)
            return Outcome.fail(internal_failure())

        return Outcome.success(
            coupon, [ActivityRecorded("create_coupon", "coupon", str(coupon.id), actor_id, {"code": coupon.code})]
        )

    @staticmethod
    async def update_coupon(db: AsyncSession, coupon_id: int, data: CouponUpdate, actor_id: int = None) -> Outcome:
        try:
            async with db.begin():
                coupon = await CouponRepository.get_by_id(db, coupon_id)
                if coupon is None:
                    raise NotFound("Coupon not found", coupon_id=coupon_id)
                if data.code != coupon.code and await CouponRepository.get_by_code(db, data.code):
                    raise Conflict("Coupon code already exists", code=data.code)
                for field, value in data.model_dump().items():
                    setattr(coupon, field, value)
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except IntegrityError:
            return Outcome.fail(Conflict("Coupon code already exists", code=data.code).failure)
        except SQLAlchemyError:
            logger.exception("update_coupon_failed", coupon_id=coupon_id)
            return Outcome.fail(internal_failure())

        return Outcome.success(
            coupon, [ActivityRecorded("update_coupon", "coupon", str(coupon_id), actor_id, {"code": data.code})]
        )

    @staticmethod
    async def delete_coupon(db: AsyncSession, coupon_id: int, actor_id: int = None) -> Outcome:
        try:
            async with db.begin():
                coupon = await CouponRepository.get_by_id(db, coupon_id)
                if coupon is None:
                    raise NotFound("Coupon not found", coupon_id=coupon_id)
                used = await CouponRepository.redemption_count(db, coupon_id)
                if used:
                    # Redemptions are permanent, so a used coupon stays
                    raise CouponRejected(
                        f"Coupon cannot be deleted because it was used in {used} order(s)",
                        code="coupon_in_use",
                        redemptions=used,
                    )
                await CouponRepository.delete(db, coupon)
        except DomainError as exc:
            return Outcome.fail(exc.failure)
        except SQLAlchemyError:
            logger.exception("delete_coupon_failed", coupon_id=coupon_id)
            return Outcome.fail(internal_failure())

        return Outcome.success(
            coupon_id, [ActivityRecorded("delete_coupon", "coupon", str(coupon_id), actor_id)]
        )
