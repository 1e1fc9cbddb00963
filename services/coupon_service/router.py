from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import failure_response
from shared.events import EventDispatcher, get_dispatcher
from shared.security import Identity, require_staff

from .schemas import (
    ApplyCouponRequest,
    ApplyCouponResponse,
    CouponCreate,
    CouponPage,
    CouponResponse,
    CouponUpdate,
)
from .service import CouponService

router = APIRouter(dependencies=[Depends(require_staff)])
public_router = APIRouter()


@public_router.get("/health")
async def health_check():
    return {"service": "coupon", "status": "running"}


@public_router.post("/apply", response_model=ApplyCouponResponse)
async def apply_coupon(payload: ApplyCouponRequest, db: AsyncSession = Depends(get_db)):
    outcome = await CouponService.apply_coupon(db, payload.code, payload.subtotal)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value


@router.get("/", response_model=CouponPage)
async def list_coupons(
    query: str | None = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=10),
    db: AsyncSession = Depends(get_db),
):
    return await CouponService.list_coupons(db, query, page, limit)


@router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(coupon_id: int, db: AsyncSession = Depends(get_db)):
    coupon = await CouponService.get_coupon(db, coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


@router.post("/", response_model=CouponResponse, status_code=201)
async def create_coupon(
    data: CouponCreate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await CouponService.create_coupon(db, data, actor_id=identity.user_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return outcome.value


@router.put("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await CouponService.update_coupon(db, coupon_id, data, actor_id=identity.user_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return outcome.value


@router.delete("/{coupon_id}")
async def delete_coupon(
    coupon_id: int,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await CouponService.delete_coupon(db, coupon_id, actor_id=identity.user_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return {"success": True, "message": "Coupon deleted"}
