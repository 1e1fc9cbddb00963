from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.config.database import get_db
from shared.errors import failure_response
from shared.events import EventDispatcher, get_dispatcher
from shared.security import Identity, get_current_identity, get_current_user, limiter, require_staff

from .schemas import CheckoutRequest, OrderEnvelope, OrderPage, OrderStatusUpdate
from .service import OrderService

router = APIRouter()


@router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/checkout", response_model=OrderEnvelope, status_code=201)
@limiter.limit(settings.CHECKOUT_RATE_LIMIT)
async def checkout(
    request: Request,  # slowapi reads the caller key from here
    payload: CheckoutRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await OrderService.checkout(db, identity, payload)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return {"success": True, "data": outcome.value}


@router.get("/me", response_model=OrderPage)
async def my_orders(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_orders(db, user_id=identity.user_id, page=page, limit=limit, max_limit=50)


@router.get("/code/{order_code}", response_model=OrderEnvelope)
async def get_order_by_code(order_code: str, db: AsyncSession = Depends(get_db)):
    outcome = await OrderService.get_by_code(db, order_code)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return {"success": True, "data": outcome.value}


@router.get("/", response_model=OrderPage)
async def list_orders(
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=20),
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_orders(db, status=status, page=page, limit=limit, max_limit=100)


@router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: int,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    outcome = await OrderService.get_order(db, order_id, identity)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return {"success": True, "data": outcome.value}


@router.patch("/{order_id}/status", response_model=OrderEnvelope)
async def update_status(
    order_id: int,
    payload: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await OrderService.update_status(db, order_id, payload.status, actor=identity, force=payload.force)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return {"success": True, "data": outcome.value}


@router.post("/{order_id}/cancel", response_model=OrderEnvelope)
async def cancel_order(
    order_id: int,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await OrderService.cancel_order(db, order_id, identity)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return {"success": True, "data": outcome.value}
