"""
Payment endpoints. Settlement callbacks come from the payment gateway and
require X-Internal-API-Key; reading a payment is for staff.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.schemas import OrderEnvelope
from shared.config.database import get_db
from shared.errors import failure_response
from shared.events import EventDispatcher, get_dispatcher
from shared.security import require_staff, verify_internal_api_key

from .schemas import PaymentConfirmation, PaymentFailure, PaymentResponse
from .service import PaymentService

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
staff_router = APIRouter(dependencies=[Depends(require_staff)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@staff_router.get("/orders/{order_id}", response_model=PaymentResponse)
async def get_payment(order_id: int, db: AsyncSession = Depends(get_db)):
    payment = await PaymentService.get_payment(db, order_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


@router.post("/orders/{order_id}/confirm", response_model=OrderEnvelope)
async def confirm_payment(
    order_id: int,
    payload: PaymentConfirmation,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await PaymentService.confirm(db, order_id, payload)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return {"success": True, "data": outcome.value}


@router.post("/orders/{order_id}/fail", response_model=PaymentResponse)
async def fail_payment(
    order_id: int,
    payload: PaymentFailure,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await PaymentService.fail(db, order_id, payload)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return outcome.value
