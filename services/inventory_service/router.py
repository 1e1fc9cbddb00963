from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import failure_response
from shared.events import EventDispatcher, get_dispatcher
from shared.security import Identity, require_staff

from .schemas import (
    LedgerCheck,
    MovementResponse,
    ProductCreate,
    ProductResponse,
    StockUpdate,
    VariantResponse,
)
from .service import InventoryService

router = APIRouter(dependencies=[Depends(require_staff)])
public_router = APIRouter()


@public_router.get("/health")
async def health_check():
    return {"service": "inventory", "status": "running"}


@public_router.get("/variants/{variant_id}", response_model=VariantResponse)
async def get_variant(variant_id: int, db: AsyncSession = Depends(get_db)):
    variant = await InventoryService.get_variant(db, variant_id)
    if not variant:
        raise HTTPException(status_code=404, detail="Product variant not found")
    return variant


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await InventoryService.create_product(db, data, actor_id=identity.user_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return outcome.value


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await InventoryService.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/variants/{variant_id}/restock", response_model=MovementResponse)
async def restock(
    variant_id: int,
    payload: StockUpdate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    outcome = await InventoryService.restock(db, variant_id, payload.quantity, payload.note, actor_id=identity.user_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    background_tasks.add_task(dispatcher.dispatch, outcome.events)
    return outcome.value


@router.get("/variants/{variant_id}/movements", response_model=List[MovementResponse])
async def list_movements(variant_id: int, db: AsyncSession = Depends(get_db)):
    return await InventoryService.movements(db, variant_id)


@router.get("/variants/{variant_id}/ledger", response_model=LedgerCheck)
async def ledger_check(variant_id: int, db: AsyncSession = Depends(get_db)):
    check = await InventoryService.reconcile(db, variant_id)
    if check is None:
        raise HTTPException(status_code=404, detail="Product variant not found")
    return check
