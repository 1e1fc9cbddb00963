from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import failure_response
from shared.security import Identity, get_current_identity, get_current_user

from .schemas import CartItemCreate, CartItemUpdate, CartMerge, CartResponse
from .service import CartService

router = APIRouter()


@router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "cart", "status": "running"}


@router.get("/", response_model=CartResponse)
async def get_cart(identity: Identity = Depends(get_current_identity), db: AsyncSession = Depends(get_db)):
    return await CartService.get_cart(db, identity)


@router.post("/items", response_model=CartResponse)
async def add_item(
    item: CartItemCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    outcome = await CartService.add_item(db, identity, item)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value


@router.put("/items/{item_id}", response_model=CartResponse)
async def update_item(
    item_id: int,
    payload: CartItemUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    outcome = await CartService.update_item(db, identity, item_id, payload.quantity)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value


@router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_item(
    item_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    outcome = await CartService.remove_item(db, identity, item_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value


@router.delete("/items", response_model=CartResponse)
async def clear_cart(identity: Identity = Depends(get_current_identity), db: AsyncSession = Depends(get_db)):
    outcome = await CartService.clear_cart(db, identity)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value


@router.post("/merge", response_model=CartResponse)
async def merge_cart(
    payload: CartMerge,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    outcome = await CartService.merge_guest_cart(db, identity, payload.session_id)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value
