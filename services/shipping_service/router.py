from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.pricing_service import service as pricing
from shared.config.database import get_db
from shared.security import require_staff

from .repository import ShipmentRepository
from .schemas import ShipmentResponse, ShippingFeeResponse

router = APIRouter(dependencies=[Depends(require_staff)])
public_router = APIRouter()


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "shipping", "status": "running"}


@public_router.get("/fee", response_model=ShippingFeeResponse)
async def shipping_fee(city: str = Query(min_length=1)):
    return ShippingFeeResponse(city=city, shipping_fee=pricing.shipping_fee(city))


@router.get("/orders/{order_id}", response_model=ShipmentResponse)
async def get_shipment(order_id: int, db: AsyncSession = Depends(get_db)):
    shipment = await ShipmentRepository.get_for_order(db, order_id)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    return shipment
