from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.errors import failure_response
from shared.security import Identity, get_current_identity

from .preview import QuoteService
from .schemas import QuoteRequest, QuoteResponse

router = APIRouter()


@router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "pricing", "status": "running"}


@router.post("/quote", response_model=QuoteResponse)
async def quote_cart(
    payload: QuoteRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    outcome = await QuoteService.quote_cart(db, identity, payload)
    if not outcome.ok:
        return failure_response(outcome.failure)
    return outcome.value
