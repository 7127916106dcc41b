from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import CurrentUser, get_current_user

from .schemas import CartSummaryResponse
from .service import CartService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "cart", "status": "running"}


@router.get("/summary", response_model=CartSummaryResponse)
async def cart_summary(
    coupon_code: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await CartService.summary(db, user.id, coupon_code)
