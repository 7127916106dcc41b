from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import CurrentUser, get_current_user

from .schemas import CouponResponse, CouponValidateRequest, CouponValidationResponse
from .service import CouponRejected, CouponService, compute_discount

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "coupon", "status": "running"}


@router.post("/validate", response_model=CouponValidationResponse)
async def validate_coupon(
    payload: CouponValidateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        coupon = await CouponService.validate(db, payload.code, payload.total)
    except CouponRejected as rejection:
        raise HTTPException(
            status_code=400,
            detail={"error": rejection.reason.value, "message": rejection.message},
        )
    return CouponValidationResponse(
        coupon=CouponResponse.model_validate(coupon),
        discount=compute_discount(coupon, payload.total),
    )
