from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import CurrentUser, get_current_user, limiter, require_admin
from shared.security.rate_limiter import CHECKOUT_RATE_LIMIT

from .dependencies import get_order_service
from .schemas import (
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    PaymentIntentResponse,
    PaymentVerificationInput,
    PaymentVerificationResponse,
)
from .service import OrderService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/", response_model=OrderResponse, status_code=201)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def place_order(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.place_order(db, user, payload)


@router.post("/verify-payment", response_model=PaymentVerificationResponse)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def verify_payment(
    request: Request,
    payload: PaymentVerificationInput,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.verify_payment(db, user, payload)


@router.get("/", response_model=list[OrderResponse])
async def list_my_orders(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_orders_for_user(db, user.id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.get_order(db, user, order_id)


@router.get("/{order_id}/payment-intent", response_model=PaymentIntentResponse)
async def get_payment_intent(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.get_payment_intent(db, user, order_id)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return await service.cancel_order(db, user, order_id)


# Back office only
@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_order_status(db, order_id, payload.status)
