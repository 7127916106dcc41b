from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from services.shipping_service.schemas import ShipmentRecord

from .state_machine import OrderStatus, PaymentMethod, PaymentStatus


class OrderItemInput(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    is_ebook: bool = False


class OrderCreate(BaseModel):
    items: List[OrderItemInput] = Field(min_length=1)
    address_id: str
    payment_method: PaymentMethod
    coupon_code: Optional[str] = None


class OrderItemResponse(BaseModel):
    product_id: str
    title: str
    quantity: int
    price: float
    is_ebook: bool

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    user_id: str
    total: float
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    address: dict
    coupon_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    payment_transaction_id: Optional[str] = None
    shipment_details: Optional[ShipmentRecord] = None
    items: List[OrderItemResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentVerificationInput(BaseModel):
    order_id: str
    transaction_id: str = Field(min_length=1)
    signature: str = Field(min_length=1)


class PaymentVerificationResponse(BaseModel):
    success: bool
    message: str
    order_id: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentIntentResponse(BaseModel):
    order_id: str
    payment_intent_id: str
    key_id: str
    amount: int  # paise
    currency: str
