from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CouponRejectionReason(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    NOT_ACTIVE = "NOT_ACTIVE"
    DISABLED = "DISABLED"
    LIMIT_REACHED = "LIMIT_REACHED"
    BELOW_MINIMUM = "BELOW_MINIMUM"


class CouponValidateRequest(BaseModel):
    code: str = Field(min_length=1)
    total: float = Field(ge=0)


class CouponResponse(BaseModel):
    id: str
    code: str
    discount_percent: float
    max_discount: float
    min_order_value: float
    usage_limit: int
    used_count: int
    is_active: bool
    start_date: datetime
    end_date: datetime
    category_id: Optional[str] = None

    class Config:
        from_attributes = True


class CouponValidationResponse(BaseModel):
    coupon: CouponResponse
    discount: float
