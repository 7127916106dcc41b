from typing import List, Optional

from pydantic import BaseModel


class CartLineResponse(BaseModel):
    product_id: str
    title: str
    quantity: int
    is_ebook: bool
    unit_price: float
    line_total: float

    class Config:
        from_attributes = True


class CartSummaryResponse(BaseModel):
    items: List[CartLineResponse] = []
    subtotal: float = 0.0
    shipping_fee: float = 0.0
    discount: float = 0.0
    coupon_code: Optional[str] = None
    total: float = 0.0
