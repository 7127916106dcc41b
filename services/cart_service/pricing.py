"""
Line-item pricing shared by the cart summary and order placement.

Everything here is a pure function over product snapshots. An ebook with no
digital price falls back to the physical list price, not to zero.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

# Flat courier charge applied once per cart that contains a physical book
SHIPPING_FEE = 50.0


class PricedProduct(Protocol):
    id: str
    title: str
    price: float
    discounted_price: Optional[float]
    ebook_price: Optional[float]
    ebook_discounted: Optional[float]


@dataclass(frozen=True)
class PricedItem:
    product_id: str
    title: str
    quantity: int
    is_ebook: bool
    unit_price: float

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


def unit_price(product: PricedProduct, is_ebook: bool) -> float:
    if is_ebook:
        return product.ebook_discounted or product.ebook_price or product.price
    return product.discounted_price or product.price


def price_item(product: PricedProduct, quantity: int, is_ebook: bool) -> PricedItem:
    return PricedItem(
        product_id=product.id,
        title=product.title,
        quantity=quantity,
        is_ebook=is_ebook,
        unit_price=unit_price(product, is_ebook),
    )


def subtotal(items: Iterable[PricedItem]) -> float:
    return sum(item.line_total for item in items)


def has_physical(items: Iterable) -> bool:
    return any(not item.is_ebook for item in items)


def shipping_fee(items: Iterable[PricedItem]) -> float:
    return SHIPPING_FEE if has_physical(items) else 0.0
