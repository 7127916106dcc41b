from collections import defaultdict
from typing import Iterable, Protocol, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InsufficientStockError, ProductNotFoundError

from .models import Product
from .repository import ProductRepository

logger = structlog.get_logger(__name__)


class StockLine(Protocol):
    product_id: str
    title: str
    quantity: int
    is_ebook: bool


def _physical_quantities(items: Iterable[StockLine]) -> dict[str, tuple[str, int]]:
    """Aggregates physical quantities per product, keeping the first title seen."""
    totals: dict[str, list] = defaultdict(lambda: ["", 0])
    for item in items:
        if item.is_ebook:
            continue
        entry = totals[item.product_id]
        entry[0] = entry[0] or item.title
        entry[1] += item.quantity
    return {pid: (title, qty) for pid, (title, qty) in totals.items()}


class InventoryService:
    """Stock reservation for physical line items.

    Product.stock is only ever mutated through reserve() and release(). Neither
    commits; both run inside the caller's unit of work so a failed order
    insert rolls the stock change back with it.
    """

    @staticmethod
    async def get_products(db: AsyncSession, product_ids: Iterable[str]) -> dict[str, Product]:
        ids = list(product_ids)
        products = {p.id: p for p in await ProductRepository.get_products_by_ids(db, ids)}
        for product_id in ids:
            if product_id not in products:
                raise ProductNotFoundError(product_id)
        return products

    @staticmethod
    async def reserve(db: AsyncSession, items: Sequence[StockLine]) -> None:
        # All-or-nothing: the first shortage aborts and the caller rolls back
        for product_id, (title, quantity) in _physical_quantities(items).items():
            if not await ProductRepository.decrement_stock(db, product_id, quantity):
                logger.info("stock_reservation_rejected", product_id=product_id, requested=quantity)
                raise InsufficientStockError(product_id, title, quantity)

    @staticmethod
    async def release(db: AsyncSession, items: Sequence[StockLine]) -> None:
        for product_id, (_, quantity) in _physical_quantities(items).items():
            restored = await ProductRepository.increment_stock(db, product_id, quantity)
            if not restored:
                # Product row removed since the order was placed; nothing to give back
                logger.warning("stock_release_skipped", product_id=product_id, quantity=quantity)
