from typing import Iterable, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product


class ProductRepository:

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids: Iterable[str]) -> Sequence[Product]:
        ids = list(set(product_ids))
        if not ids:
            return []
        result = await db.execute(select(Product).where(Product.id.in_(ids)))
        return result.scalars().all()

    @staticmethod
    async def decrement_stock(db: AsyncSession, product_id: str, quantity: int) -> bool:
        """Compare-and-set decrement. Returns False when stock would go negative.

        Does not commit: callers run it inside the order-creation transaction.
        """
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def increment_stock(db: AsyncSession, product_id: str, quantity: int) -> bool:
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
