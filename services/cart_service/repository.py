from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Cart, CartItem


class CartRepository:

    @staticmethod
    async def get_cart_for_user(db: AsyncSession, user_id: str) -> Cart | None:
        result = await db.execute(select(Cart).where(Cart.user_id == user_id))
        return result.scalars().first()

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: str) -> bool:
        """Deletes the user's cart and its items. Returns False if there was none."""
        cart = await CartRepository.get_cart_for_user(db, user_id)
        if cart is None:
            return False
        await db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        await db.execute(delete(Cart).where(Cart.id == cart.id))
        await db.commit()
        return True
