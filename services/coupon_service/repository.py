from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Coupon


class CouponRepository:

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str) -> Coupon | None:
        result = await db.execute(select(Coupon).where(Coupon.code == code.upper()))
        return result.scalars().first()

    @staticmethod
    async def redeem(db: AsyncSession, coupon_id: str) -> bool:
        """Increments used_count only while it is below usage_limit. No commit."""
        result = await db.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.used_count < Coupon.usage_limit)
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    async def release(db: AsyncSession, coupon_id: str) -> bool:
        result = await db.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.used_count > 0)
            .values(used_count=Coupon.used_count - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
