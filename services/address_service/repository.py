from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Address


class AddressRepository:

    @staticmethod
    async def get_address(db: AsyncSession, address_id: str) -> Address | None:
        result = await db.execute(select(Address).where(Address.id == address_id))
        return result.scalars().first()

    @staticmethod
    async def get_owned_address(db: AsyncSession, address_id: str, user_id: str) -> Address | None:
        """Returns the address only if it belongs to user_id."""
        address = await AddressRepository.get_address(db, address_id)
        if address is None or address.user_id != user_id:
            return None
        return address
