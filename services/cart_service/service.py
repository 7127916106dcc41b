import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.coupon_service.service import CouponService
from services.product_service.service import InventoryService

from . import pricing
from .repository import CartRepository
from .schemas import CartLineResponse, CartSummaryResponse

logger = structlog.get_logger(__name__)


class CartService:

    @staticmethod
    async def summary(
        db: AsyncSession, user_id: str, coupon_code: str | None = None
    ) -> CartSummaryResponse:
        """Prices the user's cart against live product prices (checkout preview)."""
        cart = await CartRepository.get_cart_for_user(db, user_id)
        if cart is None or not cart.items:
            return CartSummaryResponse()

        products = await InventoryService.get_products(db, [i.product_id for i in cart.items])
        priced = [
            pricing.price_item(products[i.product_id], i.quantity, i.is_ebook)
            for i in cart.items
        ]
        subtotal = pricing.subtotal(priced)
        shipping = pricing.shipping_fee(priced)

        applied = await CouponService.try_apply(db, coupon_code, subtotal)
        discount = applied.discount if applied else 0.0

        return CartSummaryResponse(
            items=[
                CartLineResponse(
                    product_id=p.product_id,
                    title=p.title,
                    quantity=p.quantity,
                    is_ebook=p.is_ebook,
                    unit_price=p.unit_price,
                    line_total=p.line_total,
                )
                for p in priced
            ],
            subtotal=subtotal,
            shipping_fee=shipping,
            discount=discount,
            coupon_code=applied.code if applied else None,
            total=subtotal + shipping - discount,
        )

    @staticmethod
    async def clear_for_user(db: AsyncSession, user_id: str) -> None:
        """Post-order cleanup. Only called once an order is confirmed."""
        cleared = await CartRepository.clear_cart(db, user_id)
        logger.info("cart_cleared", user_id=user_id, had_cart=cleared)
