from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Coupon
from .repository import CouponRepository
from .schemas import CouponRejectionReason

logger = structlog.get_logger(__name__)


class CouponRejected(Exception):
    """A coupon that cannot be applied to the given order value."""

    def __init__(self, reason: CouponRejectionReason, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class AppliedCoupon:
    coupon_id: str
    code: str
    discount: float


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def compute_discount(coupon: Coupon, subtotal: float) -> float:
    return min(subtotal * coupon.discount_percent / 100, coupon.max_discount)


def check_eligibility(coupon: Coupon, subtotal: float, now: datetime) -> None:
    """Raises CouponRejected when the coupon cannot be used right now."""
    if now < _aware(coupon.start_date) or now > _aware(coupon.end_date):
        raise CouponRejected(CouponRejectionReason.NOT_ACTIVE, "Coupon is not active")
    if not coupon.is_active:
        raise CouponRejected(CouponRejectionReason.DISABLED, "Coupon is disabled")
    if coupon.used_count >= coupon.usage_limit:
        raise CouponRejected(CouponRejectionReason.LIMIT_REACHED, "Coupon usage limit reached")
    if subtotal < coupon.min_order_value:
        raise CouponRejected(
            CouponRejectionReason.BELOW_MINIMUM,
            f"Minimum order value is ₹{coupon.min_order_value:g}",
        )


class CouponService:

    @staticmethod
    async def validate(
        db: AsyncSession, code: str, subtotal: float, now: datetime | None = None
    ) -> Coupon:
        """Read-only eligibility check; safe to call repeatedly for checkout previews."""
        coupon = await CouponRepository.get_by_code(db, code)
        if not coupon:
            raise CouponRejected(CouponRejectionReason.NOT_FOUND, "Invalid coupon code")
        check_eligibility(coupon, subtotal, now or datetime.now(timezone.utc))
        return coupon

    @staticmethod
    async def try_apply(
        db: AsyncSession, code: str | None, subtotal: float, now: datetime | None = None
    ) -> AppliedCoupon | None:
        """Validates a checkout coupon, degrading to no discount on any rejection."""
        if not code:
            return None
        try:
            coupon = await CouponService.validate(db, code, subtotal, now)
        except CouponRejected as rejection:
            logger.info("coupon_ignored", code=code.upper(), reason=rejection.reason.value)
            return None
        return AppliedCoupon(coupon.id, coupon.code, compute_discount(coupon, subtotal))

    @staticmethod
    async def redeem(db: AsyncSession, applied: AppliedCoupon) -> bool:
        """Consumes one use inside the order-creation transaction."""
        redeemed = await CouponRepository.redeem(db, applied.coupon_id)
        if not redeemed:
            logger.info("coupon_redemption_lost", code=applied.code)
        return redeemed

    @staticmethod
    async def release(db: AsyncSession, coupon_id: str) -> None:
        if not await CouponRepository.release(db, coupon_id):
            logger.warning("coupon_release_skipped", coupon_id=coupon_id)
