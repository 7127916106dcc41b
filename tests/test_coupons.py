from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from services.coupon_service.schemas import CouponRejectionReason
from services.coupon_service.service import (
    CouponRejected,
    CouponService,
    check_eligibility,
    compute_discount,
)

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def coupon(**overrides):
    values = dict(
        discount_percent=10,
        max_discount=100,
        min_order_value=200,
        usage_limit=5,
        used_count=0,
        is_active=True,
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=1),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestComputeDiscount:
    def test_percentage_below_cap(self):
        assert compute_discount(coupon(), 500) == 50

    def test_capped_at_max_discount(self):
        assert compute_discount(coupon(), 1000) == 100
        assert compute_discount(coupon(), 5000) == 100


class TestEligibility:
    def test_eligible(self):
        check_eligibility(coupon(), 1000, NOW)

    @pytest.mark.parametrize(
        "overrides,subtotal,reason",
        [
            ({"start_date": NOW + timedelta(hours=1)}, 1000, CouponRejectionReason.NOT_ACTIVE),
            ({"end_date": NOW - timedelta(hours=1)}, 1000, CouponRejectionReason.NOT_ACTIVE),
            ({"is_active": False}, 1000, CouponRejectionReason.DISABLED),
            ({"used_count": 5}, 1000, CouponRejectionReason.LIMIT_REACHED),
            ({}, 199, CouponRejectionReason.BELOW_MINIMUM),
        ],
    )
    def test_rejections(self, overrides, subtotal, reason):
        with pytest.raises(CouponRejected) as exc_info:
            check_eligibility(coupon(**overrides), subtotal, NOW)
        assert exc_info.value.reason == reason

    def test_window_checked_before_disabled_flag(self):
        expired_and_disabled = coupon(end_date=NOW - timedelta(days=1), is_active=False)
        with pytest.raises(CouponRejected) as exc_info:
            check_eligibility(expired_and_disabled, 1000, NOW)
        assert exc_info.value.reason == CouponRejectionReason.NOT_ACTIVE

    def test_below_minimum_message_names_minimum(self):
        with pytest.raises(CouponRejected) as exc_info:
            check_eligibility(coupon(), 150, NOW)
        assert exc_info.value.message == "Minimum order value is ₹200"

    def test_naive_dates_treated_as_utc(self):
        naive = coupon(
            start_date=(NOW - timedelta(days=1)).replace(tzinfo=None),
            end_date=(NOW + timedelta(days=1)).replace(tzinfo=None),
        )
        check_eligibility(naive, 1000, NOW)


class TestCouponService:
    async def test_validate_is_case_insensitive_and_read_only(self, db, seed, fetch):
        saved = await seed.coupon("SAVE10")
        for _ in range(3):
            found = await CouponService.validate(db, "save10", 1000)
            assert found.id == saved.id
        assert await fetch.used_count(saved.id) == 0

    async def test_unknown_code(self, db):
        with pytest.raises(CouponRejected) as exc_info:
            await CouponService.validate(db, "NOPE", 1000)
        assert exc_info.value.reason == CouponRejectionReason.NOT_FOUND
        assert exc_info.value.message == "Invalid coupon code"

    async def test_try_apply_returns_discount(self, db, seed):
        await seed.coupon("SAVE10")
        applied = await CouponService.try_apply(db, "SAVE10", 1000)
        assert applied.code == "SAVE10"
        assert applied.discount == 100

    async def test_try_apply_ignores_rejected_coupon(self, db, seed):
        await seed.coupon("TINY", min_order_value=5000)
        assert await CouponService.try_apply(db, "TINY", 1000) is None
        assert await CouponService.try_apply(db, "MISSING", 1000) is None
        assert await CouponService.try_apply(db, None, 1000) is None

    async def test_redeem_stops_at_usage_limit(self, db, seed, fetch):
        saved = await seed.coupon("LAST", usage_limit=1)
        applied = await CouponService.try_apply(db, "LAST", 1000)

        assert await CouponService.redeem(db, applied) is True
        assert await CouponService.redeem(db, applied) is False
        await db.commit()
        assert await fetch.used_count(saved.id) == 1

    async def test_release_never_goes_negative(self, db, seed, fetch):
        saved = await seed.coupon("ZERO")
        await CouponService.release(db, saved.id)
        await db.commit()
        assert await fetch.used_count(saved.id) == 0
