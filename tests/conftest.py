"""Pytest fixtures for the bookstore order workflow."""
import os

# Must be set before any application module is imported
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from services.address_service.models import Address
from services.cart_service.models import Cart, CartItem
from services.coupon_service.models import Coupon
from services.order_service.models import Order
from services.order_service.service import OrderService
from services.order_service.shipments import ShipmentScheduler
from services.payment_service.gateway import compute_signature
from services.payment_service.schemas import PaymentIntent, Refund
from services.product_service.models import Product
from services.shipping_service.client import ShiprocketError
from services.shipping_service.fulfillment import FulfillmentAdapter
from shared.config.database import Base
from shared.config.settings import Settings
from shared.errors import PaymentGatewayError
from shared.security import CurrentUser

RAZORPAY_SECRET = "rzp_test_secret"


class FakeGateway:
    """In-memory stand-in for RazorpayGateway."""

    def __init__(self, secret: str = RAZORPAY_SECRET):
        self.secret = secret
        self.intents: list[PaymentIntent] = []
        self.refunds: list[Refund] = []
        self.fail_intent = False
        self.fail_refund = False

    async def create_intent(self, amount: int, currency: str, receipt: str) -> PaymentIntent:
        if self.fail_intent:
            raise PaymentGatewayError("Payment gateway unreachable: connection refused")
        intent = PaymentIntent(
            id=f"order_rzp_{len(self.intents) + 1}", amount=amount, currency=currency, receipt=receipt
        )
        self.intents.append(intent)
        return intent

    async def refund(self, transaction_id: str, amount: int) -> Refund:
        if self.fail_refund:
            raise PaymentGatewayError("Payment gateway rejected the request (400)", status_code=400)
        refund = Refund(id=f"rfnd_{len(self.refunds) + 1}", payment_id=transaction_id, amount=amount)
        self.refunds.append(refund)
        return refund

    def verify_signature(self, intent_id: str, transaction_id: str, signature: str) -> bool:
        return compute_signature(self.secret, intent_id, transaction_id) == signature


class FakeCourier:
    """In-memory stand-in for ShiprocketClient."""

    def __init__(self):
        self.locations: list[dict] = [{"pickup_location": "Warehouse-1"}]
        self.created: list[dict] = []
        self.cancelled: list[str] = []
        self.responses: list = []  # queued results or exceptions for create_order
        self.fail_cancel = False

    async def get_pickup_locations(self) -> list[dict]:
        return self.locations

    async def create_order(self, payload: dict) -> dict:
        self.created.append(dict(payload))
        if self.responses:
            outcome = self.responses.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        n = len(self.created)
        return {
            "order_id": 9000 + n,
            "shipment_id": 7000 + n,
            "status": "NEW",
            "awb_code": "",
            "courier_name": "",
        }

    async def cancel_order(self, remote_order_id: str) -> dict:
        if self.fail_cancel:
            raise ShiprocketError("Failed to cancel Shiprocket order", status_code=500)
        self.cancelled.append(remote_order_id)
        return {"status": "cancelled"}


@pytest.fixture
def settings():
    return Settings(
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret=RAZORPAY_SECRET,
        razorpay_api_url="https://razorpay.test/v1",
        currency="INR",
        shiprocket_email="ops@bookstore.test",
        shiprocket_password="secret",
        shiprocket_api_url="https://shiprocket.test/v1/external",
        pickup_location="Primary",
        http_timeout=5.0,
    )


@pytest.fixture
async def session_factory(tmp_path):
    # File-backed so the request session and shipment tasks use separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookstore.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def courier():
    return FakeCourier()


@pytest.fixture
def order_service(gateway, courier, settings, session_factory):
    fulfillment = FulfillmentAdapter(courier, settings)
    return OrderService(
        gateway=gateway,
        fulfillment=fulfillment,
        shipments=ShipmentScheduler(fulfillment, session_factory),
        settings=settings,
    )


@pytest.fixture
def user():
    return CurrentUser(id="user-1", email="reader@example.com")


@pytest.fixture
def other_user():
    return CurrentUser(id="user-2", email="someone@example.com")


@pytest.fixture
def admin():
    return CurrentUser(id="admin-1", role="ADMIN", email="admin@bookstore.test")


@pytest.fixture
async def seed(session_factory):
    """Helpers that insert rows in their own committed session."""

    class Seeder:
        async def _add(self, obj):
            async with session_factory() as session:
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
            return obj

        async def product(self, title="Book A", price=500.0, stock=5, **kwargs) -> Product:
            return await self._add(Product(title=title, price=price, stock=stock, **kwargs))

        async def address(self, user_id="user-1") -> Address:
            return await self._add(
                Address(
                    user_id=user_id,
                    name="Asha Rao",
                    phone="9876543210",
                    street="12 MG Road",
                    city="Bengaluru",
                    state="Karnataka",
                    pincode="560001",
                )
            )

        async def coupon(self, code="SAVE10", **kwargs) -> Coupon:
            now = datetime.now(timezone.utc)
            values = dict(
                code=code.upper(),
                discount_percent=10,
                max_discount=100,
                min_order_value=200,
                usage_limit=5,
                used_count=0,
                is_active=True,
                start_date=now - timedelta(days=1),
                end_date=now + timedelta(days=30),
            )
            values.update(kwargs)
            return await self._add(Coupon(**values))

        async def cart(self, user_id="user-1", items=()) -> Cart:
            return await self._add(
                Cart(
                    user_id=user_id,
                    items=[
                        CartItem(product_id=pid, quantity=qty, is_ebook=is_ebook)
                        for pid, qty, is_ebook in items
                    ],
                )
            )

    return Seeder()


@pytest.fixture
def fetch(session_factory):
    """Reads committed state through a fresh session."""

    class Fetcher:
        async def get(self, model, pk):
            async with session_factory() as session:
                return await session.get(model, pk)

        async def stock(self, product_id) -> int:
            return (await self.get(Product, product_id)).stock

        async def used_count(self, coupon_id) -> int:
            return (await self.get(Coupon, coupon_id)).used_count

        async def order(self, order_id) -> Order | None:
            return await self.get(Order, order_id)

        async def cart(self, user_id) -> Cart | None:
            from services.cart_service.repository import CartRepository

            async with session_factory() as session:
                return await CartRepository.get_cart_for_user(session, user_id)

    return Fetcher()
