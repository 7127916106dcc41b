"""
Order lifecycle orchestration.

Place order builds the order inside one DB transaction (stock reservation,
coupon redemption, order + item insert). Everything that talks to the payment
gateway or the courier happens after that commit and is handled through
compensating updates, never through a rollback of the order row.
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.address_service.models import Address
from services.address_service.repository import AddressRepository
from services.cart_service import pricing
from services.cart_service.service import CartService
from services.coupon_service.service import AppliedCoupon, CouponService
from services.payment_service.gateway import PaymentGateway, to_minor_units
from services.product_service.service import InventoryService
from services.shipping_service.fulfillment import FulfillmentAdapter
from shared.config.settings import Settings
from shared.errors import (
    InvalidAddressError,
    InvalidQuantityError,
    InvalidTransitionError,
    OrderNotFoundError,
    PaymentGatewayError,
)
from shared.observability import (
    bookstore_order_cancellations_total,
    bookstore_order_placement_seconds,
    bookstore_orders_placed_total,
    bookstore_payment_verifications_total,
)
from shared.security import CurrentUser

from .models import Order, OrderItem
from .repository import OrderRepository
from .saga import SagaOrchestrator
from .schemas import (
    OrderCreate,
    PaymentIntentResponse,
    PaymentVerificationInput,
    PaymentVerificationResponse,
)
from .shipments import ShipmentScheduler
from .state_machine import (
    CUSTOMER_CANCELLABLE,
    OrderEvent,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ensure_transition,
)

logger = structlog.get_logger(__name__)


@dataclass
class PlacementContext:
    """State threaded through the ONLINE placement saga."""
    db: AsyncSession
    user: CurrentUser
    address: Address
    items: Sequence[pricing.PricedItem]
    payment_method: PaymentMethod
    coupon: Optional[AppliedCoupon] = None
    order: Optional[Order] = field(default=None)


class OrderService:

    def __init__(
        self,
        gateway: PaymentGateway,
        fulfillment: FulfillmentAdapter,
        shipments: ShipmentScheduler,
        settings: Settings,
    ):
        self.gateway = gateway
        self.fulfillment = fulfillment
        self.shipments = shipments
        self.settings = settings

    # --- PLACE ORDER ---

    async def place_order(self, db: AsyncSession, user: CurrentUser, data: OrderCreate) -> Order:
        with bookstore_order_placement_seconds.time():
            try:
                order = await self._place_order(db, user, data)
            except Exception:
                bookstore_orders_placed_total.labels(
                    payment_method=data.payment_method.value, status="failed"
                ).inc()
                raise
        bookstore_orders_placed_total.labels(
            payment_method=data.payment_method.value, status="success"
        ).inc()
        return order

    async def _place_order(self, db: AsyncSession, user: CurrentUser, data: OrderCreate) -> Order:
        address = await AddressRepository.get_owned_address(db, data.address_id, user.id)
        if address is None:
            raise InvalidAddressError(data.address_id)

        for item in data.items:
            if item.quantity <= 0:
                raise InvalidQuantityError(item.product_id, item.quantity)

        products = await InventoryService.get_products(db, [i.product_id for i in data.items])
        priced = [
            pricing.price_item(products[i.product_id], i.quantity, i.is_ebook) for i in data.items
        ]
        # An unusable coupon never blocks checkout; the order is placed without it
        applied = await CouponService.try_apply(db, data.coupon_code, pricing.subtotal(priced))

        ctx = PlacementContext(
            db=db,
            user=user,
            address=address,
            items=priced,
            payment_method=data.payment_method,
            coupon=applied,
        )

        if data.payment_method == PaymentMethod.ONLINE:
            saga = (
                SagaOrchestrator[PlacementContext]()
                .add_step("create_order", self._create_order_step, self._void_unpaid_order)
                .add_step("create_payment_intent", self._create_payment_intent_step)
            )
            await saga.execute(ctx)
            return ctx.order

        await self._create_order_step(ctx)
        order = ctx.order
        if order.physical_items:
            self.shipments.schedule(order)
        else:
            # Nothing to ship: digital-only COD orders complete immediately
            await OrderRepository.transition_status(
                db, order.id, OrderStatus.PENDING, OrderStatus.DELIVERED,
                payment_status=PaymentStatus.PAID,
            )
            await db.commit()
            await db.refresh(order)
            logger.info(OrderEvent.AUTO_DELIVERED.value, order_id=order.id)
        await CartService.clear_for_user(db, user.id)
        return order

    async def _create_order_step(self, ctx: PlacementContext) -> None:
        db = ctx.db
        subtotal = pricing.subtotal(ctx.items)
        try:
            await InventoryService.reserve(db, ctx.items)

            coupon = ctx.coupon
            if coupon and not await CouponService.redeem(db, coupon):
                # Lost the race for the last use: proceed without the discount
                coupon = None
            ctx.coupon = coupon

            order = Order(
                user_id=ctx.user.id,
                email=ctx.user.email,
                total=round(subtotal - (coupon.discount if coupon else 0.0), 2),
                status=OrderStatus.PENDING,
                payment_method=ctx.payment_method,
                payment_status=PaymentStatus.PENDING,
                address=ctx.address.snapshot(),
                coupon_id=coupon.coupon_id if coupon else None,
                items=[
                    OrderItem(
                        product_id=item.product_id,
                        title=item.title,
                        quantity=item.quantity,
                        price=item.unit_price,
                        is_ebook=item.is_ebook,
                    )
                    for item in ctx.items
                ],
            )
            await OrderRepository.add_order(db, order)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        ctx.order = order
        logger.info(
            OrderEvent.PLACED.value,
            order_id=order.id,
            user_id=ctx.user.id,
            total=order.total,
            payment_method=ctx.payment_method.value,
            coupon=coupon.code if coupon else None,
        )

    async def _create_payment_intent_step(self, ctx: PlacementContext) -> None:
        order = ctx.order
        try:
            intent = await self.gateway.create_intent(
                to_minor_units(order.total), self.settings.currency, order.id
            )
        except PaymentGatewayError as e:
            logger.error(OrderEvent.PAYMENT_INTENT_FAILED.value, order_id=order.id, error=e.message)
            raise
        await OrderRepository.set_payment_intent(ctx.db, order, intent.id)
        logger.info(OrderEvent.PAYMENT_INTENT_CREATED.value, order_id=order.id, intent_id=intent.id)

    async def _void_unpaid_order(self, ctx: PlacementContext) -> None:
        """Compensation for a failed intent: CANCELLED/FAILED, stock and coupon given back."""
        db, order = ctx.db, ctx.order
        cancelled = await OrderRepository.transition_status(
            db, order.id, OrderStatus.PENDING, OrderStatus.CANCELLED,
            payment_status=PaymentStatus.FAILED,
        )
        if cancelled:
            await InventoryService.release(db, order.items)
            if order.coupon_id:
                await CouponService.release(db, order.coupon_id)
        await db.commit()
        await db.refresh(order)
        logger.info(OrderEvent.VOIDED.value, order_id=order.id, reason="payment_intent_failed")

    # --- VERIFY PAYMENT ---

    async def verify_payment(
        self, db: AsyncSession, user: CurrentUser, data: PaymentVerificationInput
    ) -> PaymentVerificationResponse:
        order = await OrderRepository.get_order(db, data.order_id)
        if order is None or order.user_id != user.id or not order.payment_intent_id:
            raise OrderNotFoundError(data.order_id)
        log = logger.bind(order_id=order.id, intent_id=order.payment_intent_id)

        if order.payment_status == PaymentStatus.PAID:
            bookstore_payment_verifications_total.labels(outcome="already_paid").inc()
            return PaymentVerificationResponse(
                success=True, message="Payment already verified", order_id=order.id
            )
        if order.status == OrderStatus.CANCELLED:
            raise InvalidTransitionError(OrderStatus.CANCELLED.value, PaymentStatus.PAID.value)

        if not self.gateway.verify_signature(
            order.payment_intent_id, data.transaction_id, data.signature
        ):
            await self._discard_unverified_order(db, order)
            bookstore_payment_verifications_total.labels(outcome="signature_mismatch").inc()
            log.warning(OrderEvent.PAYMENT_REJECTED.value)
            return PaymentVerificationResponse(
                success=False, message="Payment verification failed", order_id=order.id
            )

        physical = bool(order.physical_items)
        marked = await OrderRepository.mark_paid(
            db, order.id, data.transaction_id,
            status=None if physical else OrderStatus.DELIVERED,
        )
        await db.commit()
        await db.refresh(order)
        if not marked:
            # A concurrent verification won; report its outcome without repeating side effects
            bookstore_payment_verifications_total.labels(outcome="already_paid").inc()
            if order.payment_status == PaymentStatus.PAID:
                return PaymentVerificationResponse(
                    success=True, message="Payment already verified", order_id=order.id
                )
            raise InvalidTransitionError(order.status.value, PaymentStatus.PAID.value)

        bookstore_payment_verifications_total.labels(outcome="verified").inc()
        log.info(OrderEvent.PAYMENT_VERIFIED.value, transaction_id=data.transaction_id)

        message = "Payment verified successfully"
        if physical:
            self.shipments.schedule(order)
            message = "Payment verified successfully; shipment is being created"
        else:
            log.info(OrderEvent.AUTO_DELIVERED.value)

        await CartService.clear_for_user(db, user.id)
        return PaymentVerificationResponse(success=True, message=message, order_id=order.id)

    async def _discard_unverified_order(self, db: AsyncSession, order: Order) -> None:
        """Signature mismatch: the order never became valid, so it is deleted."""
        items = list(order.items)
        coupon_id = order.coupon_id
        try:
            deleted = await OrderRepository.delete_unpaid(db, order.id)
            if deleted:
                await InventoryService.release(db, items)
                if coupon_id:
                    await CouponService.release(db, coupon_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if not deleted:
            # Cancelled (and restocked) by a concurrent request
            logger.info("unverified_order_already_closed", order_id=order.id)
            return
        db.expunge(order)
        logger.info(OrderEvent.VOIDED.value, order_id=order.id, reason="signature_mismatch")

    # --- CANCEL / STATUS ---

    async def cancel_order(self, db: AsyncSession, user: CurrentUser, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None or order.user_id != user.id:
            raise OrderNotFoundError(order_id)
        if order.status not in CUSTOMER_CANCELLABLE:
            raise InvalidTransitionError(order.status.value, OrderStatus.CANCELLED.value)
        return await self._cancel(db, order, actor="customer")

    async def update_order_status(
        self, db: AsyncSession, order_id: str, status: OrderStatus
    ) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        source = order.status
        ensure_transition(source, status)
        if status == OrderStatus.CANCELLED:
            return await self._cancel(db, order, actor="admin")

        if not await OrderRepository.transition_status(db, order.id, source, status):
            await db.rollback()
            raise InvalidTransitionError(source.value, status.value)
        await db.commit()
        await db.refresh(order)
        logger.info(
            OrderEvent.STATUS_CHANGED.value,
            order_id=order.id,
            source=source.value,
            target=status.value,
        )
        return order

    async def _cancel(self, db: AsyncSession, order: Order, actor: str) -> Order:
        source = order.status
        ensure_transition(source, OrderStatus.CANCELLED)
        log = logger.bind(order_id=order.id, actor=actor, source=source.value)

        # Only the request whose compare-and-set lands refunds and restocks
        try:
            if not await OrderRepository.transition_status(
                db, order.id, source, OrderStatus.CANCELLED
            ):
                raise InvalidTransitionError(source.value, OrderStatus.CANCELLED.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        # Picks up shipment details written by a scheduler task before the claim
        await db.refresh(order)

        if order.payment_status == PaymentStatus.PAID and order.payment_transaction_id:
            try:
                await self.gateway.refund(order.payment_transaction_id, to_minor_units(order.total))
            except PaymentGatewayError as e:
                await OrderRepository.transition_status(
                    db, order.id, OrderStatus.CANCELLED, source
                )
                await db.commit()
                await db.refresh(order)
                log.error("order_refund_failed", error=e.message)
                raise
            log.info("order_refunded", amount=order.total)

        shipment = order.shipment_details or {}
        if shipment.get("order_id") and not shipment.get("error"):
            await self.fulfillment.cancel_shipment(shipment["order_id"])

        try:
            await InventoryService.release(db, order.items)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await db.refresh(order)
        bookstore_order_cancellations_total.labels(actor=actor).inc()
        log.info(OrderEvent.CANCELLED.value)
        return order

    # --- READ ACCESSORS ---

    async def get_order(self, db: AsyncSession, user: CurrentUser, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None or (order.user_id != user.id and not user.is_admin):
            raise OrderNotFoundError(order_id)
        return order

    async def list_orders_for_user(self, db: AsyncSession, user_id: str) -> Sequence[Order]:
        return await OrderRepository.list_orders_for_user(db, user_id)

    async def get_payment_intent(
        self, db: AsyncSession, user: CurrentUser, order_id: str
    ) -> PaymentIntentResponse:
        order = await OrderRepository.get_order(db, order_id)
        if order is None or order.user_id != user.id:
            raise OrderNotFoundError(order_id)
        if not order.payment_intent_id:
            raise OrderNotFoundError(order_id, "Razorpay order ID not found")
        return PaymentIntentResponse(
            order_id=order.id,
            payment_intent_id=order.payment_intent_id,
            key_id=self.settings.razorpay_key_id,
            amount=to_minor_units(order.total),
            currency=self.settings.currency,
        )
