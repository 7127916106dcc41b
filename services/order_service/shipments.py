"""
Background shipment creation.

Orders are confirmed before the courier is contacted. Each request runs as a
tracked asyncio task that opens its own DB session and writes the outcome
(tracking data or error marker) onto the order, so nothing is fire-and-forget:
callers can await the returned task, and join() drains all of them.
"""
import asyncio

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.shipping_service.fulfillment import FulfillmentAdapter, ShipmentLine, ShipmentRequest
from services.shipping_service.schemas import ShipmentRecord
from shared.observability import bookstore_shipments_total

from .models import Order
from .repository import OrderRepository
from .state_machine import OrderEvent, PaymentMethod

logger = structlog.get_logger(__name__)


def shipment_request_for(order: Order) -> ShipmentRequest:
    return ShipmentRequest(
        order_id=order.id,
        prepaid=order.payment_method == PaymentMethod.ONLINE,
        address=dict(order.address or {}),
        email=order.email or "",
        total=order.total,
        lines=[
            ShipmentLine(
                product_id=item.product_id,
                title=item.title,
                quantity=item.quantity,
                price=item.price,
            )
            for item in order.physical_items
        ],
    )


class ShipmentScheduler:

    def __init__(self, adapter: FulfillmentAdapter, session_factory: async_sessionmaker[AsyncSession]):
        self._adapter = adapter
        self._session_factory = session_factory
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, order: Order) -> asyncio.Task:
        request = shipment_request_for(order)
        task = asyncio.create_task(self._run(request), name=f"shipment-{order.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(OrderEvent.FULFILLMENT_REQUESTED.value, order_id=order.id, lines=len(request.lines))
        return task

    async def _run(self, request: ShipmentRequest) -> ShipmentRecord:
        try:
            record = await self._adapter.create_shipment(request)
        except Exception as e:
            # The adapter contract is non-throwing; anything escaping it is still recorded
            logger.exception("shipment_adapter_crashed", order_id=request.order_id)
            record = ShipmentRecord.failed(f"Failed to create shipment: {e}")

        bookstore_shipments_total.labels(outcome="failed" if record.error else "created").inc()

        async with self._session_factory() as db:
            saved = await OrderRepository.save_shipment(db, request.order_id, record.to_storage())
        if not saved and not record.error and record.order_id:
            # The order was cancelled while the courier call was in flight
            await self._adapter.cancel_shipment(record.order_id)
        logger.info(
            OrderEvent.FULFILLMENT_RECORDED.value,
            order_id=request.order_id,
            error=record.error,
            saved=saved,
        )
        return record

    async def join(self) -> None:
        """Waits for every in-flight shipment task (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
