from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.payment_service.gateway import RazorpayGateway
from services.shipping_service.client import ShiprocketClient
from services.shipping_service.fulfillment import FulfillmentAdapter
from shared.config.settings import Settings

from .service import OrderService
from .shipments import ShipmentScheduler


def build_order_service(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> OrderService:
    """Wires the workflow to the real Razorpay and Shiprocket adapters."""
    fulfillment = FulfillmentAdapter(ShiprocketClient(settings), settings)
    return OrderService(
        gateway=RazorpayGateway(settings),
        fulfillment=fulfillment,
        shipments=ShipmentScheduler(fulfillment, session_factory),
        settings=settings,
    )


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service
