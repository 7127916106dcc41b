"""
Fulfillment adapter: turns a confirmed order into a courier shipment.

create_shipment() never raises. Whatever goes wrong (auth, validation,
network) ends up as a ShipmentRecord with error=True, because a courier
outage must not block order confirmation. The only retry is the pickup
location correction: when the courier names the valid locations, the
request is resubmitted once with the first of them.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, Sequence

import httpx
import structlog

from shared.config.settings import Settings

from .client import ShiprocketError, WrongPickupLocationError, location_name
from .schemas import ShipmentRecord

logger = structlog.get_logger(__name__)

# Parcel defaults for a single book shipment (cm / kg)
PARCEL_DIMENSIONS = {"length": 20, "breadth": 15, "height": 10, "weight": 0.5}
BOOK_HSN_CODE = 4901
COUNTRY = "India"

_TRANSIENT = (ShiprocketError, httpx.HTTPError, ValueError, KeyError)


class CourierClient(Protocol):
    async def get_pickup_locations(self) -> list[dict]: ...

    async def create_order(self, payload: dict) -> dict: ...

    async def cancel_order(self, remote_order_id: str) -> dict: ...


@dataclass(frozen=True)
class PickupRetryPolicy:
    """How many times a rejected pickup location may be replaced and resubmitted."""
    max_corrections: int = 1

    def correction(self, error: WrongPickupLocationError, attempt: int) -> str | None:
        if attempt >= self.max_corrections:
            return None
        for location in error.valid_locations:
            name = location_name(location)
            if name:
                return name
        return None


@dataclass(frozen=True)
class ShipmentLine:
    product_id: str
    title: str
    quantity: int
    price: float


@dataclass(frozen=True)
class ShipmentRequest:
    order_id: str
    prepaid: bool
    address: dict
    email: str
    total: float
    lines: Sequence[ShipmentLine]


class FulfillmentAdapter:

    def __init__(
        self,
        client: CourierClient,
        settings: Settings,
        retry_policy: PickupRetryPolicy | None = None,
    ):
        self._client = client
        self._settings = settings
        self._retry_policy = retry_policy or PickupRetryPolicy()

    async def resolve_pickup_location(self) -> str:
        try:
            locations = await self._client.get_pickup_locations()
        except _TRANSIENT as e:
            logger.warning("pickup_location_lookup_failed", error=str(e))
            return self._settings.pickup_location
        for location in locations:
            name = location_name(location)
            if name:
                return name
        logger.warning("no_pickup_locations", fallback=self._settings.pickup_location)
        return self._settings.pickup_location

    def build_payload(self, request: ShipmentRequest, pickup_location: str) -> dict:
        address = request.address
        mode = "ONLINE" if request.prepaid else "COD"
        contact = {
            "customer_name": address.get("name", ""),
            "last_name": "",
            "address": address.get("street", ""),
            "address_2": address.get("street2", ""),
            "city": address.get("city", ""),
            "pincode": address.get("pincode", ""),
            "state": address.get("state", ""),
            "country": COUNTRY,
            "email": request.email,
            "phone": address.get("phone", ""),
        }
        payload = {
            "order_id": f"ORDER-{mode}-{request.order_id}-{int(time.time() * 1000)}",
            "order_date": datetime.now(timezone.utc).strftime("%Y-%m-%d"),
            "pickup_location": pickup_location,
            "channel_id": "custom",
            "comment": f"Order created via website - {'Paid Online' if request.prepaid else 'COD'}",
            "shipping_is_billing": True,
            "order_items": [
                {
                    "name": line.title,
                    "sku": line.product_id,
                    "units": line.quantity,
                    "selling_price": round(line.price),
                    "discount": 0,
                    "tax": 0,
                    "hsn": BOOK_HSN_CODE,
                }
                for line in request.lines
            ],
            "payment_method": "Prepaid" if request.prepaid else "COD",
            "shipping_charges": 0,
            "giftwrap_charges": 0,
            "transaction_charges": 0,
            "total_discount": 0,
            "sub_total": round(request.total),
            **PARCEL_DIMENSIONS,
        }
        for key, value in contact.items():
            payload[f"billing_{key}"] = value
            payload[f"shipping_{key}"] = value
        return payload

    async def create_shipment(self, request: ShipmentRequest) -> ShipmentRecord:
        log = logger.bind(order_id=request.order_id)
        if not request.lines:
            return ShipmentRecord.failed("Failed to create shipment: no physical items")

        payload = self.build_payload(request, await self.resolve_pickup_location())
        attempt = 0
        while True:
            try:
                body = await self._client.create_order(payload)
            except WrongPickupLocationError as e:
                corrected = self._retry_policy.correction(e, attempt)
                if corrected is None:
                    log.error("shipment_pickup_location_rejected", pickup=payload["pickup_location"])
                    return ShipmentRecord.failed(
                        "Failed to create shipment: no valid pickup location"
                    )
                log.warning(
                    "shipment_pickup_location_corrected",
                    rejected=payload["pickup_location"],
                    corrected=corrected,
                )
                payload["pickup_location"] = corrected
                attempt += 1
                continue
            except _TRANSIENT as e:
                log.error("shipment_creation_failed", error=str(e))
                return ShipmentRecord.failed(f"Failed to create shipment: {e or 'Unknown error'}")

            record = ShipmentRecord.from_courier_response(body)
            log.info("shipment_created", tracking_id=record.tracking_id, status=record.status)
            return record

    async def cancel_shipment(self, remote_order_id: str) -> bool:
        """Best effort; a courier failure is logged and reported as False."""
        try:
            await self._client.cancel_order(remote_order_id)
        except _TRANSIENT as e:
            logger.error("shipment_cancel_failed", remote_order_id=remote_order_id, error=str(e))
            return False
        logger.info("shipment_cancelled", remote_order_id=remote_order_id)
        return True
