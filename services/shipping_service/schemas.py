from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

PROVIDER_NAME = "Shiprocket"


class ShipmentRecord(BaseModel):
    """Courier outcome stored on an order: either tracking data or an error marker."""
    tracking_id: Optional[str] = None
    provider: str = PROVIDER_NAME
    status: Optional[str] = None
    tracking_url: Optional[str] = None
    awb_code: Optional[str] = None
    order_id: Optional[str] = None  # courier-side order id
    courier_name: Optional[str] = None
    estimated_delivery: Optional[str] = None
    error: bool = False
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def failed(cls, message: str) -> "ShipmentRecord":
        return cls(error=True, message=message, provider=PROVIDER_NAME)

    @classmethod
    def from_courier_response(cls, body: dict) -> "ShipmentRecord":
        shipment_id = body.get("shipment_id")
        return cls(
            tracking_id=str(shipment_id) if shipment_id is not None else "",
            status=body.get("status") or "PROCESSING",
            tracking_url=body.get("label_url") or "",
            awb_code=body.get("awb_code") or "",
            order_id=str(body.get("order_id") or ""),
            courier_name=body.get("courier_name") or "",
            estimated_delivery=body.get("expected_delivery_date"),
        )

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
