import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from shared.config.database import Base

from .state_machine import OrderStatus, PaymentMethod, PaymentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    email = Column(String(255), nullable=False, default="")
    total = Column(Float, nullable=False)  # snapshot, never recomputed
    status = Column(Enum(OrderStatus, native_enum=False, length=16), nullable=False, default=OrderStatus.PENDING)
    payment_method = Column(Enum(PaymentMethod, native_enum=False, length=24), nullable=False)
    payment_status = Column(Enum(PaymentStatus, native_enum=False, length=16), nullable=False, default=PaymentStatus.PENDING)
    address = Column(JSON, nullable=False)  # denormalized copy, not a live reference
    coupon_id = Column(String(36), nullable=True)
    payment_intent_id = Column(String(64), nullable=True, index=True)
    payment_transaction_id = Column(String(64), nullable=True)
    shipment_details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def physical_items(self) -> list["OrderItem"]:
        return [item for item in self.items if not item.is_ebook]


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False)
    title = Column(String, nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)  # unit price frozen at placement
    is_ebook = Column(Boolean, nullable=False, default=False)

    order = relationship("Order", back_populates="items")
