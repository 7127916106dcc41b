from enum import Enum

from shared.errors import InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    ONLINE = "ONLINE"
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class OrderEvent(str, Enum):
    """Lifecycle events emitted (logged) by the order workflow."""
    PLACED = "order_placed"
    PAYMENT_INTENT_CREATED = "payment_intent_created"
    PAYMENT_INTENT_FAILED = "payment_intent_failed"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    AUTO_DELIVERED = "order_auto_delivered"
    FULFILLMENT_REQUESTED = "fulfillment_requested"
    FULFILLMENT_RECORDED = "fulfillment_recorded"
    STATUS_CHANGED = "order_status_changed"
    CANCELLED = "order_cancelled"
    VOIDED = "order_voided"


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    # Back office may still cancel a delivered order
    OrderStatus.DELIVERED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}

# Customers cannot cancel once the parcel has been delivered
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED})


def can_transition(source: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(source)]


def ensure_transition(source: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(source, target):
        raise InvalidTransitionError(OrderStatus(source).value, OrderStatus(target).value)
