from .setup import configure_logging, setup_observability
from .metrics import (
    bookstore_orders_placed_total,
    bookstore_order_placement_seconds,
    bookstore_payment_verifications_total,
    bookstore_shipments_total,
    bookstore_order_cancellations_total,
    bookstore_saga_compensation_total,
)
