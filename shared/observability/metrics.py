from prometheus_client import Counter, Histogram

# Business Metrics
bookstore_orders_placed_total = Counter(
    "bookstore_orders_placed_total",
    "Orders placed",
    ["payment_method", "status"] # status: 'success', 'failed'
)

bookstore_order_placement_seconds = Histogram(
    "bookstore_order_placement_seconds",
    "Time spent in place order"
)

bookstore_payment_verifications_total = Counter(
    "bookstore_payment_verifications_total",
    "Online payment verifications",
    ["outcome"] # 'verified', 'signature_mismatch', 'already_paid'
)

bookstore_shipments_total = Counter(
    "bookstore_shipments_total",
    "Shipment creation attempts recorded on orders",
    ["outcome"] # 'created', 'failed'
)

bookstore_order_cancellations_total = Counter(
    "bookstore_order_cancellations_total",
    "Orders moved to CANCELLED",
    ["actor"] # 'customer', 'admin'
)

bookstore_saga_compensation_total = Counter(
    "bookstore_saga_compensation_total",
    "Total saga compensations triggered",
    ["step_name"]
)
