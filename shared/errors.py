"""Error taxonomy shared by the order workflow and its adapters."""
from enum import Enum

from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_FOUND = "NOT_FOUND"
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"


# HTTP status rendered for each kind by the API layer
HTTP_STATUS = {
    ErrorKind.INVALID_ADDRESS: 400,
    ErrorKind.INVALID_QUANTITY: 400,
    ErrorKind.PRODUCT_NOT_FOUND: 400,
    ErrorKind.INSUFFICIENT_STOCK: 409,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PAYMENT_GATEWAY_ERROR: 502,
}


class OrderWorkflowError(Exception):
    """Base exception for every rejection the order workflow reports to callers."""

    kind: ErrorKind

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.kind]


class InvalidAddressError(OrderWorkflowError):
    def __init__(self, address_id: str):
        self.address_id = address_id
        super().__init__(ErrorKind.INVALID_ADDRESS, "Invalid address")


class InvalidQuantityError(OrderWorkflowError):
    def __init__(self, product_id: str, quantity: int):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(
            ErrorKind.INVALID_QUANTITY,
            f"Invalid quantity {quantity} for product {product_id}",
        )


class ProductNotFoundError(OrderWorkflowError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(ErrorKind.PRODUCT_NOT_FOUND, f"Product not found: {product_id}")


class InsufficientStockError(OrderWorkflowError):
    def __init__(self, product_id: str, title: str, requested: int):
        self.product_id = product_id
        self.title = title
        self.requested = requested
        super().__init__(ErrorKind.INSUFFICIENT_STOCK, f"Insufficient stock for {title}")


class InvalidTransitionError(OrderWorkflowError):
    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(
            ErrorKind.INVALID_TRANSITION,
            f"Invalid status transition from {source} to {target}",
        )


class OrderNotFoundError(OrderWorkflowError):
    def __init__(self, order_id: str, reason: str = "Order not found"):
        self.order_id = order_id
        super().__init__(ErrorKind.NOT_FOUND, reason)


class PaymentGatewayError(OrderWorkflowError):
    """Raised by the payment adapter for network, auth, config or API failures."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(ErrorKind.PAYMENT_GATEWAY_ERROR, message)


async def workflow_error_handler(request, exc: OrderWorkflowError):
    """FastAPI exception handler rendering the typed error body."""
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.kind.value, "message": exc.message},
    )
