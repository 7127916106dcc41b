from fastapi import FastAPI

from shared.errors import OrderWorkflowError, workflow_error_handler
from shared.observability.setup import setup_observability

from .models import Cart, CartItem  # Import to register with Base
from .router import router, public_router

cart_app = FastAPI(title="Cart Service", version="2.0.0")

setup_observability(cart_app, "cart_service")
# A cart line pointing at a removed product surfaces as PRODUCT_NOT_FOUND
cart_app.add_exception_handler(OrderWorkflowError, workflow_error_handler)
cart_app.include_router(public_router)
cart_app.include_router(router)
