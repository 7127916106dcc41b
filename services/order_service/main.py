from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import AsyncSessionLocal
from shared.config.settings import get_settings
from shared.errors import OrderWorkflowError, workflow_error_handler
from shared.observability import setup_observability
from shared.security import limiter

from .dependencies import build_order_service
from .models import Order, OrderItem  # Import to register with Base
from .router import router, public_router

order_app = FastAPI(title="Order Service", version="2.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")

# --- SECURITY SETUP ---
order_app.state.limiter = limiter
order_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
order_app.add_exception_handler(OrderWorkflowError, workflow_error_handler)

order_app.state.order_service = build_order_service(get_settings(), AsyncSessionLocal)

order_app.include_router(public_router)
order_app.include_router(router)
