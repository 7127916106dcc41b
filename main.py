from fastapi import FastAPI
from shared.config.database import engine, Base

# IMPORTANT: import models so they register with Base
from services.address_service import models as address_models
from services.cart_service import models as cart_models
from services.coupon_service import models as coupon_models
from services.order_service import models as order_models
from services.product_service import models as product_models

from services.cart_service.main import cart_app
from services.coupon_service.main import coupon_app
from services.order_service.main import order_app

app = FastAPI(title="Bookstore")

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

@app.on_event("shutdown")
async def shutdown_event():
    # Let in-flight shipment tasks record their outcome before exiting
    await order_app.state.order_service.shipments.join()
    await engine.dispose()

app.mount("/orders", order_app)
app.mount("/cart", cart_app)
app.mount("/coupons", coupon_app)
