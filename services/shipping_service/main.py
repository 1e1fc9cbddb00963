from fastapi import FastAPI

from shared.errors import register_error_handlers

from .models import Shipment  # Import to register with Base
from .router import public_router, router

shipping_app = FastAPI(title="Shipping Service", version="1.0.0")
register_error_handlers(shipping_app)

shipping_app.include_router(public_router)
shipping_app.include_router(router)
