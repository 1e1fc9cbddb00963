from fastapi import FastAPI

from shared.errors import register_error_handlers

from .router import router, public_router
from .models import Product, ProductVariant, InventoryMovement # Import to register with Base

inventory_app = FastAPI(title="Inventory Service", version="1.0.0")
register_error_handlers(inventory_app)

inventory_app.include_router(public_router)
inventory_app.include_router(router)
