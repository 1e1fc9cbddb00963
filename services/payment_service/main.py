from fastapi import FastAPI

from shared.errors import register_error_handlers

from .models import Payment  # Import to register with Base
from .router import public_router, router, staff_router

payment_app = FastAPI(title="Payment Service", version="2.0.0")
register_error_handlers(payment_app)

payment_app.include_router(public_router)
payment_app.include_router(staff_router)
payment_app.include_router(router)
