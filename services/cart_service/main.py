from fastapi import FastAPI

from shared.errors import register_error_handlers

from .router import router
from .models import Cart, CartItem # Import to register with Base

cart_app = FastAPI(title="Cart Service", version="1.0.0")
register_error_handlers(cart_app)

cart_app.include_router(router)
