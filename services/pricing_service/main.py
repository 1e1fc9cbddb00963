from fastapi import FastAPI

from shared.errors import register_error_handlers

from .router import router

pricing_app = FastAPI(title="Pricing Service", version="1.0.0")
register_error_handlers(pricing_app)

pricing_app.include_router(router)
