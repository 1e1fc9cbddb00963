from fastapi import FastAPI

from shared.errors import register_error_handlers

from .router import router, public_router
from .models import Coupon, CouponRedemption # Import to register with Base

coupon_app = FastAPI(title="Coupon Service", version="1.0.0")
register_error_handlers(coupon_app)

coupon_app.include_router(public_router)
coupon_app.include_router(router)
