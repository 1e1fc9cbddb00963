from .jwt_handler import read_claims, verify_access_token
from .api_key import internal_headers, verify_api_key
from .dependencies import (
    Identity,
    get_current_identity,
    get_current_user,
    require_staff,
    verify_internal_api_key,
)
from .rate_limiter import limiter, user_id_or_ip

__all__ = [
    "read_claims",
    "verify_access_token",
    "internal_headers",
    "verify_api_key",
    "Identity",
    "get_current_identity",
    "get_current_user",
    "require_staff",
    "verify_internal_api_key",
    "limiter",
    "user_id_or_ip",
]
