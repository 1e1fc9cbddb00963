"""
Shared secret for service-to-service calls: payment gateway callbacks
coming in, notification posts going out.
"""
import os
import secrets
import warnings

INTERNAL_API_HEADER = "X-Internal-API-Key"

INTERNAL_API_KEY: str = os.getenv("INTERNAL_API_KEY", "")

if not INTERNAL_API_KEY:
    warnings.warn(
        "INTERNAL_API_KEY is not set. Payment callbacks will only accept the development key. "
        "Set this env var in production!",
        stacklevel=2,
    )
    INTERNAL_API_KEY = "insecure-default-change-me"


def internal_headers() -> dict:
    return {INTERNAL_API_HEADER: INTERNAL_API_KEY}


def verify_api_key(provided_key: str) -> bool:
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), INTERNAL_API_KEY)
