import os
from typing import Optional, Tuple

from jose import JWTError, jwt

# Tokens are issued by the external auth service with the same key
SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
DEFAULT_ROLE = "customer"


def verify_access_token(token: str) -> Optional[dict]:
    """Decodes and verifies the JWT. Returns payload if valid, None if invalid/expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def read_claims(token: str) -> Optional[Tuple[int, str]]:
    """(user_id, role) from a valid token whose ``sub`` is a user id, else None."""
    payload = verify_access_token(token)
    if not payload or payload.get("sub") is None:
        return None
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None
    return user_id, payload.get("role") or DEFAULT_ROLE
