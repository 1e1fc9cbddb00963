from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import OAuth2PasswordBearer, APIKeyHeader

from shared.config import settings
from shared.errors import Forbidden, Unauthenticated
from .jwt_handler import read_claims
from .api_key import INTERNAL_API_HEADER, verify_api_key

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

# Defines the expected internal service header
api_key_header = APIKeyHeader(name=INTERNAL_API_HEADER, auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Who is calling: a signed-in user, a guest session, or nobody."""

    user_id: Optional[int] = None
    role: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_staff(self) -> bool:
        return self.role in settings.STAFF_ROLES


def _credentials_exception() -> Unauthenticated:
    return Unauthenticated("Could not validate credentials")


async def get_current_identity(
    request: Request,
    token: str = Depends(oauth2_scheme),
    session_id: Optional[str] = Header(default=None, alias="X-Session-Id"),
) -> Identity:
    """Resolves the caller. A bad token is rejected; no token means guest."""
    if not token:
        return Identity(session_id=session_id or None)

    claims = read_claims(token)
    if claims is None:
        raise _credentials_exception()
    user_id, role = claims

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = user_id
    return Identity(user_id=user_id, role=role, session_id=session_id or None)


async def get_current_user(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Dependency for endpoints that need a signed-in user."""
    if not identity.is_authenticated:
        raise _credentials_exception()
    return identity


async def require_staff(identity: Identity = Depends(get_current_user)) -> Identity:
    if not identity.is_staff:
        raise Forbidden("Staff role required", code="staff_required")
    return identity


async def verify_internal_api_key(api_key: str = Depends(api_key_header)) -> bool:
    """Dependency to validate service-to-service internal requests."""
    if not verify_api_key(api_key):
        raise Forbidden(f"Invalid or missing {INTERNAL_API_HEADER} header", code="invalid_api_key")
    return True
