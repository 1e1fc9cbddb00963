from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .jwt_handler import read_claims


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI: the signed-in user, then the guest cart
    session, then the client's IP address.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        claims = read_claims(auth_header[len("Bearer "):])
        if claims:
            return f"user:{claims[0]}"

    session_id = request.headers.get("X-Session-Id")
    if session_id:
        return f"session:{session_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=user_id_or_ip)
