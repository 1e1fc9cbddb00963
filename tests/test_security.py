from datetime import timedelta

from starlette.requests import Request

from shared.security import read_claims, user_id_or_ip, verify_api_key
from shared.security.dependencies import Identity

from conftest import create_access_token


def make_request(headers: dict) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/orders/checkout",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": ("10.0.0.8", 5000),
        }
    )


def test_claims_default_to_customer_role():
    assert read_claims(create_access_token({"sub": "12"})) == (12, "customer")
    assert read_claims(create_access_token({"sub": "3", "role": "manager"})) == (3, "manager")


def test_claims_reject_bad_tokens():
    assert read_claims("garbage") is None
    assert read_claims(create_access_token({"sub": "not-a-number"})) is None
    assert read_claims(create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-5))) is None


def test_identity_roles():
    assert Identity(user_id=1, role="staff").is_staff
    assert not Identity(user_id=1, role="customer").is_staff
    assert not Identity(session_id="abc").is_authenticated


def test_rate_limit_key_prefers_user_then_session_then_ip():
    token = create_access_token({"sub": "42"})
    assert user_id_or_ip(make_request({"Authorization": f"Bearer {token}", "X-Session-Id": "s1"})) == "user:42"
    assert user_id_or_ip(make_request({"X-Session-Id": "s1"})) == "session:s1"
    assert user_id_or_ip(make_request({})) == "ip:10.0.0.8"


def test_internal_api_key():
    assert verify_api_key("test-internal-key")
    assert not verify_api_key("wrong")
    assert not verify_api_key(None)
