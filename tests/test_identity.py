"""Identity provider client and session token verification."""

import httpx
import pytest
from jose import jwt

from cloudly.config import settings
from cloudly.identity import IdentityClient, IdentityProviderError, decode_session_token

from conftest import make_token

CLERK_USER = {
    "id": "user_2abc",
    "username": "ada",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "image_url": "https://img.example.com/ada.png",
    "primary_email_address_id": "idn_2",
    "email_addresses": [
        {"id": "idn_1", "email_address": "old@example.com"},
        {"id": "idn_2", "email_address": "ada@example.com"},
    ],
}


def client_for(handler) -> IdentityClient:
    return IdentityClient("https://identity.test/v1", "sk_test", transport=httpx.MockTransport(handler))


def test_fetch_profile_maps_provider_fields():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json=CLERK_USER)

    profile = client_for(handler).fetch_profile("user_2abc")

    assert seen == {"path": "/v1/users/user_2abc", "auth": "Bearer sk_test"}
    assert profile.user_id == "user_2abc"
    assert profile.email == "ada@example.com"
    assert profile.first_name == "Ada"
    assert profile.last_name == "Lovelace"
    assert profile.username == "ada"
    assert profile.avatar_url == "https://img.example.com/ada.png"


def test_fetch_profile_fills_defaults_for_sparse_accounts():
    def handler(request):
        return httpx.Response(200, json={"id": "user_x", "email_addresses": []})

    profile = client_for(handler).fetch_profile("user_x")
    assert profile.email == ""
    assert profile.first_name == "User"
    assert profile.last_name == ""
    assert profile.username is None


@pytest.mark.parametrize("status_code,rate_limited", [(429, True), (404, False), (500, False)])
def test_fetch_profile_errors_carry_status(status_code, rate_limited):
    def handler(request):
        return httpx.Response(status_code, json={"errors": []})

    with pytest.raises(IdentityProviderError) as exc_info:
        client_for(handler).fetch_profile("user_x")
    assert exc_info.value.status_code == status_code
    assert exc_info.value.rate_limited is rate_limited


def test_fetch_profile_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(IdentityProviderError) as exc_info:
        client_for(handler).fetch_profile("user_x")
    assert exc_info.value.status_code is None


def test_decode_valid_token():
    assert decode_session_token(make_token("user_42")) == "user_42"


def test_decode_rejects_wrong_key():
    token = jwt.encode({"sub": "user_42"}, "another-key", algorithm=settings.jwt_algorithm)
    assert decode_session_token(token) is None


def test_decode_rejects_expired_token():
    token = jwt.encode({"sub": "user_42", "exp": 1}, settings.identity_jwt_key, algorithm=settings.jwt_algorithm)
    assert decode_session_token(token) is None


def test_decode_rejects_token_without_subject():
    token = jwt.encode({"scope": "x"}, settings.identity_jwt_key, algorithm=settings.jwt_algorithm)
    assert decode_session_token(token) is None


def test_decode_rejects_garbage():
    assert decode_session_token("not-a-jwt") is None
