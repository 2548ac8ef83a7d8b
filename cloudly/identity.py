# Filename: cloudly/identity.py
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx
from jose import jwt, JWTError

from .config import settings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


@dataclass
class IdentityProfile:
    user_id: str
    email: str
    first_name: str
    last_name: str
    username: Optional[str]
    avatar_url: str


def decode_session_token(token: str) -> Optional[str]:
    """Return the verified subject (user id) of a session token, or None."""
    options = {"verify_aud": False}
    try:
        if settings.identity_issuer:
            payload = jwt.decode(
                token,
                settings.identity_jwt_key,
                algorithms=[settings.jwt_algorithm],
                issuer=settings.identity_issuer,
                options=options,
            )
        else:
            payload = jwt.decode(token, settings.identity_jwt_key, algorithms=[settings.jwt_algorithm], options=options)
    except JWTError as e:
        logger.debug("Session token rejected: %s", e)
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


def _primary_email(data: dict) -> str:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return address.get("email_address") or ""
    return ""


class IdentityClient:
    """Client for the identity provider's user-lookup API."""

    def __init__(self, base_url: str, secret_key: str, timeout: float = 10.0, transport: httpx.BaseTransport = None):
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.timeout = timeout
        self.transport = transport

    def fetch_profile(self, user_id: str) -> IdentityProfile:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                resp = client.get(f"/users/{user_id}", headers=headers)
            except httpx.RequestError as e:
                raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        if resp.status_code != 200:
            raise IdentityProviderError(
                f"Identity provider returned {resp.status_code} for user {user_id}",
                status_code=resp.status_code,
            )

        data = resp.json()
        return IdentityProfile(
            user_id=data.get("id") or user_id,
            email=_primary_email(data),
            first_name=data.get("first_name") or data.get("username") or "User",
            last_name=data.get("last_name") or "",
            username=data.get("username"),
            avatar_url=data.get("image_url") or "",
        )


@lru_cache
def get_identity_client() -> IdentityClient:
    return IdentityClient(settings.identity_api_url, settings.identity_secret_key, settings.identity_timeout_seconds)
