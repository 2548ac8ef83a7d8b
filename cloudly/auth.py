# Filename: cloudly/auth.py
import logging
import time
from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from .config import settings
from .db import get_session
from .identity import IdentityClient, IdentityProfile, IdentityProviderError, decode_session_token, get_identity_client
from .models import User

logger = logging.getLogger(__name__)


def _get_token_from_header_or_cookie(request: Request) -> Optional[str]:
    """
    If Authorization header present: return token (raw token or "Bearer ...")
    Else if the provider's session cookie is present: return that
    """
    auth_header = request.headers.get("authorization")
    if auth_header:
        return auth_header
    cookie = request.cookies.get(settings.session_cookie_name)
    if cookie:
        return cookie
    return None


def get_request_user_id(request: Request) -> Optional[str]:
    token_raw = _get_token_from_header_or_cookie(request)
    if not token_raw:
        return None

    # token may be "Bearer <token>" or just "<token>"
    if token_raw.lower().startswith("bearer "):
        token = token_raw.split(" ", 1)[1]
    else:
        token = token_raw
    return decode_session_token(token)


def provision_user(session: Session, profile: IdentityProfile) -> User:
    """Create the local user for a first-seen identity; idempotent under concurrent first requests."""
    user = User(
        id=profile.user_id,
        email=profile.email.strip().lower() or None,
        first_name=profile.first_name,
        last_name=profile.last_name,
        username=profile.username or f"user_{int(time.time() * 1000)}",
        avatar_url=profile.avatar_url,
        storage_limit=settings.default_storage_limit_bytes,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = session.get(User, profile.user_id)
        if existing is None:
            # email or username held by a different account
            raise
        logger.info("User %s was provisioned concurrently, reusing it", profile.user_id)
        return existing
    session.refresh(user)
    logger.info("New user created: %s", user.username)
    return user


def get_current_user(
    request: Request,
    session: Session = Depends(get_session),
    identity: IdentityClient = Depends(get_identity_client),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    user_id = get_request_user_id(request)
    if not user_id:
        raise unauthorized

    user = session.get(User, user_id)
    if user is not None:
        return user

    logger.info("User not found in DB. Creating new user for: %s", user_id)
    try:
        profile = identity.fetch_profile(user_id)
    except IdentityProviderError as e:
        logger.error("Failed to fetch user from identity provider: %s", e)
        if e.rate_limited:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"message": "Too many requests. Please try again.", "error": "Rate limit exceeded"},
            )
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to authenticate user")

    try:
        return provision_user(session, profile)
    except IntegrityError:
        logger.exception("Could not provision user %s", user_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to authenticate user")
