"""
HS256 JWT session tokens.

Two token types share the signing key: ``admin`` (back-office session, carried
in an HTTP-only cookie) and ``visitor`` (reader session, carried as a bearer
token).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from boreview.config import get_settings


def _encode(payload: dict[str, Any]) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_admin_token(user_id: str, email: str, role: str) -> str:
    """Create an admin session token valid for ``admin_session_expire_hours``."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=settings.admin_session_expire_hours),
        "iss": settings.jwt_issuer,
        "type": "admin",
    }
    return _encode(payload)


def create_visitor_token(visitor_id: str, username: str) -> str:
    """Create a visitor session token valid for ``visitor_token_expire_days``."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": visitor_id,
        "username": username,
        "iat": now,
        "exp": now + timedelta(days=settings.visitor_token_expire_days),
        "iss": settings.jwt_issuer,
        "type": "visitor",
    }
    return _encode(payload)


def verify_token(token: str, expected_type: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or of the wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
