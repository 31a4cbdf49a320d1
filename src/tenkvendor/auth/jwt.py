"""JWT token creation and verification.

The storefront signs access tokens with the user id in the payload.
Older tokens carry it as "id", newer ones as "sub"; both are accepted.
create_access_token exists for the CLI and tests — production tokens come
from the storefront login flow.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from tenkvendor.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def strip_bearer(token: str) -> str:
    """Accept both "Bearer <jwt>" and a bare "<jwt>"."""
    token = token.strip()
    if token[:7].lower() == "bearer ":
        return token[7:].strip()
    return token


def create_access_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "id": user_id,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    if not isinstance(token, str) or not token.strip():
        raise TokenError("Missing token")
    try:
        return jwt.decode(
            strip_bearer(token),
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")


def subject_of(payload: dict) -> str:
    """Pull the user id out of a decoded payload."""
    user_id = payload.get("sub") or payload.get("id")
    if not user_id:
        raise TokenError("Token has no subject")
    return str(user_id)
