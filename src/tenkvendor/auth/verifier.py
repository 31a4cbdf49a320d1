"""Credential verifier — bearer JWT → Principal.

Used by both the HTTP dependencies and the WebSocket gateway. Every cause
of failure (bad signature, expiry, unknown user, slow lookup) collapses
into a single Unauthorized; the cause is only logged.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

from tenkvendor.auth.jwt import TokenError, subject_of, verify_token
from tenkvendor.errors import Unauthorized

logger = structlog.get_logger()

# user id -> user record (dict with at least _id, name, isAdmin) or None
UserLookup = Callable[[str], Awaitable[Optional[dict[str, Any]]]]


@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a request or socket."""

    id: str
    is_admin: bool = False
    display_name: str = ""


class CredentialVerifier:
    """Resolve a credential string to a Principal, failing closed."""

    def __init__(self, user_lookup: UserLookup, timeout: float = 5.0):
        self.user_lookup = user_lookup
        self.timeout = timeout

    async def verify(self, credential: Any) -> Principal:
        """Verify a credential and load its user.

        Raises Unauthorized for every failure mode.
        """
        try:
            payload = verify_token(credential)
            user_id = subject_of(payload)
        except TokenError as e:
            logger.info("auth.token_rejected", reason=str(e))
            raise Unauthorized(str(e)) from e

        try:
            user = await asyncio.wait_for(self.user_lookup(user_id), self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning("auth.lookup_timeout", user_id=user_id, timeout=self.timeout)
            raise Unauthorized("User lookup timed out") from e
        except Exception as e:
            logger.warning("auth.lookup_failed", user_id=user_id, error=str(e))
            raise Unauthorized("User lookup failed") from e

        if not user:
            logger.info("auth.unknown_user", user_id=user_id)
            raise Unauthorized("Unknown user")

        return Principal(
            id=str(user.get("_id", user_id)),
            is_admin=bool(user.get("isAdmin", False)),
            display_name=user.get("name") or "",
        )
