"""FastAPI auth dependencies.

These are used as Depends() in route handlers to resolve the bearer
token on the request to a Principal. The verifier itself lives on the
RealtimeHub so HTTP and WebSocket share one instance.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from tenkvendor.auth.verifier import Principal
from tenkvendor.errors import Unauthorized


async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Principal:
    """Resolve the Authorization header (required — 401 if missing/invalid)."""
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    verifier = request.app.state.hub.verifier
    try:
        return await verifier.verify(authorization)
    except Unauthorized as e:
        raise HTTPException(
            status_code=401,
            detail=e.reason,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Like get_current_principal, but 403 for non-admins."""
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal
