"""Push API — device registration and notification sends.

- POST /push/subscribe → store the browser's PushSubscription for the caller
- POST /push/send → notify one user's devices, or all devices (admin only)
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from tenkvendor.auth.dependencies import get_current_principal, require_admin
from tenkvendor.auth.verifier import Principal
from tenkvendor.push.notifier import SendStatus

router = APIRouter(prefix="/push")


# ─── Schemas ─────────────────────────────────────────────


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionIn(BaseModel):
    """The browser's PushSubscription.toJSON()."""

    endpoint: str
    expirationTime: Optional[float] = None
    keys: SubscriptionKeys

    model_config = {"extra": "allow"}


class PushSendRequest(BaseModel):
    title: str = Field(min_length=1)
    body: str = ""
    url: Optional[str] = None
    userId: Optional[str] = None


class PushSendResponse(BaseModel):
    message: str
    attempted: int
    delivered: int
    removed: int
    failed: int


# ─── Routes ──────────────────────────────────────────────


@router.post("/subscribe", status_code=201)
async def subscribe(
    body: PushSubscriptionIn,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    """Save a push subscription for the authenticated user."""
    notifier = request.app.state.hub.notifier
    await notifier.register(principal.id, body.model_dump(exclude_none=True))
    return {"message": "Subscription saved"}


@router.post("/send", response_model=PushSendResponse)
async def send(
    body: PushSendRequest,
    request: Request,
    _admin: Principal = Depends(require_admin),
):
    """Send a notification to a user's devices, or to every device."""
    notifier = request.app.state.hub.notifier
    report = await notifier.send(
        body.title, body.body, body.url, target_user_id=body.userId
    )
    if report.status is SendStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="No subscriptions found")
    return PushSendResponse(
        message="Notifications sent",
        attempted=report.attempted,
        delivered=report.delivered,
        removed=report.removed,
        failed=report.failed,
    )
