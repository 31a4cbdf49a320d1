"""WebSocket endpoint — /ws.

Each browser tab holds one socket. Frames in both directions are JSON
text: {"event": "<name>", "data": <payload>}. The gateway owns everything
after accept(); this module only pumps frames and guarantees the
disconnect cleanup runs however the socket ends.
"""

import json

import structlog
from fastapi import APIRouter, WebSocket

from tenkvendor.realtime.session import WebSocketTransport

logger = structlog.get_logger()
router = APIRouter()


def parse_frame(raw: str) -> tuple[str, object] | None:
    """Decode a client frame; None if it isn't a valid envelope."""
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(message, dict):
        return None
    event = message.get("event")
    if not isinstance(event, str) or not event:
        return None
    return event, message.get("data")


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    """Real-time channel for admin dashboards and customer order pages."""
    gateway = websocket.app.state.hub.gateway

    await websocket.accept()
    session = gateway.on_connect(WebSocketTransport(websocket))
    structlog.contextvars.bind_contextvars(sid=session.sid)

    try:
        while not session.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.info("realtime.binary_frame", sid=session.sid)
                continue
            frame = parse_frame(raw)
            if frame is None:
                logger.info("realtime.bad_frame", sid=session.sid)
                continue
            event, data = frame
            await gateway.dispatch(session, event, data)
    finally:
        await gateway.on_disconnect(session)
