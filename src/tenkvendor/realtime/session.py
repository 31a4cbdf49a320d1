"""Session — one live socket and its auth/room state."""

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from tenkvendor.auth.verifier import Principal


class Transport(Protocol):
    """What a session needs from its underlying connection."""

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class WebSocketTransport:
    """Transport over a Starlette/FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: str) -> None:
        await self.websocket.send_text(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.websocket.client_state == WebSocketState.CONNECTED:
            await self.websocket.close(code=code, reason=reason)


def encode_frame(event: str, data: Any) -> str:
    """Wire envelope: {"event": name, "data": payload}."""
    return json.dumps({"event": event, "data": data}, default=str)


@dataclass(eq=False)
class Session:
    """Ephemeral connection handle. Hashes by identity so it can sit in sets."""

    transport: Transport
    sid: str = field(default_factory=lambda: uuid.uuid4().hex)
    principal: Optional[Principal] = None
    rooms: set[str] = field(default_factory=set)
    closed: bool = False
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def emit(self, event: str, data: Any = None) -> None:
        """Send one event frame. Frames to the same session never interleave."""
        frame = encode_frame(event, data)
        async with self._send_lock:
            await self.transport.send(frame)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed:
            return
        self.closed = True
        await self.transport.close(code=code, reason=reason)
