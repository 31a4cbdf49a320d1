"""Redis pub/sub room directory — broadcasts across app instances.

Membership stays local to each process (a socket lives on exactly one
instance). Broadcasts are delivered to local members straight away and
published on one Redis channel; every other instance relays them to its
own members. Messages carry the publishing instance id so nobody
delivers twice.

Redis pub/sub is fire-and-forget: an instance that is not subscribed at
publish time misses the message, same as a disconnected socket.
"""

import asyncio
import json
import uuid
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from tenkvendor.realtime.rooms import InMemoryRoomDirectory, RoomDirectory
from tenkvendor.realtime.session import Session

logger = structlog.get_logger()


class RedisRoomDirectory(RoomDirectory):
    """Local membership + Redis relay for broadcasts."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str = "tenkvendor:rooms",
        local: Optional[InMemoryRoomDirectory] = None,
        reconnect_delay: float = 1.0,
    ):
        self.redis = redis
        self.channel = channel
        self.local = local or InMemoryRoomDirectory()
        self.instance_id = uuid.uuid4().hex
        self.reconnect_delay = reconnect_delay
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None

    # ─── Membership (local) ────────────────────────────────

    async def join(self, room: str, session: Session) -> None:
        await self.local.join(room, session)

    async def leave(self, room: str, session: Session) -> None:
        await self.local.leave(room, session)

    async def leave_all(self, session: Session) -> None:
        await self.local.leave_all(session)

    def members(self, room: str) -> frozenset[Session]:
        return self.local.members(room)

    def stats(self) -> dict[str, int]:
        return self.local.stats()

    # ─── Broadcast ─────────────────────────────────────────

    async def broadcast(self, room: str, event: str, payload: Any = None) -> int:
        delivered = await self.local.broadcast(room, event, payload)
        message = json.dumps(
            {
                "origin": self.instance_id,
                "room": room,
                "event": event,
                "payload": payload,
            },
            default=str,
        )
        try:
            await self.redis.publish(self.channel, message)
        except Exception as e:
            # Other instances miss this one; local members already have it.
            logger.warning("realtime.redis_publish_failed", room=room, error=str(e))
        return delivered

    async def relay(self, raw: str) -> None:
        """Deliver a message published by another instance."""
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.warning("realtime.redis_bad_message", data=raw)
            return
        if message.get("origin") == self.instance_id:
            return
        room = message.get("room")
        event = message.get("event")
        if not room or not event:
            logger.warning("realtime.redis_bad_message", data=raw)
            return
        await self.local.broadcast(room, event, message.get("payload"))

    # ─── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.channel)
        self._listener = asyncio.create_task(self._listen())
        logger.info("realtime.redis_subscribed", channel=self.channel)

    async def _listen(self) -> None:
        # PubSub reconnects and resubscribes on the next listen() after a drop.
        while True:
            try:
                async for message in self._pubsub.listen():
                    if message.get("type") == "message":
                        await self.relay(message["data"])
                return
            except Exception as e:
                logger.error(
                    "realtime.redis_listener_failed",
                    channel=self.channel,
                    error=str(e),
                )
                await asyncio.sleep(self.reconnect_delay)

    async def close(self) -> None:
        try:
            if self._listener:
                self._listener.cancel()
                try:
                    await self._listener
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.warning("realtime.redis_listener_error", error=str(e))
                self._listener = None
            if self._pubsub is not None:
                try:
                    await self._pubsub.unsubscribe(self.channel)
                    await self._pubsub.aclose()
                except Exception as e:
                    logger.warning("realtime.redis_close_failed", error=str(e))
                self._pubsub = None
        finally:
            await self.redis.aclose()
