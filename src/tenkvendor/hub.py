"""RealtimeHub — the lifecycle-scoped bundle of notification services.

Built once by create_app() and stored on app.state.hub, torn down by the
lifespan. Routes and the WebSocket endpoint reach every service through
it, and tests build one with fakes instead of patching globals.
"""

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis
import structlog

from tenkvendor.auth.verifier import CredentialVerifier, UserLookup
from tenkvendor.config import Settings
from tenkvendor.push.notifier import PushNotifier
from tenkvendor.push.registry import InMemoryPushRegistry, PushRegistry
from tenkvendor.push.transport import PushTransport, WebPushTransport
from tenkvendor.realtime.gateway import SessionGateway
from tenkvendor.realtime.pubsub import RedisRoomDirectory
from tenkvendor.realtime.rooms import InMemoryRoomDirectory, RoomDirectory
from tenkvendor.realtime.router import EventRouter, OrderLookup

logger = structlog.get_logger()


@dataclass
class RealtimeHub:
    rooms: RoomDirectory
    verifier: CredentialVerifier
    router: EventRouter
    gateway: SessionGateway
    notifier: PushNotifier

    async def start(self) -> None:
        await self.rooms.start()

    async def close(self) -> None:
        await self.rooms.close()
        await self.notifier.registry.close()


def build_rooms(settings: Settings) -> RoomDirectory:
    if settings.room_backend == "redis":
        client = aioredis.from_url(
            settings.redis_url, encoding="utf-8", decode_responses=True
        )
        return RedisRoomDirectory(
            client,
            channel=settings.redis_channel,
            local=InMemoryRoomDirectory(send_timeout=settings.send_timeout_seconds),
        )
    return InMemoryRoomDirectory(send_timeout=settings.send_timeout_seconds)


def build_push_registry(settings: Settings) -> PushRegistry:
    if settings.push_registry_backend == "sql":
        from tenkvendor.db.engine import async_session_factory
        from tenkvendor.push.registry import SqlPushRegistry

        return SqlPushRegistry(async_session_factory)
    return InMemoryPushRegistry()


def build_hub(
    settings: Settings,
    *,
    user_lookup: Optional[UserLookup] = None,
    order_lookup: Optional[OrderLookup] = None,
    rooms: Optional[RoomDirectory] = None,
    push_registry: Optional[PushRegistry] = None,
    push_transport: Optional[PushTransport] = None,
) -> RealtimeHub:
    """Wire the services. Anything not passed in comes from settings."""
    if user_lookup is None or order_lookup is None:
        from tenkvendor.db.engine import async_session_factory
        from tenkvendor.db.lookups import SqlLookups

        lookups = SqlLookups(async_session_factory)
        user_lookup = user_lookup or lookups.find_user_by_id
        order_lookup = order_lookup or lookups.find_order_by_id

    if push_transport is None:
        if not settings.vapid_private_key:
            logger.warning("push.vapid_not_configured")
        push_transport = WebPushTransport(
            vapid_private_key=settings.vapid_private_key,
            vapid_subject=settings.vapid_subject,
            ttl=settings.push_ttl_seconds,
        )

    rooms = rooms or build_rooms(settings)
    verifier = CredentialVerifier(user_lookup, timeout=settings.auth_timeout_seconds)
    router = EventRouter(rooms, order_lookup)
    gateway = SessionGateway(rooms, verifier, router)
    notifier = PushNotifier(
        push_registry or build_push_registry(settings),
        push_transport,
        default_url=settings.default_push_url,
    )

    return RealtimeHub(
        rooms=rooms,
        verifier=verifier,
        router=router,
        gateway=gateway,
        notifier=notifier,
    )
