"""Session gateway — connect, authenticate, join rooms, disconnect.

A socket starts unauthenticated and in no rooms. The client then asks to
join as admin ("joinAdmin") or as a customer ("joinUser"); either way the
credential is checked with the same verifier the REST API uses. A failed
check disconnects the socket. There are no retries and no error frames;
the client reconnects with a better token.
"""

from typing import Any, Awaitable, Callable

import structlog

from tenkvendor.auth.verifier import CredentialVerifier, Principal
from tenkvendor.errors import InvalidEventError, Unauthorized
from tenkvendor.realtime import ADMIN_ROOM, is_user_room, room_for_user
from tenkvendor.realtime.rooms import RoomDirectory
from tenkvendor.realtime.router import EventRouter, OrderEvent
from tenkvendor.realtime.session import Session, Transport

logger = structlog.get_logger()

# Close code for auth failures (4000-4999 is application-defined)
CLOSE_UNAUTHORIZED = 4001


class SessionGateway:
    def __init__(
        self,
        rooms: RoomDirectory,
        verifier: CredentialVerifier,
        router: EventRouter,
    ):
        self.rooms = rooms
        self.verifier = verifier
        self.router = router
        self._handlers: dict[str, Callable[[Session, Any], Awaitable[None]]] = {
            "joinAdmin": self._on_join_admin,
            "joinUser": self._on_join_user,
            "categoryUpdate": self._on_category_update,
            "productUpdate": self._on_product_update,
            "orderStatusUpdate": self._on_order_status_update,
        }

    # ─── Lifecycle ─────────────────────────────────────────

    def on_connect(self, transport: Transport) -> Session:
        session = Session(transport=transport)
        logger.info("realtime.connected", sid=session.sid)
        return session

    async def on_disconnect(self, session: Session) -> None:
        """Drop the session from every room. Safe to call more than once."""
        await self.rooms.leave_all(session)
        logger.info("realtime.disconnected", sid=session.sid)

    async def _reject(self, session: Session, error: Unauthorized) -> None:
        logger.info("realtime.unauthorized", sid=session.sid, reason=error.reason)
        await self.rooms.leave_all(session)
        await session.close(code=CLOSE_UNAUTHORIZED, reason="unauthorized")

    # ─── Authentication ────────────────────────────────────

    async def authenticate_as_admin(self, session: Session, credential: Any) -> Principal:
        """Verify an admin credential and join adminRoom.

        Raises Unauthorized (after disconnecting) on any failure.
        """
        try:
            principal = await self.verifier.verify(credential)
            if not principal.is_admin:
                raise Unauthorized("Admin access required")
        except Unauthorized as e:
            await self._reject(session, e)
            raise

        session.principal = principal
        await self.rooms.join(ADMIN_ROOM, session)
        logger.info(
            "realtime.admin_joined",
            sid=session.sid,
            user_id=principal.id,
            name=principal.display_name,
        )
        return principal

    async def authenticate_as_user(self, session: Session, credential: Any) -> Principal:
        """Verify a customer credential and join user_<id>.

        Raises Unauthorized (after disconnecting) on any failure.
        """
        try:
            principal = await self.verifier.verify(credential)
        except Unauthorized as e:
            await self._reject(session, e)
            raise

        room = room_for_user(principal.id)
        for stale in [r for r in session.rooms if is_user_room(r) and r != room]:
            await self.rooms.leave(stale, session)

        if session.principal is None or not session.principal.is_admin:
            session.principal = principal
        await self.rooms.join(room, session)
        logger.info(
            "realtime.user_joined",
            sid=session.sid,
            user_id=principal.id,
            room=room,
        )
        return principal

    # ─── Inbound events ────────────────────────────────────

    async def dispatch(self, session: Session, event: str, data: Any = None) -> None:
        """Route one client frame to its handler.

        Handler errors are logged here; only auth failures end the session.
        """
        handler = self._handlers.get(event)
        if handler is None:
            logger.info("realtime.unknown_event", sid=session.sid, event_name=event)
            return
        try:
            await handler(session, data)
        except Unauthorized:
            pass  # already logged and disconnected
        except InvalidEventError as e:
            logger.warning(
                "realtime.invalid_event", sid=session.sid, event_name=event, error=str(e)
            )
        except Exception:
            logger.exception("realtime.handler_error", sid=session.sid, event_name=event)

    async def _on_join_admin(self, session: Session, data: Any) -> None:
        await self.authenticate_as_admin(session, data)

    async def _on_join_user(self, session: Session, data: Any) -> None:
        token = data.get("token") if isinstance(data, dict) else None
        await self.authenticate_as_user(session, token)

    async def _on_category_update(self, session: Session, data: Any) -> None:
        await self.router.catalog_changed("category")

    async def _on_product_update(self, session: Session, data: Any) -> None:
        await self.router.catalog_changed("product")

    async def _on_order_status_update(self, session: Session, data: Any) -> None:
        await self.router.order_status_changed(OrderEvent.from_payload(data))
