"""Room directory — room name → connected sessions.

Membership is process-local and lost on restart; clients reconnect and
re-join. RoomDirectory is the seam for a shared backend (see pubsub.py).

A room exists only while it has members: the first join creates its set,
the last leave deletes it.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import structlog

from tenkvendor.realtime.session import Session

logger = structlog.get_logger()


class RoomDirectory(ABC):
    """Membership + broadcast contract used by the gateway and router."""

    @abstractmethod
    async def join(self, room: str, session: Session) -> None: ...

    @abstractmethod
    async def leave(self, room: str, session: Session) -> None: ...

    @abstractmethod
    async def leave_all(self, session: Session) -> None: ...

    @abstractmethod
    async def broadcast(self, room: str, event: str, payload: Any = None) -> int:
        """Deliver to every session in the room. Returns deliveries that succeeded."""

    @abstractmethod
    def members(self, room: str) -> frozenset[Session]: ...

    def rooms_of(self, session: Session) -> frozenset[str]:
        return frozenset(session.rooms)

    @abstractmethod
    def stats(self) -> dict[str, int]: ...

    async def start(self) -> None:
        """Hook for backends with background work."""

    async def close(self) -> None:
        """Hook for backends holding connections."""


class InMemoryRoomDirectory(RoomDirectory):
    """Dict of sets guarded by one asyncio.Lock.

    Broadcast snapshots the member set under the lock and sends outside it,
    so a slow socket never holds up joins or leaves.
    """

    def __init__(self, send_timeout: float = 10.0):
        self.send_timeout = send_timeout
        self._rooms: dict[str, set[Session]] = {}
        self._lock = asyncio.Lock()

    async def join(self, room: str, session: Session) -> None:
        async with self._lock:
            self._rooms.setdefault(room, set()).add(session)
            session.rooms.add(room)

    async def leave(self, room: str, session: Session) -> None:
        async with self._lock:
            self._discard(room, session)

    async def leave_all(self, session: Session) -> None:
        async with self._lock:
            for room in list(session.rooms):
                self._discard(room, session)
            session.rooms.clear()

    def _discard(self, room: str, session: Session) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(session)
            if not members:
                del self._rooms[room]
        session.rooms.discard(room)

    async def broadcast(self, room: str, event: str, payload: Any = None) -> int:
        async with self._lock:
            targets = list(self._rooms.get(room, ()))
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._deliver(session, event, payload) for session in targets)
        )
        return sum(results)

    async def _deliver(self, session: Session, event: str, payload: Any) -> bool:
        try:
            await asyncio.wait_for(session.emit(event, payload), self.send_timeout)
            return True
        except Exception as e:
            # Dead or stalled socket — its disconnect handler will clean up membership.
            logger.warning(
                "realtime.delivery_failed",
                sid=session.sid,
                event_name=event,
                error=str(e),
            )
            return False

    def members(self, room: str) -> frozenset[Session]:
        return frozenset(self._rooms.get(room, ()))

    def stats(self) -> dict[str, int]:
        return {room: len(members) for room, members in list(self._rooms.items())}
