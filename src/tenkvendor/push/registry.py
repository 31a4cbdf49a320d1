"""Push registration registries.

PushRegistry is the storage seam: the in-memory one is the default
(registrations vanish on restart and browsers re-subscribe on next load),
the SQL one persists to push_subscriptions.

Registrations are never deduplicated. Two tabs or two devices of one user
are two registrations.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenkvendor.db.models import PushSubscription, new_id


@dataclass(frozen=True)
class PushRegistration:
    user_id: str
    subscription: dict[str, Any]
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def endpoint(self) -> Optional[str]:
        return self.subscription.get("endpoint")


class PushRegistry(ABC):
    @abstractmethod
    async def add(self, registration: PushRegistration) -> PushRegistration: ...

    @abstractmethod
    async def select(self, user_id: Optional[str] = None) -> list[PushRegistration]:
        """Registrations for one user, or all of them when user_id is None."""

    @abstractmethod
    async def remove(self, registration_id: str) -> bool:
        """Remove by id. False if it was already gone."""

    async def close(self) -> None:
        pass


class InMemoryPushRegistry(PushRegistry):
    def __init__(self):
        self._items: dict[str, PushRegistration] = {}
        self._lock = asyncio.Lock()

    async def add(self, registration: PushRegistration) -> PushRegistration:
        async with self._lock:
            self._items[registration.id] = registration
        return registration

    async def select(self, user_id: Optional[str] = None) -> list[PushRegistration]:
        async with self._lock:
            items = list(self._items.values())
        if user_id is None:
            return items
        return [r for r in items if r.user_id == user_id]

    async def remove(self, registration_id: str) -> bool:
        async with self._lock:
            return self._items.pop(registration_id, None) is not None

    def __len__(self) -> int:
        return len(self._items)


class SqlPushRegistry(PushRegistry):
    """push_subscriptions table. Each call runs in its own session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _to_registration(row: PushSubscription) -> PushRegistration:
        return PushRegistration(
            id=row.id,
            user_id=row.user_id,
            subscription=row.subscription,
            created_at=row.created_at,
        )

    async def add(self, registration: PushRegistration) -> PushRegistration:
        async with self.session_factory() as db:
            db.add(
                PushSubscription(
                    id=registration.id,
                    user_id=registration.user_id,
                    subscription=registration.subscription,
                    created_at=registration.created_at,
                )
            )
            await db.commit()
        return registration

    async def select(self, user_id: Optional[str] = None) -> list[PushRegistration]:
        q = select(PushSubscription).order_by(PushSubscription.created_at)
        if user_id is not None:
            q = q.where(PushSubscription.user_id == user_id)
        async with self.session_factory() as db:
            result = await db.execute(q)
            return [self._to_registration(row) for row in result.scalars().all()]

    async def remove(self, registration_id: str) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(PushSubscription).where(PushSubscription.id == registration_id)
            )
            await db.commit()
            return result.rowcount > 0
