"""Read-side lookups the realtime layer needs from the storefront database.

Each call opens its own short session: they run from WebSocket handlers
and background fan-out, not inside a request-scoped session.
"""

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from tenkvendor.db.models import Order, User


class SqlLookups:
    """find_user_by_id / find_order_by_id over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_user_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        async with self.session_factory() as db:
            user = await db.get(User, user_id)
            return user.to_document() if user else None

    async def find_order_by_id(self, order_id: str) -> Optional[dict[str, Any]]:
        """Load an order with its user populated, or None if it's gone."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(selectinload(Order.user))
            )
            order = result.scalars().first()
            return order.to_document() if order else None
