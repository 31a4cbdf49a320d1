"""Async SQLAlchemy engine and session factory.

The storefront owns the users/orders tables; we read them (order owner
lookups, principal lookups) and own push_subscriptions when the SQL push
registry is enabled.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenkvendor.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory — each lookup gets its own short-lived session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
